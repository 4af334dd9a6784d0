"""Structured JSON logging for the glif client.

The library logs under the ``glif`` logger and stays silent until an
application attaches handlers, either its own or via ``setup_logging()``,
which writes one JSON object per line to stdout (and optionally a file).

Each client call runs with a fresh request id in ``request_id_var`` so
every record it emits can be correlated.
"""

import json
import logging
import sys
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone

from glif.config.settings import get_settings

LOGGER_NAME = "glif"

# Request-scoped context for correlating log entries
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Silent unless the application configures logging
logging.getLogger(LOGGER_NAME).addHandler(logging.NullHandler())


class JSONFormatter(logging.Formatter):
    """Formats log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": request_id_var.get(""),
        }
        # Merge any extra fields passed via `extra={"log_data": ...}`
        if hasattr(record, "log_data"):
            log_entry.update(record.log_data)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def setup_logging(level: str | None = None, log_file: str | None = None) -> logging.Logger:
    """Attach JSON handlers to the ``glif`` logger.

    Args:
        level: Log level name; defaults to ``GLIF_LOG_LEVEL``.
        log_file: Extra file destination; defaults to ``GLIF_LOG_FILE`` (empty = none).
    """
    settings = get_settings()
    level = level or settings.log_level
    log_file = settings.log_file if log_file is None else log_file

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(logger.handlers):
        if not isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)

    formatter = JSONFormatter()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    logger.addHandler(stdout_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Prevent propagation to root logger (avoids duplicate output)
    logger.propagate = False
    return logger


def get_client_logger() -> logging.Logger:
    return logging.getLogger(f"{LOGGER_NAME}.client")


def generate_request_id() -> str:
    return uuid.uuid4().hex[:12]


@contextmanager
def request_context(request_id: str | None = None):
    """Bind a request id to ``request_id_var`` for the duration of the block."""
    rid = request_id or generate_request_id()
    token = request_id_var.set(rid)
    try:
        yield rid
    finally:
        request_id_var.reset(token)


class RequestTimer:
    """Context manager to measure request latency."""

    def __init__(self):
        self.start_time: float = 0
        self.elapsed_ms: float = 0

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args):
        self.elapsed_ms = round((time.perf_counter() - self.start_time) * 1000, 2)
