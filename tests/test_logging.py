"""Tests for glif/logging/structured.py — JSON logging and request correlation."""

import json
import logging

import httpx
import pytest

from glif.logging.structured import (
    JSONFormatter,
    RequestTimer,
    generate_request_id,
    get_client_logger,
    request_context,
    request_id_var,
    setup_logging,
)
from tests.conftest import GLIF_ID


@pytest.fixture
def restore_glif_logger():
    logger = logging.getLogger("glif")
    saved = (list(logger.handlers), logger.level, logger.propagate)
    yield logger
    for handler in logger.handlers:
        if handler not in saved[0]:
            handler.close()
    logger.handlers[:] = saved[0]
    logger.setLevel(saved[1])
    logger.propagate = saved[2]


def _record(msg: str = "hello") -> logging.LogRecord:
    return logging.LogRecord(
        name="glif.client", level=logging.INFO, pathname="",
        lineno=0, msg=msg, args=(), exc_info=None,
    )


class TestJSONFormatter:

    def test_output_is_valid_json(self):
        parsed = json.loads(JSONFormatter().format(_record()))
        assert parsed["message"] == "hello"
        assert parsed["level"] == "INFO"
        assert parsed["logger"] == "glif.client"
        assert "timestamp" in parsed

    def test_includes_request_id(self):
        token = request_id_var.set("req-abc123")
        try:
            parsed = json.loads(JSONFormatter().format(_record()))
            assert parsed["request_id"] == "req-abc123"
        finally:
            request_id_var.reset(token)

    def test_includes_log_data(self):
        record = _record()
        record.log_data = {"endpoint": "https://glif.app/api/me", "status_code": 200}
        parsed = json.loads(JSONFormatter().format(record))
        assert parsed["endpoint"] == "https://glif.app/api/me"
        assert parsed["status_code"] == 200

    def test_empty_request_id_default(self):
        parsed = json.loads(JSONFormatter().format(_record()))
        assert parsed["request_id"] == ""


class TestRequestContext:

    def test_binds_and_resets(self):
        with request_context("rid-1") as rid:
            assert rid == "rid-1"
            assert request_id_var.get() == "rid-1"
        assert request_id_var.get() == ""

    def test_generates_id(self):
        with request_context() as rid:
            assert len(rid) == 12

    def test_generate_request_id_unique_hex(self):
        ids = {generate_request_id() for _ in range(100)}
        assert len(ids) == 100
        assert all(c in "0123456789abcdef" for rid in ids for c in rid)


class TestRequestTimer:

    def test_measures_elapsed(self):
        with RequestTimer() as timer:
            _ = sum(range(1000))
        assert timer.elapsed_ms >= 0
        assert isinstance(timer.elapsed_ms, float)


class TestSetupLogging:

    def test_creates_stdout_handler(self, override_settings, restore_glif_logger):
        override_settings(GLIF_LOG_FILE="", GLIF_LOG_LEVEL="DEBUG")
        logger = setup_logging()
        assert logger.level == logging.DEBUG
        assert logger.propagate is False
        assert any(isinstance(h.formatter, JSONFormatter) for h in logger.handlers)

    def test_file_handler(self, tmp_path, restore_glif_logger):
        log_file = tmp_path / "glif.log"
        logger = setup_logging(level="INFO", log_file=str(log_file))
        logger.info("written")
        for handler in logger.handlers:
            handler.flush()
        assert json.loads(log_file.read_text().splitlines()[-1])["message"] == "written"

    async def test_client_records_share_request_id(self, make_client, tmp_path, restore_glif_logger):
        log_file = tmp_path / "client.log"
        setup_logging(level="DEBUG", log_file=str(log_file))
        body = {"id": GLIF_ID, "inputs": [], "output": "ok"}
        client, _ = make_client(httpx.Response(200, json=body), logger=get_client_logger())

        await client.run_simple(GLIF_ID, [])

        for handler in logging.getLogger("glif").handlers:
            handler.flush()
        entries = [json.loads(line) for line in log_file.read_text().splitlines()]
        assert [e["message"] for e in entries] == ["Sending request", "Received response"]
        assert entries[0]["request_id"] and entries[0]["request_id"] == entries[1]["request_id"]
        assert entries[0]["model_id"] == GLIF_ID
        assert entries[1]["status_code"] == 200
