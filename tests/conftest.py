"""Shared fixtures for the glif client test suite."""

import json
import math

import httpx
import pytest

from glif.client import GlifClient
from glif.config.settings import get_settings
from glif.ratelimit import TokenBucket

GLIF_ID = "cm023wc6m0009k7ur9ta0g14f"


class RecordingServer:
    """httpx.MockTransport handler that records requests and replays a response.

    ``respond`` is either an ``httpx.Response`` returned for every request or
    a callable ``(request) -> httpx.Response``.
    """

    def __init__(self, respond):
        self.respond = respond
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if callable(self.respond):
            return self.respond(request)
        return self.respond

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self):
        return json.loads(self.last.content)


@pytest.fixture
def make_client():
    """Factory fixture: build a GlifClient wired to a RecordingServer.

    Usage:
        client, server = make_client(httpx.Response(200, json={...}))
    """
    http_clients: list[httpx.AsyncClient] = []

    def _make(respond, **kwargs):
        server = RecordingServer(respond)
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(server))
        http_clients.append(http_client)
        kwargs.setdefault("base_url", "http://glif.test")
        kwargs.setdefault("api_token", "test-token")
        kwargs.setdefault("rate_limiter", TokenBucket(math.inf, 1))
        return GlifClient(http_client=http_client, **kwargs), server

    yield _make

    # MockTransport holds no sockets; dropping the clients is enough.
    http_clients.clear()


@pytest.fixture
def run_response() -> dict:
    """Typical /api/v1/run response body."""
    return {
        "id": GLIF_ID,
        "inputs": ["a happy horse", "foobar"],
        "output": "Test response",
    }


@pytest.fixture
def override_settings(monkeypatch):
    """Factory fixture: set env vars and clear settings cache.

    Usage:
        override_settings(GLIF_BASE_URL="http://localhost", GLIF_RATE_LIMIT="5")
    """
    def _override(**kwargs):
        for key, value in kwargs.items():
            monkeypatch.setenv(key.upper(), str(value))
        # Clear lru_cache so Settings re-reads env
        get_settings.cache_clear()

    yield _override

    # Always clear cache on teardown so other tests get fresh settings
    get_settings.cache_clear()


async def async_chunks(*chunks: bytes):
    """Async byte iterator used as a streamed response body."""
    for chunk in chunks:
        yield chunk


class FakeClock:
    """Manually advanced monotonic clock for rate limiter tests."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
