"""Async client for the glif API.

Every operation maps to one REST endpoint. Plain calls go through the shared
``_request_json`` path: take a rate-limiter permit, send, check the status,
decode the body into records. Streaming runs skip the rate limiter and hand
back the response body line by line.
"""

import dataclasses
import inspect
import logging
import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import aclosing
from typing import Any, TypeVar
from urllib.parse import quote

import httpx

from glif.config.settings import Settings, get_settings
from glif.errors import (
    CallbackError,
    DecodeError,
    GlifTimeoutError,
    RequestConstructionError,
    TransportError,
    UnexpectedStatusError,
)
from glif.logging.structured import RequestTimer, get_client_logger, request_context
from glif.models import (
    DEFAULT_CONFIG,
    AddressList,
    ClientConfig,
    GlifInfo,
    GlifRun,
    JSONValue,
    RunResult,
    SphereInfo,
    UserInfo,
)
from glif.ratelimit import TokenBucket
from glif.streaming import LineBuffer

ENDPOINT_RUN = "/api/v1/run/"
ENDPOINT_ADDRESSES = "/api/v1/addresses"
ENDPOINT_GLIFS = "/api/glifs"
ENDPOINT_RUNS = "/api/runs"
ENDPOINT_USER = "/api/user"
ENDPOINT_ME = "/api/me"
ENDPOINT_SPHERES = "/api/spheres"

# glif ids are cuids; user ids start with this prefix, usernames never do.
USER_ID_PREFIX = "cl"

# Longest slice of an error response body kept on UnexpectedStatusError
ERROR_BODY_LIMIT = 500

Params = httpx.QueryParams | dict[str, Any] | list[tuple[str, Any]] | None
ChunkCallback = Callable[[bytes], Awaitable[None] | None]

T = TypeVar("T")


def identifier_param(username_or_id: str) -> str:
    """Query parameter name the /api/user endpoint expects for this value."""
    if username_or_id.startswith(USER_ID_PREFIX):
        return "id"
    return "username"


class GlifClient:
    """Client for the glif API.

    Configuration starts from ``DEFAULT_CONFIG`` (or ``config``) and keyword
    overrides replace single fields, e.g.
    ``GlifClient(base_url="http://localhost:3000", rate_limit=5)``.

    Args:
        config: Base configuration; defaults to ``DEFAULT_CONFIG``.
        http_client: Shared ``httpx.AsyncClient``. It is not closed by this client.
        logger: Destination for request logs; defaults to the silent ``glif.client`` logger.
        rate_limiter: Shared ``TokenBucket``; defaults to one built from the config.
        token_env: Environment variable holding the API token, read once here.
            A non-empty ``api_token`` takes precedence.
        **overrides: ``ClientConfig`` fields to replace.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        logger: logging.Logger | None = None,
        rate_limiter: TokenBucket | None = None,
        token_env: str | None = None,
        **overrides: Any,
    ):
        config = config or DEFAULT_CONFIG
        if overrides:
            config = dataclasses.replace(config, **overrides)
        if token_env and not config.api_token:
            config = dataclasses.replace(config, api_token=os.environ.get(token_env, ""))

        self.config = config
        self.logger = logger or get_client_logger()
        self.rate_limiter = rate_limiter or TokenBucket(config.rate_limit, config.rate_burst)
        self._client = http_client
        self._owns_client = http_client is None

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **kwargs: Any) -> "GlifClient":
        """Build a client from ``GLIF_*`` environment settings."""
        settings = settings or get_settings()
        return cls(settings.to_client_config(), **kwargs)

    async def __aenter__(self) -> "GlifClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or (self._owns_client and self._client.is_closed):
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.config.timeout))
        return self._client

    async def close(self) -> None:
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        if self._owns_client:
            self._client = None

    # --- request plumbing ---

    def _headers(self, *, json_body: bool = False) -> dict:
        headers = {}
        if json_body:
            headers["Content-Type"] = "application/json"
        if self.config.api_token:
            headers["Authorization"] = f"Bearer {self.config.api_token}"
        return headers

    def _endpoint(self, path: str) -> httpx.URL:
        try:
            url = httpx.URL(f"{self.config.base_url.rstrip('/')}{path}")
        except httpx.InvalidURL as e:
            raise RequestConstructionError(f"invalid base URL {self.config.base_url!r}") from e
        if url.scheme not in ("http", "https") or not url.host:
            raise RequestConstructionError(f"invalid base URL {self.config.base_url!r}")
        return url

    def _build_request(
        self,
        client: httpx.AsyncClient,
        method: str,
        path: str,
        *,
        params: Params = None,
        body: Any = None,
    ) -> httpx.Request:
        url = self._endpoint(path)
        try:
            if method == "POST":
                return client.build_request(
                    method, url, params=params, json=body, headers=self._headers(json_body=True)
                )
            return client.build_request(method, url, params=params, headers=self._headers())
        except (TypeError, ValueError) as e:
            raise RequestConstructionError(f"failed to build {method} {path}: {e}") from e

    def _run_path(self, model_id: str) -> str:
        if not model_id:
            raise RequestConstructionError("model_id must not be empty")
        return f"{ENDPOINT_RUN}{quote(model_id, safe='')}"

    @staticmethod
    def _run_body(model_id: str, args: JSONValue) -> dict:
        return {"id": model_id, "inputs": [] if args is None else args}

    async def _send(self, client: httpx.AsyncClient, request: httpx.Request, *, stream: bool = False) -> httpx.Response:
        with RequestTimer() as timer:
            try:
                response = await client.send(request, stream=stream)
            except httpx.TimeoutException as e:
                raise GlifTimeoutError(f"glif API timed out: {request.method} {request.url}") from e
            except httpx.HTTPError as e:
                raise TransportError(f"failed to send request: {e}") from e

        self.logger.debug(
            "Received response",
            extra={"log_data": {
                "endpoint": str(request.url),
                "status_code": response.status_code,
                "latency_ms": timer.elapsed_ms,
            }},
        )

        # Streams are only consumed on exactly 200
        ok = response.status_code == 200 if stream else response.is_success
        if not ok:
            if stream:
                try:
                    body_bytes = await response.aread()
                except httpx.HTTPError as e:
                    raise UnexpectedStatusError(response.status_code) from e
                finally:
                    await response.aclose()
            else:
                body_bytes = response.content
            detail = body_bytes.decode(errors="replace")[:ERROR_BODY_LIMIT]
            raise UnexpectedStatusError(response.status_code, detail)
        return response

    @staticmethod
    def _decode(response: httpx.Response, build: Callable[[Any], T]) -> T:
        try:
            data = response.json()
        except (ValueError, RecursionError) as e:
            raise DecodeError(f"failed to decode response: {e}") from e
        try:
            return build(data)
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeError(f"failed to decode response: {e}") from e

    async def _request_json(
        self,
        method: str,
        path: str,
        build: Callable[[Any], T],
        *,
        params: Params = None,
        body: Any = None,
        log_data: dict | None = None,
    ) -> T:
        with request_context():
            client = await self._get_client()
            request = self._build_request(client, method, path, params=params, body=body)
            await self.rate_limiter.wait(self.config.rate_limit_timeout)

            self.logger.info(
                "Sending request",
                extra={"log_data": {"endpoint": str(request.url), **(log_data or {})}},
            )
            response = await self._send(client, request)
            return self._decode(response, build)

    async def _get_json(self, path: str, build: Callable[[Any], T], params: Params = None) -> T:
        return await self._request_json("GET", path, build, params=params)

    # --- runs ---

    async def run_simple(self, model_id: str, args: JSONValue = None) -> RunResult:
        """Run a glif and wait for its result.

        Args:
            model_id: glif id to run.
            args: Positional inputs as a list or named inputs as a dict.
        """
        return await self._request_json(
            "POST",
            self._run_path(model_id),
            RunResult.from_dict,
            body=self._run_body(model_id, args),
            log_data={"model_id": model_id},
        )

    async def stream_run(self, model_id: str, args: JSONValue = None) -> AsyncGenerator[bytes, None]:
        """Run a glif and yield its newline-delimited response as raw lines.

        Lines keep their trailing ``\\n``. Bytes after the last newline are
        discarded when the stream ends. Streaming calls do not take a
        rate-limiter permit.
        """
        with request_context():
            client = await self._get_client()
            request = self._build_request(
                client, "POST", self._run_path(model_id), body=self._run_body(model_id, args)
            )
            self.logger.info(
                "Sending streaming request",
                extra={"log_data": {"endpoint": str(request.url), "model_id": model_id}},
            )
            response = await self._send(client, request, stream=True)

        try:
            buffer = LineBuffer()
            chunks = response.aiter_bytes()
            while True:
                try:
                    chunk = await chunks.__anext__()
                except StopAsyncIteration:
                    break
                except httpx.TimeoutException as e:
                    raise GlifTimeoutError(f"glif API timed out mid-stream: {request.url}") from e
                except httpx.HTTPError as e:
                    raise TransportError(f"error reading stream: {e}") from e
                for line in buffer.feed(chunk):
                    yield line
            if buffer.pending:
                self.logger.debug(
                    "Discarding unterminated stream tail",
                    extra={"log_data": {"model_id": model_id, "bytes": len(buffer.pending)}},
                )
        finally:
            await response.aclose()

    async def stream_run_simple(self, model_id: str, args: JSONValue, on_chunk: ChunkCallback) -> None:
        """Run a glif and pass each streamed line to ``on_chunk``.

        The next line is read only after ``on_chunk`` returns. If it raises,
        the stream is closed and CallbackError is raised from that exception.
        """
        async with aclosing(self.stream_run(model_id, args)) as lines:
            async for line in lines:
                try:
                    result = on_chunk(line)
                    if inspect.isawaitable(result):
                        await result
                except Exception as e:
                    raise CallbackError(f"error in callback: {e}") from e

    # --- metadata ---

    async def get_addresses(self) -> AddressList:
        return await self._get_json(ENDPOINT_ADDRESSES, AddressList.from_dict)

    async def get_glifs(self, params: Params = None) -> list[GlifInfo]:
        return await self._get_json(ENDPOINT_GLIFS, _list_of(GlifInfo.from_dict), params)

    async def get_glif_runs(self, glif_id: str, params: Params = None) -> list[GlifRun]:
        """List runs of one glif; ``glifId`` precedes any caller parameters."""
        query = [("glifId", glif_id), *httpx.QueryParams(params).multi_items()]
        return await self._get_json(ENDPOINT_RUNS, _list_of(GlifRun.from_dict), query)

    async def get_user_info(self, username_or_id: str) -> UserInfo:
        """Look up a user by id (``cl...``) or by username."""
        params = {identifier_param(username_or_id): username_or_id}
        return await self._get_json(ENDPOINT_USER, UserInfo.from_dict, params)

    async def get_my_info(self) -> UserInfo:
        return await self._get_json(ENDPOINT_ME, UserInfo.from_dict)

    async def get_spheres(self, params: Params = None) -> list[SphereInfo]:
        return await self._get_json(ENDPOINT_SPHERES, _list_of(SphereInfo.from_dict), params)


def _list_of(build: Callable[[Any], T]) -> Callable[[Any], list[T]]:
    def _build_all(data: Any) -> list[T]:
        if data is None:
            return []
        if not isinstance(data, list):
            raise TypeError(f"expected a JSON array, got {type(data).__name__}")
        return [build(item) for item in data]

    return _build_all
