"""Async client for the glif generative-execution API."""

from glif.client import GlifClient
from glif.errors import (
    CallbackError,
    DecodeError,
    GlifError,
    GlifTimeoutError,
    RateLimitExceeded,
    RequestConstructionError,
    TransportError,
    UnexpectedStatusError,
)
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

__version__ = "0.1.0"

__all__ = [
    "AddressList",
    "CallbackError",
    "ClientConfig",
    "DEFAULT_CONFIG",
    "DecodeError",
    "GlifClient",
    "GlifError",
    "GlifInfo",
    "GlifRun",
    "GlifTimeoutError",
    "JSONValue",
    "RateLimitExceeded",
    "RequestConstructionError",
    "RunResult",
    "SphereInfo",
    "TokenBucket",
    "TransportError",
    "UnexpectedStatusError",
    "UserInfo",
]
