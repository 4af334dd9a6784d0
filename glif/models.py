"""Client configuration and the records decoded from glif API responses."""

from dataclasses import dataclass, field
from typing import Any, Union

# Arbitrary JSON value: run inputs and outputs are opaque to this library.
JSONValue = Union[str, int, float, bool, None, list["JSONValue"], dict[str, "JSONValue"]]

DEFAULT_BASE_URL = "https://glif.app"
DEFAULT_TIMEOUT = 30.0
DEFAULT_RATE_LIMIT = 10.0  # requests per second
DEFAULT_RATE_BURST = 1


@dataclass(frozen=True)
class ClientConfig:
    base_url: str = DEFAULT_BASE_URL
    api_token: str = ""
    timeout: float = DEFAULT_TIMEOUT  # seconds, applied to the default transport
    rate_limit: float = DEFAULT_RATE_LIMIT
    rate_burst: int = DEFAULT_RATE_BURST
    rate_limit_timeout: float | None = None  # None = wait for a permit indefinitely


DEFAULT_CONFIG = ClientConfig()


def _expect_mapping(data: Any, kind: str) -> dict:
    if not isinstance(data, dict):
        raise TypeError(f"{kind} must be a JSON object, got {type(data).__name__}")
    return data


def _require_id(data: dict, kind: str) -> str:
    value = data.get("id")
    if not isinstance(value, str) or not value:
        raise ValueError(f"{kind} is missing a non-empty 'id'")
    return value


def _optional_str(data: dict, key: str) -> str:
    """Missing or null string fields decode as empty strings."""
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TypeError(f"'{key}' must be a string, got {type(value).__name__}")
    return value


@dataclass
class RunResult:
    id: str
    inputs: JSONValue = None
    output: str = ""
    raw: dict = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: Any) -> "RunResult":
        data = _expect_mapping(data, "run result")
        return cls(
            id=_require_id(data, "run result"),
            inputs=data.get("inputs"),
            output=_optional_str(data, "output"),
            raw=data,
        )


@dataclass
class GlifInfo:
    id: str
    name: str = ""
    description: str = ""
    raw: dict = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: Any) -> "GlifInfo":
        data = _expect_mapping(data, "glif")
        return cls(
            id=_require_id(data, "glif"),
            name=_optional_str(data, "name"),
            description=_optional_str(data, "description"),
            raw=data,
        )


@dataclass
class GlifRun:
    id: str
    glif_id: str = ""
    inputs: JSONValue = None
    output: JSONValue = None
    raw: dict = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: Any) -> "GlifRun":
        data = _expect_mapping(data, "run")
        return cls(
            id=_require_id(data, "run"),
            glif_id=_optional_str(data, "glifId"),
            inputs=data.get("inputs"),
            output=data.get("output"),
            raw=data,
        )


@dataclass
class UserInfo:
    id: str
    username: str = ""
    raw: dict = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: Any) -> "UserInfo":
        data = _expect_mapping(data, "user")
        return cls(
            id=_require_id(data, "user"),
            username=_optional_str(data, "username"),
            raw=data,
        )


@dataclass
class SphereInfo:
    id: str
    name: str = ""
    slug: str = ""
    raw: dict = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: Any) -> "SphereInfo":
        data = _expect_mapping(data, "sphere")
        return cls(
            id=_require_id(data, "sphere"),
            name=_optional_str(data, "name"),
            slug=_optional_str(data, "slug"),
            raw=data,
        )


@dataclass
class AddressList:
    addresses: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "AddressList":
        data = _expect_mapping(data, "address list")
        addresses = data.get("addresses") or []
        if not isinstance(addresses, list) or not all(isinstance(a, str) for a in addresses):
            raise TypeError("'addresses' must be a list of strings")
        return cls(addresses=list(addresses))
