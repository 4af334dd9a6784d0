"""Exceptions raised by the glif client.

Every failure surfaces as a GlifError subclass with the underlying cause
chained via ``raise ... from exc``. Nothing is retried internally.
"""


class GlifError(Exception):
    """Base class for all glif client errors."""


class RateLimitExceeded(GlifError):
    """The rate limiter could not grant a permit within the allowed wait."""


class RequestConstructionError(GlifError):
    """The request could not be built (bad URL, unserializable body, empty id)."""


class TransportError(GlifError):
    """Network-level failure while sending a request or reading a stream."""


class GlifTimeoutError(TransportError):
    """The glif API did not answer within the transport timeout."""


class UnexpectedStatusError(GlifError):
    """The glif API answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        message = f"unexpected status code: {status_code}"
        if body:
            message = f"{message}: {body}"
        super().__init__(message)


class DecodeError(GlifError):
    """The response body was not valid JSON or did not match the expected shape."""


class CallbackError(GlifError):
    """A streaming callback raised; the original exception is the __cause__."""
