"""Error types raised by the request helpers.

Every helper raises exactly one of these per failed call. The original cause
(a ``requests`` exception, a ``ValueError`` from the JSON codec, a pydantic
``ValidationError``) is always chained via ``__cause__``.
"""

from __future__ import annotations


def _classify_status(code: int) -> str:
    """Classify HTTP status codes as transient (worth retrying) or permanent."""
    if code in (408, 429) or 500 <= code < 600:
        return "transient"
    return "permanent"


class JsonHttpError(Exception):
    """Base exception for the package."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class InvalidEndpoint(JsonHttpError):
    """The endpoint URL could not be parsed."""


class RequestConstructionError(JsonHttpError):
    """The request object could not be created (bad method, bad URL parts, ...)."""


class TransportError(JsonHttpError):
    """Sending failed: DNS, refused connection, timeout or cancellation."""


class UnexpectedStatus(JsonHttpError):
    """The server answered with a status other than 200."""

    def __init__(self, status_code: int, body: str | None = None, *, body_limit: int = 512):
        message = f"unexpected status code: {status_code}"
        if body is not None:
            snippet = body if len(body) <= body_limit else body[:body_limit] + "..."
            message += f", body: {snippet}"
        super().__init__(message, {"status_code": status_code})
        self.status_code = status_code
        self.body = body

    @property
    def transient(self) -> bool:
        return _classify_status(self.status_code) == "transient"


class EncodeError(JsonHttpError):
    """The outbound JSON body could not be serialized."""


class DecodeError(JsonHttpError):
    """The response body is not valid JSON or does not match the result type."""
