"""JSON-over-HTTP request helpers built on requests."""

from jsonhttp.context import RequestContext
from jsonhttp.errors import (
    DecodeError,
    EncodeError,
    InvalidEndpoint,
    JsonHttpError,
    RequestConstructionError,
    TransportError,
    UnexpectedStatus,
)
from jsonhttp.http import (
    get_with_headers,
    http_get,
    post_form,
    post_form_with_headers,
    post_json_with_auth,
)
from jsonhttp.logging import setup_logging

__all__ = [
    "RequestContext",
    "JsonHttpError",
    "InvalidEndpoint",
    "RequestConstructionError",
    "TransportError",
    "UnexpectedStatus",
    "EncodeError",
    "DecodeError",
    "post_form",
    "get_with_headers",
    "post_form_with_headers",
    "post_json_with_auth",
    "http_get",
    "setup_logging",
]
