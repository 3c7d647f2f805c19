"""Request helpers: one request, one JSON response.

Each public function builds a request, sends it through a ``requests.Session``,
accepts only status 200 and decodes the JSON body. Nothing is retried; every
failure is raised as a :mod:`jsonhttp.errors` exception chained to its cause.
"""

from __future__ import annotations

import json
import logging
import re
import threading
import urllib.parse
from typing import Any, Mapping, Optional

import requests
from pydantic import BaseModel, TypeAdapter, ValidationError
from requests.structures import CaseInsensitiveDict

from jsonhttp import config
from jsonhttp.context import RequestContext
from jsonhttp.errors import (
    DecodeError,
    EncodeError,
    InvalidEndpoint,
    RequestConstructionError,
    TransportError,
    UnexpectedStatus,
    _classify_status,
)

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"

# RFC 7230 token
_METHOD_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


def _encode_values(values: Mapping[str, Any]) -> str:
    """Percent-encode ``values`` sorted by key; list values repeat the key."""
    pairs = []
    for key in sorted(values):
        value = values[key]
        if isinstance(value, (list, tuple)):
            pairs.extend((key, str(v)) for v in value)
        else:
            pairs.append((key, str(value)))
    return urllib.parse.urlencode(pairs)


def _encode_json(body: Any) -> bytes:
    try:
        if isinstance(body, BaseModel):
            return body.model_dump_json().encode("utf-8")
        return json.dumps(body, separators=(",", ":"), allow_nan=False, ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise EncodeError(f"marshal json failed: {e}") from e


def _new_request(
    session: requests.Session,
    method: str,
    endpoint: str,
    *,
    query: Optional[Mapping[str, Any]] = None,
    form: Optional[Mapping[str, Any]] = None,
    json_body: Optional[bytes] = None,
    token: Optional[str] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> requests.PreparedRequest:
    """Build a prepared request without sending it.

    Caller ``headers`` are applied last and win over the content type and
    authorization headers set here.
    """
    try:
        parts = urllib.parse.urlsplit(endpoint)
        _ = parts.port  # raises on a malformed port
    except (TypeError, ValueError) as e:
        raise InvalidEndpoint(f"invalid endpoint: {e}", {"endpoint": endpoint}) from e
    if not parts.scheme or not parts.netloc:
        raise InvalidEndpoint(f"invalid endpoint: {endpoint!r} has no scheme or host", {"endpoint": endpoint})

    url = endpoint
    if query:
        encoded = _encode_values(query)
        url = urllib.parse.urlunsplit(parts._replace(query=f"{parts.query}&{encoded}" if parts.query else encoded))

    if not isinstance(method, str) or not _METHOD_RE.match(method):
        raise RequestConstructionError(f"create request failed: invalid method {method!r}")

    hdrs: CaseInsensitiveDict = CaseInsensitiveDict()
    body: Optional[bytes] = None
    if form is not None:
        body = _encode_values(form).encode("ascii")
        hdrs["Content-Type"] = FORM_CONTENT_TYPE
    elif json_body is not None:
        body = json_body
        hdrs["Content-Type"] = JSON_CONTENT_TYPE

    if token is not None:
        hdrs["Authorization"] = f"Bearer {token}"

    if headers:
        for key, value in headers.items():
            hdrs[key] = value

    req = requests.Request(method=method, url=url, headers=dict(hdrs), data=body)
    try:
        prepared = session.prepare_request(req)
    except (requests.RequestException, ValueError) as e:
        raise RequestConstructionError(f"create request failed: {e}") from e

    # session.auth and netrc credentials are applied after the header merge
    for key, value in hdrs.items():
        if value is not None:
            prepared.headers[key] = value
    return prepared


def _timeout_for(ctx: Optional[RequestContext]) -> float:
    remaining = ctx.remaining() if ctx is not None else None
    if remaining is None:
        return config.settings.http_timeout
    return remaining


def _decode(data: Any, result_type: Any) -> Any:
    if result_type is Any:
        return data
    try:
        return TypeAdapter(result_type).validate_python(data)
    except ValidationError as e:
        raise DecodeError(f"decode response failed: {e}") from e


def _send_cancellable(
    ctx: RequestContext, session: requests.Session, prepared: requests.PreparedRequest, **send_kwargs: Any
) -> requests.Response:
    """Run ``session.send`` on a worker thread and stop waiting once ``ctx`` is cancelled.

    A blocked socket read cannot be interrupted, so a cancelled send is
    abandoned: the worker finishes within the request timeout and closes
    whatever response it got.
    """
    outcome: dict = {}
    lock = threading.Lock()
    done = threading.Event()

    def run() -> None:
        try:
            resp = session.send(prepared, **send_kwargs)
        except Exception as e:  # re-raised on the calling thread
            with lock:
                outcome["error"] = e
                done.set()
            return
        with lock:
            outcome["response"] = resp
            abandoned = outcome.get("abandoned", False)
            done.set()
        if abandoned:
            resp.close()

    unregister = ctx.register(done.set)
    try:
        ctx.check()
        threading.Thread(target=run, name="jsonhttp-send", daemon=True).start()
        done.wait()
    finally:
        unregister()

    with lock:
        if "response" not in outcome and "error" not in outcome:
            outcome["abandoned"] = True
            raise TransportError("http request failed: context canceled", {"url": prepared.url})
    if "error" in outcome:
        raise outcome["error"]
    return outcome["response"]


def _do_request(
    ctx: Optional[RequestContext],
    session: requests.Session,
    prepared: requests.PreparedRequest,
    result_type: Any = Any,
    *,
    capture_body: bool = False,
) -> Any:
    """Send ``prepared`` and decode its JSON body.

    With ``capture_body`` the response text is kept on ``UnexpectedStatus``.
    The response is closed on every path. Cancelling ``ctx`` while the request
    is in flight raises ``TransportError`` without waiting for the server.
    """
    if ctx is not None:
        ctx.check()

    send_kwargs = session.merge_environment_settings(prepared.url, {}, None, None, None)
    send_kwargs["timeout"] = _timeout_for(ctx)
    try:
        if ctx is None:
            resp = session.send(prepared, **send_kwargs)
        else:
            resp = _send_cancellable(ctx, session, prepared, **send_kwargs)
    except TransportError:
        logger.warning("[%s] %s canceled", prepared.method, prepared.url)
        raise
    except requests.RequestException as e:
        logger.warning("[%s] %s failed: %s", prepared.method, prepared.url, e)
        if ctx is not None and ctx.cancelled:
            raise TransportError("http request failed: context canceled") from e
        raise TransportError(f"http request failed: {e}", {"url": prepared.url}) from e

    with resp:
        if ctx is not None:
            ctx.check()

        if resp.status_code != 200:
            kind = _classify_status(resp.status_code)
            level = logger.warning if kind == "transient" else logger.error
            level("[%s] %s returned %s (%s)", prepared.method, prepared.url, resp.status_code, kind)
            body = resp.text if capture_body else None
            raise UnexpectedStatus(resp.status_code, body, body_limit=config.settings.error_body_limit)

        try:
            data = resp.json()
        except ValueError as e:
            raise DecodeError(f"decode response failed: {e}") from e

    logger.debug("[%s] %s returned 200", prepared.method, prepared.url)
    return _decode(data, result_type)


def post_form(
    ctx: Optional[RequestContext],
    session: requests.Session,
    endpoint: str,
    form: Optional[Mapping[str, Any]],
    result_type: Any = Any,
) -> Any:
    """POST ``form`` url-encoded to ``endpoint``. The body of a non-200 reply is discarded."""
    req = _new_request(session, "POST", endpoint, form=form)
    return _do_request(ctx, session, req, result_type)


def get_with_headers(
    ctx: Optional[RequestContext],
    session: requests.Session,
    url: str,
    headers: Optional[Mapping[str, str]],
    result_type: Any = Any,
) -> Any:
    """GET ``url`` with caller ``headers``."""
    req = _new_request(session, "GET", url, headers=headers)
    return _do_request(ctx, session, req, result_type, capture_body=True)


def post_form_with_headers(
    ctx: Optional[RequestContext],
    session: requests.Session,
    url: str,
    form: Optional[Mapping[str, Any]],
    headers: Optional[Mapping[str, str]],
    result_type: Any = Any,
) -> Any:
    """POST ``form`` url-encoded to ``url``; caller ``headers`` may override the content type."""
    req = _new_request(session, "POST", url, form=form or {}, headers=headers)
    return _do_request(ctx, session, req, result_type, capture_body=True)


def post_json_with_auth(
    ctx: Optional[RequestContext],
    session: requests.Session,
    endpoint: str,
    body: Any,
    token: str,
    result_type: Any = Any,
) -> Any:
    """POST ``body`` as JSON with ``Authorization: Bearer <token>``.

    Raises:
        EncodeError: ``body`` is not JSON serializable. Nothing is sent.
    """
    payload = _encode_json(body)
    req = _new_request(session, "POST", endpoint, json_body=payload, token=token)
    return _do_request(ctx, session, req, result_type, capture_body=True)


def http_get(ctx: Optional[RequestContext], url: str, result_type: Any = Any) -> Any:
    """GET ``url`` using a fresh session that lives only for this call."""
    with requests.Session() as session:
        req = _new_request(session, "GET", url)
        return _do_request(ctx, session, req, result_type, capture_body=True)
