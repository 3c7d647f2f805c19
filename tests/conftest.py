import threading
from http.server import ThreadingHTTPServer

import pytest
import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

_PROXY_VARS = ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "NO_PROXY")


@pytest.fixture(autouse=True)
def _no_proxy_env(monkeypatch):
    for name in _PROXY_VARS:
        monkeypatch.delenv(name, raising=False)
        monkeypatch.delenv(name.lower(), raising=False)


class _TrackingResponse(requests.Response):
    def __init__(self):
        super().__init__()
        self.was_closed = False

    def close(self):
        self.was_closed = True
        super().close()


class MockAdapter(BaseAdapter):
    """Transport adapter that records requests and answers from a handler.

    ``handler(request)`` returns ``(status, body)``; by default every request
    gets ``200`` with ``{}``.
    """

    def __init__(self, handler=None):
        super().__init__()
        self.handler = handler or (lambda request: (200, b"{}"))
        self.calls = []
        self.kwargs = []
        self.responses = []

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        self.calls.append(request)
        self.kwargs.append({"timeout": timeout, "stream": stream})
        status, body = self.handler(request)
        if isinstance(body, str):
            body = body.encode("utf-8")

        resp = _TrackingResponse()
        resp.status_code = status
        resp.reason = "OK" if status == 200 else "Error"
        resp._content = body
        resp._content_consumed = True
        resp.headers = CaseInsensitiveDict({"Content-Type": "application/json"})
        resp.encoding = "utf-8"
        resp.url = request.url
        resp.request = request
        self.responses.append(resp)
        return resp

    def close(self):
        pass


@pytest.fixture
def mock_http():
    """Return ``(session, adapter)`` with the adapter mounted for http and https."""
    adapter = MockAdapter()
    session = requests.Session()
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    yield session, adapter
    session.close()


@pytest.fixture
def local_server():
    """Start a local HTTP server for a handler class; yields a starter function."""
    servers = []

    def start(handler_cls):
        server = ThreadingHTTPServer(("127.0.0.1", 0), handler_cls)
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        servers.append(server)
        return f"http://127.0.0.1:{server.server_port}"

    yield start

    for server in servers:
        server.shutdown()
        server.server_close()
