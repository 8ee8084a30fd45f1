import io
import json
import re
from typing import Dict, Optional, Tuple
from urllib.parse import urlencode

import pytest

from opsdesk import server
from opsdesk.config import DEMO_PASSWORD

ROLE_EMAILS = {
    "admin": "admin@opsdesk.local",
    "project_lead": "lead@opsdesk.local",
    "designer": "design@opsdesk.local",
    "frontend": "frontend@opsdesk.local",
    "backend": "backend@opsdesk.local",
    "accounts": "accounts@opsdesk.local",
}


class WSGIClient:
    """In-process client that keeps cookies between calls."""

    def __init__(self, remote_addr: str = "127.0.0.1"):
        self.cookies: Dict[str, str] = {}
        self.remote_addr = remote_addr

    def _cookie_header(self) -> str:
        return "; ".join([f"{k}={v}" for k, v in self.cookies.items()])

    def request(
        self,
        path: str,
        method: str = "GET",
        data: Optional[Dict[str, str]] = None,
    ) -> Tuple[str, Dict[str, str], str]:
        method = method.upper()
        path_info, _, query = path.partition("?")
        body = urlencode(data or {}).encode("utf-8") if method == "POST" else b""

        environ = {
            "REQUEST_METHOD": method,
            "PATH_INFO": path_info,
            "QUERY_STRING": query,
            "wsgi.input": io.BytesIO(body),
            "CONTENT_LENGTH": str(len(body)),
            "CONTENT_TYPE": "application/x-www-form-urlencoded",
            "REMOTE_ADDR": self.remote_addr,
            "HTTP_USER_AGENT": "opsdesk-tests",
            "HTTP_COOKIE": self._cookie_header(),
            "wsgi.url_scheme": "http",
            "SERVER_NAME": "localhost",
            "SERVER_PORT": "80",
        }

        captured = {"status": "", "headers": []}

        def start_response(status, headers):
            captured["status"] = status
            captured["headers"] = headers

        payload = b"".join(server.app(environ, start_response)).decode("utf-8", errors="ignore")

        header_map: Dict[str, str] = {}
        for key, value in captured["headers"]:
            header_map[key] = value
            if key.lower() == "set-cookie":
                token = value.split(";", 1)[0]
                name, cookie_value = token.split("=", 1)
                if cookie_value:
                    self.cookies[name] = cookie_value
                else:
                    self.cookies.pop(name, None)
        return captured["status"], header_map, payload

    def get(self, path: str):
        return self.request(path)

    def post(self, path: str, data: Optional[Dict[str, str]] = None):
        return self.request(path, method="POST", data=data)

    def login(self, role: str):
        return self.post("/login", {"email": ROLE_EMAILS[role], "password": DEMO_PASSWORD})


class FakeResponse:
    """Stands in for the object returned by ``urllib.request.urlopen``."""

    def __init__(self, payload):
        self._raw = json.dumps(payload).encode("utf-8")

    def read(self):
        return self._raw

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def parse_csrf(html: str) -> str:
    hidden = re.search(r"name=[\"']csrf_token[\"']\s+value=[\"']([^\"']+)[\"']", html)
    return hidden.group(1) if hidden else ""


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    server.RATE_LIMITER.reset()
    yield
    server.RATE_LIMITER.reset()


@pytest.fixture
def client():
    return WSGIClient()


@pytest.fixture
def login_as(client):
    def _login(role: str) -> WSGIClient:
        status, headers, _ = client.login(role)
        assert status.startswith("302"), status
        return client

    return _login
