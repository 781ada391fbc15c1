"""
pytest configuration and fixtures.
"""

import json
from typing import Any, Dict, Optional

import pytest

from todoapi.app import Application, create_app
from todoapi.config import AppConfig
from todoapi.http.request import Request
from todoapi.http.response import Response


TEST_SECRET = "test-secret-for-pytest-only"


def make_request(
    method: str,
    path: str,
    body: Optional[Dict[str, Any]] = None,
    token: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
    client_ip: str = "127.0.0.1",
) -> Request:
    """Helper to create a request for testing."""
    all_headers = {"Content-Type": "application/json"}
    if token:
        all_headers["Authorization"] = f"Bearer {token}"
    all_headers.update(headers or {})
    return Request(
        method=method,
        path=path,
        body=dict(body or {}),
        headers=all_headers,
        client_address=(client_ip, 54321),
    )


def json_body(response: Response) -> Any:
    """Decode what would go over the wire."""
    return json.loads(response.body) if response.body else None


class ApiClient:
    """Drives an Application in-process, the way the socket server would."""

    def __init__(self, app: Application):
        self.app = app

    def request(self, method: str, path: str, body=None, token=None, **kwargs) -> Response:
        return self.app.handle(make_request(method, path, body=body, token=token, **kwargs))

    def get(self, path: str, **kwargs) -> Response:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, body=None, **kwargs) -> Response:
        return self.request("POST", path, body=body, **kwargs)

    def put(self, path: str, body=None, **kwargs) -> Response:
        return self.request("PUT", path, body=body, **kwargs)

    def delete(self, path: str, **kwargs) -> Response:
        return self.request("DELETE", path, **kwargs)

    def options(self, path: str, **kwargs) -> Response:
        return self.request("OPTIONS", path, **kwargs)

    # ─────────────────────────────────────────────────────────────────────
    # ACCOUNT HELPERS
    # ─────────────────────────────────────────────────────────────────────

    def register(self, user_id: str = "alice", is_admin: bool = False, **overrides) -> Response:
        body = {
            "user_id": user_id,
            "email_address": f"{user_id}@example.com",
            "user_password": "password123",
            "first_name": "Alice",
            "last_name": "Liddell",
        }
        if is_admin:
            body["is_admin"] = True
        body.update(overrides)
        return self.post("/api/v1/users/register", body)

    def login(self, user_id: str = "alice", password: str = "password123") -> str:
        response = self.post("/api/v1/auth/login", {"user_id": user_id, "user_password": password})
        assert response.status == 200, json_body(response)
        return json_body(response)["user"]["token"]

    def register_and_login(self, user_id: str = "alice", is_admin: bool = False) -> str:
        response = self.register(user_id, is_admin=is_admin)
        assert response.status == 201, json_body(response)
        return self.login(user_id)


@pytest.fixture
def config(tmp_path) -> AppConfig:
    """Test configuration: temp database, fast hashing, no request log file."""
    return AppConfig(
        host="127.0.0.1",
        port=0,
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        db_path=str(tmp_path / "test.db"),
        jwt_secret=TEST_SECRET,
        password_iterations=1000,
        request_log=None,
        log_level="WARNING",
    )


@pytest.fixture
def app(config: AppConfig) -> Application:
    return create_app(config)


@pytest.fixture
def client(app: Application) -> ApiClient:
    return ApiClient(app)


@pytest.fixture
def token(client: ApiClient) -> str:
    """Token of a freshly registered, logged-in regular user "alice"."""
    return client.register_and_login("alice")


@pytest.fixture
def admin_token(client: ApiClient) -> str:
    return client.register_and_login("rootadmin", is_admin=True)


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /api/v1/todos?page=1&limit=10 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"title": "Buy milk", "user_id": "alice"}'
    return (
        b"POST /api/v1/todos HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Authorization: Bearer abc.def.ghi\r\n"
        b"\r\n"
    ) + body
