"""
End-to-end tests over a real TCP socket.
"""

import json
import socket
import threading

import pytest

from todoapi.server import ApiServer


def send_raw(address, data: bytes, timeout: float = 5.0) -> bytes:
    """Send raw bytes and read until the server closes the connection."""
    with socket.create_connection(address, timeout=timeout) as sock:
        sock.sendall(data)
        chunks = []
        while True:
            chunk = sock.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


def http_request(address, method: str, path: str, body=None, token=None):
    """Returns (status, headers, decoded JSON body or None)."""
    payload = json.dumps(body).encode() if body is not None else b""
    lines = [f"{method} {path} HTTP/1.1", "Host: localhost"]
    if payload:
        lines += ["Content-Type: application/json", f"Content-Length: {len(payload)}"]
    if token:
        lines.append(f"Authorization: Bearer {token}")
    raw = send_raw(address, ("\r\n".join(lines) + "\r\n\r\n").encode() + payload)

    head, _, content = raw.partition(b"\r\n\r\n")
    status_line, *header_lines = head.decode("latin-1").split("\r\n")
    headers = dict(line.split(": ", 1) for line in header_lines)
    return int(status_line.split()[1]), headers, json.loads(content) if content else None


@pytest.fixture
def server(app):
    """A running ApiServer on a free port; yields its address."""
    api = ApiServer(app)
    address = api.bind()
    thread = threading.Thread(target=api.run, daemon=True)
    thread.start()
    yield address
    assert api.shutdown(timeout=10.0)
    thread.join(timeout=35.0)
    assert not thread.is_alive()


class TestServerSocket:
    """Full request/response cycles through the socket server."""

    def test_health(self, server):
        status, headers, body = http_request(server, "GET", "/health")

        assert status == 200
        assert body["status"] == "healthy"
        assert headers["Connection"] == "close"
        assert headers["Content-Type"].startswith("application/json")

    def test_register_login_create_todo(self, server):
        """Test the main flow over the wire."""
        status, _, _ = http_request(server, "POST", "/api/v1/users/register", {
            "user_id": "alice",
            "email_address": "alice@example.com",
            "user_password": "password123",
            "first_name": "Alice",
            "last_name": "Liddell",
        })
        assert status == 201

        status, _, body = http_request(server, "POST", "/api/v1/auth/login", {
            "user_id": "alice",
            "user_password": "password123",
        })
        assert status == 200
        token = body["user"]["token"]

        status, _, todo = http_request(server, "POST", "/api/v1/todos", {"title": "Buy milk", "user_id": "alice"}, token)
        assert status == 201

        status, _, todos = http_request(server, "GET", "/api/v1/todos", token=token)
        assert status == 200
        assert todos == [todo]

    def test_unknown_route(self, server):
        status, _, body = http_request(server, "GET", "/nope")

        assert status == 404
        assert body == {"error": "Route not found"}

    def test_malformed_request(self, server):
        raw = send_raw(server, b"garbage\r\n\r\n")

        assert raw.startswith(b"HTTP/1.1 400 ")

    def test_invalid_json(self, server):
        raw = send_raw(
            server,
            b"POST /api/v1/auth/login HTTP/1.1\r\n"
            b"Content-Type: application/json\r\n"
            b"Content-Length: 5\r\n\r\n{oops",
        )

        assert raw.startswith(b"HTTP/1.1 400 ")
        assert b'"error"' in raw

    def test_unsupported_method(self, server):
        raw = send_raw(server, b"BREW /pot HTTP/1.1\r\n\r\n")

        assert raw.startswith(b"HTTP/1.1 405 ")

    def test_client_closes_without_sending(self, server):
        """Test an empty connection doesn't break the server."""
        socket.create_connection(server, timeout=5.0).close()

        status, _, _ = http_request(server, "GET", "/health")
        assert status == 200

    def test_concurrent_requests(self, server):
        results = []

        def worker():
            results.append(http_request(server, "GET", "/health")[0])

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10.0)

        assert results == [200] * 8
