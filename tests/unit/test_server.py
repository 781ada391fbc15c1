"""
Unit tests for the network layer: connection reads, the worker pool,
raw request processing and the CLI.
"""

import socket
import threading
import time

import pytest

from todoapi.__main__ import main
from todoapi.core import Connection, ConnectionState, ThreadPool
from todoapi.http.request import HTTPParseError
from todoapi.server import ApiServer


def make_connection(**kwargs):
    """A Connection over one end of a socketpair; returns (conn, peer)."""
    server_side, client_side = socket.socketpair()
    conn = Connection(socket=server_side, address=("127.0.0.1", 50000), **kwargs)
    return conn, client_side


class TestConnection:
    """Tests for reading one request off a socket."""

    def test_reads_headers_only_request(self, sample_get_request):
        conn, peer = make_connection(timeout=2.0)
        with peer:
            peer.sendall(sample_get_request)

            assert conn.read_request() == sample_get_request
        conn.close()

    def test_reads_body_by_content_length(self, sample_post_request):
        """Test the body is read to exactly Content-Length bytes."""
        conn, peer = make_connection(timeout=2.0)
        with peer:
            peer.sendall(sample_post_request + b"trailing-garbage")

            data = conn.read_request()

            assert data == sample_post_request
            assert data.endswith(b'"user_id": "alice"}')
        conn.close()

    def test_split_across_sends(self, sample_post_request):
        """Test a request arriving in small pieces is reassembled."""
        conn, peer = make_connection(timeout=2.0, buffer_size=16)
        with peer:
            for i in range(0, len(sample_post_request), 7):
                peer.sendall(sample_post_request[i:i + 7])

            assert conn.read_request() == sample_post_request
        conn.close()

    def test_clean_close_returns_none(self):
        conn, peer = make_connection(timeout=2.0)
        peer.close()

        assert conn.read_request() is None
        conn.close()

    def test_close_mid_headers(self):
        conn, peer = make_connection(timeout=2.0)
        peer.sendall(b"GET /api/v1/todos HTTP/1.1\r\nHost: x\r\n")
        peer.close()

        with pytest.raises(ConnectionError):
            conn.read_request()
        conn.close()

    def test_oversize_declared_body(self):
        """Test a Content-Length beyond the limit is a 413 before reading it."""
        conn, peer = make_connection(timeout=2.0, max_request_size=2048)
        with peer:
            peer.sendall(b"POST /api/v1/todos HTTP/1.1\r\nContent-Length: 999999\r\n\r\n")

            with pytest.raises(HTTPParseError) as exc_info:
                conn.read_request()

            assert exc_info.value.status_code == 413
        conn.close()

    def test_stalled_client_times_out(self):
        conn, peer = make_connection(timeout=0.2)
        with peer:
            peer.sendall(b"GET / HTTP/1.1\r\n")

            with pytest.raises(TimeoutError):
                conn.read_request()
        conn.close()

    def test_send_response(self):
        conn, peer = make_connection(timeout=2.0)
        with peer:
            assert conn.send_response(b"HTTP/1.1 204 No Content\r\n\r\n")
            conn.close()

            assert peer.recv(1024) == b"HTTP/1.1 204 No Content\r\n\r\n"

    def test_close_is_idempotent(self):
        conn, peer = make_connection(timeout=2.0)
        peer.close()

        conn.close()
        conn.close()


class TestThreadPool:
    """Tests for the bounded worker pool."""

    def test_runs_tasks(self):
        pool = ThreadPool(min_workers=2, max_workers=2)
        pool.start()
        done = threading.Event()

        try:
            assert pool.submit(done.set)
            assert done.wait(2.0)
        finally:
            pool.shutdown(wait=True, timeout=2.0)

    def test_full_queue_rejects(self):
        """Test submit() returns False instead of blocking when full."""
        pool = ThreadPool(min_workers=1, max_workers=1, queue_size=1, idle_timeout=0.1)
        pool.start()
        release = threading.Event()
        started = threading.Event()

        def block():
            started.set()
            release.wait(2.0)

        try:
            assert pool.submit(block)
            assert started.wait(2.0)
            assert pool.submit(lambda: None)
            assert not pool.submit(lambda: None)
        finally:
            release.set()
            pool.shutdown(wait=True, timeout=2.0)

    def test_failed_task_does_not_kill_worker(self):
        pool = ThreadPool(min_workers=1, max_workers=1, idle_timeout=0.1)
        pool.start()
        done = threading.Event()

        def boom():
            raise RuntimeError("task failed")

        try:
            pool.submit(boom)
            pool.submit(done.set)
            assert done.wait(2.0)
            assert pool.stats()["failed"] == 1
        finally:
            pool.shutdown(wait=True, timeout=2.0)

    def test_stale_task_calls_on_timeout(self):
        """Test a task queued past its timeout is not run and its arguments go to on_timeout."""
        pool = ThreadPool(min_workers=1, max_workers=1, idle_timeout=0.1)
        pool.start()
        release = threading.Event()
        started = threading.Event()
        ran, dropped = [], []

        def block():
            started.set()
            release.wait(2.0)

        try:
            assert pool.submit(block)
            assert started.wait(2.0)
            assert pool.submit(ran.append, args=("late",), timeout=0.05, on_timeout=dropped.append)
            time.sleep(0.2)
        finally:
            release.set()
            pool.shutdown(wait=True, timeout=2.0)

        assert ran == []
        assert dropped == ["late"]

    def test_submit_requires_start(self):
        with pytest.raises(RuntimeError):
            ThreadPool(min_workers=1, max_workers=1).submit(lambda: None)

    def test_invalid_bounds(self):
        with pytest.raises(ValueError):
            ThreadPool(min_workers=4, max_workers=2)

    def test_shutdown_stops_workers(self):
        pool = ThreadPool(min_workers=2, max_workers=2, idle_timeout=0.1)
        pool.start()

        pool.shutdown(wait=True, timeout=2.0)

        assert pool.active_workers == 0
        assert pool.stats()["workers"] == 0


class TestProcessRequest:
    """Tests for ApiServer.process_request() on raw bytes."""

    def test_get_requires_auth(self, app, sample_get_request):
        response = ApiServer(app).process_request(sample_get_request, ("127.0.0.1", 50000))

        assert response.status == 401

    def test_bad_token_over_the_wire(self, app, sample_post_request):
        response = ApiServer(app).process_request(sample_post_request, ("127.0.0.1", 50000))

        assert response.status == 401
        assert response.header("Access-Control-Allow-Origin") == app.config.cors_origin

    def test_health(self, app):
        response = ApiServer(app).process_request(b"GET /health HTTP/1.1\r\nHost: x\r\n\r\n")

        assert response.status == 200

    def test_malformed_bytes_raise(self, app):
        with pytest.raises(HTTPParseError):
            ApiServer(app).process_request(b"NONSENSE\r\n\r\n")

    def test_wire_format(self, app):
        """Test serialized responses carry the server name and Connection: close."""
        response = ApiServer(app).process_request(b"GET /health HTTP/1.1\r\n\r\n")

        raw = response.to_bytes(app.config.server_name)

        assert raw.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"Connection: close\r\n" in raw
        assert f"Server: {app.config.server_name}".encode() in raw

    def test_shutdown_before_run(self, app):
        server = ApiServer(app)

        assert not server.is_running
        assert server.shutdown(timeout=1.0)

    def test_connection_left_queued_too_long_gets_503(self, app):
        """Test a connection that outwaits the request timeout in the queue is answered and closed."""
        app.config.min_workers = 1
        app.config.max_workers = 1
        app.config.timeout = 0.2
        server = ApiServer(app)
        server._thread_pool.start()
        release = threading.Event()
        started = threading.Event()

        def block():
            started.set()
            release.wait(2.0)

        conn, peer = make_connection(timeout=2.0)
        peer.settimeout(3.0)
        chunks = []
        try:
            assert server._thread_pool.submit(block)
            assert started.wait(2.0)
            server._handle_connection(conn)
            time.sleep(0.4)
            release.set()

            while True:
                chunk = peer.recv(4096)
                if not chunk:
                    break
                chunks.append(chunk)
        finally:
            release.set()
            peer.close()
            server._thread_pool.shutdown(wait=True, timeout=2.0)

        raw = b"".join(chunks)
        assert raw.startswith(b"HTTP/1.1 503 ")
        assert b"Server overloaded" in raw
        assert conn.state == ConnectionState.CLOSED


class TestCli:
    """Tests for the command-line entry point."""

    def test_routes(self, monkeypatch, tmp_path, capsys):
        monkeypatch.setenv("TODOAPI_DB_PATH", str(tmp_path / "cli.db"))
        monkeypatch.setenv("TODOAPI_REQUEST_LOG", "")

        assert main(["--routes"]) == 0

        out = capsys.readouterr().out
        assert "/api/v1/todos" in out
        assert "/api/v1/auth/login" in out
        assert "/health" in out

    def test_init_db(self, monkeypatch, tmp_path):
        db_path = tmp_path / "init.db"
        monkeypatch.setenv("TODOAPI_REQUEST_LOG", "")

        assert main(["--init-db", "--db", str(db_path)]) == 0
        assert db_path.exists()

    def test_invalid_config_exits_1(self, monkeypatch, tmp_path, capsys):
        monkeypatch.setenv("TODOAPI_DB_PATH", str(tmp_path / "cli.db"))
        monkeypatch.setenv("TODOAPI_RATE_LIMIT", "0")

        assert main(["--routes"]) == 1
        assert "rate_limit" in capsys.readouterr().err

    def test_production_without_secret_exits_1(self, monkeypatch, tmp_path):
        monkeypatch.setenv("TODOAPI_DB_PATH", str(tmp_path / "cli.db"))
        monkeypatch.setenv("TODOAPI_APP_ENV", "production")
        monkeypatch.delenv("TODOAPI_JWT_SECRET", raising=False)

        assert main(["--routes"]) == 1
