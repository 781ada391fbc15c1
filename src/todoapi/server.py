"""
=============================================================================
API SERVER
=============================================================================

Glues the network layer to the Application:

    ┌──────────────┐  Connection  ┌────────────┐  task   ┌──────────────────┐
    │ SocketServer │ ───────────► │ ThreadPool │ ──────► │ _process_connection
    └──────────────┘              └────────────┘         └────────┬─────────┘
                                        │ full                    │
                                        ▼                         ▼
                                  503 Server overloaded   read → parse → app.handle → send

Errors that never reach the dispatcher are answered here:

    HTTPParseError        → its own status (400, 405, 413, 505)
    queued past timeout   → 503 Server overloaded
    read timeout          → 408 Request timeout
    anything the app lets escape → 500 Internal Server Error

One request per connection; every response carries "Connection: close".

=============================================================================
"""

import logging
from typing import Optional, Tuple

from .app import Application
from .core import Connection, SocketServer, ThreadPool
from .http.request import HTTPParseError, RequestParser
from .http.response import Response, error, internal_error
from .http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class ApiServer:
    """
    Serve an Application over TCP.

    Usage:
        app = create_app(AppConfig.from_env())
        ApiServer(app).run()    # blocks until SIGINT/SIGTERM
    """

    def __init__(self, app: Application):
        self.app = app
        self.config = app.config

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)

    @property
    def address(self) -> Tuple[str, int]:
        return self._socket_server.address

    def bind(self) -> Tuple[str, int]:
        """Bind the listening socket ahead of run(); returns the bound address."""
        self._socket_server.bind()
        return self.address

    def run(self) -> None:
        """Start the server (blocking)."""
        self._thread_pool.start()

        logger.info(f"Starting {self.config.server_name} with {self.config.min_workers}-{self.config.max_workers} workers")
        for line in self.app.router.describe():
            logger.debug(f"  {line}")

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    def shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Ask a running server to stop.

        Returns:
            True once the accept loop has exited, False if `timeout` ran out first.
        """
        if not self.is_running:
            return True
        self._socket_server.shutdown()
        return self._socket_server.wait_for_shutdown(timeout)

    def _shutdown(self) -> None:
        logger.info("Shutting down server...")
        self._thread_pool.shutdown(wait=True, timeout=30.0)
        logger.info("Server stopped")

    # =========================================================================
    # PER-CONNECTION WORK
    # =========================================================================

    def _handle_connection(self, conn: Connection) -> None:
        submitted = self._thread_pool.submit(
            self._process_connection,
            args=(conn,),
            timeout=self.config.timeout,
            on_timeout=self._reject_stale,
        )
        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
            conn.close()

    def _reject_stale(self, conn: Connection) -> None:
        """Answer a connection that sat in the queue past the request timeout."""
        with conn:
            logger.warning(f"[{conn.id}] Waited too long for a worker, rejecting connection")
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")

    def _process_connection(self, conn: Connection) -> None:
        with conn:
            try:
                raw_request = conn.read_request()
                if raw_request is None:
                    return
                response = self.process_request(raw_request, conn.address)
                conn.send_response(response.to_bytes(self.config.server_name))

            except HTTPParseError as e:
                self._send_error(conn, e.status_code, str(e))

            except TimeoutError:
                self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")

            except ConnectionError as e:
                logger.debug(f"[{conn.id}] Client went away: {e}")

    def process_request(self, raw_request: bytes, client_address: Tuple[str, int] = ("", 0)) -> Response:
        """
        Parse raw request bytes and run them through the application.

        Raises:
            HTTPParseError: The bytes are not a valid HTTP request.
        """
        request = self._parser.parse(raw_request, client_address)
        try:
            return self.app.handle(request)
        except Exception as e:
            logger.exception(f"Unhandled error for {request.method} {request.path}: {e}")
            return internal_error()

    def _send_error(self, conn: Connection, status: int, message: str) -> None:
        response = error(message, status)
        conn.send_response(response.to_bytes(self.config.server_name))
