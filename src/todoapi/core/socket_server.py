"""
=============================================================================
TCP SOCKET SERVER
=============================================================================

Owns the listening socket: create, bind, listen, accept in a loop, and hand
each accepted client to a callback as a Connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   start(handler)                                                    │
    │        ├──► _create_socket()  SO_REUSEADDR, TCP_NODELAY, 1s timeout │
    │        ├──► bind() + listen(backlog)                                │
    │        ├──► _setup_signals()  SIGTERM/SIGINT → shutdown()           │
    │        └──► _accept_loop()    blocks until shutdown()               │
    │                 └──► accept() → Connection → handler(conn)          │
    │                                                                     │
    │   shutdown()  flips _running; the loop notices within ~1 second     │
    └─────────────────────────────────────────────────────────────────────┘

Signal handlers can only be installed from the main thread. When the
server is started from any other thread (tests, embedding) the process's
handlers are left alone and shutdown() must be called explicitly.

=============================================================================
"""

import logging
import signal
import socket
import threading
from typing import Callable, Optional, Tuple

from ..config import AppConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Manages socket lifecycle and connection acceptance.

    Usage:
        def handle_connection(conn: Connection):
            with conn:
                data = conn.read_request()
                conn.send_response(b"HTTP/1.1 204 No Content\\r\\n\\r\\n")

        SocketServer(config).start(handle_connection)
    """

    def __init__(self, config: AppConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._shutdown_event = threading.Event()
        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (ip, port); the real port once bound to port 0."""
        if self._socket is not None:
            return self._socket.getsockname()[:2]
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Rebind immediately after a restart instead of waiting out TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Small JSON responses; don't wait on Nagle
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # accept() wakes up every second to check _running
        sock.settimeout(1.0)
        return sock

    def _setup_signals(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread; leaving signal handlers alone")
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self) -> None:
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def bind(self) -> None:
        """Create, bind and listen. Safe to call before start()."""
        if self._socket is not None:
            return

        self._socket = self._create_socket()
        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)
        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")

    def start(self, connection_handler: Callable[[Connection], None]) -> None:
        """Accept connections until shutdown(). Blocks the calling thread."""
        self.bind()
        self._running = True
        self._shutdown_event.clear()
        self._setup_signals()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]) -> None:
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                continue

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")
            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                max_request_size=self.config.max_request_size,
            )
            connection_handler(conn)

    def shutdown(self) -> None:
        """Stop accepting connections. Safe to call from any thread or a signal handler."""
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self) -> None:
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._shutdown_event.set()
        logger.info("Socket server stopped")

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """True once the accept loop has exited, False on timeout."""
        return self._shutdown_event.wait(timeout)
