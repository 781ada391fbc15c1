"""
=============================================================================
CLIENT CONNECTION
=============================================================================

TCP is a byte stream, not a message stream. One recv() may return half a
request line, or the headers and part of the body:

    First recv():  "POST /api/v1/tod"          (incomplete!)
    Second recv(): "os HTTP/1.1\r\nHost: ..."   (rest of headers)
    Third recv():  "{\"title\": ..."            (body)

Connection buffers until it has the full header block (terminated by
\r\n\r\n) and then exactly Content-Length body bytes.

Each connection carries exactly ONE request. The response always says
"Connection: close" and the socket is shut down right after sending.

=============================================================================
"""

import logging
import socket
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from ..http.request import HTTPParseError
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)

HEADER_END = b"\r\n\r\n"


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    A client socket plus the buffering needed to read one HTTP request.

    Attributes:
        socket: The accepted client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier used in log lines.
        state: Current lifecycle state.
    """

    socket: socket.socket
    address: Tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    max_request_size: int = 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def age(self) -> float:
        return time.time() - self.created_at

    def read_request(self) -> Optional[bytes]:
        """
        Read a complete HTTP request from the socket.

        Returns:
            Complete request bytes, or None if the client closed the
            connection before sending anything.

        Raises:
            TimeoutError: The client stalled longer than `timeout`.
            ConnectionError: The client went away mid-request.
            HTTPParseError: (413) The request exceeds max_request_size.
        """
        self.state = ConnectionState.READING

        try:
            while HEADER_END not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    if self._buffer:
                        raise ConnectionError("Connection closed mid-headers")
                    return None
                self._buffer += chunk
                self._check_size()

            header_end = self._buffer.find(HEADER_END)
            body_start = header_end + len(HEADER_END)
            content_length = self._parse_content_length(self._buffer[:header_end])

            if body_start + content_length > self.max_request_size:
                raise HTTPParseError("Request too large", HTTPStatus.PAYLOAD_TOO_LARGE)

            while len(self._buffer) - body_start < content_length:
                chunk = self._recv()
                if not chunk:
                    raise ConnectionError("Connection closed mid-body")
                self._buffer += chunk

            request_end = body_start + content_length
            request_data = self._buffer[:request_end]
            self._buffer = self._buffer[request_end:]
            self.state = ConnectionState.PROCESSING
            return request_data

        except socket.timeout:
            raise TimeoutError("Request read timeout")

    def _check_size(self) -> None:
        if len(self._buffer) > self.max_request_size:
            raise HTTPParseError("Request too large", HTTPStatus.PAYLOAD_TOO_LARGE)

    def _recv(self) -> bytes:
        try:
            return self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""

    @staticmethod
    def _parse_content_length(headers: bytes) -> int:
        """Content-Length from raw header bytes; 0 if absent or malformed."""
        for line in headers.decode("latin-1").split("\r\n")[1:]:
            name, sep, value = line.partition(":")
            if sep and name.strip().lower() == "content-length":
                try:
                    return max(int(value.strip()), 0)
                except ValueError:
                    return 0
        return 0

    def send_response(self, data: bytes) -> bool:
        """
        Send response bytes with sendall().

        Returns:
            True if everything was sent, False if the connection was lost.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    def close(self) -> None:
        """Shut down the write side, drain what the client still sends, close."""
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age * 1000:.1f}ms")

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
