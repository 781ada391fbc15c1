"""
=============================================================================
HTTP RESPONSE MODEL
=============================================================================

Every handler and middleware in the API ultimately produces a `Response`:
a JSON payload, a status code and a header map.

    Response(payload={"id": 1}, status=201)
        │
        │  to_bytes()
        ▼
    HTTP/1.1 201 Created\\r\\n
    Content-Type: application/json\\r\\n
    Content-Length: 9\\r\\n
    Date: Mon, 19 Oct 2026 10:00:00 GMT\\r\\n
    Server: todo-api/1.0\\r\\n
    Connection: close\\r\\n
    \\r\\n
    {"id": 1}

A response is treated as a value: middleware that wants to add headers
calls `with_headers()`, which returns a NEW response and leaves the one it
received from downstream untouched.

=============================================================================
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Any, Dict, Optional
import json

from .status_codes import HTTPStatus, reason_phrase


def _default_headers() -> Dict[str, str]:
    return {"Content-Type": "application/json"}


@dataclass
class Response:
    """
    Outbound HTTP response.

    Attributes:
        payload: Any JSON-serializable value. None means an empty body.
        status: HTTP status code.
        headers: Response headers (Content-Type defaults to JSON).
    """

    payload: Any = None
    status: int = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=_default_headers)

    def with_headers(self, headers: Dict[str, str]) -> "Response":
        """Return a copy with `headers` merged over the existing ones."""
        merged = dict(self.headers)
        merged.update(headers)
        return replace(self, headers=merged)

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default

    @property
    def body(self) -> bytes:
        """Serialized payload."""
        if self.payload is None:
            return b""
        return json.dumps(self.payload, ensure_ascii=False).encode("utf-8")

    def to_bytes(self, server_name: str = "todo-api/1.0") -> bytes:
        """
        Serialize to raw HTTP/1.1 bytes.

        Content-Length, Date, Server and Connection are filled in when the
        handler didn't set them. Each connection carries one request, so
        Connection is always "close".
        """
        body = self.body
        headers = dict(self.headers)
        headers.setdefault("Content-Length", str(len(body)))
        headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))
        headers.setdefault("Server", server_name)
        headers["Connection"] = "close"

        lines = [f"HTTP/1.1 {int(self.status)} {reason_phrase(self.status)}"]
        lines.extend(f"{name}: {value}" for name, value in headers.items())
        lines.append("")
        return "\r\n".join(lines).encode("utf-8") + b"\r\n" + body


def format_http_date(dt: datetime) -> str:
    """RFC 7231 HTTP-date, e.g. "Wed, 01 Jan 2026 12:00:00 GMT"."""
    return format_datetime(dt.astimezone(timezone.utc), usegmt=True)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
#     return ok(todo)
#     return created({"message": "User created successfully", "user": user})
#     return error("Todo not found", HTTPStatus.NOT_FOUND)
#
# =============================================================================


def ok(payload: Any = None) -> Response:
    return Response(payload=payload, status=HTTPStatus.OK)


def created(payload: Any = None) -> Response:
    return Response(payload=payload, status=HTTPStatus.CREATED)


def no_content() -> Response:
    return Response(payload=None, status=HTTPStatus.NO_CONTENT)


def error(message: str, status: int = HTTPStatus.BAD_REQUEST) -> Response:
    """{"error": message} with the given status."""
    return Response(payload={"error": message}, status=status)


def internal_error(message: str = "Internal Server Error") -> Response:
    return error(message, HTTPStatus.INTERNAL_SERVER_ERROR)
