"""
=============================================================================
HTTP REQUEST MODEL & PARSER
=============================================================================

Turns raw HTTP/1.1 request bytes into a `Request` value object that the
router, middleware and controllers work with.

=============================================================================
WHAT A REQUEST CARRIES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  POST /api/v1/todos/?debug=1 HTTP/1.1                               │
    │  Content-Type: application/json                                     │
    │  Authorization: Bearer eyJhbG...                                    │
    │                                                                      │
    │  {"title": "Buy milk", "user_id": "alice"}                          │
    └─────────────────────────────────────────────────────────────────────┘
                                   │
                                   ▼  RequestParser.parse()
    ┌─────────────────────────────────────────────────────────────────────┐
    │  Request(                                                           │
    │      method="POST",                  ← uppercased                   │
    │      path="/api/v1/todos",           ← one trailing "/" trimmed     │
    │      query={"debug": "1"},                                          │
    │      body={"title": ..., ...},       ← JSON or form, by Content-Type│
    │      headers={"content-type": ...},  ← lowercase keys               │
    │      client_address=("10.0.0.7", 51234),                            │
    │      attributes={},                  ← filled by middleware ("auth")│
    │      params={},                      ← filled by the router         │
    │  )                                                                  │
    └─────────────────────────────────────────────────────────────────────┘

The Request is created once per transaction. Middleware may mutate it
(validation replaces `body`, auth sets `attributes["auth"]`), the router
sets `params`, and nothing touches it after the response is produced.

=============================================================================
BODY DECODING
=============================================================================

    Content-Type                          body
    ──────────────────────────────────    ──────────────────────────────
    application/json                      json.loads(), must be an object
    application/x-www-form-urlencoded     parse_qs(), last value wins
    anything else / empty                 {}

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple
from urllib.parse import parse_qs, urlparse, unquote
import json
import re


class HTTPParseError(Exception):
    """
    Raised when request bytes cannot be parsed.

    Carries the status code the server should answer with:
    400 for bad syntax, 405 for unknown methods, 413 for oversize
    requests and 505 for unsupported versions.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def normalize_path(path: str) -> str:
    """
    Trim ONE trailing slash; the root path stays "/".

        "/api/v1/todos/"  → "/api/v1/todos"
        "/"               → "/"
        ""                → "/"
    """
    if not path:
        return "/"
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    return path or "/"


def decode_body(raw: bytes, content_type: Optional[str]) -> Dict[str, Any]:
    """
    Decode a request body into a dict based on its media type.

    Raises:
        HTTPParseError: If a JSON body is malformed or not an object.
    """
    if not raw:
        return {}

    media_type = (content_type or "").split(";")[0].strip().lower()

    if media_type == "application/json":
        try:
            data = json.loads(raw.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise HTTPParseError(f"Invalid JSON body: {e}")
        if not isinstance(data, dict):
            raise HTTPParseError("JSON body must be an object")
        return data

    if media_type == "application/x-www-form-urlencoded":
        parsed = parse_qs(raw.decode("utf-8", errors="replace"), keep_blank_values=True)
        return {key: values[-1] for key, values in parsed.items()}

    return {}


@dataclass
class Request:
    """
    One inbound HTTP transaction.

    Headers are stored with lowercase keys, which is what makes lookups
    case-insensitive: always go through `header()` rather than indexing
    `headers` with a mixed-case name.
    """

    method: str
    path: str
    query: Dict[str, str] = field(default_factory=dict)
    body: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    client_address: Tuple[str, int] = ("", 0)
    attributes: Dict[str, Any] = field(default_factory=dict)
    params: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        self.method = self.method.upper()
        self.path = normalize_path(self.path)
        self.headers = {name.lower(): value for name, value in self.headers.items()}

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    @property
    def client_ip(self) -> str:
        return self.client_address[0]

    @property
    def content_type(self) -> Optional[str]:
        """Media type without parameters, e.g. "application/json"."""
        ct = self.headers.get("content-type", "")
        return ct.split(";")[0].strip().lower() or None

    @property
    def bearer_token(self) -> Optional[str]:
        """Token from `Authorization: Bearer <token>`, or None."""
        match = re.search(r"Bearer\s(\S+)", self.header("Authorization"))
        return match.group(1) if match else None

    def header(self, name: str, default: str = "") -> str:
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.query.get(name, default)

    def input(self, name: str, default: Any = None) -> Any:
        """Body field lookup."""
        return self.body.get(name, default)

    def param(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Route parameter lookup."""
        return self.params.get(name, default)


class RequestParser:
    """
    Parses raw HTTP request bytes into Request objects.

    The connection layer has already framed the bytes (headers up to the
    blank line plus Content-Length bytes of body), so this only has to
    split and decode them.

        1. Size check                        → 413
        2. Split head / body on \\r\\n\\r\\n   → 400 if missing
        3. Request line: METHOD SP URI SP VERSION
        4. Headers: "Name: Value", lowercased names
        5. Body: decode by Content-Type
    """

    VALID_METHODS = {"GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"}

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Za-z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(self, data: bytes, client_address: Tuple[str, int] = ("", 0)) -> Request:
        """
        Parse raw request data.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes", status_code=413)

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("latin-1")
        raw_body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, path, query = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")
        raw_body = raw_body[:content_length]

        return Request(
            method=method,
            path=path,
            query=query,
            body=decode_body(raw_body, headers.get("content-type")),
            headers=headers,
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> Tuple[str, str, Dict[str, str]]:
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, uri, version = match.groups()
        method = method.upper()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)
        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(f"Unsupported HTTP version: {version}", status_code=505)

        parsed = urlparse(uri)
        path = unquote(parsed.path) or "/"
        query = {
            key: values[0]
            for key, values in parse_qs(parsed.query, keep_blank_values=True).items()
        }
        return method, path, query

    def _parse_headers(self, lines: list) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        for line in lines:
            if not line:
                continue
            match = self.HEADER_PATTERN.match(line)
            if not match:
                raise HTTPParseError(f"Invalid header line: {line!r}")
            name = match.group(1).strip().lower()
            value = match.group(2).strip()
            # Repeated headers are folded into one comma-separated value
            if name in headers:
                headers[name] = f"{headers[name]}, {value}"
            else:
                headers[name] = value
        return headers
