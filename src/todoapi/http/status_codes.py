"""
=============================================================================
HTTP STATUS CODES USED BY THE API
=============================================================================

    ┌────────┬──────────────────────────────────────────────────────────────┐
    │  2xx   │ 200 OK         - reads, updates, deletes, login/logout       │
    │        │ 201 Created    - POST /todos, POST /users/register           │
    │        │ 204 No Content - CORS pre-flight (OPTIONS)                   │
    ├────────┼──────────────────────────────────────────────────────────────┤
    │  4xx   │ 400 Bad Request     - malformed HTTP/JSON, invalid id        │
    │        │ 401 Unauthorized    - missing / invalid / revoked token      │
    │        │ 403 Forbidden       - acting on another user's record        │
    │        │ 404 Not Found       - no route, or no such resource          │
    │        │ 408 Request Timeout - client too slow to send the request    │
    │        │ 409 Conflict        - duplicate email or user id             │
    │        │ 413 Payload Too Large                                        │
    │        │ 422 Unprocessable   - validation failures                    │
    │        │ 429 Too Many Requests - rate limited                         │
    ├────────┼──────────────────────────────────────────────────────────────┤
    │  5xx   │ 500 Internal Server Error - unexpected failure               │
    │        │ 503 Service Unavailable   - worker queue full, db down       │
    └────────┴──────────────────────────────────────────────────────────────┘

Q: "What's the difference between 401 and 403?"
A: "401 means 'I don't know who you are' (no valid token).
   403 means 'I know who you are, but this isn't yours' (e.g. deleting
   someone else's account)."

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes with reason phrases.

        >>> HTTPStatus.CREATED == 201
        True
        >>> HTTPStatus.CREATED.phrase
        'Created'
    """

    OK = 200
    CREATED = 201
    NO_CONTENT = 204

    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408
    CONFLICT = 409
    PAYLOAD_TOO_LARGE = 413
    UNPROCESSABLE_ENTITY = 422
    TOO_MANY_REQUESTS = 429

    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_error(self) -> bool:
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.UNAUTHORIZED: "Unauthorized",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.CONFLICT: "Conflict",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.UNPROCESSABLE_ENTITY: "Unprocessable Entity",
    HTTPStatus.TOO_MANY_REQUESTS: "Too Many Requests",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}


def reason_phrase(status: int) -> str:
    """Reason phrase for any integer status, "Unknown" if unlisted."""
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return "Unknown"
