"""
=============================================================================
APPLICATION ERRORS
=============================================================================

A fixed family of exceptions that the dispatcher knows how to turn into
HTTP responses. Anything raised from a handler or middleware that is NOT
one of these becomes a generic 500.

    ┌──────────────────────┬────────┬──────────────────────────────────────┐
    │ Exception            │ Status │ Meaning                              │
    ├──────────────────────┼────────┼──────────────────────────────────────┤
    │ RouteNotFound        │  404   │ No route for method + path           │
    │ UnauthorizedError    │  401   │ Missing / invalid / revoked token    │
    │ ForbiddenError       │  403   │ Authenticated but not entitled       │
    │ NotFoundError        │  404   │ Resource does not exist              │
    │ ConflictError        │  409   │ Unique constraint (e.g. email)       │
    │ ValidationError      │ 422/400│ Field-level messages                 │
    │ ApplicationError     │  any   │ Base: message + code + context       │
    └──────────────────────┴────────┴──────────────────────────────────────┘

=============================================================================
"""

from typing import Any, Dict, List, Optional


class ApplicationError(Exception):
    """
    Base error carrying an HTTP status code and optional structured context.

    Attributes:
        message: Client-facing message (becomes {"error": message}).
        code: HTTP status code.
        context: Extra JSON-serializable fields merged into the error body.
    """

    default_message = "Application error"
    default_code = 500

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.context = context or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.context:
            body["context"] = self.context
        return body


class RouteNotFound(ApplicationError):
    default_message = "Route not found"
    default_code = 404


class UnauthorizedError(ApplicationError):
    default_message = "Unauthorized"
    default_code = 401


class ForbiddenError(ApplicationError):
    default_message = "Forbidden"
    default_code = 403


class NotFoundError(ApplicationError):
    default_message = "Not found"
    default_code = 404


class ConflictError(ApplicationError):
    default_message = "Conflict"
    default_code = 409


class ValidationError(ApplicationError):
    """Field-level validation failure: {"errors": {field: [messages]}}."""

    default_message = "Validation failed"
    default_code = 422

    def __init__(self, errors: Dict[str, List[str]], code: int = 422):
        super().__init__(self.default_message, code)
        self.errors = errors

    def to_dict(self) -> Dict[str, Any]:
        return {"errors": self.errors}
