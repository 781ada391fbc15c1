"""
HTTP primitives: request/response model, status codes and the route table.

The dispatcher lives in `todoapi.http.dispatcher`; it depends on the
middleware package and is imported from there directly.
"""

from .request import HTTPParseError, Request, RequestParser, normalize_path
from .response import Response, created, error, no_content, ok
from .router import Route, RouteMatch, Router
from .status_codes import HTTPStatus

__all__ = [
    "HTTPParseError",
    "HTTPStatus",
    "Request",
    "RequestParser",
    "Response",
    "Route",
    "RouteMatch",
    "Router",
    "created",
    "error",
    "no_content",
    "normalize_path",
    "ok",
]
