"""
=============================================================================
DISPATCHER
=============================================================================

The top of the request pipeline:

    dispatch(method, path, request)
        │
        ├─► OPTIONS and a preflight middleware is set
        │       └── preflight.handle(request, → 204) ──► Response (any path)
        │
        ├─► router.match(method, path)
        │       └── None ──► 404 {"error": "Route not found"}
        │
        ├─► request.params = match.params
        │
        ├─► build_chain(route.middleware, terminal(route.handler))
        │
        └─► run chain ──► Response

=============================================================================
HANDLER RESULTS
=============================================================================

A handler may return one of three things. They are normalized once, here,
right where the handler returns, so every middleware on the way out always
sees a Response:

    ┌──────────────────────────┬─────────────────────────────────────────┐
    │ Response                 │ passed through unchanged                │
    │ dict / list / str / num  │ wrapped: Response(payload, 200)         │
    │ ApplicationError         │ translated (returned OR raised)         │
    └──────────────────────────┴─────────────────────────────────────────┘

=============================================================================
ERROR TRANSLATION
=============================================================================

error_to_response() is the ONLY place exceptions become HTTP statuses:

    RouteNotFound      → 404      UnauthorizedError → 401
    ForbiddenError     → 403      ValidationError   → 422/400 {"errors": ...}
    ApplicationError   → .code    anything else     → 500, traceback logged

The 500 body is always {"error": "Internal Server Error"}; the exception
text is only added as "detail" when the dispatcher runs in debug mode.

=============================================================================
"""

from typing import Any, Callable, Optional
import logging

from .request import Request, normalize_path
from .response import Response, no_content
from .router import Router
from .status_codes import HTTPStatus
from ..errors import ApplicationError, RouteNotFound
from ..middleware.base import Middleware, build_chain


logger = logging.getLogger(__name__)


JSON_VALUE_TYPES = (dict, list, str, int, float, bool, type(None))


def normalize_result(result: Any) -> Response:
    """Turn any handler result into a Response."""
    if isinstance(result, Response):
        return result
    if isinstance(result, ApplicationError):
        return error_to_response(result)
    if isinstance(result, JSON_VALUE_TYPES):
        return Response(payload=result, status=HTTPStatus.OK)
    raise TypeError(f"Handler returned unsupported type {type(result).__name__}")


def error_to_response(exc: BaseException, debug: bool = False) -> Response:
    """Translate an exception into a JSON error response."""
    if isinstance(exc, ApplicationError):
        return Response(payload=exc.to_dict(), status=exc.code)

    logger.error(f"Unhandled {type(exc).__name__}: {exc}", exc_info=exc)
    payload = {"error": "Internal Server Error"}
    if debug:
        payload["detail"] = f"{type(exc).__name__}: {exc}"
    return Response(payload=payload, status=HTTPStatus.INTERNAL_SERVER_ERROR)


class Dispatcher:
    """
    Runs requests through the route table.

        dispatcher = Dispatcher(router)
        response = dispatcher.dispatch("GET", "/api/v1/todos", request)

    Args:
        router: The (fully built) route table.
        debug: Include exception text in 500 responses.
        preflight: Middleware that answers OPTIONS for every path, before
            routing. Without one, OPTIONS is routed like any other method.
    """

    def __init__(self, router: Router, debug: bool = False, preflight: Optional[Middleware] = None):
        self.router = router
        self.debug = debug
        self.preflight = preflight

    def handle(self, request: Request) -> Response:
        """Dispatch using the request's own method and path."""
        return self.dispatch(request.method, request.path, request)

    def dispatch(self, method: str, path: str, request: Request) -> Response:
        request.method = method.upper()
        request.path = normalize_path(path)
        try:
            if request.method == "OPTIONS" and self.preflight is not None:
                # Answered for every path, before routing
                return normalize_result(self.preflight.handle(request, lambda r: no_content()))

            match = self.router.match(method, path)
            if match is None:
                logger.debug(f"No route for {method.upper()} {path}")
                raise RouteNotFound()

            return self._run(request, match.params, match.route.middleware, match.route.handler)
        except Exception as e:
            return error_to_response(e, self.debug)

    def _run(self, request: Request, params: dict, middleware, handler: Callable[[Request], Any]) -> Response:
        request.params = dict(params)
        chain = build_chain(middleware, self._terminal(handler))
        return normalize_result(chain(request))

    def _terminal(self, handler: Callable[[Request], Any]) -> Callable[[Request], Response]:
        debug = self.debug

        def terminal(request: Request) -> Response:
            try:
                return normalize_result(handler(request))
            except Exception as e:
                return error_to_response(e, debug)

        return terminal
