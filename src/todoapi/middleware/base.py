"""
=============================================================================
MIDDLEWARE INTERFACE & CHAIN BUILDER
=============================================================================

Every middleware implements ONE method:

    handle(request, next) -> Response

`next` is the continuation: either the next middleware or the route's
terminal handler. A middleware may

    - call next(request) and return what it gets back   (pass through)
    - return its own response without calling next      (short-circuit)
    - call next(request) and post-process the response  (wrap)

=============================================================================
CHAIN COMPOSITION
=============================================================================

    build_chain([Cors, Logging, RateLimiter, Auth], handler)

    ┌──────────────────────────────────────────────────────────────────┐
    │  Cors                                                            │
    │  ┌────────────────────────────────────────────────────────────┐  │
    │  │  Logging                                                   │  │
    │  │  ┌──────────────────────────────────────────────────────┐  │  │
    │  │  │  RateLimiter                                         │  │  │
    │  │  │  ┌────────────────────────────────────────────────┐  │  │  │
    │  │  │  │  Auth                                          │  │  │  │
    │  │  │  │  ┌──────────────────────────────────────────┐  │  │  │  │
    │  │  │  │  │           TERMINAL HANDLER               │  │  │  │  │
    │  │  │  │  └──────────────────────────────────────────┘  │  │  │  │
    │  │  │  └────────────────────────────────────────────────┘  │  │  │
    │  │  └──────────────────────────────────────────────────────┘  │  │
    │  └────────────────────────────────────────────────────────────┘  │
    └──────────────────────────────────────────────────────────────────┘

The fold runs RIGHT TO LEFT so the first middleware in the list is the
outermost: it sees the request first and the response last.

    In:   Cors → Logging → RateLimiter → Auth → handler
    Out:  handler → Auth → RateLimiter → Logging → Cors

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, Sequence

from ..http.request import Request
from ..http.response import Response


NextHandler = Callable[[Request], Any]


class Middleware(ABC):
    """
    Abstract base class for middleware.

        class AddHeader(Middleware):
            def handle(self, request, next):
                response = next(request)
                return response.with_headers({"X-Processed-By": self.name})
    """

    @abstractmethod
    def handle(self, request: Request, next: NextHandler) -> Response:
        """
        Process the request.

        Args:
            request: The incoming request.
            next: Continuation; call it to run the rest of the chain.

        Returns:
            A Response, either from next() or produced here.
        """

    def __call__(self, request: Request, next: NextHandler) -> Response:
        return self.handle(request, next)

    @property
    def name(self) -> str:
        return self.__class__.__name__


def build_chain(middleware: Sequence[Middleware], handler: NextHandler) -> NextHandler:
    """
    Fold `middleware` around `handler`, first element outermost.

    Given [m1, m2, m3] and h the result behaves like

        lambda req: m1.handle(req, lambda r: m2.handle(r, lambda r2: m3.handle(r2, h)))
    """
    current = handler
    for mw in reversed(list(middleware)):
        current = _wrap(mw, current)
    return current


def _wrap(middleware: Middleware, next_handler: NextHandler) -> NextHandler:
    def wrapped(request: Request) -> Response:
        return middleware.handle(request, next_handler)

    return wrapped


class FunctionMiddleware(Middleware):
    """
    Adapts a plain `(request, next)` function to the Middleware interface.

        def stamp(request, next):
            request.attributes["stamped"] = True
            return next(request)

        router.get("/x", handler, [FunctionMiddleware(stamp)])
    """

    def __init__(self, func: Callable[[Request, NextHandler], Response], name: Optional[str] = None):
        self._func = func
        self._name = name or getattr(func, "__name__", "FunctionMiddleware")

    def handle(self, request: Request, next: NextHandler) -> Response:
        return self._func(request, next)

    @property
    def name(self) -> str:
        return self._name
