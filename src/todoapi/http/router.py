"""
=============================================================================
ROUTE TABLE & MATCHER
=============================================================================

Maps (method, path) to a handler plus the middleware that wraps it.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTING FLOW                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   GET /api/v1/todos/42/                                              │
    │        │                                                             │
    │        ▼  normalize_path()  → /api/v1/todos/42                       │
    │                                                                      │
    │   Registered Routes (registration order!):                           │
    │   ┌──────────────────────────────────────────────────────────────┐  │
    │   │ GET    /api/v1/todos          [Cors, Log, Rate, Auth]        │  │
    │   │ GET    /api/v1/todos/{id}     [Cors, Log, Rate, Auth] ← MATCH│  │
    │   │ POST   /api/v1/todos          [Cors, Log, Rate, Auth, Valid] │  │
    │   └──────────────────────────────────────────────────────────────┘  │
    │                                                                      │
    │   RouteMatch(route=<GET /api/v1/todos/{id}>, params={"id": "42"})   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ROUTE GROUPS
=============================================================================

    router.group("/api/v1", lambda r: (
        r.group("/todos", build_todo_routes, [cors, logging, limiter, auth]),
        r.group("/users", build_user_routes, [cors, logging, limiter]),
    ))

Inside a group the prefix and middleware are extended; when the builder
returns, the previous values are restored from local variables. Nested
groups therefore concatenate prefixes, and their middleware lists
concatenate OUTER FIRST:

    group("/a", ..., [m1])
        group("/b", ..., [m2])
            add("GET", "/c", h, [m3])   →  GET /a/b/c  middleware [m1, m2, m3]

=============================================================================
MATCHING RULES
=============================================================================

1. `{name}` captures one path segment: `(?P<name>[^/]+)`.
2. One trailing slash is ignored on both the pattern and the request path.
3. FIRST MATCH WINS in registration order. There is no "most specific"
   sorting: if `/users/{user_id}` is registered before a literal
   `/users/register` under the SAME method, the parameter route wins.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
import logging
import re

from .request import normalize_path


logger = logging.getLogger(__name__)


# Handler type: takes a Request, returns a Response or a raw JSON value
Handler = Callable[[Any], Any]

PARAM_PATTERN = re.compile(r"\{([^/{}]+)\}")


@dataclass(frozen=True)
class Route:
    """
    A registered route. Immutable once added to the table.

    Attributes:
        method: Uppercased HTTP method.
        path: Full path pattern including group prefixes.
        handler: Terminal handler.
        middleware: Group middleware followed by route middleware.
        pattern: Compiled, anchored regex for `path`.
    """

    method: str
    path: str
    handler: Handler
    middleware: Tuple[Any, ...] = ()
    pattern: re.Pattern = field(default=None, repr=False, compare=False)

    @property
    def param_names(self) -> List[str]:
        return list(self.pattern.groupindex)


@dataclass
class RouteMatch:
    """
    Result of a successful match.

        Pattern: /api/v1/users/{user_id}
        Path:    /api/v1/users/alice
        Result:  RouteMatch(route=<Route>, params={"user_id": "alice"})
    """

    route: Route
    params: Dict[str, str]


def compile_pattern(path: str) -> re.Pattern:
    """
    Compile a path pattern into an anchored regex.

        "/todos/{id}"  →  ^/todos/(?P<id>[^/]+)$

    Literal text between placeholders is escaped, so a "." in a path is
    matched literally.
    """
    regex_parts = ["^"]
    position = 0
    for match in PARAM_PATTERN.finditer(path):
        regex_parts.append(re.escape(path[position:match.start()]))
        regex_parts.append(f"(?P<{match.group(1)}>[^/]+)")
        position = match.end()
    regex_parts.append(re.escape(path[position:]))
    regex_parts.append("$")
    return re.compile("".join(regex_parts))


class Router:
    """
    Ordered route table with group support.

    ==========================================================================
    USAGE
    ==========================================================================

        router = Router()
        router.get("/health", health.handle)

        def todo_routes(r: Router):
            r.get("/", todos.index)
            r.get("/{id}", todos.show)
            r.post("/", todos.store, [ValidationMiddleware(TODO_RULES)])

        router.group("/api/v1/todos", todo_routes, [cors, logging, limiter, auth])

        match = router.match("GET", "/api/v1/todos/7")
        match.params  # {"id": "7"}

    ==========================================================================
    """

    def __init__(self):
        self._routes: List[Route] = []
        self._prefix = ""
        self._middleware: List[Any] = []

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def add(
        self,
        method: str,
        path: str,
        handler: Handler,
        middleware: Optional[Sequence[Any]] = None,
    ) -> Route:
        """
        Register a route under the active group prefix and middleware.

        Args:
            method: HTTP method, any case.
            path: Path pattern relative to the active prefix.
            handler: Terminal handler.
            middleware: Route-specific middleware, run INSIDE group middleware.

        Returns:
            The registered Route.
        """
        full_path = normalize_path(self._prefix + path)

        route = Route(
            method=method.upper(),
            path=full_path,
            handler=handler,
            middleware=tuple(self._middleware) + tuple(middleware or ()),
            pattern=compile_pattern(full_path),
        )
        self._routes.append(route)
        logger.debug(f"Registered route {route.method} {route.path}")
        return route

    def get(self, path: str, handler: Handler, middleware: Optional[Sequence[Any]] = None) -> Route:
        return self.add("GET", path, handler, middleware)

    def post(self, path: str, handler: Handler, middleware: Optional[Sequence[Any]] = None) -> Route:
        return self.add("POST", path, handler, middleware)

    def put(self, path: str, handler: Handler, middleware: Optional[Sequence[Any]] = None) -> Route:
        return self.add("PUT", path, handler, middleware)

    def delete(self, path: str, handler: Handler, middleware: Optional[Sequence[Any]] = None) -> Route:
        return self.add("DELETE", path, handler, middleware)

    def group(
        self,
        prefix: str,
        builder: Callable[["Router"], Any],
        middleware: Optional[Sequence[Any]] = None,
    ) -> None:
        """
        Register the routes created by `builder` under `prefix` and `middleware`.

        The previous prefix and middleware are kept in locals and restored
        afterwards, even if `builder` raises.
        """
        previous_prefix = self._prefix
        previous_middleware = self._middleware

        self._prefix = previous_prefix + prefix
        self._middleware = previous_middleware + list(middleware or ())
        try:
            builder(self)
        finally:
            self._prefix = previous_prefix
            self._middleware = previous_middleware

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """
        Find the first route (registration order) matching method and path.

        Returns:
            RouteMatch, or None when nothing matches.
        """
        method = method.upper()
        path = normalize_path(path)

        for route in self._routes:
            if route.method != method:
                continue
            found = route.pattern.match(path)
            if found:
                return RouteMatch(route=route, params=found.groupdict())

        return None

    @property
    def routes(self) -> Tuple[Route, ...]:
        """Registered routes in registration order."""
        return tuple(self._routes)

    def describe(self) -> List[str]:
        """One line per route, e.g. "GET    /api/v1/todos  [CORS, Logging]"."""
        lines = []
        for route in self._routes:
            names = ", ".join(getattr(m, "name", type(m).__name__) for m in route.middleware)
            lines.append(f"{route.method:<7} {route.path:<32} [{names}]")
        return lines

    def __len__(self) -> int:
        return len(self._routes)
