"""
=============================================================================
APPLICATION WIRING
=============================================================================

create_app() builds the whole object graph from an AppConfig and returns an
Application whose handle(request) is what the network server calls.

    AppConfig
        │
        ├── Database ──► TodoRepository ──► TodoService ──► TodoController
        │            └─► UserRepository ─┬► UserService ──► UserController
        │                                └► AuthService ──► AuthController
        ├── TokenManager, PasswordHasher
        │
        └── Router
              GET  /health                         (no middleware)
              /api/v1
                /todos  [CORS, Logging, RateLimiter, Auth]
                /users  [CORS, Logging, RateLimiter]   (+Auth on PUT/DELETE)
                /auth   [CORS, Logging, RateLimiter]   (+Auth on logout)

All groups share one rate-limit store, so a client's allowance is global
across the API rather than per group.

OPTIONS never reaches the router: the same CORS middleware is the
dispatcher's preflight handler, so any path (including /health and
unknown paths) gets 204 with the CORS headers.

=============================================================================
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .config import AppConfig
from .controllers import (
    LOGIN_RULES,
    REGISTER_RULES,
    TODO_RULES,
    UPDATE_RULES,
    AuthController,
    TodoController,
    UserController,
)
from .handlers.health import HealthHandler, database_check
from .http.dispatcher import Dispatcher
from .http.request import Request
from .http.response import Response
from .http.router import Router
from .middleware import (
    AuthMiddleware,
    CORSConfig,
    CorsMiddleware,
    FixedWindowStore,
    LoggingMiddleware,
    RateLimiterMiddleware,
    ValidationMiddleware,
)
from .security import PasswordHasher, TokenManager
from .services import AuthService, TodoService, UserService
from .storage import Database, TodoRepository, UserRepository


logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@dataclass
class Application:
    """The assembled API: route table, dispatcher and the shared resources behind them."""

    config: AppConfig
    db: Database
    router: Router
    dispatcher: Dispatcher
    tokens: TokenManager
    rate_store: FixedWindowStore

    def handle(self, request: Request) -> Response:
        return self.dispatcher.handle(request)

    __call__ = handle


def build_router(
    todos: TodoController,
    users: UserController,
    auth: AuthController,
    health: HealthHandler,
    cors: CorsMiddleware,
    request_logger: LoggingMiddleware,
    rate_limiter: RateLimiterMiddleware,
    authenticate: AuthMiddleware,
) -> Router:
    router = Router()
    common = [cors, request_logger, rate_limiter]

    router.get("/health", health)

    def todo_routes(r: Router) -> None:
        r.get("", todos.index)
        r.get("/{id}", todos.show)
        r.post("", todos.store, [ValidationMiddleware(TODO_RULES)])
        r.put("/{id}", todos.update, [ValidationMiddleware(TODO_RULES)])
        r.delete("/{id}", todos.destroy)

    def user_routes(r: Router) -> None:
        r.get("", users.index)
        r.post("/register", users.store, [ValidationMiddleware(REGISTER_RULES)])
        r.get("/{user_id}", users.show)
        r.put("/{user_id}", users.update, [authenticate, ValidationMiddleware(UPDATE_RULES)])
        r.delete("/{user_id}", users.destroy, [authenticate])

    def auth_routes(r: Router) -> None:
        r.post("/login", auth.login, [ValidationMiddleware(LOGIN_RULES)])
        r.post("/logout", auth.logout, [authenticate])
        r.get("/validate", auth.validate)

    def api_routes(r: Router) -> None:
        r.group("/todos", todo_routes, common + [authenticate])
        r.group("/users", user_routes, common)
        r.group("/auth", auth_routes, common)

    router.group(API_PREFIX, api_routes)
    return router


def create_app(config: Optional[AppConfig] = None, init_db: bool = True) -> Application:
    """
    Build an Application from `config` (environment when omitted).

    Raises:
        ValueError: Invalid configuration.
        RuntimeError: Production without a real JWT secret.
    """
    config = config or AppConfig.from_env()
    config.validate()

    db = Database(config.db_path)
    if init_db:
        db.init_schema()

    tokens = TokenManager(
        secret=config.resolve_secret(),
        ttl_seconds=config.jwt_ttl,
        algorithm=config.jwt_algorithm,
    )
    hasher = PasswordHasher(iterations=config.password_iterations)

    todo_repo = TodoRepository(db)
    user_repo = UserRepository(db)

    rate_store = FixedWindowStore(limit=config.rate_limit, window=config.rate_window)
    cors = CorsMiddleware(CORSConfig(allow_origin=config.cors_origin))

    router = build_router(
        todos=TodoController(TodoService(todo_repo)),
        users=UserController(UserService(user_repo, hasher)),
        auth=AuthController(AuthService(user_repo, tokens, hasher)),
        health=HealthHandler().add_check("database", database_check(db)),
        cors=cors,
        request_logger=LoggingMiddleware(config.request_log),
        rate_limiter=RateLimiterMiddleware(store=rate_store),
        authenticate=AuthMiddleware(tokens, users=user_repo),
    )
    logger.info(f"Registered {len(router)} routes ({config.app_env})")

    return Application(
        config=config,
        db=db,
        router=router,
        dispatcher=Dispatcher(router, debug=config.debug, preflight=cors),
        tokens=tokens,
        rate_store=rate_store,
    )
