"""
=============================================================================
APPLICATION CONFIGURATION
=============================================================================

One dataclass holds every tunable of the API: the socket layer, the worker
pool, the database, token signing, CORS, rate limiting and logging.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   Priority (highest to lowest):                                     │
    │                                                                     │
    │   1. Command-line arguments                                         │
    │      └── python -m todoapi --port 3000                              │
    │                                                                     │
    │   2. Environment variables                                          │
    │      └── TODOAPI_PORT=3000 python -m todoapi                        │
    │                                                                     │
    │   3. Defaults in this class                                         │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
SECRETS
=============================================================================

The JWT secret is never given a usable default in production.
resolve_secret() falls back to a fixed development secret when app_env is
not "production", logging a warning every time it does, and refuses to
start in production without a real secret.

=============================================================================
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional


DEV_SECRET = "todoapi-development-secret-change-me"
PRODUCTION = "production"

ENV_PREFIX = "TODOAPI_"

_TRUTHY = {"1", "true", "yes", "on"}


logger = logging.getLogger(__name__)


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(ENV_PREFIX + name, default)


@dataclass
class AppConfig:
    """
    Settings for one server instance.

    Development:
        AppConfig(host="127.0.0.1", port=8080, log_level="DEBUG", debug=True)

    Production:
        AppConfig(host="0.0.0.0", app_env="production",
                  jwt_secret=os.environ["TODOAPI_JWT_SECRET"], max_workers=32)
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    port: int = 8080
    backlog: int = 128
    buffer_size: int = 8192

    timeout: Optional[float] = 30.0
    """Per-connection socket timeout in seconds. None blocks forever."""

    max_request_size: int = 1024 * 1024

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 16

    # ─────────────────────────────────────────────────────────────────────
    # APPLICATION
    # ─────────────────────────────────────────────────────────────────────

    db_path: str = "todo.db"

    jwt_secret: Optional[str] = None
    jwt_algorithm: str = "HS256"
    jwt_ttl: int = 3600
    """Token lifetime in seconds."""

    app_env: str = "development"

    cors_origin: str = "http://localhost:8000"

    rate_limit: int = 300
    rate_window: float = 60.0
    """Requests allowed per client per window of this many seconds."""

    request_log: Optional[str] = "logs/requests.log"
    """Request log file appended to by LoggingMiddleware. None disables it."""

    password_iterations: int = 260_000

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / DIAGNOSTICS
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"

    debug: bool = False
    """Include exception detail in 500 responses. Never in production."""

    server_name: str = "todo-api/1.0"

    @classmethod
    def from_env(cls) -> "AppConfig":
        """
        Create configuration from TODOAPI_* environment variables.

        TODOAPI_HOST, TODOAPI_PORT, TODOAPI_DB_PATH, TODOAPI_JWT_SECRET,
        TODOAPI_JWT_ALGORITHM, TODOAPI_JWT_TTL, TODOAPI_APP_ENV,
        TODOAPI_CORS_ORIGIN, TODOAPI_RATE_LIMIT, TODOAPI_RATE_WINDOW,
        TODOAPI_REQUEST_LOG, TODOAPI_LOG_LEVEL, TODOAPI_DEBUG,
        TODOAPI_PASSWORD_ITERATIONS, TODOAPI_MIN_WORKERS, TODOAPI_MAX_WORKERS

        Unset variables keep the class defaults. An empty TODOAPI_REQUEST_LOG
        disables the request log file.
        """
        defaults = cls()
        request_log = _env("REQUEST_LOG", defaults.request_log)
        return cls(
            host=_env("HOST", defaults.host),
            port=int(_env("PORT", str(defaults.port))),
            db_path=_env("DB_PATH", defaults.db_path),
            jwt_secret=_env("JWT_SECRET") or None,
            jwt_algorithm=_env("JWT_ALGORITHM", defaults.jwt_algorithm),
            jwt_ttl=int(_env("JWT_TTL", str(defaults.jwt_ttl))),
            app_env=_env("APP_ENV", defaults.app_env),
            cors_origin=_env("CORS_ORIGIN", defaults.cors_origin),
            rate_limit=int(_env("RATE_LIMIT", str(defaults.rate_limit))),
            rate_window=float(_env("RATE_WINDOW", str(defaults.rate_window))),
            request_log=request_log or None,
            log_level=_env("LOG_LEVEL", defaults.log_level),
            debug=_env("DEBUG", "false").strip().lower() in _TRUTHY,
            password_iterations=int(_env("PASSWORD_ITERATIONS", str(defaults.password_iterations))),
            min_workers=int(_env("MIN_WORKERS", str(defaults.min_workers))),
            max_workers=int(_env("MAX_WORKERS", str(defaults.max_workers))),
        )

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == PRODUCTION

    def resolve_secret(self) -> str:
        """
        The secret tokens are signed with.

        Raises:
            RuntimeError: In production, when no secret is configured or the
                          configured one is the development fallback.
        """
        if self.is_production and self.jwt_secret in (None, "", DEV_SECRET):
            raise RuntimeError("TODOAPI_JWT_SECRET must be set to a non-default value in production")
        if self.jwt_secret in (None, "", DEV_SECRET):
            logger.warning(
                f"Signing tokens with the built-in development secret (app_env={self.app_env}); "
                f"set TODOAPI_JWT_SECRET before exposing this server"
            )
            return DEV_SECRET
        return self.jwt_secret

    def validate(self) -> None:
        """Fail fast at startup on values that can't work."""
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535 (0 picks a free port).")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.max_request_size < 1024:
            raise ValueError("max_request_size must be >= 1024")

        if self.jwt_ttl <= 0:
            raise ValueError("jwt_ttl must be > 0")

        if self.rate_limit < 1:
            raise ValueError("rate_limit must be >= 1")

        if self.rate_window <= 0:
            raise ValueError("rate_window must be > 0")

        if self.password_iterations < 1:
            raise ValueError("password_iterations must be >= 1")

        if not self.db_path:
            raise ValueError("db_path must not be empty")
