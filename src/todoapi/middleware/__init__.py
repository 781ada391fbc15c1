"""
Middleware components.

    CorsMiddleware        - pre-flight handling + CORS headers
    LoggingMiddleware     - request timing and request log file
    RateLimiterMiddleware - fixed-window per-client limit
    AuthMiddleware        - bearer token verification + revocation check
    ValidationMiddleware  - declarative field rules + body whitelisting

All of them implement Middleware.handle(request, next) and are composed
with build_chain().
"""

from .auth import AUTH_ATTRIBUTE, AuthMiddleware
from .base import FunctionMiddleware, Middleware, build_chain
from .cors import CORSConfig, CorsMiddleware
from .logging import LoggingMiddleware
from .rate_limit import FixedWindowStore, RateLimiterMiddleware, client_key
from .validation import ValidationMiddleware, Validator

__all__ = [
    "AUTH_ATTRIBUTE",
    "AuthMiddleware",
    "CORSConfig",
    "CorsMiddleware",
    "FixedWindowStore",
    "FunctionMiddleware",
    "LoggingMiddleware",
    "Middleware",
    "RateLimiterMiddleware",
    "ValidationMiddleware",
    "Validator",
    "build_chain",
    "client_key",
]
