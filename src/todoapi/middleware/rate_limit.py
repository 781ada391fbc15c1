"""
=============================================================================
FIXED-WINDOW RATE LIMITER
=============================================================================

Caps how many requests a single client address may make per time window.

=============================================================================
THE ALGORITHM
=============================================================================

    limit = 3, window = 60s

    time ─────────────────────────────────────────────────────────────────►
         │◄──────────── window 1 ────────────►│◄──── window 2 ────►
         req   req   req   req                 req
         c=1   c=2   c=3   c=4 → 429           c=1 (reset, new window)

    on each request:
        if now - window_start >= window:  count = 0; window_start = now
        count += 1
        if count > limit:                 reject with 429

=============================================================================
CONCURRENCY
=============================================================================

The counters are shared by every worker thread. The check-and-increment
above is a read-modify-write, so two concurrent requests from the same
client could both read count=limit-1 and both get through. FixedWindowStore
performs the whole step under ONE lock, making it atomic:

    Thread A ──┐                       ┌── lock ── read/reset/++ ── unlock
               ├── hit("k") ───────────┤
    Thread B ──┘                       └── (waits) ── lock ── read/reset/++

Keys are a SHA-256 digest of "rate_limit_<client ip>", so raw addresses are
never kept as dictionary keys.

=============================================================================
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional
import hashlib
import logging
import math
import threading
import time

from .base import Middleware, NextHandler
from ..http.request import Request
from ..http.response import Response
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


@dataclass
class WindowCounter:
    """Request count for one key within the current window."""

    count: int
    window_start: float


@dataclass
class HitResult:
    """
    Outcome of one FixedWindowStore.hit() call.

    Attributes:
        count: Post-increment count in the current window.
        allowed: count <= limit.
        remaining: Requests left in this window (never negative).
        reset_in: Seconds until the window restarts.
    """

    count: int
    allowed: bool
    remaining: int
    reset_in: float


class FixedWindowStore:
    """
    In-memory, mutex-protected fixed-window counters.

        store = FixedWindowStore(limit=2, window=60)
        store.hit("k").allowed   # True   (count 1)
        store.hit("k").allowed   # True   (count 2)
        store.hit("k").allowed   # False  (count 3)

    Args:
        limit: Requests allowed per window.
        window: Window length in seconds.
        clock: Time source, injectable for tests.
        cleanup_interval: How often expired windows are dropped (seconds).
    """

    def __init__(
        self,
        limit: int = 300,
        window: float = 60.0,
        clock: Optional[Callable[[], float]] = None,
        cleanup_interval: float = 300.0,
    ):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if window <= 0:
            raise ValueError("window must be positive")

        self.limit = limit
        self.window = window
        self.cleanup_interval = cleanup_interval
        self._clock = clock or time.monotonic
        self._counters: Dict[str, WindowCounter] = {}
        self._lock = threading.Lock()
        self._last_cleanup = self._clock()

    def hit(self, key: str) -> HitResult:
        """Atomically reset-if-expired, increment and check `key`."""
        with self._lock:
            now = self._clock()

            if now - self._last_cleanup >= self.cleanup_interval:
                self._cleanup(now)

            counter = self._counters.get(key)
            if counter is None or now - counter.window_start >= self.window:
                counter = WindowCounter(count=0, window_start=now)
                self._counters[key] = counter

            counter.count += 1

            return HitResult(
                count=counter.count,
                allowed=counter.count <= self.limit,
                remaining=max(0, self.limit - counter.count),
                reset_in=max(0.0, self.window - (now - counter.window_start)),
            )

    def reset(self, key: Optional[str] = None) -> None:
        """Forget one key, or every key when `key` is None."""
        with self._lock:
            if key is None:
                self._counters.clear()
            else:
                self._counters.pop(key, None)

    def _cleanup(self, now: float) -> None:
        # Caller holds the lock
        expired = [
            key for key, counter in self._counters.items()
            if now - counter.window_start >= self.window
        ]
        for key in expired:
            del self._counters[key]
        self._last_cleanup = now
        if expired:
            logger.debug(f"Dropped {len(expired)} expired rate-limit windows")

    def __len__(self) -> int:
        return len(self._counters)


def client_key(request: Request) -> str:
    """Hashed rate-limit key for the request's client address."""
    return hashlib.sha256(f"rate_limit_{request.client_ip}".encode("utf-8")).hexdigest()


class RateLimiterMiddleware(Middleware):
    """
    Rejects clients that exceed `limit` requests per `window` seconds.

    Allowed responses get X-RateLimit-Limit / X-RateLimit-Remaining headers;
    rejected ones are a 429 {"error": "Too many requests"} with Retry-After.

        RateLimiterMiddleware()                        # 300 per minute
        RateLimiterMiddleware(limit=2, window=60)
        RateLimiterMiddleware(store=shared_store)      # share across groups
    """

    def __init__(
        self,
        limit: int = 300,
        window: float = 60.0,
        store: Optional[FixedWindowStore] = None,
        key_func: Optional[Callable[[Request], str]] = None,
    ):
        self.store = store if store is not None else FixedWindowStore(limit=limit, window=window)
        self.key_func = key_func or client_key

    def handle(self, request: Request, next: NextHandler) -> Response:
        result = self.store.hit(self.key_func(request))
        limit_headers = {
            "X-RateLimit-Limit": str(self.store.limit),
            "X-RateLimit-Remaining": str(result.remaining),
        }

        if not result.allowed:
            logger.warning(f"Rate limit exceeded for {request.client_ip} on {request.method} {request.path}")
            headers = dict(limit_headers)
            headers["Retry-After"] = str(max(1, math.ceil(result.reset_in)))
            return Response(
                payload={"error": "Too many requests"},
                status=HTTPStatus.TOO_MANY_REQUESTS,
            ).with_headers(headers)

        return next(request).with_headers(limit_headers)

    @property
    def name(self) -> str:
        return "RateLimiter"
