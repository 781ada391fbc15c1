"""
Unit tests for the fixed-window rate limiter.
"""

import hashlib
import threading

import pytest

from conftest import make_request
from todoapi.http.response import ok
from todoapi.middleware.rate_limit import FixedWindowStore, RateLimiterMiddleware, client_key


class ManualClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestFixedWindowStore:
    """Tests for the counter store."""

    def test_counts_within_window(self):
        """Test hits are counted and rejected past the limit."""
        store = FixedWindowStore(limit=2, window=60, clock=ManualClock())

        first, second, third = store.hit("k"), store.hit("k"), store.hit("k")

        assert (first.allowed, second.allowed, third.allowed) == (True, True, False)
        assert (first.remaining, second.remaining, third.remaining) == (1, 0, 0)
        assert third.count == 3

    def test_window_resets(self):
        """Test the count resets once the window has elapsed."""
        clock = ManualClock()
        store = FixedWindowStore(limit=1, window=60, clock=clock)

        assert store.hit("k").allowed
        assert not store.hit("k").allowed

        clock.advance(60)
        result = store.hit("k")
        assert result.allowed
        assert result.count == 1

    def test_keys_are_independent(self):
        store = FixedWindowStore(limit=1, window=60, clock=ManualClock())

        assert store.hit("a").allowed
        assert store.hit("b").allowed
        assert not store.hit("a").allowed

    def test_reset_in(self):
        """Test the time until the window ends is reported."""
        clock = ManualClock()
        store = FixedWindowStore(limit=5, window=60, clock=clock)
        store.hit("k")
        clock.advance(15)

        assert store.hit("k").reset_in == pytest.approx(45)

    def test_cleanup_drops_expired_windows(self):
        """Test periodic cleanup removes stale keys."""
        clock = ManualClock()
        store = FixedWindowStore(limit=5, window=10, clock=clock, cleanup_interval=30)
        store.hit("old")
        clock.advance(31)
        store.hit("new")

        assert len(store) == 1

    def test_reset(self):
        store = FixedWindowStore(limit=1, window=60, clock=ManualClock())
        store.hit("a")
        store.hit("b")

        store.reset("a")
        assert store.hit("a").allowed

        store.reset()
        assert len(store) == 0

    def test_invalid_arguments(self):
        """Test non-positive limit and window are rejected."""
        with pytest.raises(ValueError):
            FixedWindowStore(limit=0)
        with pytest.raises(ValueError):
            FixedWindowStore(window=0)

    def test_concurrent_hits_are_atomic(self):
        """Test exactly `limit` of many concurrent hits are allowed."""
        store = FixedWindowStore(limit=50, window=60)
        results = []
        lock = threading.Lock()

        def worker():
            for _ in range(20):
                result = store.hit("shared")
                with lock:
                    results.append(result.allowed)

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 200
        assert results.count(True) == 50


class TestRateLimiterMiddleware:
    """Tests for the middleware wrapper."""

    def test_limit_then_reject(self):
        """Test limit=2: 200, 200, 429; after the window, 200 again."""
        clock = ManualClock()
        middleware = RateLimiterMiddleware(store=FixedWindowStore(limit=2, window=60, clock=clock))
        request = make_request("GET", "/todos")

        statuses = [middleware.handle(request, lambda r: ok()).status for _ in range(3)]
        assert statuses == [200, 200, 429]

        clock.advance(60)
        assert middleware.handle(request, lambda r: ok()).status == 200

    def test_rejection_body_and_headers(self):
        """Test the 429 response shape."""
        clock = ManualClock()
        middleware = RateLimiterMiddleware(store=FixedWindowStore(limit=1, window=60, clock=clock))
        request = make_request("GET", "/todos")
        middleware.handle(request, lambda r: ok())
        clock.advance(20)

        response = middleware.handle(request, lambda r: ok())

        assert response.status == 429
        assert response.payload == {"error": "Too many requests"}
        assert response.header("X-RateLimit-Limit") == "1"
        assert response.header("X-RateLimit-Remaining") == "0"
        assert response.header("Retry-After") == "40"

    def test_empty_shared_store_is_kept(self):
        """Test a store with no counters yet is used, not replaced by a default one."""
        store = FixedWindowStore(limit=2, window=60, clock=ManualClock())

        middleware = RateLimiterMiddleware(store=store)

        assert middleware.store is store
        middleware.handle(make_request("GET", "/todos"), lambda r: ok())
        assert len(store) == 1

    def test_allowed_response_has_limit_headers(self):
        middleware = RateLimiterMiddleware(limit=10, window=60)

        response = middleware.handle(make_request("GET", "/todos"), lambda r: ok())

        assert response.header("X-RateLimit-Limit") == "10"
        assert response.header("X-RateLimit-Remaining") == "9"

    def test_clients_limited_separately(self):
        """Test different client addresses get separate allowances."""
        middleware = RateLimiterMiddleware(limit=1, window=60)

        assert middleware.handle(make_request("GET", "/", client_ip="10.0.0.1"), lambda r: ok()).status == 200
        assert middleware.handle(make_request("GET", "/", client_ip="10.0.0.2"), lambda r: ok()).status == 200
        assert middleware.handle(make_request("GET", "/", client_ip="10.0.0.1"), lambda r: ok()).status == 429

    def test_client_key_is_hashed(self):
        """Test the raw address is not used as the key."""
        key = client_key(make_request("GET", "/", client_ip="192.168.1.9"))

        assert key == hashlib.sha256(b"rate_limit_192.168.1.9").hexdigest()
        assert "192.168.1.9" not in key
