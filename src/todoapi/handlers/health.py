"""
=============================================================================
HEALTH CHECK ENDPOINT
=============================================================================

GET /health lives outside /api/v1 and outside every middleware group, so
load balancers can probe it without a token and without counting against the
rate limit.

    ┌──────────────┐   GET /health   ┌───────────────┐
    │ Load balancer│ ──────────────► │ HealthHandler │──► check "database"
    │  / k8s probe │ ◄────────────── │               │    (Database.ping)
    └──────────────┘   200 or 503    └───────────────┘

Healthy (200):
    {
        "status": "healthy",
        "uptime_seconds": 3600,
        "checks": {"database": {"status": "healthy"}}
    }

Unhealthy (503):
    {
        "status": "unhealthy",
        "uptime_seconds": 3600,
        "checks": {"database": {"status": "unhealthy", "error": "..."}}
    }

=============================================================================
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from ..http.request import Request
from ..http.response import Response
from ..http.status_codes import HTTPStatus
from ..storage.database import Database


logger = logging.getLogger(__name__)


@dataclass
class HealthStatus:
    """Result of a single named check."""

    healthy: bool
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"status": "healthy" if self.healthy else "unhealthy"}
        if self.message:
            data["message" if self.healthy else "error"] = self.message
        return data


HealthCheck = Callable[[], HealthStatus]


def database_check(db: Database) -> HealthCheck:
    def check() -> HealthStatus:
        if db.ping():
            return HealthStatus(healthy=True)
        return HealthStatus(healthy=False, message="Database unreachable")
    return check


class HealthHandler:
    """
    Runs every registered check on each request.

    Returns 200 if ALL checks pass, 503 if ANY fails. A check that raises
    counts as failed; the exception text goes into the response and the
    traceback into the server log.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._checks: Dict[str, HealthCheck] = {}
        self._clock = clock or time.monotonic
        self._start_time = self._clock()

    def add_check(self, name: str, check: HealthCheck) -> "HealthHandler":
        self._checks[name] = check
        return self

    @property
    def uptime(self) -> float:
        return self._clock() - self._start_time

    def __call__(self, request: Request) -> Response:
        results = {}
        all_healthy = True

        for name, check in self._checks.items():
            try:
                status = check()
            except Exception as e:
                logger.exception(f"Health check '{name}' raised")
                status = HealthStatus(healthy=False, message=str(e))
            results[name] = status.to_dict()
            all_healthy = all_healthy and status.healthy

        payload = {
            "status": "healthy" if all_healthy else "unhealthy",
            "uptime_seconds": int(self.uptime),
            "checks": results,
        }
        http_status = HTTPStatus.OK if all_healthy else HTTPStatus.SERVICE_UNAVAILABLE

        # Never cache health checks
        return Response(payload, http_status).with_headers({"Cache-Control": "no-store"})
