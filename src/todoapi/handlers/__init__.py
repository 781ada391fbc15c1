"""Handlers that sit outside the /api/v1 controller groups."""

from .health import HealthCheck, HealthHandler, HealthStatus, database_check

__all__ = ["HealthCheck", "HealthHandler", "HealthStatus", "database_check"]
