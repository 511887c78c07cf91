"""
=============================================================================
HEALTH CHECK HANDLER
=============================================================================

GET /health reports whether the server can reach its database.

    200 OK                    {"status": "healthy", "uptime_seconds": 12,
                               "checks": {"database": {"status": "healthy", ...}}}

    503 Service Unavailable   {"status": "unhealthy", ...}

=============================================================================
"""

import time
from typing import Callable, Dict, Any
from dataclasses import dataclass, field

from ..db import Database
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder
from ..http.status_codes import HTTPStatus


@dataclass
class HealthStatus:
    """Result of a single health check."""

    healthy: bool
    message: str = "OK"
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "status": "healthy" if self.healthy else "unhealthy",
            "message": self.message,
            **self.details,
        }


HealthCheck = Callable[[], HealthStatus]


def database_check(database: Database) -> HealthCheck:
    """
    Build a check that opens a fresh connection and runs SELECT 1.

    Usage:
        health.add_check("database", database_check(db))
    """
    def check() -> HealthStatus:
        started = time.time()
        reachable = database.ping()
        latency_ms = round((time.time() - started) * 1000, 2)

        if reachable:
            return HealthStatus(healthy=True, details={"latency_ms": latency_ms})
        return HealthStatus(
            healthy=False,
            message="Database unreachable",
            details={"latency_ms": latency_ms},
        )

    return check


class HealthHandler:
    """
    Health check endpoint handler.

        health = HealthHandler()
        health.add_check("database", database_check(db))
        router.get("/health")(health.handle)

    Returns 200 if every check passes, 503 if any fails or raises.
    """

    def __init__(self):
        self._checks: Dict[str, HealthCheck] = {}
        self._start_time = time.time()

    def add_check(self, name: str, check: HealthCheck) -> "HealthHandler":
        """Register a named check. Returns self for chaining."""
        self._checks[name] = check
        return self

    @property
    def uptime(self) -> float:
        """Seconds since the handler was created."""
        return time.time() - self._start_time

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Run all checks and report the combined status."""
        results = {}
        all_healthy = True

        for name, check in self._checks.items():
            try:
                status = check()
                results[name] = status.to_dict()
                if not status.healthy:
                    all_healthy = False
            except Exception as e:
                # A crashing check counts as a failed one.
                results[name] = {"status": "unhealthy", "error": str(e)}
                all_healthy = False

        response_data: Dict[str, Any] = {
            "status": "healthy" if all_healthy else "unhealthy",
            "uptime_seconds": int(self.uptime),
        }
        if results:
            response_data["checks"] = results

        http_status = HTTPStatus.OK if all_healthy else HTTPStatus.SERVICE_UNAVAILABLE
        return (ResponseBuilder()
            .status(http_status)
            .json(response_data)
            .header("Cache-Control", "no-store")
            .build())
