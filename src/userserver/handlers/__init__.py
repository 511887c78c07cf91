"""
=============================================================================
HANDLERS MODULE
=============================================================================

    UserHandler     CRUD endpoints for /users and the /hello greeting
    HealthHandler   /health, backed by a database reachability check

=============================================================================
"""

from .users import UserHandler, parse_id, parse_payload
from .health import HealthHandler, HealthStatus, database_check

__all__ = [
    "UserHandler",
    "parse_id",
    "parse_payload",
    "HealthHandler",
    "HealthStatus",
    "database_check",
]
