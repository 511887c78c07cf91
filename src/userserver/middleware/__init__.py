"""
=============================================================================
MIDDLEWARE MODULE
=============================================================================

    Middleware           Abstract base: __call__(request, next) -> response
    MiddlewarePipeline   Wraps the router with the registered middleware
    LoggingMiddleware    Access log + X-Request-ID

=============================================================================
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    # Base classes
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",

    # Built-in middleware
    "LoggingMiddleware",
    "RequestLog",
]
