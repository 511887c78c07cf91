"""
=============================================================================
HTTP PROTOCOL MODULE
=============================================================================

Turns raw TCP bytes into structured HTTP messages and back.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ REQUEST PARSER (request.py)                                         │
    │   b"PUT /users?id=1 HTTP/1.1\\r\\n..."  →  HTTPRequest               │
    ├─────────────────────────────────────────────────────────────────────┤
    │ ROUTER (router.py)                                                  │
    │   GET /users/7  →  get_user(request) with path_params={"id": "7"}   │
    ├─────────────────────────────────────────────────────────────────────┤
    │ RESPONSE BUILDER (response.py)                                      │
    │   ok({"id": 7, ...})  →  b"HTTP/1.1 200 OK\\r\\n...\\r\\n\\r\\n{...}"    │
    ├─────────────────────────────────────────────────────────────────────┤
    │ STATUS CODES (status_codes.py)                                      │
    │   HTTPStatus.NOT_FOUND → 404, phrase="Not Found"                    │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,                  # 200 OK
    created,             # 201 Created
    bad_request,         # 400 Bad Request
    not_found,           # 404 Not Found
    method_not_allowed,  # 405 Method Not Allowed
    conflict,            # 409 Conflict
    internal_error,      # 500 Internal Server Error
    error_response,
)
from .router import Router, Route, RouteMatch
from .status_codes import HTTPStatus

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",

    # Response building
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "created",
    "bad_request",
    "not_found",
    "method_not_allowed",
    "conflict",
    "internal_error",
    "error_response",

    # Routing
    "Router",
    "Route",
    "RouteMatch",

    # Status codes
    "HTTPStatus",
]
