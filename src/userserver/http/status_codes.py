"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this server can emit, with their RFC 7231 reason phrases.

    HTTP/1.1 404 Not Found
             ─── ─────────
              │      │
              │      └── Reason phrase (HTTPStatus.phrase)
              └───────── Status code  (int(HTTPStatus.NOT_FOUND))

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    This enum extends IntEnum, so status codes can be used as integers:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.OK.phrase
        'OK'
    """

    # =========================================================================
    # 2xx SUCCESS
    # =========================================================================
    OK = 200                            # Read, update and delete succeeded
    CREATED = 201                       # New user row inserted

    # =========================================================================
    # 4xx CLIENT ERRORS
    # =========================================================================
    BAD_REQUEST = 400                   # Malformed request, bad id or body
    NOT_FOUND = 404                     # Unknown route or missing user
    METHOD_NOT_ALLOWED = 405            # Known path, wrong method
    REQUEST_TIMEOUT = 408               # Client never sent its request
    CONFLICT = 409                      # Email already taken
    PAYLOAD_TOO_LARGE = 413             # Request did not fit the read buffer

    # =========================================================================
    # 5xx SERVER ERRORS
    # =========================================================================
    INTERNAL_SERVER_ERROR = 500         # Database or handler failure
    SERVICE_UNAVAILABLE = 503           # Health check failed
    HTTP_VERSION_NOT_SUPPORTED = 505    # Not HTTP/1.0 or HTTP/1.1

    @property
    def phrase(self) -> str:
        """Get the reason phrase for this status code."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_success(self) -> bool:
        """Check if this is a 2xx (success) status code."""
        return 200 <= self < 300

    @property
    def is_client_error(self) -> bool:
        """Check if this is a 4xx (client error) status code."""
        return 400 <= self < 500

    @property
    def is_server_error(self) -> bool:
        """Check if this is a 5xx (server error) status code."""
        return 500 <= self < 600


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.CONFLICT: "Conflict",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
