"""
=============================================================================
HTTP RESPONSE BUILDING
=============================================================================

Builds HTTPResponse objects and serializes them to bytes.

=============================================================================
RESPONSE FORMAT
=============================================================================

    HTTP/1.1 201 Created\r\n                  ← Status line
    Content-Type: application/json\r\n        ← Headers
    Location: /users/7\r\n
    Content-Length: 47\r\n                    ← Auto-added
    Date: Sat, 17 Oct 2026 12:00:00 GMT\r\n   ← Auto-added
    Server: UserServer/1.0\r\n                ← Auto-added
    \r\n                                      ← Blank line
    {"id": 7, "name": "Ada", "email": "..."}  ← Body

Two body flavours are used by this server:

    JSON   - user records and lists of user records
    TEXT   - short messages ("Updated user", "Invalid ID: abc")

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Union
import json

from .status_codes import HTTPStatus


TEXT_PLAIN = "text/plain; charset=utf-8"
APPLICATION_JSON = "application/json"

DEFAULT_SERVER_NAME = "UserServer/1.0"


@dataclass
class HTTPResponse:
    """
    Represents an HTTP response to be sent to the client.

    Use ResponseBuilder or the convenience functions (ok, not_found, ...)
    rather than constructing this directly.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """Status line, e.g. "HTTP/1.1 200 OK"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def text(self) -> str:
        """The body decoded as UTF-8."""
        return self.body.decode("utf-8", errors="replace")

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a response header. Returns self for chaining."""
        self.headers[name] = value
        return self

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize the response to bytes for socket.sendall().

        Content-Length, Date and Server are added when missing.
        """
        response_headers = dict(self.headers)

        if "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))

        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for constructing HTTP responses.

        response = (ResponseBuilder()
            .status(HTTPStatus.CREATED)
            .json({"id": 7, "name": "Ada", "email": "ada@example.org"})
            .header("Location", "/users/7")
            .build())

    Every method except build() and to_bytes() returns self.
    """

    def __init__(self, server_name: str = DEFAULT_SERVER_NAME):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""
        self._server_name = server_name

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = HTTPStatus(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set the raw body; strings are encoded as UTF-8."""
        if isinstance(body, str):
            self._body = body.encode("utf-8")
        else:
            self._body = body
        return self

    def text(self, text: str, content_type: str = TEXT_PLAIN) -> "ResponseBuilder":
        """Plain-text body."""
        return self.content_type(content_type).body(text)

    def json(self, data: Any) -> "ResponseBuilder":
        """JSON body; non-ASCII characters are kept as UTF-8."""
        payload = json.dumps(data, ensure_ascii=False)
        return self.content_type(APPLICATION_JSON).body(payload)

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
        )

    def to_bytes(self) -> bytes:
        """Build and serialize in one step."""
        return self.build().to_bytes(self._server_name)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231).

    Example: Sat, 17 Oct 2026 12:00:00 GMT

    Args:
        dt: Datetime to format (should be UTC).
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
#     return ok(user.to_dict())
#     return ok("Updated user")
#     return not_found("User not found")
#
# dict/list bodies become JSON, str bodies become text/plain.
# =============================================================================

def _with_body(
    status: HTTPStatus,
    body: Union[str, bytes, dict, list],
    content_type: Optional[str] = None,
) -> ResponseBuilder:
    builder = ResponseBuilder().status(status)

    if isinstance(body, (dict, list)):
        builder.json(body)
    elif isinstance(body, str):
        builder.text(body, content_type or TEXT_PLAIN)
    else:
        builder.body(body)
        if content_type:
            builder.content_type(content_type)

    return builder


def ok(body: Union[str, bytes, dict, list] = "", content_type: Optional[str] = None) -> HTTPResponse:
    """200 OK."""
    return _with_body(HTTPStatus.OK, body, content_type).build()


def created(body: Union[str, bytes, dict, list] = "", location: Optional[str] = None) -> HTTPResponse:
    """
    201 Created.

    Args:
        body: Usually the created resource.
        location: URL of the created resource, sent as the Location header.
    """
    builder = _with_body(HTTPStatus.CREATED, body)
    if location:
        builder.header("Location", location)
    return builder.build()


def error_response(status: HTTPStatus, message: str) -> HTTPResponse:
    """Plain-text error response with the given status."""
    return ResponseBuilder().status(status).text(message).build()


def bad_request(message: str = "Bad Request") -> HTTPResponse:
    """400 Bad Request: malformed request, bad id, invalid body."""
    return error_response(HTTPStatus.BAD_REQUEST, message)


def not_found(message: str = "404 Not Found") -> HTTPResponse:
    """404 Not Found: unknown route or missing user."""
    return error_response(HTTPStatus.NOT_FOUND, message)


def method_not_allowed(allowed_methods: list[str]) -> HTTPResponse:
    """
    405 Method Not Allowed.

    Includes the Allow header listing valid methods (RFC 7231).
    """
    return (ResponseBuilder()
        .status(HTTPStatus.METHOD_NOT_ALLOWED)
        .header("Allow", ", ".join(allowed_methods))
        .text("Method Not Allowed")
        .build())


def conflict(message: str = "Conflict") -> HTTPResponse:
    """409 Conflict: the write violates a uniqueness constraint."""
    return error_response(HTTPStatus.CONFLICT, message)


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    """500 Internal Server Error."""
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, message)
