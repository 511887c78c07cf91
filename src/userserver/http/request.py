"""
=============================================================================
HTTP REQUEST PARSING
=============================================================================

Turns the bytes of a single socket read into an HTTPRequest.

=============================================================================
WHAT ARRIVES ON THE WIRE
=============================================================================

    PUT /users?id=7 HTTP/1.1\r\n              ← Request line
    Host: localhost:8080\r\n                  ← Headers
    Content-Type: application/json\r\n
    Content-Length: 41\r\n
    \r\n                                      ← Blank line
    {"name": "Ada", "email": "ada@example.org"}  ← Body

The server performs exactly ONE read of at most `buffer_size` bytes per
connection. Whatever did not fit in that read is never seen, so the parser
is told how big the buffer was: a request that filled the buffer and is
still incomplete was truncated (413), a request that is incomplete without
filling the buffer is simply malformed (400).

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any
from urllib.parse import parse_qs, urlparse, unquote
import re
import json


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Carries the HTTP status code that should be returned to the client:

        400 Bad Request                 - Malformed request syntax
        405 Method Not Allowed          - Unknown method
        413 Payload Too Large           - Request did not fit the buffer
        505 HTTP Version Not Supported  - Unknown HTTP version
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    Represents a parsed HTTP request.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         GET, POST, PUT, DELETE, ...
        path:           Request path WITHOUT query string ("/users")
        version:        "HTTP/1.1" or "HTTP/1.0"
        headers:        Header dict with LOWERCASE keys
        query_params:   "?id=1&id=2" → {"id": ["1", "2"]}
        body:           Raw body bytes
        path_params:    Filled in by the router ("/users/:id" → {"id": "7"})
        client_address: (ip, port) of the peer
        raw:            The bytes the request was parsed from

    =========================================================================
    """

    method: str
    path: str
    version: str = "HTTP/1.1"

    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    body: bytes = b""

    path_params: Dict[str, str] = field(default_factory=dict)

    client_address: tuple[str, int] = ("", 0)
    raw: bytes = b""

    _body_json: Optional[Any] = field(default=None, repr=False)

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def text(self) -> str:
        """The body decoded as UTF-8 (lossy)."""
        return self.body.decode("utf-8", errors="replace")

    @property
    def json(self) -> Any:
        """
        Parse the request body as JSON.

        Parsed once and cached.

        Raises:
            HTTPParseError: If the body is empty or not valid JSON.
        """
        if self._body_json is None:
            if not self.body.strip():
                raise HTTPParseError("Empty request body")
            try:
                self._body_json = json.loads(self.body.decode("utf-8"))
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise HTTPParseError(f"Invalid JSON body: {e}")
        return self._body_json

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get the first value of a query parameter.

        Example:
            # URL: /users?id=1&id=2
            request.get_query("id")  # Returns "1"
        """
        values = self.query_params.get(name, [])
        return values[0] if values else default


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

    ==========================================================================
    PARSER STEPS
    ==========================================================================

        Raw bytes (one read, <= buffer_size)
              │
              ▼
        1. Find the \\r\\n\\r\\n header terminator
              │  missing → 413 if the buffer was full, else 400
              ▼
        2. Parse the request line  METHOD SP URI SP VERSION
              │  malformed → 400, unknown method → 405, version → 505
              ▼
        3. Parse headers (lowercase names, duplicates comma-joined)
              │
              ▼
        4. Cut the body to Content-Length
              │  short body → 413 if the buffer was full, else 400
              ▼
        HTTPRequest

    ==========================================================================
    """

    VALID_METHODS = {
        "GET",
        "POST",
        "PUT",
        "DELETE",
        "PATCH",
        "HEAD",
        "OPTIONS",
    }

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, buffer_size: Optional[int] = None):
        """
        Args:
            buffer_size: Size of the read the data came from. When the data
                         fills it completely, an incomplete request is
                         reported as truncated (413). None disables the check.
        """
        self.buffer_size = buffer_size

    def _incomplete(self, data: bytes, message: str) -> HTTPParseError:
        if self.buffer_size is not None and len(data) >= self.buffer_size:
            return HTTPParseError(
                f"Request too large: exceeds {self.buffer_size} bytes",
                status_code=413,
            )
        return HTTPParseError(message)

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw HTTP request data into an HTTPRequest object.

        Args:
            data: Raw HTTP request bytes from the socket.
            client_address: Client's (ip, port) tuple for logging.

        Returns:
            Parsed HTTPRequest object.

        Raises:
            HTTPParseError: If the request is malformed or truncated.
        """
        if not data:
            raise HTTPParseError("Empty request")

        # =====================================================================
        # STEP 1: Split headers and body at the \r\n\r\n boundary
        # =====================================================================
        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise self._incomplete(data, "Incomplete request: no header terminator")

        header_section = data[:header_end].decode("utf-8", errors="replace")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")

        # =====================================================================
        # STEP 2: Request line
        # =====================================================================
        method, path, query_params, version = self._parse_request_line(lines[0])

        # =====================================================================
        # STEP 3: Headers
        # =====================================================================
        headers = self._parse_headers(lines[1:])

        # =====================================================================
        # STEP 4: Body
        # =====================================================================
        # Without Content-Length the rest of the read is the body.
        if "content-length" in headers:
            raw_length = headers["content-length"]
            # 1*DIGIT only: no sign, no underscores, no non-ASCII digits.
            if not (raw_length.isascii() and raw_length.isdigit()):
                raise HTTPParseError(f"Invalid Content-Length: {raw_length}")
            content_length = int(raw_length)

            if len(body) < content_length:
                raise self._incomplete(
                    data,
                    f"Incomplete body: expected {content_length} bytes, got {len(body)}",
                )
            body = body[:content_length]

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_params=query_params,
            body=body,
            client_address=client_address,
            raw=data,
        )

    def _parse_request_line(
        self,
        line: str
    ) -> tuple[str, str, Dict[str, list[str]], str]:
        """
        Parse the HTTP request line.

            METHOD SP REQUEST-URI SP HTTP-VERSION

            Example: "DELETE /users?id=3 HTTP/1.1"
                      ──┬─── ─────┬───── ───┬────
                        │         │         │
                     Method      URI     Version

        Returns:
            Tuple of (method, path, query_params, version)
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line}")

        method, uri, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=505,
            )

        parsed = urlparse(uri)
        path = unquote(parsed.path) or "/"
        query_params = parse_qs(parsed.query, keep_blank_values=True)

        return method, path, query_params, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse "Name: Value" lines into a dict with lowercase names.

        Continuation lines (leading space or tab) extend the previous
        header; repeated headers are joined with ", "; malformed lines
        are skipped.
        """
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers

