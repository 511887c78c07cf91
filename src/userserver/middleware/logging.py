"""
=============================================================================
REQUEST LOGGING MIDDLEWARE
=============================================================================

One access-log line per request on the "userserver.access" logger.

    text:  127.0.0.1 - - [17/Oct/2026:12:00:00 +0000] "POST /users" 201 52 3.41ms
    json:  {"request_id": "3f2a9c1e", "method": "POST", "path": "/users", ...}

Every response also gets an X-Request-ID header carrying the id used in
the log line.

=============================================================================
"""

import time
import json
import uuid
import logging
from dataclasses import dataclass, asdict

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("userserver.access")


@dataclass
class RequestLog:
    """Structured access-log entry."""

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        """Apache-style access line."""
        path = f"{self.path}?{self.query}" if self.query else self.path
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Request logging middleware.

    Should be the first middleware added so it times the whole request.

        server.use(LoggingMiddleware())                    # text lines
        server.use(LoggingMiddleware(log_format="json"))   # JSON lines
    """

    def __init__(self, log_format: str = "text"):
        """
        Args:
            log_format: "text" or "json".
        """
        self.log_format = log_format

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = str(uuid.uuid4())[:8]
        start_time = time.time()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.time() - start_time) * 1000

        response.headers["X-Request-ID"] = request_id

        raw_query = ""
        if request.query_params:
            raw_query = "&".join(
                f"{key}={value}"
                for key, values in request.query_params.items()
                for value in values
            )

        log_entry = RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.path,
            query=raw_query,
            client_ip=request.client_address[0] or "-",
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.info(json.dumps(log_entry.to_dict()))
        else:
            logger.info(log_entry.to_text())

        return response
