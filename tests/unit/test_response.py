"""
Unit tests for HTTP response building.
"""

import json
from datetime import datetime, timezone

from userserver.http.response import (
    HTTPResponse,
    ResponseBuilder,
    format_http_date,
    ok,
    created,
    bad_request,
    not_found,
    method_not_allowed,
    conflict,
    internal_error,
    error_response,
)
from userserver.http.status_codes import HTTPStatus


def split_response(raw: bytes):
    """Split serialized response into (status line, headers dict, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("utf-8").split("\r\n")
    headers = dict(line.split(": ", 1) for line in lines[1:])
    return lines[0], headers, body


class TestHTTPResponse:
    """Tests for HTTPResponse serialization."""

    def test_status_line(self):
        response = HTTPResponse(status=HTTPStatus.NOT_FOUND)

        assert response.status_line == "HTTP/1.1 404 Not Found"

    def test_to_bytes_adds_standard_headers(self):
        """Test that Content-Length, Date and Server are filled in."""
        response = HTTPResponse(status=HTTPStatus.OK, body=b"Hello world")

        status_line, headers, body = split_response(response.to_bytes("TestServer/0.1"))

        assert status_line == "HTTP/1.1 200 OK"
        assert headers["Content-Length"] == "11"
        assert headers["Server"] == "TestServer/0.1"
        assert headers["Date"].endswith("GMT")
        assert body == b"Hello world"

    def test_explicit_headers_are_kept(self):
        response = HTTPResponse(status=HTTPStatus.OK, headers={"Server": "Custom"})

        _, headers, _ = split_response(response.to_bytes())

        assert headers["Server"] == "Custom"

    def test_content_length_counts_bytes(self):
        """Test Content-Length for multi-byte UTF-8 bodies."""
        response = ok("héllo")

        _, headers, body = split_response(response.to_bytes())

        assert headers["Content-Length"] == str(len("héllo".encode("utf-8")))
        assert body.decode("utf-8") == "héllo"

    def test_set_header_chains(self):
        response = HTTPResponse(status=HTTPStatus.OK)

        assert response.set_header("Connection", "close") is response
        assert response.headers["Connection"] == "close"


class TestResponseBuilder:
    """Tests for ResponseBuilder class."""

    def test_json_body(self):
        response = ResponseBuilder().json({"id": 1, "name": "Zoë"}).build()

        assert response.headers["Content-Type"] == "application/json"
        assert json.loads(response.text) == {"id": 1, "name": "Zoë"}

    def test_status_accepts_int(self):
        response = ResponseBuilder().status(409).build()

        assert response.status is HTTPStatus.CONFLICT

    def test_to_bytes(self):
        raw = ResponseBuilder().status(HTTPStatus.CREATED).text("made").to_bytes()

        assert raw.startswith(b"HTTP/1.1 201 Created\r\n")
        assert raw.endswith(b"\r\n\r\nmade")


class TestResponseHelpers:
    """Tests for the response helper functions."""

    def test_ok_with_text(self):
        response = ok("Updated user")

        assert response.status == HTTPStatus.OK
        assert response.headers["Content-Type"] == "text/plain; charset=utf-8"
        assert response.text == "Updated user"

    def test_ok_with_list(self):
        response = ok([])

        assert response.headers["Content-Type"] == "application/json"
        assert response.text == "[]"

    def test_created_with_location(self):
        response = created({"id": 3}, location="/users/3")

        assert response.status == HTTPStatus.CREATED
        assert response.headers["Location"] == "/users/3"

    def test_error_helpers(self):
        assert bad_request("Invalid ID: abc").status == HTTPStatus.BAD_REQUEST
        assert bad_request("Invalid ID: abc").text == "Invalid ID: abc"
        assert not_found().text == "404 Not Found"
        assert conflict("Email already exists").status == HTTPStatus.CONFLICT
        assert internal_error().text == "Internal Server Error"
        assert error_response(HTTPStatus.PAYLOAD_TOO_LARGE, "too big").status == 413

    def test_method_not_allowed(self):
        response = method_not_allowed(["GET", "POST"])

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "GET, POST"


class TestHTTPStatus:
    """Tests for HTTPStatus helpers."""

    def test_phrases(self):
        assert HTTPStatus.OK.phrase == "OK"
        assert HTTPStatus.PAYLOAD_TOO_LARGE.phrase == "Payload Too Large"
        assert HTTPStatus.HTTP_VERSION_NOT_SUPPORTED.phrase == "HTTP Version Not Supported"

    def test_categories(self):
        assert HTTPStatus.CREATED.is_success
        assert HTTPStatus.CONFLICT.is_client_error
        assert HTTPStatus.SERVICE_UNAVAILABLE.is_server_error
        assert not HTTPStatus.NOT_FOUND.is_success


def test_format_http_date():
    dt = datetime(2024, 1, 15, 10, 30, 0, tzinfo=timezone.utc)

    assert format_http_date(dt) == "Mon, 15 Jan 2024 10:30:00 GMT"
