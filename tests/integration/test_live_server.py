"""
End-to-end tests: raw HTTP over a real TCP socket against the running server.
"""

import json
import socket
import threading
import time

import pytest


def parse_response(raw: bytes):
    """Split a raw response into (status code, headers dict, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("utf-8").split("\r\n")
    status_code = int(lines[0].split(" ")[1])
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(": ")
        headers[name.lower()] = value
    return status_code, headers, body


def json_request(method: str, target: str, payload: dict) -> bytes:
    body = json.dumps(payload).encode()
    return (
        f"{method} {target} HTTP/1.1\r\n"
        "Host: localhost\r\n"
        "Content-Type: application/json\r\n"
        f"Content-Length: {len(body)}\r\n"
        "\r\n"
    ).encode() + body


class TestUserServer:
    """CRUD flow and protocol behaviour over sockets."""

    def test_hello(self, running_server):
        status, headers, body = parse_response(
            running_server.request(b"GET /hello HTTP/1.1\r\nHost: localhost\r\n\r\n")
        )

        assert status == 200
        assert body == b"Hello world"
        assert headers["connection"] == "close"
        assert headers["content-length"] == "11"
        assert headers["server"] == "UserServer/1.0"

    def test_crud_flow(self, running_server):
        status, headers, body = parse_response(running_server.request(
            json_request("POST", "/users", {"name": "Ada", "email": "ada@example.org"})
        ))
        assert status == 201
        user = json.loads(body)
        assert headers["location"] == f"/users/{user['id']}"

        status, _, body = parse_response(
            running_server.request(f"GET /users/{user['id']} HTTP/1.1\r\n\r\n".encode())
        )
        assert status == 200
        assert json.loads(body) == user

        status, _, body = parse_response(running_server.request(
            json_request("PUT", f"/users?id={user['id']}", {"name": "Ada King", "email": "king@example.org"})
        ))
        assert (status, body) == (200, b"Updated user")

        status, _, body = parse_response(running_server.request(b"GET /users HTTP/1.1\r\n\r\n"))
        assert json.loads(body) == [{"id": user["id"], "name": "Ada King", "email": "king@example.org"}]

        status, _, body = parse_response(
            running_server.request(f"DELETE /users?id={user['id']} HTTP/1.1\r\n\r\n".encode())
        )
        assert (status, body) == (200, b"Deleted user")

        status, _, _ = parse_response(
            running_server.request(f"GET /users/{user['id']} HTTP/1.1\r\n\r\n".encode())
        )
        assert status == 404

    def test_duplicate_email(self, running_server):
        request = json_request("POST", "/users", {"name": "Ada", "email": "ada@example.org"})
        running_server.request(request)

        status, _, body = parse_response(running_server.request(request))

        assert (status, body) == (409, b"Email already exists")

    @pytest.mark.parametrize("raw, expected_status", [
        (b"GET /nowhere HTTP/1.1\r\n\r\n", 404),
        (b"GET /users/abc HTTP/1.1\r\n\r\n", 400),
        (b"PATCH /users HTTP/1.1\r\n\r\n", 405),
        (b"BREW /users HTTP/1.1\r\n\r\n", 405),
        (b"GET /users HTTP/3.0\r\n\r\n", 505),
        (b"not http at all\r\n\r\n", 400),
    ])
    def test_error_statuses(self, running_server, raw, expected_status):
        status, headers, _ = parse_response(running_server.request(raw))

        assert status == expected_status
        assert headers["connection"] == "close"

    def test_request_larger_than_buffer(self, running_server):
        payload = {"name": "N" * 2000, "email": "big@example.org"}

        status, _, _ = parse_response(running_server.request(json_request("POST", "/users", payload)))

        assert status == 413

    def test_client_disconnect_does_not_stop_server(self, running_server):
        with socket.create_connection(("127.0.0.1", running_server.port), timeout=5):
            pass

        status, _, _ = parse_response(running_server.request(b"GET /hello HTTP/1.1\r\n\r\n"))

        assert status == 200

    def test_connections_served_one_after_another(self, running_server):
        """Test that a slow client does not lose its request to a later one."""
        slow = socket.create_connection(("127.0.0.1", running_server.port), timeout=5)
        try:
            fast = socket.create_connection(("127.0.0.1", running_server.port), timeout=5)
            fast.sendall(b"GET /hello HTTP/1.1\r\n\r\n")

            slow.sendall(b"GET /users HTTP/1.1\r\n\r\n")
            slow_status, _, slow_body = parse_response(_read_all(slow))
            fast_status, _, fast_body = parse_response(_read_all(fast))
            fast.close()
        finally:
            slow.close()

        assert (slow_status, json.loads(slow_body)) == (200, [])
        assert (fast_status, fast_body) == (200, b"Hello world")

    def test_health(self, running_server):
        status, headers, body = parse_response(running_server.request(b"GET /health HTTP/1.1\r\n\r\n"))

        assert status == 200
        assert headers["cache-control"] == "no-store"
        assert json.loads(body)["status"] == "healthy"



class TestSlowClients:
    """Clients that send too little or too much must not stall the listener."""

    def test_silent_client_gets_408(self, server_factory):
        server = server_factory(timeout=0.2)

        with socket.create_connection(("127.0.0.1", server.port), timeout=5) as sock:
            status, headers, body = parse_response(_read_all(sock))

        assert status == 408
        assert body == b"Request timeout"
        assert headers["connection"] == "close"

    def test_server_recovers_after_timeout(self, server_factory):
        server = server_factory(timeout=0.2)

        with socket.create_connection(("127.0.0.1", server.port), timeout=5) as sock:
            _read_all(sock)

        status, _, body = parse_response(server.request(b"GET /hello HTTP/1.1\r\n\r\n"))

        assert (status, body) == (200, b"Hello world")

    def test_client_that_keeps_sending_does_not_block_others(self, running_server):
        """Test that a client trickling bytes after its request cannot hold the listener."""
        stop = threading.Event()
        trickler = socket.create_connection(("127.0.0.1", running_server.port), timeout=5)

        def trickle():
            try:
                trickler.sendall(b"GET /hello HTTP/1.1\r\n\r\n")
                while not stop.is_set():
                    trickler.sendall(b"x")
                    time.sleep(0.1)
            except OSError:
                pass

        sender = threading.Thread(target=trickle, daemon=True)
        sender.start()
        try:
            time.sleep(0.2)
            status, _, body = parse_response(
                running_server.request(b"GET /hello HTTP/1.1\r\n\r\n", timeout=4.0)
            )
        finally:
            stop.set()
            sender.join(timeout=2.0)
            trickler.close()

        assert (status, body) == (200, b"Hello world")


def _read_all(sock: socket.socket) -> bytes:
    chunks = []
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)
