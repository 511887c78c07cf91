"""
pytest configuration and fixtures.
"""

import socket
import threading
from dataclasses import replace
from pathlib import Path
from typing import Callable, Generator, List, Optional
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from userserver import HTTPServer, ServerConfig, create_app
from userserver.db import Database, UserRepository


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request for a single user."""
    return (
        b"GET /users/7?verbose=1 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"name": "Ada Lovelace", "email": "ada@example.org"}'
    return (
        b"POST /users HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n\r\n".encode()
        + body
    )


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """SQLite database file private to the test."""
    return f"sqlite:///{tmp_path / 'users.db'}"


@pytest.fixture
def database(database_url: str) -> Generator[Database, None, None]:
    """Database with the users table created."""
    db = Database(database_url)
    db.init_schema()
    yield db
    db.dispose()


@pytest.fixture
def repository(database: Database) -> UserRepository:
    return UserRepository(database)


@pytest.fixture
def config(database_url: str) -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        timeout=5.0,
        database_url=database_url,
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class ServerThread:
    """Runs an HTTPServer in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.stop()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def request(self, raw: bytes, timeout: float = 5.0) -> bytes:
        """Send raw bytes on a new connection and read until the server closes it."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=timeout) as sock:
            sock.sendall(raw)
            chunks = []
            while True:
                chunk = sock.recv(4096)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)


@pytest.fixture
def server_factory(config: ServerConfig, database: Database) -> Generator[Callable[..., ServerThread], None, None]:
    """Start user servers with config overrides, e.g. server_factory(timeout=0.2)."""
    started: List[ServerThread] = []

    def start(**overrides) -> ServerThread:
        server_config = replace(config, **overrides)
        server_thread = ServerThread(create_app(server_config, database=database))
        server_thread.start()
        started.append(server_thread)
        return server_thread

    yield start

    for server_thread in started:
        server_thread.stop()


@pytest.fixture
def running_server(server_factory) -> ServerThread:
    """The full user server listening on an ephemeral port."""
    return server_factory()
