"""
=============================================================================
CONNECTION WRAPPER
=============================================================================

Wraps one accepted client socket.

=============================================================================
ONE READ, ONE WRITE, CLOSE
=============================================================================

Every connection follows the same short life:

    ┌──────────┐   recv(buffer_size)   ┌──────────┐   sendall()   ┌────────┐
    │   NEW    │ ────────────────────► │ READING  │ ────────────► │WRITING │
    └──────────┘       (once)          └──────────┘               └───┬────┘
                                                                      │
                                                                      ▼
                                                                 ┌────────┐
                                                                 │ CLOSED │
                                                                 └────────┘

There is no keep-alive and no body streaming: the request must arrive in
the first recv() of at most `buffer_size` bytes. Whatever the client sent
beyond that is discarded when the socket is closed.

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid


logger = logging.getLogger(__name__)

# Upper bound on bytes discarded by close() per connection.
DRAIN_LIMIT = 64 * 1024


class ConnectionState(Enum):
    """Connection lifecycle states, used for logging and sanity checks."""
    NEW = "new"                # Accepted, nothing read yet
    READING = "reading"        # Waiting for the request bytes
    PROCESSING = "processing"  # Handler is running
    WRITING = "writing"        # Sending the response
    CLOSING = "closing"        # Shutdown sequence in progress
    CLOSED = "closed"          # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier used as a log prefix.
        state: Current connection state.
        created_at: Timestamp when the connection was accepted.
        buffer_size: Maximum number of bytes read for the request.
        timeout: Socket timeout in seconds (None = blocking).
        drain_timeout: Total time close() spends discarding leftover client bytes.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    buffer_size: int = 1024
    timeout: Optional[float] = 30.0
    drain_timeout: float = 0.5

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def client_port(self) -> int:
        return self.address[1]

    @property
    def age(self) -> float:
        """Seconds since the connection was accepted."""
        return time.time() - self.created_at

    def read_request(self) -> bytes:
        """
        Read the request with a single recv().

        Returns:
            Up to buffer_size bytes; b"" when the client closed the
            connection without sending anything.

        Raises:
            TimeoutError: If nothing arrives within the socket timeout.
        """
        self.state = ConnectionState.READING

        try:
            data = self.socket.recv(self.buffer_size)
        except socket.timeout:
            raise TimeoutError("Request read timeout")
        except (ConnectionResetError, BrokenPipeError):
            return b""

        logger.debug(f"[{self.id}] Read {len(data)} bytes from {self.client_ip}:{self.client_port}")
        return data

    def send_response(self, data: bytes) -> bool:
        """
        Send response bytes with sendall().

        Returns:
            True if the data was handed to the kernel, False if the client
            went away.
        """
        self.state = ConnectionState.WRITING

        try:
            self.socket.sendall(data)
            return True
        except (ConnectionResetError, BrokenPipeError, OSError) as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    def _drain(self):
        """
        Discard what the client is still sending, for at most drain_timeout
        seconds in total and at most DRAIN_LIMIT bytes.

        Unread bytes left in the kernel buffer turn close() into an RST,
        which can destroy the response before the client reads it.
        """
        deadline = time.monotonic() + self.drain_timeout
        drained = 0
        try:
            while drained < DRAIN_LIMIT:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self.socket.settimeout(remaining)
                chunk = self.socket.recv(self.buffer_size)
                if not chunk:
                    break
                drained += len(chunk)
        except (socket.timeout, OSError):
            pass

        if drained:
            logger.debug(f"[{self.id}] Discarded {drained} unread bytes")

    def close(self):
        """
        Close the connection.

        shutdown(SHUT_WR) sends FIN so the client sees the end of the
        response, then the file descriptor is released. Safe to call twice.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        self._drain()

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age * 1000:.1f}ms")

    def __enter__(self):
        """
        Context manager entry:

            with conn:
                data = conn.read_request()
                conn.send_response(response)
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
