"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

The listener loop: binds a TCP port and accepts connections one at a time.

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. socket()    Create a TCP socket
    2. bind()      Associate it with HOST:PORT
    3. listen()    Let the OS queue incoming connections (backlog)
    4. accept()    Take the next queued connection → new client socket
    5. close()     Release the listening socket on shutdown

=============================================================================
SERIAL ACCEPT LOOP
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   while running:                                                     │
    │       accept()              ◄── waits at most 1 s, then re-checks    │
    │           │                     the running flag                     │
    │           ▼                                                          │
    │       Connection(...)                                                │
    │           │                                                          │
    │           ▼                                                          │
    │       handler(conn)         ◄── runs to completion; the next         │
    │                                 accept() happens only afterwards     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Connections that arrive while a request is being handled wait in the
kernel's accept queue (up to `backlog` of them).

=============================================================================
"""

import socket
import signal
import threading
import logging
from typing import Callable, Optional, Tuple

from .connection import Connection
from ..config import ServerConfig


logger = logging.getLogger(__name__)


class SocketServer:
    """
    TCP listener that hands each accepted connection to a callback.

    Usage:
        def handle_connection(conn: Connection):
            with conn:
                data = conn.read_request()
                conn.send_response(b"HTTP/1.1 200 OK\\r\\n\\r\\n")

        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        """
        Args:
            config: Server configuration (host, port, backlog, buffer_size,
                    timeout). The socket is created in start().
        """
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False

        self._ready_event = threading.Event()

        self._original_handlers: dict = {}

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port); the real port once listening on port 0."""
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return (host, port)
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        """Create the listening socket with SO_REUSEADDR and a 1 s accept timeout."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Restarting the server must not fail while old sockets sit in TIME_WAIT.
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # accept() wakes up every second so shutdown() is noticed.
        sock.settimeout(1.0)

        return sock

    def _setup_signals(self):
        """
        Install SIGTERM/SIGINT handlers that call shutdown().

        Signal handlers can only be installed from the main thread; when
        the server runs in another thread (tests, embedding) this is a no-op
        and shutdown() must be called directly.
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and run the accept loop.

        This method BLOCKS until shutdown() is called.

        Args:
            connection_handler: Called with each accepted Connection. The
                                next connection is accepted only after it
                                returns.

        Raises:
            OSError: If the address cannot be bound.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)

        self._running = True
        self._setup_signals()

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """Accept connections one by one until shutdown() is called."""
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
            )

            try:
                connection_handler(conn)
            except Exception as e:
                # One broken connection must not take the listener down.
                logger.exception(f"[{conn.id}] Unhandled connection error: {e}")
                conn.close()

    def shutdown(self):
        """
        Stop the accept loop.

        Safe to call from a signal handler or another thread, and more
        than once. The loop exits within about one second.
        """
        logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._ready_event.clear()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. Returns False on timeout."""
        return self._ready_event.wait(timeout)
