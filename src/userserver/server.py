"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the pieces together.

=============================================================================
REQUEST FLOW
=============================================================================

    SocketServer.accept()
          │
          ▼
    Connection.read_request()          one recv() of buffer_size bytes
          │
          ▼
    RequestParser.parse()              HTTPParseError → 400/405/413/505
          │
          ▼
    MiddlewarePipeline                 LoggingMiddleware
          │
          ▼
    Router.handle()                    404 / 405 / handler
          │
          ▼
    UserHandler.<operation>()          one repository call, one DB connection
          │
          ▼
    HTTPResponse.to_bytes()            + Connection: close
          │
          ▼
    Connection.send_response(); close()

Everything above runs on the accepting thread; the next connection is
accepted only after the current one is closed.

=============================================================================
"""

import logging
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState
from .db import Database, UserRepository
from .handlers import UserHandler, HealthHandler, database_check
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, HTTPStatus, Router,
    error_response, internal_error,
)
from .middleware import MiddlewarePipeline, Middleware, LoggingMiddleware


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Sequential HTTP/1.1 server.

        server = HTTPServer(ServerConfig(port=8080))

        @server.get("/hello")
        def hello(request):
            return ok("Hello world")

        server.use(LoggingMiddleware())
        server.run()          # blocks until SIGINT/SIGTERM or stop()
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Args:
            config: Server configuration. Defaults are used if omitted.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._parser = RequestParser(buffer_size=self.config.buffer_size)

        self._router = Router()
        self._middleware = MiddlewarePipeline()
        self._startup_hooks: List[Callable[[], None]] = []

        # middleware.wrap(router.handle), built lazily
        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Add middleware; the first added runs outermost. Returns self."""
        self._middleware.add(middleware)
        self._handler = None
        return self

    def on_startup(self, hook: Callable[[], None]) -> Callable[[], None]:
        """Register a callable to run in run() after logging is configured."""
        self._startup_hooks.append(hook)
        return hook

    @property
    def router(self) -> Router:
        return self._router

    @property
    def address(self):
        """The bound (host, port) once the server is listening."""
        return self._socket_server.address

    # =========================================================================
    # ROUTE REGISTRATION (Decorator Style)
    # =========================================================================

    def get(self, path: str, **kwargs):
        return self._router.get(path, **kwargs)

    def post(self, path: str, **kwargs):
        return self._router.post(path, **kwargs)

    def put(self, path: str, **kwargs):
        return self._router.put(path, **kwargs)

    def delete(self, path: str, **kwargs):
        return self._router.delete(path, **kwargs)

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Start the server (blocking).

        Args:
            host: Override config host.
            port: Override config port.
        """
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._setup_logging()

        for hook in self._startup_hooks:
            hook()

        logger.info(f"Starting {self.config.server_name} on {self.config.host}:{self.config.port}")
        logger.info("Registered routes:")
        self._router.log_routes()

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            logger.info("Server stopped")

    def stop(self):
        """Ask the accept loop to exit; run() returns within about a second."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket is bound."""
        return self._socket_server.wait_until_ready(timeout)

    def _setup_logging(self):
        """Configure the root logger from config.log_level."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("userserver").setLevel(level)

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def dispatch(self, data: bytes, client_address: tuple[str, int] = ("", 0)) -> HTTPResponse:
        """
        Turn raw request bytes into a response.

        Parse errors become plain-text responses carrying the parser's
        status code; exceptions escaping a handler become 500.
        """
        try:
            request = self._parser.parse(data, client_address)
        except HTTPParseError as e:
            logger.info(f"Rejected request from {client_address[0] or '-'}: {e}")
            return error_response(HTTPStatus(e.status_code), str(e))

        if self._handler is None:
            self._handler = self._middleware.wrap(self._router.handle)

        try:
            return self._handler(request)
        except Exception as e:
            logger.exception(f"Handler error for {request.method} {request.path}: {e}")
            return internal_error()

    def _handle_connection(self, conn: Connection):
        """
        Serve exactly one request on the connection, then close it.

        Called by SocketServer for every accepted connection.
        """
        with conn:
            try:
                data = conn.read_request()
            except TimeoutError:
                logger.info(f"[{conn.id}] Request read timeout")
                response = error_response(HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                self._send(conn, response)
                return

            if not data:
                logger.debug(f"[{conn.id}] Client closed without sending a request")
                return

            conn.state = ConnectionState.PROCESSING
            response = self.dispatch(data, conn.address)
            self._send(conn, response)

    def _send(self, conn: Connection, response: HTTPResponse):
        response.headers["Connection"] = "close"
        conn.send_response(response.to_bytes(self.config.server_name))


def create_app(
    config: Optional[ServerConfig] = None,
    database: Optional[Database] = None,
) -> HTTPServer:
    """
    Build the user server: routes, middleware and schema bootstrap.

    Args:
        config: Server configuration (defaults to ServerConfig()).
        database: Database to use; built from config.database_url if omitted.

    Returns:
        HTTPServer ready for run().

    Example:
        app = create_app(ServerConfig.from_env())
        app.run()
    """
    config = config or ServerConfig()
    server = HTTPServer(config)

    database = database or Database(config.database_url)
    server.database = database

    server.use(LoggingMiddleware(log_format=config.log_format))

    UserHandler(UserRepository(database)).register(server.router)

    health = HealthHandler()
    health.add_check("database", database_check(database))
    server.get("/health", name="health")(health.handle)

    if config.init_db:
        @server.on_startup
        def init_schema():
            # The server still starts when the database is down; requests
            # then fail individually with 500.
            try:
                database.init_schema()
            except SQLAlchemyError as e:
                logger.error(f"Could not create users table at {database.safe_url}: {e}")

    return server
