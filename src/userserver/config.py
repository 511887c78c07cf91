"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the user server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m userserver --port 3000                          │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── HTTP_PORT=3000 DATABASE_URL=... python -m userserver      │
    │                                                                      │
    │   3. .env file in the working directory (python-dotenv)            │
    │                                                                      │
    │   4. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The database URL is a SQLAlchemy URL. The default points at the "db"
service of the container setup:

    postgresql://postgres:postgres@db:5432/postgres

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv


DEFAULT_DATABASE_URL = "postgresql://postgres:postgres@db:5432/postgres"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


def _env_bool(name: str, default: bool) -> bool:
    """Read a boolean flag such as HTTP_INIT_DB=0 / false / no."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() not in ("0", "false", "no", "off", "")


@dataclass
class ServerConfig:
    """
    Configuration for the user server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, timeout

    DATABASE
    - database_url, init_db

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    The IP address to bind to.
    - "0.0.0.0" - All network interfaces (containers)
    - "127.0.0.1" - Localhost only
    """

    port: int = 8080
    """The port number to listen on. 0 lets the OS pick a free one."""

    backlog: int = 128
    """Maximum number of queued connections waiting for accept()."""

    buffer_size: int = 1024
    """
    Size of the single read performed on each connection, in bytes.

    A request (headers + body) larger than this is rejected with
    413 Payload Too Large.
    """

    timeout: Optional[float] = 30.0
    """
    Client socket timeout in seconds.
    None = blocking (wait forever for the client to send its request).
    """

    # ─────────────────────────────────────────────────────────────────────
    # DATABASE
    # ─────────────────────────────────────────────────────────────────────

    database_url: str = DEFAULT_DATABASE_URL
    """SQLAlchemy URL of the database holding the users table."""

    init_db: bool = True
    """Create the users table on startup if it does not exist."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """Access log format: 'json' or 'text'."""

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "UserServer/1.0"
    """Value of the Server response header."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTP_HOST         Server host (default: 0.0.0.0)
        HTTP_PORT         Server port (default: 8080)
        HTTP_BUFFER_SIZE  Read buffer size in bytes (default: 1024)
        HTTP_TIMEOUT      Client read timeout in seconds (default: 30)
        HTTP_INIT_DB      Create the users table on startup (default: 1)
        HTTP_LOG_LEVEL    Logging level (default: INFO)
        HTTP_LOG_FORMAT   Access log format (default: text)
        DATABASE_URL      SQLAlchemy database URL

        A .env file in the current directory is loaded first; variables
        already present in the process environment win.

        =====================================================================
        """
        load_dotenv(find_dotenv(usecwd=True))

        return cls(
            host=os.getenv("HTTP_HOST", "0.0.0.0"),
            port=int(os.getenv("HTTP_PORT", "8080")),
            buffer_size=int(os.getenv("HTTP_BUFFER_SIZE", "1024")),
            timeout=float(os.getenv("HTTP_TIMEOUT", "30")),
            database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
            init_db=_env_bool("HTTP_INIT_DB", True),
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO").upper(),
            log_format=os.getenv("HTTP_LOG_FORMAT", "text").lower(),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: On the first invalid value found.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 64:
            raise ValueError("buffer_size must be >= 64")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if not self.database_url:
            raise ValueError("database_url must not be empty")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"Invalid log_format: {self.log_format}. Use 'text' or 'json'.")
