"""
=============================================================================
USERSERVER CLI ENTRY POINT
=============================================================================

    # Defaults: 0.0.0.0:8080, DATABASE_URL from the environment or .env
    python -m userserver

    # Custom port and database
    python -m userserver --port 3000 --database-url postgresql://u:p@localhost/app

    # Skip CREATE TABLE at startup
    python -m userserver --no-init-db

Configuration is read from the environment first (ServerConfig.from_env),
then any flag given on the command line overrides it.

=============================================================================
"""

import argparse
import sys

from . import __version__
from .config import ServerConfig, LOG_LEVELS, LOG_FORMATS
from .server import create_app


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="userserver",
        description="HTTP server exposing CRUD operations on a users table",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m userserver                          # Run with defaults
  python -m userserver --port 3000              # Custom port
  python -m userserver --log-format json        # JSON access log
  DATABASE_URL=sqlite:///users.db python -m userserver
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: $HTTP_HOST or 0.0.0.0)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: $HTTP_PORT or 8080)"
    )

    parser.add_argument(
        "--buffer-size",
        type=int,
        default=None,
        help="Bytes read per request (default: $HTTP_BUFFER_SIZE or 1024)"
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for a request (default: $HTTP_TIMEOUT or 30)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # DATABASE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy database URL (default: $DATABASE_URL)"
    )

    parser.add_argument(
        "--no-init-db",
        action="store_true",
        help="Do not create the users table at startup"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (default: $HTTP_LOG_LEVEL or INFO)"
    )

    parser.add_argument(
        "--log-format",
        type=str.lower,
        choices=LOG_FORMATS,
        default=None,
        help="Access log format (default: $HTTP_LOG_FORMAT or text)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"userserver {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Environment configuration with command-line overrides applied."""
    config = ServerConfig.from_env()

    overrides = {
        "host": args.host,
        "port": args.port,
        "buffer_size": args.buffer_size,
        "timeout": args.timeout,
        "database_url": args.database_url,
        "log_level": args.log_level,
        "log_format": args.log_format,
    }
    for field_name, value in overrides.items():
        if value is not None:
            setattr(config, field_name, value)

    if args.no_init_db:
        config.init_db = False

    return config


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
        server = create_app(config)
        server.run()
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
