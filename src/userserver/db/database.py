"""
=============================================================================
DATABASE ACCESS
=============================================================================

A thin wrapper around a SQLAlchemy engine.

=============================================================================
ONE CONNECTION PER OPERATION
=============================================================================

The engine is created with NullPool: every connect() opens a brand new
DBAPI connection and closing it really closes it. Nothing is shared
between requests.

    handler ──► repository.find_by_id(7)
                    │
                    ├──► engine.connect()      open
                    ├──► SELECT ... WHERE id = :id
                    └──► close                 gone

Writes go through begin(), which commits when the block exits normally and
rolls back when it raises.

=============================================================================
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool

from .models import metadata


logger = logging.getLogger(__name__)

# Driver installed with the package (psycopg2-binary).
POSTGRES_DRIVER = "postgresql+psycopg2"


def normalize_url(url: str) -> str:
    """
    Pin PostgreSQL URLs without an explicit driver to psycopg2.

        postgres://u:p@db/app      →  postgresql+psycopg2://u:p@db/app
        postgresql://u:p@db/app    →  postgresql+psycopg2://u:p@db/app
        postgresql+psycopg://...   →  unchanged
        sqlite:///users.db         →  unchanged
    """
    parsed = make_url(url)
    if parsed.drivername in ("postgres", "postgresql"):
        parsed = parsed.set(drivername=POSTGRES_DRIVER)
    return parsed.render_as_string(hide_password=False)


class Database:
    """
    Engine holder for the users database.

    Usage:
        db = Database("postgresql://postgres:postgres@db:5432/postgres")
        db.init_schema()

        with db.connect() as conn:
            conn.execute(...)

        with db.begin() as conn:
            conn.execute(insert(...))   # committed on exit
    """

    def __init__(self, url: str, echo: bool = False):
        """
        Args:
            url: SQLAlchemy database URL.
            echo: Log every SQL statement (SQLAlchemy's own logger).
        """
        self.url = normalize_url(url)
        self.engine: Engine = create_engine(self.url, poolclass=NullPool, echo=echo)

    @property
    def safe_url(self) -> str:
        """The URL with the password masked, for logs."""
        return self.engine.url.render_as_string(hide_password=True)

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        """Open a fresh connection for reads; closed on exit."""
        with self.engine.connect() as conn:
            yield conn

    @contextmanager
    def begin(self) -> Iterator[Connection]:
        """Open a fresh connection inside a transaction; commit or roll back on exit."""
        with self.engine.begin() as conn:
            yield conn

    def init_schema(self) -> None:
        """
        Create the users table if it does not exist.

        Raises:
            SQLAlchemyError: If the database is unreachable or refuses DDL.
        """
        metadata.create_all(self.engine, checkfirst=True)
        logger.info(f"Database schema ready at {self.safe_url}")

    def ping(self) -> bool:
        """Check that a connection can be opened and a trivial query runs."""
        try:
            with self.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning(f"Database ping failed: {e}")
            return False

    def dispose(self) -> None:
        self.engine.dispose()
