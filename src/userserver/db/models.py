"""
User record and the users table.

    CREATE TABLE IF NOT EXISTS users (
        id    SERIAL PRIMARY KEY,
        name  VARCHAR NOT NULL,
        email VARCHAR UNIQUE NOT NULL
    )

The table is declared with SQLAlchemy Core so the same definition creates
a SERIAL column on PostgreSQL and an autoincrement INTEGER on SQLite.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict

from sqlalchemy import Column, Integer, MetaData, String, Table


metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String, nullable=False),
    Column("email", String, nullable=False, unique=True),
)


@dataclass
class User:
    """A row of the users table."""

    id: int
    name: str
    email: str

    @classmethod
    def from_row(cls, row: Any) -> "User":
        """Build a User from a SQLAlchemy result row."""
        mapping = row._mapping
        return cls(id=mapping["id"], name=mapping["name"], email=mapping["email"])

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serializable form: {"id": ..., "name": ..., "email": ...}."""
        return asdict(self)
