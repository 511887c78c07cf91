"""Storage layer: the users table, engine handling and the CRUD repository."""

from .database import Database
from .models import User, users, metadata
from .repository import UserRepository, UserNotFoundError, DuplicateEmailError

__all__ = [
    "Database",
    "User",
    "users",
    "metadata",
    "UserRepository",
    "UserNotFoundError",
    "DuplicateEmailError",
]
