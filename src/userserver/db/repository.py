"""
=============================================================================
USER REPOSITORY
=============================================================================

One method per CRUD operation, each running exactly one parameterized
statement on its own connection:

    find_by_id(7)        SELECT id, name, email FROM users WHERE id = :id
    find_all()           SELECT id, name, email FROM users ORDER BY id
    create(name, email)  INSERT INTO users (name, email) VALUES (:name, :email)
    update(7, ...)       UPDATE users SET name = :name, email = :email WHERE id = :id
    delete(7)            DELETE FROM users WHERE id = :id

=============================================================================
ERRORS
=============================================================================

    UserNotFoundError     no row with that id (select / update / delete)
    DuplicateEmailError   insert or update hit the UNIQUE(email) constraint
    SQLAlchemyError       anything else from the driver, passed through

=============================================================================
"""

import logging
from typing import List

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError

from .database import Database
from .models import User, users


logger = logging.getLogger(__name__)


class UserNotFoundError(LookupError):
    """No user with the requested id."""

    def __init__(self, user_id: int):
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class DuplicateEmailError(ValueError):
    """The email address is already used by another user."""

    def __init__(self, email: str):
        super().__init__(f"Email already exists: {email}")
        self.email = email


class UserRepository:
    """CRUD access to the users table."""

    def __init__(self, database: Database):
        self.db = database

    def find_by_id(self, user_id: int) -> User:
        """
        Raises:
            UserNotFoundError: If no row has this id.
        """
        stmt = select(users.c.id, users.c.name, users.c.email).where(users.c.id == user_id)

        with self.db.connect() as conn:
            row = conn.execute(stmt).first()

        if row is None:
            raise UserNotFoundError(user_id)
        return User.from_row(row)

    def find_all(self) -> List[User]:
        """All users ordered by id; empty list when the table is empty."""
        stmt = select(users.c.id, users.c.name, users.c.email).order_by(users.c.id)

        with self.db.connect() as conn:
            rows = conn.execute(stmt).all()

        return [User.from_row(row) for row in rows]

    def create(self, name: str, email: str) -> User:
        """
        Insert a user and return it with its generated id.

        Raises:
            DuplicateEmailError: If the email is taken.
        """
        stmt = insert(users).values(name=name, email=email)

        try:
            with self.db.begin() as conn:
                result = conn.execute(stmt)
                user_id = result.inserted_primary_key[0]
        except IntegrityError as e:
            logger.info(f"Insert rejected by constraint: {e.orig}")
            raise DuplicateEmailError(email) from e

        logger.debug(f"Created user {user_id}")
        return User(id=user_id, name=name, email=email)

    def update(self, user_id: int, name: str, email: str) -> None:
        """
        Replace name and email of an existing user.

        Raises:
            UserNotFoundError: If no row has this id.
            DuplicateEmailError: If the email belongs to another user.
        """
        stmt = (
            update(users)
            .where(users.c.id == user_id)
            .values(name=name, email=email)
        )

        try:
            with self.db.begin() as conn:
                rowcount = conn.execute(stmt).rowcount
        except IntegrityError as e:
            logger.info(f"Update rejected by constraint: {e.orig}")
            raise DuplicateEmailError(email) from e

        if rowcount == 0:
            raise UserNotFoundError(user_id)

    def delete(self, user_id: int) -> None:
        """
        Raises:
            UserNotFoundError: If no row has this id.
        """
        stmt = delete(users).where(users.c.id == user_id)

        with self.db.begin() as conn:
            rowcount = conn.execute(stmt).rowcount

        if rowcount == 0:
            raise UserNotFoundError(user_id)
