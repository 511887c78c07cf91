"""
=============================================================================
USER HANDLERS
=============================================================================

The five CRUD endpoints of the users resource, plus the /hello greeting.

    ┌──────────┬──────────────────────┬───────────────────────────────────┐
    │ Method   │ Path                 │ Success                           │
    ├──────────┼──────────────────────┼───────────────────────────────────┤
    │ GET      │ /users/:id           │ 200 {"id", "name", "email"}       │
    │ GET      │ /users               │ 200 [{...}, {...}]                │
    │ POST     │ /users               │ 201 {...} + Location              │
    │ PUT      │ /users?id=:id        │ 200 Updated user                  │
    │ DELETE   │ /users?id=:id        │ 200 Deleted user                  │
    │ GET      │ /hello               │ 200 Hello world                   │
    └──────────┴──────────────────────┴───────────────────────────────────┘

=============================================================================
ERROR MAPPING
=============================================================================

    id is not an integer            → 400 Invalid ID: <raw>
    ?id= missing                    → 400 Missing ID
    body is not {name, email} JSON  → 400 Invalid request body
    UserNotFoundError               → 404 User not found
    DuplicateEmailError             → 409 Email already exists
    other SQLAlchemyError           → 500 <operation message>

=============================================================================
"""

import logging
import re
from typing import Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from ..db import UserRepository, UserNotFoundError, DuplicateEmailError
from ..http.request import HTTPRequest, HTTPParseError
from ..http.response import (
    HTTPResponse,
    ok,
    created,
    bad_request,
    not_found,
    conflict,
    internal_error,
)
from ..http.router import Router
from ..schemas import UserPayload


logger = logging.getLogger(__name__)

# Ids are stored in a 32-bit signed INTEGER / SERIAL column.
ID_PATTERN = re.compile(r"^[+-]?\d+$")
MAX_ID = 2**31 - 1
MIN_ID = -(2**31)


def parse_id(raw: Optional[str]) -> Optional[int]:
    """
    Parse a user id from a path segment or query value.

    Returns:
        The id, or None if raw is not a base-10 integer that fits the
        id column.
    """
    if raw is None:
        return None
    raw = raw.strip()
    if not ID_PATTERN.match(raw):
        return None
    value = int(raw)
    if not MIN_ID <= value <= MAX_ID:
        return None
    return value


def parse_payload(request: HTTPRequest) -> Optional[UserPayload]:
    """Validate the JSON body as a UserPayload; None if it is not one."""
    try:
        return UserPayload.model_validate(request.json)
    except (HTTPParseError, ValidationError) as e:
        logger.debug(f"Rejected body {request.text!r}: {e}")
        return None


class UserHandler:
    """
    Request handlers for the users resource.

    Usage:
        handler = UserHandler(UserRepository(Database(url)))
        handler.register(router)

    Each handler method performs at most one repository call, so each
    request opens at most one database connection.
    """

    def __init__(self, repository: UserRepository):
        self.repository = repository

    def register(self, router: Router) -> Router:
        """
        Register all routes on the router.

        /users/:id is registered before /users so that it wins for GET.
        """
        router.get("/users/:id", name="get_user")(self.get_user)
        router.get("/users", name="list_users")(self.list_users)
        router.post("/users", name="create_user")(self.create_user)
        router.put("/users", name="update_user")(self.update_user)
        router.delete("/users", name="delete_user")(self.delete_user)
        router.get("/hello", name="hello")(self.hello)
        return router

    # =========================================================================
    # READ
    # =========================================================================

    def get_user(self, request: HTTPRequest) -> HTTPResponse:
        """GET /users/:id"""
        raw_id = request.path_params.get("id", "")
        user_id = parse_id(raw_id)
        if user_id is None:
            return bad_request(f"Invalid ID: {raw_id}")

        try:
            user = self.repository.find_by_id(user_id)
        except UserNotFoundError:
            return not_found("User not found")
        except SQLAlchemyError as e:
            logger.error(f"Failed to load user {user_id}: {e}")
            return internal_error(f"Error: {e}")

        return ok(user.to_dict())

    def list_users(self, request: HTTPRequest) -> HTTPResponse:
        """GET /users"""
        try:
            all_users = self.repository.find_all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to list users: {e}")
            return internal_error(f"Error: {e}")

        return ok([user.to_dict() for user in all_users])

    # =========================================================================
    # WRITE
    # =========================================================================

    def create_user(self, request: HTTPRequest) -> HTTPResponse:
        """POST /users with {"name": ..., "email": ...}"""
        payload = parse_payload(request)
        if payload is None:
            return bad_request("Invalid request body")

        try:
            user = self.repository.create(payload.name, payload.email)
        except DuplicateEmailError:
            return conflict("Email already exists")
        except SQLAlchemyError as e:
            logger.error(f"Failed to insert user: {e}")
            return internal_error("Failed to insert user into database")

        logger.info(f"Created user {user.id}")
        return created(user.to_dict(), location=f"/users/{user.id}")

    def update_user(self, request: HTTPRequest) -> HTTPResponse:
        """PUT /users?id=:id with {"name": ..., "email": ...}"""
        raw_id = request.get_query("id")
        if raw_id is None:
            return bad_request("Missing ID")

        user_id = parse_id(raw_id)
        if user_id is None:
            return bad_request(f"Invalid ID: {raw_id}")

        payload = parse_payload(request)
        if payload is None:
            return bad_request("Invalid request body")

        try:
            self.repository.update(user_id, payload.name, payload.email)
        except UserNotFoundError:
            return not_found("User not found")
        except DuplicateEmailError:
            return conflict("Email already exists")
        except SQLAlchemyError as e:
            logger.error(f"Failed to update user {user_id}: {e}")
            return internal_error(f"Error updating user: {e}")

        logger.info(f"Updated user {user_id}")
        return ok("Updated user")

    def delete_user(self, request: HTTPRequest) -> HTTPResponse:
        """DELETE /users?id=:id"""
        raw_id = request.get_query("id")
        if raw_id is None:
            return bad_request("Missing ID")

        user_id = parse_id(raw_id)
        if user_id is None:
            return bad_request(f"Invalid ID: {raw_id}")

        try:
            self.repository.delete(user_id)
        except UserNotFoundError:
            return not_found("User not found")
        except SQLAlchemyError as e:
            logger.error(f"Failed to delete user {user_id}: {e}")
            return internal_error(f"Error deleting user: {e}")

        logger.info(f"Deleted user {user_id}")
        return ok("Deleted user")

    # =========================================================================
    # MISC
    # =========================================================================

    def hello(self, request: HTTPRequest) -> HTTPResponse:
        """GET /hello"""
        return ok("Hello world")
