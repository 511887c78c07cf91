"""Request body schemas."""

from pydantic import BaseModel, ConfigDict, Field


class UserPayload(BaseModel):
    """
    Body of POST /users and PUT /users?id=...

        {"name": "Ada Lovelace", "email": "ada@example.org"}

    Both fields are required for create and update alike. Surrounding
    whitespace is stripped before the length check; unknown keys are ignored.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    name: str = Field(..., min_length=1, description="Display name, non-empty")
    email: str = Field(..., min_length=1, description="Email address, unique across users")
