"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and reject malformed input
before any service is called.
"""

from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from . import models


class UserCreateIn(BaseModel):
    """Payload for creating a user."""
    name: str = Field(max_length=100)
    email: EmailStr
    age: Optional[int] = Field(default=None, ge=0, le=150)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class UserReplaceIn(UserCreateIn):
    """Payload for replacing every field of an existing user."""


class RenameIn(BaseModel):
    """Payload for renaming the user identified by `email`."""
    email: EmailStr
    name: str = Field(max_length=100)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class UserOut(BaseModel):
    """Serialized user record."""
    id: int
    email: str
    name: str
    age: Optional[int] = None

    @classmethod
    def from_record(cls, user: models.User) -> "UserOut":
        return cls(id=user.id, email=user.email, name=user.first_name, age=user.age)


class UserPage(BaseModel):
    """A page of users plus the total count."""
    items: List[UserOut]
    total: int
    offset: int
    limit: int
