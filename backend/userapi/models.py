"""SQLModel data models.

The service persists a single table, `users`. Lookups by email and by
first name are backed by (non-unique) indexes.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    """A user record.

    Fields:
    - `id`: assigned by the store on insert and never changed afterwards
    - `email`: alternate lookup key; uniqueness is not enforced
    - `first_name`: display name, exposed as `name` over the API
    """
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, nullable=False)
    first_name: str = Field(index=True, nullable=False)
    age: Optional[int] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
