"""Repository encapsulating database operations for user records.

Lookups return the record or `None`; absence is a normal outcome, not
an error. Writes only flush: committing is the job of the enclosing
`database.transaction` so a service can group several writes.
"""

from typing import List, Optional, Protocol

from sqlalchemy import func
from sqlalchemy.exc import MultipleResultsFound
from sqlmodel import Session, select

from . import models
from .errors import AmbiguousLookupError


class UserStore(Protocol):
    """Persistence contract the services depend on."""

    def get(self, user_id: int) -> Optional[models.User]: ...

    def find_by_email(self, email: str) -> Optional[models.User]: ...

    def find_by_first_name(self, first_name: str) -> Optional[models.User]: ...

    def save(self, user: models.User) -> models.User: ...

    def delete(self, user_id: int) -> bool: ...

    def count(self) -> int: ...

    def list(self, offset: int = 0, limit: int = 50) -> List[models.User]: ...


class UserRepository:
    """CRUD operations for `User` objects."""
    def __init__(self, session: Session):
        self.session = session

    def get(self, user_id: int) -> Optional[models.User]:
        """Get a `User` by primary key."""
        return self.session.get(models.User, user_id)

    def find_by_email(self, email: str) -> Optional[models.User]:
        """Return the `User` with `email` or `None` if not found."""
        return self._find_one("email", email)

    def find_by_first_name(self, first_name: str) -> Optional[models.User]:
        """Return the `User` with `first_name` or `None` if not found."""
        return self._find_one("first_name", first_name)

    def _find_one(self, field: str, value) -> Optional[models.User]:
        """Select by a non-key column, refusing to pick between duplicates.

        Raises `AmbiguousLookupError` when more than one row matches.
        """
        stmt = select(models.User).where(getattr(models.User, field) == value)
        try:
            return self.session.exec(stmt).one_or_none()
        except MultipleResultsFound as exc:
            raise AmbiguousLookupError(field, value) from exc

    def save(self, user: models.User) -> models.User:
        """Insert or update `user` and return the managed instance.

        A record without an id is inserted and gets one assigned; a
        record with an id replaces the stored row with the same id.
        """
        managed = self.session.merge(user)
        self.session.flush()
        self.session.refresh(managed)
        return managed

    def delete(self, user_id: int) -> bool:
        """Remove the user with `user_id`.

        Returns True if a row was removed and False if none existed.
        """
        user = self.get(user_id)
        if user is None:
            return False
        self.session.delete(user)
        self.session.flush()
        return True

    def count(self) -> int:
        """Return the number of stored users."""
        stmt = select(func.count()).select_from(models.User)
        return self.session.exec(stmt).one()

    def list(self, offset: int = 0, limit: int = 50) -> List[models.User]:
        """Return up to `limit` users ordered by id, skipping `offset`."""
        stmt = select(models.User).order_by(models.User.id).offset(offset).limit(limit)
        return list(self.session.exec(stmt).all())
