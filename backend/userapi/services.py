"""Business logic services used by HTTP controllers.

Services are intentionally thin: they apply the business rule, run
their writes inside one transaction and persist records via the
repository. Missing records are reported with `UserNotFoundError`.
"""

import logging
from typing import Optional

from sqlmodel import Session

from . import models, repositories
from .database import transaction
from .errors import UserNotFoundError

logger = logging.getLogger("userapi.services")


class UserService:
    """Create, read, rename, replace and delete user records."""
    def __init__(self, session: Session, repo: Optional[repositories.UserStore] = None):
        self.session = session
        self.user_repo = repo if repo is not None else repositories.UserRepository(session)

    def get(self, user_id: int) -> models.User:
        """Return the user with `user_id` or raise `UserNotFoundError`."""
        user = self.user_repo.get(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def find_by_email(self, email: str) -> models.User:
        """Return the user with `email` or raise `UserNotFoundError`."""
        user = self.user_repo.find_by_email(email)
        if user is None:
            raise UserNotFoundError(email)
        return user

    def find_by_first_name(self, first_name: str) -> models.User:
        """Return the user named `first_name` or raise `UserNotFoundError`."""
        user = self.user_repo.find_by_first_name(first_name)
        if user is None:
            raise UserNotFoundError(first_name)
        return user

    def list(self, offset: int = 0, limit: int = 50):
        """Return a page of users and the total number stored."""
        return self.user_repo.list(offset=offset, limit=limit), self.user_repo.count()

    def create(self, name: str, email: str, age: Optional[int] = None) -> models.User:
        """Insert a new user and return it with its id assigned."""
        with transaction(self.session):
            user = self.user_repo.save(models.User(email=email, first_name=name, age=age))
        logger.info("user created id=%s", user.id)
        return user

    def rename_by_email(self, email: str, new_name: str) -> models.User:
        """Give the user found by `email` a new first name.

        Fetches the record, saves a copy carrying `new_name` and returns
        the saved record. Raises `UserNotFoundError` without saving
        anything when no user has `email`.
        """
        with transaction(self.session):
            user = self.user_repo.find_by_email(email)
            if user is None:
                raise UserNotFoundError(email)
            renamed = self.user_repo.save(_copy(user, first_name=new_name))
        logger.info("user renamed id=%s", renamed.id)
        return renamed

    def replace(self, user_id: int, name: str, email: str, age: Optional[int] = None) -> models.User:
        """Replace every mutable field of an existing user.

        The id and creation time are kept. Raises `UserNotFoundError`
        without saving when `user_id` is unknown.
        """
        with transaction(self.session):
            user = self.user_repo.get(user_id)
            if user is None:
                raise UserNotFoundError(user_id)
            replaced = self.user_repo.save(_copy(user, email=email, first_name=name, age=age))
        logger.info("user replaced id=%s", replaced.id)
        return replaced

    def delete(self, user_id: int) -> None:
        """Delete the user with `user_id`; raise `UserNotFoundError` if absent."""
        with transaction(self.session):
            removed = self.user_repo.delete(user_id)
        if not removed:
            raise UserNotFoundError(user_id)
        logger.info("user deleted id=%s", user_id)


def _copy(user: models.User, **changes) -> models.User:
    """Build a detached copy of `user` with `changes` applied."""
    data = {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "age": user.age,
        "created_at": user.created_at,
    }
    data.update(changes)
    return models.User(**data)
