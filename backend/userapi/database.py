"""Database engine, sessions and the transaction boundary.

This module configures the SQLModel/SQLAlchemy engine from
`settings.DATABASE_URL` and provides small helpers used by the
application, scripts and tests. SQLite (the local default) needs
`check_same_thread` disabled because FastAPI runs sync handlers in a
threadpool.
"""

from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar
import logging

from sqlmodel import SQLModel, Session, create_engine

from .config import settings

logger = logging.getLogger("userapi.db")

T = TypeVar("T")


def make_engine(url: str, echo: bool = False):
    """Build an engine for `url` with SQLite-friendly connect args."""
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=echo, connect_args=connect_args)


engine = make_engine(settings.DATABASE_URL, echo=settings.DB_ECHO)


def create_db_and_tables(bind=None):
    """Create database tables using SQLModel metadata.

    Intended for local development and tests; deployments apply the SQL
    files in `migrations/` with `run_migrations.py` instead.
    """
    # registers the table on the metadata
    from . import models  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)


def get_session():
    """Yield a database `Session` for FastAPI dependency injection.

    The generator yields a session and ensures it is closed when the
    request scope finishes.
    """
    with Session(engine) as session:
        yield session


@contextmanager
def transaction(session: Session) -> Iterator[Session]:
    """Run the enclosed block as one atomic unit.

    Commits when the block exits normally. On any exception the session
    is rolled back and the exception is re-raised unchanged.
    """
    try:
        yield session
        session.commit()
    except Exception:
        logger.debug("rolling back transaction", exc_info=True)
        session.rollback()
        raise


def run_in_transaction(session: Session, work: Callable[[Session], T]) -> T:
    """Call `work(session)` inside `transaction` and return its result."""
    with transaction(session):
        return work(session)
