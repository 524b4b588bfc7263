from pathlib import Path
import os
import tempfile

# Point the app at a throwaway database before `userapi` is imported.
_DB_DIR = Path(tempfile.mkdtemp(prefix="userapi-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR / 'test.db'}"
os.environ["ENV"] = "dev"
os.environ["JWT_SECRET"] = "test-secret-with-at-least-32-bytes!!"
os.environ["JWT_ALGORITHM"] = "HS256"
os.environ["JWT_ISSUER"] = "https://issuer.test"
os.environ.pop("JWT_AUDIENCE", None)
os.environ.pop("JWT_JWKS_URL", None)

import pytest
from sqlmodel import SQLModel

from userapi.auth import SCOPE_READ, SCOPE_WRITE, create_access_token
from userapi.database import create_db_and_tables, engine


@pytest.fixture(autouse=True)
def reset_db():
    """Start every test with an empty users table."""
    SQLModel.metadata.drop_all(engine)
    create_db_and_tables()
    yield


@pytest.fixture
def headers_for():
    """Return a factory building Authorization headers for given scopes."""
    def _make(*scopes, subject="tester", minutes=None):
        token = create_access_token(subject, scopes, expires_minutes=minutes)
        return {"Authorization": f"Bearer {token}"}
    return _make


@pytest.fixture
def read_headers(headers_for):
    return headers_for(SCOPE_READ)


@pytest.fixture
def write_headers(headers_for):
    return headers_for(SCOPE_READ, SCOPE_WRITE)
