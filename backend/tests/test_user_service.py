from unittest.mock import MagicMock

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from userapi import models
from userapi.database import run_in_transaction, transaction
from userapi.errors import UserNotFoundError
from userapi.repositories import UserRepository
from userapi.services import UserService


def _service(stored=None):
    session = MagicMock()
    repo = MagicMock()
    repo.find_by_email.return_value = stored
    repo.get.return_value = stored
    repo.save.side_effect = lambda user: user
    return UserService(session, repo=repo), session, repo


def test_rename_saves_exactly_one_modified_copy():
    old = models.User(id=1, email="a@b.com", first_name="Old")
    svc, session, repo = _service(stored=old)

    renamed = svc.rename_by_email("a@b.com", "New")

    assert (renamed.id, renamed.email, renamed.first_name) == (1, "a@b.com", "New")
    repo.save.assert_called_once()
    saved = repo.save.call_args.args[0]
    assert (saved.id, saved.email, saved.first_name) == (1, "a@b.com", "New")
    # the fetched record itself is left untouched
    assert old.first_name == "Old"
    session.commit.assert_called_once()


def test_rename_unknown_email_saves_nothing():
    svc, session, repo = _service(stored=None)

    with pytest.raises(UserNotFoundError):
        svc.rename_by_email("x@y.com", "New")

    repo.save.assert_not_called()
    session.rollback.assert_called_once()
    session.commit.assert_not_called()


def test_get_and_delete_report_missing_users():
    svc, _session, repo = _service(stored=None)
    repo.delete.return_value = False
    with pytest.raises(UserNotFoundError):
        svc.get(7)
    with pytest.raises(UserNotFoundError):
        svc.find_by_email("nobody@example.com")
    with pytest.raises(UserNotFoundError):
        svc.delete(7)


def test_replace_missing_user_saves_nothing():
    svc, _session, repo = _service(stored=None)
    with pytest.raises(UserNotFoundError):
        svc.replace(3, "Name", "n@example.com")
    repo.save.assert_not_called()


@pytest.fixture
def memory_session():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


def test_failed_unit_of_work_leaves_no_trace(memory_session):
    repo = UserRepository(memory_session)

    def _work(session):
        repo.save(models.User(email="a@b.com", first_name="A"))
        raise RuntimeError("abort")

    with pytest.raises(RuntimeError):
        run_in_transaction(memory_session, _work)
    assert repo.count() == 0


def test_transaction_commits_on_success(memory_session):
    repo = UserRepository(memory_session)
    with transaction(memory_session):
        saved = repo.save(models.User(email="a@b.com", first_name="A"))
    memory_session.expire_all()
    assert repo.get(saved.id).first_name == "A"


def test_service_create_and_rename_against_database(memory_session):
    svc = UserService(memory_session)
    created = svc.create("Old", "a@b.com", age=20)
    renamed = svc.rename_by_email("a@b.com", "New")
    assert renamed.id == created.id
    assert svc.get(created.id).first_name == "New"
    assert svc.get(created.id).age == 20
    items, total = svc.list()
    assert total == 1 and items[0].email == "a@b.com"


def test_find_by_first_name_reports_missing_user():
    svc, _session, repo = _service(stored=None)
    repo.find_by_first_name.return_value = None
    with pytest.raises(UserNotFoundError):
        svc.find_by_first_name("Nobody")
    repo.find_by_first_name.return_value = models.User(id=4, email="g@example.com", first_name="Grace")
    assert svc.find_by_first_name("Grace").id == 4
