from unittest import mock

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError

from svckit.config import Config
from svckit.db import SqlAlchemyTransactionManager, create_session_factory
from svckit.exceptions import ConfigurationError


def count_users(tm):
    return tm.get_handle(False).execute(text("SELECT COUNT(*) FROM users")).scalar()


def add_user(session, name):
    session.execute(text("INSERT INTO users (name) VALUES (:name)"), {"name": name})


def mock_manager():
    return SqlAlchemyTransactionManager(mock.Mock())


def test_shared_handle_is_stable(tm):
    assert tm.get_handle(False) is tm.get_handle(False)
    assert tm.get_handle(False) is tm.db


def test_transactional_handles_are_distinct(tm):
    first = tm.get_handle(True)
    second = tm.get_handle(True)
    try:
        assert first is not second
        assert first is not tm.db
        assert first.in_transaction()
        assert second.in_transaction()
    finally:
        tm.rollback(first)
        tm.rollback(second)


def test_commit_persists(tm):
    db = tm.get_handle(True)
    add_user(db, "Jan")
    tm.commit(db)
    assert count_users(tm) == 1


def test_rollback_discards(tm):
    db = tm.get_handle(True)
    add_user(db, "Jan")
    tm.rollback(db)
    assert count_users(tm) == 0


def test_commit_error_passes_through_unchanged():
    tm = mock_manager()
    handle = mock.Mock()
    error = OperationalError("COMMIT", {}, Exception("connection lost"))
    handle.commit.side_effect = error

    with pytest.raises(OperationalError) as excinfo:
        tm.commit(handle)
    assert excinfo.value is error
    handle.close.assert_called_once_with()


def test_rollback_error_passes_through_unchanged():
    tm = mock_manager()
    handle = mock.Mock()
    error = RuntimeError("rollback failed")
    handle.rollback.side_effect = error

    with pytest.raises(RuntimeError) as excinfo:
        tm.rollback(handle)
    assert excinfo.value is error


def test_shared_handle_not_closed_on_commit():
    tm = mock_manager()
    tm.db = mock.Mock()
    tm.commit(tm.db)
    tm.db.commit.assert_called_once_with()
    tm.db.close.assert_not_called()


def test_rollback_on_failure_reraises_same_exception():
    tm = mock_manager()
    handle = mock.Mock()
    boom = RuntimeError("boom")

    with pytest.raises(RuntimeError) as excinfo:
        with tm.rollback_on_failure(handle):
            raise boom

    assert excinfo.value is boom
    assert excinfo.value.args == ("boom",)
    handle.rollback.assert_called_once_with()


def test_rollback_on_failure_handles_base_exceptions():
    tm = mock_manager()
    handle = mock.Mock()

    with pytest.raises(KeyboardInterrupt):
        with tm.rollback_on_failure(handle):
            raise KeyboardInterrupt()

    handle.rollback.assert_called_once_with()


def test_rollback_on_failure_keeps_original_when_rollback_fails(caplog):
    tm = mock_manager()
    handle = mock.Mock()
    handle.rollback.side_effect = RuntimeError("connection gone")
    boom = ValueError("boom")

    with pytest.raises(ValueError) as excinfo:
        with tm.rollback_on_failure(handle):
            raise boom

    assert excinfo.value is boom
    assert "Rollback after ValueError failed" in caplog.text


def test_rollback_on_failure_without_error_does_nothing():
    tm = mock_manager()
    handle = mock.Mock()

    with tm.rollback_on_failure(handle) as db:
        assert db is handle

    handle.rollback.assert_not_called()


def test_rollback_on_failure_undoes_writes(tm):
    db = tm.get_handle(True)
    with pytest.raises(RuntimeError):
        with tm.rollback_on_failure(db):
            add_user(db, "Jan")
            raise RuntimeError("boom")
    assert count_users(tm) == 0


def test_transaction_scope_commits(tm):
    with tm.transaction() as db:
        add_user(db, "Jan")
        add_user(db, "Anna")
    assert count_users(tm) == 2


def test_transaction_scope_rolls_back_on_error(tm):
    with pytest.raises(IntegrityError):
        with tm.transaction() as db:
            add_user(db, "Jan")
            add_user(db, "Jan")
    assert count_users(tm) == 0


def test_transactional_joins_outer_transaction(tm):
    sessions = []

    @tm.transactional
    def create_user(name, session=None):
        sessions.append(session)
        add_user(session, name)

    @tm.transactional
    def register_family(names, session=None):
        sessions.append(session)
        for name in names:
            create_user(name)
        raise RuntimeError("abort registration")

    with pytest.raises(RuntimeError):
        register_family(["Jan", "Anna"])

    assert len(sessions) == 3
    assert all(s is sessions[0] for s in sessions)
    assert count_users(tm) == 0

    create_user("Ola")
    assert count_users(tm) == 1
    assert sessions[-1] is not sessions[0]


def test_create_session_factory_from_url(tmp_path):
    factory = create_session_factory(f"sqlite:///{tmp_path / 'app.sqlite'}")
    session = factory()
    try:
        assert session.execute(text("SELECT 1")).scalar() == 1
    finally:
        session.close()
        factory.kw["bind"].dispose()


def test_create_session_factory_requires_config(monkeypatch):
    monkeypatch.setattr(Config, "SQLALCHEMY_DATABASE_URL", None)
    monkeypatch.setattr(Config, "DB_HOST", None)
    monkeypatch.setattr(Config, "DB_PASSWORD", None)
    with pytest.raises(ConfigurationError, match="DB_HOST"):
        create_session_factory()
