"""Database transaction management.

``TransactionManager`` is the contract services code against; it hands out
handles with or without a running transaction and finishes them. The
SQLAlchemy implementation uses a ``scoped_session`` as the shared handle and
a fresh ``Session`` per transaction.

Typical use:

    db = tm.get_handle(True)
    with tm.rollback_on_failure(db):
        db.add(user)
        tm.commit(db)

or, equivalently, ``with tm.transaction() as db: db.add(user)``.
"""
import contextvars
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from functools import wraps
from typing import Generator, Generic, TypeVar

from sqlalchemy.orm import Session, scoped_session, sessionmaker

logger = logging.getLogger(__name__)

H = TypeVar("H")


class TransactionManager(ABC, Generic[H]):
    """Begin, commit and roll back transactions on handles of type ``H``."""

    @abstractmethod
    def get_handle(self, with_transaction: bool) -> H:
        """Return a new handle in a begun transaction, or the shared handle."""

    @abstractmethod
    def commit(self, handle: H) -> None:
        """Commit ``handle``. Errors from the database are not translated."""

    @abstractmethod
    def rollback(self, handle: H) -> None:
        """Roll back ``handle``. Errors from the database are not translated."""

    @contextmanager
    def rollback_on_failure(self, handle: H) -> Generator[H, None, None]:
        """Roll back ``handle`` if the block raises, then re-raise.

        Use it right after ``get_handle(True)`` so a failure in the middle of
        the transaction does not leave it open and holding locks. The
        exception seen by outer code is the original one; if the rollback
        itself fails that error is only logged.
        """
        try:
            yield handle
        except BaseException as e:
            try:
                self.rollback(handle)
            except Exception:
                logger.exception(f"Rollback after {type(e).__name__} failed")
            raise

    @contextmanager
    def transaction(self) -> Generator[H, None, None]:
        """Provide a transactional scope around a series of operations.

        Commits when the block finishes, rolls back and re-raises otherwise.
        """
        handle = self.get_handle(True)
        with self.rollback_on_failure(handle):
            yield handle
            self.commit(handle)


class SqlAlchemyTransactionManager(TransactionManager[Session]):
    """TransactionManager over a SQLAlchemy session factory."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory
        self.db = scoped_session(session_factory)
        self._active: contextvars.ContextVar = contextvars.ContextVar(
            f"svckit_active_session_{id(self)}", default=None
        )

    def get_handle(self, with_transaction: bool):
        if not with_transaction:
            return self.db
        session = self.session_factory()
        session.begin()
        return session

    def commit(self, handle) -> None:
        try:
            handle.commit()
        finally:
            self._release(handle)

    def rollback(self, handle) -> None:
        try:
            handle.rollback()
        finally:
            self._release(handle)

    def _release(self, handle) -> None:
        # the shared handle stays usable; transactional handles are single use
        if handle is not self.db:
            handle.close()

    def transactional(self, func):
        """
        Decorator running ``func`` inside ``transaction()``.

        ``func`` must accept a ``session`` keyword argument. When it is called
        while another decorated function already holds a session, it joins
        that transaction instead of opening its own.

        Example:
            >>> @tm.transactional
            ... def create_user(name, session=None):
            ...     session.add(User(name=name))
        """
        @wraps(func)
        def wrap_func(*args, **kwargs):
            session = self._active.get()
            if session is not None:
                return func(*args, session=session, **kwargs)

            with self.transaction() as session:
                token = self._active.set(session)
                try:
                    return func(*args, session=session, **kwargs)
                finally:
                    self._active.reset(token)

        return wrap_func
