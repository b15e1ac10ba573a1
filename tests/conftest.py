import io
import os
import tempfile

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker

from svckit.db.transaction import SqlAlchemyTransactionManager
import svckit.log.logger as logger_module
from svckit.log.logger import ContextLogger


@pytest.fixture(autouse=True)
def reset_default_logger():
    logger_module._reset_default_logger()
    yield
    logger_module._reset_default_logger()


@pytest.fixture
def stream():
    return io.StringIO()


@pytest.fixture
def log(stream, tmp_path):
    ctx_logger = ContextLogger(
        name="svckit-test",
        level="DEBUG",
        stream=stream,
        colors=False,
        log_dir=str(tmp_path / "logs"),
    )
    yield ctx_logger
    ctx_logger.close()


@pytest.fixture(scope="function")
def session_factory():
    db_fd, db_path = tempfile.mkstemp(suffix='.sqlite')
    engine = create_engine(f'sqlite:///{db_path}')
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE users (user_id INTEGER PRIMARY KEY, name TEXT NOT NULL UNIQUE)"))
    yield sessionmaker(bind=engine)
    engine.dispose()  # release the file before removing it (Windows)
    os.close(db_fd)
    os.remove(db_path)


@pytest.fixture
def tm(session_factory):
    manager = SqlAlchemyTransactionManager(session_factory)
    yield manager
    manager.db.remove()
