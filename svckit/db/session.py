"""Database session configuration."""
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from svckit.config import Config


def create_session_factory(url: Optional[str] = None, **engine_kwargs) -> sessionmaker:
    """Create an engine and return a session factory bound to it.

    Args:
        url: SQLAlchemy database URL; taken from Config when omitted
        **engine_kwargs: passed to ``create_engine``

    Raises:
        ConfigurationError: no URL given and the DB_* variables are incomplete
    """
    if url is None:
        Config.validate()
        url = Config.SQLALCHEMY_DATABASE_URL

    # Create database engine
    engine = create_engine(url, **engine_kwargs)

    # Create session factory
    return sessionmaker(autoflush=False, bind=engine)
