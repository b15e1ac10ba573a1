import os
from dotenv import load_dotenv
import logging
from typing import Optional, Union

from svckit.exceptions import ConfigurationError

load_dotenv()

logger = logging.getLogger(__name__)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_DIR: str = os.getenv("LOG_DIR", "logs")
    LOG_COLORS: bool = _env_flag("LOG_COLORS", "1")

    DB_HOST: Optional[str] = os.getenv("DB_HOST")
    DB_PORT: Optional[str] = os.getenv("DB_PORT")
    DB_NAME: Optional[str] = os.getenv("DB_NAME")
    DB_USER: Optional[str] = os.getenv("DB_USER")
    DB_PASSWORD: Optional[str] = os.getenv("DB_PASSWORD")
    SQLALCHEMY_DATABASE_URL: Optional[str] = os.getenv("DATABASE_URL")

    if SQLALCHEMY_DATABASE_URL is None and all([DB_USER, DB_PASSWORD, DB_HOST, DB_PORT, DB_NAME]):
        SQLALCHEMY_DATABASE_URL = f"postgresql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"

    DB_SETTINGS = ("DB_HOST", "DB_PORT", "DB_NAME", "DB_USER", "DB_PASSWORD")

    @classmethod
    def validate(cls):
        if cls.SQLALCHEMY_DATABASE_URL:
            return
        missing = [name for name in cls.DB_SETTINGS if getattr(cls, name) is None]
        if missing:
            logger.error(f"Missing environment variables: {', '.join(missing)}")
            raise ConfigurationError(f"Missing environment variables: {', '.join(missing)}")

    @classmethod
    def log_level(cls, level: Union[str, int, None] = None) -> int:
        """Resolve a level name such as "DEBUG" (or a number) to its value.

        Falls back to LOG_LEVEL. Raises ConfigurationError for unknown names.
        """
        level = cls.LOG_LEVEL if level is None else level
        if isinstance(level, int):
            return level
        levels = logging.getLevelNamesMapping()
        name = str(level).strip().upper()
        if name not in levels:
            logger.error(f"Unknown log level: {level!r}")
            raise ConfigurationError(f"Unknown log level {level!r}, expected one of: {', '.join(sorted(levels))}")
        return levels[name]
