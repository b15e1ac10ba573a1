"""Leveled logger that tags each record with its caller and request context."""
import logging
import os
import re
import sys
import threading
import time
from logging.handlers import TimedRotatingFileHandler
from typing import Callable, Optional, TextIO

from colorama import just_fix_windows_console

from svckit.config import Config
from svckit.exceptions import InvalidConfigurationError, PanicError, SinkFailureError
from svckit.log.context import ContextLike, current_context, to_context
from svckit.log.formatter import InfoFormatter, compose_info

# public method -> _log -> caller
_CALLER_DEPTH = 2
# logging.Logger.log -> _log -> public method -> caller
_STACKLEVEL = 3


def caller_name(depth: int = 1) -> str:
    """Short name of the function ``depth`` frames above the one calling this.

    Returns an empty string when the frame does not exist.
    """
    try:
        frame = sys._getframe(depth + 1)
    except ValueError:
        return ""
    code = frame.f_code
    return getattr(code, "co_qualname", code.co_name)


class DailyRotatingFileHandler(TimedRotatingFileHandler):
    """Rotates every 24 hours into `<name>.YYYYMMDD` and purges by age.

    A rotated file is deleted at the next rollover once its modification
    time is older than `max_age_days` days.
    """

    def __init__(self, filename: str, max_age_days: int, encoding: Optional[str] = "utf-8"):
        super().__init__(filename, when="D", interval=1, backupCount=max_age_days, encoding=encoding)
        self.max_age = max_age_days * 24 * 60 * 60
        self.suffix = "%Y%m%d"
        self.extMatch = re.compile(r"^\d{8}(\.\w+)?$", re.ASCII)

    def getFilesToDelete(self):
        dir_name, base_name = os.path.split(self.baseFilename)
        prefix = base_name + "."
        cutoff = time.time() - self.max_age
        expired = []
        for name in os.listdir(dir_name):
            if not name.startswith(prefix) or not self.extMatch.match(name[len(prefix):]):
                continue
            path = os.path.join(dir_name, name)
            try:
                if os.path.getmtime(path) < cutoff:
                    expired.append(path)
            except OSError:
                # removed by another process in the meantime
                continue
        return expired


def _build_console_handler(stream: Optional[TextIO], colors: bool) -> logging.Handler:
    handler = logging.StreamHandler(stream)
    use_colors = colors and hasattr(handler.stream, "isatty") and handler.stream.isatty()
    if use_colors:
        just_fix_windows_console()
    handler.setFormatter(InfoFormatter(colors=use_colors))
    return handler


class ContextLogger:
    """Logger writing one record per call with an ``info`` composite field.

    Every method takes the request context first (a LogContext, a mapping
    with the same keys, or None), then a printf style template and its
    arguments:

        log = get_logger()
        log.info(ctx, "user %s logged in after %d attempts", user, attempts)

    Pass ``caller="name"`` to tag the record with an explicit call site
    instead of the inspected one.
    """

    def __init__(
        self,
        name: str = "svckit",
        level: Optional[str] = None,
        stream: Optional[TextIO] = None,
        colors: Optional[bool] = None,
        log_dir: Optional[str] = None,
        exit_func: Callable[[int], None] = sys.exit,
    ):
        # not registered with logging.getLogger, so instances never share handlers
        self._logger = logging.Logger(name)
        self._logger.setLevel(Config.log_level(level))
        self._console_handler = _build_console_handler(
            stream, Config.LOG_COLORS if colors is None else colors
        )
        self._logger.addHandler(self._console_handler)
        self._log_dir = log_dir or Config.LOG_DIR
        self._exit = exit_func
        self._file_handler: Optional[logging.Handler] = None
        self._file_lock = threading.Lock()

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    @property
    def file_sink_enabled(self) -> bool:
        return self._file_handler is not None

    def set_level(self, level):
        self._logger.setLevel(Config.log_level(level))

    def enable_file_sink(self, apps_name: str, filename: str, max_age_days: int) -> None:
        """Mirror every record to ``<log_dir>/<filename>.log``.

        The file rotates every 24 hours; rotated files get a ``.YYYYMMDD``
        suffix and are purged after ``max_age_days`` days. ``filename`` has no
        extension. ``apps_name`` only names the handler for now.

        Only the first successful call has an effect; later calls return
        without doing anything.

        Raises:
            InvalidConfigurationError: max_age_days is not a positive integer
            SinkFailureError: the log directory or file could not be opened
        """
        if isinstance(max_age_days, bool) or not isinstance(max_age_days, int) or max_age_days <= 0:
            raise InvalidConfigurationError(f"max_age_days should be > 0, got {max_age_days!r}")

        with self._file_lock:
            if self._file_handler is not None:
                return

            path = os.path.join(self._log_dir, f"{filename}.log")
            try:
                os.makedirs(self._log_dir, exist_ok=True)
                handler = DailyRotatingFileHandler(path, max_age_days)
            except OSError as e:
                raise SinkFailureError(f"Could not open log file {path}: {e}") from e

            handler.set_name(f"{apps_name}:{filename}" if apps_name else filename)
            handler.setFormatter(InfoFormatter(colors=False))
            self._logger.addHandler(handler)
            self._file_handler = handler

    def debug(self, context: ContextLike, template: str, *args, caller: Optional[str] = None):
        self._log(logging.DEBUG, context, template, args, caller)

    def info(self, context: ContextLike, template: str, *args, caller: Optional[str] = None):
        self._log(logging.INFO, context, template, args, caller)

    def warn(self, context: ContextLike, template: str, *args, caller: Optional[str] = None):
        self._log(logging.WARNING, context, template, args, caller)

    warning = warn

    def error(self, context: ContextLike, template: str, *args, caller: Optional[str] = None):
        self._log(logging.ERROR, context, template, args, caller)

    def fatal(self, context: ContextLike, template: str, *args, caller: Optional[str] = None):
        """Log at CRITICAL, flush every handler and exit with status 1."""
        self._log(logging.CRITICAL, context, template, args, caller)
        self.flush()
        self._exit(1)

    def panic(self, context: ContextLike, template: str, *args, caller: Optional[str] = None):
        """Log at CRITICAL, then raise PanicError with the formatted message."""
        self._log(logging.CRITICAL, context, template, args, caller)
        try:
            message = template % args if args else template
        except (TypeError, ValueError):
            message = template
        raise PanicError(message)

    def flush(self):
        for handler in self._logger.handlers:
            handler.flush()

    def close(self):
        """Detach and close all handlers."""
        with self._file_lock:
            for handler in list(self._logger.handlers):
                self._logger.removeHandler(handler)
                handler.close()
            self._file_handler = None

    def _log(self, level: int, context: ContextLike, template: str, args: tuple, caller: Optional[str]):
        if not self._logger.isEnabledFor(level):
            return
        func_name = caller if caller is not None else caller_name(_CALLER_DEPTH)
        try:
            ctx = to_context(context) if context is not None else current_context()
        except (TypeError, ValueError):
            ctx = None
        info = compose_info(func_name, ctx)
        self._logger.log(level, template, *args, extra={"info": info}, stacklevel=_STACKLEVEL)


_default_logger: Optional[ContextLogger] = None
_default_lock = threading.Lock()


def get_logger() -> ContextLogger:
    """Process wide ContextLogger, built on first use."""
    global _default_logger
    if _default_logger is None:
        with _default_lock:
            if _default_logger is None:
                _default_logger = ContextLogger()
    return _default_logger


def _reset_default_logger() -> None:
    global _default_logger
    with _default_lock:
        if _default_logger is not None:
            _default_logger.close()
        _default_logger = None
