"""Composite ``info`` field and the console/file record format."""
import logging
import time
from typing import Optional

from colorama import Fore, Style

from svckit.log.context import LogContext

TIMESTAMP_FORMAT = "%m%d %H%M%S"
RECORD_FORMAT = "%(asctime)s [%(levelname)s] [%(info)s] %(message)s"

# (attribute, tag) in rendering order
_INFO_FIELDS = (
    ("client_ip", "IP"),
    ("session_id", "SS"),
    ("user_id", "US"),
    ("request_type", "TY"),
)

_LEVEL_COLORS = {
    logging.DEBUG: Fore.WHITE,
    logging.INFO: Fore.CYAN,
    logging.WARNING: Fore.YELLOW,
    logging.ERROR: Fore.RED,
    logging.CRITICAL: Fore.MAGENTA + Style.BRIGHT,
}


def compose_info(func_name: Optional[str], context: Optional[LogContext] = None) -> str:
    """Build the pipe delimited composite field.

    Example:
        >>> compose_info("handle_login", LogContext(client_ip="10.0.0.1", session_id="sess123"))
        '|FN:handle_login|IP:10.0.0.1|SS:sess123'
    """
    parts = ["|FN:", func_name or ""]
    if context is not None:
        for attribute, tag in _INFO_FIELDS:
            value = getattr(context, attribute)
            if value is not None:
                parts.append(f"|{tag}:{value}")
    return "".join(parts)


class InfoFormatter(logging.Formatter):
    """Renders ``MMDD HHMMSS.mmm [LEVEL] [<info>] message``.

    Only the composite field is rendered, never the individual context keys.
    """

    def __init__(self, colors: bool = False):
        super().__init__(fmt=RECORD_FORMAT, datefmt=TIMESTAMP_FORMAT)
        self.colors = colors

    def formatTime(self, record, datefmt=None):
        stamp = time.strftime(datefmt or TIMESTAMP_FORMAT, self.converter(record.created))
        return f"{stamp}.{int(record.msecs):03d}"

    def format(self, record):
        if not hasattr(record, "info"):
            record.info = compose_info(record.funcName)
        if not self.colors:
            return super().format(record)
        # levelname is shared by every handler of the record; restore it
        levelname = record.levelname
        color = _LEVEL_COLORS.get(record.levelno)
        if color:
            record.levelname = f"{color}{levelname}{Style.RESET_ALL}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname
