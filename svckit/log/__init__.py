"""
Contextual logging

Every record carries a single ``info`` field built from the calling
function's name and the request context:

    |FN:<function>|IP:<client ip>|SS:<session>|US:<user>|TY:<request type>

Contents:
    - context: LogContext, RequestType and the per-thread/task bound context
    - formatter: composite field builder and the console/file formatter
    - logger: ContextLogger and the process wide get_logger()
"""
from svckit.log.context import (
    LogContext,
    RequestType,
    bind_context,
    current_context,
    new_session_id,
)
from svckit.log.formatter import InfoFormatter, compose_info
from svckit.log.logger import ContextLogger, caller_name, get_logger

__all__ = [
    'LogContext',
    'RequestType',
    'bind_context',
    'current_context',
    'new_session_id',
    'InfoFormatter',
    'compose_info',
    'ContextLogger',
    'caller_name',
    'get_logger',
]
