"""Per-request contextual fields attached to every log record."""
import contextvars
import uuid
from contextlib import contextmanager
from enum import Enum
from typing import Any, Iterator, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RequestType(str, Enum):
    """Well-known request-type codes. Any other short code is accepted too."""

    MOBILE = "MOB"
    BACK_OFFICE = "BOF"
    MESSAGE_QUEUE = "MSQ"
    SYSTEM = "SYS"
    SCHEDULER = "SCH"


class LogContext(BaseModel):
    """Immutable set of request fields rendered into the ``info`` field.

    Fields left as ``None`` are not rendered. The aliases are the keys the
    HTTP controllers and queue consumers put into their context mappings, so
    ``LogContext.model_validate({"clientIP": ..., "session": ...})`` works.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    client_ip: Optional[str] = Field(default=None, alias="clientIP")
    session_id: Optional[str] = Field(default=None, alias="session")
    user_id: Optional[str] = Field(default=None, alias="userId")
    request_type: Optional[str] = Field(default=None, alias="types")

    @field_validator("client_ip", "session_id", "user_id", "request_type", mode="before")
    @classmethod
    def _to_text(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, Enum):
            return str(value.value)
        return str(value)

    @classmethod
    def from_request(
        cls,
        request: Any,
        session_id: Optional[str] = None,
        user_id: Optional[str] = None,
        request_type: Union[RequestType, str, None] = None,
    ) -> "LogContext":
        """Build a context from a Starlette/FastAPI style request object.

        The client address is read from ``request.client.host`` when the
        request has one.
        """
        client = getattr(request, "client", None)
        client_ip = getattr(client, "host", None) if client is not None else None
        return cls(
            client_ip=client_ip,
            session_id=session_id,
            user_id=user_id,
            request_type=request_type,
        )

    def with_fields(self, **fields: Any) -> "LogContext":
        """Return a copy with some fields replaced."""
        data = self.model_dump()
        data.update(fields)
        return LogContext(**data)


ContextLike = Union[LogContext, Mapping[str, Any], None]

_bound_context: contextvars.ContextVar[Optional[LogContext]] = contextvars.ContextVar(
    "svckit_log_context", default=None
)


def to_context(value: ContextLike) -> Optional[LogContext]:
    """Normalize what callers pass as ``context`` into a LogContext or None."""
    if value is None or isinstance(value, LogContext):
        return value
    return LogContext.model_validate(dict(value))


def current_context() -> Optional[LogContext]:
    """Context bound to the running thread or task, if any."""
    return _bound_context.get()


@contextmanager
def bind_context(context: ContextLike) -> Iterator[Optional[LogContext]]:
    """Use ``context`` for log calls made with ``context=None`` inside the block."""
    token = _bound_context.set(to_context(context))
    try:
        yield _bound_context.get()
    finally:
        _bound_context.reset(token)


def new_session_id() -> str:
    """Random 12 character id for tagging every record of one request."""
    return uuid.uuid4().hex[:12]
