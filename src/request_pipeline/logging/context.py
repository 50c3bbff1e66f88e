"""Log context variables propagated across threads and async boundaries."""

from contextvars import ContextVar
from typing import Dict, Optional

_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
_method: ContextVar[Optional[str]] = ContextVar("method", default=None)
_stage: ContextVar[Optional[str]] = ContextVar("stage", default=None)


def set_log_context(
    request_id: Optional[str] = None,
    method: Optional[str] = None,
    stage: Optional[str] = None,
) -> None:
    """Set context values. Only non-None arguments are applied."""
    if request_id is not None:
        _request_id.set(request_id)
    if method is not None:
        _method.set(method)
    if stage is not None:
        _stage.set(stage)


def get_log_context() -> Dict[str, Optional[str]]:
    return {
        "request_id": _request_id.get(),
        "method": _method.get(),
        "stage": _stage.get(),
    }


def clear_log_context() -> None:
    _request_id.set(None)
    _method.set(None)
    _stage.set(None)
