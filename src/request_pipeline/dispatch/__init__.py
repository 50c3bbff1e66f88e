"""
Request dispatch.

Provides:
- Dispatcher: send / download orchestration
- CancellableHandle returned for every request
- StatusPolicy for response status validation
- Completion contexts and work scopes
- Result / ResponseInfo delivered to completions
"""

from request_pipeline.dispatch.context import (
    CompletionContext,
    EventLoopCompletionContext,
    SerialCompletionContext,
    default_completion_context,
)
from request_pipeline.dispatch.dispatcher import Dispatcher
from request_pipeline.dispatch.handle import CancellableHandle
from request_pipeline.dispatch.result import ResponseInfo, Result
from request_pipeline.dispatch.status import StatusPolicy
from request_pipeline.dispatch.work_scope import NullWorkScope, TrackingWorkScope, WorkScope

__all__ = [
    "CancellableHandle",
    "CompletionContext",
    "Dispatcher",
    "EventLoopCompletionContext",
    "NullWorkScope",
    "ResponseInfo",
    "Result",
    "SerialCompletionContext",
    "StatusPolicy",
    "TrackingWorkScope",
    "WorkScope",
    "default_completion_context",
]
