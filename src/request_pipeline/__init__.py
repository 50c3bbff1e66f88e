"""
Generic HTTP request pipeline.

Build a wire request from any Requestable, send it through a transport,
validate the status, convert the body into the type the caller asked for
and deliver the result on one completion context. Every request can be
cancelled through the handle returned when it is sent.

Example:
    from request_pipeline import Dispatcher, Request

    def on_user(result):
        if result.is_success:
            print(result.value.name)

    handle = Dispatcher.shared().send(Request("users/1"), User, on_user)
"""

from request_pipeline.convert import (
    EMPTY,
    Empty,
    JSONSerializer,
    KeyCasing,
    ResultConverter,
    WireModel,
)
from request_pipeline.dispatch import CancellableHandle, Dispatcher, Result, StatusPolicy
from request_pipeline.errors import (
    ConversionError,
    FileSystemError,
    InvariantViolation,
    PipelineError,
    StatusCodeError,
    TransportError,
)
from request_pipeline.wire import PostRequest, Request, RequestOptions, Requestable, WireRequest

__version__ = "0.1.0"

__all__ = [
    "EMPTY",
    "CancellableHandle",
    "ConversionError",
    "Dispatcher",
    "Empty",
    "FileSystemError",
    "InvariantViolation",
    "JSONSerializer",
    "KeyCasing",
    "PipelineError",
    "PostRequest",
    "Request",
    "RequestOptions",
    "Requestable",
    "Result",
    "ResultConverter",
    "StatusCodeError",
    "StatusPolicy",
    "TransportError",
    "WireModel",
    "WireRequest",
]
