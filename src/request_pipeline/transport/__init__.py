"""
HTTP transports.

Provides the Transport interface used by the dispatcher and the aiohttp
implementation used in production.
"""

from request_pipeline.transport.aiohttp_transport import AiohttpTransport, TaskOperation
from request_pipeline.transport.base import (
    CompletionHandler,
    ResponseEnvelope,
    Transport,
    TransportOperation,
)

__all__ = [
    "AiohttpTransport",
    "CompletionHandler",
    "ResponseEnvelope",
    "TaskOperation",
    "Transport",
    "TransportOperation",
]
