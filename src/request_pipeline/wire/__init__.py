"""
Wire request building.

Provides:
- Requestable capability and the WireRequest it produces
- RequestOptions attached per request
- Request / PostRequest builders
"""

from request_pipeline.wire.builders import PostRequest, Request, join_url
from request_pipeline.wire.models import RequestOptions, Requestable, WireRequest

__all__ = [
    "PostRequest",
    "Request",
    "RequestOptions",
    "Requestable",
    "WireRequest",
    "join_url",
]
