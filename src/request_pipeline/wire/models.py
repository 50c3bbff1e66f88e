"""
Wire-level request types.

WireRequest is what the transport sends. RequestOptions travel with it and
are consulted when the response status is validated.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional


@dataclass(frozen=True)
class RequestOptions:
    """
    Per-request options.

    Attributes:
        follow_redirects: Let the transport follow 3xx responses. When False
            the transport returns the redirect itself and 3xx counts as
            success.
    """

    follow_redirects: bool = True


class Requestable(ABC):
    """
    Anything that can produce a WireRequest.

    build() runs on a worker thread, so it may do serialization work.
    """

    @abstractmethod
    def build(self) -> "WireRequest":
        """Build the transport-ready request."""

    def options(self) -> Optional[RequestOptions]:
        """Per-request options, or None for the permissive defaults."""
        return None


@dataclass(frozen=True)
class WireRequest(Requestable):
    """
    A transport-ready HTTP request. Immutable once built.

    Attributes:
        method: HTTP method (GET, POST, ...)
        url: Absolute target URL
        headers: Header name to value
        body: Request body, if any
    """

    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    def build(self) -> "WireRequest":
        return self

    def describe(self) -> str:
        return f"{self.url} - {self.method}"
