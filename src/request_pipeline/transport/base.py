"""
Transport interface.

A transport sends a WireRequest and reports exactly one ResponseEnvelope per
submitted operation, on a thread of its own choosing.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping, Optional

from request_pipeline.wire import RequestOptions, WireRequest


@dataclass(frozen=True)
class ResponseEnvelope:
    """
    Everything the transport learned about one request.

    Attributes:
        status_code: HTTP status, None if no response was received
        body: Response body for data requests
        error: Transport-level failure (connection, timeout, cancellation)
        headers: Response headers
        url: Final response URL (after any redirects)
        location: Temporary file holding the body for download requests.
            Owned by the transport until the dispatcher moves it.
    """

    status_code: Optional[int] = None
    body: Optional[bytes] = None
    error: Optional[BaseException] = None
    headers: Mapping[str, str] = field(default_factory=dict)
    url: Optional[str] = None
    location: Optional[Path] = None


CompletionHandler = Callable[[ResponseEnvelope], None]


class TransportOperation(ABC):
    """An in-flight transport call that can be told to stop."""

    @abstractmethod
    def cancel(self) -> None:
        """
        Ask the operation to stop.

        Best effort. The operation still reports exactly one envelope,
        normally carrying a cancellation error.
        """


class Transport(ABC):
    """
    Sends wire requests.

    Implementations must call on_complete exactly once per submitted
    operation and must not block the calling thread on network I/O.
    """

    @abstractmethod
    def submit(
        self,
        request: WireRequest,
        options: Optional[RequestOptions],
        on_complete: CompletionHandler,
    ) -> TransportOperation:
        """Start a data request. The envelope carries the body in memory."""

    @abstractmethod
    def submit_download(
        self,
        request: WireRequest,
        options: Optional[RequestOptions],
        on_complete: CompletionHandler,
    ) -> TransportOperation:
        """Start a download. The envelope carries the temporary file location."""

    def close(self) -> None:
        """Release transport resources."""
