"""
Cancellable handle returned by the dispatcher.

The handle exists before the transport operation does. cancel() and bind()
share one lock, so a cancel that happens before the operation is bound is
applied the moment it is bound, and a cancel after binding reaches the
operation directly. Cancellation is never lost in either order.
"""

import threading
from typing import Optional

from request_pipeline.errors import InvariantViolation
from request_pipeline.transport.base import TransportOperation


class CancellableHandle:
    """
    A semi-opaque handle that lets the caller cancel a request.

    When cancel() is called the transport operation may not have started
    yet. It is cancelled as soon as it is bound.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._operation: Optional[TransportOperation] = None
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        """Whether cancel() has been called."""
        with self._lock:
            return self._cancelled

    @property
    def bound(self) -> bool:
        """Whether a transport operation has been bound."""
        with self._lock:
            return self._operation is not None

    def cancel(self) -> None:
        """Request cancellation. Safe to call from any thread, any number of times."""
        with self._lock:
            self._cancelled = True
            if self._operation is not None:
                self._operation.cancel()

    def bind(self, operation: TransportOperation) -> None:
        """
        Attach the transport operation. May only happen once.

        Raises:
            InvariantViolation: If an operation is already bound
        """
        with self._lock:
            if self._operation is not None:
                raise InvariantViolation("CancellableHandle is already bound")
            self._operation = operation
            if self._cancelled:
                operation.cancel()

    def __repr__(self) -> str:
        with self._lock:
            return (
                f"CancellableHandle(cancelled={self._cancelled}, "
                f"bound={self._operation is not None})"
            )
