"""
Completion contexts.

Every completion the dispatcher delivers runs on one CompletionContext.
Callers pick the context their state lives on: a dedicated serial thread
(the default) or an asyncio event loop.
"""

import asyncio
import threading
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from request_pipeline.logging.setup import get_logger

logger = get_logger(__name__)

Callback = Callable[[], None]


class CompletionContext(ABC):
    """A serial execution context for caller-visible completions."""

    @abstractmethod
    def dispatch(self, callback: Callback) -> None:
        """Schedule callback to run on this context. Must not block."""


class SerialCompletionContext(CompletionContext):
    """
    Runs completions one at a time, in submission order, on one thread.

    Exceptions raised by a completion are logged and do not stop later
    completions from running.
    """

    def __init__(self, name: str = "completion"):
        self.name = name
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)

    def _run(self, callback: Callback) -> None:
        try:
            callback()
        except Exception:
            logger.exception(f"Completion raised on context '{self.name}'")

    def dispatch(self, callback: Callback) -> None:
        self._executor.submit(self._run, callback)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting completions. With wait, run the queued ones first."""
        self._executor.shutdown(wait=wait)


class EventLoopCompletionContext(CompletionContext):
    """
    Delivers completions on an asyncio event loop.

    Use this when the caller's state belongs to a running loop. Completions
    are plain callables scheduled with call_soon_threadsafe.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self.loop = loop

    def dispatch(self, callback: Callback) -> None:
        self.loop.call_soon_threadsafe(callback)


_default_context: Optional[SerialCompletionContext] = None
_default_lock = threading.Lock()


def default_completion_context() -> SerialCompletionContext:
    """The process-wide serial completion context, created on first use."""
    global _default_context
    with _default_lock:
        if _default_context is None:
            _default_context = SerialCompletionContext("main-completion")
        return _default_context
