"""
Scoped units of work.

The dispatcher begins a unit when a request is submitted and ends it after
the completion has been handed to the completion context, on every path.
A TrackingWorkScope lets an application wait for in-flight requests before
it exits.
"""

import itertools
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional


class WorkScope:
    """Begin/end capability. The base class does nothing."""

    def begin(self, name: str) -> int:
        """Start a unit of work and return its token."""
        return 0

    def end(self, token: int) -> None:
        """Finish the unit identified by token."""

    @contextmanager
    def unit(self, name: str) -> Iterator[int]:
        token = self.begin(name)
        try:
            yield token
        finally:
            self.end(token)


NullWorkScope = WorkScope


class TrackingWorkScope(WorkScope):
    """
    Counts units of work in progress.

    Usage:
        scope = TrackingWorkScope()
        dispatcher = Dispatcher(transport, work_scope=scope)
        ...
        scope.wait_idle(timeout=30)  # before process exit
    """

    def __init__(self) -> None:
        self._condition = threading.Condition()
        self._tokens = itertools.count(1)
        self._active: Dict[int, str] = {}

    @property
    def active(self) -> int:
        with self._condition:
            return len(self._active)

    def active_names(self) -> list:
        with self._condition:
            return sorted(self._active.values())

    def begin(self, name: str) -> int:
        with self._condition:
            token = next(self._tokens)
            self._active[token] = name
            return token

    def end(self, token: int) -> None:
        with self._condition:
            if self._active.pop(token, None) is not None and not self._active:
                self._condition.notify_all()

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until no unit is in progress.

        Returns:
            True if idle, False if the timeout expired first
        """
        with self._condition:
            return self._condition.wait_for(lambda: not self._active, timeout)
