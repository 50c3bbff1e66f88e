"""
Fixtures for dispatcher tests.

FakeTransport stands in for the network: it records every submission and
completes operations on a thread of its own, like a real transport does.
"""

import asyncio
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

import pytest

from request_pipeline.dispatch import Dispatcher, SerialCompletionContext, TrackingWorkScope
from request_pipeline.transport import ResponseEnvelope, Transport, TransportOperation
from request_pipeline.wire import RequestOptions, WireRequest

Responder = Callable[[WireRequest, Optional[RequestOptions]], ResponseEnvelope]


@dataclass
class Submission:
    kind: str
    wire: WireRequest
    options: Optional[RequestOptions]


class FakeOperation(TransportOperation):
    """Reports at most one envelope, from a separate thread."""

    def __init__(self, on_complete):
        self._on_complete = on_complete
        self._lock = threading.Lock()
        self._done = False
        self.cancel_count = 0

    def complete(self, envelope: ResponseEnvelope) -> bool:
        with self._lock:
            if self._done:
                return False
            self._done = True
        threading.Thread(
            target=self._on_complete, args=(envelope,), name="fake-transport"
        ).start()
        return True

    def cancel(self) -> None:
        self.cancel_count += 1
        self.complete(ResponseEnvelope(error=asyncio.CancelledError()))


class FakeTransport(Transport):
    """
    Transport double.

    With a responder set, every operation completes with whatever the
    responder returns. Without one, operations are held until the test
    completes or cancels them.
    """

    def __init__(self, responder: Optional[Responder] = None):
        self.responder = responder
        self.submissions: List[Submission] = []
        self.operations: List[FakeOperation] = []
        self._condition = threading.Condition()

    def _start(self, kind, request, options, on_complete) -> FakeOperation:
        operation = FakeOperation(on_complete)
        with self._condition:
            self.submissions.append(Submission(kind, request, options))
            self.operations.append(operation)
            self._condition.notify_all()
        if self.responder is not None:
            operation.complete(self.responder(request, options))
        return operation

    def submit(self, request, options, on_complete):
        return self._start("data", request, options, on_complete)

    def submit_download(self, request, options, on_complete):
        return self._start("download", request, options, on_complete)

    def wait_for_submissions(self, count: int = 1, timeout: float = 5.0) -> bool:
        with self._condition:
            return self._condition.wait_for(lambda: len(self.operations) >= count, timeout)


class CompletionRecorder:
    """Completion callback that records every call and the thread it ran on."""

    def __init__(self):
        self.calls = []
        self._event = threading.Event()

    def __call__(self, result, response=None):
        self.calls.append((result, response, threading.current_thread().name))
        self._event.set()

    def wait(self, timeout: float = 5.0):
        assert self._event.wait(timeout), "completion was not called"
        return self.calls[0][0]

    @property
    def response(self):
        return self.calls[0][1]

    @property
    def thread_name(self) -> str:
        return self.calls[0][2]


def respond(status_code: Optional[int] = 200, body: Optional[bytes] = None, **kwargs) -> Responder:
    """Responder returning a fixed in-memory response."""

    def responder(request, options):
        return ResponseEnvelope(status_code=status_code, body=body, url=request.url, **kwargs)

    return responder


def respond_with_file(
    temp_dir: Path, content: Optional[bytes], status_code: int = 200
) -> Responder:
    """Responder writing content to a fresh temporary file, like a download does."""

    def responder(request, options):
        location = None
        if content is not None:
            with tempfile.NamedTemporaryFile(dir=temp_dir, delete=False) as f:
                f.write(content)
            location = Path(f.name)
        return ResponseEnvelope(status_code=status_code, url=request.url, location=location)

    return responder


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def completion_context():
    context = SerialCompletionContext("test-completion")
    yield context
    context.shutdown()


@pytest.fixture
def work_scope():
    return TrackingWorkScope()


@pytest.fixture
def dispatcher(fake_transport, test_config, completion_context, work_scope):
    d = Dispatcher(
        transport=fake_transport,
        config=test_config,
        completion_context=completion_context,
        work_scope=work_scope,
    )
    yield d
    d.close()


@pytest.fixture
def recorder():
    return CompletionRecorder()


@pytest.fixture(name="respond")
def respond_fixture():
    return respond


@pytest.fixture(name="respond_with_file")
def respond_with_file_fixture():
    return respond_with_file


@pytest.fixture
def make_recorder():
    return CompletionRecorder
