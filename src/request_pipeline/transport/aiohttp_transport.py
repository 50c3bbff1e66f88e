"""
aiohttp transport.

Runs one asyncio event loop on a daemon thread and sends every request
through a single aiohttp.ClientSession on that loop. Callers on any thread
submit work through loop.call_soon_threadsafe; each request becomes an
asyncio task, and the task is what a TaskOperation cancels.

Connections are not reused: the session's connector is created with
force_close=True.
"""

import asyncio
import concurrent.futures
import functools
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Awaitable, Callable, Optional

import aiofiles
import aiohttp

from request_pipeline.config import PipelineConfig, get_config
from request_pipeline.logging.setup import get_logger
from request_pipeline.logging.utilities import log_with_context
from request_pipeline.transport.base import (
    CompletionHandler,
    ResponseEnvelope,
    Transport,
    TransportOperation,
)
from request_pipeline.wire import RequestOptions, WireRequest

logger = get_logger(__name__)

SessionFactory = Callable[[], aiohttp.ClientSession]


def _follow_redirects(options: Optional[RequestOptions]) -> bool:
    return options.follow_redirects if options is not None else True


class TaskOperation(TransportOperation):
    """
    Operation backed by an asyncio task on the transport's loop.

    The task is attached on the loop thread once it starts, so cancel()
    may arrive before or after that point. Cancelling a task that has
    already finished does nothing: its envelope is delivered as usual.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self._loop = loop
        self._lock = threading.Lock()
        self._task: Optional[asyncio.Task] = None
        self._cancel_requested = False

    def attach(self, task: asyncio.Task) -> None:
        """Bind the running task. Called on the loop thread."""
        with self._lock:
            self._task = task
            cancel_now = self._cancel_requested
        if cancel_now:
            task.cancel()

    def cancel(self) -> None:
        with self._lock:
            if self._cancel_requested:
                return
            self._cancel_requested = True
            task = self._task

        if task is None or task.done():
            return
        self._loop.call_soon_threadsafe(task.cancel)


class AiohttpTransport(Transport):
    """
    Transport backed by aiohttp.

    Usage:
        transport = AiohttpTransport()
        operation = transport.submit(wire_request, None, on_complete)
        ...
        transport.close()

    Args:
        config: Pipeline configuration (default: process-wide config)
        session_factory: Builds the ClientSession. Called once, on the
            transport's event loop thread.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        session_factory: Optional[SessionFactory] = None,
    ):
        self.config = config or get_config()
        self._session_factory = session_factory or self._create_session
        self._session: Optional[aiohttp.ClientSession] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._closed = False

    def _create_session(self) -> aiohttp.ClientSession:
        connector = aiohttp.TCPConnector(force_close=True)
        return aiohttp.ClientSession(
            connector=connector,
            timeout=aiohttp.ClientTimeout(total=self.config.request_timeout_seconds),
        )

    # -------------------------------------------------------------------------
    # Event loop management
    # -------------------------------------------------------------------------

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        # Caller holds self._lock
        if self._closed:
            raise RuntimeError("Transport is closed")
        if self._loop is None:
            loop = asyncio.new_event_loop()
            thread = threading.Thread(
                target=self._run_loop,
                args=(loop,),
                name="aiohttp-transport",
                daemon=True,
            )
            thread.start()
            self._loop = loop
            self._thread = thread
        return self._loop

    @staticmethod
    def _run_loop(loop: asyncio.AbstractEventLoop) -> None:
        asyncio.set_event_loop(loop)
        loop.run_forever()

    async def _get_session(self) -> aiohttp.ClientSession:
        # Only touched from the loop thread
        if self._session is None:
            self._session = self._session_factory()
        return self._session

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------

    async def _perform(
        self, request: WireRequest, options: Optional[RequestOptions]
    ) -> ResponseEnvelope:
        session = await self._get_session()
        async with session.request(
            request.method,
            request.url,
            headers=dict(request.headers),
            data=request.body,
            allow_redirects=_follow_redirects(options),
        ) as response:
            body = await response.read()
            return ResponseEnvelope(
                status_code=response.status,
                body=body,
                headers=dict(response.headers),
                url=str(response.url),
            )

    async def _perform_download(
        self, request: WireRequest, options: Optional[RequestOptions]
    ) -> ResponseEnvelope:
        session = await self._get_session()

        fd, tmp_name = tempfile.mkstemp(
            prefix="download-", suffix=".tmp", dir=self.config.temp_dir
        )
        os.close(fd)
        tmp_path = Path(tmp_name)

        try:
            async with session.request(
                request.method,
                request.url,
                headers=dict(request.headers),
                data=request.body,
                allow_redirects=_follow_redirects(options),
            ) as response:
                bytes_written = 0
                async with aiofiles.open(tmp_path, "wb") as f:
                    async for chunk in response.content.iter_chunked(
                        self.config.download_chunk_size
                    ):
                        await f.write(chunk)
                        bytes_written += len(chunk)

                log_with_context(
                    logger,
                    logging.DEBUG,
                    "Download streamed to temporary file",
                    url=request.url,
                    http_status=response.status,
                    bytes_downloaded=bytes_written,
                )
                return ResponseEnvelope(
                    status_code=response.status,
                    headers=dict(response.headers),
                    url=str(response.url),
                    location=tmp_path,
                )
        except BaseException:
            # Includes cancellation: the temporary file never outlives a failure
            tmp_path.unlink(missing_ok=True)
            raise

    def _schedule(
        self,
        make_coro: Callable[[], Awaitable[ResponseEnvelope]],
        on_complete: CompletionHandler,
    ) -> TransportOperation:
        # Under the lock so every start is queued on the loop before close()
        # queues its shutdown
        with self._lock:
            loop = self._ensure_loop()
            operation = TaskOperation(loop)
            loop.call_soon_threadsafe(self._start, make_coro, on_complete, operation)
        return operation

    def _start(
        self,
        make_coro: Callable[[], Awaitable[ResponseEnvelope]],
        on_complete: CompletionHandler,
        operation: TaskOperation,
    ) -> None:
        task = self._loop.create_task(make_coro())
        task.add_done_callback(functools.partial(self._deliver, on_complete))
        operation.attach(task)

    @staticmethod
    def _deliver(on_complete: CompletionHandler, task: asyncio.Task) -> None:
        if task.cancelled():
            envelope = ResponseEnvelope(error=asyncio.CancelledError())
        else:
            exc = task.exception()
            envelope = ResponseEnvelope(error=exc) if exc is not None else task.result()
        on_complete(envelope)

    def submit(
        self,
        request: WireRequest,
        options: Optional[RequestOptions],
        on_complete: CompletionHandler,
    ) -> TransportOperation:
        return self._schedule(
            functools.partial(self._perform, request, options), on_complete
        )

    def submit_download(
        self,
        request: WireRequest,
        options: Optional[RequestOptions],
        on_complete: CompletionHandler,
    ) -> TransportOperation:
        return self._schedule(
            functools.partial(self._perform_download, request, options), on_complete
        )

    # -------------------------------------------------------------------------
    # Shutdown
    # -------------------------------------------------------------------------

    async def _shutdown(self) -> None:
        current = asyncio.current_task()
        pending = [task for task in asyncio.all_tasks() if task is not current]
        for task in pending:
            task.cancel()
        # Each cancelled task still reports its envelope through _deliver
        await asyncio.gather(*pending, return_exceptions=True)

        if self._session is not None:
            await self._session.close()
            self._session = None

    def close(self, timeout: float = 5.0) -> None:
        """
        Cancel requests in flight, close the session and stop the event loop
        thread. Safe to call more than once.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            loop, thread = self._loop, self._thread

        if loop is None or thread is None:
            return

        future = asyncio.run_coroutine_threadsafe(self._shutdown(), loop)
        try:
            future.result(timeout)
        except (concurrent.futures.TimeoutError, aiohttp.ClientError) as e:
            logger.warning(f"Failed to close aiohttp session cleanly: {e!r}")

        loop.call_soon_threadsafe(loop.stop)
        thread.join(timeout)
        if not thread.is_alive():
            loop.close()

    def __enter__(self) -> "AiohttpTransport":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
