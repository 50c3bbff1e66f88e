"""
Request dispatcher.

Sends every request down the same path:

    caller thread       send() / download() -> CancellableHandle (immediately)
    worker pool         build WireRequest -> transport.submit -> handle.bind
    transport thread    envelope arrives -> hop back to the worker pool
    worker pool         transport error / status check / conversion
    completion context  completion(result) exactly once

The dispatcher keeps no per-request state of its own and can be shared by
any number of concurrent requests.
"""

import contextvars
import errno
import logging
import os
import shutil
import threading
import time
import uuid
import zipfile
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Type, TypeVar, Union

from request_pipeline.config import PipelineConfig, get_config
from request_pipeline.convert import ModelConverter, ResultConverter, converter_for
from request_pipeline.dispatch.context import CompletionContext, default_completion_context
from request_pipeline.dispatch.handle import CancellableHandle
from request_pipeline.dispatch.result import ResponseInfo, Result
from request_pipeline.dispatch.status import StatusPolicy
from request_pipeline.dispatch.work_scope import WorkScope
from request_pipeline.errors import (
    ConversionError,
    FileSystemError,
    InvariantViolation,
    PipelineError,
    StatusCodeError,
    TransportError,
    wrap_exception,
)
from request_pipeline.logging.context import set_log_context
from request_pipeline.logging.setup import get_logger
from request_pipeline.logging.utilities import (
    assert_failure,
    log_exception,
    log_with_context,
)
from request_pipeline.transport import AiohttpTransport, ResponseEnvelope, Transport
from request_pipeline.transport.base import CompletionHandler, TransportOperation
from request_pipeline.wire import RequestOptions, Requestable, WireRequest

logger = get_logger(__name__)

T = TypeVar("T")

Completion = Callable[[Result], None]
DetailedCompletion = Callable[[Result, Optional[ResponseInfo]], None]
Submit = Callable[[WireRequest, Optional[RequestOptions], CompletionHandler], TransportOperation]


@dataclass
class _Call:
    """One request travelling through the pipeline."""

    request: Requestable
    options: Optional[RequestOptions]
    handle: CancellableHandle
    submit: Submit
    payload: Callable[[ResponseEnvelope], Any]
    convert: Callable[[Any], Any]
    completion: DetailedCompletion
    request_id: str
    token: int
    started: float
    wire: Optional[WireRequest] = None

    @property
    def url(self) -> Optional[str]:
        return self.wire.url if self.wire is not None else None


class Dispatcher:
    """
    Sends requests and delivers typed results on one completion context.

    Usage:
        dispatcher = Dispatcher.shared()
        handle = dispatcher.send(Request("users/1"), User, on_user)
        ...
        handle.cancel()

    Args:
        transport: Transport to send through (default: AiohttpTransport)
        config: Pipeline configuration (default: process-wide config)
        completion_context: Where completions run (default: the process-wide
            serial completion context)
        work_scope: Begin/end capability held for each request
        executor: Worker pool for building, validating and converting
            (default: a ThreadPoolExecutor sized by config.worker_count)
        status_policy: Status code validation
    """

    _shared_instance: Optional["Dispatcher"] = None
    _shared_lock = threading.Lock()

    def __init__(
        self,
        transport: Optional[Transport] = None,
        config: Optional[PipelineConfig] = None,
        completion_context: Optional[CompletionContext] = None,
        work_scope: Optional[WorkScope] = None,
        executor: Optional[Executor] = None,
        status_policy: Optional[StatusPolicy] = None,
    ):
        self.config = config or get_config()
        self.transport = transport or AiohttpTransport(self.config)
        self._owns_transport = transport is None
        self.completion_context = completion_context or default_completion_context()
        self.work_scope = work_scope or WorkScope()
        self.status_policy = status_policy or StatusPolicy()
        self._executor = executor or ThreadPoolExecutor(
            max_workers=self.config.worker_count,
            thread_name_prefix="request-worker",
        )
        self._owns_executor = executor is None

    @classmethod
    def shared(cls) -> "Dispatcher":
        """The process-wide dispatcher, created on first use."""
        with cls._shared_lock:
            if cls._shared_instance is None:
                cls._shared_instance = cls()
                log_with_context(
                    logger,
                    logging.DEBUG,
                    "Shared dispatcher created",
                    worker_count=cls._shared_instance.config.worker_count,
                )
            return cls._shared_instance

    # =========================================================================
    # API
    # =========================================================================

    def send(
        self,
        request: Requestable,
        converter: Union[ResultConverter, Type, None],
        completion: Completion,
    ) -> CancellableHandle:
        """
        Send a request and convert the body with converter.

        converter is a ResultConverter or a result type that has one
        (bytes, Optional[bytes], str, Empty, None, a pydantic model class).
        Use Empty when only success or failure matters.

        Returns:
            Handle that can cancel the request
        """
        return self.send_with_response(
            request, converter, lambda result, _response: completion(result)
        )

    def send_with_response(
        self,
        request: Requestable,
        converter: Union[ResultConverter, Type, None],
        completion: DetailedCompletion,
    ) -> CancellableHandle:
        """
        Like send, but the completion also receives the ResponseInfo
        (None when no response was received).
        """
        result_converter = converter_for(converter)
        return self._send(
            request,
            submit=self.transport.submit,
            payload=lambda envelope: envelope.body,
            convert=result_converter.convert,
            completion=completion,
        )

    def send_model(
        self,
        request: Requestable,
        model_type: Type[T],
        completion: Completion,
    ) -> CancellableHandle:
        """Send a request and decode the body into model_type."""
        return self.send(request, ModelConverter(model_type), completion)

    def download(
        self,
        request: Requestable,
        destination: Union[str, Path],
        completion: Completion,
        unzip: bool = False,
    ) -> CancellableHandle:
        """
        Download a file directly to disk at destination.

        Any existing file at destination is replaced. With unzip the body
        is treated as a zip archive and extracted into a directory at
        destination instead. The success value is None.
        """
        return self.download_with_response(
            request,
            destination,
            lambda result, _response: completion(result),
            unzip=unzip,
        )

    def download_with_response(
        self,
        request: Requestable,
        destination: Union[str, Path],
        completion: DetailedCompletion,
        unzip: bool = False,
    ) -> CancellableHandle:
        """Like download, but the completion also receives the ResponseInfo."""
        destination = Path(destination)
        return self._send(
            request,
            submit=self.transport.submit_download,
            payload=lambda envelope: envelope.location,
            convert=lambda location: self._move_file(location, destination, unzip),
            completion=completion,
        )

    def close(self) -> None:
        """Shut down the worker pool and transport if this dispatcher created them."""
        if self._owns_executor:
            self._executor.shutdown(wait=True)
        if self._owns_transport:
            self.transport.close()

    # =========================================================================
    # Main pipeline
    # =========================================================================

    def _send(
        self,
        request: Requestable,
        submit: Submit,
        payload: Callable[[ResponseEnvelope], Any],
        convert: Callable[[Any], Any],
        completion: DetailedCompletion,
    ) -> CancellableHandle:
        handle = CancellableHandle()
        request_id = uuid.uuid4().hex

        call = _Call(
            request=request,
            options=None,
            handle=handle,
            submit=submit,
            payload=payload,
            convert=convert,
            completion=completion,
            request_id=request_id,
            token=self.work_scope.begin(f"{type(request).__name__}:{request_id[:8]}"),
            started=time.monotonic(),
        )

        try:
            # Captured now: options can't change after submission
            call.options = request.options()
        except Exception as e:
            error = wrap_exception(e, ConversionError)
            log_exception(
                logger,
                error,
                f"Failed to read options of {request!r}",
                request_id=request_id,
            )
            self._finish_with(call, Result.failure(error), None)
            return handle

        try:
            self._run_on_worker(self._start, call)
        except RuntimeError as e:
            # Worker pool already shut down
            self._finish_with(call, Result.failure(TransportError(e)), None)

        return handle

    def _run_on_worker(self, fn: Callable[..., None], *args: Any) -> None:
        ctx = contextvars.copy_context()
        self._executor.submit(ctx.run, fn, *args)

    def _start(self, call: _Call) -> None:
        """Worker step: build the wire request, submit it, bind the operation."""
        set_log_context(request_id=call.request_id, stage="send")

        try:
            wire = call.request.build()
        except Exception as e:
            error = wrap_exception(e, ConversionError)
            log_exception(
                logger,
                error,
                f"Failed to build request {call.request!r}",
                request_id=call.request_id,
            )
            self._finish_with(call, Result.failure(error), None)
            return

        call.wire = wire
        set_log_context(method=wire.method)
        log_with_context(
            logger,
            logging.DEBUG,
            f"Send: {wire.describe()}",
            request_id=call.request_id,
            url=wire.url,
            http_method=wire.method,
        )

        try:
            operation = call.submit(
                wire, call.options, lambda envelope: self._on_transport_complete(call, envelope)
            )
        except Exception as e:
            self._finish_with(call, Result.failure(TransportError(e)), None)
            return

        # The handle may already be cancelled; bind() cancels the operation then
        call.handle.bind(operation)

    def _on_transport_complete(self, call: _Call, envelope: ResponseEnvelope) -> None:
        """Runs on whatever thread the transport completes on. Only hops."""
        try:
            self._run_on_worker(self._complete, call, envelope)
        except RuntimeError:
            self._complete(call, envelope)

    def _complete(self, call: _Call, envelope: ResponseEnvelope) -> None:
        """Worker step: turn the envelope into a Result and deliver it."""
        set_log_context(request_id=call.request_id, stage="complete")
        try:
            result = self._evaluate(call, envelope)
        finally:
            # A download's temporary file is gone once moved; otherwise drop it
            if envelope.location is not None:
                envelope.location.unlink(missing_ok=True)

        self._finish_with(call, result, ResponseInfo.from_envelope(envelope))

    def _evaluate(self, call: _Call, envelope: ResponseEnvelope) -> Result:
        if envelope.error is not None:
            return Result.failure(
                TransportError(envelope.error, context={"url": call.url})
            )

        if envelope.status_code is None:
            return self._invariant_failure(
                call, "Missing HTTP response when trying to parse a status code."
            )

        try:
            self.status_policy.validate(
                envelope.status_code, call.options, url=envelope.url or call.url
            )
        except StatusCodeError as e:
            return Result.failure(e)

        data = call.payload(envelope)
        if data is None:
            return self._invariant_failure(
                call, "Missing both data and error from the transport. This should never happen."
            )

        try:
            return Result.success(call.convert(data))
        except PipelineError as e:
            return Result.failure(e)
        except Exception as e:
            return Result.failure(wrap_exception(e, ConversionError))

    def _invariant_failure(self, call: _Call, message: str) -> Result:
        assert_failure(logger, message, request_id=call.request_id, url=call.url)
        return Result.failure(InvariantViolation(message, context={"url": call.url}))

    def _finish_with(
        self, call: _Call, result: Result, response: Optional[ResponseInfo]
    ) -> None:
        """Log the outcome and hand the completion to the completion context."""
        duration_ms = round((time.monotonic() - call.started) * 1000, 2)
        url = call.url or ""

        if result.error is not None:
            log_exception(
                logger,
                result.error,
                f"Request failed: {url} - {result.error!r}",
                include_traceback=False,
                request_id=call.request_id,
                url=url,
                http_status=response.status_code if response else None,
                duration_ms=duration_ms,
            )
        else:
            log_with_context(
                logger,
                logging.DEBUG,
                f"Request succeeded: {url}",
                request_id=call.request_id,
                url=url,
                http_status=response.status_code if response else None,
                duration_ms=duration_ms,
            )

        def deliver() -> None:
            try:
                call.completion(result, response)
            finally:
                self.work_scope.end(call.token)

        try:
            self.completion_context.dispatch(deliver)
        except RuntimeError as e:
            # Completion context shut down; the unit of work still ends
            log_exception(
                logger,
                e,
                "Completion context rejected delivery",
                include_traceback=False,
                request_id=call.request_id,
            )
            self.work_scope.end(call.token)

    # =========================================================================
    # File handling
    # =========================================================================

    def _move_file(self, origin: Path, destination: Path, unzip: bool) -> None:
        """
        Put a downloaded file (or its extracted contents) at destination.

        Raises:
            FileSystemError: If the existing destination can't be removed or
                the new content can't be moved or extracted into place
        """
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            if unzip:
                self._extract_archive(origin, destination)
            else:
                _remove_directory(destination)
                _replace(origin, destination)
        except (OSError, zipfile.BadZipFile) as e:
            raise FileSystemError(f"Failed to move download to {destination}", cause=e)

        log_with_context(
            logger,
            logging.DEBUG,
            "Download moved into place",
            destination=str(destination),
        )

    def _extract_archive(self, archive: Path, destination: Path) -> None:
        staging = destination.parent / f".{destination.name}.{uuid.uuid4().hex[:8]}.unzip"
        try:
            with zipfile.ZipFile(archive) as zf:
                zf.extractall(staging)
            _remove_directory(destination)
            if destination.exists() or destination.is_symlink():
                destination.unlink()
            os.replace(staging, destination)
        finally:
            if staging.exists():
                shutil.rmtree(staging, ignore_errors=True)


def _remove_directory(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)


def _replace(origin: Path, destination: Path) -> None:
    """Atomically replace destination with origin, copying across filesystems."""
    try:
        os.replace(origin, destination)
    except OSError as e:
        if e.errno != errno.EXDEV:
            raise
        if destination.exists():
            destination.unlink()
        shutil.move(str(origin), str(destination))
