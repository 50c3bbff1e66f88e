"""
Exception types and error classification for request_pipeline.

Provides:
- ErrorCategory enum for classifying failures
- Typed exception hierarchy for every way a request can fail
- Classification utilities used by logging and by callers
"""

import asyncio
from enum import Enum
from typing import Optional

GENERIC_SERVER_MESSAGE = (
    "An error occurred communicating with the server. Please try again."
)


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    The pipeline itself never retries. The category is carried on every
    error so that callers (and log records) can decide what to do.

    Categories:
        TRANSIENT: Temporary failures that may succeed later
                   (e.g., network timeouts, 429/503 responses)
        AUTH: Authentication failures (401 responses)
        PERMANENT: Failures that won't succeed on a repeat attempt
                   (e.g., 404, undecodable bodies, filesystem errors)
        UNKNOWN: Unclassified errors, including contract violations
    """

    TRANSIENT = "transient"
    AUTH = "auth"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


class PipelineError(Exception):
    """
    Base exception for all request pipeline errors.

    Attributes:
        message: Human-readable error description
        category: Error classification
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        context: Optional[dict] = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """Whether a caller could reasonably try this request again."""
        return self.category in (ErrorCategory.TRANSIENT, ErrorCategory.AUTH)

    @property
    def user_message(self) -> str:
        """Display text safe to show to an end user."""
        return self.message

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause!r}")
        return " | ".join(parts)


class TransientError(PipelineError):
    """Base class for failures that may go away on their own."""

    category = ErrorCategory.TRANSIENT


class PermanentError(PipelineError):
    """Base class for failures that won't go away on a repeat attempt."""

    category = ErrorCategory.PERMANENT


class ConfigurationError(PermanentError):
    """Invalid configuration."""

    pass


# =============================================================================
# Request failures
# =============================================================================


class TransportError(TransientError):
    """
    The transport failed before a response was received.

    The cause is whatever the transport reported (connection refused, DNS,
    timeout, cancellation) and is kept opaque.
    """

    def __init__(
        self,
        cause: BaseException,
        message: Optional[str] = None,
        context: Optional[dict] = None,
    ):
        super().__init__(message or "Transport error", cause, context)

    @property
    def is_cancelled(self) -> bool:
        """True when the transport stopped because the request was cancelled."""
        return isinstance(self.cause, asyncio.CancelledError)

    @property
    def user_message(self) -> str:
        if self.is_cancelled:
            return "The request was cancelled."
        return "Could not connect to the server. Please check your connection."


class StatusCodeError(PipelineError):
    """
    A response arrived but its status code is outside the accepted range.

    The numeric code is only available structurally (``code``). The string
    form and the display text stay generic.
    """

    def __init__(self, code: int, context: Optional[dict] = None):
        super().__init__(GENERIC_SERVER_MESSAGE, context=context)
        self.code = code

    @property
    def category(self) -> ErrorCategory:  # type: ignore[override]
        return classify_http_status(self.code)

    def __repr__(self) -> str:
        return f"StatusCodeError(code={self.code})"


class ConversionError(PermanentError):
    """Response (or request) data could not be converted to the requested type."""

    @property
    def user_message(self) -> str:
        return "The server returned data that could not be read."


class InvariantViolation(PipelineError):
    """
    A collaborator broke its contract.

    Raised when the transport reports neither data nor an error, or when a
    handle is bound twice. This indicates a bug rather than a normal
    failure mode.
    """

    category = ErrorCategory.UNKNOWN

    @property
    def user_message(self) -> str:
        return "Something went wrong. Please try again."


class FileSystemError(PermanentError):
    """A downloaded file could not be moved or extracted into place."""

    @property
    def user_message(self) -> str:
        return "The downloaded file could not be saved."


# =============================================================================
# Error Classification Utilities
# =============================================================================


def classify_http_status(status_code: int) -> ErrorCategory:
    """
    Classify HTTP status code into error category.

    Args:
        status_code: HTTP response status

    Returns:
        Appropriate ErrorCategory
    """
    if 200 <= status_code < 400:
        return ErrorCategory.UNKNOWN  # Not an error on its own

    if status_code == 401:
        return ErrorCategory.AUTH

    if status_code in (408, 429):
        return ErrorCategory.TRANSIENT

    if 400 <= status_code < 500:
        return ErrorCategory.PERMANENT

    if status_code >= 500:
        return ErrorCategory.TRANSIENT

    return ErrorCategory.UNKNOWN


def wrap_exception(
    exc: BaseException,
    default_class: type = ConversionError,
    context: Optional[dict] = None,
) -> PipelineError:
    """
    Wrap a generic exception in a PipelineError subclass.

    Pipeline errors pass through (their context is updated). Anything else
    is wrapped in ``default_class``.

    Args:
        exc: Exception to wrap
        default_class: Class to use for foreign exceptions
        context: Additional context to include

    Returns:
        PipelineError instance
    """
    if isinstance(exc, PipelineError):
        if context:
            exc.context.update(context)
        return exc

    if default_class is TransportError:
        return TransportError(exc, context=context)

    return default_class(str(exc) or type(exc).__name__, cause=exc, context=context)


def user_message(error: BaseException) -> str:
    """
    Return the display text for an error.

    Every error kind maps to a single human-readable message. Raw status
    codes and transport internals never appear here.

    Args:
        error: Any exception delivered through a completion

    Returns:
        Message suitable for an end user
    """
    if isinstance(error, PipelineError):
        return error.user_message
    return GENERIC_SERVER_MESSAGE
