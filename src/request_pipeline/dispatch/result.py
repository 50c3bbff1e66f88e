"""Completion result types."""

from dataclasses import dataclass, field
from typing import Callable, Generic, Mapping, Optional, TypeVar

from request_pipeline.transport.base import ResponseEnvelope

T = TypeVar("T")
U = TypeVar("U")

_MISSING = object()


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Outcome of a request: exactly one of value or error.

    Build with Result.success(value) or Result.failure(error).
    """

    _value: object = _MISSING
    error: Optional[BaseException] = None

    def __post_init__(self) -> None:
        has_value = self._value is not _MISSING
        if has_value == (self.error is not None):
            raise ValueError("Result needs exactly one of value or error")

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(_value=value)

    @classmethod
    def failure(cls, error: BaseException) -> "Result[T]":
        return cls(error=error)

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def value(self) -> T:
        """The success value. Raises the error for a failed result."""
        return self.unwrap()

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self._value  # type: ignore[return-value]

    def map(self, fn: Callable[[T], U]) -> "Result[U]":
        if self.error is not None:
            return Result.failure(self.error)
        return Result.success(fn(self._value))  # type: ignore[arg-type]

    def __repr__(self) -> str:
        if self.error is not None:
            return f"Result.failure({self.error!r})"
        return f"Result.success({self._value!r})"


@dataclass(frozen=True)
class ResponseInfo:
    """Response metadata passed to *_with_response completions."""

    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    url: Optional[str] = None

    @classmethod
    def from_envelope(cls, envelope: ResponseEnvelope) -> Optional["ResponseInfo"]:
        if envelope.status_code is None:
            return None
        return cls(
            status_code=envelope.status_code,
            headers=dict(envelope.headers),
            url=envelope.url,
        )
