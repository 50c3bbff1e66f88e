"""
Result converters.

A converter turns the optional raw body of a response into the value the
caller asked for, or raises ConversionError. Anything with a converter can
be returned by the dispatcher; to support a new result shape, add a
converter.

Built-in shapes:
    bytes            BytesConverter
    Optional[bytes]  OptionalBytesConverter
    str              TextConverter
    Empty            EmptyConverter
    pydantic model   ModelConverter
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, Type, TypeVar

from pydantic import BaseModel

from request_pipeline.convert.serialization import JSONSerializer, default_serializer
from request_pipeline.errors import ConversionError

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

MISSING_DATA_MESSAGE = "Failed to get data from the server."


class ResultConverter(ABC, Generic[T]):
    """Converts optional response bytes into a T."""

    @abstractmethod
    def convert(self, data: Optional[bytes]) -> T:
        """
        Convert data into the result type.

        Raises:
            ConversionError: If the data cannot be converted
        """

    def __call__(self, data: Optional[bytes]) -> T:
        return self.convert(data)


class RequiredDataConverter(ResultConverter[T]):
    """
    A converter that needs data to be present.

    Absent data fails with ConversionError before convert_data is called, so
    subclasses only ever see bytes.
    """

    def convert(self, data: Optional[bytes]) -> T:
        if data is None:
            raise ConversionError(MISSING_DATA_MESSAGE)
        return self.convert_data(data)

    @abstractmethod
    def convert_data(self, data: bytes) -> T:
        """Convert present data. Raise ConversionError on failure."""


class BytesConverter(RequiredDataConverter[bytes]):
    """Returns the body unchanged."""

    def convert_data(self, data: bytes) -> bytes:
        return bytes(data)


class OptionalBytesConverter(ResultConverter[Optional[bytes]]):
    """Returns the body unchanged, including None. Never fails."""

    def convert(self, data: Optional[bytes]) -> Optional[bytes]:
        return data


class TextConverter(RequiredDataConverter[str]):
    """Decodes the body as UTF-8 text."""

    def convert_data(self, data: bytes) -> str:
        try:
            return bytes(data).decode("utf-8")
        except UnicodeDecodeError as e:
            raise ConversionError("Failed to parse data into a utf8 string.", cause=e)


@dataclass(frozen=True)
class Empty:
    """Result for callers that only care whether the request succeeded."""


EMPTY = Empty()


class EmptyConverter(ResultConverter[Empty]):
    """Ignores the body. Never fails."""

    def convert(self, data: Optional[bytes]) -> Empty:
        return EMPTY


class ModelConverter(RequiredDataConverter[M]):
    """
    Decodes a JSON body into a pydantic model.

    Args:
        model_type: Model class to decode into
        serializer: Serializer to use (default: configured casing)
    """

    def __init__(self, model_type: Type[M], serializer: Optional[JSONSerializer] = None):
        self.model_type = model_type
        self.serializer = serializer

    def convert_data(self, data: bytes) -> M:
        serializer = self.serializer or default_serializer()
        try:
            return serializer.decode(data, self.model_type)
        except ValueError as e:
            # pydantic.ValidationError (invalid JSON included) is a ValueError
            raise ConversionError(
                f"Failed to decode {self.model_type.__name__}", cause=e
            )


class FunctionConverter(RequiredDataConverter[T]):
    """Adapts a plain callable taking bytes into a converter."""

    def __init__(self, fn: Callable[[bytes], T]):
        self.fn = fn

    def convert_data(self, data: bytes) -> T:
        try:
            return self.fn(data)
        except ConversionError:
            raise
        except Exception as e:
            raise ConversionError(f"Conversion failed: {e}", cause=e)


_CONVERTERS_BY_TYPE = {
    bytes: BytesConverter,
    Optional[bytes]: OptionalBytesConverter,
    str: TextConverter,
    Empty: EmptyConverter,
    type(None): EmptyConverter,
}


def converter_for(result_type: Any) -> ResultConverter:
    """
    Select the converter for a requested result type.

    Args:
        result_type: bytes, Optional[bytes], str, Empty, None, a pydantic
            model class, or a converter instance (returned as-is)

    Returns:
        Converter producing values of result_type

    Raises:
        TypeError: If no converter exists for result_type
    """
    if isinstance(result_type, ResultConverter):
        return result_type
    if result_type is None:
        return EmptyConverter()

    converter_class = _CONVERTERS_BY_TYPE.get(result_type)
    if converter_class is not None:
        return converter_class()

    if isinstance(result_type, type) and issubclass(result_type, BaseModel):
        return ModelConverter(result_type)

    raise TypeError(f"No converter for result type {result_type!r}")
