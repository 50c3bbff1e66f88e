"""
Response conversion.

Provides:
- ResultConverter and the built-in converters (bytes, text, models, ...)
- JSONSerializer with a configurable key-casing convention
"""

from request_pipeline.convert.converters import (
    EMPTY,
    BytesConverter,
    Empty,
    EmptyConverter,
    FunctionConverter,
    ModelConverter,
    OptionalBytesConverter,
    RequiredDataConverter,
    ResultConverter,
    TextConverter,
    converter_for,
)
from request_pipeline.convert.serialization import (
    JSONSerializer,
    KeyCasing,
    WireModel,
    default_serializer,
    serializer_for,
)

__all__ = [
    "EMPTY",
    "BytesConverter",
    "Empty",
    "EmptyConverter",
    "FunctionConverter",
    "ModelConverter",
    "OptionalBytesConverter",
    "RequiredDataConverter",
    "ResultConverter",
    "TextConverter",
    "converter_for",
    "JSONSerializer",
    "KeyCasing",
    "WireModel",
    "default_serializer",
    "serializer_for",
]
