"""
JSON serializer for structured request and response bodies.

Models are pydantic models with snake_case field names. WireModel gives
every field a camelCase alias, and the serializer picks which name goes on
the wire, identically for encoding and decoding:

    SNAKE_CASE: {"user_name": "ana"}   <->  Model(user_name="ana")
    CAMEL_CASE: {"userName": "ana"}    <->  Model(user_name="ana")

Only field names are renamed. Keys inside dict-typed values are data and
are left alone.
"""

import json
from enum import Enum
from typing import Any, Type, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from request_pipeline.config import get_config

M = TypeVar("M", bound=BaseModel)


class KeyCasing(Enum):
    """Key naming convention used on the wire."""

    SNAKE_CASE = "snake_case"
    CAMEL_CASE = "camel_case"


class WireModel(BaseModel):
    """
    Base class for request and response payload models.

    Fields accept both their Python name and their camelCase alias when
    validating. Explicit Field(alias=...) declarations take precedence.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class JSONSerializer:
    """
    Encode models to JSON bytes and decode JSON bytes into models.

    Errors from json or pydantic propagate unchanged; callers decide how to
    wrap them.
    """

    def __init__(self, casing: KeyCasing = KeyCasing.SNAKE_CASE):
        self.casing = casing

    @property
    def by_alias(self) -> bool:
        return self.casing is KeyCasing.CAMEL_CASE

    def encode(self, value: Any) -> bytes:
        """
        Encode a model (or plain JSON-compatible value) as UTF-8 JSON.

        Plain values are encoded as given.

        Raises:
            TypeError: If the value is not JSON serializable
            pydantic_core.PydanticSerializationError: If model dumping fails
        """
        if isinstance(value, BaseModel):
            payload = value.model_dump(mode="json", by_alias=self.by_alias)
        else:
            payload = value

        return json.dumps(payload, ensure_ascii=False).encode("utf-8")

    def decode(self, data: bytes, model_type: Type[M]) -> M:
        """
        Decode JSON bytes into an instance of model_type.

        Raises:
            pydantic.ValidationError: If data is not valid JSON or does not
                match the model
        """
        return model_type.model_validate_json(data)


def serializer_for(casing: str) -> JSONSerializer:
    """Build a serializer from a configured casing name."""
    return JSONSerializer(KeyCasing(casing))


def default_serializer() -> JSONSerializer:
    """Serializer using the process-wide configured casing."""
    return serializer_for(get_config().key_casing)
