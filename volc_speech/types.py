"""Wire-level primitives: tri-state boolean, JSON decoding, `resp` envelope."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from volc_speech.errors import DeserializationError, UnexpectedResponseShapeError

ENVELOPE_KEY = "resp"

ModelT = TypeVar("ModelT", bound=BaseModel)


class Boolean(str, Enum):
    """Boolean the vendor expects as the literal strings "True" / "False"."""

    TRUE = "True"
    FALSE = "False"

    @classmethod
    def from_bool(cls, value: bool) -> "Boolean":
        return cls.TRUE if value else cls.FALSE

    @classmethod
    def coerce(cls, value: "bool | Boolean | str") -> "Boolean":
        """Accept a native bool, an existing Boolean or one of the two literals."""
        if isinstance(value, Boolean):
            return value
        if isinstance(value, str):
            return cls.decode(value)
        return cls.from_bool(bool(value))

    @classmethod
    def decode(cls, literal: str) -> "Boolean":
        try:
            return cls(literal)
        except ValueError as e:
            raise DeserializationError(
                f"expected 'True' or 'False', got {literal!r}"
            ) from e

    def encode(self) -> str:
        return self.value

    def to_bool(self) -> bool:
        return self is Boolean.TRUE

    def __bool__(self) -> bool:
        return self.to_bool()

    def __str__(self) -> str:
        return self.value


def parse_json(raw: bytes | str) -> Any:
    """Parse a response body; malformed JSON becomes DeserializationError."""
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DeserializationError(f"malformed JSON response: {e}") from e


def decode_model(model: type[ModelT], value: Any) -> ModelT:
    """Validate a parsed JSON value into `model`; mismatches become DeserializationError."""
    try:
        return model.model_validate(value)
    except ValidationError as e:
        raise DeserializationError(
            f"response does not match {model.__name__}: {e}"
        ) from e


def unwrap_envelope(value: Any) -> Any:
    """Remove and return the child keyed `resp`.

    The vendor nests the real payload in `resp` on success and on failure alike,
    so a missing key is a protocol error rather than an empty result.
    """
    if not isinstance(value, dict) or ENVELOPE_KEY not in value:
        raise UnexpectedResponseShapeError(
            f"response has no {ENVELOPE_KEY!r} envelope: {str(value)[:300]}"
        )
    return value.pop(ENVELOPE_KEY)
