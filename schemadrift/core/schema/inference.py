"""Type inference for decoded record values."""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, Tuple

INT32_MIN, INT32_MAX = -(2**31), 2**31 - 1
INT64_MIN, INT64_MAX = -(2**63), 2**63 - 1


class TypeTag(str, Enum):
    INTEGER = "integer"
    LONG = "long"
    DOUBLE = "double"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"
    STRING = "string"


def infer_type(value: Any) -> TypeTag:
    """Map one decoded value to its type tag.

    Containers are classified by shape only. Integers wider than 64 bits fall
    through to ``string`` like any other non-numeric value.
    """
    # bool is a subclass of int
    if isinstance(value, bool):
        return TypeTag.BOOLEAN
    if isinstance(value, int):
        if INT32_MIN <= value <= INT32_MAX:
            return TypeTag.INTEGER
        if INT64_MIN <= value <= INT64_MAX:
            return TypeTag.LONG
        return TypeTag.STRING
    if isinstance(value, float):
        return TypeTag.DOUBLE
    if isinstance(value, list):
        return TypeTag.ARRAY
    if isinstance(value, dict):
        return TypeTag.OBJECT
    return TypeTag.STRING


class TypeInferrer:
    def infer(self, value: Any) -> TypeTag:
        return infer_type(value)

    def infer_fields(self, fields: Iterable[Tuple[str, Any]]) -> dict[str, str]:
        """Infer a tag per field, keeping the order fields are given in."""
        return {name: self.infer(value).value for name, value in fields}
