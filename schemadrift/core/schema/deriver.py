"""Schema derivation: raw record -> canonical schema string.

The canonical string is the compact JSON serialization of an ordered
``field name -> type tag`` mapping, e.g.::

    {"service":"string","level":"string","code":"integer"}

Drift detection compares these strings byte for byte, so the serialization
must not change: no whitespace, non-ASCII kept as is, fields in the order the
record declared them.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional, Union

from schemadrift.core.exceptions import DecodeError
from schemadrift.core.schema.inference import TypeInferrer

logger = logging.getLogger(__name__)

EMPTY_SCHEMA = "{}"

RawRecord = Union[bytes, bytearray, str]


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-finite number {name} is not allowed")


def decode_record(raw: RawRecord) -> Any:
    """Decode a raw record into Python values.

    Raises:
        DecodeError: If the payload is not valid UTF-8 JSON
    """
    try:
        text = raw.decode("utf-8") if isinstance(raw, (bytes, bytearray)) else raw
        return json.loads(text, parse_constant=_reject_constant)
    except (UnicodeDecodeError, ValueError, TypeError, RecursionError) as e:
        raise DecodeError(
            f"Malformed record: {e}", context={"length": len(raw or "")}
        ) from e


def canonicalize(mapping: dict[str, str]) -> str:
    return json.dumps(mapping, separators=(",", ":"), ensure_ascii=False)


def parse_definition(definition: str) -> dict[str, str]:
    """Read a canonical schema string back into its ordered mapping."""
    try:
        data = json.loads(definition)
    except ValueError as e:
        raise DecodeError(
            f"Invalid schema definition: {e}", context={"definition": definition}
        ) from e
    if not isinstance(data, dict):
        raise DecodeError(
            "Schema definition is not an object", context={"definition": definition}
        )
    return {str(k): str(v) for k, v in data.items()}


class SchemaDeriver:
    """Derives canonical schema strings from raw records.

    Malformed input never raises: it yields ``EMPTY_SCHEMA`` so that record
    processing keeps going.
    """

    def __init__(self, inferrer: Optional[TypeInferrer] = None) -> None:
        self.inferrer = inferrer or TypeInferrer()

    def derive(self, raw: RawRecord) -> str:
        try:
            decoded = decode_record(raw)
        except DecodeError as e:
            logger.error(f"Error inferring schema: {e.message}")
            return EMPTY_SCHEMA
        return canonicalize(self.derive_mapping(decoded))

    def derive_mapping(self, decoded: Any) -> dict[str, str]:
        """Build the ordered field -> type mapping of a decoded record.

        Values that are not objects have no top-level fields.
        """
        if not isinstance(decoded, dict):
            return {}
        return self.inferrer.infer_fields(decoded.items())
