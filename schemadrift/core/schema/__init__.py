"""Schema package: inference, derivation, drift detection, and versioning."""

from schemadrift.core.schema.allocator import VersionAllocator
from schemadrift.core.schema.deriver import (
    EMPTY_SCHEMA,
    SchemaDeriver,
    decode_record,
    parse_definition,
)
from schemadrift.core.schema.diff import compare_definitions
from schemadrift.core.schema.drift import DriftDetector
from schemadrift.core.schema.inference import TypeInferrer, TypeTag, infer_type
from schemadrift.core.schema.models import (
    CompatibilityMode,
    DriftResult,
    DriftStatus,
    SchemaChange,
    SchemaVersion,
)
from schemadrift.core.schema.registry import SchemaRegistry
from schemadrift.core.schema.storage import (
    DynamoDBVersionStore,
    InMemoryVersionStore,
    LocalJsonVersionStore,
    SqlVersionStore,
    TimedVersionStore,
    VersionStore,
    create_version_store,
)

__all__ = [
    "EMPTY_SCHEMA",
    "CompatibilityMode",
    "DriftDetector",
    "DriftResult",
    "DriftStatus",
    "SchemaChange",
    "SchemaDeriver",
    "SchemaRegistry",
    "SchemaVersion",
    "TypeInferrer",
    "TypeTag",
    "VersionAllocator",
    "VersionStore",
    "InMemoryVersionStore",
    "LocalJsonVersionStore",
    "SqlVersionStore",
    "DynamoDBVersionStore",
    "TimedVersionStore",
    "compare_definitions",
    "create_version_store",
    "decode_record",
    "infer_type",
    "parse_definition",
]
