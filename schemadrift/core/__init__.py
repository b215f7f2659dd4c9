"""Core module for schemadrift package."""

from schemadrift.core.exceptions import (
    CatalogError,
    ConfigError,
    DecodeError,
    RecordTimeoutError,
    RegistrationError,
    SchemaDriftError,
    StorageError,
    StorageReadError,
    StorageWriteError,
    VersionConflictError,
)
from schemadrift.core.external import HttpSubjectCatalog, SubjectCatalog
from schemadrift.core.metrics import DriftMetrics
from schemadrift.core.parallel import AsyncRecordExecutor
from schemadrift.core.processor import (
    FirstSightingPolicy,
    RecordMetadata,
    RecordProcessor,
    log_level_for_record,
    subject_for_record,
)
from schemadrift.core.schema import (
    EMPTY_SCHEMA,
    DriftResult,
    DriftStatus,
    SchemaRegistry,
    SchemaVersion,
    VersionStore,
    create_version_store,
)

__all__ = [
    "SchemaDriftError",
    "ConfigError",
    "DecodeError",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    "VersionConflictError",
    "RegistrationError",
    "RecordTimeoutError",
    "CatalogError",
    "SubjectCatalog",
    "HttpSubjectCatalog",
    "DriftMetrics",
    "AsyncRecordExecutor",
    "FirstSightingPolicy",
    "RecordMetadata",
    "RecordProcessor",
    "log_level_for_record",
    "subject_for_record",
    "EMPTY_SCHEMA",
    "DriftResult",
    "DriftStatus",
    "SchemaRegistry",
    "SchemaVersion",
    "VersionStore",
    "create_version_store",
]
