"""schemadrift - Schema inference, drift detection, and versioning.

Derives a canonical schema from each semi-structured record, compares it with
the latest version registered for the record's subject, and appends a new
version when the shape changes.
"""

__version__ = "0.1.0"

# Public API
from schemadrift.api import (
    build_processor,
    build_registry,
    check_drift,
    derive_schema,
    from_yaml,
    process_record,
    register_version,
)

# Exceptions
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
from schemadrift.core.metrics import DriftMetrics
from schemadrift.core.processor import RecordMetadata, RecordProcessor

# Core classes
from schemadrift.core.schema import (
    EMPTY_SCHEMA,
    DriftResult,
    DriftStatus,
    InMemoryVersionStore,
    LocalJsonVersionStore,
    SchemaRegistry,
    SchemaVersion,
    SqlVersionStore,
    VersionStore,
    create_version_store,
)

# Config model
from schemadrift.models.registry_config import RegistryConfig

__all__ = [
    # Version
    "__version__",
    # Public API
    "from_yaml",
    "build_registry",
    "build_processor",
    "derive_schema",
    "check_drift",
    "register_version",
    "process_record",
    # Core classes
    "RegistryConfig",
    "SchemaRegistry",
    "SchemaVersion",
    "DriftResult",
    "DriftStatus",
    "DriftMetrics",
    "RecordMetadata",
    "RecordProcessor",
    "EMPTY_SCHEMA",
    "VersionStore",
    "InMemoryVersionStore",
    "LocalJsonVersionStore",
    "SqlVersionStore",
    "create_version_store",
    # Exceptions
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
]
