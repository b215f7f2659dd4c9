"""Public Python API for schemadrift package.

This module provides the main entry points for deriving schemas, checking
drift, and registering versions, plus builders that wire a registry from a
``RegistryConfig``.
"""

import threading
import weakref
from typing import Optional

from schemadrift.core.external import HttpSubjectCatalog
from schemadrift.core.metrics import DriftMetrics
from schemadrift.core.processor import RecordMetadata, RecordProcessor
from schemadrift.core.schema.allocator import SubjectLocks, VersionAllocator
from schemadrift.core.schema.deriver import RawRecord, SchemaDeriver
from schemadrift.core.schema.drift import DriftDetector
from schemadrift.core.schema.models import DriftResult, SchemaVersion
from schemadrift.core.schema.registry import SchemaRegistry
from schemadrift.core.schema.storage import VersionStore, create_version_store
from schemadrift.models.loader import load_config
from schemadrift.models.registry_config import RegistryConfig

_deriver = SchemaDeriver()

# Lock tables shared by every register_version call on the same store
_store_locks: "weakref.WeakKeyDictionary[VersionStore, SubjectLocks]" = (
    weakref.WeakKeyDictionary()
)
_store_locks_guard = threading.Lock()


def _locks_for(store: VersionStore) -> SubjectLocks:
    with _store_locks_guard:
        locks = _store_locks.get(store)
        if locks is None:
            locks = _store_locks[store] = SubjectLocks()
        return locks


def from_yaml(path: str, cli_vars: dict[str, str] | None = None) -> RegistryConfig:
    """Load registry config from a YAML file.

    Args:
        path: Path to config YAML file
        cli_vars: Variables for {{ var('KEY') }} templates

    Returns:
        Validated RegistryConfig

    Raises:
        ConfigError: If file not found, invalid YAML, or validation fails

    Example:
        >>> config = from_yaml("examples/registry.yaml")
        >>> print(config.store)
        sql:sqlite:///schemas.db
    """
    return load_config(path, cli_vars=cli_vars)


def build_registry(
    config: RegistryConfig,
    store: Optional[VersionStore] = None,
    metrics: Optional[DriftMetrics] = None,
) -> SchemaRegistry:
    """Wire a SchemaRegistry from configuration.

    Args:
        config: Registry configuration
        store: Optional store overriding ``config.store``
        metrics: Optional metrics collector shared by all components

    Raises:
        ValueError: If the store config string is invalid
    """
    store = store or create_version_store(config.store, timeout=config.storage_timeout)
    allocator = VersionAllocator(
        store,
        compatibility_mode=config.compatibility_mode.value,
        max_retries=config.registration.max_retries,
        retry_delay=config.registration.retry_delay,
        backoff_rate=config.registration.backoff_rate,
        metrics=metrics,
        subject_locks=_locks_for(store),
    )
    catalog = None
    if config.external:
        catalog = HttpSubjectCatalog(
            config.external.url,
            timeout=config.external.timeout,
            max_retries=config.external.max_retries,
        )
    return SchemaRegistry(
        store=store,
        detector=DriftDetector(store, metrics=metrics),
        allocator=allocator,
        catalog=catalog,
        metrics=metrics,
    )


def build_processor(
    config: RegistryConfig,
    registry: Optional[SchemaRegistry] = None,
    metrics: Optional[DriftMetrics] = None,
) -> RecordProcessor:
    registry = registry or build_registry(config, metrics=metrics)
    return RecordProcessor(
        registry,
        registered_by=config.registered_by,
        first_sighting=config.first_sighting,
        register_empty_schema=config.register_empty_schema,
        metrics=metrics,
    )


def derive_schema(raw: RawRecord) -> str:
    """Derive the canonical schema string of a raw record.

    Example:
        >>> derive_schema(b'{"service":"auth","code":200}')
        '{"service":"string","code":"integer"}'
    """
    return _deriver.derive(raw)


def check_drift(store: VersionStore, subject: str, candidate: str) -> DriftResult:
    """Compare a candidate schema with the latest version stored for a subject."""
    return DriftDetector(store).detect(subject, candidate)


def register_version(
    store: VersionStore,
    subject: str,
    definition: str,
    registered_by: str,
) -> SchemaVersion:
    """Register a definition as the next version of a subject.

    Calls for the same store share one lock table, so concurrent
    registrations in this process are serialized per subject instead of
    racing.

    Raises:
        StorageError: If the store fails
        RegistrationError: If concurrent registrations kept winning
    """
    allocator = VersionAllocator(store, subject_locks=_locks_for(store))
    return allocator.register(subject, definition, registered_by)


def process_record(
    registry: SchemaRegistry,
    raw: RawRecord,
    subject: Optional[str] = None,
    registered_by: str = "schemadrift",
) -> RecordMetadata:
    """Run derive, drift check, and registration for one record."""
    return RecordProcessor(registry, registered_by=registered_by).process(raw, subject)
