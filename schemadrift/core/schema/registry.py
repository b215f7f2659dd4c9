"""Schema registry: derivation, drift checks, and version registration."""

from __future__ import annotations

import logging
from typing import List, Optional

from schemadrift.core.external import SubjectCatalog
from schemadrift.core.metrics import DriftMetrics
from schemadrift.core.schema.allocator import VersionAllocator
from schemadrift.core.schema.deriver import RawRecord, SchemaDeriver
from schemadrift.core.schema.drift import DriftDetector
from schemadrift.core.schema.models import DriftResult, SchemaVersion
from schemadrift.core.schema.storage import InMemoryVersionStore, VersionStore

logger = logging.getLogger(__name__)


class SchemaRegistry:
    """Entry point for the versioning engine.

    Holds no state of its own; everything durable lives in the injected
    store, so several registries may share one store.
    """

    def __init__(
        self,
        store: Optional[VersionStore] = None,
        deriver: Optional[SchemaDeriver] = None,
        detector: Optional[DriftDetector] = None,
        allocator: Optional[VersionAllocator] = None,
        catalog: Optional[SubjectCatalog] = None,
        metrics: Optional[DriftMetrics] = None,
    ) -> None:
        """Initialize schema registry.

        Args:
            store: Version store (defaults to InMemoryVersionStore).
            deriver: Schema deriver (defaults to SchemaDeriver).
            detector: Drift detector (defaults to one over ``store``).
            allocator: Version allocator (defaults to one over ``store``).
            catalog: Optional external subject catalog.
            metrics: Optional metrics collector shared with the defaults.
        """
        self.store = store or InMemoryVersionStore()
        self.metrics = metrics
        self.deriver = deriver or SchemaDeriver()
        self.detector = detector or DriftDetector(self.store, metrics=metrics)
        self.allocator = allocator or VersionAllocator(self.store, metrics=metrics)
        self.catalog = catalog

    def derive_schema(self, raw: RawRecord) -> str:
        """Derive the canonical schema string of a raw record."""
        return self.deriver.derive(raw)

    def check_drift(self, subject: str, candidate: str) -> DriftResult:
        """Compare a candidate schema with the subject's latest version."""
        return self.detector.detect(subject, candidate)

    def register_version(
        self, subject: str, definition: str, registered_by: str
    ) -> SchemaVersion:
        """Register a definition as the subject's next version.

        Raises:
            StorageError: If the store fails
            RegistrationError: If concurrent registrations kept winning
        """
        return self.allocator.register(subject, definition, registered_by)

    def list_versions(self, subject: str) -> List[SchemaVersion]:
        return self.store.list_versions(subject)

    def latest_version(self, subject: str) -> Optional[SchemaVersion]:
        return self.store.latest_version(subject)

    def list_subjects(self) -> List[str]:
        return self.store.list_subjects()

    def close(self) -> None:
        """Close the underlying store when it holds resources."""
        close = getattr(self.store, "close", None)
        if close is not None:
            close()

    def external_subjects(self) -> List[str]:
        """Subjects known to the external registry; empty when not configured."""
        if self.catalog is None:
            return []
        try:
            return list(self.catalog.fetch_subjects())
        except Exception as e:
            logger.error(f"External subject lookup failed: {e}")
            if self.metrics:
                self.metrics.record_error(e, {"stage": "catalog"})
            return []
