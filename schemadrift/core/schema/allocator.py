"""Version allocation for newly observed schemas."""

from __future__ import annotations

import logging
import random
import threading
import time
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from schemadrift.core.exceptions import RegistrationError, VersionConflictError
from schemadrift.core.metrics import DriftMetrics
from schemadrift.core.schema.models import (
    DEFAULT_COMPATIBILITY_MODE,
    SchemaVersion,
    utc_now,
)
from schemadrift.core.schema.storage import VersionStore

logger = logging.getLogger(__name__)


class SubjectLocks:
    """One lock per subject; different subjects never wait on each other.

    Entries are reference counted and dropped once no thread holds or waits
    on them, so the map only covers subjects being registered right now.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, List] = {}
        self._guard = threading.Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    @contextmanager
    def hold(self, subject: str) -> Iterator[None]:
        with self._guard:
            entry = self._entries.get(subject)
            if entry is None:
                entry = self._entries[subject] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._entries[subject]


class VersionAllocator:
    """Allocates the next version number of a subject and persists it.

    The read-modify-write span is serialized per subject inside this process.
    Writers in other processes are kept apart by the store's atomic append;
    a lost race is retried with a freshly computed version number.
    """

    def __init__(
        self,
        store: VersionStore,
        compatibility_mode: str = DEFAULT_COMPATIBILITY_MODE,
        max_retries: int = 3,
        retry_delay: float = 0.05,
        backoff_rate: float = 2.0,
        metrics: Optional[DriftMetrics] = None,
        subject_locks: Optional[SubjectLocks] = None,
    ):
        """Initialize VersionAllocator.

        Args:
            store: Version store to read and append to
            compatibility_mode: Label recorded on every new version
            max_retries: Retries after a version conflict before giving up
            retry_delay: Initial delay between retries in seconds; each sleep
                adds a random jitter of up to the same amount
            backoff_rate: Multiplier applied to the delay after each retry
            metrics: Optional metrics collector
            subject_locks: Lock table to share with other allocators over the
                same store
        """
        if max_retries < 0:
            raise ValueError("max_retries must be at least 0")
        self.store = store
        self.compatibility_mode = compatibility_mode
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.backoff_rate = backoff_rate
        self.metrics = metrics
        self._locks = subject_locks if subject_locks is not None else SubjectLocks()

    def next_version(self, subject: str) -> int:
        versions = self.store.list_versions(subject)
        return max((v.version for v in versions), default=0) + 1

    def register(
        self,
        subject: str,
        definition: str,
        registered_by: str,
        schema_id: Optional[int] = None,
    ) -> SchemaVersion:
        """Register ``definition`` as the next version of ``subject``.

        Args:
            subject: Subject to register under
            definition: Canonical schema string
            registered_by: Provenance recorded on the version
            schema_id: Optional external registry id

        Returns:
            The persisted SchemaVersion

        Raises:
            StorageReadError: If existing versions cannot be read
            StorageWriteError: If the new version cannot be persisted
            RegistrationError: If every attempt lost a concurrent race
        """
        last_conflict: Optional[VersionConflictError] = None
        delay = self.retry_delay

        for attempt in range(self.max_retries + 1):
            if attempt:
                time.sleep(delay + random.uniform(0, delay))
                delay *= self.backoff_rate
            try:
                saved = self._register_once(subject, definition, registered_by, schema_id)
            except VersionConflictError as e:
                last_conflict = e
                logger.warning(
                    f"Version conflict on attempt {attempt + 1}: {e}",
                    extra={"subject": subject, "version": e.version},
                )
                continue

            if self.metrics:
                self.metrics.record_registration()
            logger.info(
                f"Registered schema version {saved.version} for subject: {subject}",
                extra={"subject": subject, "version": saved.version},
            )
            return saved

        raise RegistrationError(
            f"Failed to register schema after {self.max_retries + 1} attempts",
            context={"subject": subject, "max_retries": self.max_retries},
        ) from last_conflict

    def _register_once(
        self,
        subject: str,
        definition: str,
        registered_by: str,
        schema_id: Optional[int],
    ) -> SchemaVersion:
        with self._locks.hold(subject):
            candidate = SchemaVersion(
                subject=subject,
                version=self.next_version(subject),
                schema_id=schema_id,
                definition=definition,
                compatibility_mode=self.compatibility_mode,
                is_active=True,
                registered_at=utc_now(),
                registered_by=registered_by,
            )
            return self.store.append_version_atomic(candidate)
