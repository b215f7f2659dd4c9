"""Drift detection against a subject's latest registered schema."""

from __future__ import annotations

import logging
from typing import Optional

from schemadrift.core.metrics import DriftMetrics
from schemadrift.core.schema.diff import compare_definitions
from schemadrift.core.schema.models import DriftResult, DriftStatus
from schemadrift.core.schema.storage import VersionStore

logger = logging.getLogger(__name__)


class DriftDetector:
    """Compares candidate schemas with the latest stored version.

    Lookup failures fail closed: the check reports MATCH so that a storage
    outage never triggers a registration, and the failure goes to the error
    channel instead of the caller.
    """

    def __init__(self, store: VersionStore, metrics: Optional[DriftMetrics] = None):
        self.store = store
        self.metrics = metrics

    def detect(self, subject: str, candidate: str) -> DriftResult:
        try:
            versions = self.store.list_versions(subject)
        except Exception as e:
            logger.error(
                f"Error detecting schema drift: {e}",
                extra={"subject": subject},
                exc_info=True,
            )
            if self.metrics:
                self.metrics.record_error(e, {"subject": subject, "stage": "detect"})
            return self._finish(
                DriftResult(
                    subject=subject,
                    status=DriftStatus.MATCH,
                    candidate=candidate,
                    error=str(e),
                )
            )

        if not versions:
            logger.info(f"New subject detected: {subject}", extra={"subject": subject})
            return self._finish(
                DriftResult(subject=subject, status=DriftStatus.NO_PRIOR, candidate=candidate)
            )

        latest = max(versions, key=lambda v: v.version)
        if latest.definition == candidate:
            return self._finish(
                DriftResult(
                    subject=subject,
                    status=DriftStatus.MATCH,
                    candidate=candidate,
                    latest=latest,
                )
            )

        changes = compare_definitions(latest.definition, candidate)
        logger.warning(
            f"Schema drift detected for subject: {subject} "
            f"({changes.describe() if changes else 'unparseable definition'})",
            extra={"subject": subject, "version": latest.version},
        )
        logger.warning(f"Previous: {latest.definition}", extra={"subject": subject})
        logger.warning(f"Current: {candidate}", extra={"subject": subject})
        return self._finish(
            DriftResult(
                subject=subject,
                status=DriftStatus.DRIFT,
                candidate=candidate,
                latest=latest,
                changes=changes,
            )
        )

    def _finish(self, result: DriftResult) -> DriftResult:
        if self.metrics:
            self.metrics.record_status(result.status.value)
        return result
