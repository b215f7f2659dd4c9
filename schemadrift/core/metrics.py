"""Metrics collection for drift detection runs."""

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class DriftMetrics:
    """Collects counters while records are processed.

    Also serves as the error channel: failures that the core absorbs for
    liveness (storage lookups, exhausted registrations) are recorded here.
    """

    name: str = "schemadrift"
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None

    records_processed: int = 0
    matches: int = 0
    drifts: int = 0
    new_subjects: int = 0
    registrations: int = 0
    errors: int = 0
    execution_time: float = 0.0

    record_times: list[float] = field(default_factory=list)
    error_details: list[dict[str, Any]] = field(default_factory=list)

    _lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )

    def record_status(self, status: str) -> None:
        """Record the outcome of a drift check.

        Args:
            status: One of NO_PRIOR, MATCH, DRIFT
        """
        with self._lock:
            if status == "MATCH":
                self.matches += 1
            elif status == "DRIFT":
                self.drifts += 1
            elif status == "NO_PRIOR":
                self.new_subjects += 1

    def record_registration(self) -> None:
        with self._lock:
            self.registrations += 1

    def record_processed(self, record_time: float) -> None:
        """Record a processed record.

        Args:
            record_time: Time taken to process the record in seconds
        """
        with self._lock:
            self.records_processed += 1
            self.record_times.append(record_time)

    def record_error(
        self, error: Exception, context: dict[str, Any] | None = None
    ) -> None:
        """Record an error.

        Args:
            error: The exception that occurred
            context: Additional context about the error
        """
        error_detail = {
            "error_type": type(error).__name__,
            "error_message": str(error),
        }
        if context:
            error_detail["context"] = context
        with self._lock:
            self.errors += 1
            self.error_details.append(error_detail)

    def finish(self) -> None:
        """Mark the run as finished and calculate final metrics."""
        self.end_time = time.time()
        self.execution_time = self.end_time - self.start_time

    def to_dict(self) -> dict[str, Any]:
        """Export metrics as dictionary.

        Returns:
            Dictionary containing all metrics
        """
        avg_record_time = (
            sum(self.record_times) / len(self.record_times)
            if self.record_times
            else 0.0
        )
        records_per_second = (
            self.records_processed / self.execution_time
            if self.execution_time > 0
            else 0.0
        )

        return {
            "name": self.name,
            "execution_time": self.execution_time,
            "records_processed": self.records_processed,
            "matches": self.matches,
            "drifts": self.drifts,
            "new_subjects": self.new_subjects,
            "registrations": self.registrations,
            "errors": self.errors,
            "avg_record_time": avg_record_time,
            "records_per_second": records_per_second,
            "error_details": list(self.error_details),
        }

    def get_summary(self) -> str:
        """Get human-readable summary of metrics.

        Returns:
            Summary string
        """
        if not self.end_time:
            self.finish()

        metrics = self.to_dict()
        summary_parts = [
            f"Run: {metrics['name']}",
            f"Records: {metrics['records_processed']}",
            f"Drifts: {metrics['drifts']}",
            f"Registered: {metrics['registrations']}",
            f"Time: {metrics['execution_time']:.2f}s",
        ]

        if metrics["errors"] > 0:
            summary_parts.append(f"Errors: {metrics['errors']}")

        return " | ".join(summary_parts)
