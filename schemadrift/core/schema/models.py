"""Schema version models and drift outcomes.

A subject is the grouping key for one lineage of record shapes. Each time the
shape of a subject's records changes, a new immutable ``SchemaVersion`` is
appended; versions are never updated in place.
"""

import datetime as dt
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class CompatibilityMode(str, Enum):
    """Declared compatibility label. Recorded only, never enforced."""

    NONE = "NONE"
    BACKWARD = "BACKWARD"
    FORWARD = "FORWARD"
    FULL = "FULL"


DEFAULT_COMPATIBILITY_MODE = CompatibilityMode.BACKWARD.value


class DriftStatus(str, Enum):
    """Outcome of comparing a candidate schema against a subject's latest."""

    NO_PRIOR = "NO_PRIOR"  # Subject has no registered versions
    MATCH = "MATCH"  # Candidate equals the latest definition
    DRIFT = "DRIFT"  # Candidate differs from the latest definition


class SchemaVersion(BaseModel):
    """One registered schema definition within a subject's lineage."""

    model_config = ConfigDict(frozen=True)

    subject: str = Field(description="Subject this version belongs to", min_length=1)
    version: int = Field(description="Version number within the subject", ge=1)
    schema_id: Optional[int] = Field(
        default=None, description="External schema registry correlation id"
    )
    definition: str = Field(description="Canonical schema string")
    compatibility_mode: str = Field(
        default=DEFAULT_COMPATIBILITY_MODE,
        description="Declared compatibility label (not enforced)",
    )
    is_active: bool = Field(default=True, description="Administrative active flag")
    registered_at: dt.datetime = Field(
        default_factory=utc_now, description="Creation timestamp (UTC)"
    )
    registered_by: str = Field(default="", description="Registration provenance")

    def deactivate(self) -> "SchemaVersion":
        return self.model_copy(update={"is_active": False})

    def to_record(self) -> dict[str, Any]:
        """Serialize to a flat, JSON-compatible storage record."""
        return self.model_dump(mode="json")

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "SchemaVersion":
        return cls.model_validate(data)


class SchemaChange(BaseModel):
    """Field-level differences between two schema definitions."""

    added_fields: list[str] = Field(default_factory=list)
    removed_fields: list[str] = Field(default_factory=list)
    type_changes: dict[str, tuple[str, str]] = Field(default_factory=dict)
    reordered: bool = False

    @property
    def is_empty(self) -> bool:
        return not (
            self.added_fields
            or self.removed_fields
            or self.type_changes
            or self.reordered
        )

    def describe(self) -> str:
        parts = []
        if self.added_fields:
            parts.append(f"added={','.join(self.added_fields)}")
        if self.removed_fields:
            parts.append(f"removed={','.join(self.removed_fields)}")
        for name, (old, new) in self.type_changes.items():
            parts.append(f"{name}:{old}->{new}")
        if self.reordered:
            parts.append("reordered")
        return " ".join(parts) or "no field changes"


class DriftResult(BaseModel):
    """Result of a drift check for one candidate schema."""

    subject: str
    status: DriftStatus
    candidate: str
    latest: Optional[SchemaVersion] = None
    changes: Optional[SchemaChange] = None
    error: Optional[str] = Field(
        default=None,
        description="Set when the lookup failed and the check fell back to MATCH",
    )

    @property
    def is_drift(self) -> bool:
        return self.status == DriftStatus.DRIFT

    @property
    def degraded(self) -> bool:
        return self.error is not None
