"""Per-record processing: derive, check, register, and report metadata."""

import asyncio
import datetime as dt
import json
import logging
import time
from enum import Enum
from typing import Any, Iterable, Optional

from pydantic import BaseModel, Field

from schemadrift.core.exceptions import DecodeError, SchemaDriftError
from schemadrift.core.metrics import DriftMetrics
from schemadrift.core.parallel import AsyncRecordExecutor
from schemadrift.core.schema.deriver import EMPTY_SCHEMA, RawRecord, decode_record
from schemadrift.core.schema.models import DriftResult, DriftStatus, SchemaVersion
from schemadrift.core.schema.registry import SchemaRegistry

logger = logging.getLogger(__name__)

SUBJECT_FIELDS = ("service", "service_name", "application")
LEVEL_FIELDS = ("level", "log_level", "severity")
SUBJECT_SUFFIX = "-schema"
UNKNOWN_SERVICE = "unknown"
DEFAULT_LOG_LEVEL = "INFO"


class FirstSightingPolicy(str, Enum):
    """What to do when a subject has no versions yet."""

    REGISTER = "register"  # Register version 1 immediately
    DEFER = "defer"  # Log the new subject, register nothing


class RecordMetadata(BaseModel):
    """Schema metadata attached to one processed record."""

    subject: str
    service_name: str
    log_level: str
    schema_definition: str
    drift_status: Optional[DriftStatus] = None
    schema_version: Optional[int] = None
    schema_id: Optional[int] = None
    registered: bool = False
    error: Optional[str] = None
    processing_time_ms: int = 0
    processed_at: dt.datetime = Field(
        default_factory=lambda: dt.datetime.now(dt.timezone.utc)
    )


def _as_text(value: Any) -> str:
    """Render a scalar JSON value as text; containers have no text."""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return ""
    return json.dumps(value)


def _first_text(fields: Any, names: Iterable[str]) -> Optional[str]:
    """Text of the first field present in ``fields``, empty text counting as absent."""
    if not isinstance(fields, dict):
        return None
    for name in names:
        if name in fields:
            return _as_text(fields[name]) or None
    return None


def service_name_for_record(raw: RawRecord) -> str:
    try:
        fields = decode_record(raw)
    except DecodeError:
        return UNKNOWN_SERVICE
    return _first_text(fields, SUBJECT_FIELDS) or UNKNOWN_SERVICE


def subject_for_record(raw: RawRecord) -> str:
    """Subject of a record: its service name suffixed with ``-schema``."""
    return service_name_for_record(raw) + SUBJECT_SUFFIX


def log_level_for_record(raw: RawRecord) -> str:
    try:
        fields = decode_record(raw)
    except DecodeError:
        return DEFAULT_LOG_LEVEL
    return _first_text(fields, LEVEL_FIELDS) or DEFAULT_LOG_LEVEL


class RecordProcessor:
    """Runs the versioning pipeline for individual records.

    Failures stay scoped to the record that caused them. When registration
    fails, the record still gets metadata pointing at the best-known (latest
    stored) version, and the failure is logged and counted.
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        registered_by: str = "schemadrift",
        first_sighting: FirstSightingPolicy = FirstSightingPolicy.REGISTER,
        register_empty_schema: bool = True,
        metrics: Optional[DriftMetrics] = None,
    ):
        """Initialize RecordProcessor.

        Args:
            registry: Schema registry to derive, check, and register with
            registered_by: Provenance recorded on new versions
            first_sighting: Policy for subjects without versions
            register_empty_schema: Whether the empty schema (records without
                fields, including malformed ones) may create versions; when
                False such records are checked but never registered
            metrics: Optional metrics collector
        """
        self.registry = registry
        self.registered_by = registered_by
        self.first_sighting = FirstSightingPolicy(first_sighting)
        self.register_empty_schema = register_empty_schema
        self.metrics = metrics or registry.metrics

    def should_register(self, result: DriftResult) -> bool:
        if result.candidate == EMPTY_SCHEMA and not self.register_empty_schema:
            return False
        if result.status == DriftStatus.DRIFT:
            return True
        return (
            result.status == DriftStatus.NO_PRIOR
            and self.first_sighting == FirstSightingPolicy.REGISTER
        )

    def process(self, raw: RawRecord, subject: Optional[str] = None) -> RecordMetadata:
        """Process one raw record and return its schema metadata."""
        start = time.time()
        service_name = service_name_for_record(raw)
        subject = subject or service_name + SUBJECT_SUFFIX

        schema = self.registry.derive_schema(raw)
        result = self.registry.check_drift(subject, schema)

        version: Optional[SchemaVersion] = result.latest
        registered = False
        error = result.error

        if self.should_register(result):
            try:
                version = self.registry.register_version(
                    subject, schema, self.registered_by
                )
                registered = True
            except SchemaDriftError as e:
                error = str(e)
                logger.error(
                    f"Error registering schema: {e}",
                    extra={"subject": subject},
                    exc_info=True,
                )
                if self.metrics:
                    self.metrics.record_error(e, {"subject": subject, "stage": "register"})

        elapsed = time.time() - start
        if self.metrics:
            self.metrics.record_processed(elapsed)

        return RecordMetadata(
            subject=subject,
            service_name=service_name,
            log_level=log_level_for_record(raw),
            schema_definition=schema,
            drift_status=result.status,
            schema_version=version.version if version else None,
            schema_id=version.schema_id if version else None,
            registered=registered,
            error=error,
            processing_time_ms=int(elapsed * 1000),
        )

    async def process_async(
        self, raw: RawRecord, subject: Optional[str] = None
    ) -> RecordMetadata:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.process, raw, subject)

    async def process_many(
        self,
        records: Iterable[RawRecord],
        concurrency: int = 4,
        timeout: Optional[float] = None,
    ) -> list[RecordMetadata]:
        """Process records concurrently, one metadata entry per record.

        A record that fails outright (timeout, cancellation, unexpected
        error) gets metadata carrying the error and no drift status.
        """
        record_list = list(records)
        executor = AsyncRecordExecutor(concurrency, timeout=timeout)
        outcomes = await executor.process_records(record_list, self.process)

        results = []
        for raw, outcome in zip(record_list, outcomes):
            if isinstance(outcome, BaseException):
                results.append(self._failed(raw, outcome))
            else:
                results.append(outcome)
        return results

    def _failed(self, raw: RawRecord, error: BaseException) -> RecordMetadata:
        subject = subject_for_record(raw)
        logger.error(
            f"Error processing record: {error!r}", extra={"subject": subject}
        )
        if self.metrics and isinstance(error, Exception):
            self.metrics.record_error(error, {"subject": subject, "stage": "process"})
        return RecordMetadata(
            subject=subject,
            service_name=service_name_for_record(raw),
            log_level=log_level_for_record(raw),
            schema_definition=self.registry.derive_schema(raw),
            error=str(error) or type(error).__name__,
        )
