"""Version store protocol and implementations.

Every store offers ``append_version_atomic``: the append commits only when no
version with the same ``(subject, version)`` key exists, otherwise it raises
``VersionConflictError``. That single primitive is what keeps each subject's
version sequence unique when several writers race.
"""

from __future__ import annotations

import datetime as dt
import json
import logging
import os
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol, TypeVar
from urllib.parse import quote, unquote

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    insert,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from schemadrift.core.exceptions import (
    StorageReadError,
    StorageWriteError,
    VersionConflictError,
)
from schemadrift.core.schema.models import SchemaVersion

logger = logging.getLogger(__name__)

T = TypeVar("T")


class VersionStore(Protocol):
    """Protocol for durable schema version storage."""

    def list_versions(self, subject: str) -> List[SchemaVersion]:
        """List all versions of a subject, ordered by version ascending.

        Raises:
            StorageReadError: If the store cannot be read
        """
        ...

    def latest_version(self, subject: str) -> Optional[SchemaVersion]:
        """Return the version with the highest number, or None.

        Raises:
            StorageReadError: If the store cannot be read
        """
        ...

    def get_version(self, subject: str, version: int) -> Optional[SchemaVersion]:
        """Return one version of a subject, or None.

        Raises:
            StorageReadError: If the store cannot be read
        """
        ...

    def list_subjects(self) -> List[str]:
        """List every subject with at least one version.

        Raises:
            StorageReadError: If the store cannot be read
        """
        ...

    def append_version_atomic(self, candidate: SchemaVersion) -> SchemaVersion:
        """Persist a new version if its (subject, version) key is unused.

        Args:
            candidate: Version to append

        Returns:
            The stored version

        Raises:
            VersionConflictError: If the key is already taken
            StorageWriteError: If persisting fails
        """
        ...


class InMemoryVersionStore:
    """Process-local store guarded by a single lock."""

    def __init__(self) -> None:
        self._store: Dict[str, Dict[int, SchemaVersion]] = {}
        self._lock = threading.Lock()

    def list_versions(self, subject: str) -> List[SchemaVersion]:
        with self._lock:
            versions = self._store.get(subject, {})
            return [versions[v] for v in sorted(versions)]

    def latest_version(self, subject: str) -> Optional[SchemaVersion]:
        with self._lock:
            versions = self._store.get(subject)
            if not versions:
                return None
            return versions[max(versions)]

    def get_version(self, subject: str, version: int) -> Optional[SchemaVersion]:
        with self._lock:
            return self._store.get(subject, {}).get(version)

    def list_subjects(self) -> List[str]:
        with self._lock:
            return sorted(s for s, versions in self._store.items() if versions)

    def append_version_atomic(self, candidate: SchemaVersion) -> SchemaVersion:
        with self._lock:
            versions = self._store.setdefault(candidate.subject, {})
            if candidate.version in versions:
                raise VersionConflictError(candidate.subject, candidate.version)
            versions[candidate.version] = candidate
            return candidate


class LocalJsonVersionStore:
    """JSON file store: one file per version under ``{base}/{subject}/``.

    New versions are written to a temp file and hard-linked into place;
    ``os.link`` fails when the target exists, which makes the append atomic
    across processes sharing the directory.
    """

    def __init__(self, base_path: str | Path = ".schemas") -> None:
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _subject_dir(self, subject: str) -> Path:
        # Dots are escaped too, so "." and ".." never name a real directory
        return self.base_path / quote(subject, safe="").replace(".", "%2E")

    def _path(self, subject: str, version: int) -> Path:
        return self._subject_dir(subject) / f"{version}.json"

    def _read(self, path: Path, subject: str) -> SchemaVersion:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return SchemaVersion.from_record(data)
        except (OSError, ValueError) as e:
            raise StorageReadError(
                f"Failed to read schema version file {path}: {e}",
                context={"subject": subject, "path": str(path)},
            ) from e

    def _version_numbers(self, subject: str) -> List[int]:
        subject_dir = self._subject_dir(subject)
        if not subject_dir.exists():
            return []
        numbers = []
        for p in subject_dir.glob("*.json"):
            if p.stem.isdigit():
                numbers.append(int(p.stem))
        return sorted(numbers)

    def list_versions(self, subject: str) -> List[SchemaVersion]:
        return [
            self._read(self._path(subject, v), subject)
            for v in self._version_numbers(subject)
        ]

    def latest_version(self, subject: str) -> Optional[SchemaVersion]:
        numbers = self._version_numbers(subject)
        if not numbers:
            return None
        return self._read(self._path(subject, numbers[-1]), subject)

    def get_version(self, subject: str, version: int) -> Optional[SchemaVersion]:
        path = self._path(subject, version)
        if not path.exists():
            return None
        return self._read(path, subject)

    def list_subjects(self) -> List[str]:
        return sorted(
            unquote(p.name)
            for p in self.base_path.iterdir()
            if p.is_dir() and any(p.glob("*.json"))
        )

    def append_version_atomic(self, candidate: SchemaVersion) -> SchemaVersion:
        subject_dir = self._subject_dir(candidate.subject)
        target = self._path(candidate.subject, candidate.version)
        temp_file = subject_dir / f".{candidate.version}.{uuid.uuid4().hex}.tmp"

        try:
            subject_dir.mkdir(parents=True, exist_ok=True)
            temp_file.write_text(
                json.dumps(candidate.to_record(), indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
            os.link(temp_file, target)
        except FileExistsError:
            raise VersionConflictError(candidate.subject, candidate.version)
        except OSError as e:
            raise StorageWriteError(
                f"Failed to save schema version file {target}: {e}",
                context={"subject": candidate.subject, "path": str(target)},
            ) from e
        finally:
            temp_file.unlink(missing_ok=True)
        return candidate


metadata = MetaData()

schema_versions = Table(
    "schema_versions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("subject", String(255), nullable=False, index=True),
    Column("version", Integer, nullable=False, index=True),
    Column("schema_id", Integer, nullable=True),
    Column("schema_definition", Text, nullable=False),
    Column("compatibility_mode", String(32), nullable=True),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("registered_at", DateTime(timezone=True), nullable=False),
    Column("registered_by", String(255), nullable=True),
    UniqueConstraint("subject", "version", name="uq_schema_versions_subject_version"),
)


class SqlVersionStore:
    """Relational store using SQLAlchemy.

    The unique constraint on ``(subject, version)`` turns a lost registration
    race into an ``IntegrityError``, reported as ``VersionConflictError``.
    """

    def __init__(self, url: str, create_tables: bool = True):
        """Initialize SqlVersionStore.

        Args:
            url: SQLAlchemy database URL (e.g. ``sqlite:///schemas.db``)
            create_tables: Create the ``schema_versions`` table if missing
        """
        self.url = url
        self.create_tables = create_tables
        self._engine: Engine | None = None
        self._engine_lock = threading.Lock()

    def _get_engine(self) -> Engine:
        """Get or create SQLAlchemy engine."""
        with self._engine_lock:
            if self._engine is None:
                engine = create_engine(self.url, pool_pre_ping=True)
                if self.create_tables:
                    metadata.create_all(engine)
                self._engine = engine
        return self._engine

    def close(self) -> None:
        """Dispose of the engine and close connections."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    @staticmethod
    def _from_row(row: Any) -> SchemaVersion:
        registered_at = row.registered_at
        if registered_at.tzinfo is None:
            registered_at = registered_at.replace(tzinfo=dt.timezone.utc)
        return SchemaVersion(
            subject=row.subject,
            version=row.version,
            schema_id=row.schema_id,
            definition=row.schema_definition,
            compatibility_mode=row.compatibility_mode or "",
            is_active=bool(row.is_active),
            registered_at=registered_at,
            registered_by=row.registered_by or "",
        )

    def _fetch(self, statement: Any, subject: str | None) -> List[Any]:
        try:
            with self._get_engine().connect() as conn:
                return list(conn.execute(statement))
        except SQLAlchemyError as e:
            raise StorageReadError(
                f"Failed to read schema versions: {e}",
                context={"subject": subject, "url": self._safe_url},
            ) from e

    @property
    def _safe_url(self) -> str:
        return self.url.split("@")[-1]

    def list_versions(self, subject: str) -> List[SchemaVersion]:
        stmt = (
            select(schema_versions)
            .where(schema_versions.c.subject == subject)
            .order_by(schema_versions.c.version)
        )
        return [self._from_row(row) for row in self._fetch(stmt, subject)]

    def latest_version(self, subject: str) -> Optional[SchemaVersion]:
        stmt = (
            select(schema_versions)
            .where(schema_versions.c.subject == subject)
            .order_by(schema_versions.c.version.desc())
            .limit(1)
        )
        rows = self._fetch(stmt, subject)
        return self._from_row(rows[0]) if rows else None

    def get_version(self, subject: str, version: int) -> Optional[SchemaVersion]:
        stmt = select(schema_versions).where(
            schema_versions.c.subject == subject,
            schema_versions.c.version == version,
        )
        rows = self._fetch(stmt, subject)
        return self._from_row(rows[0]) if rows else None

    def list_subjects(self) -> List[str]:
        stmt = (
            select(schema_versions.c.subject)
            .distinct()
            .order_by(schema_versions.c.subject)
        )
        return [row.subject for row in self._fetch(stmt, None)]

    def append_version_atomic(self, candidate: SchemaVersion) -> SchemaVersion:
        stmt = insert(schema_versions).values(
            subject=candidate.subject,
            version=candidate.version,
            schema_id=candidate.schema_id,
            schema_definition=candidate.definition,
            compatibility_mode=candidate.compatibility_mode,
            is_active=candidate.is_active,
            registered_at=candidate.registered_at,
            registered_by=candidate.registered_by,
        )
        try:
            with self._get_engine().begin() as conn:
                conn.execute(stmt)
        except IntegrityError as e:
            raise VersionConflictError(candidate.subject, candidate.version) from e
        except SQLAlchemyError as e:
            raise StorageWriteError(
                f"Failed to save schema version: {e}",
                context={
                    "subject": candidate.subject,
                    "version": candidate.version,
                    "url": self._safe_url,
                },
            ) from e
        return candidate


class DynamoDBVersionStore:
    """DynamoDB store keyed by ``subject`` (hash) and ``version`` (range).

    Appends use a conditional put so an existing key is never overwritten.
    """

    def __init__(
        self,
        table_name: str,
        region: str | None = None,
        timeout: float | None = None,
    ):
        """Initialize DynamoDB version store.

        Args:
            table_name: DynamoDB table name
            region: AWS region (default: AWS_REGION / AWS_DEFAULT_REGION)
            timeout: Connect and read timeout in seconds

        Raises:
            ValueError: If no region is configured
        """
        import boto3
        from botocore.config import Config
        from botocore.exceptions import BotoCoreError, ClientError

        region = (
            region
            or os.environ.get("AWS_REGION")
            or os.environ.get("AWS_DEFAULT_REGION")
        )
        if not region:
            raise ValueError(
                "DynamoDB region must be specified in the store config "
                "or via AWS_REGION"
            )

        config = None
        if timeout:
            config = Config(connect_timeout=timeout, read_timeout=timeout)

        self.table_name = table_name
        self.region = region
        self.dynamodb = boto3.resource("dynamodb", region_name=region, config=config)
        self.table = self.dynamodb.Table(table_name)
        self._ClientError = ClientError
        self._BotoCoreError = BotoCoreError

    def create_table(self) -> None:
        """Create the backing table (on-demand billing) and wait for it."""
        table = self.dynamodb.create_table(
            TableName=self.table_name,
            KeySchema=[
                {"AttributeName": "subject", "KeyType": "HASH"},
                {"AttributeName": "version", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "subject", "AttributeType": "S"},
                {"AttributeName": "version", "AttributeType": "N"},
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        table.wait_until_exists()

    @staticmethod
    def _from_item(item: dict[str, Any]) -> SchemaVersion:
        data = {
            key: int(value) if isinstance(value, Decimal) else value
            for key, value in item.items()
        }
        return SchemaVersion.from_record(data)

    @staticmethod
    def _to_item(candidate: SchemaVersion) -> dict[str, Any]:
        return {k: v for k, v in candidate.to_record().items() if v is not None}

    def _read(self, operation: Callable[..., dict], subject: str | None, **kwargs: Any) -> dict:
        try:
            return operation(**kwargs)
        except (self._ClientError, self._BotoCoreError) as e:
            raise StorageReadError(
                f"Failed to read schema versions from DynamoDB {self.table_name}: {e}",
                context={"subject": subject, "table_name": self.table_name},
            ) from e

    def _query(self, subject: str, **kwargs: Any) -> List[dict[str, Any]]:
        from boto3.dynamodb.conditions import Key

        items: List[dict[str, Any]] = []
        params = {"KeyConditionExpression": Key("subject").eq(subject), **kwargs}
        while True:
            response = self._read(self.table.query, subject, **params)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key or "Limit" in kwargs:
                return items
            params["ExclusiveStartKey"] = last_key

    def list_versions(self, subject: str) -> List[SchemaVersion]:
        return [self._from_item(item) for item in self._query(subject)]

    def latest_version(self, subject: str) -> Optional[SchemaVersion]:
        items = self._query(subject, ScanIndexForward=False, Limit=1)
        return self._from_item(items[0]) if items else None

    def get_version(self, subject: str, version: int) -> Optional[SchemaVersion]:
        response = self._read(
            self.table.get_item,
            subject,
            Key={"subject": subject, "version": version},
        )
        item = response.get("Item")
        return self._from_item(item) if item else None

    def list_subjects(self) -> List[str]:
        subjects = set()
        params: dict[str, Any] = {
            "ProjectionExpression": "#s",
            "ExpressionAttributeNames": {"#s": "subject"},
        }
        while True:
            response = self._read(self.table.scan, None, **params)
            subjects.update(item["subject"] for item in response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return sorted(subjects)
            params["ExclusiveStartKey"] = last_key

    def append_version_atomic(self, candidate: SchemaVersion) -> SchemaVersion:
        try:
            self.table.put_item(
                Item=self._to_item(candidate),
                ConditionExpression="attribute_not_exists(#s)",
                ExpressionAttributeNames={"#s": "subject"},
            )
        except self._ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "")
            if error_code == "ConditionalCheckFailedException":
                raise VersionConflictError(candidate.subject, candidate.version) from e
            raise StorageWriteError(
                f"Failed to save schema version to DynamoDB {self.table_name}: {e}",
                context={"subject": candidate.subject, "table_name": self.table_name},
            ) from e
        except self._BotoCoreError as e:
            raise StorageWriteError(
                f"Failed to save schema version to DynamoDB {self.table_name}: {e}",
                context={"subject": candidate.subject, "table_name": self.table_name},
            ) from e
        return candidate


class TimedVersionStore:
    """Wraps a store so that slow calls fail as storage errors.

    Calls run on a worker pool and are abandoned after ``timeout`` seconds.
    An abandoned append may still commit later; the next registration then
    sees it and allocates past it.
    """

    def __init__(self, store: VersionStore, timeout: float, max_workers: int = 8):
        if timeout <= 0:
            raise ValueError("timeout must be greater than 0")
        self.store = store
        self.timeout = timeout
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="schemadrift-store"
        )

    def _call(self, error_cls: type, subject: str | None, func: Callable[..., T], *args: Any) -> T:
        future = self._executor.submit(func, *args)
        try:
            return future.result(timeout=self.timeout)
        except FuturesTimeoutError as e:
            future.cancel()
            raise error_cls(
                f"Version store call {func.__name__} timed out after {self.timeout}s",
                context={"subject": subject, "timeout": self.timeout},
            ) from e

    def list_versions(self, subject: str) -> List[SchemaVersion]:
        return self._call(StorageReadError, subject, self.store.list_versions, subject)

    def latest_version(self, subject: str) -> Optional[SchemaVersion]:
        return self._call(StorageReadError, subject, self.store.latest_version, subject)

    def get_version(self, subject: str, version: int) -> Optional[SchemaVersion]:
        return self._call(
            StorageReadError, subject, self.store.get_version, subject, version
        )

    def list_subjects(self) -> List[str]:
        return self._call(StorageReadError, None, self.store.list_subjects)

    def append_version_atomic(self, candidate: SchemaVersion) -> SchemaVersion:
        return self._call(
            StorageWriteError,
            candidate.subject,
            self.store.append_version_atomic,
            candidate,
        )

    def close(self) -> None:
        """Stop accepting calls and close the wrapped store.

        A call already stuck in the wrapped store is not interrupted.
        """
        self._executor.shutdown(wait=False, cancel_futures=True)
        close = getattr(self.store, "close", None)
        if close is not None:
            close()


def create_version_store(config: str, timeout: float | None = None) -> VersionStore:
    """Create a version store from a configuration string.

    Supported formats:
    - "memory" -> InMemoryVersionStore
    - "local" or "local:path" -> LocalJsonVersionStore
    - "sql:<sqlalchemy url>" -> SqlVersionStore (e.g. "sql:sqlite:///schemas.db")
    - "dynamodb:table-name" or "dynamodb:table-name:region" -> DynamoDBVersionStore

    Args:
        config: Store configuration string
        timeout: Optional per-call timeout in seconds

    Returns:
        VersionStore instance

    Raises:
        ValueError: If config format is invalid
    """
    store: VersionStore
    if config == "memory":
        store = InMemoryVersionStore()

    elif config == "local" or config.startswith("local:"):
        parts = config.split(":", 1)
        base_path = parts[1] if len(parts) > 1 else ".schemas"
        store = LocalJsonVersionStore(base_path)

    elif config.startswith("sql:"):
        url = config[4:]
        if not url:
            raise ValueError("SQL store config requires a database URL: 'sql:<url>'")
        store = SqlVersionStore(url)

    elif config.startswith("dynamodb:"):
        parts = config.split(":", 2)
        table_name = parts[1]
        region = parts[2] if len(parts) > 2 else None
        store = DynamoDBVersionStore(table_name, region, timeout=timeout)

    else:
        raise ValueError(
            f"Invalid version store config: {config}. "
            f"Supported formats: 'memory', 'local[:path]', 'sql:<url>', "
            f"'dynamodb:table[:region]'"
        )

    if timeout:
        return TimedVersionStore(store, timeout)
    return store
