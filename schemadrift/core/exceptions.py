"""Exception hierarchy for the schemadrift package."""


class SchemaDriftError(Exception):
    """Base exception for all schemadrift errors."""

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class ConfigError(SchemaDriftError):
    """Raised when configuration parsing or validation fails."""

    pass


class DecodeError(SchemaDriftError):
    """Raised when a raw record is not a well-formed structured payload."""

    pass


class StorageError(SchemaDriftError):
    """Raised when version store operations fail."""

    pass


class StorageReadError(StorageError):
    """Raised when the version store cannot be read."""

    pass


class StorageWriteError(StorageError):
    """Raised when a version cannot be persisted."""

    pass


class VersionConflictError(SchemaDriftError):
    """Raised when a concurrent registration already committed the version."""

    def __init__(self, subject: str, version: int, context: dict | None = None):
        super().__init__(
            f"Version {version} already exists for subject '{subject}'",
            context={"subject": subject, "version": version, **(context or {})},
        )
        self.subject = subject
        self.version = version


class RegistrationError(SchemaDriftError):
    """Raised when registration keeps conflicting after all retries."""

    pass


class CatalogError(SchemaDriftError):
    """Raised when the external schema registry cannot be queried."""

    pass


class RecordTimeoutError(SchemaDriftError):
    """Raised when processing one record exceeds the per-record timeout."""

    pass
