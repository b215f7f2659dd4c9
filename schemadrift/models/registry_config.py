"""Configuration models for the schema registry."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemadrift.core.processor import FirstSightingPolicy
from schemadrift.core.schema.models import CompatibilityMode

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class RegistrationConfig(BaseModel):
    """Retry behaviour when a registration loses a concurrent race."""

    max_retries: int = Field(
        default=3, description="Retries after a version conflict", ge=0
    )
    retry_delay: float = Field(
        default=0.05, description="Initial delay between retries in seconds", ge=0
    )
    backoff_rate: float = Field(
        default=2.0, description="Delay multiplier applied after each retry", ge=1
    )


class RuntimeConfig(BaseModel):
    """Configuration for record processing."""

    concurrency: int = Field(
        default=4, description="Number of records processed concurrently", ge=1
    )
    record_timeout: Optional[float] = Field(
        default=None, description="Per-record processing timeout in seconds", gt=0
    )

    @field_validator("concurrency")
    @classmethod
    def validate_concurrency(cls, v):
        """Validate concurrency is at least 1."""
        if v < 1:
            raise ValueError("concurrency must be at least 1")
        return v


class ExternalRegistryConfig(BaseModel):
    """Optional external schema registry used for subject lookups."""

    url: str = Field(description="Registry base URL")
    timeout: float = Field(default=5.0, description="Request timeout in seconds", gt=0)
    max_retries: int = Field(default=2, description="Retries on 5xx responses", ge=0)


class LoggingConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    level: str = Field(default="INFO", description="Log level")
    json_format: bool = Field(
        default=False, description="Emit JSON log lines", alias="json"
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v):
        level = str(v).upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"level must be one of {', '.join(LOG_LEVELS)}")
        return level


class RegistryConfig(BaseModel):
    """Complete configuration for a schema registry deployment."""

    name: str = Field(default="schemadrift", description="Deployment name")
    store: str = Field(
        default="memory",
        description="Version store config (memory, local[:path], sql:<url>, dynamodb:table[:region])",
    )
    storage_timeout: Optional[float] = Field(
        default=None, description="Per-call version store timeout in seconds", gt=0
    )
    registered_by: str = Field(
        default="schemadrift", description="Provenance recorded on new versions"
    )
    compatibility_mode: CompatibilityMode = Field(
        default=CompatibilityMode.BACKWARD,
        description="Compatibility label recorded on new versions",
    )
    first_sighting: FirstSightingPolicy = Field(
        default=FirstSightingPolicy.REGISTER,
        description="register: create version 1 for new subjects; defer: only log them",
    )
    register_empty_schema: bool = Field(
        default=True,
        description="Register the empty schema {} like any other; false skips it on NO_PRIOR and DRIFT",
    )
    registration: RegistrationConfig = Field(default_factory=RegistrationConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)
    external: Optional[ExternalRegistryConfig] = Field(default=None)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("store")
    @classmethod
    def validate_store(cls, v):
        if not v or not v.strip():
            raise ValueError("store must not be empty")
        return v.strip()

    @classmethod
    def from_dict(cls, data: dict) -> "RegistryConfig":
        """Create RegistryConfig from dictionary (after template rendering)."""
        return cls(**data)

    @classmethod
    def from_yaml(
        cls, path: str, cli_vars: dict[str, str] | None = None
    ) -> "RegistryConfig":
        from schemadrift.models.loader import load_config

        return load_config(path, cli_vars)
