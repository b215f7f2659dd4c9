"""Models module for registry configuration."""

from schemadrift.models.loader import load_config
from schemadrift.models.registry_config import (
    ExternalRegistryConfig,
    LoggingConfig,
    RegistrationConfig,
    RegistryConfig,
    RuntimeConfig,
)

__all__ = [
    "RegistryConfig",
    "RegistrationConfig",
    "RuntimeConfig",
    "ExternalRegistryConfig",
    "LoggingConfig",
    "load_config",
]
