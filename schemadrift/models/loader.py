"""Config loader with YAML parsing and template rendering."""

from pathlib import Path
from typing import Dict

import yaml
from pydantic import ValidationError

from schemadrift.core.exceptions import ConfigError
from schemadrift.models.registry_config import RegistryConfig
from schemadrift.models.templates import render_templates


def load_config(path: str, cli_vars: Dict[str, str] | None = None) -> RegistryConfig:
    """
    Load registry config from a YAML file.

    Args:
        path: Path to config YAML file
        cli_vars: Variables passed via CLI (e.g., --vars key=value)

    Returns:
        Validated RegistryConfig instance

    Raises:
        ConfigError: If file not found, invalid YAML, or validation fails
    """
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config_dict = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML in config file: {e}", context={"path": str(path)}
        ) from e

    if config_dict is None:
        config_dict = {}
    if not isinstance(config_dict, dict):
        raise ConfigError(
            "Config file must contain a YAML dictionary",
            context={"path": str(path)},
        )

    config_dict = render_templates(config_dict, cli_vars)

    try:
        return RegistryConfig.from_dict(config_dict)
    except ValidationError as e:
        raise ConfigError(
            f"Config validation failed: {e}", context={"path": str(path)}
        ) from e
