"""Shared helpers for CLI commands."""

import sys
from typing import Optional

import click

from schemadrift.models.loader import load_config
from schemadrift.models.registry_config import RegistryConfig

config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True),
    help="Registry config YAML file",
)
store_option = click.option(
    "--store",
    help="Version store config (e.g., 'local:.schemas', 'sql:sqlite:///schemas.db')",
)
vars_option = click.option(
    "--vars",
    multiple=True,
    help="CLI variables in key=value format (can be used multiple times)",
)
json_option = click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="Output as JSON",
)


def parse_vars(vars: tuple) -> dict[str, str]:
    """Parse key=value pairs, exiting on malformed input."""
    cli_vars = {}
    for var in vars:
        if "=" not in var:
            click.echo(f"Error: Invalid variable format: {var}. Use key=value", err=True)
            sys.exit(1)
        key, value = var.split("=", 1)
        cli_vars[key] = value
    return cli_vars


def resolve_config(
    config_path: Optional[str], store: Optional[str], vars: tuple
) -> RegistryConfig:
    """Load the config file (or defaults) and apply the --store override.

    Without a config file or --store, versions are kept under ``.schemas``.
    """
    cli_vars = parse_vars(vars)
    if config_path:
        config = load_config(config_path, cli_vars=cli_vars or None)
    else:
        config = RegistryConfig(store="local:.schemas")
    if store:
        config = config.model_copy(update={"store": store})
    return config
