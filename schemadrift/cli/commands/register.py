"""CLI command for registering a record's schema as a new version."""

import json
import sys

import click

from schemadrift import build_registry
from schemadrift.cli.context import (
    config_option,
    json_option,
    resolve_config,
    store_option,
    vars_option,
)
from schemadrift.core.exceptions import SchemaDriftError


@click.command()
@click.argument("subject")
@click.argument("record", type=click.File("rb"))
@click.option(
    "--registered-by",
    help="Provenance recorded on the new version (default: from config)",
)
@config_option
@store_option
@vars_option
@json_option
def register(
    subject: str,
    record,
    registered_by: str | None,
    config_path: str | None,
    store: str | None,
    vars: tuple,
    json_output: bool,
):
    """Register a record's schema as the next version of SUBJECT.

    Examples:

        schemadrift register auth-schema record.json
        schemadrift register auth-schema record.json --registered-by ops
    """
    registry = None
    try:
        config = resolve_config(config_path, store, vars)
        registry = build_registry(config)

        schema = registry.derive_schema(record.read())
        saved = registry.register_version(
            subject, schema, registered_by or config.registered_by
        )

        if json_output:
            click.echo(json.dumps(saved.to_record(), indent=2))
        else:
            click.echo(f"✓ Registered version {saved.version} for subject '{subject}'")
            click.echo(f"  Definition: {saved.definition}")

    except SchemaDriftError as e:
        click.echo(f"Registration failed: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)
    finally:
        if registry is not None:
            registry.close()
