"""CLI command for checking a record against a subject's latest schema."""

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
@config_option
@store_option
@vars_option
@json_option
def check(subject: str, record, config_path: str | None, store: str | None, vars: tuple, json_output: bool):
    """Check whether a record's schema drifts from SUBJECT's latest version.

    Prints NO_PRIOR, MATCH, or DRIFT. Nothing is registered.

    Examples:

        schemadrift check auth-schema record.json
        schemadrift check auth-schema record.json --store sql:sqlite:///schemas.db
    """
    registry = None
    try:
        config = resolve_config(config_path, store, vars)
        registry = build_registry(config)

        schema = registry.derive_schema(record.read())
        result = registry.check_drift(subject, schema)

        if json_output:
            click.echo(json.dumps(result.model_dump(mode="json"), indent=2))
            return

        click.echo(result.status.value)
        if result.latest is not None:
            click.echo(f"  Latest version: {result.latest.version}")
        if result.changes is not None:
            click.echo(f"  Changes: {result.changes.describe()}")
        if result.error:
            click.echo(f"  Lookup failed: {result.error}", err=True)

    except SchemaDriftError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)
    finally:
        if registry is not None:
            registry.close()
