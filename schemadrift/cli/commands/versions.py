"""CLI commands for inspecting stored versions and subjects."""

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


@click.command("versions")
@click.argument("subject")
@config_option
@store_option
@vars_option
@json_option
def list_versions(subject: str, config_path: str | None, store: str | None, vars: tuple, json_output: bool):
    """List registered versions of SUBJECT.

    Examples:

        schemadrift versions auth-schema
        schemadrift versions auth-schema --json
    """
    registry = None
    try:
        registry = build_registry(resolve_config(config_path, store, vars))
        versions = registry.list_versions(subject)

        if json_output:
            click.echo(json.dumps([v.to_record() for v in versions], indent=2))
            return

        if not versions:
            click.echo(f"No versions found for subject '{subject}'")
            return

        click.echo(f"Versions for subject: {subject}")
        for v in versions:
            status = "active" if v.is_active else "inactive"
            click.echo(
                f"  v{v.version} [{status}] {v.registered_at.isoformat()} "
                f"by {v.registered_by or '-'}: {v.definition}"
            )

    except SchemaDriftError as e:
        click.echo(f"Error loading versions: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)
    finally:
        if registry is not None:
            registry.close()


@click.command("subjects")
@config_option
@store_option
@vars_option
@click.option(
    "--external",
    is_flag=True,
    help="List subjects from the configured external schema registry",
)
def list_subjects(config_path: str | None, store: str | None, vars: tuple, external: bool):
    """List subjects with registered versions.

    Examples:

        schemadrift subjects
        schemadrift subjects --config registry.yaml --external
    """
    registry = None
    try:
        config = resolve_config(config_path, store, vars)
        registry = build_registry(config)

        if external:
            if config.external is None:
                click.echo("Error: no external registry configured", err=True)
                sys.exit(1)
            subjects = registry.external_subjects()
        else:
            subjects = registry.list_subjects()

        for subject in subjects:
            click.echo(subject)

    except SchemaDriftError as e:
        click.echo(f"Error loading subjects: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)
    finally:
        if registry is not None:
            registry.close()
