"""CLI command for processing a file of JSON-lines records."""

import asyncio
import json
import sys

import click

from schemadrift import DriftMetrics, build_processor
from schemadrift.cli.context import config_option, resolve_config, store_option, vars_option
from schemadrift.core.exceptions import SchemaDriftError
from schemadrift.core.logging import configure_logging


@click.command()
@click.argument("records", type=click.File("rb"))
@config_option
@store_option
@vars_option
@click.option(
    "--concurrency",
    type=int,
    help="Records processed concurrently (default: from config)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Log level (default: from config)",
)
@click.option(
    "--json-logs",
    is_flag=True,
    help="Use JSON format for logs",
)
def process(
    records,
    config_path: str | None,
    store: str | None,
    vars: tuple,
    concurrency: int | None,
    log_level: str | None,
    json_logs: bool,
):
    """Process JSON-lines records: derive, check drift, register on change.

    Prints one JSON metadata object per record, in input order.

    Examples:

        schemadrift process records.jsonl
        schemadrift process records.jsonl --config registry.yaml --concurrency 8
        cat records.jsonl | schemadrift process - --store local:.schemas
    """
    processor = None
    try:
        config = resolve_config(config_path, store, vars)
        configure_logging(
            level=log_level or config.logging.level,
            json_format=json_logs or config.logging.json_format,
            stream=sys.stderr,
        )

        metrics = DriftMetrics(config.name)
        processor = build_processor(config, metrics=metrics)
        lines = [line for line in records.read().splitlines() if line.strip()]

        results = asyncio.run(
            processor.process_many(
                lines,
                concurrency=concurrency or config.runtime.concurrency,
                timeout=config.runtime.record_timeout,
            )
        )

        for metadata in results:
            click.echo(metadata.model_dump_json())

        metrics.finish()
        click.echo(metrics.get_summary(), err=True)

    except SchemaDriftError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)
    finally:
        if processor is not None:
            processor.registry.close()
