"""CLI command for deriving a record's canonical schema."""

import click

from schemadrift import derive_schema


@click.command()
@click.argument("record", type=click.File("rb"))
def derive(record):
    """Print the canonical schema string of a JSON record.

    Malformed records print the empty schema "{}".

    Examples:

        schemadrift derive record.json
        echo '{"code": 200}' | schemadrift derive -
    """
    click.echo(derive_schema(record.read()))
