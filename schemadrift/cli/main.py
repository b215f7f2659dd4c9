"""Main CLI entry point for schemadrift."""

import click

from schemadrift import __version__
from schemadrift.cli.commands.check import check
from schemadrift.cli.commands.derive import derive
from schemadrift.cli.commands.process import process
from schemadrift.cli.commands.register import register
from schemadrift.cli.commands.versions import list_subjects, list_versions


@click.group()
@click.version_option(version=__version__)
def main():
    """schemadrift - Schema drift detection and versioning."""
    pass


main.add_command(derive)
main.add_command(check)
main.add_command(register)
main.add_command(process)
main.add_command(list_versions)
main.add_command(list_subjects)


if __name__ == "__main__":
    main()
