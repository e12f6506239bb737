"""Main CLI entry point for ghastoolkit."""

from pathlib import Path

import click

from ghastoolkit import __version__
from ghastoolkit.utils.logging import setup_logging

# Import command modules
from ghastoolkit.cli.commands import databases, download, languages, packs, scan


@click.group()
@click.version_option(version=__version__, prog_name="ghastoolkit")
@click.help_option("-h", "--help")
@click.option(
    "--debug",
    is_flag=True,
    help="Enable debug logging (shows all logs)",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Configuration file (default: ~/.ghastoolkit/config.yaml)",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Also write logs to this file",
)
@click.pass_context
def cli(
    ctx: click.Context, debug: bool, config_path: Path | None, log_file: Path | None
) -> None:
    """ghastoolkit - drive the CodeQL CLI from the command line.

    \b
    Quick Start:
        ghastoolkit codeql languages                      # Supported languages
        ghastoolkit codeql databases                      # Local databases
        ghastoolkit codeql scan ./src --language python   # Create and analyze
        ghastoolkit codeql pack codeql/python-queries     # Pack details
    """
    setup_logging(verbose=debug, log_file=log_file)

    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = config_path


@cli.group()
def codeql() -> None:
    """CodeQL commands (languages, databases, packs and scans)."""


# Register commands
codeql.add_command(languages.languages)
codeql.add_command(databases.databases)
codeql.add_command(download.download)
codeql.add_command(scan.scan)
codeql.add_command(packs.packs)
codeql.add_command(packs.pack)


if __name__ == "__main__":
    cli()
