"""Databases command: list local CodeQL databases."""

import json
from pathlib import Path

import click
from rich.table import Table

from ghastoolkit.adapters.codeql.databases import CodeQLDatabases
from ghastoolkit.cli.commands import abort_with, load_command_config
from ghastoolkit.cli.progress import console, print_success


@click.command()
@click.option(
    "--path",
    "-p",
    type=click.Path(file_okay=False, path_type=Path),
    help="Databases root (default: configured databases directory)",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["std", "json"], case_sensitive=False),
    default="std",
    help="Output format",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the listing to a file (json format)",
)
@click.pass_context
def databases(
    ctx: click.Context, path: Path | None, output_format: str, output: Path | None
) -> None:
    """List CodeQL databases found under the databases directory.

    \b
    Examples:
        ghastoolkit codeql databases
        ghastoolkit codeql databases --format json
        ghastoolkit codeql databases -o databases.json
    """
    config = load_command_config(ctx)
    root = path or config.databases_path()

    if not root.exists():
        console.print(f"[yellow]No databases directory at {root}[/yellow]")
        return

    try:
        found = CodeQLDatabases.load(root)
    except Exception as e:
        abort_with(ctx, e)

    summaries = [database.summary() for database in found]

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(json.dumps(summaries, indent=2))
        print_success(f"Wrote {len(summaries)} databases to {output}")
        return

    if output_format.lower() == "json":
        click.echo(json.dumps(summaries, indent=2))
        return

    if not summaries:
        console.print(f"[green]No databases found in {root}[/green]")
        return

    table = Table(title=f"CodeQL Databases ({len(summaries)})")
    table.add_column("Name", style="cyan")
    table.add_column("Language", style="magenta")
    table.add_column("Repository")
    table.add_column("Version", style="dim")
    table.add_column("Lines", justify="right")
    table.add_column("Path", style="green")

    for summary in summaries:
        table.add_row(
            summary["name"],
            summary["language"],
            summary["repository"] or "",
            summary["version"],
            str(summary["lines_of_code"]),
            summary["path"],
        )

    console.print(table)
