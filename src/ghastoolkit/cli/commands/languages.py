"""Languages command: list the languages the installed CodeQL supports."""

import asyncio

import click
from rich.table import Table

from ghastoolkit.adapters.codeql.cli import CodeQLCLI
from ghastoolkit.cli.commands import abort_with, load_command_config
from ghastoolkit.cli.progress import console


@click.command()
@click.option("--primary", is_flag=True, help="Only show primary (code) languages")
@click.pass_context
def languages(ctx: click.Context, primary: bool) -> None:
    """List languages supported by the CodeQL CLI.

    \b
    Examples:
        ghastoolkit codeql languages
        ghastoolkit codeql languages --primary
    """
    config = load_command_config(ctx)
    codeql = CodeQLCLI.from_config(config)

    try:
        supported = asyncio.run(codeql.get_all_languages())
    except Exception as e:
        abort_with(ctx, e)

    rows = supported.get_languages() if primary else supported.get_all()

    table = Table(title=f"CodeQL Languages ({len(rows)})")
    table.add_column("Language", style="cyan")
    table.add_column("Name")
    table.add_column("Kind", style="magenta")
    table.add_column("Build Modes", style="dim")

    for language in rows:
        extractor = supported.extractor(language)
        modes = ", ".join(m.value for m in extractor.get_build_modes()) if extractor else ""
        table.add_row(
            language.id,
            language.display_name,
            "secondary" if language.secondary else "primary",
            modes,
        )

    console.print(table)
