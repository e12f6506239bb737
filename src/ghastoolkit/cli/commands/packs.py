"""Pack commands: list packs and show or download a single pack."""

import asyncio
from pathlib import Path

import click
from rich.table import Table

from ghastoolkit.adapters.codeql.cli import CodeQLCLI
from ghastoolkit.adapters.codeql.packs import PackResolver, load_packs
from ghastoolkit.cli.commands import abort_with, load_command_config
from ghastoolkit.cli.progress import console, print_success, print_warning
from ghastoolkit.models.pack import CodeQLPack, CodeQLPacks


@click.command()
@click.argument(
    "path",
    required=False,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@click.pass_context
def packs(ctx: click.Context, path: Path | None) -> None:
    """List CodeQL packs.

    \b
    With PATH, packs are found by walking the directory. Without it, the
    packs visible to the CodeQL CLI are listed.

    \b
    Examples:
        ghastoolkit codeql packs ./queries
        ghastoolkit codeql packs
    """
    config = load_command_config(ctx)

    try:
        if path is not None:
            found = load_packs(path)
        else:
            codeql = CodeQLCLI.from_config(config)
            found = asyncio.run(codeql.resolve_packs())
    except Exception as e:
        abort_with(ctx, e)

    if not len(found):
        print_warning("No packs found")
        return

    found.sort()
    _print_packs(found)


@click.command()
@click.argument("specifier")
@click.option("--download", "-d", is_flag=True, help="Download the pack before resolving")
@click.pass_context
def pack(ctx: click.Context, specifier: str, download: bool) -> None:
    """Show details for a pack (path or scope/name[@range]).

    \b
    Examples:
        ghastoolkit codeql pack ./my-queries
        ghastoolkit codeql pack codeql/python-queries
        ghastoolkit codeql pack codeql/python-queries@1.0.0 --download
    """
    config = load_command_config(ctx)
    resolver = PackResolver()

    try:
        resolved = resolver.resolve(specifier)
        if download:
            codeql = CodeQLCLI.from_config(config)
            asyncio.run(codeql.pack(resolved).download())
            print_success(f"Downloaded {resolved.full_name}")
            resolved = resolver.resolve(resolved.specifier)
    except Exception as e:
        abort_with(ctx, e)

    _print_pack(resolved)


def _print_packs(found: CodeQLPacks) -> None:
    table = Table(title=f"CodeQL Packs ({len(found)})")
    table.add_column("Name", style="cyan")
    table.add_column("Version")
    table.add_column("Type", style="magenta")
    table.add_column("Path", style="green")

    for item in found:
        table.add_row(
            item.full_name,
            item.version or "",
            str(item.pack_type) if item.pack_type else "",
            str(item.path) if item.path else "",
        )

    console.print(table)


def _print_pack(item: CodeQLPack) -> None:
    console.print(f"[bold cyan]{item.full_name}[/bold cyan]")
    console.print(f"  Version:  {item.version or 'unknown'}")
    if not item.is_local:
        console.print("  [yellow]Not found locally[/yellow]")
        return

    console.print(f"  Type:     {item.pack_type}")
    console.print(f"  Path:     {item.path}")
    if item.default_suite:
        console.print(f"  Suite:    {item.default_suite}")
    if item.dependencies:
        console.print("  Dependencies:")
        for name, version in sorted(item.dependencies.items()):
            console.print(f"    {name}: {version}")
