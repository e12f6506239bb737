"""Scan command: create a CodeQL database and analyze it."""

import asyncio
from pathlib import Path

import click

from ghastoolkit.cli.commands import abort_with, load_command_config
from ghastoolkit.cli.progress import (
    ProgressPrinter,
    console,
    print_info,
    print_results_table,
    print_success,
)
from ghastoolkit.models.config import ToolkitConfig
from ghastoolkit.models.repository import Repository
from ghastoolkit.services.scan_service import ScanResult, ScanService


@click.command()
@click.argument(
    "source",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@click.option("--language", "-l", required=True, help="Language to extract (aliases accepted)")
@click.option("--repository", "-r", help="Repository the source belongs to (owner/repo)")
@click.option(
    "--suite",
    "-s",
    help="Suite shorthand (security-extended, ...) or query specifier",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="SARIF output file (default: results directory)",
)
@click.option("--threads", type=int, help="CodeQL --threads value")
@click.option("--ram", type=click.IntRange(min=1), help="CodeQL --ram value in MB")
@click.option(
    "--search-path",
    "search_paths",
    multiple=True,
    type=click.Path(path_type=Path),
    help="Additional CodeQL search path (repeatable)",
)
@click.option("--limit", type=int, default=20, help="Maximum results to display")
@click.pass_context
def scan(
    ctx: click.Context,
    source: Path,
    language: str,
    repository: str | None,
    suite: str | None,
    output: Path | None,
    threads: int | None,
    ram: int | None,
    search_paths: tuple[Path, ...],
    limit: int,
) -> None:
    """Create a CodeQL database for SOURCE and analyze it.

    \b
    Examples:
        ghastoolkit codeql scan ./src --language python
        ghastoolkit codeql scan . -l typescript -s security-extended
        ghastoolkit codeql scan . -l java -r octocat/hello-world -o results.sarif
    """
    config = load_command_config(ctx)
    if threads is not None:
        config.codeql.threads = threads
    if ram is not None:
        config.codeql.ram = ram
    if search_paths:
        config.codeql.search_paths.extend(search_paths)

    print_info(f"Scanning {source} ({language})")

    try:
        repo = Repository.parse(repository) if repository else None
        result = asyncio.run(_run_scan(config, source, language, repo, suite, output))
    except Exception as e:
        abort_with(ctx, e)

    console.print()
    print_success(f"Results written to {result.results_path}")

    if not result.results:
        console.print("[green]No results found[/green]")
        return

    counts = result.severity_counts()
    console.print(
        "  ".join(f"[bold]{severity}[/bold]: {count}" for severity, count in counts.items())
    )
    console.print()
    print_results_table(result.results, limit=limit)


async def _run_scan(
    config: ToolkitConfig,
    source: Path,
    language: str,
    repository: Repository | None,
    suite: str | None,
    output: Path | None,
) -> ScanResult:
    """Run the scan service with console progress."""
    progress = ProgressPrinter()
    service = ScanService(config=config, progress_callback=progress.handle_progress)
    return await service.scan(
        source=source,
        language=language,
        repository=repository,
        suite=suite,
        output=output,
    )
