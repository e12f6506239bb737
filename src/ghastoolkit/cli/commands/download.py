"""Download command: fetch prebuilt CodeQL databases from GitHub."""

import asyncio
from pathlib import Path

import click

from ghastoolkit.adapters.codeql.databases import CodeQLDatabases
from ghastoolkit.adapters.github.client import GitHubClient
from ghastoolkit.cli.commands import abort_with, load_command_config
from ghastoolkit.cli.progress import console, print_info, print_success, print_warning
from ghastoolkit.models.config import ToolkitConfig
from ghastoolkit.models.database import CodeQLDatabase
from ghastoolkit.models.repository import Repository


@click.command()
@click.option(
    "--repository",
    "-r",
    required=True,
    help="Repository (owner/repo)",
)
@click.option(
    "--language",
    "-l",
    help="Only download this language (default: all available)",
)
@click.option(
    "--path",
    "-p",
    type=click.Path(file_okay=False, path_type=Path),
    help="Databases root (default: configured databases directory)",
)
@click.pass_context
def download(
    ctx: click.Context, repository: str, language: str | None, path: Path | None
) -> None:
    """Download CodeQL databases built by GitHub code scanning.

    \b
    Examples:
        ghastoolkit codeql download -r octocat/hello-world
        ghastoolkit codeql download -r octocat/hello-world -l python
    """
    config = load_command_config(ctx)

    try:
        repo = Repository.parse(repository)
        downloaded = asyncio.run(_run_download(config, repo, language, path))
    except Exception as e:
        abort_with(ctx, e)

    if not downloaded:
        print_warning(f"No CodeQL databases available for {repo.full_name}")
        return

    for database in downloaded:
        print_success(f"{database.language.id}: {database.path}")


async def _run_download(
    config: ToolkitConfig,
    repository: Repository,
    language: str | None,
    path: Path | None,
) -> list[CodeQLDatabase]:
    """Run the downloads with a single HTTP client."""
    collection = CodeQLDatabases(path or config.databases_path())
    print_info(f"Downloading databases for {repository.full_name} to {collection.path}")

    async with GitHubClient(
        token=config.github.token, instance=config.github.instance
    ) as github:
        if language:
            with console.status(f"Downloading {language} database..."):
                return [await collection.download_language(repository, github, language)]
        with console.status("Downloading databases..."):
            return await collection.download(repository, github)
