"""Discover local CodeQL databases and download prebuilt ones from GitHub."""

import os
import zipfile
from pathlib import Path
from typing import Mapping, Optional, Union

from ghastoolkit.adapters.github.client import GitHubClient
from ghastoolkit.core.environment import default_databases_path
from ghastoolkit.core.errors import DatabaseError, IoError
from ghastoolkit.models.database import DATABASE_FILE, CodeQLDatabase
from ghastoolkit.models.language import Language, canonicalize
from ghastoolkit.models.repository import Repository
from ghastoolkit.utils.logging import get_logger

logger = get_logger()

ARCHIVE_NAME = "codeql-database.zip"


class CodeQLDatabases:
    """A collection of databases rooted at a directory."""

    def __init__(
        self,
        path: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        """
        Initialize collection.

        Args:
            path: Databases root (default: ``CODEQL_DATABASES`` or ``~/.codeql/databases``)
            env: Environment mapping used for the default root
        """
        self.path = path or default_databases_path(env)
        self.databases: list[CodeQLDatabase] = []

    def __len__(self) -> int:
        return len(self.databases)

    def __iter__(self):  # type: ignore[no-untyped-def]
        return iter(self.databases)

    def add(self, database: CodeQLDatabase) -> None:
        """Add a database."""
        self.databases.append(database)

    def is_empty(self) -> bool:
        """Whether the collection is empty."""
        return not self.databases

    @classmethod
    def load(cls, path: Path) -> "CodeQLDatabases":
        """
        Find every database under a directory.

        Args:
            path: Directory to walk

        Returns:
            Databases in walk order

        Raises:
            DatabaseError: If a codeql-database.yml cannot be read
        """
        logger.debug("databases_loading", path=str(path))
        databases = cls(path)
        for dirpath, dirnames, filenames in os.walk(path):
            dirnames.sort()
            if DATABASE_FILE in filenames:
                databases.add(CodeQLDatabase.load(Path(dirpath) / DATABASE_FILE))
                # A database directory does not contain other databases
                dirnames.clear()

        logger.info("databases_loaded", path=str(path), count=len(databases))
        return databases

    def database_path(self, repository: Repository, language: Union[Language, str]) -> Path:
        """``<root>/<owner>/<repo>/<language>``."""
        return self.path / repository.owner / repository.name / str(language)

    async def download(
        self, repository: Repository, github: GitHubClient
    ) -> list[CodeQLDatabase]:
        """
        Download every database GitHub has for a repository.

        Raises:
            DatabaseError: On GitHub Enterprise Server or a bad archive
            GitHubError: If a request fails
        """
        self._check_supported(github)

        downloaded: list[CodeQLDatabase] = []
        for listing in await github.list_codeql_databases(repository):
            database = await self.download_language(repository, github, listing.language)
            downloaded.append(database)
        return downloaded

    async def download_language(
        self,
        repository: Repository,
        github: GitHubClient,
        language: Union[Language, str],
    ) -> CodeQLDatabase:
        """
        Download and extract one language's database.

        Raises:
            DatabaseError: On GitHub Enterprise Server or a bad archive
            GitHubError: If the request fails
            IoError: If the archive cannot be extracted
        """
        self._check_supported(github)

        if isinstance(language, str):
            language = canonicalize(language)

        output = self.database_path(repository, language)
        output.mkdir(parents=True, exist_ok=True)

        archive = output / ARCHIVE_NAME
        logger.info(
            "database_download_started",
            repository=repository.full_name,
            language=language.id,
            path=str(output),
        )
        await github.download_codeql_database(repository, language.id, archive)

        self._unzip(archive, output)

        database = CodeQLDatabase.load(output)
        database.set_repository(repository)
        self.add(database)

        logger.info("database_download_completed", database=str(database))
        return database

    @staticmethod
    def _check_supported(github: GitHubClient) -> None:
        if github.is_enterprise_server:
            raise DatabaseError(
                "CodeQL database download is not supported on GitHub Enterprise Server"
            )

    @staticmethod
    def _unzip(archive: Path, output: Path) -> None:
        logger.debug("database_unzipping", archive=str(archive), output=str(output))
        try:
            with zipfile.ZipFile(archive) as zf:
                zf.extractall(output)
        except zipfile.BadZipFile as e:
            raise DatabaseError(f"Downloaded database is not a zip archive: {archive}") from e
        except OSError as e:
            raise IoError(f"Failed to extract {archive}: {e}") from e
