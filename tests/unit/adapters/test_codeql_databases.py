"""Tests for local database discovery and downloads."""

import io
import zipfile
from pathlib import Path

import httpx
import pytest

from ghastoolkit.adapters.codeql.databases import CodeQLDatabases
from ghastoolkit.adapters.github.client import GitHubClient
from ghastoolkit.core.errors import DatabaseError
from ghastoolkit.models.repository import Repository

DATABASE_YAML = "primaryLanguage: {language}\nbaselineLinesOfCode: 42\n"


def write_database(path: Path, language: str) -> None:
    """Create a database directory."""
    path.mkdir(parents=True)
    (path / "codeql-database.yml").write_text(DATABASE_YAML.format(language=language))


def database_zip(language: str) -> bytes:
    """Zip archive shaped like a GitHub database download."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        zf.writestr("codeql_db/codeql-database.yml", DATABASE_YAML.format(language=language))
        zf.writestr("codeql_db/db-python/default/cache/.lock", "")
    return buffer.getvalue()


class TestCodeQLDatabasesLoad:
    """Tests for CodeQLDatabases.load."""

    def test_load(self, tmp_path: Path) -> None:
        """Test databases are found recursively."""
        write_database(tmp_path / "octo" / "app" / "python", "python")
        write_database(tmp_path / "java-service", "java")
        (tmp_path / "notes").mkdir()

        databases = CodeQLDatabases.load(tmp_path)

        assert len(databases) == 2
        assert sorted(db.language.id for db in databases) == ["java", "python"]
        assert not databases.is_empty()

    def test_load_empty(self, tmp_path: Path) -> None:
        """Test an empty directory."""
        databases = CodeQLDatabases.load(tmp_path)

        assert databases.is_empty()

    def test_default_root(self, tmp_path: Path) -> None:
        """Test the root follows CODEQL_DATABASES."""
        databases = CodeQLDatabases(env={"CODEQL_DATABASES": str(tmp_path)})

        assert databases.path == tmp_path
        assert databases.database_path(Repository.parse("octo/app"), "go") == (
            tmp_path / "octo" / "app" / "go"
        )


class TestCodeQLDatabasesDownload:
    """Tests for downloading databases from GitHub."""

    @pytest.mark.asyncio
    async def test_download_language(self, tmp_path: Path) -> None:
        """Test a database is downloaded, extracted and loaded."""
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, content=database_zip("python"))
        )
        databases = CodeQLDatabases(tmp_path)
        repo = Repository.parse("octo/app")

        async with GitHubClient(transport=transport) as github:
            database = await databases.download_language(repo, github, "python")

        assert database.name == "app"
        assert database.repository == repo
        assert database.language.id == "python"
        assert database.path == tmp_path / "octo" / "app" / "python" / "codeql_db"
        assert database.lines_of_code() == 42
        assert len(databases) == 1

    @pytest.mark.asyncio
    async def test_download_all(self, tmp_path: Path) -> None:
        """Test every listed language is downloaded."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/databases"):
                return httpx.Response(
                    200,
                    json=[
                        {"id": 1, "name": "a.zip", "language": "python"},
                        {"id": 2, "name": "b.zip", "language": "javascript"},
                    ],
                )
            language = request.url.path.rsplit("/", 1)[-1]
            return httpx.Response(200, content=database_zip(language))

        databases = CodeQLDatabases(tmp_path)
        async with GitHubClient(transport=httpx.MockTransport(handler)) as github:
            downloaded = await databases.download(Repository.parse("octo/app"), github)

        assert [db.language.id for db in downloaded] == ["python", "javascript"]

    @pytest.mark.asyncio
    async def test_bad_archive(self, tmp_path: Path) -> None:
        """Test a non-zip response raises DatabaseError."""
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"nope"))

        async with GitHubClient(transport=transport) as github:
            with pytest.raises(DatabaseError, match="not a zip"):
                await CodeQLDatabases(tmp_path).download_language(
                    Repository.parse("octo/app"), github, "python"
                )

    @pytest.mark.asyncio
    async def test_enterprise_server_unsupported(self, tmp_path: Path) -> None:
        """Test downloads are refused on GitHub Enterprise Server."""
        github = GitHubClient(instance="https://ghes.example.com")

        with pytest.raises(DatabaseError, match="Enterprise Server"):
            await CodeQLDatabases(tmp_path).download(Repository.parse("octo/app"), github)
