"""Tests for CodeQL database models."""

from datetime import datetime
from pathlib import Path

import pytest

from ghastoolkit.core.errors import DatabaseError, FormatError
from ghastoolkit.models.database import CodeQLDatabase, DatabaseConfig
from ghastoolkit.models.language import Language, canonicalize
from ghastoolkit.models.repository import Repository

DATABASE_YAML = """\
sourceLocationPrefix: /src/app
baselineLinesOfCode: 1234
unicodeNewlines: false
columnKind: utf16
primaryLanguage: javascript
creationMetadata:
  sha: abc123
  cliVersion: 2.15.3
  creationTime: 2024-01-15T10:30:00.000000Z
finalised: true
"""


def write_database(path: Path, content: str = DATABASE_YAML) -> Path:
    """Create a database directory with codeql-database.yml."""
    path.mkdir(parents=True, exist_ok=True)
    (path / "codeql-database.yml").write_text(content)
    return path


class TestDatabaseConfig:
    """Tests for DatabaseConfig parsing."""

    def test_loads(self) -> None:
        """Test parsing codeql-database.yml."""
        config = DatabaseConfig.loads(DATABASE_YAML)

        assert config.primary_language == "javascript"
        assert config.baseline_lines_of_code == 1234
        assert config.source_location_prefix == "/src/app"
        assert config.creation_metadata is not None
        assert config.creation_metadata.cli_version == "2.15.3"
        assert isinstance(config.creation_metadata.creation_time, datetime)
        assert config.finalised is True

    def test_missing_language_raises(self) -> None:
        """Test primaryLanguage is required."""
        with pytest.raises(FormatError):
            DatabaseConfig.loads("baselineLinesOfCode: 10\n")


class TestCodeQLDatabaseBuild:
    """Tests for CodeQLDatabase.build naming and paths."""

    def test_explicit_name_wins(self, tmp_path: Path) -> None:
        """Test explicit name over repository name."""
        db = CodeQLDatabase.build(
            name="custom",
            language="python",
            repository=Repository.parse("octo/app"),
            root=tmp_path,
        )

        assert db.name == "custom"

    def test_repository_name(self, tmp_path: Path) -> None:
        """Test repository name and owner/repo/language path."""
        db = CodeQLDatabase.build(
            language="kotlin",
            source=Path("/src/app"),
            repository=Repository.parse("octo/app"),
            root=tmp_path,
        )

        assert db.name == "app"
        assert db.language.id == "java"
        assert db.path == tmp_path / "octo" / "app" / "java"

    def test_source_name(self, tmp_path: Path) -> None:
        """Test source directory name and language-name path."""
        db = CodeQLDatabase.build(language="python", source=Path("/src/webapp"), root=tmp_path)

        assert db.name == "webapp"
        assert db.path == tmp_path / "python-webapp"

    def test_unknown_name(self, tmp_path: Path) -> None:
        """Test fallback name."""
        db = CodeQLDatabase.build(root=tmp_path)

        assert db.name == "unknown"
        assert db.language.is_none

    def test_path_name_beats_source(self, tmp_path: Path) -> None:
        """Test an explicit path names the database ahead of the source."""
        db = CodeQLDatabase.build(
            path=tmp_path / "from-path", language="python", source=Path("/src/webapp")
        )

        assert db.name == "from-path"
        assert db.path == tmp_path / "from-path"

    def test_repository_name_beats_path(self, tmp_path: Path) -> None:
        """Test the repository names the database ahead of an explicit path."""
        db = CodeQLDatabase.build(
            path=tmp_path / "from-path",
            language="python",
            source=Path("/src/webapp"),
            repository=Repository.parse("octo/app"),
        )

        assert db.name == "app"
        assert db.path == tmp_path / "from-path"

    def test_existing_database_invalid_config(self, tmp_path: Path) -> None:
        """Test a malformed configuration at the given path raises DatabaseError."""
        path = write_database(tmp_path / "mydb", "sourceLocationPrefix: [unclosed\n")

        with pytest.raises(DatabaseError, match="Failed to load"):
            CodeQLDatabase.build(path=path)

    def test_secondary_language_path(self, tmp_path: Path) -> None:
        """Test secondary languages use the bare name."""
        db = CodeQLDatabase.build(name="configs", language="yaml", root=tmp_path)

        assert db.path == tmp_path / "configs"

    def test_default_root_from_env(self, tmp_path: Path) -> None:
        """Test CODEQL_DATABASES sets the default root."""
        db = CodeQLDatabase.build(
            name="app", language="go", env={"CODEQL_DATABASES": str(tmp_path)}
        )

        assert db.path == tmp_path / "go-app"

    def test_existing_database_config(self, tmp_path: Path) -> None:
        """Test an existing database supplies language and source."""
        path = write_database(tmp_path / "mydb")

        db = CodeQLDatabase.build(path=path)

        assert db.name == "mydb"
        assert db.language.id == "javascript"
        assert db.source == Path("/src/app")
        assert db.config is not None


class TestCodeQLDatabase:
    """Tests for loading and inspecting databases."""

    def test_load_directory(self, tmp_path: Path) -> None:
        """Test loading a database directory."""
        path = write_database(tmp_path / "db")

        db = CodeQLDatabase.load(path)

        assert db.path == path
        assert db.version() == "2.15.3"
        assert db.lines_of_code() == 1234
        assert db.created_at() is not None
        assert str(db) == "CodeQLDatabase('db', 'javascript', '2.15.3')"

    def test_load_nested(self, tmp_path: Path) -> None:
        """Test loading finds a database below the given directory."""
        write_database(tmp_path / "outer" / "inner")

        db = CodeQLDatabase.load(tmp_path / "outer")

        assert db.path == tmp_path / "outer" / "inner"

    def test_load_config_file(self, tmp_path: Path) -> None:
        """Test loading from codeql-database.yml directly."""
        path = write_database(tmp_path / "db")

        db = CodeQLDatabase.load(path / "codeql-database.yml")

        assert db.path == path

    def test_load_missing(self, tmp_path: Path) -> None:
        """Test a directory without a database raises."""
        with pytest.raises(DatabaseError, match="Could not find"):
            CodeQLDatabase.load(tmp_path)

    def test_load_invalid_config(self, tmp_path: Path) -> None:
        """Test an unreadable configuration raises DatabaseError."""
        write_database(tmp_path / "db", "sourceLocationPrefix: /src\n")

        with pytest.raises(DatabaseError, match="Failed to load"):
            CodeQLDatabase.load(tmp_path / "db")

    def test_reload_requires_database(self, tmp_path: Path) -> None:
        """Test reload before creation fails."""
        db = CodeQLDatabase.build(name="app", language="python", root=tmp_path)

        assert not db.validate_database()
        with pytest.raises(DatabaseError, match="Invalid CodeQL Database"):
            db.reload()

    def test_reload_reads_config(self, tmp_path: Path) -> None:
        """Test reload picks up the configuration."""
        db = CodeQLDatabase.build(name="app", language="javascript", root=tmp_path)
        write_database(db.path)

        db.reload()

        assert db.validate_database()
        assert db.lines_of_code() == 1234

    @pytest.mark.parametrize(
        "content",
        ["sourceLocationPrefix: [unclosed\n", "sourceLocationPrefix: /src\n"],
    )
    def test_reload_invalid_config(self, tmp_path: Path, content: str) -> None:
        """Test a malformed configuration raises DatabaseError and leaves config unset."""
        db = CodeQLDatabase.build(name="app", language="javascript", root=tmp_path)
        write_database(db.path, content)

        with pytest.raises(DatabaseError, match="Failed to load"):
            db.reload()

        assert db.config is None
        assert db.lines_of_code() == 0

    def test_reload_missing_leaves_config_unset(self, tmp_path: Path) -> None:
        """Test reload of a database that was never created keeps config unset."""
        db = CodeQLDatabase.build(name="app", language="python", root=tmp_path)

        with pytest.raises(DatabaseError):
            db.reload()

        assert db.config is None

    def test_defaults_without_config(self, tmp_path: Path) -> None:
        """Test version and lines of code before the database exists."""
        db = CodeQLDatabase(name="app", path=tmp_path, language=canonicalize("python"))

        assert db.version() == "0.0.0"
        assert db.lines_of_code() == 0
        assert db.creation_time() is None
        assert str(db) == "CodeQLDatabase('app', 'python')"

    def test_set_repository(self, tmp_path: Path) -> None:
        """Test attaching a repository renames the database."""
        db = CodeQLDatabase(name="x", path=tmp_path, language=Language.none())

        db.set_repository(Repository.parse("octo/app"))

        assert db.name == "app"
        assert db.summary()["repository"] == "octo/app"
