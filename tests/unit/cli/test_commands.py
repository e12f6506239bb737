"""Tests for CLI commands."""

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from ghastoolkit import __version__
from ghastoolkit.adapters.codeql.cli import CodeQLCLI
from ghastoolkit.cli.main import cli
from ghastoolkit.cli.progress import console
from ghastoolkit.core.errors import ToolError
from ghastoolkit.models.database import CodeQLDatabase
from ghastoolkit.models.language import CodeQLLanguages, canonicalize
from ghastoolkit.models.sarif import SarifResult, Severity
from ghastoolkit.services.scan_service import ScanResult


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep commands away from the real home directory and terminal size."""
    monkeypatch.setattr(console, "width", 200)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    for name in (
        "CODEQL_DATABASES",
        "CODEQL_RESULTS",
        "GITHUB_TOKEN",
        "GITHUB_INSTANCE",
        "GHASTOOLKIT_THREADS",
        "GHASTOOLKIT_RAM",
        "GHASTOOLKIT_SUITE",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def runner() -> CliRunner:
    """Click test runner."""
    return CliRunner()


def write_database(path: Path, language: str = "python") -> Path:
    """Create a database directory."""
    path.mkdir(parents=True)
    (path / "codeql-database.yml").write_text(
        f"primaryLanguage: {language}\nbaselineLinesOfCode: 99\n"
    )
    return path


class TestMainCommand:
    """Tests for the root command group."""

    def test_version(self, runner: CliRunner) -> None:
        """Test --version."""
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help(self, runner: CliRunner) -> None:
        """Test the codeql group lists its commands."""
        result = runner.invoke(cli, ["codeql", "--help"])

        assert result.exit_code == 0
        for command in ("languages", "databases", "download", "scan", "packs", "pack"):
            assert command in result.output


class TestDatabasesCommand:
    """Tests for the databases command."""

    def test_json(self, runner: CliRunner, tmp_path: Path) -> None:
        """Test JSON listing."""
        write_database(tmp_path / "dbs" / "python-app")

        result = runner.invoke(
            cli, ["codeql", "databases", "--path", str(tmp_path / "dbs"), "--format", "json"]
        )

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data[0]["name"] == "python-app"
        assert data[0]["language"] == "python"
        assert data[0]["lines_of_code"] == 99

    def test_output_file(self, runner: CliRunner, tmp_path: Path) -> None:
        """Test writing the listing to a file."""
        write_database(tmp_path / "dbs" / "java-app", "java")
        output = tmp_path / "out" / "dbs.json"

        result = runner.invoke(
            cli,
            ["codeql", "databases", "--path", str(tmp_path / "dbs"), "--output", str(output)],
        )

        assert result.exit_code == 0
        assert json.loads(output.read_text())[0]["language"] == "java"

    def test_table(self, runner: CliRunner, tmp_path: Path) -> None:
        """Test table listing."""
        write_database(tmp_path / "dbs" / "go-svc", "go")

        result = runner.invoke(cli, ["codeql", "databases", "--path", str(tmp_path / "dbs")])

        assert result.exit_code == 0
        assert "go-svc" in result.output

    def test_missing_root(self, runner: CliRunner, tmp_path: Path) -> None:
        """Test a missing databases directory is reported."""
        result = runner.invoke(cli, ["codeql", "databases", "--path", str(tmp_path / "none")])

        assert result.exit_code == 0
        assert "No databases directory" in result.output


class TestPackCommands:
    """Tests for the packs and pack commands."""

    def test_packs_path(self, runner: CliRunner, tmp_path: Path) -> None:
        """Test listing packs in a directory."""
        pack_dir = tmp_path / "queries"
        pack_dir.mkdir()
        (pack_dir / "qlpack.yml").write_text("name: octo/queries\nversion: 0.3.0\n")

        result = runner.invoke(cli, ["codeql", "packs", str(tmp_path)])

        assert result.exit_code == 0
        assert "octo/queries" in result.output
        assert "0.3.0" in result.output

    def test_pack_local(self, runner: CliRunner, tmp_path: Path) -> None:
        """Test showing a local pack."""
        pack_dir = tmp_path / "lib"
        pack_dir.mkdir()
        (pack_dir / "qlpack.yml").write_text(
            "name: octo/lib\nversion: 1.0.0\nlibrary: true\n"
            "dependencies:\n  codeql/python-all: '*'\n"
        )

        result = runner.invoke(cli, ["codeql", "pack", str(pack_dir)])

        assert result.exit_code == 0
        assert "octo/lib" in result.output
        assert "Library" in result.output
        assert "codeql/python-all" in result.output

    def test_pack_reference(self, runner: CliRunner) -> None:
        """Test a pack that is not on disk."""
        result = runner.invoke(cli, ["codeql", "pack", "octo/missing@1.0.0"])

        assert result.exit_code == 0
        assert "Not found locally" in result.output

    def test_pack_download(self, runner: CliRunner) -> None:
        """Test --download runs codeql pack download."""
        with patch.object(CodeQLCLI, "run", new=AsyncMock(return_value="")) as mock_run:
            result = runner.invoke(cli, ["codeql", "pack", "octo/missing@1.0.0", "--download"])

        assert result.exit_code == 0
        mock_run.assert_called_once_with(["pack", "download", "octo/missing@1.0.0"])

    def test_pack_download_failure(self, runner: CliRunner) -> None:
        """Test a failed download aborts."""
        error = ToolError("CodeQL command failed (exit code 1)", returncode=1)
        with patch.object(CodeQLCLI, "run", new=AsyncMock(side_effect=error)):
            result = runner.invoke(cli, ["codeql", "pack", "octo/missing", "--download"])

        assert result.exit_code == 1
        assert "Error" in result.output


class TestLanguagesCommand:
    """Tests for the languages command."""

    def test_languages(self, runner: CliRunner) -> None:
        """Test language listing."""
        languages = CodeQLLanguages([canonicalize("python"), canonicalize("yaml")])
        with patch.object(
            CodeQLCLI, "get_all_languages", new=AsyncMock(return_value=languages)
        ):
            result = runner.invoke(cli, ["codeql", "languages", "--primary"])

        assert result.exit_code == 0
        assert "python" in result.output
        assert "yaml" not in result.output


class TestScanCommand:
    """Tests for the scan command."""

    def test_scan(self, runner: CliRunner, tmp_path: Path) -> None:
        """Test scan output and option passing."""
        source = tmp_path / "src"
        source.mkdir()
        database = CodeQLDatabase.build(
            name="src", language="python", source=source, root=tmp_path / "dbs"
        )
        scan_result = ScanResult(
            database=database,
            queries="codeql/python-queries",
            results_path=tmp_path / "out.sarif",
            results=[
                SarifResult(
                    id="py/x_app.py_1",
                    rule_id="py/x",
                    severity=Severity.HIGH,
                    file_path=Path("app.py"),
                    message="Problem",
                )
            ],
        )

        with patch("ghastoolkit.cli.commands.scan.ScanService") as mock_service:
            mock_service.return_value.scan = AsyncMock(return_value=scan_result)
            result = runner.invoke(
                cli,
                [
                    "codeql",
                    "scan",
                    str(source),
                    "--language",
                    "python",
                    "--suite",
                    "security-extended",
                    "--threads",
                    "2",
                ],
            )

        assert result.exit_code == 0, result.output
        assert "py/x" in result.output

        config = mock_service.call_args.kwargs["config"]
        assert config.codeql.threads == 2
        scan_kwargs = mock_service.return_value.scan.call_args.kwargs
        assert scan_kwargs["language"] == "python"
        assert scan_kwargs["suite"] == "security-extended"

    def test_scan_failure(self, runner: CliRunner, tmp_path: Path) -> None:
        """Test errors abort with a message."""
        with patch("ghastoolkit.cli.commands.scan.ScanService") as mock_service:
            mock_service.return_value.scan = AsyncMock(side_effect=ToolError("boom"))
            result = runner.invoke(cli, ["codeql", "scan", str(tmp_path), "-l", "python"])

        assert result.exit_code == 1
        assert "boom" in result.output

    def test_scan_invalid_repository(self, runner: CliRunner, tmp_path: Path) -> None:
        """Test a malformed repository aborts before scanning."""
        with patch("ghastoolkit.cli.commands.scan.ScanService") as mock_service:
            result = runner.invoke(
                cli, ["codeql", "scan", str(tmp_path), "-l", "python", "-r", "not-a-repo"]
            )

        assert result.exit_code == 1
        mock_service.assert_not_called()


class TestDownloadCommand:
    """Tests for the download command."""

    def test_download_language(self, runner: CliRunner, tmp_path: Path) -> None:
        """Test a single-language download."""
        database = CodeQLDatabase.build(name="app", language="python", root=tmp_path)

        with patch(
            "ghastoolkit.cli.commands.download.CodeQLDatabases.download_language",
            new=AsyncMock(return_value=database),
        ) as mock_download:
            result = runner.invoke(
                cli,
                ["codeql", "download", "-r", "octo/app", "-l", "python", "-p", str(tmp_path)],
            )

        assert result.exit_code == 0, result.output
        mock_download.assert_called_once()
        assert "python" in result.output

    def test_download_none_available(self, runner: CliRunner, tmp_path: Path) -> None:
        """Test a repository without databases."""
        with patch(
            "ghastoolkit.cli.commands.download.CodeQLDatabases.download",
            new=AsyncMock(return_value=[]),
        ):
            result = runner.invoke(cli, ["codeql", "download", "-r", "octo/app"])

        assert result.exit_code == 0
        assert "No CodeQL databases" in result.output
