"""Tests for pack resolve and download commands."""

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from ghastoolkit.adapters.codeql.cli import CodeQLCLI
from ghastoolkit.core.errors import FormatError
from ghastoolkit.models.pack import CodeQLPack, PackManifest, PackType
from ghastoolkit.models.queries import QuerySpecifier


@pytest.fixture
def codeql() -> CodeQLCLI:
    """CLI wrapper with no defaults."""
    return CodeQLCLI(codeql_path="codeql", show_output=False, env={})


@pytest.fixture
def local_pack(tmp_path: Path) -> CodeQLPack:
    """A pack on disk."""
    manifest = PackManifest(name="octo/queries", version="1.0.0")
    return CodeQLPack(
        specifier=QuerySpecifier.parse("octo/queries"),
        path=tmp_path / "queries",
        manifest=manifest,
        pack_type=PackType.QUERIES,
    )


class TestPackHandler:
    """Tests for CodeQLPackHandler."""

    def test_resolve_cmd(self, codeql: CodeQLCLI, local_pack: CodeQLPack) -> None:
        """Test resolve command without a suite."""
        assert codeql.pack(local_pack).resolve_cmd() == [
            "resolve",
            "queries",
            "--format=json",
            "octo/queries",
        ]

    def test_resolve_cmd_suite(self, codeql: CodeQLCLI, local_pack: CodeQLPack) -> None:
        """Test suite selection from a full specifier."""
        handler = codeql.pack(local_pack).suite("octo/queries:suites/security.qls")

        assert handler.resolve_cmd()[-1] == "octo/queries:suites/security.qls"

    def test_resolve_cmd_default_suite(self, local_pack: CodeQLPack) -> None:
        """Test the CLI's configured suite is used when none is set."""
        codeql = CodeQLCLI(codeql_path="codeql", suite="suites/all.qls", env={})

        assert codeql.pack(local_pack).resolve_cmd()[-1] == "octo/queries:suites/all.qls"

    @pytest.mark.asyncio
    async def test_resolve_strips_pack_path(
        self, codeql: CodeQLCLI, local_pack: CodeQLPack
    ) -> None:
        """Test query paths are made relative to the pack."""
        queries = [
            f"{local_pack.path}/Security/CWE-089/SqlInjection.ql",
            "/elsewhere/Other.ql",
        ]
        with patch.object(CodeQLCLI, "run_json", new=AsyncMock(return_value=queries)):
            result = await codeql.pack(local_pack).resolve()

        assert result == ["Security/CWE-089/SqlInjection.ql", "/elsewhere/Other.ql"]

    @pytest.mark.asyncio
    async def test_resolve_unexpected_output(
        self, codeql: CodeQLCLI, local_pack: CodeQLPack
    ) -> None:
        """Test non-list output raises FormatError."""
        with patch.object(CodeQLCLI, "run_json", new=AsyncMock(return_value={"a": 1})):
            with pytest.raises(FormatError):
                await codeql.pack(local_pack).resolve()

    def test_download_cmd(self, codeql: CodeQLCLI) -> None:
        """Test download includes the requested range."""
        pack = CodeQLPack.reference(QuerySpecifier.parse("codeql/go-queries@1.2.0"))

        assert codeql.pack(pack).download_cmd() == [
            "pack",
            "download",
            "codeql/go-queries@1.2.0",
        ]

    @pytest.mark.asyncio
    async def test_download(self, codeql: CodeQLCLI) -> None:
        """Test download runs the command."""
        pack = CodeQLPack.reference(QuerySpecifier.parse("codeql/go-queries"))

        with patch.object(CodeQLCLI, "run", new=AsyncMock(return_value="")) as mock_run:
            await codeql.pack(pack).download()

        mock_run.assert_called_once_with(["pack", "download", "codeql/go-queries"])
