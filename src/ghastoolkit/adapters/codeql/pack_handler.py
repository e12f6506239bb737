"""Pack operations: resolve the queries in a pack and download packs."""

from typing import TYPE_CHECKING, Optional

from ghastoolkit.core.errors import FormatError
from ghastoolkit.models.pack import CodeQLPack
from ghastoolkit.models.queries import QuerySpecifier
from ghastoolkit.utils.logging import get_logger

if TYPE_CHECKING:
    from ghastoolkit.adapters.codeql.cli import CodeQLCLI

logger = get_logger()


class CodeQLPackHandler:
    """Runs ``codeql resolve queries`` and ``codeql pack download`` for a pack."""

    def __init__(self, pack: CodeQLPack, codeql: "CodeQLCLI") -> None:
        self.pack = pack
        self.codeql = codeql
        self.suite_path: Optional[str] = None

    def suite(self, suite: str) -> "CodeQLPackHandler":
        """Restrict resolution to a suite inside the pack (``path`` or ``scope/name:path``)."""
        specifier = QuerySpecifier.parse(suite)
        self.suite_path = specifier.path if specifier.path is not None else suite
        return self

    def _suite(self) -> Optional[str]:
        return self.suite_path or self.codeql.suite

    def resolve_cmd(self) -> list[str]:
        """Arguments for ``codeql resolve queries``."""
        name = self.pack.full_name
        if suite := self._suite():
            name = f"{name}:{suite}"
        return ["resolve", "queries", "--format=json", *self.codeql.search_path_args(), name]

    async def resolve(self) -> list[str]:
        """
        Queries selected by the pack (and suite).

        Paths are returned relative to the pack directory when the pack is
        on disk.

        Raises:
            ToolError: If the command fails
            FormatError: If the output is not a JSON list
        """
        args = self.resolve_cmd()
        logger.debug("pack_queries_resolving", pack=self.pack.full_name, args=args)

        queries = await self.codeql.run_json(args)
        if not isinstance(queries, list):
            raise FormatError("Unexpected output from 'codeql resolve queries'")

        if self.pack.path is None:
            return [str(q) for q in queries]

        prefix = str(self.pack.path).rstrip("/") + "/"
        return [str(q).replace(prefix, "") for q in queries]

    def download_cmd(self) -> list[str]:
        """Arguments for ``codeql pack download``."""
        name = self.pack.full_name
        if self.pack.specifier.range:
            name = f"{name}@{self.pack.specifier.range}"
        return ["pack", "download", name]

    async def download(self) -> None:
        """
        Download the pack into the package cache.

        Raises:
            ToolError: If the command fails
        """
        logger.info("pack_download_started", pack=self.pack.full_name)
        await self.codeql.run(self.download_cmd())
        logger.info("pack_download_completed", pack=self.pack.full_name)
