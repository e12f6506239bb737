"""Scan service: create a database, analyze it and collect the results."""

from collections import Counter
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field

from ghastoolkit.adapters.codeql.cli import CodeQLCLI
from ghastoolkit.models.config import ToolkitConfig
from ghastoolkit.models.database import CodeQLDatabase
from ghastoolkit.models.language import canonicalize
from ghastoolkit.models.repository import Repository
from ghastoolkit.models.sarif import SarifResult
from ghastoolkit.services.base_service import BaseService, ProgressCallback
from ghastoolkit.utils.logging import bind_context, clear_context, get_logger

logger = get_logger()


class ScanResult(BaseModel):
    """Outcome of a scan."""

    database: CodeQLDatabase
    queries: str = Field(..., description="Query specifier that was run")
    results_path: Path
    results: list[SarifResult] = Field(default_factory=list)

    def severity_counts(self) -> dict[str, int]:
        """Number of results per severity."""
        counts = Counter(str(result.severity) for result in self.results)
        return dict(counts)


class ScanService(BaseService):
    """Runs the create, reload, analyze and parse steps for one language.

    Every step's errors propagate unchanged.
    """

    def __init__(
        self,
        config: ToolkitConfig,
        codeql: Optional[CodeQLCLI] = None,
        progress_callback: ProgressCallback | None = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        """
        Initialize scan service.

        Args:
            config: Toolkit configuration
            codeql: CLI wrapper (default: built from ``config``)
            progress_callback: Optional progress callback
            env: Environment mapping for default paths
        """
        super().__init__(config, progress_callback)
        self.env = env
        self.codeql = codeql or CodeQLCLI.from_config(config, env)

    def build_database(
        self,
        source: Path,
        language: str,
        repository: Optional[Repository] = None,
        name: Optional[str] = None,
    ) -> CodeQLDatabase:
        """Database descriptor rooted at the configured databases directory."""
        return CodeQLDatabase.build(
            name=name,
            language=canonicalize(language),
            source=source.resolve(),
            repository=repository,
            root=self.config.databases,
            env=self.env,
        )

    async def scan(
        self,
        source: Path,
        language: str,
        repository: Optional[Repository] = None,
        suite: Optional[str] = None,
        output: Optional[Path] = None,
        overwrite: bool = True,
    ) -> ScanResult:
        """
        Scan a source tree.

        Args:
            source: Source root
            language: Language token (aliases accepted)
            repository: Repository the source belongs to
            suite: Suite shorthand or query specifier (default: configured suite)
            output: SARIF output path (default: results root)
            overwrite: Replace an existing database

        Returns:
            ScanResult with the parsed results

        Raises:
            DatabaseError: If the source or language is missing or unusable
            ToolError: If a CodeQL command fails
            ParserError: If the SARIF output cannot be parsed
        """
        database = self.build_database(source, language, repository)
        bind_context(language=database.language.id, database=database.name)
        try:
            return await self._scan(database, source, suite, output, overwrite)
        finally:
            clear_context()

    async def _scan(
        self,
        database: CodeQLDatabase,
        source: Path,
        suite: Optional[str],
        output: Optional[Path],
        overwrite: bool,
    ) -> ScanResult:
        self._emit_progress(
            "scan_started",
            language=database.language.id,
            source=str(source),
            database=str(database.path),
        )

        handler = self.codeql.database(database)
        if overwrite:
            handler.overwrite()
        await handler.create()
        database.reload()
        self._emit_progress(
            "database_created",
            database=str(database.path),
            lines_of_code=database.lines_of_code(),
        )

        handler = self.codeql.database(database).suite(suite or self.codeql.default_suite())
        if output is not None:
            handler.sarif(output)
        elif self.config.results is not None:
            handler.sarif(self.config.results / handler.output_path.name)
        results_path = await handler.analyze()
        self._emit_progress("analysis_completed", results=str(results_path))

        results = self.codeql.sarif(results_path)
        scan_result = ScanResult(
            database=database,
            queries=str(handler.queries),
            results_path=results_path,
            results=results,
        )

        logger.info(
            "scan_completed",
            language=database.language.id,
            results=len(results),
            severities=scan_result.severity_counts(),
        )
        self._emit_progress("scan_completed", results_count=len(results))
        return scan_result
