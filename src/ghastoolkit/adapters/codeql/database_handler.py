"""Create and analyze CodeQL databases."""

from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

from ghastoolkit.core.environment import default_results_path
from ghastoolkit.core.errors import DatabaseError, IoError
from ghastoolkit.models.database import CodeQLDatabase
from ghastoolkit.models.queries import QuerySpecifier
from ghastoolkit.utils.logging import get_logger

if TYPE_CHECKING:
    from ghastoolkit.adapters.codeql.cli import CodeQLCLI

logger = get_logger()

SARIF_FORMAT = "sarif-latest"
CSV_FORMAT = "csv"


class CodeQLDatabaseHandler:
    """Builds and runs ``codeql database create|analyze`` for one database.

    Option methods return the handler so calls can be chained::

        await codeql.database(db).overwrite().create()
        await codeql.database(db).suite("security-extended").analyze()
    """

    def __init__(self, database: CodeQLDatabase, codeql: "CodeQLCLI") -> None:
        """
        Initialize handler.

        Args:
            database: Database to operate on
            codeql: CLI wrapper used to run commands
        """
        self.database = database
        self.codeql = codeql
        self.queries = QuerySpecifier.language_default(database.language)
        self.threat_models: list[str] = []
        self.model_packs: list[str] = []
        self.sarif_category: Optional[str] = None
        self.build_command: Optional[str] = None
        self.output_path = self.default_results(database, codeql)
        self.output_format = SARIF_FORMAT
        self.overwrite_database = False
        self.print_summary = True

    @staticmethod
    def default_results(database: CodeQLDatabase, codeql: "CodeQLCLI") -> Path:
        """
        Default results file for a database.

        ``<results>/<language>-<owner>-<repo>.sarif`` with a repository,
        ``<results>/<language>-<name>.sarif`` otherwise.
        """
        root = default_results_path(codeql.env)
        if database.repository is not None:
            repo = database.repository
            return root / f"{database.language.id}-{repo.owner}-{repo.name}.sarif"
        return root / f"{database.language.id}-{database.name}.sarif"

    def command(self, command: str) -> "CodeQLDatabaseHandler":
        """Build command passed to ``--command``."""
        self.build_command = command
        return self

    def output(self, output: Path) -> "CodeQLDatabaseHandler":
        """Results file, keeping the current format."""
        self.output_path = output
        return self

    def sarif(self, output: Path) -> "CodeQLDatabaseHandler":
        """Write SARIF results to ``output``."""
        self.output_path = output
        self.output_format = SARIF_FORMAT
        return self

    def csv(self, output: Path) -> "CodeQLDatabaseHandler":
        """Write CSV results to ``output``."""
        self.output_path = output
        self.output_format = CSV_FORMAT
        return self

    def use_queries(
        self, queries: Union[QuerySpecifier, str]
    ) -> "CodeQLDatabaseHandler":
        """Queries to run, as a specifier or specifier string."""
        if isinstance(queries, str):
            queries = QuerySpecifier.parse(queries)
        self.queries = queries
        return self

    def suite(self, suite: str) -> "CodeQLDatabaseHandler":
        """
        Queries to run, as a suite shorthand or specifier string.

        ``security-extended``, ``security-and-quality``, ``experimental``,
        ``default`` and ``code-scanning`` select the standard suites for the
        database language.
        """
        self.queries = QuerySpecifier.from_suite(suite, self.database.language)
        logger.debug("database_handler_suite", suite=suite, queries=str(self.queries))
        return self

    def threat_model(self, threat_model: str) -> "CodeQLDatabaseHandler":
        """Add a threat model."""
        self.threat_models.append(threat_model)
        return self

    def set_threat_models(self, threat_models: list[str]) -> "CodeQLDatabaseHandler":
        """Replace the threat models."""
        self.threat_models = list(threat_models)
        return self

    def disable_default_threat_model(self) -> "CodeQLDatabaseHandler":
        """Exclude the default threat model."""
        self.threat_models.append("!default")
        return self

    def model_pack(self, model_pack: str) -> "CodeQLDatabaseHandler":
        """Add a model pack."""
        self.model_packs.append(model_pack)
        return self

    def set_model_packs(self, model_packs: list[str]) -> "CodeQLDatabaseHandler":
        """Replace the model packs."""
        self.model_packs = list(model_packs)
        return self

    def category(self, category: str) -> "CodeQLDatabaseHandler":
        """SARIF category."""
        self.sarif_category = category
        return self

    def overwrite(self) -> "CodeQLDatabaseHandler":
        """Replace the database if it already exists."""
        self.overwrite_database = True
        return self

    def summary(self, summary: bool) -> "CodeQLDatabaseHandler":
        """Toggle diagnostics and metrics summaries."""
        self.print_summary = summary
        return self

    def create_cmd(self) -> list[str]:
        """
        Arguments for ``codeql database create``.

        Raises:
            DatabaseError: If the database has no source root or language,
                           or its language is a secondary language
        """
        database = self.database
        if database.source is None:
            raise DatabaseError("No source root provided")
        if database.language.is_none:
            raise DatabaseError("No language provided")
        if database.language.secondary:
            raise DatabaseError(
                f"Cannot create a database for secondary language '{database.language}'"
            )

        args = ["database", "create", "-l", database.language.id, "-s", str(database.source)]

        if self.threat_models:
            args.extend(["--threat-models", ",".join(self.threat_models)])
        if self.model_packs:
            args.extend(["--model-packs", ",".join(self.model_packs)])
        args.extend(self.codeql.search_path_args())
        if self.overwrite_database:
            args.append("--overwrite")
        if self.print_summary:
            args.extend(["--print-diagnostics-summary", "--print-metrics-summary"])
        if self.sarif_category:
            args.extend(["--sarif-category", self.sarif_category])
        if self.build_command:
            args.extend(["--command", self.build_command])
        args.extend(self.codeql.resource_args())

        args.append(str(database.path))
        return args

    def analyze_cmd(self) -> list[str]:
        """Arguments for ``codeql database analyze``."""
        args = [
            "database",
            "analyze",
            "--output",
            str(self.output_path),
            "--format",
            self.output_format,
        ]
        args.extend(self.codeql.search_path_args())
        args.extend(self.codeql.additional_packs_args())
        args.extend(self.codeql.resource_args())
        args.append(str(self.database.path))
        args.append(str(self.queries))
        return args

    async def create(self) -> None:
        """
        Create the database.

        Preconditions are checked before anything touches the disk.

        Raises:
            DatabaseError: If the source root or language is missing
            IoError: If the database directory cannot be created
            ToolError: If ``codeql database create`` fails
        """
        args = self.create_cmd()

        if not self.database.path.exists():
            logger.debug("database_path_creating", path=str(self.database.path))
            try:
                self.database.path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise IoError(
                    f"Failed to create database directory {self.database.path}: {e}"
                ) from e

        logger.info(
            "codeql_database_creation_started",
            language=self.database.language.id,
            source=str(self.database.source),
            db_path=str(self.database.path),
        )
        await self.codeql.run(args)
        logger.info("codeql_database_created", db_path=str(self.database.path))

    async def analyze(self) -> Path:
        """
        Analyze the database.

        Returns:
            Path of the results file

        Raises:
            IoError: If the results directory cannot be created
            ToolError: If ``codeql database analyze`` fails
        """
        args = self.analyze_cmd()

        try:
            self.output_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IoError(
                f"Failed to create results directory {self.output_path.parent}: {e}"
            ) from e

        logger.info(
            "codeql_analysis_started",
            db_path=str(self.database.path),
            queries=str(self.queries),
            output=str(self.output_path),
        )
        await self.codeql.run(args)
        logger.info("codeql_analysis_completed", output=str(self.output_path))
        return self.output_path
