"""CodeQL CLI wrapper.

Every operation spawns a single ``codeql`` child process and awaits it.
There are no retries and no timeouts at this layer.
"""

import asyncio
import copy
import json
import os
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence, Union

from rich.console import Console

from ghastoolkit.adapters.codeql.database_handler import CodeQLDatabaseHandler
from ghastoolkit.adapters.codeql.pack_handler import CodeQLPackHandler
from ghastoolkit.adapters.codeql.packs import load_pack
from ghastoolkit.adapters.codeql.parsers import SARIFParser
from ghastoolkit.core.environment import find_codeql
from ghastoolkit.core.errors import FormatError, ToolError
from ghastoolkit.models.config import ToolkitConfig
from ghastoolkit.models.database import CodeQLDatabase
from ghastoolkit.models.extractor import CodeQLExtractor
from ghastoolkit.models.language import CodeQLLanguages, Language
from ghastoolkit.models.pack import CodeQLPack, CodeQLPacks
from ghastoolkit.models.sarif import SarifResult
from ghastoolkit.utils.logging import get_logger

logger = get_logger()

# Live output from long running commands goes to stdout, unstyled
output_console = Console(highlight=False)

REGISTRIES_AUTH_ENV = "CODEQL_REGISTRIES_AUTH"
DEFAULT_SUITE = "code-scanning"
READ_CHUNK_SIZE = 64 * 1024


class CodeQLCLI:
    """Wrapper around the CodeQL CLI.

    Instances are treated as immutable configuration. Methods that change
    options return a modified copy.
    """

    def __init__(
        self,
        codeql_path: Union[str, Path, None] = None,
        version: Optional[str] = None,
        threads: Optional[int] = None,
        ram: Optional[int] = None,
        search_paths: Sequence[Union[str, Path]] = (),
        additional_packs: Sequence[str] = (),
        token: Optional[str] = None,
        suite: Optional[str] = None,
        show_output: bool = True,
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        """
        Initialize CodeQL CLI wrapper.

        Args:
            codeql_path: Path to the executable (default: located via
                         CODEQL_PATH, CODEQL_BINARY or PATH, else "codeql")
            version: CLI version if already known
            threads: Value for ``--threads`` (omitted when None)
            ram: Value for ``--ram`` in MB (omitted when None)
            search_paths: Directories passed as ``--search-path``
            additional_packs: Directories passed as ``--additional-packs``
            token: Registry token exported as CODEQL_REGISTRIES_AUTH to children
            suite: Default query suite
            show_output: Echo child stdout lines as they arrive
            env: Environment for child processes (default: ``os.environ``)
        """
        self.env: dict[str, str] = dict(os.environ if env is None else env)
        if codeql_path is None:
            codeql_path = find_codeql(self.env) or "codeql"
        self.path = Path(codeql_path)
        self.version = version
        self.threads = threads
        self.ram = ram
        self.search_paths: tuple[Path, ...] = tuple(Path(p) for p in search_paths)
        self.additional_packs: tuple[str, ...] = tuple(str(p) for p in additional_packs)
        self.token = token
        self.suite = suite
        self.show_output = show_output

    @classmethod
    def from_config(
        cls, config: ToolkitConfig, env: Optional[Mapping[str, str]] = None
    ) -> "CodeQLCLI":
        """Build a wrapper from toolkit configuration."""
        settings = config.codeql
        return cls(
            codeql_path=settings.path,
            threads=settings.threads,
            ram=settings.ram,
            search_paths=settings.search_paths,
            additional_packs=settings.additional_packs,
            token=config.github.token,
            suite=settings.suite,
            show_output=settings.show_output,
            env=env,
        )

    @classmethod
    async def create(cls, **kwargs: Any) -> "CodeQLCLI":
        """
        Locate the CLI and read its version.

        Accepts the same keyword arguments as the constructor.

        Raises:
            ToolError: If the executable cannot be run
        """
        codeql = cls(**kwargs)
        if codeql.version is None:
            codeql.version = await cls.get_version(codeql.path, codeql.env)
        logger.info("codeql_initialized", path=str(codeql.path), version=codeql.version)
        return codeql

    def _clone(self, **changes: Any) -> "CodeQLCLI":
        clone = copy.copy(self)
        for key, value in changes.items():
            setattr(clone, key, value)
        return clone

    def silent(self) -> "CodeQLCLI":
        """Copy of this wrapper that does not echo child output."""
        return self._clone(show_output=False)

    def with_search_path(self, path: Union[str, Path]) -> "CodeQLCLI":
        """Copy of this wrapper with an extra search path."""
        return self._clone(search_paths=self.search_paths + (Path(path),))

    def add_extractor(self, extractor: CodeQLExtractor) -> "CodeQLCLI":
        """Copy of this wrapper that can find a custom extractor."""
        if extractor.path is None:
            return self
        return self.with_search_path(extractor.path)

    def load_extractor(self, path: Path) -> tuple[CodeQLExtractor, "CodeQLCLI"]:
        """
        Load an extractor pack and return it with a wrapper that can use it.

        Raises:
            IoError: If codeql-extractor.yml is missing
            FormatError: If it cannot be parsed
        """
        extractor = CodeQLExtractor.load(path)
        return extractor, self.add_extractor(extractor)

    def default_suite(self) -> str:
        """Configured suite, ``code-scanning`` when unset."""
        return self.suite or DEFAULT_SUITE

    def search_path_args(self) -> list[str]:
        """``--search-path`` arguments (colon separated), empty if none."""
        if not self.search_paths:
            return []
        return ["--search-path", ":".join(str(p) for p in self.search_paths)]

    def additional_packs_args(self) -> list[str]:
        """``--additional-packs`` arguments (comma separated), empty if none."""
        if not self.additional_packs:
            return []
        return ["--additional-packs", ",".join(self.additional_packs)]

    def resource_args(self) -> list[str]:
        """``--threads``/``--ram`` arguments for the options that are set."""
        args: list[str] = []
        if self.threads is not None:
            args.extend(["--threads", str(self.threads)])
        if self.ram is not None:
            args.extend(["--ram", str(self.ram)])
        return args

    def _child_env(self) -> dict[str, str]:
        env = dict(self.env)
        if self.token:
            env[REGISTRIES_AUTH_ENV] = self.token
        return env

    async def _read_lines(
        self, process: asyncio.subprocess.Process, lines: list[str]
    ) -> None:
        # Chunked reads so a single line is never bound by the stream limit
        if process.stdout is None:
            raise ValueError("stdout is not piped")
        pending = b""
        while chunk := await process.stdout.read(READ_CHUNK_SIZE):
            pending += chunk
            *complete, pending = pending.split(b"\n")
            for raw in complete:
                self._collect_line(raw, lines)
        if pending:
            self._collect_line(pending, lines)

    def _collect_line(self, raw: bytes, lines: list[str]) -> None:
        line = raw.decode(errors="replace").rstrip("\r")
        if self.show_output:
            output_console.out(line)
        lines.append(line)

    @staticmethod
    async def _terminate(process: asyncio.subprocess.Process) -> None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
        await process.wait()

    async def run(self, args: Sequence[str]) -> str:
        """
        Run a CodeQL command.

        stdout is read line by line (echoed live when ``show_output`` is set)
        and returned joined by newlines; stderr goes straight to the
        parent's stderr.

        Args:
            args: Command arguments (without the executable)

        Returns:
            Captured stdout

        Raises:
            ToolError: If the process cannot be started or exits non-zero, or its
                output cannot be read (the process is killed)
        """
        cmd = [str(self.path), *args]
        cmd_str = " ".join(cmd)

        logger.debug("codeql_command_starting", command=cmd_str)

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=None,
                env=self._child_env(),
            )
        except OSError as e:
            logger.error("codeql_command_spawn_failed", command=cmd_str, error=str(e))
            raise ToolError(
                f"Failed to start CodeQL executable '{self.path}': {e}", command=cmd
            ) from e

        lines: list[str] = []
        try:
            await self._read_lines(process, lines)
            returncode = await process.wait()
        except asyncio.CancelledError:
            logger.warning("codeql_command_cancelled", command=cmd_str)
            await self._terminate(process)
            raise
        except (OSError, ValueError) as e:
            logger.error("codeql_command_read_failed", command=cmd_str, error=str(e))
            await self._terminate(process)
            raise ToolError(
                f"Failed to read output of CodeQL command: {cmd_str}: {e}",
                command=cmd,
                output="\n".join(lines),
            ) from e

        output = "\n".join(lines)

        if returncode != 0:
            logger.error(
                "codeql_command_failed",
                command=cmd_str,
                returncode=returncode,
                stdout=output[:500],
            )
            raise ToolError(
                f"CodeQL command failed (exit code {returncode}): {cmd_str}\n{output}",
                command=cmd,
                returncode=returncode,
                output=output,
            )

        logger.debug(
            "codeql_command_completed",
            command=cmd_str,
            stdout_length=len(output),
        )
        return output

    async def run_json(self, args: Sequence[str]) -> Any:
        """Run a command silently and parse its stdout as JSON."""
        output = await self.silent().run(args)
        try:
            return json.loads(output)
        except json.JSONDecodeError as e:
            raise FormatError(f"Invalid JSON from 'codeql {' '.join(args)}': {e}") from e

    @staticmethod
    async def get_version(
        path: Union[str, Path], env: Optional[Mapping[str, str]] = None
    ) -> str:
        """
        Read the CLI version (``codeql version --format terse``).

        Raises:
            ToolError: If the executable cannot be run or fails
        """
        logger.debug("codeql_version_check", path=str(path))
        try:
            process = await asyncio.create_subprocess_exec(
                str(path),
                "version",
                "--format",
                "terse",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=dict(os.environ if env is None else env),
            )
        except OSError as e:
            raise ToolError(f"CodeQL executable not found: {path}") from e

        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            raise ToolError(
                f"Failed to get CodeQL version: {stderr.decode(errors='replace').strip()}",
                command=[str(path), "version", "--format", "terse"],
                returncode=process.returncode,
            )
        return stdout.decode().strip()

    async def is_installed(self) -> bool:
        """Whether the configured executable runs."""
        try:
            await self.get_version(self.path, self.env)
        except ToolError:
            return False
        return True

    async def get_all_languages(self) -> CodeQLLanguages:
        """
        Languages supported by this CLI (``codeql resolve languages``).

        Raises:
            ToolError: If the command fails
            FormatError: If the output is not valid JSON
        """
        args = ["resolve", "languages", "--format", "json", *self.search_path_args()]
        data = await self.run_json(args)
        languages = CodeQLLanguages.from_resolve_output(data)
        logger.debug("codeql_languages_resolved", count=len(languages))
        return languages

    async def get_languages(self) -> list[Language]:
        """Primary languages supported by this CLI."""
        return (await self.get_all_languages()).get_languages()

    async def get_secondary_languages(self) -> list[Language]:
        """Secondary languages supported by this CLI."""
        return (await self.get_all_languages()).get_secondary()

    async def resolve_packs(self) -> CodeQLPacks:
        """
        Packs visible to this CLI (``codeql resolve packs``).

        Only packs resolved by name and version are returned.

        Raises:
            ToolError: If the command fails
            FormatError: If the output is not valid JSON
            PackError: If a reported pack cannot be loaded
        """
        args = ["resolve", "packs", "--format", "json", *self.search_path_args()]
        data = await self.run_json(args)

        packs = CodeQLPacks()
        for step in data.get("steps", []):
            if step.get("type") != "by-name-and-version":
                continue
            for versions in step.get("found", {}).values():
                for info in versions.values():
                    packs.append(load_pack(Path(info["path"])))

        logger.debug("codeql_packs_resolved", count=len(packs))
        return packs

    def database(self, database: CodeQLDatabase) -> CodeQLDatabaseHandler:
        """Handler for creating and analyzing a database."""
        return CodeQLDatabaseHandler(database, self)

    def pack(self, pack: CodeQLPack) -> CodeQLPackHandler:
        """Handler for pack operations."""
        return CodeQLPackHandler(pack, self)

    def sarif(self, path: Path) -> list[SarifResult]:
        """
        Parse a SARIF results file.

        Raises:
            ParserError: If the file cannot be parsed
        """
        return SARIFParser().parse_file(path)

    async def scan(
        self, database: CodeQLDatabase, queries: Optional[str] = None
    ) -> list[SarifResult]:
        """
        Create, analyze and parse results for a database in one go.

        The database is recreated (``--overwrite``) and results are written
        to ``results.sarif`` inside the database directory.
        """
        await self.database(database).overwrite().create()
        database.reload()

        output = database.path / "results.sarif"
        handler = self.database(database).sarif(output)
        if queries:
            handler = handler.suite(queries)
        await handler.analyze()
        return self.sarif(output)

    def __str__(self) -> str:
        """Short description."""
        if self.version:
            return f"CodeQL('{self.path}', '{self.version}')"
        return f"CodeQL('{self.path}')"
