"""CodeQL database models (codeql-database.yml and database descriptors)."""

import os
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ghastoolkit.core.environment import default_databases_path
from ghastoolkit.core.errors import DatabaseError, FormatError, IoError
from ghastoolkit.models.language import Language, canonicalize
from ghastoolkit.models.repository import Repository
from ghastoolkit.utils.logging import get_logger

logger = get_logger()

DATABASE_FILE = "codeql-database.yml"


class CreationMetadata(BaseModel):
    """Creation metadata recorded by the CLI."""

    model_config = ConfigDict(populate_by_name=True)

    sha: Optional[str] = None
    cli_version: str = Field(..., alias="cliVersion")
    creation_time: datetime = Field(..., alias="creationTime")


class DatabaseConfig(BaseModel):
    """Contents of a codeql-database.yml file."""

    model_config = ConfigDict(populate_by_name=True)

    source_location_prefix: Optional[str] = Field(None, alias="sourceLocationPrefix")
    primary_language: str = Field(..., alias="primaryLanguage")
    baseline_lines_of_code: int = Field(0, alias="baselineLinesOfCode")
    unicode_newlines: bool = Field(False, alias="unicodeNewlines")
    column_kind: Optional[str] = Field(None, alias="columnKind")
    creation_metadata: Optional[CreationMetadata] = Field(None, alias="creationMetadata")
    build_mode: Optional[str] = Field(None, alias="buildMode")
    finalised: bool = False

    @classmethod
    def loads(cls, content: str, source: str = DATABASE_FILE) -> "DatabaseConfig":
        """
        Parse a codeql-database.yml document.

        Raises:
            FormatError: If the YAML is malformed or required keys are missing
        """
        try:
            data = yaml.safe_load(content) or {}
            return cls.model_validate(data)
        except (yaml.YAMLError, ValidationError) as e:
            raise FormatError(f"Invalid database configuration {source}: {e}") from e

    @classmethod
    def load(cls, path: Path) -> "DatabaseConfig":
        """
        Read a codeql-database.yml file.

        Raises:
            IoError: If the file cannot be read
            FormatError: If the file cannot be parsed
        """
        try:
            content = path.read_text()
        except OSError as e:
            raise IoError(f"Failed to read {path}: {e}") from e
        return cls.loads(content, str(path))


class CodeQLDatabase(BaseModel):
    """A CodeQL database for a single language.

    ``config`` stays None until ``reload()`` has read codeql-database.yml
    from disk.
    """

    name: str
    path: Path
    language: Language = Field(default_factory=Language.none)
    source: Optional[Path] = None
    repository: Optional[Repository] = None
    config: Optional[DatabaseConfig] = None

    @classmethod
    def build(
        cls,
        name: Optional[str] = None,
        path: Optional[Path] = None,
        language: Union[Language, str, None] = None,
        source: Optional[Path] = None,
        repository: Optional[Repository] = None,
        config: Optional[DatabaseConfig] = None,
        root: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> "CodeQLDatabase":
        """
        Build a database descriptor.

        The name is, in priority order: the explicit ``name``, the repository
        name, the last component of an explicit ``path``, the source
        directory's name, then ``"unknown"``.

        If ``path`` already holds a database, its configuration supplies the
        language and source unless they are given explicitly.

        Args:
            name: Database name
            path: Database directory (default derived from the databases root)
            language: Language or language token
            source: Source root to extract
            repository: Repository the database belongs to
            config: Already-loaded database configuration
            root: Databases root for the default path
            env: Environment mapping used when ``root`` is not given

        Returns:
            CodeQLDatabase

        Raises:
            DatabaseError: If an existing codeql-database.yml cannot be read
        """
        if isinstance(language, str):
            language = canonicalize(language)

        if config is None and path is not None:
            config_path = path if path.is_file() else path / DATABASE_FILE
            if config_path.is_file():
                logger.debug("database_config_found", path=str(config_path))
                try:
                    config = DatabaseConfig.load(config_path)
                except (FormatError, IoError) as e:
                    raise DatabaseError(
                        f"Failed to load database configuration: {e}"
                    ) from e
                if path.is_file():
                    path = path.parent

        if config is not None:
            if language is None:
                language = canonicalize(config.primary_language)
            if source is None and config.source_location_prefix:
                source = Path(config.source_location_prefix)

        if language is None:
            language = Language.none()

        if not name:
            if repository is not None:
                name = repository.name
            elif path is not None and path.name:
                name = path.name
            elif source is not None and source.name:
                name = source.name
            else:
                name = "unknown"

        if path is None:
            path = cls.default_path(name, language, repository, root, env)

        return cls(
            name=name,
            path=path,
            language=language,
            source=source,
            repository=repository,
            config=config,
        )

    @staticmethod
    def default_path(
        name: str,
        language: Language,
        repository: Optional[Repository] = None,
        root: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> Path:
        """
        Default location for a database under the databases root.

        ``<root>/<owner>/<repo>/<language>`` with a repository,
        ``<root>/<language>-<name>`` for primary languages and
        ``<root>/<name>`` for secondary languages.
        """
        root = root or default_databases_path(env)
        if repository is not None:
            return root / repository.owner / repository.name / language.id
        if not language.secondary:
            return root / f"{language.id}-{name}"
        return root / name

    @classmethod
    def load(cls, path: Path) -> "CodeQLDatabase":
        """
        Load an existing database.

        Args:
            path: codeql-database.yml, the database directory, or a directory
                  containing a database somewhere below it

        Returns:
            CodeQLDatabase with ``config`` populated

        Raises:
            DatabaseError: If no database configuration can be found or read
        """
        if not path.exists():
            raise DatabaseError(f"Could not find {DATABASE_FILE} in {path}")

        config_path: Optional[Path] = None
        if path.is_file():
            if path.name == DATABASE_FILE:
                config_path = path
        else:
            for dirpath, dirnames, filenames in os.walk(path):
                dirnames.sort()
                if DATABASE_FILE in filenames:
                    config_path = Path(dirpath) / DATABASE_FILE
                    break

        if config_path is None:
            raise DatabaseError(f"Could not find {DATABASE_FILE} in {path}")

        logger.debug("database_loading", path=str(config_path))
        try:
            config = DatabaseConfig.load(config_path)
        except (FormatError, IoError) as e:
            raise DatabaseError(f"Failed to load database configuration: {e}") from e

        return cls.build(path=config_path.parent, config=config)

    @property
    def configuration_path(self) -> Path:
        """Path of codeql-database.yml."""
        return self.path / DATABASE_FILE

    def validate_database(self) -> bool:
        """Whether codeql-database.yml exists on disk."""
        return self.configuration_path.exists()

    def reload(self) -> None:
        """
        Re-read the database configuration from disk.

        Raises:
            DatabaseError: If the database has not been created or its
                configuration cannot be read; ``config`` is left unchanged
        """
        logger.debug("database_reloading", path=str(self.path))
        if not self.validate_database():
            raise DatabaseError("Invalid CodeQL Database")
        try:
            config = DatabaseConfig.load(self.configuration_path)
        except (FormatError, IoError) as e:
            raise DatabaseError(f"Failed to load database configuration: {e}") from e
        self.config = config

    def set_repository(self, repository: Repository) -> None:
        """Attach a repository (and take its name)."""
        self.repository = repository
        self.name = repository.name

    def version(self) -> str:
        """CLI version that created the database, ``"0.0.0"`` if unknown."""
        if self.config and self.config.creation_metadata:
            return self.config.creation_metadata.cli_version
        return "0.0.0"

    def creation_time(self) -> Optional[datetime]:
        """Creation time, None if unknown."""
        if self.config and self.config.creation_metadata:
            return self.config.creation_metadata.creation_time
        return None

    def created_at(self) -> Optional[datetime]:
        """Alias of ``creation_time``."""
        return self.creation_time()

    def lines_of_code(self) -> int:
        """Baseline lines of code, 0 if unknown."""
        if self.config:
            return self.config.baseline_lines_of_code
        return 0

    def summary(self) -> dict[str, Any]:
        """Serializable summary used for listings."""
        return {
            "name": self.name,
            "language": self.language.id,
            "path": str(self.path),
            "repository": str(self.repository) if self.repository else None,
            "version": self.version(),
            "created_at": self.creation_time().isoformat() if self.creation_time() else None,
            "lines_of_code": self.lines_of_code(),
        }

    def __str__(self) -> str:
        """Short description."""
        version = self.version()
        if version == "0.0.0":
            return f"CodeQLDatabase('{self.name}', '{self.language}')"
        return f"CodeQLDatabase('{self.name}', '{self.language}', '{version}')"
