"""CodeQL extractor metadata (codeql-extractor.yml)."""

from enum import Enum
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from ghastoolkit.core.errors import FormatError, IoError
from ghastoolkit.utils.logging import get_logger

logger = get_logger()

EXTRACTOR_FILE = "codeql-extractor.yml"


class BuildMode(str, Enum):
    """Database build modes supported by an extractor."""

    NONE = "none"
    AUTOBUILD = "autobuild"
    MANUAL = "manual"

    def __str__(self) -> str:
        """String representation."""
        return self.value

    @classmethod
    def from_string(cls, value: str) -> "BuildMode":
        """
        Map an extractor build mode string to a BuildMode.

        ``buildless`` is an alias of ``none`` and ``auto`` of ``autobuild``.
        Unknown values map to ``none``.
        """
        value = value.lower()
        if value in ("none", "buildless"):
            return cls.NONE
        if value in ("auto", "autobuild"):
            return cls.AUTOBUILD
        if value == "manual":
            return cls.MANUAL
        return cls.NONE


class ExtractorFileType(BaseModel):
    """A file type handled by an extractor."""

    name: str
    display_name: str
    extensions: list[str] = Field(default_factory=list)


class CodeQLExtractor(BaseModel):
    """Extractor pack metadata as reported by codeql-extractor.yml."""

    path: Optional[Path] = Field(None, description="Root directory of the extractor pack")
    name: str = Field(..., description="Extractor name (e.g. 'javascript')")
    display_name: str = Field(..., description="Human readable name")
    version: str = Field(..., description="Extractor version")
    build_modes: list[str] = Field(default_factory=list)
    column_kind: Optional[str] = None
    legacy_qltest_extraction: Optional[bool] = None
    github_api_languages: list[str] = Field(default_factory=list)
    scc_languages: list[str] = Field(default_factory=list)
    file_types: list[ExtractorFileType] = Field(default_factory=list)

    @classmethod
    def loads(cls, content: str) -> "CodeQLExtractor":
        """
        Parse extractor metadata from a YAML string.

        Raises:
            FormatError: If the YAML is malformed or missing required keys
        """
        try:
            data = yaml.safe_load(content) or {}
            return cls.model_validate(data)
        except (yaml.YAMLError, ValidationError) as e:
            raise FormatError(f"Invalid codeql-extractor.yml: {e}") from e

    @classmethod
    def load(cls, path: Path) -> "CodeQLExtractor":
        """
        Load extractor metadata from a file or extractor directory.

        Args:
            path: Extractor directory or path to codeql-extractor.yml

        Returns:
            CodeQLExtractor with ``path`` set to the extractor directory

        Raises:
            IoError: If the file does not exist or cannot be read
            FormatError: If the file cannot be parsed
        """
        if path.is_dir():
            path = path / EXTRACTOR_FILE

        logger.debug("extractor_loading", path=str(path))

        if not path.exists():
            raise IoError(f"Extractor file not found: {path}")

        try:
            content = path.read_text()
        except OSError as e:
            raise IoError(f"Failed to read extractor file {path}: {e}") from e

        extractor = cls.loads(content)
        extractor.path = path.parent
        return extractor

    def languages(self) -> list[str]:
        """Languages this extractor reports to the GitHub API."""
        return list(self.github_api_languages)

    def get_build_modes(self) -> list[BuildMode]:
        """Build modes as enum values."""
        return [BuildMode.from_string(mode) for mode in self.build_modes]
