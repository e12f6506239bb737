"""Pydantic configuration models for the toolkit."""

from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from ghastoolkit.core.environment import default_databases_path, default_results_path


class CodeQLSettings(BaseModel):
    """Options for the CodeQL CLI."""

    path: Optional[Path] = Field(None, description="CodeQL executable (default: auto-detect)")
    threads: Optional[int] = Field(None, description="Value for --threads (0 = one per core)")
    ram: Optional[int] = Field(None, description="Value for --ram in MB", ge=1)
    search_paths: list[Path] = Field(default_factory=list, description="--search-path entries")
    additional_packs: list[str] = Field(
        default_factory=list, description="--additional-packs entries"
    )
    suite: Optional[str] = Field(None, description="Default query suite")
    show_output: bool = Field(default=True, description="Echo CodeQL output live")

    @field_validator("search_paths", mode="before")
    @classmethod
    def expand_paths(cls, v: Any) -> Any:
        """Expand ``~`` in search paths."""
        if isinstance(v, list):
            return [Path(p).expanduser() for p in v]
        return v


class GitHubSettings(BaseModel):
    """GitHub connection settings."""

    instance: str = Field(default="https://github.com", description="GitHub instance URL")
    token: Optional[str] = Field(None, description="Token for the REST API and pack registries")

    @field_validator("instance")
    @classmethod
    def strip_slash(cls, v: str) -> str:
        """Drop trailing slashes."""
        return v.rstrip("/")


class ToolkitConfig(BaseModel):
    """Root configuration."""

    codeql: CodeQLSettings = Field(default_factory=CodeQLSettings)
    github: GitHubSettings = Field(default_factory=GitHubSettings)
    databases: Optional[Path] = Field(None, description="Databases root")
    results: Optional[Path] = Field(None, description="Results root")

    def databases_path(self, env: Optional[Mapping[str, str]] = None) -> Path:
        """Configured databases root, else the environment default."""
        return self.databases or default_databases_path(env)

    def results_path(self, env: Optional[Mapping[str, str]] = None) -> Path:
        """Configured results root, else the environment default."""
        return self.results or default_results_path(env)

    def save(self, path: Path) -> None:
        """
        Save configuration to a YAML file (``None`` values are omitted).

        Args:
            path: Path to save configuration file
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        data = self.model_dump(mode="json", exclude_none=True)
        with open(path, "w") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

    @classmethod
    def load(cls, path: Path) -> "ToolkitConfig":
        """
        Load configuration from a YAML file.

        Args:
            path: Path to configuration file

        Returns:
            Loaded ToolkitConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)
