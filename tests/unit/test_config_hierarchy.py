"""Tests for configuration hierarchy and loading."""

from pathlib import Path

import pytest

from ghastoolkit.core.config import get_user_config_path, load_config
from ghastoolkit.core.errors import ConfigError
from ghastoolkit.models.config import CodeQLSettings, ToolkitConfig


class TestLoadConfig:
    """Tests for load_config function."""

    def test_defaults_without_file(self, tmp_path: Path) -> None:
        """Test defaults when no config file exists."""
        config = load_config(env={"HOME": str(tmp_path)})

        assert config.codeql.threads is None
        assert config.github.instance == "https://github.com"
        assert config.databases is None

    def test_user_config_file(self, tmp_path: Path) -> None:
        """Test ~/.ghastoolkit/config.yaml is picked up."""
        env = {"HOME": str(tmp_path)}
        ToolkitConfig(codeql=CodeQLSettings(threads=2)).save(get_user_config_path(env))

        config = load_config(env=env)

        assert config.codeql.threads == 2

    def test_explicit_path(self, tmp_path: Path) -> None:
        """Test an explicit config path."""
        path = tmp_path / "custom.yaml"
        ToolkitConfig(codeql=CodeQLSettings(suite="security-extended")).save(path)

        config = load_config(config_path=path, env={})

        assert config.codeql.suite == "security-extended"

    def test_explicit_path_missing(self, tmp_path: Path) -> None:
        """Test a missing explicit path raises."""
        with pytest.raises(ConfigError, match="not found"):
            load_config(config_path=tmp_path / "missing.yaml", env={})

    def test_invalid_file(self, tmp_path: Path) -> None:
        """Test invalid content raises ConfigError."""
        path = tmp_path / "config.yaml"
        path.write_text("codeql:\n  ram: -5\n")

        with pytest.raises(ConfigError, match="Failed to load"):
            load_config(config_path=path, env={})

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Test malformed YAML raises ConfigError."""
        path = tmp_path / "config.yaml"
        path.write_text("codeql: [unclosed\n")

        with pytest.raises(ConfigError):
            load_config(config_path=path, env={})


class TestEnvironmentOverrides:
    """Tests for environment variable overrides."""

    def test_env_overrides_file(self, tmp_path: Path) -> None:
        """Test environment variables win over the config file."""
        path = tmp_path / "config.yaml"
        ToolkitConfig(codeql=CodeQLSettings(threads=2, suite="default")).save(path)

        config = load_config(
            config_path=path,
            env={
                "GHASTOOLKIT_THREADS": "8",
                "GHASTOOLKIT_RAM": "4096",
                "GHASTOOLKIT_SUITE": "security-and-quality",
                "GITHUB_TOKEN": "ghp_env",
                "GITHUB_INSTANCE": "https://ghes.example.com/",
                "CODEQL_DATABASES": "/data/dbs",
                "CODEQL_RESULTS": "/data/results",
            },
        )

        assert config.codeql.threads == 8
        assert config.codeql.ram == 4096
        assert config.codeql.suite == "security-and-quality"
        assert config.github.token == "ghp_env"
        assert config.github.instance == "https://ghes.example.com"
        assert config.databases == Path("/data/dbs")
        assert config.results == Path("/data/results")

    def test_invalid_number_ignored(self, tmp_path: Path) -> None:
        """Test non-numeric threads are ignored."""
        config = load_config(
            env={"HOME": str(tmp_path), "GHASTOOLKIT_THREADS": "many"}
        )

        assert config.codeql.threads is None

    def test_user_config_path(self) -> None:
        """Test user config location."""
        assert get_user_config_path({"HOME": "/home/user"}) == Path(
            "/home/user/.ghastoolkit/config.yaml"
        )
