"""Configuration hierarchy and loading with environment variable support."""

import os
from pathlib import Path
from typing import Mapping, Optional

import yaml

from ghastoolkit.core.errors import ConfigError
from ghastoolkit.models.config import ToolkitConfig
from ghastoolkit.utils.logging import get_logger

logger = get_logger()


def get_user_config_path(env: Optional[Mapping[str, str]] = None) -> Path:
    """Get the path to the user-level config file (``~/.ghastoolkit/config.yaml``)."""
    environ = os.environ if env is None else env
    home = Path(environ["HOME"]) if environ.get("HOME") else Path.home()
    return home / ".ghastoolkit" / "config.yaml"


def load_config(
    config_path: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> ToolkitConfig:
    """
    Load configuration with hierarchy: env vars > config file > defaults.

    The config file is ``config_path`` when given, otherwise the user-level
    ``~/.ghastoolkit/config.yaml`` if it exists.

    Args:
        config_path: Optional explicit path to a config file
        env: Environment mapping (defaults to ``os.environ``)

    Returns:
        Loaded ToolkitConfig instance

    Raises:
        ConfigError: If an explicit file is missing or any file is invalid
    """
    environ = os.environ if env is None else env

    if config_path is not None and not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    if config_path is None:
        user_path = get_user_config_path(environ)
        if user_path.exists():
            config_path = user_path

    if config_path is None:
        logger.debug("config_defaults_used")
        config = ToolkitConfig()
    else:
        try:
            config = ToolkitConfig.load(config_path)
        except (OSError, TypeError, ValueError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load configuration from {config_path}: {e}") from e
        logger.debug("config_loaded", path=str(config_path))

    return _apply_env_overrides(config, environ)


def _apply_env_overrides(config: ToolkitConfig, env: Mapping[str, str]) -> ToolkitConfig:
    """
    Apply environment variable overrides to configuration.

    Environment variables supported:
    - CODEQL_DATABASES: Databases root
    - CODEQL_RESULTS: Results root
    - GITHUB_TOKEN: GitHub token
    - GITHUB_INSTANCE: GitHub instance URL
    - GHASTOOLKIT_THREADS: CodeQL --threads
    - GHASTOOLKIT_RAM: CodeQL --ram
    - GHASTOOLKIT_SUITE: Default query suite

    Args:
        config: Base configuration to override
        env: Environment mapping

    Returns:
        Configuration with environment variable overrides applied
    """
    if databases := env.get("CODEQL_DATABASES"):
        config.databases = Path(databases)

    if results := env.get("CODEQL_RESULTS"):
        config.results = Path(results)

    if token := env.get("GITHUB_TOKEN"):
        config.github.token = token

    if instance := env.get("GITHUB_INSTANCE"):
        config.github.instance = instance.rstrip("/")

    if threads := env.get("GHASTOOLKIT_THREADS"):
        try:
            config.codeql.threads = int(threads)
        except ValueError:
            logger.warning("config_invalid_env", name="GHASTOOLKIT_THREADS", value=threads)

    if ram := env.get("GHASTOOLKIT_RAM"):
        try:
            config.codeql.ram = int(ram)
        except ValueError:
            logger.warning("config_invalid_env", name="GHASTOOLKIT_RAM", value=ram)

    if suite := env.get("GHASTOOLKIT_SUITE"):
        config.codeql.suite = suite

    return config
