"""Default locations derived from the process environment.

Every function takes an optional ``env`` mapping so callers (and tests) can
supply their own environment instead of reading ``os.environ``.
"""

import os
import shutil
from pathlib import Path
from typing import Mapping, Optional

from ghastoolkit.utils.logging import get_logger

logger = get_logger()

FALLBACK_ROOT = Path("/tmp/codeql")


def _env(env: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    return os.environ if env is None else env


def codeql_home(env: Optional[Mapping[str, str]] = None) -> Optional[Path]:
    """
    Get the CodeQL user directory (``~/.codeql``).

    Args:
        env: Environment mapping (defaults to ``os.environ``)

    Returns:
        ``$HOME/.codeql``, or None when HOME is not set
    """
    if home := _env(env).get("HOME"):
        return Path(home) / ".codeql"
    return None


def default_databases_path(env: Optional[Mapping[str, str]] = None) -> Path:
    """Root directory for CodeQL databases (``CODEQL_DATABASES`` or ``~/.codeql/databases``)."""
    if path := _env(env).get("CODEQL_DATABASES"):
        return Path(path)
    home = codeql_home(env)
    return home / "databases" if home else FALLBACK_ROOT


def default_results_path(env: Optional[Mapping[str, str]] = None) -> Path:
    """Root directory for analysis results (``CODEQL_RESULTS`` or ``~/.codeql/results``)."""
    if path := _env(env).get("CODEQL_RESULTS"):
        return Path(path)
    home = codeql_home(env)
    return home / "results" if home else FALLBACK_ROOT


def codeql_packages_path(env: Optional[Mapping[str, str]] = None) -> Path:
    """Local package cache used by ``codeql pack download`` (``./.codeql/packages`` without HOME)."""
    home = codeql_home(env) or Path(".codeql")
    return home / "packages"


def find_codeql(env: Optional[Mapping[str, str]] = None) -> Optional[Path]:
    """
    Locate the CodeQL executable.

    Search order:
    1. ``$CODEQL_PATH/codeql``
    2. ``$CODEQL_BINARY``
    3. ``codeql`` on ``PATH``

    Args:
        env: Environment mapping (defaults to ``os.environ``)

    Returns:
        Path to the executable, or None if it cannot be found
    """
    environ = _env(env)

    if codeql_path := environ.get("CODEQL_PATH"):
        candidate = Path(codeql_path) / "codeql"
        if candidate.is_file():
            logger.debug("codeql_found", source="CODEQL_PATH", path=str(candidate))
            return candidate

    if codeql_binary := environ.get("CODEQL_BINARY"):
        candidate = Path(codeql_binary)
        if candidate.is_file():
            logger.debug("codeql_found", source="CODEQL_BINARY", path=str(candidate))
            return candidate

    if found := shutil.which("codeql", path=environ.get("PATH")):
        logger.debug("codeql_found", source="PATH", path=found)
        return Path(found)

    logger.debug("codeql_not_found")
    return None
