"""Locate and load CodeQL packs from disk or the local package cache."""

import os
from pathlib import Path
from typing import Callable, Mapping, Optional, Union

from ghastoolkit.core.environment import codeql_packages_path
from ghastoolkit.core.errors import IoError, PackError, PackSpecifierError
from ghastoolkit.models.pack import (
    LOCK_FILE,
    PACK_FILE,
    CodeQLPack,
    CodeQLPacks,
    PackLock,
    PackManifest,
)
from ghastoolkit.models.queries import QuerySpecifier
from ghastoolkit.utils.logging import get_logger

logger = get_logger()


def load_pack(path: Path, specifier: Optional[QuerySpecifier] = None) -> CodeQLPack:
    """
    Load a pack from its directory or its qlpack.yml.

    Args:
        path: Pack directory, or any file inside it (its parent is used)
        specifier: Specifier to attach; defaults to the manifest's name

    Returns:
        Fully populated CodeQLPack

    Raises:
        PackError: If the path has no qlpack.yml or a file cannot be parsed
        IoError: If a file cannot be read
    """
    logger.debug("pack_loading", path=str(path))

    if not path.exists():
        raise PackError(f"Pack path does not exist: {path}")
    if path.is_file():
        path = path.parent

    manifest_path = path / PACK_FILE
    if not manifest_path.exists():
        raise PackError(f"No {PACK_FILE} found in {path}")

    try:
        manifest = PackManifest.loads(manifest_path.read_text(), str(manifest_path))
        lock_path = path / LOCK_FILE
        lock = None
        if lock_path.exists():
            lock = PackLock.loads(lock_path.read_text(), str(lock_path))
    except OSError as e:
        raise IoError(f"Failed to read pack files in {path}: {e}") from e

    if specifier is None:
        try:
            specifier = QuerySpecifier.parse(manifest.name)
        except PackSpecifierError as e:
            raise PackError(f"Invalid pack name in {manifest_path}: {e}") from e

    pack = CodeQLPack(
        specifier=specifier,
        path=path,
        manifest=manifest,
        pack_type=manifest.pack_type(),
        lock=lock,
    )
    logger.debug("pack_loaded", name=manifest.name, pack_type=str(pack.pack_type))
    return pack


def load_packs(root: Path) -> CodeQLPacks:
    """
    Find every pack under a directory.

    ``.codeql`` directories (the CLI's own build caches) are skipped.

    Args:
        root: Directory to walk

    Returns:
        CodeQLPacks in walk order
    """
    packs = CodeQLPacks()
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d != ".codeql")
        if PACK_FILE in filenames:
            packs.append(load_pack(Path(dirpath)))

    logger.info("packs_loaded", root=str(root), count=len(packs))
    return packs


class PackResolver:
    """Resolve pack references to CodeQLPack values.

    Sources are tried in order: the local filesystem, the CodeQL package
    cache, then a reference-only pack that carries just the specifier.
    """

    def __init__(
        self,
        packages_path: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        """
        Initialize resolver.

        Args:
            packages_path: Package cache root (default: ``~/.codeql/packages``)
            env: Environment mapping used to compute the default cache root
        """
        self.packages_path = packages_path or codeql_packages_path(env)

    def resolve(self, reference: Union[str, Path, QuerySpecifier]) -> CodeQLPack:
        """
        Resolve a pack reference.

        Args:
            reference: Path, specifier string or QuerySpecifier

        Returns:
            The first pack found; a reference-only pack if nothing is on disk

        Raises:
            PackSpecifierError: If the reference is an empty string
            PackError: If a local path exists but is not a valid pack
        """
        if isinstance(reference, Path):
            specifier = None
            local = reference
        elif isinstance(reference, QuerySpecifier):
            specifier = reference
            local = Path(reference.path) if reference.is_filesystem_path else None
        else:
            local = Path(reference) if reference and Path(reference).exists() else None
            specifier = None if local else QuerySpecifier.parse(reference)

        attempts: list[Callable[[], Optional[CodeQLPack]]] = [
            lambda: self._from_local(local),
            lambda: self._from_cache(specifier),
        ]
        for attempt in attempts:
            if (pack := attempt()) is not None:
                return pack

        if specifier is None:
            raise PackError(f"Pack path does not exist: {reference}")

        logger.debug("pack_reference_only", specifier=str(specifier))
        return CodeQLPack.reference(specifier)

    def _from_local(self, path: Optional[Path]) -> Optional[CodeQLPack]:
        if path is None or not path.exists():
            return None
        return load_pack(path.resolve())

    def _from_cache(self, specifier: Optional[QuerySpecifier]) -> Optional[CodeQLPack]:
        if specifier is None or specifier.scope is None or specifier.name is None:
            return None

        pack_root = self.packages_path / specifier.scope / specifier.name
        if specifier.range:
            candidate = pack_root / specifier.range
            if (candidate / PACK_FILE).exists():
                logger.debug("pack_cache_hit", path=str(candidate))
                return load_pack(candidate, specifier)
            return None

        # Path order, not semantic version order
        matches = sorted(pack_root.glob(f"*/{PACK_FILE}"))
        if not matches:
            logger.debug("pack_cache_miss", path=str(pack_root))
            return None

        newest = matches[-1].parent
        logger.debug("pack_cache_hit", path=str(newest), candidates=len(matches))
        return load_pack(newest, specifier)
