"""CodeQL pack models (qlpack.yml and codeql-pack.lock.yml)."""

from enum import Enum
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ghastoolkit.core.errors import PackError
from ghastoolkit.models.queries import QuerySpecifier

PACK_FILE = "qlpack.yml"
LOCK_FILE = "codeql-pack.lock.yml"


class PackType(str, Enum):
    """Kinds of CodeQL packs, in sort order."""

    LIBRARY = "library"
    QUERIES = "queries"
    MODELS = "models"
    TESTING = "testing"

    def __str__(self) -> str:
        """String representation."""
        return self.value.capitalize()

    @property
    def order(self) -> int:
        """Position used when sorting packs."""
        return list(PackType).index(self)


def _load_yaml(content: str, source: str) -> dict[str, Any]:
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise PackError(f"Invalid YAML in {source}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise PackError(f"Invalid YAML in {source}: expected a mapping")
    return data


class PackManifest(BaseModel):
    """Contents of a qlpack.yml file."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="Pack name (scope/name)")
    library: Optional[bool] = None
    version: Optional[str] = None
    groups: list[str] = Field(default_factory=list)
    dependencies: dict[str, str] = Field(default_factory=dict)
    suites: Optional[str] = None
    default_suite_file: Optional[str] = Field(None, alias="defaultSuiteFile")
    extractor: Optional[str] = None
    extension_targets: dict[str, str] = Field(default_factory=dict, alias="extensionTargets")
    data_extensions: list[str] = Field(default_factory=list, alias="dataExtensions")
    tests: Optional[str] = None

    @field_validator("version", mode="before")
    @classmethod
    def stringify_version(cls, v: Any) -> Any:
        """YAML may read versions like ``1.0`` as floats."""
        if v is None:
            return v
        return str(v)

    @field_validator("dependencies", "extension_targets", mode="before")
    @classmethod
    def stringify_ranges(cls, v: Any) -> Any:
        """Normalize dependency ranges to strings."""
        if v is None:
            return {}
        if isinstance(v, dict):
            return {str(k): str(val) for k, val in v.items()}
        return v

    @field_validator("groups", "data_extensions", mode="before")
    @classmethod
    def listify(cls, v: Any) -> Any:
        """Allow a single string or null where a list is expected."""
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v

    @classmethod
    def loads(cls, content: str, source: str = PACK_FILE) -> "PackManifest":
        """
        Parse a qlpack.yml document.

        Raises:
            PackError: If the YAML is malformed or required keys are missing
        """
        data = _load_yaml(content, source)
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise PackError(f"Invalid pack manifest {source}: {e}") from e

    def pack_type(self) -> PackType:
        """
        Classify the pack.

        Precedence: a library with data extensions is a models pack, any other
        library is a library pack, a pack with tests is a testing pack, and a
        non-library pack with data extensions is a models pack. Everything
        else is a queries pack.
        """
        if self.library:
            if self.data_extensions:
                return PackType.MODELS
            return PackType.LIBRARY
        if self.tests:
            return PackType.TESTING
        if self.data_extensions:
            return PackType.MODELS
        return PackType.QUERIES


class LockDependency(BaseModel):
    """A pinned dependency in a lock file."""

    version: str

    @field_validator("version", mode="before")
    @classmethod
    def stringify_version(cls, v: Any) -> Any:
        """Normalize version to a string."""
        return str(v)


class PackLock(BaseModel):
    """Contents of a codeql-pack.lock.yml file."""

    model_config = ConfigDict(populate_by_name=True)

    lock_version: str = Field(..., alias="lockVersion")
    dependencies: dict[str, LockDependency] = Field(default_factory=dict)
    compiled: bool = False

    @field_validator("lock_version", mode="before")
    @classmethod
    def stringify_lock_version(cls, v: Any) -> Any:
        """Normalize lock version to a string."""
        return str(v)

    @field_validator("dependencies", mode="before")
    @classmethod
    def default_dependencies(cls, v: Any) -> Any:
        """An empty ``dependencies:`` key reads as null."""
        return v or {}

    @classmethod
    def loads(cls, content: str, source: str = LOCK_FILE) -> "PackLock":
        """
        Parse a codeql-pack.lock.yml document.

        Raises:
            PackError: If the YAML is malformed or required keys are missing
        """
        data = _load_yaml(content, source)
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise PackError(f"Invalid pack lock file {source}: {e}") from e


class CodeQLPack(BaseModel):
    """A resolved CodeQL pack.

    A pack resolved only by name (not found on disk) has no ``path``
    and no manifest.
    """

    model_config = ConfigDict(frozen=True)

    specifier: QuerySpecifier
    path: Optional[Path] = Field(None, description="Pack directory (None if not on disk)")
    manifest: Optional[PackManifest] = None
    pack_type: Optional[PackType] = None
    lock: Optional[PackLock] = None

    @classmethod
    def reference(cls, specifier: QuerySpecifier) -> "CodeQLPack":
        """A pack known only by its specifier."""
        return cls(specifier=specifier)

    @property
    def is_local(self) -> bool:
        """Whether the pack was found on disk."""
        return self.manifest is not None

    @property
    def name(self) -> str:
        """Pack name without scope."""
        if self.manifest:
            return self.manifest.name.split("/", 1)[-1]
        return self.specifier.name or ""

    @property
    def namespace(self) -> Optional[str]:
        """Pack scope."""
        if self.manifest and "/" in self.manifest.name:
            return self.manifest.name.split("/", 1)[0]
        return self.specifier.scope

    @property
    def full_name(self) -> str:
        """``scope/name`` form."""
        if self.manifest:
            return self.manifest.name
        return self.specifier.pack_name or str(self.specifier)

    @property
    def version(self) -> Optional[str]:
        """Pack version from the manifest, else the requested range."""
        if self.manifest and self.manifest.version:
            return self.manifest.version
        return self.specifier.range

    @property
    def dependencies(self) -> dict[str, str]:
        """Dependencies, pinned by the lock file when present."""
        if self.lock is not None:
            return {name: dep.version for name, dep in self.lock.dependencies.items()}
        if self.manifest is not None:
            return dict(self.manifest.dependencies)
        return {}

    @property
    def default_suite(self) -> Optional[str]:
        """Default suite file declared by the pack."""
        return self.manifest.default_suite_file if self.manifest else None

    def __str__(self) -> str:
        """``scope/name@version`` form."""
        if self.version:
            return f"{self.full_name}@{self.version}"
        return self.full_name


class CodeQLPacks:
    """An ordered collection of packs."""

    def __init__(self, packs: Optional[list[CodeQLPack]] = None) -> None:
        self.packs = packs or []

    def __len__(self) -> int:
        return len(self.packs)

    def __iter__(self):  # type: ignore[no-untyped-def]
        return iter(self.packs)

    def __getitem__(self, index: int) -> CodeQLPack:
        return self.packs[index]

    def append(self, pack: CodeQLPack) -> None:
        """Add a pack."""
        self.packs.append(pack)

    def merge(self, other: "CodeQLPacks") -> None:
        """Append all packs from another collection."""
        self.packs.extend(other.packs)

    def sort(self) -> None:
        """Sort by pack type: library, queries, models, testing."""
        self.packs.sort(key=lambda p: (p.pack_type or PackType.QUERIES).order)

    def by_type(self, pack_type: PackType) -> list[CodeQLPack]:
        """Packs of a single type."""
        return [p for p in self.packs if p.pack_type == pack_type]
