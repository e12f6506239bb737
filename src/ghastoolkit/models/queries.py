"""Query and pack specifiers (``scope/name[@range][:path]``)."""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ghastoolkit.core.errors import PackSpecifierError
from ghastoolkit.models.language import Language, canonicalize, is_known

# Suite names understood as shorthand for the standard CodeQL query suites
SUITE_SHORTHANDS = {
    "default": "code-scanning",
    "code-scanning": "code-scanning",
    "security-extended": "security-extended",
    "security-and-quality": "security-and-quality",
    "experimental": "experimental",
}

FILESYSTEM_PREFIXES = ("/", ".")


def _is_language_shorthand(token: str) -> bool:
    return is_known(token) and canonicalize(token).is_primary


class QuerySpecifier(BaseModel):
    """A reference to a query pack, suite or query path.

    Either a pack reference ``scope/name@range:path`` or a filesystem path
    starting with ``/`` or ``.``; the two forms are mutually exclusive.
    """

    model_config = ConfigDict(frozen=True)

    scope: Optional[str] = Field(None, description="Pack scope (e.g. 'codeql')")
    name: Optional[str] = Field(None, description="Pack name (e.g. 'python-queries')")
    range: Optional[str] = Field(None, description="Version or version range")
    path: Optional[str] = Field(None, description="Suite/query path or filesystem path")

    @model_validator(mode="after")
    def check_form(self) -> "QuerySpecifier":
        """Reject values that mix the two forms or would render ambiguously."""
        if self.name is None:
            if self.scope is not None or self.range is not None:
                raise ValueError("A pack scope or range requires a pack name")
            if self.path is None or not self.path.startswith(FILESYSTEM_PREFIXES):
                raise ValueError(
                    f"Path '{self.path}' without a pack must start with '/' or '.'"
                )
            return self

        if self.path is not None and self.path.startswith(FILESYSTEM_PREFIXES):
            raise ValueError(
                f"Filesystem path '{self.path}' cannot carry a scope, name or range"
            )
        if any(c in self.name for c in "@:"):
            raise ValueError(f"Pack name '{self.name}' cannot contain '@' or ':'")
        if self.range is not None and ":" in self.range:
            raise ValueError(f"Version range '{self.range}' cannot contain ':'")

        if self.scope is not None:
            if not self.scope or "/" in self.scope or self.scope.startswith("."):
                raise ValueError(f"Invalid pack scope '{self.scope}'")
        elif "/" in f"{self.name}{self.range or ''}{self.path or ''}":
            raise ValueError(f"Specifier without a scope cannot contain '/': {self}")
        elif self.name.startswith("."):
            raise ValueError(f"Pack name '{self.name}' needs a scope")
        elif self.range is None and self.path is None:
            if not self.name or _is_language_shorthand(self.name):
                raise ValueError(f"Bare name '{self.name}' is not a pack reference")
        return self

    @classmethod
    def parse(cls, value: str) -> "QuerySpecifier":
        """
        Parse a specifier string.

        Accepted forms:
            ``/abs/path`` or ``./rel/path``   filesystem path
            ``scope/name[@range][:path]``     pack reference
            ``python``                        default queries for a language

        Everything after the first ``:`` is the path, so suite paths may
        contain ``@``. A leading ``./`` on a pack path is dropped; pack paths
        that still start with ``/`` or ``.`` are rejected. Other malformed
        middle segments are kept verbatim.

        Args:
            value: Specifier string

        Returns:
            Parsed QuerySpecifier

        Raises:
            PackSpecifierError: If the string is empty or the pack path
                points outside the pack
        """
        if not value:
            raise PackSpecifierError("Empty query specifier")

        if value.startswith(FILESYSTEM_PREFIXES):
            return cls(path=value)

        scope: Optional[str] = None
        rest = value
        if "/" in value:
            scope, rest = value.split("/", 1)
        elif _is_language_shorthand(value):
            return cls.language_default(canonicalize(value))

        path: Optional[str] = None
        if ":" in rest:
            rest, path = rest.split(":", 1)
            while path.startswith("./"):
                path = path[2:]

        range_: Optional[str] = None
        name = rest
        if "@" in rest:
            name, range_ = rest.split("@", 1)

        try:
            return cls(scope=scope, name=name, range=range_, path=path)
        except ValidationError as e:
            raise PackSpecifierError(f"Invalid query specifier '{value}': {e}") from e

    @classmethod
    def language_default(cls, language: Union[Language, str]) -> "QuerySpecifier":
        """Default query pack for a language (``codeql/<language>-queries``)."""
        return cls(scope="codeql", name=f"{language}-queries")

    @classmethod
    def from_suite(cls, suite: str, language: Union[Language, str]) -> "QuerySpecifier":
        """
        Resolve a suite name for a language.

        Standard suite names (``default``, ``code-scanning``,
        ``security-extended``, ``security-and-quality``, ``experimental``)
        expand to ``codeql/<lang>-queries:codeql-suites/<lang>-<suite>.qls``.
        Anything else is parsed as a specifier.

        Args:
            suite: Suite shorthand or specifier string
            language: Language the suite applies to

        Returns:
            QuerySpecifier for the suite
        """
        if suite_name := SUITE_SHORTHANDS.get(suite):
            return cls(
                scope="codeql",
                name=f"{language}-queries",
                path=f"codeql-suites/{language}-{suite_name}.qls",
            )
        return cls.parse(suite)

    @property
    def is_filesystem_path(self) -> bool:
        """Whether this specifier refers directly to a file or directory."""
        return (
            self.scope is None
            and self.name is None
            and self.range is None
            and self.path is not None
            and self.path.startswith(("/", "."))
        )

    @property
    def pack_name(self) -> Optional[str]:
        """``scope/name`` without version or path, if this is a pack reference."""
        if self.scope is None or self.name is None:
            return None
        return f"{self.scope}/{self.name}"

    @property
    def suite(self) -> Optional[str]:
        """The suite or query path component."""
        return self.path

    def with_path(self, path: str) -> "QuerySpecifier":
        """Copy of this specifier with a different path component."""
        return self.model_validate({**self.model_dump(), "path": path})

    def __str__(self) -> str:
        """Render back to ``scope/name@range:path`` form."""
        if self.name is None:
            return self.path or ""
        rendered = self.name if self.scope is None else f"{self.scope}/{self.name}"
        if self.range is not None:
            rendered += f"@{self.range}"
        if self.path is not None:
            rendered += f":{self.path}"
        return rendered
