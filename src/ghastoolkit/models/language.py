"""CodeQL language registry.

Maps language tokens (including aliases such as ``kotlin`` or ``typescript``)
to the canonical language ids the CodeQL CLI expects.
"""

from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from ghastoolkit.models.extractor import CodeQLExtractor
from ghastoolkit.utils.logging import get_logger

logger = get_logger()


class Language(BaseModel):
    """A CodeQL language."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Canonical CodeQL language id (e.g. 'java')")
    display_name: str = Field(..., description="Human readable name")
    aliases: tuple[str, ...] = Field(default=(), description="Alternative tokens")
    secondary: bool = Field(default=False, description="Non-code language (yaml, html, ...)")
    custom: bool = Field(default=False, description="Not present in the registry")

    def __str__(self) -> str:
        """String representation (the id passed to the CodeQL CLI)."""
        return self.id

    @classmethod
    def none(cls) -> "Language":
        """The empty language used when no language is known."""
        return cls(id="", display_name="None")

    @property
    def is_none(self) -> bool:
        """Whether this is the empty language."""
        return self.id == ""

    @property
    def is_primary(self) -> bool:
        """Whether this language can be used to create and scan a database."""
        return not self.is_none and not self.secondary


LANGUAGES: tuple[Language, ...] = (
    Language(id="actions", display_name="GitHub Actions"),
    Language(id="cpp", display_name="C/C++", aliases=("c", "c++", "c-cpp")),
    Language(id="csharp", display_name="C#", aliases=("c#",)),
    Language(id="go", display_name="Go", aliases=("golang",)),
    Language(id="java", display_name="Java/Kotlin", aliases=("kotlin", "java-kotlin")),
    Language(
        id="javascript",
        display_name="Javascript/Typescript",
        aliases=("typescript", "javascript-typescript"),
    ),
    Language(id="python", display_name="Python"),
    Language(id="ruby", display_name="Ruby"),
    Language(id="rust", display_name="Rust"),
    Language(id="swift", display_name="Swift"),
    Language(id="properties", display_name="Properties", secondary=True),
    Language(id="csv", display_name="CSV", secondary=True),
    Language(id="yaml", display_name="YAML", secondary=True),
    Language(id="xml", display_name="XML", secondary=True),
    Language(id="html", display_name="HTML", secondary=True),
)

_LOOKUP: dict[str, Language] = {}
for _language in LANGUAGES:
    _LOOKUP[_language.id] = _language
    for _alias in _language.aliases:
        _LOOKUP[_alias] = _language


def canonicalize(token: str) -> Language:
    """
    Map a language token to its canonical Language.

    Lookup is case-insensitive and resolves aliases. Unknown tokens are
    returned as a custom language carrying the token verbatim, so new
    languages added to CodeQL keep working.

    Args:
        token: Language token (e.g. "Kotlin", "typescript", "go")

    Returns:
        Canonical Language (never fails)
    """
    if not token:
        return Language.none()

    if language := _LOOKUP.get(token.strip().lower()):
        return language

    logger.debug("language_unknown", token=token)
    return Language(id=token, display_name=token, custom=True)


def is_known(token: str) -> bool:
    """Check whether a token (or alias) is in the registry."""
    return bool(token) and token.strip().lower() in _LOOKUP


def primary_languages() -> list[Language]:
    """All primary languages in the registry."""
    return [language for language in LANGUAGES if not language.secondary]


class CodeQLLanguages:
    """Languages supported by an installed CodeQL CLI."""

    def __init__(
        self,
        languages: Optional[list[Language]] = None,
        extractors: Optional[dict[str, CodeQLExtractor]] = None,
    ) -> None:
        self.languages = languages or []
        self.extractors = extractors or {}

    @classmethod
    def from_resolve_output(cls, data: dict[str, Any]) -> "CodeQLLanguages":
        """
        Build from ``codeql resolve languages --format json`` output.

        The output maps each language to a list of extractor directories.
        Extractor metadata is loaded when the directory holds a
        codeql-extractor.yml; otherwise the language is kept without it.

        Args:
            data: Parsed JSON output

        Returns:
            CodeQLLanguages sorted by language id
        """
        languages: list[Language] = []
        extractors: dict[str, CodeQLExtractor] = {}

        for name in sorted(data):
            language = canonicalize(name)
            languages.append(language)

            paths = data[name] or []
            if not paths:
                continue

            extractor_path = Path(paths[0])
            if (extractor_path / "codeql-extractor.yml").exists():
                extractors[language.id] = CodeQLExtractor.load(extractor_path)

        return cls(languages, extractors)

    def __len__(self) -> int:
        return len(self.languages)

    def __iter__(self):  # type: ignore[no-untyped-def]
        return iter(self.languages)

    def check(self, language: str) -> bool:
        """Check if a language (or alias) is supported."""
        canonical = canonicalize(language)
        if any(lang.id == canonical.id for lang in self.languages):
            return True
        return any(language in ex.languages() for ex in self.extractors.values())

    def get_all(self) -> list[Language]:
        """All languages."""
        return list(self.languages)

    def get_languages(self) -> list[Language]:
        """Primary languages only."""
        return [lang for lang in self.languages if not lang.secondary]

    def get_secondary(self) -> list[Language]:
        """Secondary languages only."""
        return [lang for lang in self.languages if lang.secondary]

    def extractor(self, language: Language) -> Optional[CodeQLExtractor]:
        """Extractor metadata for a language, if loaded."""
        return self.extractors.get(language.id)
