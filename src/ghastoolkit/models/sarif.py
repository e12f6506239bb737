"""Analysis result models parsed from SARIF and CSV output."""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class Severity(str, Enum):
    """Result severity levels."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    def __str__(self) -> str:
        """String representation."""
        return self.value

    @property
    def rank(self) -> int:
        """0 for critical up to 4 for info."""
        return list(Severity).index(self)

    @classmethod
    def from_level(cls, level: str) -> "Severity":
        """
        Map a SARIF level or CodeQL severity string.

        Unknown values map to medium.
        """
        level = level.lower()
        if level == "critical":
            return cls.CRITICAL
        if level in ("error", "high"):
            return cls.HIGH
        if level in ("warning", "medium", "moderate"):
            return cls.MEDIUM
        if level in ("note", "low", "recommendation"):
            return cls.LOW
        if level in ("none", "info", "information"):
            return cls.INFO
        return cls.MEDIUM

    @classmethod
    def from_security_severity(cls, score: float) -> "Severity":
        """Map a CVSS-style ``security-severity`` score."""
        if score >= 9.0:
            return cls.CRITICAL
        if score >= 7.0:
            return cls.HIGH
        if score >= 4.0:
            return cls.MEDIUM
        return cls.LOW


class CWE(BaseModel):
    """Common Weakness Enumeration identifier."""

    id: str = Field(..., description="CWE ID (e.g. 'CWE-89')")

    @field_validator("id")
    @classmethod
    def normalize_id(cls, v: str) -> str:
        """Upper-case with a ``CWE-`` prefix and no leading zeros."""
        v = v.upper()
        if v.startswith("CWE-"):
            v = v[4:]
        return f"CWE-{v.lstrip('0') or '0'}"


class SarifResult(BaseModel):
    """A single analysis result."""

    id: str = Field(..., description="Stable identifier: rule, file and line")
    rule_id: str
    severity: Severity = Severity.MEDIUM
    cwes: list[CWE] = Field(default_factory=list)
    file_path: Path
    start_line: int = Field(1, ge=1)
    end_line: int = Field(1, ge=1)
    message: str
    snippet: Optional[str] = None
    tool: Optional[str] = None

    @property
    def location(self) -> str:
        """``path:line`` form."""
        return f"{self.file_path}:{self.start_line}"
