"""GitHub repository references (``owner/repo[/path][@branch]``)."""

import re
from typing import Optional

from pydantic import BaseModel, Field

from ghastoolkit.core.errors import RepositoryReferenceError

REPOSITORY_PATTERN = re.compile(
    r"^[a-zA-Z0-9\-_.]+/[a-zA-Z0-9\-_.]+([:/][a-zA-Z0-9\-_/.]+)?(@[a-zA-Z0-9\-_/]+)?$"
)


class Repository(BaseModel):
    """A GitHub repository, optionally pinned to a branch and sub-path."""

    owner: str = Field(..., description="Repository owner (user or organization)")
    name: str = Field(..., description="Repository name")
    branch: Optional[str] = Field(None, description="Branch name")
    reference: Optional[str] = Field(None, description="Git reference (refs/heads/<branch>)")
    path: Optional[str] = Field(None, description="Path inside the repository")

    @classmethod
    def parse(cls, value: str) -> "Repository":
        """
        Parse a repository reference.

        Examples:
            ``octocat/hello-world``
            ``octocat/hello-world@main``
            ``octocat/hello-world/src/lib@feature/x``
            ``octocat/hello-world:src/lib``

        Args:
            value: Repository reference string

        Returns:
            Parsed Repository

        Raises:
            RepositoryReferenceError: If the reference is malformed
        """
        if not REPOSITORY_PATTERN.match(value):
            raise RepositoryReferenceError(f"Invalid repository reference: '{value}'")

        branch = None
        reference = None
        if "@" in value:
            value, branch = value.split("@", 1)
            reference = f"refs/heads/{branch}"

        owner, rest = value.split("/", 1)
        path = None
        match = re.match(r"^([^/:]+)[/:](.+)$", rest)
        if match:
            name, path = match.group(1), match.group(2)
        else:
            name = rest

        return cls(owner=owner, name=name, branch=branch, reference=reference, path=path)

    @property
    def full_name(self) -> str:
        """``owner/name``."""
        return f"{self.owner}/{self.name}"

    def __str__(self) -> str:
        """``owner/name[@branch]``."""
        if self.branch:
            return f"{self.full_name}@{self.branch}"
        return self.full_name
