"""GitHub REST client for CodeQL databases built by code scanning.

API docs: https://docs.github.com/en/rest/code-scanning/code-scanning
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import httpx
from pydantic import BaseModel, Field

from ghastoolkit.core.errors import GitHubError, IoError
from ghastoolkit.models.repository import Repository
from ghastoolkit.utils.logging import get_logger

logger = get_logger()

GITHUB_COM = "https://github.com"
GITHUB_API = "https://api.github.com"
API_VERSION = "2022-11-28"


class CodeQLDatabaseListing(BaseModel):
    """A CodeQL database available for download."""

    id: int
    name: str
    language: str
    content_type: Optional[str] = None
    size: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    url: Optional[str] = None
    commit_oid: Optional[str] = Field(None, description="Commit the database was built from")


class GitHubClient:
    """Async client for the code scanning CodeQL database endpoints."""

    def __init__(
        self,
        token: Optional[str] = None,
        instance: str = GITHUB_COM,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            token: Personal access or app token
            instance: GitHub instance URL (``https://github.com`` or a GHES host)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.token = token
        self.instance = instance.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def api_base(self) -> str:
        """REST API root for the instance."""
        if self.is_enterprise_server:
            return f"{self.instance}/api/v3"
        return GITHUB_API

    @property
    def is_enterprise_server(self) -> bool:
        """Whether the instance is GitHub Enterprise Server."""
        return self.instance not in (GITHUB_COM, GITHUB_API)

    def _headers(self, accept: str = "application/vnd.github+json") -> dict[str, str]:
        headers = {"Accept": accept, "X-GitHub-Api-Version": API_VERSION}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.api_base,
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    @staticmethod
    def _databases_route(repository: Repository) -> str:
        return f"/repos/{repository.owner}/{repository.name}/code-scanning/codeql/databases"

    async def list_codeql_databases(
        self, repository: Repository
    ) -> list[CodeQLDatabaseListing]:
        """
        List the CodeQL databases available for a repository.

        Raises:
            GitHubError: If the request fails
        """
        route = self._databases_route(repository)
        logger.debug("github_request", method="GET", route=route)

        try:
            response = await self._get_client().get(route, headers=self._headers())
        except httpx.HTTPError as e:
            raise GitHubError(f"Request to {route} failed: {e}") from e

        if response.status_code != 200:
            raise GitHubError(
                f"Failed to list CodeQL databases for {repository.full_name}: "
                f"HTTP {response.status_code}",
                status_code=response.status_code,
            )

        listings = [CodeQLDatabaseListing.model_validate(item) for item in response.json()]
        logger.info(
            "github_codeql_databases_listed",
            repository=repository.full_name,
            count=len(listings),
        )
        return listings

    async def download_codeql_database(
        self, repository: Repository, language: str, destination: Path
    ) -> Path:
        """
        Stream a CodeQL database zip archive to disk.

        Args:
            repository: Repository the database belongs to
            language: Database language
            destination: File to write the zip archive to

        Returns:
            ``destination``

        Raises:
            GitHubError: If the request fails; a partial archive is removed
            IoError: If the archive cannot be written
        """
        route = f"{self._databases_route(repository)}/{language}"
        logger.debug("github_request", method="GET", route=route)

        destination.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with self._get_client().stream(
                "GET", route, headers=self._headers("application/zip")
            ) as response:
                if response.status_code != 200:
                    raise GitHubError(
                        f"Failed to download {language} database for "
                        f"{repository.full_name}: HTTP {response.status_code}",
                        status_code=response.status_code,
                    )
                with open(destination, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        f.write(chunk)
        except httpx.HTTPError as e:
            destination.unlink(missing_ok=True)
            logger.error("github_download_failed", route=route, error=str(e))
            raise GitHubError(f"Request to {route} failed: {e}") from e
        except OSError as e:
            destination.unlink(missing_ok=True)
            raise IoError(f"Failed to write {destination}: {e}") from e

        logger.info(
            "github_codeql_database_downloaded",
            repository=repository.full_name,
            language=language,
            path=str(destination),
        )
        return destination
