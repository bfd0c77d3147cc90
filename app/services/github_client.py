"""
GitHub Client - Thin async wrapper over the GitHub REST API and raw file host.

Handles:
- Pull request metadata, commits and changed files
- Repository metadata (default branch)
- Fetching raw files such as CHANGELOG.md from a branch
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from app.core.config import get_settings, resolve_github_token
from app.api.middleware.error_handler import GitHubAPIError, GitHubNotFoundError

logger = logging.getLogger(__name__)


class GitHubClient:
    """
    Async GitHub REST client.

    A fresh httpx.AsyncClient is opened per request; pass `transport`
    to route requests through a custom httpx transport.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        api_url: Optional[str] = None,
        raw_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.token = resolve_github_token(token)
        self.api_url = (api_url or settings.github_api_url).rstrip("/")
        self.raw_url = (raw_url or settings.github_raw_url).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self._transport = transport

    def _headers(self, accept: str = "application/vnd.github+json") -> Dict[str, str]:
        headers = {
            "Accept": accept,
            "User-Agent": "evergreen-dependency-review",
        }
        if self.token:
            headers["Authorization"] = f"token {self.token}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            transport=self._transport,
        )

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.api_url}{path}"
        try:
            async with self._client() as client:
                response = await client.get(url, headers=self._headers(), params=params)
        except httpx.HTTPError as e:
            raise GitHubAPIError(f"GitHub request failed for {path}: {e}") from e

        if response.status_code == 404:
            raise GitHubNotFoundError(path)
        if response.status_code >= 400:
            message = response.text[:200]
            try:
                message = response.json().get("message", message)
            except ValueError:
                pass
            raise GitHubAPIError(
                f"GitHub API error {response.status_code}: {message}",
                status=response.status_code,
            )
        return response.json()

    async def get_pull_request(self, owner: str, repo: str, number: int) -> Dict[str, Any]:
        """Fetch a pull request."""
        return await self._get_json(f"/repos/{owner}/{repo}/pulls/{number}")

    async def list_pull_request_commits(
        self, owner: str, repo: str, number: int
    ) -> List[Dict[str, Any]]:
        """Fetch the commits of a pull request (first page, up to 100)."""
        return await self._get_json(
            f"/repos/{owner}/{repo}/pulls/{number}/commits", params={"per_page": 100}
        )

    async def list_pull_request_files(
        self, owner: str, repo: str, number: int
    ) -> List[Dict[str, Any]]:
        """Fetch the changed files of a pull request (first page, up to 100)."""
        return await self._get_json(
            f"/repos/{owner}/{repo}/pulls/{number}/files", params={"per_page": 100}
        )

    async def get_repository(self, owner: str, repo: str) -> Dict[str, Any]:
        """Fetch repository metadata."""
        return await self._get_json(f"/repos/{owner}/{repo}")

    async def get_default_branch(self, owner: str, repo: str) -> str:
        """Return the repository's default branch, or 'main' if it cannot be read."""
        try:
            data = await self.get_repository(owner, repo)
            return data.get("default_branch") or "main"
        except GitHubAPIError as e:
            logger.warning(f"Could not read default branch for {owner}/{repo}: {e.message}")
            return "main"

    async def get_raw_file(
        self, owner: str, repo: str, branch: str, path: str
    ) -> Optional[str]:
        """Fetch a file from raw.githubusercontent.com; None when it does not exist."""
        url = f"{self.raw_url}/{owner}/{repo}/{branch}/{path}"
        try:
            async with self._client() as client:
                response = await client.get(url, headers=self._headers(accept="text/plain"))
        except httpx.HTTPError as e:
            raise GitHubAPIError(f"Failed to fetch {url}: {e}") from e

        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise GitHubAPIError(
                f"Failed to fetch {url}: HTTP {response.status_code}",
                status=response.status_code,
            )
        return response.text
