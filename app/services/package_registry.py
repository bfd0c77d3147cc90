"""
Package Registry Client - Resolve a package to its GitHub repository.

Looks up npm, PyPI and RubyGems metadata for the repository URL;
Go module paths are resolved directly from the import path.
"""

import logging
import re
from typing import Any, Dict, Optional, Tuple

import httpx

from app.core.config import get_settings

logger = logging.getLogger(__name__)


GITHUB_REPO_PATTERN = re.compile(r"github\.com[/:]([^/]+)/([^/#?]+)")


def parse_github_repository(url: Optional[str]) -> Optional[Tuple[str, str]]:
    """Extract (owner, repo) from any URL that points at github.com."""
    if not url:
        return None
    match = GITHUB_REPO_PATTERN.search(url)
    if not match:
        return None
    owner, repo = match.group(1), match.group(2)
    if repo.endswith(".git"):
        repo = repo[:-4]
    return owner, repo


class PackageRegistryClient:
    """Registry metadata lookups for npm, PyPI and RubyGems."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.npm_registry_url = settings.npm_registry_url.rstrip("/")
        self.pypi_url = settings.pypi_url.rstrip("/")
        self.rubygems_url = settings.rubygems_url.rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self._transport = transport

    async def _get_json(self, url: str) -> Optional[Dict[str, Any]]:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, follow_redirects=True, transport=self._transport
            ) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            logger.warning(f"Registry request failed for {url}: {e}")
            return None
        if response.status_code != 200:
            logger.info(f"Registry returned {response.status_code} for {url}")
            return None
        try:
            return response.json()
        except ValueError:
            return None

    async def _npm_candidates(self, package_name: str) -> list:
        data = await self._get_json(f"{self.npm_registry_url}/{package_name}")
        if not data:
            return []
        repository = data.get("repository")
        if isinstance(repository, dict):
            repository = repository.get("url")
        return [repository, data.get("homepage")]

    async def _pypi_candidates(self, package_name: str) -> list:
        data = await self._get_json(f"{self.pypi_url}/{package_name}/json")
        if not data:
            return []
        info = data.get("info") or {}
        urls = list((info.get("project_urls") or {}).values())
        return urls + [info.get("home_page")]

    async def _rubygems_candidates(self, package_name: str) -> list:
        data = await self._get_json(f"{self.rubygems_url}/api/v1/gems/{package_name}.json")
        if not data:
            return []
        return [data.get("source_code_uri"), data.get("homepage_uri")]

    async def find_repository(
        self,
        ecosystem: str,
        package_name: str,
        repository_url: Optional[str] = None,
    ) -> Optional[Tuple[str, str]]:
        """
        Find the GitHub (owner, repo) hosting a package.

        An explicit repository_url wins; otherwise the ecosystem's registry
        is consulted. Returns None when no GitHub URL can be found.
        """
        explicit = parse_github_repository(repository_url)
        if explicit:
            return explicit

        ecosystem = (ecosystem or "").lower()
        if ecosystem == "go":
            return parse_github_repository(package_name)

        lookups = {
            "javascript": self._npm_candidates,
            "python": self._pypi_candidates,
            "ruby": self._rubygems_candidates,
        }
        lookup = lookups.get(ecosystem)
        if lookup is None:
            return None

        for candidate in await lookup(package_name):
            found = parse_github_repository(candidate)
            if found:
                return found
        return None
