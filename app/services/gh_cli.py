"""
GitHub CLI Client - Release and tag lookups through the `gh` command.

Uses the user's authenticated `gh` session, so private repositories work
without a token in the environment.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import List, Optional

from app.services.command_runner import CommandError, run_command

logger = logging.getLogger(__name__)


RELEASE_LIST_FIELDS = "tagName,name,publishedAt,isDraft,isPrerelease"
RELEASE_VIEW_FIELDS = "tagName,name,body,publishedAt,url,isDraft,isPrerelease"


@dataclass
class Release:
    """A GitHub release as reported by `gh release view`."""
    tag_name: str
    name: str = ""
    body: str = ""
    published_at: str = ""
    url: str = ""
    is_draft: bool = False
    is_prerelease: bool = False

    @classmethod
    def from_gh(cls, data: dict) -> "Release":
        return cls(
            tag_name=data.get("tagName", ""),
            name=data.get("name") or "",
            body=data.get("body") or "",
            published_at=data.get("publishedAt") or "",
            url=data.get("url") or "",
            is_draft=bool(data.get("isDraft", False)),
            is_prerelease=bool(data.get("isPrerelease", False)),
        )


class GitHubCLIClient:
    """Wrapper around `gh release` and `gh api`."""

    def __init__(self, executable: str = "gh"):
        self.executable = executable

    async def _gh(self, *args: str) -> str:
        try:
            result = await run_command([self.executable, *args])
        except CommandError as e:
            raise CommandError(f"GitHub CLI error: {e}", e.result) from e

        stderr = result.stderr.strip()
        if stderr and "warning" not in stderr.lower():
            raise CommandError(f"GitHub CLI error: {stderr}", result)
        return result.stdout

    async def get_repository_releases(
        self, owner: str, repo: str, limit: int = 10
    ) -> List[Release]:
        """List releases, then fetch each body concurrently."""
        full_name = f"{owner}/{repo}"
        output = await self._gh(
            "release", "list",
            "--repo", full_name,
            "--json", RELEASE_LIST_FIELDS,
            "--limit", str(limit),
        )
        listed = json.loads(output or "[]")

        async def _view(item: dict) -> Release:
            tag = item.get("tagName", "")
            try:
                detail = await self._gh(
                    "release", "view", tag,
                    "--repo", full_name,
                    "--json", RELEASE_VIEW_FIELDS,
                )
                release = Release.from_gh(json.loads(detail))
            except (CommandError, ValueError) as e:
                logger.warning(f"Could not fetch release {tag} of {full_name}: {e}")
                release = Release(
                    tag_name=tag,
                    name=item.get("name") or "",
                    published_at=item.get("publishedAt") or "",
                    url=f"https://github.com/{full_name}/releases/tag/{tag}",
                )
            # Flags from the list call are authoritative
            release.is_draft = bool(item.get("isDraft", False))
            release.is_prerelease = bool(item.get("isPrerelease", False))
            return release

        return list(await asyncio.gather(*(_view(item) for item in listed)))

    async def get_latest_release(self, owner: str, repo: str) -> Optional[Release]:
        """Return the latest release, or None when there is none."""
        try:
            output = await self._gh(
                "release", "view",
                "--repo", f"{owner}/{repo}",
                "--json", RELEASE_VIEW_FIELDS,
            )
            return Release.from_gh(json.loads(output))
        except (CommandError, ValueError) as e:
            logger.info(f"No latest release for {owner}/{repo}: {e}")
            return None

    async def get_repository_tags(self, owner: str, repo: str, limit: int = 10) -> List[str]:
        """Return tag names, newest first; empty on failure."""
        try:
            output = await self._gh(
                "api", f"repos/{owner}/{repo}/tags", "--jq", ".[].name"
            )
        except CommandError as e:
            logger.info(f"Could not list tags for {owner}/{repo}: {e}")
            return []
        tags = [line.strip() for line in output.splitlines() if line.strip()]
        return tags[:limit]
