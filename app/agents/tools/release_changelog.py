"""
Release Changelog Tools - Summarize GitHub releases fetched with `gh`.

ChangelogSummarizer sorts release-note lines into breaking changes,
features, fixes and other, then builds a markdown digest.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.agents.base import BaseTool, ToolResult
from app.services.command_runner import CommandError, CommandTimeoutError
from app.services.gh_cli import GitHubCLIClient, Release

logger = logging.getLogger(__name__)


GH_SUGGESTION = (
    "Make sure you have GitHub CLI installed and authenticated, and that the "
    "repository exists and is accessible."
)

BREAKING_WORDS = ("breaking", "major", "incompatible")
FEATURE_WORDS = ("feat", "feature", "add", "new", "implement")
FIX_WORDS = ("fix", "bug", "patch", "resolve")


@dataclass
class CategorizedChanges:
    breaking_changes: List[str] = field(default_factory=list)
    features: List[str] = field(default_factory=list)
    bug_fixes: List[str] = field(default_factory=list)
    other: List[str] = field(default_factory=list)


@dataclass
class ChangelogSummary:
    total_releases: int
    summary: str
    latest_release: Optional[Release] = None
    major_changes: List[str] = field(default_factory=list)
    breaking_changes: List[str] = field(default_factory=list)
    new_features: List[str] = field(default_factory=list)
    bug_fixes: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_releases": self.total_releases,
            "latest_release": self.latest_release.tag_name if self.latest_release else None,
            "major_changes": self.major_changes,
            "breaking_changes": self.breaking_changes,
            "features": self.new_features,
            "bug_fixes": self.bug_fixes,
            "summary": self.summary,
        }


def _parse_date(value: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


class ChangelogSummarizer:
    """Keyword-based release note categorization."""

    def categorize_changes(self, body: str) -> CategorizedChanges:
        result = CategorizedChanges()
        for raw in body.splitlines():
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            lower = line.lower()
            if any(word in lower for word in BREAKING_WORDS):
                result.breaking_changes.append(line)
            elif any(word in lower for word in FEATURE_WORDS):
                result.features.append(line)
            elif any(word in lower for word in FIX_WORDS):
                result.bug_fixes.append(line)
            elif len(line) > 10:
                result.other.append(line)
        return result

    def summarize_release(self, release: Release) -> str:
        if not release.body:
            return "No details available."
        changes = self.categorize_changes(release.body)
        parts = []
        if changes.breaking_changes:
            parts.append(f"{len(changes.breaking_changes)} breaking change(s)")
        if changes.features:
            parts.append(f"{len(changes.features)} new feature(s)")
        if changes.bug_fixes:
            parts.append(f"{len(changes.bug_fixes)} bug fix(es)")
        return ", ".join(parts) if parts else "General updates and improvements."

    def summarize_changelog(self, releases: List[Release]) -> ChangelogSummary:
        """Aggregate a newest-first list of releases."""
        if not releases:
            return ChangelogSummary(
                total_releases=0,
                summary="No releases found for this repository.",
            )

        breaking: List[str] = []
        features: List[str] = []
        fixes: List[str] = []
        major: List[str] = []

        for release in releases:
            if not release.body:
                continue
            changes = self.categorize_changes(release.body)
            breaking.extend(changes.breaking_changes)
            features.extend(changes.features)
            fixes.extend(changes.bug_fixes)
            if changes.breaking_changes or len(changes.features) > 3:
                major.append(f"{release.name or release.tag_name}: {self.summarize_release(release)}")

        return ChangelogSummary(
            total_releases=len(releases),
            latest_release=releases[0],
            major_changes=major[:5],
            breaking_changes=breaking[:10],
            new_features=features[:15],
            bug_fixes=fixes[:10],
            summary=self._render(releases, breaking, features, fixes, major),
        )

    def _render(self, releases, breaking, features, fixes, major) -> str:
        latest = releases[0]
        lines = [f"## Changelog Summary for {len(releases)} recent releases", ""]

        published = _parse_date(latest.published_at)
        when = f" ({published.date().isoformat()})" if published else ""
        lines += [
            f"**Latest Release**: {latest.name or latest.tag_name}{when}",
            self.summarize_release(latest),
            "",
            "**Overall Activity**:",
            f"- {len(features)} features added",
            f"- {len(fixes)} bugs fixed",
            f"- {len(breaking)} breaking changes",
            f"- {len(major)} major releases",
            "",
        ]
        if breaking:
            lines.append("**Notable Breaking Changes**:")
            lines += [f"- {change}" for change in breaking[:3]]
            lines.append("")
        if features:
            lines.append("**Key Features Added**:")
            lines += [f"- {feature}" for feature in features[:5]]
            lines.append("")
        lines.append(f"**Development Activity**: {self.calculate_timespan(releases)}")
        return "\n".join(lines)

    def calculate_timespan(self, releases: List[Release]) -> str:
        if len(releases) < 2:
            return "Single release analyzed."
        latest = _parse_date(releases[0].published_at)
        oldest = _parse_date(releases[-1].published_at)
        if latest is None or oldest is None:
            return "Release dates unavailable."
        days = math.ceil((latest - oldest).total_seconds() / 86400)
        if days < 30:
            return f"{days} days of development activity."
        if days < 365:
            return f"{math.ceil(days / 30)} months of development activity."
        return f"{math.ceil(days / 365)} year(s) of development activity."


def _release_preview(release: Release) -> Dict[str, object]:
    body = release.body or ""
    return {
        "tag_name": release.tag_name,
        "name": release.name,
        "published_at": release.published_at,
        "url": release.url,
        "is_prerelease": release.is_prerelease,
        "body_preview": body[:200] + ("..." if len(body) > 200 else ""),
    }


# ── get_repository_changelog ────────────────────────────────────────────────


class RepositoryChangelogInput(BaseModel):
    owner: str = Field(..., description="Repository owner (username or organization)")
    repo: str = Field(..., description="Repository name")
    limit: int = Field(10, ge=1, description="Number of releases to analyze (max 50)")
    include_prerelease: bool = Field(False, description="Include prerelease versions in analysis")


class RepositoryChangelogTool(BaseTool):
    """Summarize recent GitHub releases of a repository."""

    name = "get_repository_changelog"
    description = (
        "Fetch recent GitHub releases of a repository with the GitHub CLI and summarize "
        "breaking changes, features and bug fixes."
    )
    input_model = RepositoryChangelogInput

    def __init__(self, gh: Optional[GitHubCLIClient] = None):
        self.gh = gh or GitHubCLIClient()
        self.summarizer = ChangelogSummarizer()

    async def execute(
        self, owner: str, repo: str, limit: int = 10, include_prerelease: bool = False
    ) -> ToolResult:
        repository = f"{owner}/{repo}"
        limit = min(limit, 50)
        try:
            releases = await self.gh.get_repository_releases(owner, repo, limit)
        except (CommandError, CommandTimeoutError, ValueError) as e:
            logger.warning(f"Release lookup failed for {repository}: {e}")
            return ToolResult(
                success=False,
                data={"repository": repository, "suggestion": GH_SUGGESTION},
                error=f"Failed to fetch changelog: {e}",
            )

        releases = [
            r for r in releases
            if not r.is_draft and (include_prerelease or not r.is_prerelease)
        ]

        if not releases:
            tags = await self.gh.get_repository_tags(owner, repo)
            message = (
                f"No releases found, but repository has {len(tags)} tags. Consider looking at "
                "commit history or asking maintainers to create releases."
                if tags else "No releases or tags found for this repository."
            )
            return ToolResult(success=True, data={
                "repository": repository,
                "message": message,
                "releases": [],
                "summary": None,
                "tags": tags[:5],
            })

        summary = self.summarizer.summarize_changelog(releases)
        return ToolResult(success=True, data={
            "repository": repository,
            "releases": [_release_preview(r) for r in releases],
            "summary": summary.to_dict(),
            "analyzed": {
                "total_releases": len(releases),
                "include_prerelease": include_prerelease,
                "time_range": {
                    "from": releases[-1].published_at,
                    "to": releases[0].published_at,
                } if len(releases) > 1 else None,
            },
        })


# ── get_latest_release ──────────────────────────────────────────────────────


class LatestReleaseInput(BaseModel):
    owner: str = Field(..., description="Repository owner (username or organization)")
    repo: str = Field(..., description="Repository name")


class LatestReleaseTool(BaseTool):
    """Latest release of a repository with categorized notes."""

    name = "get_latest_release"
    description = "Fetch the latest GitHub release of a repository and categorize its notes."
    input_model = LatestReleaseInput

    def __init__(self, gh: Optional[GitHubCLIClient] = None):
        self.gh = gh or GitHubCLIClient()

    async def execute(self, owner: str, repo: str) -> ToolResult:
        repository = f"{owner}/{repo}"
        release = await self.gh.get_latest_release(owner, repo)
        if release is None:
            return ToolResult(
                success=False,
                data={"repository": repository, "suggestion": GH_SUGGESTION},
                error="No releases found for this repository.",
            )

        changes = ChangelogSummarizer().categorize_changes(release.body or "")
        return ToolResult(success=True, data={
            "repository": repository,
            "release": {
                "tag_name": release.tag_name,
                "name": release.name,
                "body": release.body,
                "published_at": release.published_at,
                "url": release.url,
                "is_prerelease": release.is_prerelease,
                "is_draft": release.is_draft,
            },
            "categorized_changes": {
                "breaking_changes": changes.breaking_changes,
                "features": changes.features,
                "bug_fixes": changes.bug_fixes,
                "other": changes.other,
            },
        })
