"""
Changelog Tools - Parse markdown changelogs and slice them by version.

A changelog is read as a newest-first list of `## <version>` sections:

    # Changelog
    ## Unreleased          <- skipped
    ## [10.5.0] - 2024-08-01
    - feat: ... ([#17375](https://github.com/o/r/pull/17375))
    ## 10.4.0
    ...

slice_sections_between(from, to) returns the sections strictly newer than
`from` up to and including `to`.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.agents.base import BaseTool, ToolResult
from app.agents.tools.release_changelog import ChangelogSummarizer
from app.api.middleware.error_handler import (
    AppException,
    ChangelogError,
    VersionNotFoundError,
)
from app.services.github_client import GitHubClient
from app.services.gh_cli import Release
from app.services.versioning import normalize_version

logger = logging.getLogger(__name__)


CHANGELOG_FILENAMES = (
    "CHANGELOG.md",
    "CHANGELOG",
    "CHANGES.md",
    "HISTORY.md",
    "changelog.md",
    "RELEASES.md",
)

HEADING_PATTERN = re.compile(r"^##\s+(.+)")
VERSION_PATTERN = re.compile(r"^v?([0-9]+(?:\.[0-9]+){1,2}(?:[-a-zA-Z0-9.]+)?)\b")
DATE_PATTERN = re.compile(r"(\d{4}-\d{2}-\d{2})")
LINK_PATTERN = re.compile(
    r"\[#(\d+)\]\((https://github\.com/[^/]+/[^/]+/(pull|issues)/\d+)\)"
)


@dataclass
class ChangelogSection:
    """One version's entry in a changelog."""
    version: str
    body: str
    date: Optional[str] = None
    pr_links: List[Dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "date": self.date,
            "content": self.body,
            "pr_links": self.pr_links,
        }


def _heading_version(heading: str) -> Optional[str]:
    text = heading.strip().lstrip("[").strip()
    # "[10.5.0] - 2024-08-01" -> "10.5.0] - 2024..." -> version regex stops at "]"
    match = VERSION_PATTERN.match(text.replace("]", " ", 1))
    return match.group(1) if match else None


def parse_changelog_sections(markdown: str) -> List[ChangelogSection]:
    """
    Split a markdown changelog into version sections, in file order.

    `## Unreleased` and headings without a version are not section starts;
    their text is folded into the preceding version's body.
    """
    sections: List[ChangelogSection] = []
    current: Optional[ChangelogSection] = None
    lines: List[str] = []

    def _flush():
        if current is not None:
            current.body = "\n".join(lines).strip()
            current.pr_links = extract_pr_and_issue_links(current.body)
            sections.append(current)

    for line in markdown.splitlines():
        heading = HEADING_PATTERN.match(line)
        if heading:
            title = heading.group(1).strip()
            if "unreleased" in title.lower():
                _flush()
                current, lines = None, []
                continue
            version = _heading_version(title)
            if version:
                _flush()
                date = DATE_PATTERN.search(title)
                current = ChangelogSection(version=version, body="", date=date.group(1) if date else None)
                lines = []
                continue
        if current is not None:
            lines.append(line)

    _flush()
    return sections


def slice_sections_between(
    sections: List[ChangelogSection],
    from_version: str,
    to_version: str,
) -> List[ChangelogSection]:
    """
    Sections after `from_version` up to and including `to_version`.

    Sections are newest-first, so `to` normally precedes `from`; reversed
    arguments are accepted.

    Raises:
        VersionNotFoundError: If either version is not a section heading.
    """
    wanted_from = normalize_version(from_version)
    wanted_to = normalize_version(to_version)
    versions = [normalize_version(s.version) for s in sections]

    missing = [v for v in (wanted_to, wanted_from) if v not in versions]
    if missing:
        raise VersionNotFoundError(missing)

    start = versions.index(wanted_to)
    end = versions.index(wanted_from)
    if start > end:
        start, end = end, start

    return [
        s for s in sections[start:end + 1]
        if normalize_version(s.version) != wanted_from
    ]


def filter_sections_open_range(
    sections: List[ChangelogSection],
    from_version: Optional[str] = None,
    to_version: Optional[str] = None,
) -> List[ChangelogSection]:
    """Range filter when only one bound (or neither) is known; unknown bounds are ignored."""
    versions = [normalize_version(s.version) for s in sections]
    start, end = 0, len(sections)
    if to_version and normalize_version(to_version) in versions:
        start = versions.index(normalize_version(to_version))
    if from_version and normalize_version(from_version) in versions:
        end = versions.index(normalize_version(from_version))
    return sections[start:end]


def extract_pr_and_issue_links(text: str) -> List[Dict[str, str]]:
    """Markdown `[#123](https://github.com/o/r/pull/123)` links, de-duplicated."""
    links: List[Dict[str, str]] = []
    seen = set()
    for number, url, kind in LINK_PATTERN.findall(text):
        if (number, url) in seen:
            continue
        seen.add((number, url))
        links.append({"number": number, "url": url, "type": "pr" if kind == "pull" else "issue"})
    return links


# ── fetch_changelog ─────────────────────────────────────────────────────────


class FetchChangelogInput(BaseModel):
    owner: str = Field(..., description="Repository owner, e.g. 'getsentry'")
    repo: str = Field(..., description="Repository name, e.g. 'sentry-javascript'")
    branch: Optional[str] = Field(None, description="Branch to read; defaults to the repository default branch")
    from_version: Optional[str] = Field(None, description="Exclusive lower bound version")
    to_version: Optional[str] = Field(None, description="Inclusive upper bound version")
    github_token: Optional[str] = Field(None, description="GitHub token; falls back to the environment")


class FetchChangelogTool(BaseTool):
    """Fetch a repository's CHANGELOG and return its version sections."""

    name = "fetch_changelog"
    description = (
        "Fetch the CHANGELOG file of a GitHub repository and return the version sections "
        "between two versions (from exclusive, to inclusive), with PR and issue links."
    )
    input_model = FetchChangelogInput

    def __init__(self, github_client: Optional[GitHubClient] = None):
        self._client = github_client

    def _github(self, token: Optional[str]) -> GitHubClient:
        if self._client is not None:
            return self._client
        return GitHubClient(token=token)

    async def execute(
        self,
        owner: str,
        repo: str,
        branch: Optional[str] = None,
        from_version: Optional[str] = None,
        to_version: Optional[str] = None,
        github_token: Optional[str] = None,
    ) -> ToolResult:
        try:
            data = await self.fetch(owner, repo, branch, from_version, to_version, github_token)
            return ToolResult(success=True, data=data)
        except AppException as e:
            logger.warning(f"fetch_changelog failed for {owner}/{repo}: {e.message}")
            return ToolResult(success=False, error=e.message)

    async def fetch(
        self,
        owner: str,
        repo: str,
        branch: Optional[str] = None,
        from_version: Optional[str] = None,
        to_version: Optional[str] = None,
        github_token: Optional[str] = None,
    ) -> dict:
        """Same as execute but raises instead of wrapping errors."""
        client = self._github(github_token)
        branch = branch or await client.get_default_branch(owner, repo)

        content, source_file = None, None
        for filename in CHANGELOG_FILENAMES:
            content = await client.get_raw_file(owner, repo, branch, filename)
            if content is not None:
                source_file = filename
                break
        if content is None:
            raise ChangelogError(
                f"No changelog found in {owner}/{repo}@{branch} "
                f"(tried {', '.join(CHANGELOG_FILENAMES)})",
                repository=f"{owner}/{repo}",
            )

        sections = parse_changelog_sections(content)
        if from_version and to_version:
            selected = slice_sections_between(sections, from_version, to_version)
        else:
            selected = filter_sections_open_range(sections, from_version, to_version)

        logger.info(
            f"Changelog {owner}/{repo}/{source_file}: {len(selected)} of {len(sections)} sections"
        )
        return {
            "repository": f"{owner}/{repo}",
            "source_file": source_file,
            "branch": branch,
            "version_range": f"{from_version or 'start'} to {to_version or 'latest'}",
            "total_sections": len(sections),
            "filtered_sections": len(selected),
            "changelog": [s.to_dict() for s in selected],
        }


# ── summarize_changelog_between_versions ────────────────────────────────────


class SummarizeBetweenVersionsInput(BaseModel):
    changelog_path: str = Field("CHANGELOG.md", description="Path to a local changelog file")
    from_version: str = Field(..., description="Exclusive lower bound version")
    to_version: str = Field(..., description="Inclusive upper bound version")


class SummarizeChangelogBetweenVersionsTool(BaseTool):
    """Summarize a local changelog between two versions."""

    name = "summarize_changelog_between_versions"
    description = (
        "Read a local CHANGELOG.md, keep the versions between from_version (exclusive) and "
        "to_version (inclusive) and summarize breaking changes, features and fixes."
    )
    input_model = SummarizeBetweenVersionsInput

    async def execute(self, changelog_path: str, from_version: str, to_version: str) -> ToolResult:
        path = Path(changelog_path)
        if not path.is_file():
            return ToolResult(success=False, error=f"Changelog file not found: {changelog_path}")

        try:
            sections = parse_changelog_sections(path.read_text(encoding="utf-8", errors="replace"))
            selected = slice_sections_between(sections, from_version, to_version)
        except VersionNotFoundError as e:
            return ToolResult(success=False, error=e.message)

        if not selected:
            return ToolResult(success=True, data={
                "summary": f"No versions found between {from_version} and {to_version}.",
                "versions": [],
            })

        releases = [
            Release(tag_name=f"v{s.version}", name=f"v{s.version}", body=s.body, published_at=s.date or "")
            for s in selected
        ]
        summary = ChangelogSummarizer().summarize_changelog(releases)
        return ToolResult(success=True, data={
            "from_version": from_version,
            "to_version": to_version,
            "versions": [s.version for s in selected],
            "summary": summary.summary,
            "major_changes": summary.major_changes,
            "breaking_changes": summary.breaking_changes,
            "new_features": summary.new_features,
            "bug_fixes": summary.bug_fixes,
        })
