"""
Dependency Changelog Analyzer - Highlight changelog entries that matter
for a set of dependencies.

Entries are bullet lines of a version section, optionally in
conventional-commit form (`- feat(scope): description`). Each entry is
tagged breaking/feature/fix/performance/security, and the section range
is rendered as a markdown digest with an impact assessment.
"""

import logging
import re
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.agents.base import BaseTool, ToolResult
from app.agents.tools.changelog import parse_changelog_sections, slice_sections_between
from app.api.middleware.error_handler import VersionNotFoundError

logger = logging.getLogger(__name__)


CONVENTIONAL_PATTERN = re.compile(
    r"^-\s*(feat|fix|chore|docs|test|refactor|perf|style|ci|build|revert)"
    r"(?:\(([^)]+)\))?\s*:\s*(.+)$"
)

DEPENDENCY_PATTERNS = (
    re.compile(r"bump\s+(@?[\w-]+/[\w-]+|@[\w-]+|[\w-]+)\s+from", re.IGNORECASE),
    re.compile(r"update\s+(@?[\w-]+/[\w-]+|@[\w-]+|[\w-]+)\s+to", re.IGNORECASE),
    re.compile(r"\((@?[\w-]+/[\w-]+|@[\w-]+|[\w-]+)\)"),
    re.compile(r"(@[\w-]+/[\w-]+|@[\w-]+)"),
)

SKIP_PREFIXES = ("#", "<details", "</details", "<summary", "</summary")
SKIP_PHRASES = ("Work in this release was contributed", "Thank you for your contribution")

BREAKING_MARKERS = ("breaking", "!:", "major", "incompatible")
IMPORTANT_TYPES = ("feat", "fix", "perf")
IMPORTANT_KEYWORDS = (
    "security", "vulnerability", "cve",
    "performance", "memory", "leak",
    "api", "interface", "public",
    "deprecat", "remove", "delete",
    "migrate", "migration",
    "critical", "urgent", "hotfix",
)
PERFORMANCE_KEYWORDS = ("performance", "memory", "speed")
SECURITY_KEYWORDS = ("security", "vulnerability", "cve")


@dataclass
class ChangelogEntry:
    """A single bullet of a changelog section."""
    type: str
    description: str
    raw_text: str
    breaking: bool = False
    scope: Optional[str] = None
    dependency: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class DependencyChangelogAnalysis:
    versions: List[str]
    entries: List[ChangelogEntry]
    affected_dependencies: List[str]
    categories: Dict[str, List[ChangelogEntry]]
    summary: str


def is_breaking_change(text: str) -> bool:
    lower = text.lower()
    return any(marker in lower for marker in BREAKING_MARKERS)


def extract_dependency(text: str) -> Optional[str]:
    """Package a changelog line is about, if one can be spotted."""
    for pattern in DEPENDENCY_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


def parse_changelog_entries(body: str) -> List[ChangelogEntry]:
    entries = []
    for raw in body.splitlines():
        line = raw.strip()
        if not line or line.startswith(SKIP_PREFIXES):
            continue
        if any(phrase in line for phrase in SKIP_PHRASES):
            continue

        match = CONVENTIONAL_PATTERN.match(line)
        if match:
            entries.append(ChangelogEntry(
                type=match.group(1),
                scope=match.group(2),
                description=match.group(3),
                raw_text=line,
                breaking=is_breaking_change(line),
                dependency=extract_dependency(line),
            ))
        elif line.startswith("-"):
            description = line[1:].strip()
            entries.append(ChangelogEntry(
                type="other",
                description=description,
                raw_text=line,
                breaking=is_breaking_change(description),
                dependency=extract_dependency(description),
            ))
    return entries


def is_relevant_to(entry: ChangelogEntry, dependencies: List[str]) -> bool:
    if not dependencies:
        return True
    text = entry.raw_text.lower()
    scope = (entry.scope or "").lower()
    dependency = (entry.dependency or "").lower()
    for dep in dependencies:
        dep = dep.lower()
        if dep in text or scope == dep or (dependency and dep in dependency):
            return True
    return False


def is_important_change(entry: ChangelogEntry) -> bool:
    if entry.breaking or entry.type in IMPORTANT_TYPES:
        return True
    description = entry.description.lower()
    return any(keyword in description for keyword in IMPORTANT_KEYWORDS)


def categorize_entries(entries: List[ChangelogEntry]) -> Dict[str, List[ChangelogEntry]]:
    def _has(entry, words):
        description = entry.description.lower()
        return any(word in description for word in words)

    return {
        "breaking": [e for e in entries if e.breaking],
        "features": [e for e in entries if e.type == "feat"],
        "fixes": [e for e in entries if e.type == "fix"],
        "performance": [e for e in entries if e.type == "perf" or _has(e, PERFORMANCE_KEYWORDS)],
        "security": [e for e in entries if _has(e, SECURITY_KEYWORDS)],
    }


class DependencyChangelogAnalyzer:
    """Range-slice a changelog and keep what matters."""

    def analyze(
        self,
        markdown: str,
        from_version: str,
        to_version: str,
        dependencies: Optional[List[str]] = None,
        include_all_changes: bool = False,
    ) -> DependencyChangelogAnalysis:
        dependencies = dependencies or []
        sections = slice_sections_between(parse_changelog_sections(markdown), from_version, to_version)
        all_entries = [entry for s in sections for entry in parse_changelog_entries(s.body)]

        if dependencies:
            entries = [e for e in all_entries if is_relevant_to(e, dependencies)]
        elif include_all_changes:
            entries = all_entries
        else:
            entries = [e for e in all_entries if is_important_change(e)]

        affected = {e.dependency for e in entries if e.dependency}
        affected.update(
            dep for dep in dependencies
            if any(is_relevant_to(e, [dep]) for e in all_entries)
        )

        categories = categorize_entries(entries)
        versions = [s.version for s in sections]
        affected_sorted = sorted(affected)
        return DependencyChangelogAnalysis(
            versions=versions,
            entries=entries,
            affected_dependencies=affected_sorted,
            categories=categories,
            summary=self.render_summary(versions, entries, categories, affected_sorted),
        )

    @staticmethod
    def render_summary(
        versions: List[str],
        entries: List[ChangelogEntry],
        categories: Dict[str, List[ChangelogEntry]],
        affected: List[str],
    ) -> str:
        if len(versions) > 1:
            version_range = f"{versions[-1]} to {versions[0]}"
        else:
            version_range = versions[0] if versions else "no versions"

        lines = [f"## Changelog Summary ({version_range})", ""]
        if affected:
            lines += [f"**Filtered for dependencies:** {', '.join(affected)}", ""]

        lines.append("**Overview:**")
        lines.append(f"- **{len(entries)}** total changes analyzed")
        lines.append(f"- **{len(versions)}** versions included")
        labels = (
            ("breaking", "breaking changes"),
            ("features", "new features"),
            ("fixes", "bug fixes"),
            ("performance", "performance improvements"),
            ("security", "security updates"),
        )
        for key, label in labels:
            if categories[key]:
                lines.append(f"- **{len(categories[key])}** {label}")
        lines.append("")

        sections = (
            ("breaking", "Breaking Changes", 5),
            ("features", "New Features", 5),
            ("security", "Security Updates", None),
            ("performance", "Performance Improvements", 3),
        )
        for key, title, cap in sections:
            items = categories[key] if cap is None else categories[key][:cap]
            if items:
                lines.append(f"### {title}")
                lines += [f"- **{e.scope or 'core'}**: {e.description}" for e in items]
                lines.append("")

        lines.append("### Impact Assessment")
        if categories["breaking"]:
            lines.append("**High Impact**: Breaking changes require code updates")
        elif categories["security"]:
            lines.append("**Medium Impact**: Security updates recommend updating")
        elif categories["features"]:
            lines.append("**Low Impact**: New features available, optional updates")
        else:
            lines.append("**Low Impact**: Mostly maintenance and bug fixes")
        return "\n".join(lines)


# ── dependency_changelog_summarizer ─────────────────────────────────────────


class DependencyChangelogInput(BaseModel):
    changelog_path: str = Field("CHANGELOG.md", description="Path to the CHANGELOG.md file")
    from_version: str = Field(..., description="Lower bound version (excluded)")
    to_version: str = Field(..., description="Upper bound version (included)")
    dependencies: List[str] = Field(
        default_factory=list,
        description="Dependencies to focus on, e.g. ['@sentry/core']. Empty keeps important changes.",
    )
    include_all_changes: bool = Field(
        False, description="Keep every entry, not only important ones (when no dependencies are given)"
    )


class DependencyChangelogSummarizerTool(BaseTool):
    """Analyze a local changelog between two versions for given dependencies."""

    name = "dependency_changelog_summarizer"
    description = (
        "Analyze a local CHANGELOG.md between two versions and highlight breaking changes, "
        "features, fixes, performance and security entries affecting the given dependencies."
    )
    input_model = DependencyChangelogInput

    async def execute(
        self,
        changelog_path: str = "CHANGELOG.md",
        from_version: str = "",
        to_version: str = "",
        dependencies: Optional[List[str]] = None,
        include_all_changes: bool = False,
    ) -> ToolResult:
        path = Path(changelog_path)
        base = {
            "changelog_path": changelog_path,
            "version_range": {"from_version": from_version, "to_version": to_version},
            "dependency_filter": dependencies or [],
        }
        try:
            markdown = path.read_text(encoding="utf-8")
            analysis = DependencyChangelogAnalyzer().analyze(
                markdown, from_version, to_version, dependencies, include_all_changes
            )
        except FileNotFoundError:
            return ToolResult(
                success=False,
                data={**base, "suggestion": "Make sure the CHANGELOG.md file exists and the path is correct."},
                error=f"Changelog file not found: {changelog_path}",
            )
        except VersionNotFoundError as e:
            return ToolResult(
                success=False,
                data={**base, "suggestion": "Check that both versions appear as '## <version>' headings."},
                error=e.message,
            )

        categories = analysis.categories
        return ToolResult(success=True, data={
            **base,
            "analysis": {
                "affected_dependencies": analysis.affected_dependencies,
                "total_changes": len(analysis.entries),
                "versions_analyzed": analysis.versions,
                "breaking_changes": len(categories["breaking"]),
                "new_features": len(categories["features"]),
                "bug_fixes": len(categories["fixes"]),
                "performance_improvements": len(categories["performance"]),
                "security_updates": len(categories["security"]),
            },
            "summary": analysis.summary,
            "detailed_changes": {
                "breaking": [e.to_dict() for e in categories["breaking"]],
                "features": [e.to_dict() for e in categories["features"][:10]],
                "fixes": [e.to_dict() for e in categories["fixes"][:10]],
                "security": [e.to_dict() for e in categories["security"]],
                "performance": [e.to_dict() for e in categories["performance"]],
            },
        })
