"""
Package Version Comparison - What changes between two versions of a package.

FLOW:
1. Classify the bump (major/minor/patch)
2. Resolve the package's GitHub repository from its registry
3. Fetch the changelog sections for the version range
4. Classify changelog lines into breaking changes, features, fixes and deprecations
5. Grade migration complexity and upgrade risk, then recommend

Registry and changelog failures are logged and the analysis continues with
what the version numbers alone say.
"""

import logging
import re
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.agents.base import BaseTool, ToolResult
from app.agents.tools.changelog import FetchChangelogTool
from app.api.middleware.error_handler import AppException
from app.services.package_registry import PackageRegistryClient
from app.services.versioning import VersionDifference, analyze_version_difference

logger = logging.getLogger(__name__)


BREAKING_PATTERN = re.compile(
    r"breaking|removed|incompatible|(?:drop(?:ped)?|remove[ds]?)\b.*\bsupport", re.IGNORECASE
)
FEATURE_PATTERN = re.compile(r"\b(?:add(?:ed|s)?|new|feature|feat|enhance(?:d|ment)?)\b", re.IGNORECASE)
FIX_PATTERN = re.compile(r"\b(?:fix(?:ed|es)?|bug|resolve[ds]?)\b", re.IGNORECASE)
DEPRECATION_PATTERN = re.compile(r"deprecat|obsolete|will be removed", re.IGNORECASE)

CRITICAL_PACKAGES = ("react", "vue", "angular", "express", "webpack", "typescript", "babel")


@dataclass
class ChangeClassification:
    breaking_changes: List[str] = field(default_factory=list)
    new_features: List[str] = field(default_factory=list)
    bug_fixes: List[str] = field(default_factory=list)
    deprecations: List[str] = field(default_factory=list)


@dataclass
class RiskAssessment:
    level: str
    score: int
    factors: List[str]


def _clean(line: str) -> str:
    return re.sub(r"^\s*(?:[-*+]|\d+\.)\s+", "", line).strip()


def classify_changes(text: str) -> ChangeClassification:
    """
    Sort changelog lines into buckets. A line lands in every bucket it matches;
    each bucket keeps first-seen order without duplicates.
    """
    changes = ChangeClassification()
    buckets = [
        (BREAKING_PATTERN, changes.breaking_changes),
        (FEATURE_PATTERN, changes.new_features),
        (FIX_PATTERN, changes.bug_fixes),
        (DEPRECATION_PATTERN, changes.deprecations),
    ]
    for raw in text.splitlines():
        if not raw.strip() or raw.lstrip().startswith("#"):
            continue
        line = _clean(raw)
        if not line:
            continue
        for pattern, bucket in buckets:
            if pattern.search(line) and line not in bucket:
                bucket.append(line)
    return changes


def is_critical_package(package_name: str) -> bool:
    name = package_name.lower()
    return any(name == c or name.startswith(f"@{c}/") or name.startswith(f"{c}-") for c in CRITICAL_PACKAGES)


def migration_complexity(diff: VersionDifference, changes: ChangeClassification) -> str:
    if diff.major_change or changes.breaking_changes:
        return "high"
    if diff.minor_change or len(changes.new_features) > 3:
        return "medium"
    if diff.patch_change:
        return "low"
    return "unknown"


def assess_upgrade_risk(
    package_name: str, diff: VersionDifference, changes: ChangeClassification
) -> RiskAssessment:
    score = 0
    factors: List[str] = []
    if diff.major_change:
        score += 3
        factors.append("Major version change")
    elif diff.minor_change:
        score += 1
        factors.append("Minor version change")

    if changes.breaking_changes:
        score += len(changes.breaking_changes)
        factors.append(f"{len(changes.breaking_changes)} breaking changes in the changelog")

    if is_critical_package(package_name):
        score += 2
        factors.append(f"{package_name} is a core framework/build package")

    if changes.deprecations:
        factors.append(f"{len(changes.deprecations)} deprecations")

    level = "critical" if score >= 5 else "high" if score >= 3 else "medium" if score >= 1 else "low"
    return RiskAssessment(level=level, score=score, factors=factors)


def generate_comparison_recommendations(
    package_name: str,
    diff: VersionDifference,
    changes: ChangeClassification,
    complexity: str,
) -> List[str]:
    recommendations: List[str] = []
    if diff.major_change:
        recommendations.append(
            f"Major upgrade: read the {package_name} migration guide and plan a dedicated upgrade"
        )
    elif diff.minor_change:
        recommendations.append("Minor upgrade: should be backward compatible, review new behavior")
    elif diff.patch_change:
        recommendations.append("Patch upgrade: bug fixes only, generally safe to apply")

    if changes.breaking_changes:
        recommendations.append(
            f"Address {len(changes.breaking_changes)} breaking changes before merging"
        )
    if changes.deprecations:
        recommendations.append(
            f"Replace {len(changes.deprecations)} deprecated APIs before they are removed"
        )

    if complexity == "high":
        recommendations.append("Run the full test suite plus manual testing of critical paths")
    elif complexity == "medium":
        recommendations.append("Run the full test suite")
    elif complexity == "low":
        recommendations.append("Run smoke tests")

    name = package_name.lower()
    if name in ("react", "react-dom") and diff.major_change:
        recommendations.append("Check component lifecycle and rendering changes, and run React codemods")
    if name == "typescript":
        recommendations.append("Run tsc on the whole project; new releases tighten type checking")
    if name == "webpack" and diff.major_change:
        recommendations.append("Review webpack.config for removed options and loader/plugin compatibility")

    if changes.new_features:
        recommendations.append(
            f"Consider adopting {len(changes.new_features)} new features after the upgrade"
        )
    return recommendations


async def compare_package_versions(
    ecosystem: str,
    package_name: str,
    from_version: str,
    to_version: str,
    repository_url: Optional[str] = None,
    github_token: Optional[str] = None,
    registry: Optional[PackageRegistryClient] = None,
    changelog_tool: Optional[FetchChangelogTool] = None,
) -> Dict[str, Any]:
    diff = analyze_version_difference(from_version, to_version)
    registry = registry or PackageRegistryClient()
    changelog_tool = changelog_tool or FetchChangelogTool()

    repository = None
    try:
        repository = await registry.find_repository(ecosystem, package_name, repository_url)
    except AppException as e:
        logger.warning(f"Repository lookup failed for {package_name}: {e.message}")

    changelog_sections: List[Dict[str, Any]] = []
    changelog_source = None
    if repository:
        owner, repo = repository
        try:
            fetched = await changelog_tool.fetch(
                owner, repo, None, from_version, to_version, github_token
            )
            changelog_sections = fetched["changelog"]
            changelog_source = f"{fetched['repository']}/{fetched['source_file']}@{fetched['branch']}"
        except AppException as e:
            logger.warning(f"Changelog unavailable for {owner}/{repo}: {e.message}")
    else:
        logger.info(f"No GitHub repository found for {ecosystem} package {package_name}")

    changes = classify_changes("\n".join(s.get("content", "") for s in changelog_sections))
    complexity = migration_complexity(diff, changes)
    risk = assess_upgrade_risk(package_name, diff, changes)

    return {
        "package_name": package_name,
        "ecosystem": ecosystem,
        "from_version": from_version,
        "to_version": to_version,
        "version_difference": diff.to_dict(),
        "repository": f"{repository[0]}/{repository[1]}" if repository else None,
        "changelog_source": changelog_source,
        "changelog": changelog_sections,
        "changes": asdict(changes),
        "migration_complexity": complexity,
        "risk_assessment": asdict(risk),
        "recommendations": generate_comparison_recommendations(package_name, diff, changes, complexity),
    }


class PackageVersionComparisonInput(BaseModel):
    ecosystem: str = Field(..., description="javascript, python, ruby, go or java")
    package_name: str = Field(..., description="Package name as published to its registry")
    from_version: str = Field(..., description="Current version")
    to_version: str = Field(..., description="Target version")
    repository_url: Optional[str] = Field(None, description="GitHub repository URL, skips the registry lookup")
    github_token: Optional[str] = Field(None, description="GitHub token; falls back to the environment")


class PackageVersionComparisonTool(BaseTool):
    name = "package_version_comparison"
    description = (
        "Compare two versions of a package: semver bump type, changelog entries between "
        "them classified as breaking changes, features, fixes and deprecations, migration "
        "complexity, upgrade risk and recommendations."
    )
    input_model = PackageVersionComparisonInput

    def __init__(
        self,
        registry: Optional[PackageRegistryClient] = None,
        changelog_tool: Optional[FetchChangelogTool] = None,
    ):
        self._registry = registry
        self._changelog_tool = changelog_tool

    async def execute(
        self,
        ecosystem: str,
        package_name: str,
        from_version: str,
        to_version: str,
        repository_url: Optional[str] = None,
        github_token: Optional[str] = None,
    ) -> ToolResult:
        data = await compare_package_versions(
            ecosystem,
            package_name,
            from_version,
            to_version,
            repository_url,
            github_token,
            self._registry,
            self._changelog_tool,
        )
        return ToolResult(success=True, data=data)
