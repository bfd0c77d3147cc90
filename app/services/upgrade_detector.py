"""
Dependency Upgrade Detector - The single heuristic for "is this PR a
dependency bump, for which ecosystem, and from/to which version".

Both the HTTP pipeline and the agents go through detect_dependency_upgrade;
there is no other copy of these keyword tables.

FLOW:
    PR title + labels ──► upgrade keywords? ──no──► not an upgrade
                                 │yes
                                 ▼
                 ecosystem from title ──unknown──► labels ──► changed files
                                 │
                                 ▼
              "bump X from A to B" / "update X to B"  ──► DependencyInfo
"""

import fnmatch
import logging
import re
from pathlib import PurePosixPath
from typing import Any, Dict, Iterable, List, Optional

from app.models.schemas import DependencyInfo, Ecosystem
from app.services.versioning import analyze_version_difference

logger = logging.getLogger(__name__)


UPGRADE_KEYWORDS = (
    "bump",
    "update",
    "upgrade",
    "dependency",
    "dependencies",
    "chore(deps)",
    "build(deps)",
    "deps:",
    "npm update",
    "yarn upgrade",
    "go get",
    "go mod",
    "pip install",
    "bundle update",
    "mvn dependency",
    "gradle",
    "composer update",
)

UPGRADE_LABELS = ("dependencies", "deps")

# Ordered; the first ecosystem with a matching keyword wins
TITLE_ECOSYSTEM_KEYWORDS = (
    (Ecosystem.JAVASCRIPT, ("package.json", "npm", "yarn", "pnpm", "typescript", "javascript")),
    (Ecosystem.JAVA, ("pom.xml", "gradle", "maven")),
    (Ecosystem.GO, ("go.mod", "go get", "go mod")),
    (Ecosystem.PYTHON, ("requirements.txt", "setup.py", "pyproject", "pip", "poetry")),
    (Ecosystem.RUBY, ("gemfile", "bundle", "gem ")),
)

# Dependabot tags PRs with the ecosystem name
LABEL_ECOSYSTEMS = {
    "javascript": Ecosystem.JAVASCRIPT,
    "npm": Ecosystem.JAVASCRIPT,
    "java": Ecosystem.JAVA,
    "maven": Ecosystem.JAVA,
    "gradle": Ecosystem.JAVA,
    "go": Ecosystem.GO,
    "python": Ecosystem.PYTHON,
    "pip": Ecosystem.PYTHON,
    "ruby": Ecosystem.RUBY,
    "bundler": Ecosystem.RUBY,
}

FILE_ECOSYSTEM_PATTERNS = (
    (Ecosystem.JAVASCRIPT, ("package.json", "package-lock.json", "npm-shrinkwrap.json",
                            "yarn.lock", "pnpm-lock.yaml")),
    (Ecosystem.JAVA, ("pom.xml", "build.gradle", "build.gradle.kts", "settings.gradle",
                      "build.sbt")),
    (Ecosystem.GO, ("go.mod", "go.sum")),
    (Ecosystem.PYTHON, ("requirements*.txt", "pyproject.toml", "poetry.lock", "Pipfile",
                        "Pipfile.lock", "setup.py", "setup.cfg", "uv.lock")),
    (Ecosystem.RUBY, ("Gemfile", "Gemfile.lock", "*.gemspec")),
)

BUMP_PATTERN = re.compile(r"bump\s+(\S+)\s+from\s+(\S+)\s+to\s+(\S+)", re.IGNORECASE)
UPDATE_PATTERN = re.compile(
    r"update\s+(\S+)\s+(?:requirement\s+)?(?:from\s+(\S+)\s+)?to\s+(\S+)", re.IGNORECASE
)


def _label_names(pr_data: Dict[str, Any]) -> List[str]:
    names = []
    for label in pr_data.get("labels") or []:
        name = label.get("name") if isinstance(label, dict) else label
        if name:
            names.append(str(name).lower())
    return names


def is_dependency_upgrade(title: str, labels: Iterable[str] = ()) -> bool:
    """True when the title or a label carries an upgrade keyword."""
    title = (title or "").lower()
    labels = [label.lower() for label in labels]
    if any(label in UPGRADE_LABELS for label in labels):
        return True
    return any(
        keyword in title or any(keyword in label for label in labels)
        for keyword in UPGRADE_KEYWORDS
    )


def detect_ecosystem_from_title(title: str) -> Ecosystem:
    """Ecosystem named in a PR title, or UNKNOWN."""
    title = (title or "").lower()
    for ecosystem, keywords in TITLE_ECOSYSTEM_KEYWORDS:
        if any(keyword in title for keyword in keywords):
            return ecosystem
    return Ecosystem.UNKNOWN


def detect_ecosystem_from_labels(labels: Iterable[str]) -> Ecosystem:
    for label in labels:
        ecosystem = LABEL_ECOSYSTEMS.get(label.lower())
        if ecosystem:
            return ecosystem
    return Ecosystem.UNKNOWN


def detect_ecosystem_from_files(filenames: Iterable[str]) -> tuple:
    """
    Ecosystem implied by changed manifest/lock files.

    Returns (ecosystem, matched_files); the ecosystem with the most
    matching files wins.
    """
    hits: Dict[Ecosystem, List[str]] = {}
    for filename in filenames:
        base = PurePosixPath(filename).name
        for ecosystem, patterns in FILE_ECOSYSTEM_PATTERNS:
            if any(fnmatch.fnmatch(base, pattern) for pattern in patterns):
                hits.setdefault(ecosystem, []).append(filename)
                break
    if not hits:
        return Ecosystem.UNKNOWN, []
    best = max(hits, key=lambda eco: len(hits[eco]))
    return best, hits[best]


def extract_versions(title: str) -> tuple:
    """(dependency_name, old_version, new_version) parsed from a PR title."""
    bump = BUMP_PATTERN.search(title or "")
    if bump:
        return bump.group(1), bump.group(2), bump.group(3)
    update = UPDATE_PATTERN.search(title or "")
    if update:
        return update.group(1), update.group(2), update.group(3)
    return None, None, None


def detect_dependency_upgrade(
    pr_data: Dict[str, Any],
    changed_files: Optional[Iterable[str]] = None,
) -> DependencyInfo:
    """
    Decide whether a pull request upgrades a dependency.

    Args:
        pr_data: Anything with a `title` and optional `labels` (strings or
            {"name": ...} dicts), e.g. the GitHub PR payload.
        changed_files: Optional changed file paths used to infer the
            ecosystem when the title and labels are silent.

    Returns:
        DependencyInfo; only is_dependency_upgrade is set when the PR
        is not an upgrade.
    """
    title = pr_data.get("title") or ""
    labels = _label_names(pr_data)

    if not is_dependency_upgrade(title, labels):
        return DependencyInfo(is_dependency_upgrade=False)

    ecosystem = detect_ecosystem_from_title(title)
    if ecosystem == Ecosystem.UNKNOWN:
        ecosystem = detect_ecosystem_from_labels(labels)

    detected_files: List[str] = []
    if changed_files:
        file_ecosystem, detected_files = detect_ecosystem_from_files(changed_files)
        if ecosystem == Ecosystem.UNKNOWN:
            ecosystem = file_ecosystem

    name, old_version, new_version = extract_versions(title)

    change_type = None
    if old_version and new_version:
        change_type = analyze_version_difference(old_version, new_version).semver_type

    if name and old_version and new_version:
        confidence = "high"
    elif name or ecosystem != Ecosystem.UNKNOWN:
        confidence = "medium"
    else:
        confidence = "low"

    info = DependencyInfo(
        is_dependency_upgrade=True,
        ecosystem=ecosystem,
        dependency_name=name,
        old_version=old_version,
        new_version=new_version,
        change_type=change_type,
        confidence=confidence,
        detected_files=detected_files,
    )
    logger.info(
        f"Detected upgrade: {name or '?'} {old_version or '?'} -> {new_version or '?'} "
        f"({ecosystem.value}, {confidence})"
    )
    return info
