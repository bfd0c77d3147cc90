"""
JavaScript package manager and workspace detection.

Evidence, strongest first: lock files, the package.json `packageManager`
field (Corepack), package manager config files, then monorepo markers.
"""

import json
import logging
import re
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

from app.agents.base import BaseTool, ToolResult

logger = logging.getLogger(__name__)


LOCK_FILES = (
    ("package-lock.json", "npm"),
    ("npm-shrinkwrap.json", "npm"),
    ("yarn.lock", "yarn"),
    ("pnpm-lock.yaml", "pnpm"),
    ("shrinkwrap.yaml", "pnpm"),
)

CONFIG_FILES = (
    ((".yarnrc", ".yarnrc.yml", ".yarnrc.yaml"), "yarn"),
    ((".pnpmrc",), "pnpm"),
    ((".npmrc",), "npm"),
)

WORKSPACE_FILES = (
    ("pnpm-workspace.yaml", "pnpm-workspace"),
    ("lerna.json", "lerna"),
    ("nx.json", "nx"),
    ("rush.json", "rush"),
    ("turbo.json", None),
)

PACKAGE_MANAGER_FIELD = re.compile(r"^(npm|yarn|pnpm)@(.+)$")
PNPM_PACKAGES_BLOCK = re.compile(r"packages:\s*\n((?:[ \t]*-[ \t]*.+\n?)*)")

_CONFIDENCE_ORDER = ("low", "medium", "high")


@dataclass
class PackageManagerIndicators:
    lock_files: List[str] = field(default_factory=list)
    config_files: List[str] = field(default_factory=list)
    package_manager_field: bool = False
    workspace_indicators: List[str] = field(default_factory=list)


@dataclass
class PackageManagerResult:
    """What the project directory says about its package manager."""
    package_manager: Optional[str] = None
    lock_file: Optional[str] = None
    is_monorepo: bool = False
    workspace_type: Optional[str] = None
    workspace_paths: List[str] = field(default_factory=list)
    package_manager_version: Optional[str] = None
    confidence: str = "low"
    indicators: PackageManagerIndicators = field(default_factory=PackageManagerIndicators)

    def to_dict(self) -> dict:
        return asdict(self)


def _read_package_json(root: Path) -> Optional[dict]:
    path = root / "package.json"
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning(f"Could not parse {path}: {e}")
        return None
    return data if isinstance(data, dict) else None


def _parse_pnpm_workspace(path: Path) -> List[str]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError:
        return []
    block = PNPM_PACKAGES_BLOCK.search(content)
    if not block:
        return []
    paths = []
    for line in block.group(1).splitlines():
        item = line.strip()
        if not item.startswith("-"):
            continue
        item = item[1:].strip().strip("'\"")
        if item and not item.startswith("#"):
            paths.append(item)
    return paths


def detect_js_package_manager(project_path: str) -> PackageManagerResult:
    """
    Inspect a project directory for npm, yarn or pnpm evidence.

    Raises:
        FileNotFoundError: If project_path does not exist.
    """
    root = Path(project_path).resolve()
    if not root.exists():
        raise FileNotFoundError(f"Project path does not exist: {root}")

    result = PackageManagerResult()
    indicators = result.indicators

    # 1. Lock files
    for filename, manager in LOCK_FILES:
        if (root / filename).is_file():
            result.lock_file = filename
            result.package_manager = manager
            indicators.lock_files.append(filename)
            break

    # 2. package.json
    package_json = _read_package_json(root) or {}
    declared = package_json.get("packageManager")
    if isinstance(declared, str):
        match = PACKAGE_MANAGER_FIELD.match(declared)
        if match:
            manager, version = match.groups()
            indicators.package_manager_field = True
            result.package_manager_version = version
            if result.package_manager in (None, manager):
                result.package_manager = manager

    workspaces = package_json.get("workspaces")
    if workspaces:
        result.is_monorepo = True
        result.workspace_type = "npm-workspaces"
        indicators.workspace_indicators.append("package.json workspaces field")
        if isinstance(workspaces, list):
            result.workspace_paths = list(workspaces)
        elif isinstance(workspaces, dict):
            result.workspace_paths = list(workspaces.get("packages") or [])
        if package_json.get("private"):
            indicators.workspace_indicators.append("private: true with workspaces")

    # 3. Config files
    for filenames, manager in CONFIG_FILES:
        for filename in filenames:
            if (root / filename).is_file():
                indicators.config_files.append(filename)
                if result.package_manager is None:
                    result.package_manager = manager

    # 4. Workspace markers
    for filename, workspace_type in WORKSPACE_FILES:
        path = root / filename
        if not path.is_file():
            continue
        indicators.workspace_indicators.append(filename)
        result.is_monorepo = True
        if filename == "pnpm-workspace.yaml":
            result.workspace_type = workspace_type
            result.workspace_paths = _parse_pnpm_workspace(path) or result.workspace_paths
        elif workspace_type and not result.workspace_type:
            result.workspace_type = workspace_type

    for dirname in ("packages", "apps"):
        if (root / dirname).is_dir():
            indicators.workspace_indicators.append(f"{dirname}/ directory")
            result.is_monorepo = True

    # 5. Confidence
    if result.lock_file:
        result.confidence = "high"
    elif indicators.package_manager_field:
        result.confidence = "medium"
    elif indicators.config_files:
        only_npmrc = indicators.config_files == [".npmrc"] and result.package_manager == "npm"
        result.confidence = "low" if only_npmrc else "medium"
    else:
        result.confidence = "low"

    agreeing = sum([
        bool(result.lock_file),
        indicators.package_manager_field,
        bool(indicators.config_files),
    ])
    if result.package_manager and agreeing >= 2 and result.confidence != "high":
        result.confidence = _CONFIDENCE_ORDER[_CONFIDENCE_ORDER.index(result.confidence) + 1]

    if result.package_manager is None:
        result.package_manager = "npm"
        result.confidence = "low"

    logger.info(
        f"Detected {result.package_manager} ({result.confidence}) in {root}"
        f"{' [monorepo]' if result.is_monorepo else ''}"
    )
    return result


class PackageManagerDetectorInput(BaseModel):
    project_path: str = Field(".", description="Path to the project directory to analyze")


class JSPackageManagerDetectorTool(BaseTool):
    """Which of npm, yarn or pnpm a project uses, and whether it is a monorepo."""

    name = "javascript_package_manager_detector"
    description = (
        "Detect which JavaScript package manager (npm, yarn, pnpm) a project uses and "
        "identify monorepo/workspace configurations."
    )
    input_model = PackageManagerDetectorInput

    async def execute(self, project_path: str = ".") -> ToolResult:
        try:
            result = detect_js_package_manager(project_path)
        except FileNotFoundError as e:
            return ToolResult(success=False, error=str(e))
        return ToolResult(success=True, data=result.to_dict())
