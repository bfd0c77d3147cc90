"""
JavaScript/TypeScript Dependency Analyzer - How a project uses its packages.

FLOW:
1. Detect the package manager (npm, yarn, pnpm) and monorepo layout
2. Walk the source tree and parse imports of every JS/TS file
3. Group external imports by package
4. Enrich with package.json (direct, dev, peer, declared version)
5. Optionally ask the package manager why each package is installed
6. Score criticality and derive recommendations
"""

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.agents.base import BaseTool, ToolResult
from app.agents.tools.javascript.imports import (
    ImportUsage,
    extract_package_name,
    is_external_dependency,
    parse_js_imports,
)
from app.agents.tools.javascript.package_manager import (
    PackageManagerResult,
    detect_js_package_manager,
)
from app.core.config import get_settings
from app.models.schemas import Criticality
from app.services.command_runner import CommandError, CommandTimeoutError, run_command
from app.services.source_walker import find_source_files, read_text_safe

logger = logging.getLogger(__name__)


DEFAULT_INCLUDE = ["**/*.{js,jsx,ts,tsx,mjs,cjs}"]
DEFAULT_EXCLUDE = ["**/node_modules/**", "**/dist/**", "**/build/**", "**/*.min.js"]

FRAMEWORK_PATTERNS = (
    "react", "vue", "angular", "express", "fastify", "next",
    "webpack", "vite", "rollup", "typescript", "babel",
)
UTILITY_PATTERNS = ("lodash", "ramda", "date-fns", "axios", "fetch")

TREE_LINE = re.compile(r"[└├][─┬]*\s*(@?[^@\s]+)@")
TYPESCRIPT_FILE = re.compile(r"\.tsx?$")


@dataclass
class JSDependency:
    """Usage summary of one npm package."""
    name: str
    version: Optional[str] = None
    is_direct: bool = False
    is_dev_dependency: bool = False
    is_peer_dependency: bool = False
    dependency_path: List[str] = field(default_factory=list)
    usage_count: int = 0
    usage_patterns: List[ImportUsage] = field(default_factory=list)
    criticality: Criticality = Criticality.LOW
    criticality_reasons: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "is_direct": self.is_direct,
            "is_dev_dependency": self.is_dev_dependency,
            "is_peer_dependency": self.is_peer_dependency,
            "dependency_path": self.dependency_path,
            "usage_count": self.usage_count,
            "usage_patterns": [usage.to_dict() for usage in self.usage_patterns],
            "criticality": self.criticality.value,
            "criticality_reasons": self.criticality_reasons,
        }


@dataclass
class JSFileAnalysis:
    file_path: str
    is_typescript: bool
    imports: List[ImportUsage]
    external_dependencies: List[str]
    internal_dependencies: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_path": self.file_path,
            "is_typescript": self.is_typescript,
            "total_imports": len(self.imports),
            "external_dependencies": self.external_dependencies,
            "internal_dependencies": self.internal_dependencies,
            "imports": [usage.to_dict() for usage in self.imports],
        }


def assess_dependency_criticality(dep: JSDependency) -> Criticality:
    """Score a package and store the bucket and reasons on it."""
    reasons: List[str] = []
    score = 0

    if dep.usage_count >= 10:
        score += 3
        reasons.append("High usage frequency (10+ imports)")
    elif dep.usage_count >= 5:
        score += 2
        reasons.append("Medium usage frequency (5-9 imports)")
    elif dep.usage_count >= 2:
        score += 1
        reasons.append("Low usage frequency (2-4 imports)")

    if dep.is_direct and not dep.is_dev_dependency:
        score += 2
        reasons.append("Direct production dependency")
    if dep.is_dev_dependency:
        score -= 1
        reasons.append("Development-only dependency")

    if any(not u.is_type_only and u.type != "import-type" for u in dep.usage_patterns):
        score += 2
        reasons.append("Used at runtime")
    else:
        score -= 1
        reasons.append("Type-only or development usage")

    if any(pattern in dep.name for pattern in FRAMEWORK_PATTERNS):
        score += 2
        reasons.append("Framework or build tool dependency")
    if any(pattern in dep.name for pattern in UTILITY_PATTERNS):
        score += 1
        reasons.append("Core utility library")

    if any(u.type == "side-effect-import" for u in dep.usage_patterns):
        score += 1
        reasons.append("Side-effect imports detected (may indicate critical setup)")

    if len(dep.usage_patterns) == 1 and dep.usage_patterns[0].type == "dynamic-import":
        score -= 1
        reasons.append("Only used in dynamic imports (may be optional)")

    if score >= 4:
        dep.criticality = Criticality.HIGH
    elif score >= 2:
        dep.criticality = Criticality.MEDIUM
    else:
        dep.criticality = Criticality.LOW
    dep.criticality_reasons = reasons
    return dep.criticality


def analyze_js_file(path: Path, root: Path) -> JSFileAnalysis:
    imports = parse_js_imports(read_text_safe(path))
    external, internal = [], []
    for usage in imports:
        if is_external_dependency(usage.source):
            name = extract_package_name(usage.source)
            if name not in external:
                external.append(name)
        elif usage.source not in internal:
            internal.append(usage.source)
    return JSFileAnalysis(
        file_path=path.relative_to(root).as_posix(),
        is_typescript=bool(TYPESCRIPT_FILE.search(path.name)),
        imports=imports,
        external_dependencies=external,
        internal_dependencies=internal,
    )


def enrich_with_package_json(root: Path, dependencies: Dict[str, JSDependency]) -> None:
    """Mark direct/dev/peer packages; declared but unimported packages are added with zero usage."""
    path = root / "package.json"
    if not path.is_file():
        return
    try:
        package_json = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning(f"Could not parse {path}: {e}")
        return

    for section in ("dependencies", "devDependencies", "peerDependencies"):
        declared = package_json.get(section) or {}
        for name, version in declared.items():
            dep = dependencies.setdefault(name, JSDependency(name=name))
            dep.version = version
            if section == "peerDependencies":
                dep.is_peer_dependency = True
            else:
                dep.is_direct = True
                dep.is_dev_dependency = section == "devDependencies"


def parse_dependency_tree(output: str) -> List[str]:
    """Package names on `└─ name@version` lines of npm ls / yarn why / pnpm why."""
    path = []
    for line in output.splitlines():
        if "└─" not in line and "├─" not in line:
            continue
        match = TREE_LINE.search(line)
        if match:
            path.append(match.group(1).strip())
    return path


async def enrich_with_dependency_tree(
    root: Path,
    package_manager: PackageManagerResult,
    dependencies: Dict[str, JSDependency],
) -> None:
    timeout = get_settings().dependency_tree_timeout_seconds
    for name, dep in dependencies.items():
        if package_manager.package_manager == "yarn":
            cmd = ["yarn", "why", name]
        elif package_manager.package_manager == "pnpm":
            cmd = ["pnpm", "why", name]
        else:
            cmd = ["npm", "ls", name, "--depth=0"]
        try:
            result = await run_command(cmd, cwd=str(root), timeout=timeout, check=False)
        except (CommandError, CommandTimeoutError) as e:
            logger.debug(f"Dependency tree lookup for {name} failed: {e}")
            continue
        dep.dependency_path = parse_dependency_tree(result.stdout)


def summarize_dependencies(dependencies: List[JSDependency], files: List[JSFileAnalysis]) -> Dict[str, int]:
    return {
        "total_files": len(files),
        "total_dependencies": len(dependencies),
        "direct_dependencies": sum(1 for d in dependencies if d.is_direct),
        "dev_dependencies": sum(1 for d in dependencies if d.is_dev_dependency),
        "transitive_dependencies": sum(1 for d in dependencies if not d.is_direct),
        "high_criticality_deps": sum(1 for d in dependencies if d.criticality == Criticality.HIGH),
        "medium_criticality_deps": sum(1 for d in dependencies if d.criticality == Criticality.MEDIUM),
        "low_criticality_deps": sum(1 for d in dependencies if d.criticality == Criticality.LOW),
    }


def generate_recommendations(
    dependencies: List[JSDependency],
    files: List[JSFileAnalysis],
    package_manager: PackageManagerResult,
) -> List[str]:
    recommendations = []

    def names(deps):
        return ", ".join(d.name for d in deps)

    critical_transitive = [d for d in dependencies if d.criticality == Criticality.HIGH and not d.is_direct]
    if critical_transitive:
        recommendations.append(
            f"Consider adding {len(critical_transitive)} high-criticality transitive dependencies "
            f"as direct dependencies: {names(critical_transitive)}"
        )

    unused_dev = [d for d in dependencies if d.is_dev_dependency and d.usage_count == 0]
    if unused_dev:
        recommendations.append(
            f"{len(unused_dev)} dev dependencies appear unused and could be removed: {names(unused_dev)}"
        )

    type_only_prod = [
        d for d in dependencies
        if d.is_direct and not d.is_dev_dependency and d.usage_patterns
        and all(u.is_type_only or u.type == "import-type" for u in d.usage_patterns)
    ]
    if type_only_prod:
        recommendations.append(
            f"{len(type_only_prod)} production dependencies only used for types could be moved "
            f"to devDependencies: {names(type_only_prod)}"
        )

    heavy = [d for d in dependencies if d.usage_count >= 10]
    if heavy:
        recommendations.append(
            f"{len(heavy)} dependencies are heavily used (10+ imports) - ensure they are properly "
            f"optimized: {names(heavy)}"
        )

    if package_manager.package_manager == "npm" and package_manager.confidence == "low":
        recommendations.append(
            "Consider using a lock file (package-lock.json) for consistent dependency resolution"
        )
    if not package_manager.is_monorepo and len(files) > 50:
        recommendations.append(
            "Large codebase detected - consider using a monorepo setup for better dependency management"
        )
    return recommendations


async def analyze_js_dependencies(
    project_path: str = ".",
    include_patterns: Optional[List[str]] = None,
    exclude_patterns: Optional[List[str]] = None,
    max_depth: int = 10,
    analyze_transitive: bool = True,
) -> Dict[str, Any]:
    """
    Analyze how a JS/TS project uses its dependencies.

    Raises:
        FileNotFoundError: If project_path does not exist.
    """
    root = Path(project_path).resolve()
    if not root.exists():
        raise FileNotFoundError(f"Project path does not exist: {root}")

    package_manager = detect_js_package_manager(str(root))
    paths = find_source_files(
        str(root),
        include_patterns or DEFAULT_INCLUDE,
        exclude_patterns if exclude_patterns is not None else DEFAULT_EXCLUDE,
        max_depth,
    )

    files: List[JSFileAnalysis] = []
    dependencies: Dict[str, JSDependency] = {}
    for path in paths:
        analysis = analyze_js_file(path, root)
        files.append(analysis)
        for usage in analysis.imports:
            if not is_external_dependency(usage.source):
                continue
            name = extract_package_name(usage.source)
            dep = dependencies.setdefault(name, JSDependency(name=name))
            dep.usage_count += 1
            dep.usage_patterns.append(usage)

    enrich_with_package_json(root, dependencies)
    if analyze_transitive:
        await enrich_with_dependency_tree(root, package_manager, dependencies)

    for dep in dependencies.values():
        assess_dependency_criticality(dep)

    ordered = sorted(dependencies.values(), key=lambda d: (-d.usage_count, d.name))
    logger.info(f"Analyzed {len(files)} JS/TS files, {len(ordered)} dependencies in {root}")
    return {
        "project_path": str(root),
        "package_manager": {
            "type": package_manager.package_manager,
            "version": package_manager.package_manager_version,
            "confidence": package_manager.confidence,
        },
        "analysis_results": summarize_dependencies(ordered, files),
        "dependencies": [d.to_dict() for d in ordered],
        "files": [f.to_dict() for f in files],
        "recommendations": generate_recommendations(ordered, files, package_manager),
    }


class JSDependencyAnalysisInput(BaseModel):
    project_path: str = Field(".", description="Path to the project directory to analyze")
    include_patterns: Optional[List[str]] = Field(
        None, description="Globs of files to include (default: **/*.{js,jsx,ts,tsx,mjs,cjs})"
    )
    exclude_patterns: Optional[List[str]] = Field(
        None, description="Globs of files to exclude (default: node_modules, dist, build)"
    )
    max_depth: int = Field(10, ge=1, description="Maximum directory depth to search")
    analyze_transitive: bool = Field(True, description="Ask the package manager why each package is installed")


class JSDependencyAnalysisTool(BaseTool):
    """Import usage, criticality and recommendations for a JS/TS project."""

    name = "javascript_dependency_analysis"
    description = (
        "Analyze JavaScript/TypeScript code to identify how dependencies are used, "
        "their criticality, and recommendations."
    )
    input_model = JSDependencyAnalysisInput

    async def execute(
        self,
        project_path: str = ".",
        include_patterns: Optional[List[str]] = None,
        exclude_patterns: Optional[List[str]] = None,
        max_depth: int = 10,
        analyze_transitive: bool = True,
    ) -> ToolResult:
        try:
            data = await analyze_js_dependencies(
                project_path, include_patterns, exclude_patterns, max_depth, analyze_transitive
            )
        except FileNotFoundError as e:
            return ToolResult(success=False, error=str(e))
        except (OSError, ValueError) as e:
            logger.error(f"JS dependency analysis failed for {project_path}: {e}")
            return ToolResult(success=False, error=f"Failed to analyze dependencies: {e}")
        return ToolResult(success=True, data=data)
