"""
Python Dependency Analyzer - How a Python project uses its packages.

FLOW:
1. Detect the package manager, virtual environment and Python version
2. Walk *.py files and parse imports (stdlib and local modules are set aside)
3. Read declared dependencies from requirements files, pyproject.toml and Pipfile
4. Optionally ask the package manager for installed versions
5. Score criticality and derive recommendations
"""

import json
import logging
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.agents.base import BaseTool, ToolResult
from app.agents.tools.python.imports import (
    PythonImport,
    is_local_module,
    is_standard_library,
    normalize_package_name,
    parse_python_imports,
    top_level_module,
)
from app.agents.tools.python.package_manager import (
    PythonPackageManagerResult,
    detect_python_package_manager,
    load_pyproject,
)
from app.models.schemas import Criticality
from app.services.command_runner import CommandError, CommandTimeoutError, run_command
from app.services.source_walker import find_source_files, read_text_safe

logger = logging.getLogger(__name__)


DEFAULT_INCLUDE = ["**/*.py"]
DEFAULT_EXCLUDE = ["**/venv/**", "**/.venv/**", "**/__pycache__/**", "**/.git/**", "**/site-packages/**"]

FRAMEWORK_PATTERNS = ("django", "flask", "fastapi", "numpy", "pandas", "requests", "urllib3", "sqlalchemy")
UTILITY_PATTERNS = ("click", "typer", "rich", "pydantic", "celery", "httpx")
DEV_GROUP_NAMES = ("dev", "test", "tests", "testing", "lint", "docs", "typing")

REQUIREMENT_LINE = re.compile(r"^([A-Za-z0-9][A-Za-z0-9_.-]*)\s*(?:\[[^\]]*\])?\s*([^#;]*)")
POETRY_TREE_LINE = re.compile(r"^(?:[│ ]*[├└]── )?([A-Za-z0-9_.-]+)\s+v?(\S+)")
PIPENV_GRAPH_LINE = re.compile(r"^[-*]?\s*([A-Za-z0-9_.-]+)==(\S+)")


@dataclass
class DeclaredDependency:
    """A dependency as written in a manifest."""
    name: str
    specifier: Optional[str] = None
    group: str = "main"
    is_dev: bool = False
    is_optional: bool = False
    source_file: str = ""


@dataclass
class PythonDependency:
    name: str
    version: Optional[str] = None
    specified_version: Optional[str] = None
    is_direct: bool = False
    is_dev_dependency: bool = False
    is_optional_dependency: bool = False
    dependency_group: Optional[str] = None
    dependency_path: List[str] = field(default_factory=list)
    usage_count: int = 0
    usage_patterns: List[PythonImport] = field(default_factory=list)
    criticality: Criticality = Criticality.LOW
    criticality_reasons: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "specified_version": self.specified_version,
            "is_direct": self.is_direct,
            "is_dev_dependency": self.is_dev_dependency,
            "is_optional_dependency": self.is_optional_dependency,
            "dependency_group": self.dependency_group,
            "dependency_path": self.dependency_path,
            "usage_count": self.usage_count,
            "usage_patterns": [usage.to_dict() for usage in self.usage_patterns],
            "criticality": self.criticality.value,
            "criticality_reasons": self.criticality_reasons,
        }


@dataclass
class PythonFileAnalysis:
    file_path: str
    imports: List[PythonImport]
    external_dependencies: List[str]
    standard_library_imports: List[str]
    local_imports: List[str]

    @property
    def has_conditional_imports(self) -> bool:
        return any(usage.is_conditional for usage in self.imports)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_path": self.file_path,
            "total_imports": len(self.imports),
            "external_dependencies": self.external_dependencies,
            "standard_library_imports": self.standard_library_imports,
            "local_imports": self.local_imports,
            "has_conditional_imports": self.has_conditional_imports,
            "imports": [usage.to_dict() for usage in self.imports],
        }


# ── declared dependencies ───────────────────────────────────────────────────


def _split_requirement(requirement: str):
    match = REQUIREMENT_LINE.match(requirement.strip())
    if not match:
        return None, None
    specifier = match.group(2).strip() or None
    return match.group(1), specifier


def parse_requirements_file(path: Path) -> List[DeclaredDependency]:
    is_dev = any(word in path.name for word in ("dev", "test"))
    declared = []
    for raw in read_text_safe(path).splitlines():
        line = raw.strip()
        if not line or line.startswith(("#", "-")):
            continue
        name, specifier = _split_requirement(line)
        if name:
            declared.append(DeclaredDependency(
                name=name, specifier=specifier, is_dev=is_dev,
                group="dev" if is_dev else "main", source_file=path.name,
            ))
    return declared


def _poetry_spec(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        return value.get("version") or value.get("git") or value.get("path")
    return None


def parse_pyproject_dependencies(pyproject: Dict[str, Any]) -> List[DeclaredDependency]:
    declared: List[DeclaredDependency] = []
    project = pyproject.get("project") or {}

    for requirement in project.get("dependencies") or []:
        name, specifier = _split_requirement(requirement)
        if name:
            declared.append(DeclaredDependency(name=name, specifier=specifier, source_file="pyproject.toml"))

    for group, requirements in (project.get("optional-dependencies") or {}).items():
        is_dev = group.lower() in DEV_GROUP_NAMES
        for requirement in requirements:
            name, specifier = _split_requirement(requirement)
            if name:
                declared.append(DeclaredDependency(
                    name=name, specifier=specifier, group=group,
                    is_dev=is_dev, is_optional=not is_dev, source_file="pyproject.toml",
                ))

    for group, requirements in (pyproject.get("dependency-groups") or {}).items():
        for requirement in requirements:
            if not isinstance(requirement, str):
                continue
            name, specifier = _split_requirement(requirement)
            if name:
                declared.append(DeclaredDependency(
                    name=name, specifier=specifier, group=group, is_dev=True, source_file="pyproject.toml",
                ))

    poetry = (pyproject.get("tool") or {}).get("poetry") or {}
    for name, value in (poetry.get("dependencies") or {}).items():
        if name.lower() == "python":
            continue
        optional = isinstance(value, dict) and bool(value.get("optional"))
        declared.append(DeclaredDependency(
            name=name, specifier=_poetry_spec(value), is_optional=optional, source_file="pyproject.toml",
        ))
    for name, value in (poetry.get("dev-dependencies") or {}).items():
        declared.append(DeclaredDependency(
            name=name, specifier=_poetry_spec(value), group="dev", is_dev=True, source_file="pyproject.toml",
        ))
    for group, table in (poetry.get("group") or {}).items():
        for name, value in (table.get("dependencies") or {}).items():
            declared.append(DeclaredDependency(
                name=name, specifier=_poetry_spec(value), group=group, is_dev=True, source_file="pyproject.toml",
            ))
    return declared


def parse_pipfile(path: Path) -> List[DeclaredDependency]:
    try:
        with path.open("rb") as f:
            pipfile = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning(f"Could not parse {path}: {e}")
        return []

    declared = []
    for section, is_dev in (("packages", False), ("dev-packages", True)):
        for name, value in (pipfile.get(section) or {}).items():
            spec = value if isinstance(value, str) else (value or {}).get("version")
            declared.append(DeclaredDependency(
                name=name, specifier=None if spec == "*" else spec,
                group="dev" if is_dev else "main", is_dev=is_dev, source_file="Pipfile",
            ))
    return declared


def collect_declared_dependencies(root: Path) -> List[DeclaredDependency]:
    declared: List[DeclaredDependency] = []
    for path in sorted(root.glob("requirements*.txt")):
        declared.extend(parse_requirements_file(path))
    pyproject = load_pyproject(root)
    if pyproject:
        declared.extend(parse_pyproject_dependencies(pyproject))
    if (root / "Pipfile").is_file():
        declared.extend(parse_pipfile(root / "Pipfile"))
    return declared


def apply_declarations(dependencies: Dict[str, PythonDependency], declared: List[DeclaredDependency]) -> None:
    for decl in declared:
        key = normalize_package_name(decl.name)
        dep = dependencies.setdefault(key, PythonDependency(name=key))
        already_main = dep.is_direct and not dep.is_dev_dependency
        dep.is_direct = True
        dep.specified_version = dep.specified_version or decl.specifier
        if not already_main:
            dep.is_dev_dependency = decl.is_dev
            dep.is_optional_dependency = decl.is_optional
            dep.dependency_group = decl.group


# ── installed versions ──────────────────────────────────────────────────────


def parse_installed_versions(output: str, package_manager: str) -> Dict[str, str]:
    """name -> version from pip list JSON, poetry/uv trees or pipenv graph."""
    versions: Dict[str, str] = {}
    if package_manager == "pip":
        try:
            for package in json.loads(output):
                versions[normalize_package_name(package["name"])] = package["version"]
        except (ValueError, KeyError, TypeError):
            return {}
        return versions

    pattern = PIPENV_GRAPH_LINE if package_manager == "pipenv" else POETRY_TREE_LINE
    for line in output.splitlines():
        match = pattern.match(line.strip() if package_manager == "pipenv" else line)
        if match:
            versions.setdefault(normalize_package_name(match.group(1)), match.group(2))
    return versions


TREE_COMMANDS = {
    "pip": ["pip", "list", "--format=json"],
    "poetry": ["poetry", "show", "--tree"],
    "uv": ["uv", "tree"],
    "pipenv": ["pipenv", "graph"],
}


async def enrich_with_installed_versions(
    root: Path,
    package_manager: PythonPackageManagerResult,
    dependencies: Dict[str, PythonDependency],
) -> None:
    cmd = TREE_COMMANDS.get(package_manager.package_manager or "")
    if cmd is None:
        return
    try:
        result = await run_command(cmd, cwd=str(root), check=False)
    except (CommandError, CommandTimeoutError) as e:
        logger.debug(f"{' '.join(cmd)} failed: {e}")
        return
    versions = parse_installed_versions(result.stdout, package_manager.package_manager)
    for key, dep in dependencies.items():
        if key in versions:
            dep.version = versions[key]


# ── scoring ─────────────────────────────────────────────────────────────────


def assess_python_criticality(dep: PythonDependency) -> Criticality:
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

    if any(usage.is_conditional for usage in dep.usage_patterns):
        score -= 1
        reasons.append("Used conditionally (may be optional)")

    if any(pattern in dep.name for pattern in FRAMEWORK_PATTERNS):
        score += 2
        reasons.append("Framework or essential library dependency")
    if any(pattern in dep.name for pattern in UTILITY_PATTERNS):
        score += 1
        reasons.append("Core utility library")

    if score >= 4:
        dep.criticality = Criticality.HIGH
    elif score >= 2:
        dep.criticality = Criticality.MEDIUM
    else:
        dep.criticality = Criticality.LOW
    dep.criticality_reasons = reasons
    return dep.criticality


def generate_python_recommendations(
    dependencies: List[PythonDependency],
    files: List[PythonFileAnalysis],
    package_manager: PythonPackageManagerResult,
) -> List[str]:
    recommendations = []

    def names(deps):
        return ", ".join(d.name for d in deps)

    if package_manager.virtual_environment.type == "none":
        recommendations.append(
            "Consider using a virtual environment (venv, poetry, pipenv, or uv) for dependency isolation"
        )
    if package_manager.confidence == "low":
        recommendations.append(
            "Consider using a more explicit dependency management tool like Poetry or uv for better reproducibility"
        )

    critical_transitive = [d for d in dependencies if d.criticality == Criticality.HIGH and not d.is_direct]
    if critical_transitive:
        recommendations.append(
            f"Consider declaring {len(critical_transitive)} high-criticality transitive dependencies "
            f"as direct dependencies: {names(critical_transitive)}"
        )

    dev_in_code = [d for d in dependencies if d.is_dev_dependency and d.usage_count > 0]
    if dev_in_code:
        recommendations.append(
            f"{len(dev_in_code)} dev dependencies are being used in production code: {names(dev_in_code)}"
        )

    heavy = [d for d in dependencies if d.usage_count >= 10]
    if heavy:
        recommendations.append(
            f"{len(heavy)} dependencies are heavily used (10+ imports) - ensure they are properly "
            f"optimized: {names(heavy)}"
        )

    conditional_files = [f for f in files if f.has_conditional_imports]
    if conditional_files:
        recommendations.append(
            f"{len(conditional_files)} files have conditional imports - consider making these "
            "optional dependencies explicit"
        )

    if not package_manager.python_version:
        recommendations.append(
            "Consider specifying Python version in .python-version, runtime.txt, or pyproject.toml for consistency"
        )
    return recommendations


def analyze_python_file(path: Path, root: Path) -> PythonFileAnalysis:
    imports = parse_python_imports(read_text_safe(path))
    external, stdlib, local = [], [], []
    for usage in imports:
        module = top_level_module(usage.source)
        if is_standard_library(module):
            bucket, value = stdlib, module
        elif is_local_module(usage.source, root):
            bucket, value = local, usage.source
        else:
            bucket, value = external, module
        if value not in bucket:
            bucket.append(value)
    return PythonFileAnalysis(
        file_path=path.relative_to(root).as_posix(),
        imports=imports,
        external_dependencies=external,
        standard_library_imports=stdlib,
        local_imports=local,
    )


async def analyze_python_dependencies(
    project_path: str = ".",
    include_patterns: Optional[List[str]] = None,
    exclude_patterns: Optional[List[str]] = None,
    max_depth: int = 10,
    analyze_transitive: bool = True,
) -> Dict[str, Any]:
    """
    Analyze how a Python project uses its dependencies.

    Raises:
        FileNotFoundError: If project_path does not exist.
    """
    root = Path(project_path).resolve()
    if not root.exists():
        raise FileNotFoundError(f"Project path does not exist: {root}")

    package_manager = detect_python_package_manager(str(root))
    paths = find_source_files(
        str(root),
        include_patterns or DEFAULT_INCLUDE,
        exclude_patterns if exclude_patterns is not None else DEFAULT_EXCLUDE,
        max_depth,
    )

    files: List[PythonFileAnalysis] = []
    dependencies: Dict[str, PythonDependency] = {}
    for path in paths:
        analysis = analyze_python_file(path, root)
        files.append(analysis)
        for usage in analysis.imports:
            module = top_level_module(usage.source)
            if is_standard_library(module) or is_local_module(usage.source, root):
                continue
            key = normalize_package_name(module)
            dep = dependencies.setdefault(key, PythonDependency(name=key))
            dep.usage_count += 1
            dep.usage_patterns.append(usage)

    apply_declarations(dependencies, collect_declared_dependencies(root))
    if analyze_transitive:
        await enrich_with_installed_versions(root, package_manager, dependencies)

    for dep in dependencies.values():
        assess_python_criticality(dep)

    ordered = sorted(dependencies.values(), key=lambda d: (-d.usage_count, d.name))
    logger.info(f"Analyzed {len(files)} Python files, {len(ordered)} dependencies in {root}")
    return {
        "project_path": str(root),
        "package_manager": {
            "type": package_manager.package_manager,
            "secondary_managers": package_manager.secondary_managers,
            "virtual_environment": package_manager.to_dict()["virtual_environment"],
            "confidence": package_manager.confidence,
        },
        "python_version": package_manager.python_version,
        "analysis_results": {
            "total_files": len(files),
            "total_dependencies": len(ordered),
            "direct_dependencies": sum(1 for d in ordered if d.is_direct),
            "dev_dependencies": sum(1 for d in ordered if d.is_dev_dependency),
            "optional_dependencies": sum(1 for d in ordered if d.is_optional_dependency),
            "transitive_dependencies": sum(1 for d in ordered if not d.is_direct),
            "standard_library_imports": sum(len(f.standard_library_imports) for f in files),
            "local_modules": sum(len(f.local_imports) for f in files),
            "high_criticality_deps": sum(1 for d in ordered if d.criticality == Criticality.HIGH),
            "medium_criticality_deps": sum(1 for d in ordered if d.criticality == Criticality.MEDIUM),
            "low_criticality_deps": sum(1 for d in ordered if d.criticality == Criticality.LOW),
        },
        "dependencies": [d.to_dict() for d in ordered],
        "files": [f.to_dict() for f in files],
        "recommendations": generate_python_recommendations(ordered, files, package_manager),
    }


class PythonDependencyAnalysisInput(BaseModel):
    project_path: str = Field(".", description="Path to the project directory to analyze")
    include_patterns: Optional[List[str]] = Field(None, description="Globs of files to include (default: **/*.py)")
    exclude_patterns: Optional[List[str]] = Field(
        None, description="Globs of files to exclude (default: venv, .venv, __pycache__, site-packages)"
    )
    max_depth: int = Field(10, ge=1, description="Maximum directory depth to search")
    analyze_transitive: bool = Field(True, description="Ask the package manager for installed versions")


class PythonDependencyAnalysisTool(BaseTool):
    name = "python_dependency_analysis"
    description = (
        "Analyze Python code to identify how dependencies are imported, which are declared "
        "in requirements/pyproject/Pipfile, their criticality, and recommendations."
    )
    input_model = PythonDependencyAnalysisInput

    async def execute(
        self,
        project_path: str = ".",
        include_patterns: Optional[List[str]] = None,
        exclude_patterns: Optional[List[str]] = None,
        max_depth: int = 10,
        analyze_transitive: bool = True,
    ) -> ToolResult:
        try:
            data = await analyze_python_dependencies(
                project_path, include_patterns, exclude_patterns, max_depth, analyze_transitive
            )
        except FileNotFoundError as e:
            return ToolResult(success=False, error=str(e))
        except (OSError, ValueError) as e:
            logger.error(f"Python dependency analysis failed for {project_path}: {e}")
            return ToolResult(success=False, error=f"Failed to analyze Python dependencies: {e}")
        return ToolResult(success=True, data=data)
