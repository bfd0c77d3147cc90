"""
Go Dependency Analyzer - Import usage, build constraints and module metadata.

FLOW:
1. Detect the module (go.mod / go.work)
2. Parse every .go file: package clause, imports, build tags, cgo
3. Group imports by module path (first three segments of a hosted path)
4. Enrich from go.mod: version, direct/indirect, replace directives
5. Optionally read `go mod graph` for who-requires-whom
6. Score criticality, summarize build info, recommend
"""

import logging
import re
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from app.agents.base import BaseTool, ToolResult
from app.agents.tools.go.package_manager import GoProjectInfo, detect_go_project
from app.models.schemas import Criticality
from app.services.command_runner import CommandError, CommandTimeoutError, run_command
from app.services.source_walker import find_source_files, read_text_safe

logger = logging.getLogger(__name__)


EXTENDED_STDLIB = (
    "golang.org/x/crypto",
    "golang.org/x/net",
    "golang.org/x/text",
    "golang.org/x/sys",
    "golang.org/x/time",
    "golang.org/x/sync",
)

CRITICAL_PACKAGES = (
    "github.com/gin-gonic/gin",
    "github.com/gorilla/mux",
    "github.com/labstack/echo",
    "github.com/gofiber/fiber",
    "gorm.io/gorm",
    "go.uber.org/zap",
    "github.com/stretchr/testify",
    "google.golang.org/grpc",
)

PLATFORM_TAGS = ("linux", "darwin", "windows", "freebsd", "openbsd", "netbsd", "dragonfly")
ARCH_TAGS = ("amd64", "arm64", "386", "arm")

BLOCK_IMPORT = re.compile(r'^(?:(\w+|\.|_)\s+)?"([^"]+)"(?:\s*//.*)?$')
SINGLE_IMPORT = re.compile(r'^import\s+(?:(\w+|\.|_)\s+)?"([^"]+)"(?:\s*//.*)?$')
BUILD_TAG_WORD = re.compile(r"\b\w+\b")


@dataclass
class GoImport:
    type: str
    import_path: str
    line: int
    raw_statement: str
    alias: Optional[str] = None
    build_tags: List[str] = field(default_factory=list)

    @property
    def conditional(self) -> bool:
        return bool(self.build_tags)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["conditional"] = self.conditional
        return data


@dataclass
class GoSourceFile:
    package_name: Optional[str]
    imports: List[GoImport]
    build_tags: List[str]
    cgo_usage: bool


@dataclass
class GoDependency:
    path: str
    version: Optional[str] = None
    is_direct: bool = False
    is_indirect: bool = False
    is_replaced: bool = False
    replacement_path: Optional[str] = None
    is_standard_library: bool = False
    usage_count: int = 0
    usage_patterns: List[GoImport] = field(default_factory=list)
    criticality: Criticality = Criticality.LOW
    criticality_reasons: List[str] = field(default_factory=list)
    dependency_path: List[str] = field(default_factory=list)
    build_constraints: List[str] = field(default_factory=list)
    cgo_required: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = {k: v for k, v in self.__dict__.items() if k not in ("usage_patterns", "criticality")}
        data["usage_patterns"] = [usage.to_dict() for usage in self.usage_patterns]
        data["criticality"] = self.criticality.value
        return data


def parse_build_tags(comment: str) -> List[str]:
    """Tag names of a `//go:build` or `// +build` line, without operators."""
    if comment.startswith("//go:build"):
        return BUILD_TAG_WORD.findall(comment[len("//go:build"):])
    if comment.startswith("// +build"):
        tags = []
        for group in comment[len("// +build"):].split():
            tags.extend(tag.lstrip("!") for tag in group.split(",") if tag)
        return tags
    return []


def import_kind(alias: Optional[str]) -> str:
    if alias == ".":
        return "dot-import"
    if alias == "_":
        return "blank-import"
    if alias:
        return "named-import"
    return "standard-import"


def parse_go_source(content: str) -> GoSourceFile:
    imports: List[GoImport] = []
    package_name = None
    all_tags: List[str] = []
    pending_tags: List[str] = []
    cgo = False
    in_block = False

    for number, raw in enumerate(content.splitlines(), start=1):
        line = raw.strip()
        if line.startswith(("//go:build", "// +build")):
            tags = parse_build_tags(line)
            all_tags.extend(tags)
            pending_tags.extend(tags)
            continue
        if line.startswith("package ") and package_name is None:
            package_name = line[len("package "):].strip()
            continue
        if 'import "C"' in line or 'import"C"' in line:
            cgo = True
        if line == "import (":
            in_block = True
            continue
        if in_block and line == ")":
            in_block = False
            pending_tags = []
            continue

        match = (BLOCK_IMPORT if in_block else SINGLE_IMPORT).match(line)
        if match:
            alias, path = match.groups()
            imports.append(GoImport(
                type=import_kind(alias),
                import_path=path,
                alias=alias if alias not in (None, ".", "_") else None,
                line=number,
                build_tags=list(pending_tags),
                raw_statement=line,
            ))
        elif line and not line.startswith("//") and not in_block and package_name is not None:
            pending_tags = []

    return GoSourceFile(
        package_name=package_name,
        imports=imports,
        build_tags=list(dict.fromkeys(all_tags)),
        cgo_usage=cgo,
    )


def is_go_standard_library(import_path: str) -> bool:
    first = import_path.split("/")[0]
    if "." not in first:
        return True
    return import_path.startswith(EXTENDED_STDLIB)


def extract_go_module_path(import_path: str, required_modules: Iterable[str] = ()) -> str:
    """
    Module that provides an import.

    The longest go.mod requirement that is the import path or a parent of
    it wins, so 'github.com/redis/go-redis/v9' and 'go.uber.org/zap/zapcore'
    resolve to their required modules. Otherwise
    'github.com/a/b/sub/pkg' -> 'github.com/a/b'; stdlib paths are kept.
    """
    if is_go_standard_library(import_path):
        return import_path
    matches = [
        module for module in required_modules
        if import_path == module or import_path.startswith(module + "/")
    ]
    if matches:
        return max(matches, key=len)
    parts = import_path.split("/")
    if "." in parts[0] and len(parts) >= 3:
        return "/".join(parts[:3])
    return import_path


def assess_go_criticality(dep: GoDependency) -> Criticality:
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

    if dep.is_direct:
        score += 2
        reasons.append("Direct dependency")

    if dep.is_standard_library:
        score -= 1
        reasons.append("Go standard library (lower risk)")
    else:
        score += 1
        reasons.append("External dependency")

    if any(pattern in dep.path for pattern in CRITICAL_PACKAGES):
        score += 2
        reasons.append("Critical framework or library")
    if dep.cgo_required:
        score += 2
        reasons.append("Requires CGO (cross-compilation complexity)")
    if dep.is_replaced:
        score += 1
        reasons.append("Has replace directive (custom/forked dependency)")
    if dep.build_constraints:
        score += 1
        reasons.append(f"Platform-specific ({', '.join(dep.build_constraints)})")
    if any(u.type == "blank-import" for u in dep.usage_patterns):
        score += 1
        reasons.append("Side-effect imports detected (initialization dependency)")
    if any(u.type == "dot-import" for u in dep.usage_patterns):
        score += 1
        reasons.append("Dot imports detected (namespace pollution risk)")

    if score >= 5:
        dep.criticality = Criticality.HIGH
    elif score >= 3:
        dep.criticality = Criticality.MEDIUM
    else:
        dep.criticality = Criticality.LOW
    dep.criticality_reasons = reasons
    return dep.criticality


def parse_go_mod_graph(output: str) -> Dict[str, List[str]]:
    """required module -> modules requiring it, versions stripped."""
    graph: Dict[str, List[str]] = {}
    for line in output.splitlines():
        parts = line.split()
        if len(parts) != 2:
            continue
        parent, child = (p.split("@")[0] for p in parts)
        graph.setdefault(child, [])
        if parent not in graph[child]:
            graph[child].append(parent)
    return graph


def summarize_build_info(files: List[GoSourceFile], dependencies: List[GoDependency]) -> Dict[str, Any]:
    tags = list(dict.fromkeys(tag for f in files for tag in f.build_tags))
    cgo = any(f.cgo_usage for f in files) or any(d.cgo_required for d in dependencies)

    platforms = [t for t in tags if t in PLATFORM_TAGS] or ["linux", "darwin", "windows"]
    archs = [t for t in tags if t in ARCH_TAGS] or ["amd64"]
    supported = [f"{p}/{a}" for p in platforms for a in archs]
    return {"supported_platforms": list(dict.fromkeys(supported)), "build_tags": tags, "cgo_required": cgo}


def generate_go_recommendations(
    dependencies: List[GoDependency],
    project: GoProjectInfo,
    build_info: Dict[str, Any],
) -> List[str]:
    recommendations = []

    critical = [d for d in dependencies if d.criticality == Criticality.HIGH and not d.is_standard_library]
    if critical:
        recommendations.append(
            f"Monitor {len(critical)} high-criticality dependencies closely: "
            f"{', '.join(d.path for d in critical[:3])}"
        )

    replaced = [d for d in dependencies if d.is_replaced]
    if replaced:
        recommendations.append(
            f"Review {len(replaced)} replaced dependencies to ensure they're still necessary: "
            f"{', '.join(d.path for d in replaced)}"
        )

    if build_info["cgo_required"]:
        recommendations.append(
            "CGO is required - consider the impact on cross-compilation and deployment complexity"
        )
        recommendations.append("Test builds on all target platforms when CGO is involved")

    dot = [d for d in dependencies if any(u.type == "dot-import" for u in d.usage_patterns)]
    if dot:
        recommendations.append(
            f"Avoid dot imports - they pollute the namespace: {', '.join(d.path for d in dot)}"
        )

    if len(build_info["build_tags"]) > 5:
        recommendations.append(
            f"Complex build constraints detected ({len(build_info['build_tags'])} tags) - "
            "ensure proper testing across platforms"
        )

    if project.module_mode:
        recommendations.append("Run `go mod tidy` regularly to clean up unused dependencies")
        recommendations.append("Use `go mod verify` to ensure dependency integrity")

    heavy_indirect = [d for d in dependencies if d.is_indirect and d.usage_count >= 5]
    if heavy_indirect:
        recommendations.append(
            "Consider making heavily-used indirect dependencies direct: "
            f"{', '.join(d.path for d in heavy_indirect)}"
        )

    stdlib_count = sum(1 for d in dependencies if d.is_standard_library)
    if stdlib_count < 5 and len(dependencies) > 10:
        recommendations.append(
            "Consider using more Go standard library packages to reduce external dependencies"
        )

    if project.module_mode and not project.has_go_sum:
        recommendations.append(
            "go.sum file missing - run `go mod download` to generate checksums for security"
        )
    return recommendations


async def analyze_go_dependencies(
    project_path: str = ".",
    include_tests: bool = True,
    include_build_tags: Optional[List[str]] = None,
    max_depth: int = 10,
    analyze_indirect: bool = True,
) -> Dict[str, Any]:
    """
    Analyze how a Go module uses its imports.

    Raises:
        FileNotFoundError: If project_path does not exist.
        ValueError: If the directory holds no Go code.
    """
    root = Path(project_path).resolve()
    project = detect_go_project(str(root))
    if not project.is_go_project:
        raise ValueError("Not a Go project - no Go files found")

    exclude = ["**/vendor/**", "vendor/**"]
    if not include_tests:
        exclude.append("**/*_test.go")
    paths = find_source_files(str(root), ["**/*.go"], exclude, max_depth)

    files: List[Dict[str, Any]] = []
    parsed_files: List[GoSourceFile] = []
    packages: Dict[str, Dict[str, Any]] = {}
    dependencies: Dict[str, GoDependency] = {}
    required_modules = [r.path for r in project.go_mod.requires] if project.go_mod else []

    for path in paths:
        rel = path.relative_to(root).as_posix()
        parsed = parse_go_source(read_text_safe(path))
        if include_build_tags:
            parsed.imports = [
                i for i in parsed.imports
                if not i.build_tags or any(tag in include_build_tags for tag in i.build_tags)
            ]
        parsed_files.append(parsed)

        package_name = parsed.package_name or "main"
        package = packages.setdefault(
            f"{Path(rel).parent.as_posix()}:{package_name}",
            {"name": package_name, "path": Path(rel).parent.as_posix(), "file_count": 0, "dependencies": set()},
        )
        package["file_count"] += 1

        stdlib, external, internal = [], [], []
        for usage in parsed.imports:
            module = extract_go_module_path(usage.import_path, required_modules)
            if is_go_standard_library(usage.import_path):
                bucket, value = stdlib, usage.import_path
            elif project.module_path and usage.import_path.startswith(project.module_path):
                bucket, value = internal, usage.import_path
            else:
                bucket, value = external, module
            if value not in bucket:
                bucket.append(value)
            if bucket is internal:
                continue

            dep = dependencies.setdefault(module, GoDependency(
                path=module,
                is_standard_library=is_go_standard_library(module),
                cgo_required=module == "C",
            ))
            dep.usage_count += 1
            dep.usage_patterns.append(usage)
            for tag in usage.build_tags:
                if tag not in dep.build_constraints:
                    dep.build_constraints.append(tag)
            package["dependencies"].add(module)

        files.append({
            "file_path": rel,
            "package_name": package_name,
            "is_test_file": rel.endswith("_test.go"),
            "total_imports": len(parsed.imports),
            "standard_library_imports": stdlib,
            "external_dependencies": external,
            "internal_dependencies": internal,
            "imports": [usage.to_dict() for usage in parsed.imports],
            "build_tags": parsed.build_tags,
            "cgo_usage": parsed.cgo_usage,
        })

    if project.go_mod:
        for requirement in project.go_mod.requires:
            dep = dependencies.get(requirement.path)
            if dep is None:
                continue
            dep.version = requirement.version
            dep.is_direct = not requirement.indirect
            dep.is_indirect = requirement.indirect
        for old, new in project.go_mod.replaces.items():
            if old in dependencies:
                dependencies[old].is_replaced = True
                dependencies[old].replacement_path = new

    if project.module_mode and analyze_indirect:
        try:
            result = await run_command(["go", "mod", "graph"], cwd=str(root), check=False)
            graph = parse_go_mod_graph(result.stdout)
            for path, dep in dependencies.items():
                dep.dependency_path = graph.get(path, [])
        except (CommandError, CommandTimeoutError) as e:
            logger.debug(f"go mod graph failed: {e}")

    for dep in dependencies.values():
        assess_go_criticality(dep)

    ordered = sorted(dependencies.values(), key=lambda d: (-d.usage_count, d.path))
    build_info = summarize_build_info(parsed_files, ordered)
    package_list = [
        {
            "name": p["name"],
            "path": p["path"],
            "file_count": p["file_count"],
            "dependency_count": len(p["dependencies"]),
        }
        for p in packages.values()
    ]

    logger.info(f"Analyzed {len(files)} Go files, {len(ordered)} imported modules in {root}")
    return {
        "project_path": str(root),
        "module_info": {
            "module_path": project.module_path,
            "go_version": project.go_version,
            "is_workspace": project.is_workspace,
            "workspace_modules": project.workspace_modules,
        },
        "analysis_results": {
            "total_files": len(files),
            "total_packages": len(package_list),
            "total_dependencies": len(ordered),
            "direct_dependencies": sum(1 for d in ordered if d.is_direct),
            "indirect_dependencies": sum(1 for d in ordered if d.is_indirect),
            "standard_library_usage": sum(1 for d in ordered if d.is_standard_library),
            "high_criticality_deps": sum(1 for d in ordered if d.criticality == Criticality.HIGH),
            "medium_criticality_deps": sum(1 for d in ordered if d.criticality == Criticality.MEDIUM),
            "low_criticality_deps": sum(1 for d in ordered if d.criticality == Criticality.LOW),
            "cgo_usage": sum(1 for d in ordered if d.cgo_required),
            "replaced_dependencies": sum(1 for d in ordered if d.is_replaced),
        },
        "dependencies": [d.to_dict() for d in ordered],
        "files": files,
        "packages": package_list,
        "build_info": build_info,
        "recommendations": generate_go_recommendations(ordered, project, build_info),
    }


class GoDependencyAnalysisInput(BaseModel):
    project_path: str = Field(".", description="Path to the Go project directory")
    include_tests: bool = Field(True, description="Include _test.go files")
    include_build_tags: List[str] = Field(
        default_factory=list, description="Only keep constrained imports carrying one of these tags"
    )
    max_depth: int = Field(10, ge=1, description="Maximum directory depth to search")
    analyze_indirect: bool = Field(True, description="Read `go mod graph` for dependency paths")


class GoDependencyAnalysisTool(BaseTool):
    name = "go_dependency_analysis"
    description = (
        "Analyze Go code to identify how modules are imported, their criticality, build "
        "constraints, cgo usage and replace directives, with recommendations."
    )
    input_model = GoDependencyAnalysisInput

    async def execute(
        self,
        project_path: str = ".",
        include_tests: bool = True,
        include_build_tags: Optional[List[str]] = None,
        max_depth: int = 10,
        analyze_indirect: bool = True,
    ) -> ToolResult:
        try:
            data = await analyze_go_dependencies(
                project_path, include_tests, include_build_tags, max_depth, analyze_indirect
            )
        except FileNotFoundError as e:
            return ToolResult(success=False, error=str(e))
        except (OSError, ValueError) as e:
            return ToolResult(success=False, error=f"Failed to analyze Go dependencies: {e}")
        return ToolResult(success=True, data=data)
