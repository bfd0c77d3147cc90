"""
Java Dependency Analyzer - Declared JVM dependencies, their source usage and criticality.

FLOW:
1. Detect the build tool (Maven, Gradle or sbt)
2. Parse the build file(s) into JvmDependency entries
3. Optionally run `mvn dependency:tree` / `gradle dependencies` for transitive entries
4. Count `import` statements in .java/.kt/.scala sources per dependency group
5. Score criticality and recommend
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.agents.base import BaseTool, ToolResult
from app.agents.tools.java.build_files import (
    JvmDependency,
    parse_gradle_build,
    parse_gradle_tree,
    parse_maven_tree,
    parse_pom,
    parse_sbt_build,
    parse_version_catalog,
)
from app.agents.tools.java.build_tool import detect_java_build_tool
from app.core.config import get_settings
from app.models.schemas import Criticality
from app.services.command_runner import CommandError, CommandTimeoutError, run_command
from app.services.source_walker import find_source_files, read_text_safe

logger = logging.getLogger(__name__)


FRAMEWORK_KEYWORDS = (
    "spring", "hibernate", "jakarta", "javax", "jackson", "netty",
    "guava", "log4j", "slf4j", "junit", "akka",
)

COMPILE_SCOPES = {"compile", "implementation", "api"}
RUNTIME_SCOPES = {"runtime", "runtimeonly"}
TEST_SCOPES = {"test", "testimplementation", "testruntimeonly", "testcompileonly"}

IMPORT_LINE = re.compile(r"^\s*import\s+(?:static\s+)?([\w.]+)", re.MULTILINE)
SOURCE_INCLUDE = ["**/*.{java,kt,scala,groovy}"]
SOURCE_EXCLUDE = ["**/target/**", "**/build/**", "**/out/**", "**/generated/**"]


@dataclass
class JavaDependency:
    declaration: JvmDependency
    usage_count: int = 0
    files: List[str] = field(default_factory=list)
    criticality: Criticality = Criticality.LOW
    criticality_score: int = 0
    criticality_reasons: List[str] = field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.declaration.group_id}:{self.declaration.artifact_id}"

    def to_dict(self) -> Dict[str, Any]:
        data = self.declaration.to_dict()
        data.update({
            "usage_count": self.usage_count,
            "files": self.files[:20],
            "criticality": self.criticality.value,
            "criticality_score": self.criticality_score,
            "criticality_reasons": self.criticality_reasons,
        })
        return data


def normalized_scope(dep: JvmDependency) -> str:
    """Maven omits the default `compile` scope."""
    return (dep.scope or "compile").lower()


def assess_java_criticality(dep: JavaDependency) -> Criticality:
    declaration = dep.declaration
    scope = normalized_scope(declaration)
    score = 0
    reasons: List[str] = []

    if scope in COMPILE_SCOPES:
        score += 2
        reasons.append(f"{scope} scope (required at runtime)")
    elif scope in RUNTIME_SCOPES:
        score += 1
        reasons.append("Runtime scope")
    elif scope in TEST_SCOPES:
        score -= 1
        reasons.append("Test scope")

    if declaration.optional:
        score -= 1
        reasons.append("Optional dependency")

    coordinates = dep.key.lower()
    if any(keyword in coordinates for keyword in FRAMEWORK_KEYWORDS):
        score += 2
        reasons.append("Core framework or infrastructure library")

    if not declaration.version:
        score += 1
        reasons.append("Version managed elsewhere (BOM, parent or plugin)")

    if dep.usage_count >= 10:
        score += 2
        reasons.append(f"Imported {dep.usage_count} times")
    elif dep.usage_count >= 5:
        score += 1
        reasons.append(f"Imported {dep.usage_count} times")

    dep.criticality_score = score
    dep.criticality_reasons = reasons
    dep.criticality = Criticality.HIGH if score >= 4 else Criticality.MEDIUM if score >= 2 else Criticality.LOW
    return dep.criticality


def _import_prefix(dep: JvmDependency) -> Optional[str]:
    """
    Package prefix used to attribute imports: the first three segments of the
    group id (com.fasterxml.jackson.core -> com.fasterxml.jackson), or None
    when the group is too generic to match on.
    """
    group = dep.group_id
    if not group or group == "libs" or group.count(".") < 1:
        return None
    return ".".join(group.split(".")[:3])


def count_source_usage(root: Path, dependencies: List[JavaDependency], max_depth: int = 10) -> int:
    """Attribute `import` statements to dependencies by group-id prefix. Returns files scanned."""
    prefixes = [(d, _import_prefix(d.declaration)) for d in dependencies]
    prefixes = [(d, p) for d, p in prefixes if p]
    paths = find_source_files(str(root), SOURCE_INCLUDE, SOURCE_EXCLUDE, max_depth)
    for path in paths:
        rel = path.relative_to(root).as_posix()
        for imported in IMPORT_LINE.findall(read_text_safe(path)):
            for dep, prefix in prefixes:
                if imported == prefix or imported.startswith(prefix + "."):
                    dep.usage_count += 1
                    if rel not in dep.files:
                        dep.files.append(rel)
    return len(paths)


def _load_declarations(root: Path, tool: str) -> Dict[str, Any]:
    """Build-file metadata and declared dependencies for the detected tool."""
    if tool == "maven":
        pom = parse_pom(read_text_safe(root / "pom.xml"))
        return {
            "dependencies": pom.dependencies,
            "metadata": {
                "group_id": pom.group_id,
                "artifact_id": pom.artifact_id,
                "version": pom.version,
                "packaging": pom.packaging,
                "parent": pom.parent,
                "modules": pom.modules,
                "properties": pom.properties,
                "managed_dependencies": [d.to_dict() for d in pom.managed_dependencies],
                "plugins": pom.plugins,
                "repositories": pom.repositories,
                "profiles": pom.profiles,
            },
        }

    if tool == "gradle":
        catalog_path = root / "gradle" / "libs.versions.toml"
        catalog = parse_version_catalog(read_text_safe(catalog_path)) if catalog_path.is_file() else {}
        build_file = root / "build.gradle.kts"
        if not build_file.is_file():
            build_file = root / "build.gradle"
        build = parse_gradle_build(read_text_safe(build_file), build_file.suffix == ".kts", catalog)
        return {
            "dependencies": build.dependencies,
            "metadata": {
                "build_file": build_file.name,
                "is_kotlin_dsl": build.is_kotlin_dsl,
                "plugins": build.plugins,
                "java_version": build.java_version,
                "has_version_catalog": bool(catalog),
            },
        }

    properties_path = root / "project" / "build.properties"
    sbt = parse_sbt_build(
        read_text_safe(root / "build.sbt"),
        read_text_safe(properties_path) if properties_path.is_file() else None,
    )
    return {
        "dependencies": sbt.dependencies,
        "metadata": {
            "scala_version": sbt.scala_version,
            "sbt_version": sbt.sbt_version,
            "organization": sbt.organization,
        },
    }


async def _load_transitive(root: Path, tool: str, wrapper: bool) -> List[JvmDependency]:
    if tool == "maven":
        cmd = ["./mvnw" if wrapper else "mvn", "dependency:tree", "-DoutputType=text"]
        parser = parse_maven_tree
    elif tool == "gradle":
        cmd = ["./gradlew" if wrapper else "gradle", "dependencies", "--configuration", "runtimeClasspath", "-q"]
        parser = parse_gradle_tree
    else:
        return []
    try:
        result = await run_command(
            cmd, cwd=str(root), timeout=get_settings().command_timeout_seconds, check=False
        )
    except (CommandError, CommandTimeoutError) as e:
        logger.warning(f"Dependency tree unavailable for {tool}: {e}")
        return []
    return parser(result.stdout)


def generate_java_recommendations(dependencies: List[JavaDependency], tool: str) -> List[str]:
    recommendations: List[str] = []
    direct = [d for d in dependencies if not d.declaration.is_transitive]

    high = [d for d in direct if d.criticality == Criticality.HIGH]
    if high:
        recommendations.append(
            f"Monitor {len(high)} high-criticality dependencies: {', '.join(d.key for d in high[:3])}"
        )

    snapshots = [d for d in direct if d.declaration.version and "SNAPSHOT" in d.declaration.version]
    if snapshots:
        recommendations.append(
            f"Replace {len(snapshots)} SNAPSHOT dependencies with released versions: "
            f"{', '.join(d.declaration.coordinates for d in snapshots)}"
        )

    dynamic = [
        d for d in direct
        if d.declaration.version and ("+" in d.declaration.version or "latest." in d.declaration.version)
    ]
    if dynamic:
        recommendations.append(f"Pin {len(dynamic)} dynamic versions (+ or latest.*) for reproducible builds")

    unresolved = [d for d in direct if d.declaration.version and "${" in d.declaration.version]
    if unresolved:
        recommendations.append(f"{len(unresolved)} versions reference undefined properties")

    unused = [
        d for d in direct
        if d.usage_count == 0 and normalized_scope(d.declaration) in COMPILE_SCOPES
        and _import_prefix(d.declaration)
    ]
    if unused:
        recommendations.append(
            f"Review {len(unused)} compile dependencies with no matching imports "
            f"({', '.join(d.key for d in unused[:5])})"
        )

    keys: Dict[str, set] = {}
    for d in dependencies:
        if d.declaration.version:
            keys.setdefault(d.key, set()).add(d.declaration.version)
    conflicts = [k for k, versions in keys.items() if len(versions) > 1]
    if conflicts:
        recommendations.append(f"Resolve {len(conflicts)} version conflicts: {', '.join(conflicts[:3])}")

    if tool == "maven" and len(direct) > 10:
        recommendations.append("Consider a dependencyManagement section or BOM for version alignment")
    if tool == "gradle" and len(direct) > 10:
        recommendations.append("Consider a version catalog (gradle/libs.versions.toml)")
    return recommendations


async def analyze_java_dependencies(
    project_path: str = ".",
    include_dependency_tree: bool = False,
    count_usage: bool = True,
    max_depth: int = 10,
) -> Dict[str, Any]:
    """
    Analyze the dependencies of a Maven, Gradle or sbt project.

    Raises:
        FileNotFoundError: If project_path does not exist.
        ValueError: If no JVM build tool is found or a build file is malformed.
    """
    root = Path(project_path).resolve()
    detection = detect_java_build_tool(str(root))
    tool = detection.primary_tool
    if tool is None:
        raise ValueError("No JVM build tool found (pom.xml, build.gradle(.kts) or build.sbt)")

    loaded = _load_declarations(root, tool)
    dependencies = [JavaDependency(declaration=d) for d in loaded["dependencies"]]

    if include_dependency_tree:
        wrapper = "mvnw" in detection.indicators.get(tool, []) or "gradlew" in detection.indicators.get(tool, [])
        declared = {d.key for d in dependencies}
        for transitive in await _load_transitive(root, tool, wrapper):
            if f"{transitive.group_id}:{transitive.artifact_id}" not in declared:
                dependencies.append(JavaDependency(declaration=transitive))

    files_scanned = count_source_usage(root, dependencies, max_depth) if count_usage else 0

    for dep in dependencies:
        assess_java_criticality(dep)

    ordered = sorted(dependencies, key=lambda d: (-d.criticality_score, d.key))
    scopes: Dict[str, int] = {}
    for d in ordered:
        scope = normalized_scope(d.declaration)
        scopes[scope] = scopes.get(scope, 0) + 1

    logger.info(f"Analyzed {len(ordered)} {tool} dependencies in {root}")
    return {
        "project_path": str(root),
        "build_tool": tool,
        "build_tool_confidence": detection.confidence,
        "project_info": loaded["metadata"],
        "modules": detection.modules,
        "analysis_results": {
            "total_dependencies": len(ordered),
            "direct_dependencies": sum(1 for d in ordered if not d.declaration.is_transitive),
            "transitive_dependencies": sum(1 for d in ordered if d.declaration.is_transitive),
            "scopes": scopes,
            "optional_dependencies": sum(1 for d in ordered if d.declaration.optional),
            "unversioned_dependencies": sum(1 for d in ordered if not d.declaration.version),
            "high_criticality_deps": sum(1 for d in ordered if d.criticality == Criticality.HIGH),
            "medium_criticality_deps": sum(1 for d in ordered if d.criticality == Criticality.MEDIUM),
            "low_criticality_deps": sum(1 for d in ordered if d.criticality == Criticality.LOW),
            "source_files_scanned": files_scanned,
        },
        "dependencies": [d.to_dict() for d in ordered],
        "recommendations": generate_java_recommendations(ordered, tool),
    }


class JavaDependencyAnalysisInput(BaseModel):
    project_path: str = Field(".", description="Path to the JVM project directory")
    include_dependency_tree: bool = Field(
        False, description="Run mvn/gradle to list transitive dependencies"
    )
    count_usage: bool = Field(True, description="Count import statements per dependency")
    max_depth: int = Field(10, ge=1, description="Maximum directory depth to search")


class JavaDependencyAnalysisTool(BaseTool):
    name = "java_dependency_analysis"
    description = (
        "Analyze Maven (pom.xml), Gradle (build.gradle/.kts, version catalog) or sbt "
        "dependencies: scopes, versions, source usage, criticality and recommendations."
    )
    input_model = JavaDependencyAnalysisInput

    async def execute(
        self,
        project_path: str = ".",
        include_dependency_tree: bool = False,
        count_usage: bool = True,
        max_depth: int = 10,
    ) -> ToolResult:
        try:
            data = await analyze_java_dependencies(project_path, include_dependency_tree, count_usage, max_depth)
        except FileNotFoundError as e:
            return ToolResult(success=False, error=str(e))
        except (OSError, ValueError) as e:
            return ToolResult(success=False, error=f"Failed to analyze Java dependencies: {e}")
        return ToolResult(success=True, data=data)
