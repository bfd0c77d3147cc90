"""
JVM build tool detection - Maven, Gradle and sbt.

Each indicator adds to its tool's score; the highest score is the primary
tool. Confidence: high at 10+, medium at 5+.
"""

import logging
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.agents.base import BaseTool, ToolResult
from app.agents.tools.java.build_files import parse_gradle_settings, parse_pom
from app.services.source_walker import find_source_files, read_text_safe

logger = logging.getLogger(__name__)


INDICATORS: Dict[str, List[tuple]] = {
    "maven": [
        ("pom.xml", "file", 10),
        ("mvnw", "file", 5),
        ("target", "dir", 3),
        (".mvn", "dir", 2),
    ],
    "gradle": [
        ("build.gradle", "file", 8),
        ("build.gradle.kts", "file", 10),
        ("settings.gradle", "file", 5),
        ("settings.gradle.kts", "file", 5),
        ("gradlew", "file", 5),
        (".gradle", "dir", 2),
    ],
    "sbt": [
        ("build.sbt", "file", 10),
        ("project/build.properties", "file", 5),
        ("project/plugins.sbt", "file", 3),
    ],
}

SOURCE_LAYOUT = [
    "src/main/java", "src/main/kotlin", "src/main/scala", "src/main/groovy",
]
TEST_LAYOUT = ["src/test/java", "src/test/kotlin", "src/test/scala"]
SOURCE_EXCLUDE = ["**/target/**", "**/build/**", "**/out/**", "**/generated/**"]


@dataclass
class JavaBuildToolResult:
    detected_tools: List[str] = field(default_factory=list)
    primary_tool: Optional[str] = None
    confidence: str = "low"
    scores: Dict[str, int] = field(default_factory=dict)
    indicators: Dict[str, List[str]] = field(default_factory=dict)
    languages: List[str] = field(default_factory=list)
    source_directories: List[str] = field(default_factory=list)
    test_directories: List[str] = field(default_factory=list)
    modules: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    @property
    def is_multi_module(self) -> bool:
        return bool(self.modules)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["is_multi_module"] = self.is_multi_module
        return data


def _present(root: Path, relative: str, kind: str) -> bool:
    path = root / relative
    return path.is_dir() if kind == "dir" else path.is_file()


def _detect_languages(root: Path, max_depth: int) -> List[str]:
    files = find_source_files(str(root), ["**/*.{java,kt,scala,groovy}"], SOURCE_EXCLUDE, max_depth)
    suffixes = {p.suffix for p in files}
    names = {".java": "java", ".kt": "kotlin", ".scala": "scala", ".groovy": "groovy"}
    return [names[s] for s in (".java", ".kt", ".scala", ".groovy") if s in suffixes]


def _detect_modules(root: Path, primary: Optional[str]) -> List[str]:
    if primary == "maven" and (root / "pom.xml").is_file():
        try:
            return parse_pom(read_text_safe(root / "pom.xml")).modules
        except ValueError as e:
            logger.warning(f"Could not read modules from pom.xml: {e}")
            return []
    if primary == "gradle":
        for name in ("settings.gradle.kts", "settings.gradle"):
            if (root / name).is_file():
                return parse_gradle_settings(read_text_safe(root / name))
    return []


def _recommend(result: JavaBuildToolResult, root: Path) -> List[str]:
    recommendations: List[str] = []
    if not result.detected_tools:
        if "java" in result.languages:
            recommendations.append("No build tool detected. Consider adding Maven (pom.xml) or Gradle (build.gradle)")
        if "scala" in result.languages:
            recommendations.append("Scala sources detected. Consider using sbt (build.sbt)")
        return recommendations

    if len(result.detected_tools) > 1:
        recommendations.append(
            f"Multiple build tools detected: {', '.join(result.detected_tools)}. Consider consolidating to one"
        )
    if "maven" in result.detected_tools and "mvnw" not in result.indicators["maven"]:
        recommendations.append("Consider adding the Maven wrapper (mvnw) for reproducible builds")
    if "gradle" in result.detected_tools:
        if "gradlew" not in result.indicators["gradle"]:
            recommendations.append("Consider adding the Gradle wrapper (gradlew) for reproducible builds")
        if "build.gradle" in result.indicators["gradle"] and "kotlin" in result.languages:
            recommendations.append("Consider migrating to the Kotlin DSL (build.gradle.kts)")
        if not (root / "gradle" / "libs.versions.toml").is_file() and len(result.modules) > 1:
            recommendations.append("Consider a version catalog (gradle/libs.versions.toml) to share versions across modules")
    if "sbt" in result.detected_tools and "project/build.properties" not in result.indicators["sbt"]:
        recommendations.append("Add project/build.properties to pin the sbt version")
    if len(result.modules) > 5:
        recommendations.append("Large multi-module build. Consider a BOM or platform for dependency versions")
    if result.languages and not result.source_directories:
        recommendations.append("Sources are outside the standard src/main layout")
    return recommendations


def detect_java_build_tool(project_path: str, max_depth: int = 5) -> JavaBuildToolResult:
    """
    Score Maven, Gradle and sbt indicators in a project directory.

    Raises:
        FileNotFoundError: If project_path does not exist.
    """
    root = Path(project_path).resolve()
    if not root.exists():
        raise FileNotFoundError(f"Project path does not exist: {root}")

    result = JavaBuildToolResult()
    result.languages = _detect_languages(root, max_depth)

    for tool, indicators in INDICATORS.items():
        found = [name for name, kind, _ in indicators if _present(root, name, kind)]
        score = sum(weight for name, kind, weight in indicators if name in found)
        if tool == "sbt" and "scala" in result.languages:
            found.append("scala sources")
            score += 5
        result.indicators[tool] = found
        result.scores[tool] = score

    # target/ or scala sources alone do not make a build
    anchors = {
        "maven": {"pom.xml", "mvnw"},
        "gradle": {"build.gradle", "build.gradle.kts", "settings.gradle", "settings.gradle.kts", "gradlew"},
        "sbt": {"build.sbt", "project/build.properties", "project/plugins.sbt"},
    }
    result.detected_tools = [
        tool for tool in INDICATORS if anchors[tool] & set(result.indicators[tool])
    ]
    if result.detected_tools:
        result.primary_tool = max(result.detected_tools, key=lambda t: result.scores[t])
        best = result.scores[result.primary_tool]
        result.confidence = "high" if best >= 10 else "medium" if best >= 5 else "low"

    result.source_directories = [d for d in SOURCE_LAYOUT if (root / d).is_dir()]
    result.test_directories = [d for d in TEST_LAYOUT if (root / d).is_dir()]
    result.modules = _detect_modules(root, result.primary_tool)
    result.recommendations = _recommend(result, root)

    logger.info(f"JVM build tool at {root}: {result.primary_tool} ({result.confidence})")
    return result


class JavaBuildToolInput(BaseModel):
    project_path: str = Field(".", description="Path to the project directory to analyze")
    max_depth: int = Field(5, ge=1, description="Maximum directory depth to search for sources")


class JavaBuildToolDetectorTool(BaseTool):
    name = "java_build_tool_detector"
    description = (
        "Detect JVM build tools (Maven, Gradle, sbt), the primary tool with a confidence "
        "level, source languages, modules, and build hygiene recommendations."
    )
    input_model = JavaBuildToolInput

    async def execute(self, project_path: str = ".", max_depth: int = 5) -> ToolResult:
        try:
            result = detect_java_build_tool(project_path, max_depth)
        except FileNotFoundError as e:
            return ToolResult(success=False, error=str(e))
        except OSError as e:
            return ToolResult(success=False, error=f"Failed to detect Java build tools: {e}")
        return ToolResult(success=True, data=result.to_dict())
