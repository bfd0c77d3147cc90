"""JVM (Maven, Gradle, sbt) tools."""

from app.agents.tools.java.build_files import (
    JvmDependency,
    parse_pom,
    parse_gradle_build,
    parse_sbt_build,
)
from app.agents.tools.java.build_tool import (
    JavaBuildToolResult,
    detect_java_build_tool,
    JavaBuildToolDetectorTool,
)
from app.agents.tools.java.dependency_analyzer import (
    JavaDependency,
    assess_java_criticality,
    analyze_java_dependencies,
    JavaDependencyAnalysisTool,
)

__all__ = [
    "JvmDependency",
    "parse_pom",
    "parse_gradle_build",
    "parse_sbt_build",
    "JavaBuildToolResult",
    "detect_java_build_tool",
    "JavaBuildToolDetectorTool",
    "JavaDependency",
    "assess_java_criticality",
    "analyze_java_dependencies",
    "JavaDependencyAnalysisTool",
]
