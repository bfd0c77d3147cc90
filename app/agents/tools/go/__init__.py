"""Go module tools."""

from app.agents.tools.go.package_manager import (
    GoProjectInfo,
    parse_go_mod,
    detect_go_project,
    GoPackageManagerDetectorTool,
)
from app.agents.tools.go.dependency_analyzer import (
    GoDependency,
    parse_go_source,
    assess_go_criticality,
    analyze_go_dependencies,
    GoDependencyAnalysisTool,
)

__all__ = [
    "GoProjectInfo",
    "parse_go_mod",
    "detect_go_project",
    "GoPackageManagerDetectorTool",
    "GoDependency",
    "parse_go_source",
    "assess_go_criticality",
    "analyze_go_dependencies",
    "GoDependencyAnalysisTool",
]
