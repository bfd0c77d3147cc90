"""JavaScript/TypeScript dependency tools."""

from app.agents.tools.javascript.imports import (
    ImportUsage,
    parse_js_imports,
    is_external_dependency,
    extract_package_name,
)
from app.agents.tools.javascript.package_manager import (
    PackageManagerResult,
    detect_js_package_manager,
    JSPackageManagerDetectorTool,
)
from app.agents.tools.javascript.dependency_analyzer import (
    JSDependency,
    assess_dependency_criticality,
    analyze_js_dependencies,
    JSDependencyAnalysisTool,
)

__all__ = [
    "ImportUsage",
    "parse_js_imports",
    "is_external_dependency",
    "extract_package_name",
    "PackageManagerResult",
    "detect_js_package_manager",
    "JSPackageManagerDetectorTool",
    "JSDependency",
    "assess_dependency_criticality",
    "analyze_js_dependencies",
    "JSDependencyAnalysisTool",
]
