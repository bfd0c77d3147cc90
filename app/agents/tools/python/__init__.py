"""Python dependency tools."""

from app.agents.tools.python.imports import PythonImport, parse_python_imports
from app.agents.tools.python.package_manager import (
    PythonPackageManagerResult,
    detect_python_package_manager,
    PythonPackageManagerDetectorTool,
)
from app.agents.tools.python.dependency_analyzer import (
    PythonDependency,
    assess_python_criticality,
    analyze_python_dependencies,
    PythonDependencyAnalysisTool,
)

__all__ = [
    "PythonImport",
    "parse_python_imports",
    "PythonPackageManagerResult",
    "detect_python_package_manager",
    "PythonPackageManagerDetectorTool",
    "PythonDependency",
    "assess_python_criticality",
    "analyze_python_dependencies",
    "PythonDependencyAnalysisTool",
]
