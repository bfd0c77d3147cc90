"""Ruby/Bundler tools."""

from app.agents.tools.ruby.bundler import parse_gemfile, parse_gemfile_lock
from app.agents.tools.ruby.package_manager import (
    RubyProjectInfo,
    detect_ruby_project,
    RubyPackageManagerDetectorTool,
)
from app.agents.tools.ruby.dependency_analyzer import (
    RubyGem,
    parse_ruby_requires,
    assess_gem_criticality,
    analyze_ruby_dependencies,
    RubyDependencyAnalysisTool,
)

__all__ = [
    "parse_gemfile",
    "parse_gemfile_lock",
    "RubyProjectInfo",
    "detect_ruby_project",
    "RubyPackageManagerDetectorTool",
    "RubyGem",
    "parse_ruby_requires",
    "assess_gem_criticality",
    "analyze_ruby_dependencies",
    "RubyDependencyAnalysisTool",
]
