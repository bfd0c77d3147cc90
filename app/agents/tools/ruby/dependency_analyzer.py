"""
Ruby Dependency Analyzer - Gem usage, criticality and Bundler hygiene.

FLOW:
1. Parse Gemfile (declarations, groups, git sources) and Gemfile.lock (resolved versions)
2. Scan .rb files for require/require_relative/load/autoload and Bundler.require
3. Merge declared gems with gems required but never declared
4. Score criticality, list security concerns, recommend, compute a health score
"""

import logging
import re
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.agents.base import BaseTool, ToolResult
from app.agents.tools.ruby.bundler import Gemfile, GemfileLock, parse_gemfile, parse_gemfile_lock
from app.agents.tools.ruby.package_manager import RubyProjectInfo, detect_ruby_project
from app.models.schemas import Criticality
from app.services.source_walker import find_source_files, read_text_safe

logger = logging.getLogger(__name__)


DEFAULT_INCLUDE = ["**/*.rb", "**/Rakefile", "**/*.gemspec"]
DEFAULT_EXCLUDE = ["**/node_modules/**", "**/vendor/**", "**/tmp/**", "**/.git/**"]

REQUIRE_PATTERN = re.compile(
    r"""^(\s*)(require|require_relative|load|autoload)\s*\(?\s*(?::\w+\s*,\s*)?['"]([^'"]+)['"]"""
)
BUNDLER_REQUIRE = re.compile(r"\bBundler\.require\b")
CONDITIONAL_LINE = re.compile(r"^\s*(if|unless|rescue|begin)\b|\s(if|unless)\s")
SCOPE_BOUNDARY = re.compile(r"^\s*(def|class|module|end)\b")

CORE_GEMS = ("rails", "activerecord", "activesupport", "bundler")
RAILS_COMPONENTS = ("actionpack", "actionview", "actionmailer", "activejob")
DEV_GROUPS = ("development", "test")

RUBY_STDLIB = frozenset({
    "json", "csv", "uri", "net", "http", "https", "fileutils", "pathname", "digest",
    "base64", "time", "date", "logger", "benchmark", "yaml", "erb", "cgi",
    "securerandom", "ostruct", "set", "tempfile", "tmpdir", "open3", "optparse",
    "socket", "stringio", "timeout", "zlib", "openssl", "English", "forwardable",
    "singleton", "observer", "shellwords", "pp", "prettyprint", "psych", "ripper",
    "strscan", "weakref", "monitor", "etc", "find", "io", "objspace", "coverage",
})


@dataclass
class RubyRequire:
    type: str
    target: str
    gem_name: str
    line: int
    raw_statement: str
    is_conditional: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class RubyGem:
    name: str
    version_constraint: Optional[str] = None
    resolved_version: Optional[str] = None
    groups: List[str] = field(default_factory=list)
    source: Optional[str] = None
    is_declared: bool = True
    usage_count: int = 0
    files: List[str] = field(default_factory=list)
    criticality: Criticality = Criticality.LOW
    criticality_reasons: List[str] = field(default_factory=list)

    @property
    def is_production(self) -> bool:
        return not self.groups

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["criticality"] = self.criticality.value
        return data


def gem_name_for(target: str) -> str:
    """`active_support/core_ext` -> `active_support`; relative paths -> `relative`."""
    if target.startswith("./") or target.startswith("../"):
        return "relative"
    return target.split("/", 1)[0]


def is_conditional(lines: List[str], index: int) -> bool:
    """Look back from a require for an enclosing if/unless/rescue/begin in the same scope."""
    if CONDITIONAL_LINE.search(lines[index].split("#", 1)[0]):
        return True
    for previous in reversed(lines[:index]):
        if not previous.strip() or SCOPE_BOUNDARY.match(previous):
            return False
        if CONDITIONAL_LINE.search(previous):
            return True
    return False


def parse_ruby_requires(content: str) -> List[RubyRequire]:
    requires: List[RubyRequire] = []
    lines = content.splitlines()
    for index, line in enumerate(lines):
        if line.lstrip().startswith("#"):
            continue
        match = REQUIRE_PATTERN.match(line)
        if match:
            kind, target = match.group(2), match.group(3)
            requires.append(RubyRequire(
                type=kind,
                target=target,
                gem_name="relative" if kind == "require_relative" else gem_name_for(target),
                line=index + 1,
                raw_statement=line.strip(),
                is_conditional=is_conditional(lines, index),
            ))
        elif BUNDLER_REQUIRE.search(line):
            requires.append(RubyRequire(
                type="bundler-require",
                target="Bundler.require",
                gem_name="bundler",
                line=index + 1,
                raw_statement=line.strip(),
            ))
    return requires


def assess_gem_criticality(gem: RubyGem, is_rails: bool = False) -> Criticality:
    reasons: List[str] = []
    if gem.name in CORE_GEMS:
        reasons.append("Core framework gem")
    if is_rails and gem.name in RAILS_COMPONENTS:
        reasons.append("Rails component")
    if gem.usage_count >= 10:
        reasons.append(f"High usage ({gem.usage_count} requires)")

    if reasons:
        level = Criticality.HIGH
    else:
        if gem.usage_count >= 5:
            reasons.append(f"Moderate usage ({gem.usage_count} requires)")
        if gem.is_declared and gem.is_production:
            reasons.append("Production dependency")
        level = Criticality.MEDIUM if reasons else Criticality.LOW
        if not reasons:
            reasons.append("Development or test only, low usage")

    gem.criticality = level
    gem.criticality_reasons = reasons
    return level


def identify_security_concerns(gems: List[RubyGem], has_lock: bool) -> List[str]:
    concerns: List[str] = []
    unpinned = [g for g in gems if g.is_declared and g.is_production and not g.version_constraint and not g.source]
    if unpinned:
        concerns.append(f"{len(unpinned)} gems without version constraints (security risk)")

    git_sourced = [g for g in gems if g.source and not g.source.startswith("path:")]
    if git_sourced:
        names = ", ".join(g.name for g in git_sourced[:5])
        concerns.append(f"{len(git_sourced)} gems installed from git sources ({names}) bypass gem signing")

    undeclared = [g for g in gems if not g.is_declared]
    if undeclared:
        concerns.append(f"{len(undeclared)} gems used in code but not declared in Gemfile")

    if not has_lock:
        concerns.append("Gemfile.lock is missing (inconsistent dependency versions)")

    leaked = [
        g for g in gems
        if g.groups and all(group in DEV_GROUPS for group in g.groups) and g.files
        and any(not f.startswith(("spec/", "test/")) for f in g.files)
    ]
    if leaked:
        concerns.append(f"{len(leaked)} development gems required from production code")
    return concerns


def generate_ruby_recommendations(
    gems: List[RubyGem],
    project: RubyProjectInfo,
    gemfile: Optional[Gemfile],
    rails_version: Optional[str],
) -> List[str]:
    recommendations: List[str] = []
    unpinned = [g for g in gems if g.is_declared and not g.version_constraint and not g.source]
    if unpinned:
        recommendations.append(
            f"Add pessimistic version constraints (~>) to {len(unpinned)} gems for predictable upgrades"
        )

    unused = [g for g in gems if g.is_declared and g.usage_count == 0 and g.is_production and g.name not in CORE_GEMS]
    if unused:
        recommendations.append(
            f"Review {len(unused)} production gems that are never required directly "
            f"({', '.join(g.name for g in unused[:5])})"
        )

    if gemfile is not None and len(gemfile.groups) < 2:
        recommendations.append("Consider organizing gems into development and test groups")

    if project.has_gemfile and not project.has_gemfile_lock:
        recommendations.append("Run `bundle install` and commit Gemfile.lock")

    recommendations.append("Run `bundle audit` regularly to check for vulnerable gems")

    if any(not g.resolved_version for g in gems if g.is_declared):
        recommendations.append("Run `bundle outdated` to check for newer gem versions")

    if rails_version:
        major = rails_version.lstrip("~>=< ").split(".")[0]
        if major.isdigit() and int(major) < 7:
            recommendations.append(f"Consider upgrading Rails {rails_version} to 7.x for security support")

    heavy = [g for g in gems if g.usage_count >= 10 and g.name != "relative"]
    if heavy:
        recommendations.append(
            f"Review high-usage gems ({', '.join(g.name for g in heavy[:5])}) before major upgrades"
        )
    return recommendations


def summarize_health(
    concerns: List[str], recommendations: List[str], gems: List[RubyGem]
) -> Dict[str, Any]:
    critical = [c for c in concerns if any(k in c for k in ("security risk", "missing", "production"))]
    warnings = [c for c in concerns if c not in critical]
    suggestions = [r for r in recommendations if "Consider" in r or "Review" in r]
    unconstrained = sum(1 for g in gems if g.is_declared and not g.version_constraint)
    unused = sum(1 for g in gems if g.is_declared and g.usage_count == 0)

    score = 100 - 20 * len(critical) - 10 * len(warnings)
    score -= min(5 * unconstrained, 30)
    score -= min(3 * unused, 20)
    return {
        "critical_issues": critical,
        "warnings": warnings,
        "suggestions": suggestions,
        "health_score": max(0, min(100, score)),
    }


def _load_bundler_files(root: Path):
    gemfile = lock = None
    if (root / "Gemfile").is_file():
        gemfile = parse_gemfile((root / "Gemfile").read_text(encoding="utf-8"))
    if (root / "Gemfile.lock").is_file():
        lock = parse_gemfile_lock((root / "Gemfile.lock").read_text(encoding="utf-8"))
    return gemfile, lock


def _declared_gems(gemfile: Optional[Gemfile], lock: Optional[GemfileLock]) -> Dict[str, RubyGem]:
    gems: Dict[str, RubyGem] = {}
    if gemfile is None:
        return gems
    for name, declaration in gemfile.gems.items():
        gems[name] = RubyGem(
            name=name,
            version_constraint=declaration.version_constraint,
            resolved_version=lock.specs.get(name) if lock else None,
            groups=declaration.groups,
            source=declaration.source,
        )
    return gems


def analyze_ruby_dependencies(
    project_path: str = ".",
    include_patterns: Optional[List[str]] = None,
    exclude_patterns: Optional[List[str]] = None,
    max_depth: int = 10,
) -> Dict[str, Any]:
    """
    Analyze gem usage in a Ruby project.

    Raises:
        FileNotFoundError: If project_path does not exist.
        ValueError: If the directory is not a Ruby project.
    """
    root = Path(project_path).resolve()
    project = detect_ruby_project(str(root))
    paths = find_source_files(
        str(root), include_patterns or DEFAULT_INCLUDE, exclude_patterns or DEFAULT_EXCLUDE, max_depth
    )
    if not project.is_ruby_project and not paths:
        raise ValueError("Not a Ruby project - no Gemfile or Ruby files found")

    gemfile, lock = _load_bundler_files(root)
    gems = _declared_gems(gemfile, lock)

    files: List[Dict[str, Any]] = []
    for path in paths:
        rel = path.relative_to(root).as_posix()
        requires = parse_ruby_requires(read_text_safe(path))
        for usage in requires:
            if usage.type == "bundler-require":
                continue
            if usage.gem_name == "relative" or usage.gem_name in RUBY_STDLIB:
                continue
            gem = gems.get(usage.gem_name) or gems.get(usage.gem_name.replace("_", "-"))
            if gem is None:
                gem = gems.setdefault(usage.gem_name, RubyGem(
                    name=usage.gem_name,
                    resolved_version=lock.specs.get(usage.gem_name) if lock else None,
                    is_declared=False,
                ))
            gem.usage_count += 1
            if rel not in gem.files:
                gem.files.append(rel)
        files.append({
            "file_path": rel,
            "total_requires": len(requires),
            "requires": [r.to_dict() for r in requires],
            "conditional_requires": sum(1 for r in requires if r.is_conditional),
        })

    for gem in gems.values():
        assess_gem_criticality(gem, project.is_rails)

    ordered = sorted(gems.values(), key=lambda g: (-g.usage_count, g.name))
    rails = gems.get("rails")
    rails_version = (rails.resolved_version or rails.version_constraint) if rails else None

    concerns = identify_security_concerns(ordered, project.has_gemfile_lock)
    recommendations = generate_ruby_recommendations(ordered, project, gemfile, rails_version)

    logger.info(f"Analyzed {len(files)} Ruby files, {len(ordered)} gems in {root}")
    return {
        "project_path": str(root),
        "project_info": project.to_dict(),
        "analysis_results": {
            "total_files": len(files),
            "total_gems": len(ordered),
            "declared_gems": sum(1 for g in ordered if g.is_declared),
            "undeclared_gems": sum(1 for g in ordered if not g.is_declared),
            "production_gems": sum(1 for g in ordered if g.is_declared and g.is_production),
            "high_criticality_gems": sum(1 for g in ordered if g.criticality == Criticality.HIGH),
            "medium_criticality_gems": sum(1 for g in ordered if g.criticality == Criticality.MEDIUM),
            "low_criticality_gems": sum(1 for g in ordered if g.criticality == Criticality.LOW),
            "rails_version": rails_version,
        },
        "gems": [g.to_dict() for g in ordered],
        "files": files,
        "security_concerns": concerns,
        "recommendations": recommendations,
        "summary": summarize_health(concerns, recommendations, ordered),
    }


class RubyDependencyAnalysisInput(BaseModel):
    project_path: str = Field(".", description="Path to the Ruby project directory")
    include_patterns: List[str] = Field(default_factory=list, description="Glob patterns to include")
    exclude_patterns: List[str] = Field(default_factory=list, description="Glob patterns to exclude")
    max_depth: int = Field(10, ge=1, description="Maximum directory depth to search")


class RubyDependencyAnalysisTool(BaseTool):
    name = "ruby_dependency_analysis"
    description = (
        "Analyze a Ruby/Bundler project: gem declarations and groups, require usage, "
        "criticality, security concerns and a dependency health score."
    )
    input_model = RubyDependencyAnalysisInput

    async def execute(
        self,
        project_path: str = ".",
        include_patterns: Optional[List[str]] = None,
        exclude_patterns: Optional[List[str]] = None,
        max_depth: int = 10,
    ) -> ToolResult:
        try:
            data = analyze_ruby_dependencies(project_path, include_patterns, exclude_patterns, max_depth)
        except FileNotFoundError as e:
            return ToolResult(success=False, error=str(e))
        except (OSError, ValueError) as e:
            return ToolResult(success=False, error=f"Failed to analyze Ruby dependencies: {e}")
        return ToolResult(success=True, data=data)
