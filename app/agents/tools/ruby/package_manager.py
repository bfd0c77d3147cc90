"""
Ruby/Bundler project detection.
"""

import logging
import re
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

from app.agents.base import BaseTool, ToolResult
from app.agents.tools.ruby.bundler import parse_gemfile, parse_gemfile_lock

logger = logging.getLogger(__name__)


RAILS_INDICATORS = [
    "config/application.rb",
    "config/environment.rb",
    "config/routes.rb",
    "app/controllers/application_controller.rb",
    "bin/rails",
]

BUNDLE_DIRS = [".bundle", "vendor/bundle", ".bundlercache"]


@dataclass
class RubyProjectInfo:
    is_ruby_project: bool = False
    package_manager: Optional[str] = None
    has_gemfile: bool = False
    has_gemfile_lock: bool = False
    gemspecs: List[str] = field(default_factory=list)
    ruby_version: Optional[str] = None
    version_manager: Optional[str] = None
    bundler_version: Optional[str] = None
    sources: List[str] = field(default_factory=list)
    groups: List[str] = field(default_factory=list)
    is_rails: bool = False
    rails_indicators: List[str] = field(default_factory=list)
    bundle_config: bool = False
    bundle_dirs: List[str] = field(default_factory=list)
    confidence: str = "low"

    def to_dict(self) -> dict:
        return asdict(self)


def _read_version_file(root: Path):
    """First of .ruby-version (rbenv), .rvmrc (rvm), .tool-versions (asdf)."""
    ruby_version = root / ".ruby-version"
    if ruby_version.is_file():
        value = ruby_version.read_text(encoding="utf-8").strip()
        if value:
            return value.removeprefix("ruby-"), "rbenv"

    rvmrc = root / ".rvmrc"
    if rvmrc.is_file():
        match = re.search(r"rvm\s+use\s+(?:ruby-)?([\w.\-]+)", rvmrc.read_text(encoding="utf-8"))
        if match:
            return match.group(1), "rvm"

    tool_versions = root / ".tool-versions"
    if tool_versions.is_file():
        match = re.search(r"^ruby\s+(\S+)", tool_versions.read_text(encoding="utf-8"), re.MULTILINE)
        if match:
            return match.group(1), "asdf"

    return None, None


def detect_ruby_project(project_path: str) -> RubyProjectInfo:
    """
    Look for Bundler files, Ruby version pins and Rails markers.

    Raises:
        FileNotFoundError: If project_path does not exist.
    """
    root = Path(project_path).resolve()
    if not root.exists():
        raise FileNotFoundError(f"Project path does not exist: {root}")

    info = RubyProjectInfo()
    gemfile_path = root / "Gemfile"
    lock_path = root / "Gemfile.lock"
    info.has_gemfile = gemfile_path.is_file()
    info.has_gemfile_lock = lock_path.is_file()
    info.gemspecs = sorted(p.name for p in root.glob("*.gemspec"))

    info.ruby_version, info.version_manager = _read_version_file(root)

    if info.has_gemfile:
        info.package_manager = "bundler"
        gemfile = parse_gemfile(gemfile_path.read_text(encoding="utf-8"))
        info.sources = gemfile.sources
        info.groups = gemfile.groups
        if gemfile.ruby_version and not info.ruby_version:
            info.ruby_version = gemfile.ruby_version
            info.version_manager = "gemfile"
        if "rails" in gemfile.gems:
            info.rails_indicators.append("rails gem")
    elif info.gemspecs:
        info.package_manager = "rubygems"

    if info.has_gemfile_lock:
        lock = parse_gemfile_lock(lock_path.read_text(encoding="utf-8"))
        info.bundler_version = lock.bundler_version

    info.rails_indicators.extend(p for p in RAILS_INDICATORS if (root / p).exists())
    info.is_rails = bool(info.rails_indicators)

    info.bundle_config = (root / ".bundle" / "config").is_file()
    info.bundle_dirs = [d for d in BUNDLE_DIRS if (root / d).is_dir()]

    info.is_ruby_project = bool(
        info.has_gemfile or info.gemspecs or info.ruby_version or (root / "Rakefile").is_file()
    )

    if info.has_gemfile and info.has_gemfile_lock:
        info.confidence = "high"
    elif info.has_gemfile or info.ruby_version or info.is_rails:
        info.confidence = "medium"

    indicators = sum([
        info.has_gemfile,
        info.has_gemfile_lock,
        bool(info.ruby_version),
        info.is_rails,
        info.bundle_config,
        bool(info.bundle_dirs),
        bool(info.gemspecs),
    ])
    if indicators >= 4:
        info.confidence = "high"
    elif indicators >= 2 and info.confidence == "low":
        info.confidence = "medium"

    logger.info(f"Ruby project at {root}: {info.package_manager} ({info.confidence})")
    return info


class RubyDetectorInput(BaseModel):
    project_path: str = Field(".", description="Path to the Ruby project directory")


class RubyPackageManagerDetectorTool(BaseTool):
    name = "ruby_package_manager_detector"
    description = (
        "Detect Bundler usage, Gemfile/Gemfile.lock, the Ruby version and its "
        "version manager, gem sources and groups, and Rails projects."
    )
    input_model = RubyDetectorInput

    async def execute(self, project_path: str = ".") -> ToolResult:
        try:
            info = detect_ruby_project(project_path)
        except FileNotFoundError as e:
            return ToolResult(success=False, error=str(e))
        except OSError as e:
            return ToolResult(success=False, error=f"Failed to detect Ruby package manager: {e}")
        return ToolResult(success=True, data=info.to_dict())
