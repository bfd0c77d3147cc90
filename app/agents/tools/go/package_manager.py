"""
Go module detection - go.mod, go.work, go.sum and vendor/.

go.mod directives understood:

    module github.com/acme/app
    go 1.22
    toolchain go1.22.3
    require github.com/gin-gonic/gin v1.9.1
    require (
        golang.org/x/text v0.14.0 // indirect
    )
    replace github.com/a/b => ../b
    exclude github.com/c/d v1.0.0
"""

import logging
import re
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.agents.base import BaseTool, ToolResult
from app.services.source_walker import find_source_files

logger = logging.getLogger(__name__)


REQUIRE_LINE = re.compile(r"^(\S+)\s+(\S+)(\s+//\s*indirect)?")
REPLACE_LINE = re.compile(r"^(\S+)(?:\s+\S+)?\s*=>\s*(.+)$")


@dataclass
class GoRequirement:
    path: str
    version: str
    indirect: bool = False


@dataclass
class GoModInfo:
    module_name: Optional[str] = None
    go_version: Optional[str] = None
    toolchain: Optional[str] = None
    requires: List[GoRequirement] = field(default_factory=list)
    replaces: Dict[str, str] = field(default_factory=dict)
    excludes: List[str] = field(default_factory=list)


@dataclass
class GoWorkInfo:
    go_version: Optional[str] = None
    toolchain: Optional[str] = None
    use: List[str] = field(default_factory=list)
    replaces: Dict[str, str] = field(default_factory=dict)


def _directive_lines(content: str):
    """Yield (directive, argument) pairs, flattening `directive ( ... )` blocks."""
    block = None
    for raw in content.splitlines():
        line = raw.strip()
        if not line or line.startswith("//"):
            continue
        if block:
            if line == ")":
                block = None
            else:
                yield block, line
            continue
        keyword, _, rest = line.partition(" ")
        rest = rest.strip()
        if rest == "(":
            block = keyword
        elif rest:
            yield keyword, rest


def parse_go_mod(content: str) -> GoModInfo:
    info = GoModInfo()
    for directive, argument in _directive_lines(content):
        if directive == "module":
            info.module_name = argument.strip('"')
        elif directive == "go":
            info.go_version = argument
        elif directive == "toolchain":
            info.toolchain = argument
        elif directive == "require":
            match = REQUIRE_LINE.match(argument)
            if match:
                info.requires.append(GoRequirement(
                    path=match.group(1), version=match.group(2), indirect=bool(match.group(3)),
                ))
        elif directive == "replace":
            match = REPLACE_LINE.match(argument)
            if match:
                info.replaces[match.group(1)] = match.group(2).strip()
        elif directive == "exclude":
            info.excludes.append(argument)
    return info


def parse_go_work(content: str) -> GoWorkInfo:
    info = GoWorkInfo()
    for directive, argument in _directive_lines(content):
        if directive == "go":
            info.go_version = argument
        elif directive == "toolchain":
            info.toolchain = argument
        elif directive == "use":
            info.use.append(argument.strip("\"'"))
        elif directive == "replace":
            match = REPLACE_LINE.match(argument)
            if match:
                info.replaces[match.group(1)] = match.group(2).strip()
    return info


@dataclass
class GoProjectInfo:
    is_go_project: bool = False
    module_mode: bool = False
    module_path: Optional[str] = None
    go_version: Optional[str] = None
    toolchain_version: Optional[str] = None
    is_workspace: bool = False
    workspace_modules: List[str] = field(default_factory=list)
    has_go_sum: bool = False
    has_vendor: bool = False
    gopath_mode: bool = False
    go_files: List[str] = field(default_factory=list)
    go_mod: Optional[GoModInfo] = None
    confidence: str = "low"

    def to_dict(self) -> dict:
        data = asdict(self)
        data["go_files"] = self.go_files[:50]
        return data


def detect_go_project(project_path: str) -> GoProjectInfo:
    """
    Inspect a directory for Go modules and workspaces.

    Raises:
        FileNotFoundError: If project_path does not exist.
    """
    root = Path(project_path).resolve()
    if not root.exists():
        raise FileNotFoundError(f"Project path does not exist: {root}")

    info = GoProjectInfo()
    info.go_files = [
        p.relative_to(root).as_posix()
        for p in find_source_files(str(root), ["**/*.go"], ["vendor/**", "**/vendor/**"], max_depth=3)
    ]
    info.is_go_project = bool(info.go_files) or (root / "go.mod").is_file()
    if not info.is_go_project:
        return info

    go_work = root / "go.work"
    if go_work.is_file():
        work = parse_go_work(go_work.read_text(encoding="utf-8"))
        info.is_workspace = True
        info.workspace_modules = work.use
        info.go_version = work.go_version
        info.toolchain_version = work.toolchain

    go_mod = root / "go.mod"
    if go_mod.is_file():
        info.module_mode = True
        info.go_mod = parse_go_mod(go_mod.read_text(encoding="utf-8"))
        info.module_path = info.go_mod.module_name
        info.go_version = info.go_version or info.go_mod.go_version
        info.toolchain_version = info.toolchain_version or info.go_mod.toolchain

    info.has_go_sum = (root / "go.sum").is_file()
    info.has_vendor = (root / "vendor").is_dir()
    info.gopath_mode = not info.module_mode and not info.is_workspace

    score = 0
    score += 3 if info.module_mode else 0
    score += 3 if info.is_workspace else 0
    score += 2 if info.has_go_sum else 0
    score += 2 if info.go_files else 0
    score += 1 if info.has_vendor else 0
    score += 1 if info.gopath_mode else 0
    info.confidence = "high" if score >= 5 else "medium" if score >= 3 else "low"

    logger.info(f"Go project {info.module_path or root} ({info.confidence})")
    return info


class GoDetectorInput(BaseModel):
    project_path: str = Field(".", description="Path to the Go project directory")


class GoPackageManagerDetectorTool(BaseTool):
    name = "go_package_manager_detector"
    description = (
        "Detect Go modules (go.mod), workspaces (go.work), go.sum and vendoring, "
        "and report the module path and Go version."
    )
    input_model = GoDetectorInput

    async def execute(self, project_path: str = ".") -> ToolResult:
        try:
            info = detect_go_project(project_path)
        except FileNotFoundError as e:
            return ToolResult(success=False, error=str(e))
        except OSError as e:
            return ToolResult(success=False, error=f"Failed to detect Go package manager: {e}")
        return ToolResult(success=True, data=info.to_dict())
