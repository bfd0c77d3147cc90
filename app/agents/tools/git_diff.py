"""
Git Diff Tool - Run `git diff` between refs and compute change statistics.

Command shape:

    git -C <repo> diff <type flag> [base...compare | base | HEAD...compare]
        [-- <file_path> :!<exclude> ...]
"""

import logging
import re
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from app.agents.base import BaseTool, ToolResult
from app.services.command_runner import CommandError, CommandTimeoutError, run_command

logger = logging.getLogger(__name__)


DiffType = Literal["unified", "name-only", "name-status", "stat"]

STAT_SUMMARY_PATTERN = re.compile(
    r"(\d+) files? changed(?:, (\d+) insertions?\(\+\))?(?:, (\d+) deletions?\(-\))?"
)
STAT_FILE_PATTERN = re.compile(r"^\s*(.+?)\s+\|\s+(\d+)\s+([+-]+)")
DIFF_HEADER_PATTERN = re.compile(r"^diff --git a/(.+) b/(.+)$")

STATUS_NAMES = {"A": "added", "D": "deleted", "M": "modified", "R": "renamed"}


def build_diff_command(
    repository: str = ".",
    base: Optional[str] = None,
    compare: Optional[str] = None,
    file_path: Optional[str] = None,
    include_context: int = 3,
    diff_type: str = "unified",
    exclude_patterns: Optional[List[str]] = None,
) -> List[str]:
    """argv for `git diff`; revisions always precede the `--` pathspec separator."""
    cmd = ["git", "-C", repository, "diff"]

    if diff_type == "name-only":
        cmd.append("--name-only")
    elif diff_type == "name-status":
        cmd.append("--name-status")
    elif diff_type == "stat":
        cmd.append("--stat")
    else:
        cmd.append(f"-U{include_context}")

    if base and compare:
        cmd.append(f"{base}...{compare}")
    elif base:
        cmd.append(base)
    elif compare:
        cmd.append(f"HEAD...{compare}")

    pathspecs = []
    if file_path:
        pathspecs.append(file_path)
    if exclude_patterns:
        if not file_path:
            pathspecs.append(".")
        pathspecs.extend(f":!{pattern}" for pattern in exclude_patterns)
    if pathspecs:
        cmd.append("--")
        cmd.extend(pathspecs)
    return cmd


def parse_diff_stats(output: str, diff_type: str) -> Dict[str, Any]:
    """files_changed / insertions / deletions / per-file details for any diff type."""
    stats: Dict[str, Any] = {
        "files_changed": 0,
        "insertions": 0,
        "deletions": 0,
        "files": [],
    }
    lines = [line for line in output.splitlines() if line.strip()]

    if diff_type == "name-only":
        stats["files"] = [{"path": line.strip(), "status": "modified"} for line in lines]
        stats["files_changed"] = len(stats["files"])

    elif diff_type == "name-status":
        for line in lines:
            parts = line.split("\t")
            if len(parts) < 2:
                continue
            code = parts[0][:1]
            entry = {"path": parts[-1], "status": STATUS_NAMES.get(code, "modified")}
            if code == "R" and len(parts) >= 3:
                entry["old_path"] = parts[1]
            stats["files"].append(entry)
        stats["files_changed"] = len(stats["files"])

    elif diff_type == "stat":
        if lines:
            summary = STAT_SUMMARY_PATTERN.search(lines[-1])
            if summary:
                stats["files_changed"] = int(summary.group(1))
                stats["insertions"] = int(summary.group(2) or 0)
                stats["deletions"] = int(summary.group(3) or 0)
        for line in lines:
            match = STAT_FILE_PATTERN.match(line)
            if match:
                marks = match.group(3)
                stats["files"].append({
                    "path": match.group(1),
                    "changes": int(match.group(2)),
                    "insertions": marks.count("+"),
                    "deletions": marks.count("-"),
                })

    else:
        current = None
        for line in output.splitlines():
            header = DIFF_HEADER_PATTERN.match(line)
            if header:
                current = {"path": header.group(2), "insertions": 0, "deletions": 0}
                stats["files"].append(current)
            elif line.startswith("+") and not line.startswith("+++"):
                stats["insertions"] += 1
                if current is not None:
                    current["insertions"] += 1
            elif line.startswith("-") and not line.startswith("---"):
                stats["deletions"] += 1
                if current is not None:
                    current["deletions"] += 1
        stats["files_changed"] = len(stats["files"])

    return stats


class GitDiffInput(BaseModel):
    repository: str = Field(".", description="Path to the git repository")
    base: Optional[str] = Field(None, description="Base ref (branch, tag or SHA)")
    compare: Optional[str] = Field(None, description="Ref to compare against base")
    file_path: Optional[str] = Field(None, description="Limit the diff to this path")
    include_context: int = Field(3, ge=0, description="Context lines for unified diffs")
    diff_type: DiffType = Field("unified", description="unified, name-only, name-status or stat")
    exclude_patterns: List[str] = Field(default_factory=list, description="Pathspecs to exclude")


class GitDiffTool(BaseTool):
    """Diff two refs of a local repository."""

    name = "git_diff"
    description = (
        "Run git diff in a local repository between two refs (or against the working tree) "
        "and return the diff with file and line statistics."
    )
    input_model = GitDiffInput

    async def _optional(self, cmd: List[str]) -> Optional[str]:
        try:
            result = await run_command(cmd)
            return result.stdout.strip() or None
        except (CommandError, CommandTimeoutError):
            return None

    async def _commit_info(self, repository: str, ref: str) -> Optional[Dict[str, str]]:
        output = await self._optional(
            ["git", "-C", repository, "log", "-1", "--format=%H|%s|%an|%ad", ref]
        )
        if not output:
            return None
        parts = output.split("|", 3)
        if len(parts) < 4:
            return None
        sha, subject, author, date = parts
        return {"sha": sha, "message": subject, "author": author, "date": date}

    async def execute(
        self,
        repository: str = ".",
        base: Optional[str] = None,
        compare: Optional[str] = None,
        file_path: Optional[str] = None,
        include_context: int = 3,
        diff_type: str = "unified",
        exclude_patterns: Optional[List[str]] = None,
    ) -> ToolResult:
        cmd = build_diff_command(
            repository, base, compare, file_path, include_context, diff_type, exclude_patterns
        )
        try:
            result = await run_command(cmd)
        except (CommandError, CommandTimeoutError) as e:
            logger.warning(f"git diff failed: {e}")
            return ToolResult(success=False, error=f"Failed to generate git diff: {e}")

        current_branch = await self._optional(
            ["git", "-C", repository, "branch", "--show-current"]
        )
        commit_info = {}
        for label, ref in (("base", base), ("compare", compare)):
            if ref:
                info = await self._commit_info(repository, ref)
                if info:
                    commit_info[label] = info

        return ToolResult(success=True, data={
            "diff": result.stdout,
            "stats": parse_diff_stats(result.stdout, diff_type),
            "repository": "current directory" if repository == "." else repository,
            "base": base or "working directory",
            "compare": compare or "HEAD",
            "current_branch": current_branch,
            "commit_info": commit_info or None,
            "diff_type": diff_type,
            "command": " ".join(cmd),
        })
