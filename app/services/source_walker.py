"""
Source Walker - Find and read project source files for import analysis.

Provides:
- find_source_files: depth-limited walk with include/exclude globs
- glob_matches: gitignore-style globs plus `{a,b}` groups, via pathspec
- read_text_safe: size-capped, encoding-tolerant file reads
"""

import logging
import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

import pathspec

logger = logging.getLogger(__name__)


# Directories to always skip during traversal
SKIP_DIRS = {
    ".git", "node_modules", "__pycache__", ".venv", "venv",
    ".next", ".tox", ".mypy_cache", ".pytest_cache", ".ruff_cache",
    "bower_components", ".gradle", ".idea", ".vs", ".vscode",
    "coverage", ".nyc_output", ".eggs", ".bundle",
}

# Max file size to read (1MB)
MAX_READ_SIZE = 1_048_576

_BRACE = re.compile(r"\{([^{}]*)\}")


def _should_skip(name: str) -> bool:
    """Check if a directory should be skipped."""
    if name in SKIP_DIRS:
        return True
    if name.endswith(".egg-info"):
        return True
    return False


def expand_braces(pattern: str) -> List[str]:
    """Expand `{a,b}` groups: "*.{js,ts}" -> ["*.js", "*.ts"]."""
    match = _BRACE.search(pattern)
    if not match:
        return [pattern]
    head, tail = pattern[:match.start()], pattern[match.end():]
    expanded = []
    for option in match.group(1).split(","):
        expanded.extend(expand_braces(f"{head}{option}{tail}"))
    return expanded


@lru_cache(maxsize=256)
def _compile_spec(patterns: Tuple[str, ...]) -> pathspec.PathSpec:
    expanded = [p for pattern in patterns for p in expand_braces(pattern)]
    return pathspec.PathSpec.from_lines("gitwildmatch", expanded)


def glob_matches(rel_path: str, patterns: Iterable[str]) -> bool:
    """True when a forward-slash relative path matches any gitignore-style glob."""
    rel_path = rel_path.replace(os.sep, "/")
    return _compile_spec(tuple(patterns)).match_file(rel_path)


def find_source_files(
    root: str,
    include_patterns: Iterable[str],
    exclude_patterns: Optional[Iterable[str]] = None,
    max_depth: int = 10,
) -> List[Path]:
    """
    Walk `root` and return files matching include globs and no exclude glob.

    Args:
        root: Project directory.
        include_patterns: Globs relative to root, e.g. "**/*.{js,ts}".
        exclude_patterns: Globs to drop, e.g. "**/dist/**".
        max_depth: Directory nesting limit; root itself is depth 0.

    Returns:
        Sorted list of absolute paths.
    """
    base = Path(root).resolve()
    include = list(include_patterns)
    exclude = list(exclude_patterns or [])
    results: List[Path] = []

    for current, dirs, files in os.walk(base):
        rel_dir = Path(current).relative_to(base)
        depth = 0 if str(rel_dir) == "." else len(rel_dir.parts)
        if depth >= max_depth:
            dirs[:] = []
        else:
            dirs[:] = sorted(d for d in dirs if not _should_skip(d))

        for filename in files:
            rel = (rel_dir / filename).as_posix()
            if rel.startswith("./"):
                rel = rel[2:]
            if not glob_matches(rel, include):
                continue
            if exclude and glob_matches(rel, exclude):
                continue
            results.append(Path(current) / filename)

    results.sort()
    logger.debug(f"Found {len(results)} source files under {base}")
    return results


def read_text_safe(path: Path) -> str:
    """Read a file as text, tolerating bad encodings; '' for huge or unreadable files."""
    try:
        if path.stat().st_size > MAX_READ_SIZE:
            logger.info(f"Skipping large file: {path}")
            return ""
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.warning(f"Could not read {path}: {e}")
        return ""
