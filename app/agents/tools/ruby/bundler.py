"""
Bundler file parsing - Gemfile declarations and Gemfile.lock resolutions.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional


GEM_LINE = re.compile(r"""^\s*gem\s+['"]([^'"]+)['"](.*)$""")
GEM_VERSION = re.compile(r"""^\s*,\s*['"]([^'"]+)['"]""")
EXTRA_VERSION = re.compile(r"""['"]([~><=!]+\s*[^'"]+)['"]""")
INLINE_GROUP = re.compile(r"""group:\s*:?['"]?([a-zA-Z_]+)""")
INLINE_GROUPS = re.compile(r"""groups?:\s*\[([^\]]*)\]""")
GROUP_BLOCK = re.compile(r"""^\s*group\s+(.+?)\s+do\b""")
SOURCE_LINE = re.compile(r"""^\s*source\s+['"]([^'"]+)['"]""")
RUBY_LINE = re.compile(r"""^\s*ruby\s+['"]([^'"]+)['"]""")
GIT_OPTION = re.compile(r"""\b(git|github|path):\s*['"]([^'"]+)['"]""")
BLOCK_START = re.compile(r"""\b(do|if|unless|case|begin)\b\s*(\|[^|]*\|)?\s*$""")
END_LINE = re.compile(r"^\s*end\b")
TRAILING_COMMENT = re.compile(r"""\s+#[^'"]*$""")

LOCK_SPEC = re.compile(r"^([A-Za-z0-9_.\-]+) \(([^)]+)\)$")
LOCK_DEPENDENCY = re.compile(r"^([A-Za-z0-9_.\-]+)(?: \(([^)]+)\))?!?$")
BUNDLED_WITH = re.compile(r"BUNDLED WITH\s+(\d+\.\d+\.\d+)")


@dataclass
class GemDeclaration:
    """A `gem` line of a Gemfile."""
    name: str
    line: int
    version_constraint: Optional[str] = None
    groups: List[str] = field(default_factory=list)
    source: Optional[str] = None
    raw_statement: str = ""


@dataclass
class Gemfile:
    gems: Dict[str, GemDeclaration] = field(default_factory=dict)
    sources: List[str] = field(default_factory=list)
    groups: List[str] = field(default_factory=list)
    ruby_version: Optional[str] = None


@dataclass
class GemfileLock:
    specs: Dict[str, str] = field(default_factory=dict)
    dependencies: List[str] = field(default_factory=list)
    bundler_version: Optional[str] = None


def _group_names(text: str) -> List[str]:
    return [g.strip().strip(":'\"") for g in text.split(",") if g.strip()]


def parse_gemfile(content: str) -> Gemfile:
    """
    Declarations with their groups, sources and the ruby version.

    `group :development, :test do ... end` blocks apply to every gem inside;
    nested non-group blocks (platforms, if) are tracked so their `end` does
    not close the group.
    """
    gemfile = Gemfile()
    stack: List[Optional[List[str]]] = []

    for number, raw in enumerate(content.splitlines(), start=1):
        if raw.lstrip().startswith("#"):
            continue
        line = TRAILING_COMMENT.sub("", raw).rstrip()
        stripped = line.strip()
        if not stripped:
            continue

        source = SOURCE_LINE.match(line)
        if source and not stack:
            gemfile.sources.append(source.group(1))
            continue
        ruby = RUBY_LINE.match(line)
        if ruby:
            gemfile.ruby_version = ruby.group(1)
            continue

        group = GROUP_BLOCK.match(line)
        if group:
            names = _group_names(group.group(1))
            stack.append(names)
            for name in names:
                if name not in gemfile.groups:
                    gemfile.groups.append(name)
            continue

        if END_LINE.match(line):
            if stack:
                stack.pop()
            continue

        gem = GEM_LINE.match(line)
        if gem:
            name, options = gem.groups()
            version = GEM_VERSION.match(options)
            constraint = version.group(1) if version else None
            if constraint:
                extra = EXTRA_VERSION.findall(options[version.end():])
                if extra:
                    constraint = ", ".join([constraint] + extra)

            groups = [g for frame in stack if frame for g in frame]
            many = INLINE_GROUPS.search(options)
            if many:
                groups.extend(_group_names(many.group(1)))
            else:
                single = INLINE_GROUP.search(options)
                if single:
                    groups.append(single.group(1))
            for name_ in groups:
                if name_ not in gemfile.groups:
                    gemfile.groups.append(name_)

            git = GIT_OPTION.search(options)
            gemfile.gems[name] = GemDeclaration(
                name=name,
                line=number,
                version_constraint=constraint,
                groups=list(dict.fromkeys(groups)),
                source=f"{git.group(1)}:{git.group(2)}" if git else None,
                raw_statement=stripped,
            )
            continue

        if BLOCK_START.search(stripped):
            stack.append(None)

    if not gemfile.sources:
        gemfile.sources = ["https://rubygems.org"]
    return gemfile


def parse_gemfile_lock(content: str) -> GemfileLock:
    """Resolved versions from `specs:` blocks and the top-level DEPENDENCIES list."""
    lock = GemfileLock()
    section = None
    in_specs = False

    for raw in content.splitlines():
        if not raw.strip():
            continue
        indent = len(raw) - len(raw.lstrip())
        text = raw.strip()
        if indent == 0:
            section = text
            in_specs = False
            continue

        if section in ("GEM", "GIT", "PATH"):
            if text == "specs:":
                in_specs = True
                continue
            if in_specs and indent == 4:
                spec = LOCK_SPEC.match(text)
                if spec:
                    name, version = spec.groups()
                    # platform gems: nokogiri (1.15.4-x86_64-linux)
                    lock.specs[name] = version.split("-")[0]
        elif section == "DEPENDENCIES" and indent == 2:
            dep = LOCK_DEPENDENCY.match(text)
            if dep:
                lock.dependencies.append(dep.group(1))

    bundled = BUNDLED_WITH.search(content)
    if bundled:
        lock.bundler_version = bundled.group(1)
    return lock
