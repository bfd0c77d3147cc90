"""
Versioning helpers - normalize versions and classify semver bumps.
"""

import re
from dataclasses import dataclass, asdict
from typing import List, Optional


_NUMERIC_PREFIX = re.compile(r"^(\d+)")


def normalize_version(version: Optional[str]) -> str:
    """Strip surrounding whitespace and a leading 'v'/'V'."""
    if not version:
        return ""
    version = version.strip()
    if version[:1] in ("v", "V"):
        version = version[1:]
    return version.strip()


def _numeric_parts(version: str) -> List[Optional[int]]:
    parts = []
    for part in normalize_version(version).split("."):
        # "0-beta.1" style suffixes only keep the leading number
        match = _NUMERIC_PREFIX.match(part.split("-")[0])
        parts.append(int(match.group(1)) if match else None)
    return parts


@dataclass
class VersionDifference:
    """Which semver component changed between two versions."""
    from_version: str
    to_version: str
    major_change: bool = False
    minor_change: bool = False
    patch_change: bool = False
    semver_type: str = "unknown"  # major | minor | patch | unknown

    def to_dict(self) -> dict:
        return asdict(self)


def analyze_version_difference(from_version: str, to_version: str) -> VersionDifference:
    """
    Classify an upgrade as major, minor or patch.

    The first differing component decides: 1.2.3 -> 2.0.0 is major,
    1.2.3 -> 1.3.0 minor, 1.2.3 -> 1.2.4 patch. Anything unparseable or
    identical is 'unknown'.
    """
    diff = VersionDifference(
        from_version=normalize_version(from_version),
        to_version=normalize_version(to_version),
    )
    old = _numeric_parts(from_version)
    new = _numeric_parts(to_version)
    if not old or not new or old[0] is None or new[0] is None:
        return diff

    width = 3
    old = (old + [0] * width)[:width]
    new = (new + [0] * width)[:width]

    if old[0] != new[0]:
        diff.major_change = True
        diff.semver_type = "major"
    elif old[1] != new[1]:
        diff.minor_change = True
        diff.semver_type = "minor"
    elif old[2] != new[2]:
        diff.patch_change = True
        diff.semver_type = "patch"
    return diff
