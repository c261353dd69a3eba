"""Version parsing and bumping utilities.

Handles conversion between version strings and semver objects, with
special handling for incomplete and PEP 440 manifest versions (e.g.,
"1.0" → "1.0.0", "1.0a1" → "1.0.0-alpha.1"),
and defines the Bump severity scale used everywhere else.
"""

from __future__ import annotations

from enum import Enum

import semver
from packaging.version import InvalidVersion
from packaging.version import Version as PEP440Version

from .exceptions import InvalidVersionError


class Bump(str, Enum):
    """Semver bump severity, totally ordered: none < patch < minor < major.

    Members compare by severity rather than by their string values, so
    ``max(bumps)`` returns the strongest bump.
    """

    NONE = "none"
    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Bump):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Bump):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Bump):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Bump):
            return NotImplemented
        return self.rank >= other.rank

    def __str__(self) -> str:
        return self.value


_RANKS = {Bump.NONE: 0, Bump.PATCH: 1, Bump.MINOR: 2, Bump.MAJOR: 3}

# PEP 440 pre-release letters, spelled out as semver prerelease identifiers
_PRE_LABELS = {"a": "alpha", "b": "beta", "rc": "rc"}


def is_valid_version(version_str: str) -> bool:
    """Return True if the string is a complete, valid semantic version.

    Unlike parse_version(), no padding is applied: "1.2" is not valid here.
    Used to decide whether a tag really names a release.
    """
    return semver.Version.is_valid(version_str)


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    Full semantic versions (including prerelease/build parts) are parsed
    as-is. Anything else is read as a PEP 440 version and mapped onto
    semver, padding the release with zeros:
    - "1" → "1.0.0"
    - "1.2" → "1.2.0"
    - "1.0.0a1" → "1.0.0-alpha.1"
    - "2.0rc1.dev3" → "2.0.0-rc.1.dev.3"
    - "1.0.post2+local" → "1.0.0+post.2.local"

    Raises:
        InvalidVersionError: If the string is neither.
    """
    if semver.Version.is_valid(version_str):
        return semver.Version.parse(version_str)
    try:
        pep440 = PEP440Version(version_str)
    except InvalidVersion as e:
        raise InvalidVersionError(version_str) from e

    # Pad with zeros to ensure we have at least 3 parts
    major, minor, patch = (*pep440.release, 0, 0)[:3]
    prerelease: list[str] = []
    if pep440.pre is not None:
        label, number = pep440.pre
        prerelease += [_PRE_LABELS[label], str(number)]
    if pep440.dev is not None:
        prerelease += ["dev", str(pep440.dev)]
    build: list[str] = []
    if pep440.post is not None:
        build += ["post", str(pep440.post)]
    if pep440.local is not None:
        build.append(pep440.local)
    return semver.Version(
        major,
        minor,
        patch,
        prerelease=".".join(prerelease) or None,
        build=".".join(build) or None,
    )


def compare_versions(a: str, b: str) -> int:
    """Compare two version strings, returning -1, 0 or 1."""
    return parse_version(a).compare(parse_version(b))


def bump_version(version_str: str, bump: Bump) -> str:
    """Apply a bump to a version and return the new version string.

    Examples:
        bump_version("1.2.3", Bump.PATCH) → "1.2.4"
        bump_version("1.2.3", Bump.MINOR) → "1.3.0"
        bump_version("1.2", Bump.MAJOR) → "2.0.0"
        bump_version("1.2.3", Bump.NONE) → "1.2.3"
    """
    version = parse_version(version_str)
    if bump is Bump.MAJOR:
        return str(version.bump_major())
    if bump is Bump.MINOR:
        return str(version.bump_minor())
    if bump is Bump.PATCH:
        return str(version.bump_patch())
    return str(version)
