"""Exceptions raised by lazy-changelogs.

Everything derives from LazyChangelogsError so callers (and the CLI) can
catch the whole family at once. Conditions that are expected in real
repositories (unparseable commit messages, foreign tags, one broken
manifest) are not exceptions at all; see the individual modules.
"""

from __future__ import annotations

from pathlib import Path


class LazyChangelogsError(Exception):
    """Base class for all lazy-changelogs errors."""


class RepoNotFoundError(LazyChangelogsError):
    """No .git directory was found in the start directory or its parents."""

    def __init__(self, start: Path | str) -> None:
        self.start = Path(start)
        super().__init__(
            f'No .git directory found in "{self.start}" or any parent directories'
        )


class GitError(LazyChangelogsError):
    """A git subprocess exited with a non-zero status."""

    def __init__(self, message: str, stderr: str = "") -> None:
        self.stderr = stderr
        detail = f"\n{stderr.strip()}" if stderr.strip() else ""
        super().__init__(f"{message}{detail}")


class ManifestError(LazyChangelogsError):
    """A single manifest file could not be read or parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class DuplicatePackageError(LazyChangelogsError):
    """Two manifests claim the same package name."""

    def __init__(self, name: str, first: Path, second: Path) -> None:
        self.name = name
        super().__init__(
            f"Package {name!r} is declared twice: {first} and {second}"
        )


class DependencyCycleError(LazyChangelogsError, RuntimeError):
    """A dependency ordering was requested for a graph containing a cycle."""

    def __init__(self, remaining: set[str]) -> None:
        self.remaining = remaining
        super().__init__(
            f"Dependency cycle detected involving: {sorted(remaining)}"
        )


class ConfigError(LazyChangelogsError):
    """The [tool.lazy-changelogs] configuration is invalid."""


class InvalidTagQueryError(LazyChangelogsError, ValueError):
    """A project query string could not be parsed as `name[@version]`."""


class InvalidVersionError(LazyChangelogsError, ValueError):
    """A version string is neither semver nor PEP 440."""

    def __init__(self, version: str) -> None:
        self.version = version
        super().__init__(f"{version!r} is not a valid version")
