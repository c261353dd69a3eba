"""Data models for lazy-changelogs.

These Pydantic models represent the core data structures passed between
the history reader, the commit parser, the dependency graph and the
changelog renderer.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from .versions import Bump


class CommitRecord(BaseModel):
    """One commit as read from git.

    Attributes:
        hash: Full commit hash.
        author_name: Author name.
        author_email: Author email.
        date: Author date (timezone-aware).
        header: First line of the commit message.
        body: Everything after the header, stripped.
        refs: Raw ref decoration string (e.g. "HEAD -> main, tag: core@1.0.0").
        files: Distinct repo-root-relative POSIX paths touched by the commit.
        renames: (old, new) path pairs for files the commit moved.
    """

    model_config = ConfigDict(frozen=True)

    hash: str
    author_name: str = ""
    author_email: str = ""
    date: datetime
    header: str
    body: str = ""
    refs: str = ""
    files: tuple[str, ...] = ()
    renames: tuple[tuple[str, str], ...] = ()


class ChangeDescriptor(BaseModel):
    """A single change described by a commit message.

    ``bump`` is the raw type→bump lookup result (None for unmapped types).
    The breaking override is applied by the bump calculator, not here, so
    the mapping stays visible for inspection.
    """

    model_config = ConfigDict(frozen=True)

    type: str
    scope: str | None = None
    breaking: bool = False
    title: str
    body: str | None = None
    bump: Bump | None = None


class VersionTag(BaseModel):
    """A tag naming a released version of a package.

    ``commit``, ``position`` and ``date`` are only set when the tag was
    collected from history; ``position`` is the index of the tagged commit
    in the oldest-first commit list.
    """

    model_config = ConfigDict(frozen=True)

    tag: str
    name: str
    scope: str | None = None
    unscoped: str
    version: str
    commit: str | None = None
    position: int | None = None
    date: datetime | None = None


class DependencyKind(str, Enum):
    """Which manifest table a dependency was declared in."""

    RUNTIME = "dependencies"
    DEV = "dev"
    PEER = "peer"
    OPTIONAL = "optional"


class Protocol(str, Enum):
    """How a dependency is linked.

    SEMVER is an ordinary version range resolved from a registry, FILE is
    a local path, WORKSPACE is a workspace member link.
    """

    SEMVER = "semver"
    FILE = "file"
    WORKSPACE = "workspace"


class DependencySpec(BaseModel):
    """The right-hand side of a dependency declaration."""

    model_config = ConfigDict(frozen=True)

    specifier: str = ""
    protocol: Protocol = Protocol.SEMVER


class ManifestNode(BaseModel):
    """Metadata for a single package manifest in the repository.

    Attributes:
        name: Package name, unique within a graph.
        version: Version declared in the manifest ('0.0.0' if absent).
        directory: Absolute path of the directory holding the manifest.
        relative_dir: POSIX path of that directory relative to the repo
                      root; '' for the root manifest.
        manifest_path: Absolute path to the manifest file itself.
        is_root: True if this manifest sits at the search root.
        dependencies: Declared dependencies grouped by kind.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    version: str = "0.0.0"
    directory: Path
    relative_dir: str = ""
    manifest_path: Path
    is_root: bool = False
    dependencies: dict[DependencyKind, dict[str, DependencySpec]] = Field(
        default_factory=dict
    )


class ManifestWarning(BaseModel):
    """A manifest that could not be read, reported instead of raised."""

    path: Path
    message: str


class AttributedChange(BaseModel):
    """A change descriptor attributed to one package.

    Attributes:
        package: Name of the package the change belongs to.
        descriptor: The parsed change.
        commit: The commit the change came from.
        position: Index of that commit in the oldest-first history.
        propagated_from: Set when the change was copied from a dependency
                         rather than touching this package's files.
    """

    model_config = ConfigDict(frozen=True)

    package: str
    descriptor: ChangeDescriptor
    commit: CommitRecord
    position: int
    propagated_from: str | None = None


class PackageHistory(BaseModel):
    """Everything attributed to a single package, in commit order."""

    package: str
    changes: list[AttributedChange] = Field(default_factory=list)
    uncategorized: list[CommitRecord] = Field(default_factory=list)


class VersionGroup(BaseModel):
    """All changes published under one version of a package.

    ``version`` is None for the group of unreleased changes. ``sections``
    maps a section label to its changes in commit order.
    """

    version: str | None
    date: datetime | None = None
    sections: dict[str, list[AttributedChange]] = Field(default_factory=dict)

    @property
    def is_unreleased(self) -> bool:
        return self.version is None


class PackageBump(BaseModel):
    """Records the computed version change for a package."""

    current: str
    bump: Bump
    next: str
