"""Attributing commits to the packages they touch.

Every changed file belongs to the package whose directory is the longest
prefix of the file's path. Files outside every package directory belong to
the root package when the graph has one, and are otherwise ignored.

Files that were later renamed are attributed by their current path, so a
file moved into a package brings its earlier history along.
"""

from __future__ import annotations

from collections.abc import Sequence

from .commits import CommitMessageParser
from .graph import DependencyGraph
from .models import AttributedChange, CommitRecord, ManifestNode, PackageHistory


class PathIndex:
    """Longest-prefix lookup from repo-relative file paths to packages."""

    def __init__(self, nodes: Sequence[ManifestNode] | DependencyGraph) -> None:
        # Deepest directories first, so the first hit is the longest prefix
        self._dirs = sorted(
            ((node.relative_dir, node.name) for node in nodes if node.relative_dir),
            key=lambda item: len(item[0]),
            reverse=True,
        )
        root = next((node for node in nodes if node.is_root), None)
        self._root = root.name if root else None

    def owner(self, path: str) -> str | None:
        """Return the package owning `path`, or None if nothing does."""
        path = path.replace("\\", "/")
        if path.startswith("./"):
            path = path[2:]
        for directory, name in self._dirs:
            if path.startswith(directory + "/"):
                return name
        return self._root


def attribute_changes(
    commits: Sequence[CommitRecord],
    graph: DependencyGraph,
    parser: CommitMessageParser,
    *,
    propagate: bool = False,
    follow_renames: bool = True,
) -> dict[str, PackageHistory]:
    """Attribute every commit's changes to the packages it touched.

    Each commit is parsed once; its descriptors are attached to every
    package owning at least one of its files. Commits that yield no
    descriptors are kept per package as uncategorized.

    Args:
        commits: History, oldest first.
        graph: Packages to attribute to.
        parser: Commit message parser.
        propagate: Also attach each change to every package that depends
            (transitively) on a touched package. Such copies record the
            package they came from in `propagated_from`.
        follow_renames: Attribute files touched before a rename by the
            path they were later renamed to.

    Returns:
        A PackageHistory for every package in the graph, changes in
        commit order.
    """
    index = PathIndex(graph)
    histories = {name: PackageHistory(package=name) for name in graph.names}

    paths = current_paths(commits) if follow_renames else [c.files for c in commits]

    for position, commit in enumerate(commits):
        touched: list[str] = []
        for path in paths[position]:
            owner = index.owner(path)
            if owner is not None and owner not in touched:
                touched.append(owner)
        if not touched:
            continue

        descriptors = parser.parse_commit(commit)
        if not descriptors:
            for name in touched:
                histories[name].uncategorized.append(commit)
            continue

        for name in touched:
            histories[name].changes.extend(
                AttributedChange(
                    package=name, descriptor=d, commit=commit, position=position
                )
                for d in descriptors
            )

        if propagate:
            _propagate(histories, graph, touched, descriptors, commit, position)

    return histories


def _propagate(histories, graph, touched, descriptors, commit, position) -> None:
    received: set[str] = set(touched)
    for name in touched:
        for dependant in sorted(graph.dependants_of(name)):
            if dependant in received:
                continue
            received.add(dependant)
            histories[dependant].changes.extend(
                AttributedChange(
                    package=dependant,
                    descriptor=d,
                    commit=commit,
                    position=position,
                    propagated_from=name,
                )
                for d in descriptors
            )


def current_paths(commits: Sequence[CommitRecord]) -> list[tuple[str, ...]]:
    """Map each commit's files to the paths they have after all later renames.

    A rename commit itself keeps both its old and new paths; only commits
    before it see the old path rewritten. Chains of renames resolve to the
    final path.

    Returns:
        One tuple of paths per commit, in the order of `commits`.
    """
    renamed: dict[str, str] = {}
    resolved: list[tuple[str, ...]] = [()] * len(commits)
    for i in range(len(commits) - 1, -1, -1):
        commit = commits[i]
        resolved[i] = tuple(renamed.get(path, path) for path in commit.files)
        for old, new in commit.renames:
            renamed[old] = renamed.get(new, new)
    return resolved
