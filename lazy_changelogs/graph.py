"""Dependency graph of the packages in a repository.

Nodes are ManifestNodes keyed by package name; edges point from a package
to each local package it declares as a dependency. Cycles are allowed
(dev-dependency cycles are common), so every traversal tracks the nodes it
has visited. Only ordering (topological_order) refuses cyclic graphs.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import DependencyCycleError, DuplicatePackageError, ManifestError
from .manifests import (
    DEFAULT_EXCLUDE_DIRS,
    DEFAULT_MANIFEST_FILENAMES,
    list_manifests,
    read_manifest,
)
from .models import DependencyKind, ManifestNode, ManifestWarning, Protocol


class DependencyGraph:
    """Directed package → dependency graph, stored as adjacency sets."""

    def __init__(self) -> None:
        self._nodes: dict[str, ManifestNode] = {}
        self._edges: dict[str, set[str]] = {}
        self._reverse: dict[str, set[str]] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def __iter__(self) -> Iterator[ManifestNode]:
        return iter(self._nodes.values())

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def names(self) -> list[str]:
        return list(self._nodes)

    @property
    def root(self) -> ManifestNode | None:
        """The root package, if it was registered."""
        return next((node for node in self._nodes.values() if node.is_root), None)

    def get(self, name: str) -> ManifestNode:
        return self._nodes[name]

    def add_node(self, node: ManifestNode) -> None:
        """Register a package.

        Raises:
            DuplicatePackageError: If the name is already registered.
        """
        existing = self._nodes.get(node.name)
        if existing is not None:
            raise DuplicatePackageError(
                node.name, existing.manifest_path, node.manifest_path
            )
        self._nodes[node.name] = node
        self._edges[node.name] = set()
        self._reverse[node.name] = set()

    def add_dependency(self, name: str, dependency: str) -> None:
        """Add an edge name → dependency. Both must already be registered."""
        if name not in self._nodes or dependency not in self._nodes:
            missing = name if name not in self._nodes else dependency
            raise KeyError(f"Package {missing!r} is not in the graph")
        self._edges[name].add(dependency)
        self._reverse[dependency].add(name)

    def dependencies_of(self, name: str, *, transitive: bool = False) -> set[str]:
        """Packages `name` depends on, directly or (optionally) transitively."""
        if not transitive:
            return set(self._edges[name])
        return self._walk(name, self._edges)

    def dependants_of(self, name: str, *, transitive: bool = True) -> set[str]:
        """Packages with a dependency path to `name`.

        Example:
            With edges A→B→C and A→C, dependants_of("C") → {"A", "B"}
            and dependants_of("B") → {"A"}.
        """
        if not transitive:
            return set(self._reverse[name])
        return self._walk(name, self._reverse)

    def _walk(self, start: str, adjacency: dict[str, set[str]]) -> set[str]:
        # BFS with a visited set; terminates on cycles
        if start not in adjacency:
            raise KeyError(f"Package {start!r} is not in the graph")
        visited: set[str] = set()
        queue = deque(sorted(adjacency[start]))
        while queue:
            node = queue.popleft()
            if node in visited:
                continue
            visited.add(node)
            queue.extend(sorted(adjacency[node] - visited))
        visited.discard(start)
        return visited

    def topological_order(self) -> list[str]:
        """Order packages so dependencies come before dependents.

        Uses Kahn's algorithm; packages that become ready at the same time
        are taken alphabetically for deterministic output.

        Raises:
            DependencyCycleError: If the graph contains a cycle.

        Example:
            If A depends on B, and B depends on C → [C, B, A]
        """
        # Count outgoing edges (dependencies) still unsatisfied for each package
        in_degree = {name: len(deps) for name, deps in self._edges.items()}
        queue = sorted(name for name, degree in in_degree.items() if degree == 0)
        order: list[str] = []

        while queue:
            node = queue.pop(0)
            order.append(node)
            # Decrement for all packages that depend on this one
            for dependant in sorted(self._reverse[node]):
                in_degree[dependant] -= 1
                if in_degree[dependant] == 0:
                    queue.append(dependant)

        if len(order) != len(self._nodes):
            raise DependencyCycleError(set(self._nodes) - set(order))
        return order


class GraphBuildResult(BaseModel):
    """A built graph plus the manifests that couldn't be read."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    graph: DependencyGraph
    warnings: list[ManifestWarning] = Field(default_factory=list)


def build_graph(
    root: Path,
    *,
    filenames: Iterable[str] = DEFAULT_MANIFEST_FILENAMES,
    exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
    exclude_kinds: Iterable[DependencyKind] = (),
    exclude_protocols: Iterable[Protocol] = (),
    include_root: bool = False,
    max_workers: int = 8,
) -> GraphBuildResult:
    """Discover every manifest under `root` and build the dependency graph.

    Manifests are read in parallel on a bounded thread pool. A manifest
    that fails to read is reported in the result's warnings and the rest
    of the graph is still built. Nodes are only inserted once every read
    has finished.

    Args:
        root: Directory to search (usually the repository root).
        filenames: Manifest filenames, in order of preference.
        exclude_dirs: Directory names never descended into.
        exclude_kinds: Dependency kinds that don't produce edges.
        exclude_protocols: Link protocols that don't produce edges, e.g.
            [Protocol.SEMVER] to keep only local/workspace links.
        include_root: Whether the root manifest becomes a node.
        max_workers: Upper bound on concurrent manifest reads.

    Raises:
        DuplicatePackageError: If two manifests declare the same name.
    """
    root = Path(root).resolve()
    paths = list_manifests(root, tuple(filenames), exclude_dirs)

    def read(path: Path) -> ManifestNode | ManifestWarning:
        try:
            return read_manifest(path, root)
        except ManifestError as e:
            return ManifestWarning(path=path, message=e.reason)

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        results = list(pool.map(read, paths))

    graph = DependencyGraph()
    warnings: list[ManifestWarning] = []
    for result in results:
        if isinstance(result, ManifestWarning):
            warnings.append(result)
        elif include_root or not result.is_root:
            graph.add_node(result)

    kinds = [k for k in DependencyKind if k not in set(exclude_kinds)]
    protocols = set(Protocol) - set(exclude_protocols)
    for node in graph:
        for kind in kinds:
            for dep_name, spec in node.dependencies.get(kind, {}).items():
                if dep_name == node.name or dep_name not in graph:
                    continue
                if spec.protocol in protocols:
                    graph.add_dependency(node.name, dep_name)

    return GraphBuildResult(graph=graph, warnings=warnings)
