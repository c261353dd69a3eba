"""Tests for lazy_changelogs.graph."""

from __future__ import annotations

from pathlib import Path

import pytest

from lazy_changelogs.exceptions import DependencyCycleError, DuplicatePackageError
from lazy_changelogs.graph import DependencyGraph, build_graph
from lazy_changelogs.models import DependencyKind, ManifestNode, Protocol


def _node(name: str, relative_dir: str | None = None) -> ManifestNode:
    rel = relative_dir if relative_dir is not None else f"packages/{name}"
    directory = Path("/repo") / rel
    return ManifestNode(
        name=name,
        directory=directory,
        relative_dir=rel,
        manifest_path=directory / "pyproject.toml",
        is_root=rel == "",
    )


def _graph(*edges: tuple[str, str]) -> DependencyGraph:
    graph = DependencyGraph()
    for name in sorted({n for edge in edges for n in edge}):
        graph.add_node(_node(name))
    for name, dependency in edges:
        graph.add_dependency(name, dependency)
    return graph


class TestDependants:
    def test_transitive_closure(self) -> None:
        graph = _graph(("A", "B"), ("B", "C"), ("A", "C"))

        assert graph.dependants_of("C") == {"A", "B"}
        assert graph.dependants_of("B") == {"A"}
        assert graph.dependants_of("A") == set()

    def test_direct_only(self) -> None:
        graph = _graph(("A", "B"), ("B", "C"))

        assert graph.dependants_of("C", transitive=False) == {"B"}

    def test_cycle_terminates(self) -> None:
        graph = _graph(("A", "B"), ("B", "A"))

        assert graph.dependants_of("A") == {"B"}
        assert graph.dependants_of("B") == {"A"}

    def test_unknown_package(self) -> None:
        with pytest.raises(KeyError):
            _graph(("A", "B")).dependants_of("Z")


class TestDependencies:
    def test_direct_and_transitive(self) -> None:
        graph = _graph(("A", "B"), ("B", "C"))

        assert graph.dependencies_of("A") == {"B"}
        assert graph.dependencies_of("A", transitive=True) == {"B", "C"}


class TestGraphNodes:
    def test_duplicate_name(self) -> None:
        graph = DependencyGraph()
        graph.add_node(_node("core"))

        with pytest.raises(DuplicatePackageError, match="core"):
            graph.add_node(_node("core", "libs/core"))

    def test_edge_to_unknown_package(self) -> None:
        graph = DependencyGraph()
        graph.add_node(_node("core"))

        with pytest.raises(KeyError):
            graph.add_dependency("core", "missing")

    def test_container_protocol(self) -> None:
        graph = _graph(("app", "core"))

        assert "core" in graph
        assert "missing" not in graph
        assert len(graph) == 2
        assert {node.name for node in graph} == {"app", "core"}
        assert graph.root is None


class TestTopologicalOrder:
    def test_dependencies_first(self) -> None:
        graph = _graph(("A", "B"), ("B", "C"))

        assert graph.topological_order() == ["C", "B", "A"]

    def test_ties_broken_alphabetically(self) -> None:
        graph = _graph(("app", "core"), ("web", "core"), ("cli", "core"))

        assert graph.topological_order() == ["core", "app", "cli", "web"]

    def test_cycle(self) -> None:
        graph = _graph(("A", "B"), ("B", "A"), ("C", "A"))

        with pytest.raises(DependencyCycleError) as exc_info:
            graph.topological_order()
        assert exc_info.value.remaining == {"A", "B", "C"}


class TestBuildGraph:
    def test_monorepo(self, monorepo: Path) -> None:
        result = build_graph(monorepo)
        graph = result.graph

        assert sorted(graph.names) == ["app", "core", "extra", "web"]
        assert result.warnings == []
        assert graph.dependencies_of("app") == {"core"}
        assert graph.dependencies_of("extra") == {"app"}
        assert graph.dependencies_of("web") == {"core"}
        assert graph.dependencies_of("core") == set()
        assert graph.dependants_of("core") == {"app", "extra", "web"}
        assert graph.topological_order() == ["core", "app", "web", "extra"]

    def test_include_root(self, monorepo: Path) -> None:
        graph = build_graph(monorepo, include_root=True).graph

        assert graph.root is not None
        assert graph.root.name == "monorepo"

    def test_exclude_dev_dependencies(self, monorepo: Path) -> None:
        graph = build_graph(monorepo, exclude_kinds=[DependencyKind.DEV]).graph

        assert graph.dependencies_of("extra") == set()
        assert "extra" in graph

    def test_local_links_only(self, monorepo: Path) -> None:
        graph = build_graph(monorepo, exclude_protocols=[Protocol.SEMVER]).graph

        assert graph.dependencies_of("web") == set()
        assert graph.dependants_of("core") == {"app", "extra"}

    def test_broken_manifest_is_reported(self, monorepo: Path) -> None:
        broken = monorepo / "packages/broken/pyproject.toml"
        broken.parent.mkdir(parents=True)
        broken.write_text("[project\nname = ")

        result = build_graph(monorepo, max_workers=2)

        assert "broken" not in result.graph
        assert len(result.graph) == 4
        [warning] = result.warnings
        assert warning.path.parent.name == "broken"
        assert "could not parse" in warning.message

    def test_duplicate_names_raise(self, monorepo: Path) -> None:
        dup = monorepo / "libs/core/package.json"
        dup.parent.mkdir(parents=True)
        dup.write_text('{"name": "core", "version": "9.9.9"}')

        with pytest.raises(DuplicatePackageError):
            build_graph(monorepo)
