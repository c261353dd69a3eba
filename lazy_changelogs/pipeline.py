"""Changelog pipeline: discover → attribute → bump → render.

This module orchestrates a lazy-changelogs run:
1. Find the repository root and load [tool.lazy-changelogs]
2. Build the package dependency graph and read git history (concurrently)
3. Attribute every commit's changes to the packages whose files it touched
4. Resolve each package's releases from tags (or from commit messages)
5. Compute each package's bump and next version
6. Group changes into versions and render/write the changelogs

Nothing here mutates git history; the only writes are CHANGELOG files.
"""

from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from .attribution import attribute_changes
from .bumps import package_bump
from .changelog import (
    ChangelogWriter,
    alphabetical,
    build_version_groups,
    by_change_type,
    in_order,
    render_markdown,
    to_records,
)
from .config import ChangelogConfig, load_config
from .exceptions import DependencyCycleError, InvalidVersionError
from .graph import DependencyGraph, build_graph
from .history import find_repo_root, read_history
from .models import (
    CommitRecord,
    ManifestNode,
    ManifestWarning,
    PackageBump,
    PackageHistory,
    VersionGroup,
    VersionTag,
)
from .shell import step, warn
from .tags import collect_message_versions, collect_version_tags
from .versions import parse_version


class Workspace(BaseModel):
    """Everything known about a repository after discovery."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    root: Path
    config: ChangelogConfig
    graph: DependencyGraph
    warnings: list[ManifestWarning] = Field(default_factory=list)
    commits: list[CommitRecord] = Field(default_factory=list)
    histories: dict[str, PackageHistory] = Field(default_factory=dict)
    tags: dict[str, list[VersionTag]] = Field(default_factory=dict)


def discover(cwd: Path | str = ".", config: ChangelogConfig | None = None) -> Workspace:
    """Scan the repository containing `cwd` and attribute its history.

    The manifest graph and the git log don't depend on each other, so they
    are gathered concurrently and joined before attribution.

    Raises:
        RepoNotFoundError: If `cwd` is not inside a git repository.
        DuplicatePackageError: If two manifests declare the same name.
    """
    step("Discovering packages and history")

    root = find_repo_root(cwd)
    config = config or load_config(root)

    with ThreadPoolExecutor(max_workers=2) as pool:
        graph_future = pool.submit(
            build_graph,
            root,
            filenames=config.manifest_filenames,
            exclude_dirs=config.exclude_dirs,
            exclude_kinds=config.exclude_dependency_kinds,
            exclude_protocols=config.exclude_protocols,
            include_root=config.include_root,
            max_workers=config.max_workers,
        )
        history_future = pool.submit(read_history, root)
        result = graph_future.result()
        commits = history_future.result()

    for warning in result.warnings:
        warn(f"skipped {warning.path}: {warning.message}")

    graph = result.graph
    for node in graph:
        deps = sorted(graph.dependencies_of(node.name))
        dep_list = f" → [{', '.join(deps)}]" if deps else ""
        print(f"  {node.name} {node.version} ({node.relative_dir or '.'}){dep_list}")
    print(f"  {len(commits)} commits")

    histories = attribute_changes(
        commits,
        graph,
        config.make_parser(),
        propagate=config.propagate,
        follow_renames=config.follow_renames,
    )
    if config.version_in_message:
        tags = {
            name: collect_message_versions(
                commits,
                config.template_for(name),
                package=name,
                hashes=_own_commits(histories[name]),
            )
            for name in graph.names
        }
    else:
        tags = {
            name: collect_version_tags(commits, config.template_for(name), package=name)
            for name in graph.names
        }

    return Workspace(
        root=root,
        config=config,
        graph=graph,
        warnings=result.warnings,
        commits=commits,
        histories=histories,
        tags=tags,
    )


def _own_commits(history: PackageHistory) -> set[str]:
    # Release commits touch the package they release
    hashes = {c.commit.hash for c in history.changes if c.propagated_from is None}
    hashes.update(c.hash for c in history.uncategorized)
    return hashes


def package_order(graph: DependencyGraph) -> list[str]:
    """Packages in dependency order, or by name if the graph has a cycle."""
    try:
        return graph.topological_order()
    except DependencyCycleError as e:
        warn(f"{e}; listing packages by name")
        return sorted(graph.names)


def compute_bumps(workspace: Workspace) -> dict[str, PackageBump]:
    """Compute the bump and next version of every package.

    A package whose version can't be read is reported and left out.
    """
    step("Computing version bumps")

    bumps: dict[str, PackageBump] = {}
    for name in package_order(workspace.graph):
        node = workspace.graph.get(name)
        try:
            bump = package_bump(
                workspace.histories[name].changes, workspace.tags[name], node.version
            )
        except InvalidVersionError as e:
            warn(f"{name}: {e}; skipped")
            continue
        bumps[name] = bump
        uncategorized = len(workspace.histories[name].uncategorized)
        note = f" ({uncategorized} uncategorized)" if uncategorized else ""
        print(f"  {name}: {bump.current} → {bump.next} [{bump.bump}]{note}")
    return bumps


def compute_changelogs(workspace: Workspace) -> dict[str, list[VersionGroup]]:
    """Group every package's changes into version groups, newest first."""
    config = workspace.config
    label_for = by_change_type(config.change_types)
    return {
        name: build_version_groups(
            workspace.histories[name].changes,
            workspace.tags[name],
            label_for=label_for,
            pending_version=_pending_version(workspace.graph.get(name)),
        )
        for name in package_order(workspace.graph)
    }


def _pending_version(node: ManifestNode) -> str | None:
    try:
        parse_version(node.version)
    except InvalidVersionError as e:
        warn(f"{node.name}: {e}; unreleased changes stay unversioned")
        return None
    return node.version


def run_changelogs(
    cwd: Path | str = ".",
    *,
    packages: list[str] | None = None,
    write: bool = False,
    as_json: bool = False,
) -> dict[str, str]:
    """Render changelogs for the selected packages (all by default).

    Args:
        cwd: Any directory inside the repository.
        packages: Package names to render; unknown names are reported.
        write: Write each changelog next to its manifest.
        as_json: Render JSON records instead of markdown.

    Returns:
        Map of package name → rendered changelog.
    """
    workspace = discover(cwd)
    config = workspace.config
    groups = compute_changelogs(workspace)

    selected = list(groups)
    if packages:
        for name in packages:
            if name not in groups:
                warn(f"unknown package {name!r}")
        selected = [name for name in selected if name in packages]

    key = in_order(config.section_order) if config.section_order else alphabetical
    writer = ChangelogWriter(config.changelog_filename)

    def render(name: str) -> str:
        if as_json:
            records = to_records(groups[name], key=key, titles=config.section_titles)
            content = json.dumps(records, indent=2) + "\n"
        else:
            content = render_markdown(
                name, groups[name], key=key, titles=config.section_titles
            )
        if write:
            writer.write(workspace.graph.get(name), content)
        return content

    step(f"Rendering {len(selected)} changelogs")
    with ThreadPoolExecutor(max_workers=config.max_workers) as pool:
        rendered = dict(zip(selected, pool.map(render, selected)))

    for path in writer.written:
        print(f"  Wrote {path.relative_to(workspace.root)}")
    return rendered
