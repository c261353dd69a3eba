"""lazy-changelogs: per-package version bumps and changelogs for monorepos.

The building blocks, leaves first:
- history: read commits (and the files they touched) from git
- commits: parse commit messages into change descriptors
- tags: resolve `name@version` release tags
- graph: build the package dependency graph from manifests
- attribution: assign each commit's changes to the packages it touched
- bumps: reduce a package's changes to a semver bump
- changelog: group changes by version and section, and render them
"""

from __future__ import annotations

from lazy_changelogs.attribution import attribute_changes
from lazy_changelogs.bumps import calculate_bump, effective_bump, package_bump
from lazy_changelogs.changelog import build_version_groups, render_markdown, to_records
from lazy_changelogs.commits import CommitMessageParser
from lazy_changelogs.config import ChangelogConfig, load_config
from lazy_changelogs.graph import DependencyGraph, build_graph
from lazy_changelogs.history import find_repo_root, read_history
from lazy_changelogs.tags import TagTemplate, format_tag, resolve_tag, tag_matches
from lazy_changelogs.versions import Bump

__all__ = [
    "Bump",
    "ChangelogConfig",
    "CommitMessageParser",
    "DependencyGraph",
    "TagTemplate",
    "attribute_changes",
    "build_graph",
    "build_version_groups",
    "calculate_bump",
    "effective_bump",
    "find_repo_root",
    "format_tag",
    "load_config",
    "package_bump",
    "read_history",
    "render_markdown",
    "resolve_tag",
    "tag_matches",
    "to_records",
]
