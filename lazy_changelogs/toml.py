"""TOML reading utilities.

Uses tomlkit, which parses both pyproject.toml manifests and the
[tool.lazy-changelogs] configuration table.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomlkit
from packaging.utils import canonicalize_name

from .models import DependencyKind


def load_pyproject(path: Path) -> tomlkit.TOMLDocument:
    """Load and parse a pyproject.toml file."""
    return tomlkit.parse(path.read_text(encoding="utf-8"))


def get_project_name(doc: tomlkit.TOMLDocument, fallback: str) -> str:
    """Extract the canonical package name from [project].name.

    Names are normalized per PEP 503 (lowercase, hyphens instead of
    underscores) for consistent comparison.

    Args:
        doc: Parsed pyproject.toml document.
        fallback: Value to use if name is not specified.
    """
    return canonicalize_name(str(doc.get("project", {}).get("name", fallback)))


def get_project_version(doc: tomlkit.TOMLDocument) -> str:
    """Extract version from [project].version, defaulting to '0.0.0'."""
    return str(doc.get("project", {}).get("version", "0.0.0"))


def get_dependency_strings(doc: tomlkit.TOMLDocument) -> dict[DependencyKind, list[str]]:
    """Collect dependency strings from a pyproject.toml, grouped by kind.

    Gathers dependencies from three locations:
    - [project].dependencies → RUNTIME
    - [project].optional-dependencies.* → OPTIONAL
    - [dependency-groups].* (PEP 735) → DEV

    Returns raw PEP 508 strings like "requests>=2.0" or "pkg[extra]~=1.0".
    Include-group tables inside dependency groups are skipped.
    """
    project = doc.get("project", {})
    grouped: dict[DependencyKind, list[str]] = {
        DependencyKind.RUNTIME: [str(d) for d in project.get("dependencies", [])],
        DependencyKind.OPTIONAL: [],
        DependencyKind.DEV: [],
    }
    for group_deps in project.get("optional-dependencies", {}).values():
        grouped[DependencyKind.OPTIONAL].extend(str(d) for d in group_deps)
    for group_deps in doc.get("dependency-groups", {}).values():
        grouped[DependencyKind.DEV].extend(
            str(d) for d in group_deps if isinstance(d, str)
        )
    return grouped


def get_uv_sources(doc: tomlkit.TOMLDocument) -> dict[str, dict[str, Any]]:
    """Return [tool.uv.sources] keyed by canonical package name."""
    sources = doc.get("tool", {}).get("uv", {}).get("sources", {})
    return {
        canonicalize_name(name): source.unwrap() if hasattr(source, "unwrap") else dict(source)
        for name, source in sources.items()
        if isinstance(source, dict)
    }


def get_tool_table(doc: tomlkit.TOMLDocument, tool: str) -> dict[str, Any]:
    """Return [tool.<tool>] as plain Python data ({} if absent)."""
    table = doc.get("tool", {}).get(tool, {})
    return table.unwrap() if hasattr(table, "unwrap") else dict(table)
