"""Manifest discovery and parsing.

A manifest is a pyproject.toml or package.json declaring a package's name,
version and dependencies. Each manifest becomes one ManifestNode; its
directory owns every file below it that isn't owned by a deeper manifest.
"""

from __future__ import annotations

import json
import os
from collections.abc import Iterable, Sequence
from pathlib import Path

from packaging.requirements import InvalidRequirement
from pydantic import ValidationError
from tomlkit.exceptions import TOMLKitError

from .deps import parse_npm_dependencies, parse_pep508
from .exceptions import ManifestError
from .models import DependencyKind, ManifestNode
from .toml import (
    get_dependency_strings,
    get_project_name,
    get_project_version,
    get_uv_sources,
    load_pyproject,
)

DEFAULT_MANIFEST_FILENAMES = ("pyproject.toml", "package.json")

# Dependency caches, build output and VCS metadata never hold workspace packages
DEFAULT_EXCLUDE_DIRS = (
    ".git",
    ".hg",
    ".venv",
    "venv",
    "node_modules",
    "__pycache__",
    ".tox",
    ".nox",
    "build",
    "dist",
)

_NPM_DEPENDENCY_TABLES = {
    "dependencies": DependencyKind.RUNTIME,
    "devDependencies": DependencyKind.DEV,
    "peerDependencies": DependencyKind.PEER,
    "optionalDependencies": DependencyKind.OPTIONAL,
}


def list_manifests(
    root: Path,
    filenames: Sequence[str] = DEFAULT_MANIFEST_FILENAMES,
    exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
) -> list[Path]:
    """Find manifest files below `root`, sorted by path.

    Excluded directory names are pruned at any depth. When a directory
    holds several manifest files, only the first one in `filenames` is
    returned so each directory maps to at most one package.
    """
    excluded = set(exclude_dirs)
    found: list[Path] = []
    for dirpath, dirnames, files in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in excluded)
        for filename in filenames:
            if filename in files:
                found.append(Path(dirpath) / filename)
                break
    return sorted(found)


def read_manifest(path: Path, root: Path) -> ManifestNode:
    """Parse one manifest file into a ManifestNode.

    Args:
        path: Absolute path to the manifest.
        root: Search root; the manifest directly inside it is the root package.

    Raises:
        ManifestError: If the file can't be read or doesn't parse.
    """
    directory = path.parent.resolve()
    root = root.resolve()
    relative_dir = directory.relative_to(root).as_posix()
    if relative_dir == ".":
        relative_dir = ""
    try:
        if path.name == "package.json":
            name, version, dependencies = _read_package_json(path, directory.name)
        else:
            name, version, dependencies = _read_pyproject(path, directory.name)
        return ManifestNode(
            name=name,
            version=version,
            directory=directory,
            relative_dir=relative_dir,
            manifest_path=path.resolve(),
            is_root=relative_dir == "",
            dependencies=dependencies,
        )
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestError(path, f"could not read file: {e}") from e
    except (json.JSONDecodeError, TOMLKitError) as e:
        raise ManifestError(path, f"could not parse file: {e}") from e
    except InvalidRequirement as e:
        raise ManifestError(path, f"invalid dependency: {e}") from e
    except (ValidationError, TypeError, AttributeError) as e:
        raise ManifestError(path, f"unexpected manifest structure: {e}") from e


def _read_pyproject(path: Path, fallback_name: str):
    doc = load_pyproject(path)
    sources = get_uv_sources(doc)
    dependencies = {
        kind: parse_pep508(dep_strings, sources)
        for kind, dep_strings in get_dependency_strings(doc).items()
    }
    return get_project_name(doc, fallback_name), get_project_version(doc), dependencies


def _read_package_json(path: Path, fallback_name: str):
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise TypeError("top-level value is not an object")
    dependencies = {
        kind: parse_npm_dependencies(data.get(table))
        for table, kind in _NPM_DEPENDENCY_TABLES.items()
    }
    name = str(data.get("name") or fallback_name)
    version = str(data.get("version") or "0.0.0")
    return name, version, dependencies
