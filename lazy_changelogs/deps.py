"""Dependency declaration parsing.

Normalizes the dependency declarations of both manifest formats into
name → DependencySpec maps, classifying each by link protocol:

- pyproject.toml: PEP 508 strings, with `file:` URLs and
  [tool.uv.sources] `path`/`workspace` entries marking local links.
- package.json: version ranges, with `file:`/`link:` and `workspace:`
  prefixes marking local links.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from packaging.requirements import Requirement
from packaging.utils import canonicalize_name

from .models import DependencySpec, Protocol

_FILE_PREFIXES = ("file", "link", "portal")


def parse_pep508(
    dep_strings: Iterable[str], sources: Mapping[str, Mapping[str, Any]] | None = None
) -> dict[str, DependencySpec]:
    """Parse PEP 508 strings into canonical name → DependencySpec.

    Args:
        dep_strings: Raw dependency strings from one dependency table.
        sources: [tool.uv.sources] entries keyed by canonical name.

    Raises:
        packaging.requirements.InvalidRequirement: On a malformed string.

    Examples:
        "core>=1.0" → {"core": DependencySpec(">=1.0", SEMVER)}
        "core @ file:///repo/packages/core" → {"core": (url, FILE)}
        "core" with sources {"core": {"workspace": True}} → WORKSPACE
    """
    sources = sources or {}
    specs: dict[str, DependencySpec] = {}
    for dep_str in dep_strings:
        req = Requirement(dep_str)
        name = canonicalize_name(req.name)
        source = sources.get(name, {})
        if source.get("workspace"):
            spec = DependencySpec(specifier=str(req.specifier), protocol=Protocol.WORKSPACE)
        elif "path" in source:
            spec = DependencySpec(specifier=str(source["path"]), protocol=Protocol.FILE)
        elif req.url and req.url.startswith("file:"):
            spec = DependencySpec(specifier=req.url, protocol=Protocol.FILE)
        else:
            spec = DependencySpec(
                specifier=req.url or str(req.specifier), protocol=Protocol.SEMVER
            )
        # First declaration wins when a name repeats with different markers
        specs.setdefault(name, spec)
    return specs


def classify_npm_specifier(specifier: str) -> Protocol:
    """Classify a package.json dependency specifier by protocol.

    Examples:
        "^1.2.0" → SEMVER
        "file:../core" → FILE
        "workspace:*" → WORKSPACE
    """
    prefix, sep, _ = specifier.partition(":")
    if not sep:
        return Protocol.SEMVER
    if prefix == "workspace":
        return Protocol.WORKSPACE
    if prefix in _FILE_PREFIXES:
        return Protocol.FILE
    return Protocol.SEMVER


def parse_npm_dependencies(table: Mapping[str, Any] | None) -> dict[str, DependencySpec]:
    """Parse a package.json dependency table into name → DependencySpec."""
    if not isinstance(table, Mapping):
        return {}
    return {
        str(name): DependencySpec(
            specifier=str(specifier), protocol=classify_npm_specifier(str(specifier))
        )
        for name, specifier in table.items()
    }
