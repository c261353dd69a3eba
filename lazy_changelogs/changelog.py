"""Changelog grouping and rendering.

Changes are split into versions by the package's release tags: every change
up to and including the commit tagged N+1 (but after the commit tagged N)
was released as N+1. Changes after the last tag are unreleased. Within a
version, changes are split into labelled sections.

Section order is chosen by the caller through a sort key. Sorting is
stable, so sections the key ranks equally stay in the order they first
appeared in history, and entries within a section are always in commit
order.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

from .bumps import latest_tag
from .commits import ChangeType
from .models import AttributedChange, ManifestNode, VersionGroup, VersionTag
from .versions import Bump, compare_versions

LabelFor = Callable[[AttributedChange], "str | None"]
SectionKey = Callable[[str], Any]

UNRELEASED = "Unreleased"


def by_type(change: AttributedChange) -> str:
    """Label a change with its raw commit type."""
    return change.descriptor.type


def by_change_type(
    change_types: Iterable[ChangeType], fallback: str | None = None
) -> LabelFor:
    """Label changes with the title of the ChangeType owning their type.

    Changes whose type belongs to no ChangeType get `fallback`; with the
    default of None they are left out of the changelog.
    """
    titles = {label: ct.title for ct in change_types for label in ct.labels}

    def label_for(change: AttributedChange) -> str | None:
        return titles.get(change.descriptor.type, fallback)

    return label_for


def alphabetical(label: str) -> str:
    return label.casefold()


def by_severity(bump_map: Mapping[str, Bump]) -> SectionKey:
    """Sort sections by the bump their label maps to, strongest first."""

    def key(label: str) -> int:
        bump = bump_map.get(label)
        return -(bump.rank if bump else 0)

    return key


def in_order(labels: Sequence[str]) -> SectionKey:
    """Sort sections in the given order; unknown labels go last."""
    positions = {label: i for i, label in enumerate(labels)}
    return lambda label: positions.get(label, len(positions))


def build_version_groups(
    changes: Sequence[AttributedChange],
    tags: Sequence[VersionTag],
    *,
    label_for: LabelFor = by_type,
    pending_version: str | None = None,
) -> list[VersionGroup]:
    """Partition a package's changes into version groups, newest first.

    Args:
        changes: The package's attributed changes.
        tags: The package's version tags, collected from history (so each
            has a position).
        label_for: Maps a change to its section label; None drops it.
        pending_version: The version the package's manifest declares. If it
            is newer than every tag, unreleased changes are grouped under
            it instead of as unreleased.

    Returns:
        Non-empty groups, the unreleased group (if any) first.
    """
    # One boundary per tagged commit; if a commit carries several tags of
    # this package, the highest version wins.
    boundaries: dict[int, VersionTag] = {}
    for tag in tags:
        if tag.position is None:
            continue
        current = boundaries.get(tag.position)
        if current is None or compare_versions(tag.version, current.version) > 0:
            boundaries[tag.position] = tag
    ordered_tags = [boundaries[p] for p in sorted(boundaries)]

    released: dict[int, VersionGroup] = {
        p: VersionGroup(version=t.version, date=t.date) for p, t in boundaries.items()
    }
    unreleased_version = None
    newest = latest_tag(ordered_tags)
    if pending_version and (
        newest is None or compare_versions(pending_version, newest.version) > 0
    ):
        unreleased_version = pending_version
    unreleased = VersionGroup(version=unreleased_version)

    for change in sorted(changes, key=lambda c: c.position):
        label = label_for(change)
        if label is None:
            continue
        boundary = next((t for t in ordered_tags if t.position >= change.position), None)
        if boundary is None:
            group = unreleased
            if group.date is None or change.commit.date > group.date:
                group.date = change.commit.date
        else:
            group = released[boundary.position]
        group.sections.setdefault(label, []).append(change)

    groups = [released[t.position] for t in reversed(ordered_tags)]
    return [g for g in [unreleased, *groups] if g.sections]


def sorted_sections(
    group: VersionGroup, key: SectionKey = alphabetical
) -> list[tuple[str, list[AttributedChange]]]:
    """A group's sections ordered by `key`, stable for ties."""
    return sorted(group.sections.items(), key=lambda item: key(item[0]))


def format_change(change: AttributedChange) -> str:
    """Format one change as a markdown bullet.

    Examples:
        "- add thing"
        "- **api:** handle null response"
        "- **BREAKING** **core:** change config format"
    """
    d = change.descriptor
    breaking = "**BREAKING** " if d.breaking else ""
    scope = f"**{d.scope}:** " if d.scope else ""
    return f"- {breaking}{scope}{d.title}"


def render_markdown(
    package: str,
    groups: Sequence[VersionGroup],
    *,
    key: SectionKey = alphabetical,
    titles: Mapping[str, str] | None = None,
) -> str:
    """Render version groups as a markdown changelog.

    Args:
        package: Package name for the document title.
        groups: Groups as returned by build_version_groups().
        key: Section sort key.
        titles: Optional label → heading overrides.
    """
    titles = titles or {}
    blocks = [f"# Changelog - {package}"]
    for group in groups:
        version = group.version or UNRELEASED
        date = f" ({group.date.date().isoformat()})" if group.date else ""
        lines = [f"## {version}{date}"]
        for label, changes in sorted_sections(group, key):
            lines.append(f"\n### {titles.get(label, label)}\n")
            lines.extend(format_change(c) for c in changes)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks) + "\n"


def to_records(
    groups: Sequence[VersionGroup],
    *,
    key: SectionKey = alphabetical,
    titles: Mapping[str, str] | None = None,
) -> list[dict[str, Any]]:
    """Convert version groups into JSON-serializable records."""
    titles = titles or {}
    records: list[dict[str, Any]] = []
    for group in groups:
        records.append(
            {
                "version": group.version,
                "date": group.date.isoformat() if group.date else None,
                "sections": [
                    {
                        "label": label,
                        "title": titles.get(label, label),
                        "changes": [
                            {
                                "type": c.descriptor.type,
                                "scope": c.descriptor.scope,
                                "breaking": c.descriptor.breaking,
                                "title": c.descriptor.title,
                                "body": c.descriptor.body,
                                "bump": c.descriptor.bump.value
                                if c.descriptor.bump
                                else None,
                                "commit": c.commit.hash,
                                "author": c.commit.author_name,
                                "date": c.commit.date.isoformat(),
                                "propagated_from": c.propagated_from,
                            }
                            for c in changes
                        ],
                    }
                    for label, changes in sorted_sections(group, key)
                ],
            }
        )
    return records


class ChangelogWriter:
    """Writes rendered changelogs next to their manifests.

    Rendering can run on several threads; writes go through one lock so
    the filesystem sees them one at a time.
    """

    def __init__(self, filename: str = "CHANGELOG.md") -> None:
        self.filename = filename
        self._lock = threading.Lock()
        self.written: list[Path] = []

    def write(self, node: ManifestNode, content: str) -> Path:
        path = node.directory / self.filename
        with self._lock:
            path.write_text(content, encoding="utf-8")
            self.written.append(path)
        return path
