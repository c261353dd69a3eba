"""Bump severity calculation.

A package's bump is the strongest bump among its changes. A breaking change
is always major, whatever its type maps to; any non-empty set of changes is
at least a patch.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .models import AttributedChange, ChangeDescriptor, PackageBump, VersionTag
from .versions import Bump, bump_version, compare_versions


def effective_bump(descriptor: ChangeDescriptor) -> Bump:
    """The bump a single descriptor asks for, after the breaking override."""
    if descriptor.breaking:
        return Bump.MAJOR
    return descriptor.bump or Bump.NONE


def calculate_bump(descriptors: Iterable[ChangeDescriptor]) -> Bump:
    """Reduce descriptors to a single bump.

    Returns NONE for an empty list, otherwise at least PATCH: an unmapped
    type contributes nothing but never lowers the result.

    Examples:
        [] → NONE
        [fix] → PATCH
        [fix, feat] → MINOR
        [chore!] → MAJOR
    """
    result = Bump.NONE
    for descriptor in descriptors:
        result = max(result, effective_bump(descriptor), Bump.PATCH)
        if result is Bump.MAJOR:
            break
    return result


def changes_since(
    changes: Iterable[AttributedChange], tag: VersionTag | None
) -> list[AttributedChange]:
    """Keep only changes made after the commit carrying `tag`.

    With no tag (or a tag not collected from history) every change is kept.
    """
    if tag is None or tag.position is None:
        return list(changes)
    return [c for c in changes if c.position > tag.position]


def changes_bump(changes: Iterable[AttributedChange]) -> Bump:
    """Bump for attributed changes; propagated changes count as a patch at most."""
    result = Bump.NONE
    for change in changes:
        bump = calculate_bump([change.descriptor])
        if change.propagated_from is not None:
            bump = min(bump, Bump.PATCH)
        result = max(result, bump)
    return result


def latest_tag(tags: Sequence[VersionTag]) -> VersionTag | None:
    """The tag for the highest released version (None if there are none)."""
    latest: VersionTag | None = None
    for tag in tags:
        if latest is None or compare_versions(tag.version, latest.version) > 0:
            latest = tag
    return latest


def package_bump(
    changes: Sequence[AttributedChange],
    tags: Sequence[VersionTag],
    manifest_version: str,
) -> PackageBump:
    """Compute the next version of a package.

    The current version is the newest tagged version, falling back to the
    manifest version for packages never released. Only changes after that
    tag count towards the bump.

    Raises:
        InvalidVersionError: If the current version is not a version.
    """
    tag = latest_tag(tags)
    current = tag.version if tag else manifest_version
    bump = changes_bump(changes_since(changes, tag))
    return PackageBump(current=current, bump=bump, next=bump_version(current, bump))
