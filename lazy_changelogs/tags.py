"""Version tag resolution.

Release tags name a package and a version following a template such as
``{name}@{version}`` (the default, e.g. ``@scope/pkg@1.2.3``) or
``{name}/v{version}``. Refs that don't follow the template, or whose
version isn't a valid semantic version, are simply not version tags.
Releases can also be read from commit messages that mention the tag.
"""

from __future__ import annotations

import re
from collections.abc import Collection, Iterable

from pydantic import BaseModel

from .exceptions import ConfigError, InvalidTagQueryError
from .models import CommitRecord, VersionTag
from .history import refs_to_tags
from .versions import is_valid_version

DEFAULT_TAG_TEMPLATE = "{name}@{version}"

_NAME_PATTERN = r"(?P<name>(?:@(?P<scope>[^@/\s]+)/)?(?P<unscoped>[^@\s]+?))"
_VERSION_PATTERN = (
    r"(?P<version>\d+\.\d+\.\d+(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?)"
)
_QUERY_VERSION_PATTERN = r"(?P<version>[^@\s]+)"
# A tag mentioned in prose ends at whitespace, closing punctuation or a full stop
_TAG_END = r"(?=$|[\s,;:!?)\]]|\.(?:\s|$))"

# Prefixes and suffixes git puts around tag names in various outputs
_REF_PREFIXES = ("tag: ", "refs/tags/")
_PEELED_SUFFIX = "^{}"


class TagTemplate:
    """A compiled `{name}`/`{version}` tag naming template.

    Tags are matched with a semver-shaped version part, so a separator that
    can also occur in names (``{name}-{version}`` with ``my-pkg-1.2.3``)
    still splits at the version. Queries fall back to a looser pattern that
    accepts any version text.
    """

    def __init__(self, template: str = DEFAULT_TAG_TEMPLATE) -> None:
        if template.count("{name}") != 1 or template.count("{version}") != 1:
            raise ConfigError(
                f"Tag template {template!r} must contain {{name}} and {{version}} exactly once"
            )
        self.template = template
        regex = self._regex(_VERSION_PATTERN)
        self.pattern = re.compile(f"^{regex}$")
        self.search_pattern = re.compile(f"(?<!\\S){regex}{_TAG_END}", re.MULTILINE)
        self.query_pattern = re.compile(f"^{self._regex(_QUERY_VERSION_PATTERN)}$")
        self.name_pattern = re.compile(f"^{_NAME_PATTERN}$")

    def _regex(self, version_pattern: str) -> str:
        parts = re.split(r"(\{name\}|\{version\})", self.template)
        return "".join(
            _NAME_PATTERN
            if part == "{name}"
            else version_pattern
            if part == "{version}"
            else re.escape(part)
            for part in parts
        )

    def __str__(self) -> str:
        return self.template

    def __repr__(self) -> str:
        return f"TagTemplate({self.template!r})"

    def format(self, name: str, version: str) -> str:
        return self.template.replace("{name}", name).replace("{version}", version)

    def match(self, tag: str) -> re.Match[str] | None:
        return self.pattern.match(tag)


class TagQuery(BaseModel):
    """A project identifier: a package name, optionally with a version."""

    name: str
    version: str | None = None


def _as_template(template: TagTemplate | str) -> TagTemplate:
    return template if isinstance(template, TagTemplate) else TagTemplate(template)


def strip_ref(ref: str) -> str:
    """Remove git-specific decoration from a ref string.

    Examples:
        "tag: core@1.0.0" → "core@1.0.0"
        "refs/tags/core@1.0.0^{}" → "core@1.0.0"
    """
    ref = ref.strip()
    for prefix in _REF_PREFIXES:
        if ref.startswith(prefix):
            ref = ref[len(prefix) :]
    if ref.endswith(_PEELED_SUFFIX):
        ref = ref[: -len(_PEELED_SUFFIX)]
    return ref


def resolve_tag(
    ref: str, template: TagTemplate | str = DEFAULT_TAG_TEMPLATE
) -> VersionTag | None:
    """Resolve a ref into a VersionTag, or None if it isn't one.

    A ref is only a version tag if it matches the template and its version
    part is a valid semantic version.
    """
    tag = strip_ref(ref)
    match = _as_template(template).match(tag)
    if not match or not is_valid_version(match["version"]):
        return None
    return VersionTag(
        tag=tag,
        name=match["name"],
        scope=match["scope"],
        unscoped=match["unscoped"],
        version=match["version"],
    )


def format_tag(
    name: str, version: str, template: TagTemplate | str = DEFAULT_TAG_TEMPLATE
) -> str:
    """Build the tag for a package version, e.g. ("core", "1.2.3") → "core@1.2.3"."""
    return _as_template(template).format(name, version)


def parse_query(
    query: str, template: TagTemplate | str = DEFAULT_TAG_TEMPLATE
) -> TagQuery:
    """Parse a `name` or `name<sep>version` project identifier.

    Unlike resolve_tag(), the version is not required to be valid semver;
    it is compared verbatim.

    Raises:
        InvalidTagQueryError: If the query is neither form.
    """
    compiled = _as_template(template)
    query = strip_ref(query)
    match = compiled.match(query) or compiled.query_pattern.match(query)
    if match:
        return TagQuery(name=match["name"], version=match["version"])
    match = compiled.name_pattern.match(query)
    if match:
        return TagQuery(name=match["name"])
    raise InvalidTagQueryError(
        f"{query!r} is not a valid project identifier for template {compiled.template!r}"
    )


def tag_matches(
    tag: VersionTag,
    query: TagQuery | str,
    template: TagTemplate | str = DEFAULT_TAG_TEMPLATE,
) -> bool:
    """Check whether a version tag belongs to the queried project.

    If the query includes a version, both name and version must match;
    otherwise any version of the named project matches.

    Example:
        tag_matches(core@3.0.0, "core") → True
        tag_matches(core@3.0.0, "core@3.0.0") → True
        tag_matches(core@3.0.0, "core@1.1.1") → False
    """
    if isinstance(query, str):
        query = parse_query(query, template)
    return tag.name == query.name and (
        query.version is None or tag.version == query.version
    )


def collect_version_tags(
    commits: Iterable[CommitRecord],
    template: TagTemplate | str = DEFAULT_TAG_TEMPLATE,
    package: str | None = None,
) -> list[VersionTag]:
    """Resolve every version tag in the history, oldest first.

    Each tag records the commit it points at and that commit's position in
    `commits`. If `package` is given, only that package's tags are kept.
    """
    compiled = _as_template(template)
    found: list[VersionTag] = []
    for position, commit in enumerate(commits):
        for ref in refs_to_tags(commit.refs):
            tag = resolve_tag(ref, compiled)
            if tag is None or (package is not None and tag.name != package):
                continue
            found.append(
                tag.model_copy(
                    update={
                        "commit": commit.hash,
                        "position": position,
                        "date": commit.date,
                    }
                )
            )
    return found


def collect_message_versions(
    commits: Iterable[CommitRecord],
    template: TagTemplate | str = DEFAULT_TAG_TEMPLATE,
    package: str | None = None,
    *,
    hashes: Collection[str] | None = None,
) -> list[VersionTag]:
    """Find release markers written in commit messages, oldest first.

    For histories whose releases are recorded as commits (e.g.
    "chore(release): core@1.2.0") rather than as git tags. The first
    template match in a commit's header or body that is a valid version
    counts; other mentions in the same message are ignored.

    Args:
        commits: Oldest-first history.
        template: Tag naming template the markers follow.
        package: Only keep markers naming this package.
        hashes: Only scan these commits (positions still refer to the
            full history).
    """
    compiled = _as_template(template)
    found: list[VersionTag] = []
    for position, commit in enumerate(commits):
        if hashes is not None and commit.hash not in hashes:
            continue
        message = f"{commit.header}\n{commit.body}"
        for match in compiled.search_pattern.finditer(message):
            tag = resolve_tag(match.group(0), compiled)
            if tag is None or (package is not None and tag.name != package):
                continue
            found.append(
                tag.model_copy(
                    update={
                        "commit": commit.hash,
                        "position": position,
                        "date": commit.date,
                    }
                )
            )
            break
    return found
