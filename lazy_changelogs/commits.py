"""Commit message parsing.

Turns a commit header and body into ChangeDescriptors using configurable
regular-expression grammars. Header grammars must provide the named groups
``type`` and ``title`` and may provide ``scope`` and ``breaking``. Body
grammars find breaking-change trailers; they must provide ``title`` and may
provide ``type`` and ``scope``.

A commit that matches no grammar yields no descriptors. That is not an
error: the commit still exists in history, it is just uncategorized.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from pydantic import BaseModel, Field

from .exceptions import ConfigError
from .models import ChangeDescriptor, CommitRecord
from .versions import Bump

CONVENTIONAL_HEADER = (
    r"^(?P<type>[^\s:(!]+)(?:\(\s*(?P<scope>[^)]*?)\s*\))?(?P<breaking>!)?: (?P<title>.+)$"
)
BREAKING_TRAILER = r"^BREAKING[ -]CHANGE: (?P<title>.+)$"

# Type label used for a breaking trailer found in a commit whose header
# matched no grammar.
BREAKING_TYPE = "breaking"

_PARAGRAPH_SPLIT = re.compile(r"(?:\r?\n){2,}")


class ChangeType(BaseModel):
    """A family of commit type labels sharing a bump and changelog section."""

    name: str
    labels: list[str]
    title: str
    bump: Bump | None = None
    description: str = ""


DEFAULT_CHANGE_TYPES: list[ChangeType] = [
    ChangeType(
        name="feature",
        labels=["feature", "feat", "✨", "🆕"],
        title="Features",
        bump=Bump.MINOR,
        description="A new feature.",
    ),
    ChangeType(
        name="change",
        labels=["alt", "alteration", "change", "breaking", "🧨", "💣"],
        title="Changes",
        bump=Bump.MAJOR,
        description="A change to an existing feature, likely breaking dependents.",
    ),
    ChangeType(
        name="bugfix",
        labels=["fix", "bug", "bugfix", "issue", "🐛", "🐞", "🩹"],
        title="Bug Fixes",
        bump=Bump.PATCH,
        description="Resolution of an issue.",
    ),
    ChangeType(
        name="testing",
        labels=["test", "testing", "tests", "🧪"],
        title="Tests",
        description="A change to the test suite or other testing infrastructure.",
    ),
    ChangeType(
        name="documentation",
        labels=["docs", "doc", "documentation", "📚"],
        title="Documentation",
        bump=Bump.PATCH,
        description="A change to the documentation, published so consumers have up-to-date docs.",
    ),
    ChangeType(
        name="security",
        labels=["security", "🔒", "🔐"],
        title="Security",
        bump=Bump.PATCH,
        description="A change impacting security and/or privacy.",
    ),
    ChangeType(
        name="meta",
        labels=["meta", "chore", "refactor", "config", "style"],
        title="Meta",
        description="Tidying, refactors, repo configuration and similar.",
    ),
    ChangeType(
        name="build",
        labels=["build", "ci", "🔧", "🔨"],
        title="Build",
        description="A change to the build system or CI infrastructure.",
    ),
    ChangeType(
        name="performance",
        labels=["performance", "perf", "🚀"],
        title="Performance",
        bump=Bump.PATCH,
        description="Improves performance without introducing new features.",
    ),
]


def default_bump_map(
    change_types: Iterable[ChangeType] = DEFAULT_CHANGE_TYPES,
) -> dict[str, Bump]:
    """Flatten change types into a label → bump mapping.

    Labels whose type has no bump are left out, so they resolve to None.
    """
    return {
        label: change_type.bump
        for change_type in change_types
        if change_type.bump is not None
        for label in change_type.labels
    }


def compile_grammar(pattern: str | re.Pattern[str], required: Sequence[str]) -> re.Pattern[str]:
    """Compile a grammar and check it captures the required named groups.

    Raises:
        ConfigError: If the pattern is invalid or lacks a required group.
    """
    if isinstance(pattern, re.Pattern):
        compiled = pattern
    else:
        try:
            compiled = re.compile(pattern, re.MULTILINE)
        except re.error as e:
            raise ConfigError(f"Invalid pattern {pattern!r}: {e}") from e
    missing = [group for group in required if group not in compiled.groupindex]
    if missing:
        raise ConfigError(
            f"Pattern {compiled.pattern!r} is missing named groups: {', '.join(missing)}"
        )
    return compiled


class CommitMessageParser:
    """Parse commit messages into ChangeDescriptors.

    Args:
        header_patterns: Grammars tried against the header. Every grammar
            that matches yields one descriptor.
        body_patterns: Breaking-change trailer grammars searched for in the
            body. Every match yields one breaking descriptor.
        bump_map: Type label → bump. Unmapped labels get ``bump=None``.
        split_paragraphs: If True, body paragraphs whose first line matches
            a header grammar start additional descriptors, so one commit can
            describe several changes.
    """

    def __init__(
        self,
        header_patterns: Sequence[str | re.Pattern[str]] = (CONVENTIONAL_HEADER,),
        body_patterns: Sequence[str | re.Pattern[str]] = (BREAKING_TRAILER,),
        bump_map: Mapping[str, Bump] | None = None,
        *,
        split_paragraphs: bool = False,
    ) -> None:
        self.header_patterns = [
            compile_grammar(p, ("type", "title")) for p in header_patterns
        ]
        self.body_patterns = [compile_grammar(p, ("title",)) for p in body_patterns]
        self.bump_map: dict[str, Bump] = dict(
            default_bump_map() if bump_map is None else bump_map
        )
        self.split_paragraphs = split_paragraphs

    def parse_commit(self, commit: CommitRecord) -> list[ChangeDescriptor]:
        return self.parse(commit.header, commit.body)

    def parse(self, header: str, body: str = "") -> list[ChangeDescriptor]:
        """Parse a header/body pair.

        Returns:
            One descriptor per matching header grammar (plus per matching
            body paragraph when splitting paragraphs), followed by one
            breaking descriptor per trailer found in the body.
        """
        body = body.strip()
        drafts = self._match_header(header.strip())

        if self.split_paragraphs and body:
            current = drafts
            for paragraph in _PARAGRAPH_SPLIT.split(body):
                first_line, _, rest = paragraph.partition("\n")
                is_trailer = any(p.search(paragraph) for p in self.body_patterns)
                found = [] if is_trailer else self._match_header(first_line.strip())
                if found:
                    for draft in found:
                        if rest.strip():
                            draft["body"].append(rest.strip())
                    drafts.extend(found)
                    current = found
                    continue
                for draft in current:
                    draft["body"].append(paragraph)
        elif body:
            for draft in drafts:
                draft["body"].append(body)

        descriptors = [self._descriptor(draft) for draft in drafts]
        descriptors.extend(self._match_trailers(body, descriptors))
        return descriptors

    def _match_header(self, line: str) -> list[dict[str, Any]]:
        drafts: list[dict[str, Any]] = []
        for pattern in self.header_patterns:
            match = pattern.match(line)
            if not match:
                continue
            groups = match.groupdict()
            drafts.append(
                {
                    "type": groups["type"],
                    "scope": groups.get("scope") or None,
                    "breaking": bool(groups.get("breaking")),
                    "title": groups["title"].strip(),
                    "body": [],
                }
            )
        return drafts

    def _match_trailers(
        self, body: str, header_descriptors: list[ChangeDescriptor]
    ) -> list[ChangeDescriptor]:
        if not body:
            return []
        primary = header_descriptors[0] if header_descriptors else None
        trailers: list[ChangeDescriptor] = []
        for pattern in self.body_patterns:
            for match in pattern.finditer(body):
                groups = match.groupdict()
                type_ = groups.get("type") or (primary.type if primary else BREAKING_TYPE)
                trailers.append(
                    ChangeDescriptor(
                        type=type_,
                        scope=groups.get("scope") or (primary.scope if primary else None),
                        breaking=True,
                        title=groups["title"].strip(),
                        bump=self.bump_map.get(type_),
                    )
                )
        return trailers

    def _descriptor(self, draft: dict[str, Any]) -> ChangeDescriptor:
        body = "\n\n".join(draft["body"]).strip()
        return ChangeDescriptor(
            type=draft["type"],
            scope=draft["scope"],
            breaking=draft["breaking"],
            title=draft["title"],
            body=body or None,
            bump=self.bump_map.get(draft["type"]),
        )


def serialize_descriptors(descriptors: ChangeDescriptor | Iterable[ChangeDescriptor]) -> str:
    """Render descriptors back into commit message text.

    Round-trips with CommitMessageParser(split_paragraphs=True) for the
    conventional grammar, though paragraph spacing inside bodies may change.

    Example:
        [feat(api)!: redo endpoints] → "feat(api)!: redo endpoints"
    """
    if isinstance(descriptors, ChangeDescriptor):
        descriptors = [descriptors]
    parts: list[str] = []
    for d in descriptors:
        scope = f"({d.scope})" if d.scope else ""
        breaking = "!" if d.breaking else ""
        text = f"{d.type}{scope}{breaking}: {d.title}"
        if d.body:
            text += f"\n\n{d.body}"
        parts.append(text)
    return "\n\n".join(parts)
