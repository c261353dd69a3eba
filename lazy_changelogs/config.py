"""Configuration for lazy-changelogs.

Settings live in the [tool.lazy-changelogs] table of the repository root
pyproject.toml. Every field has a default, so the table (and the file) are
optional. The loaded ChangelogConfig is passed explicitly to everything that
needs it.

Example:
    [tool.lazy-changelogs]
    tag-template = "{name}/v{version}"
    exclude-dependency-kinds = ["dev"]
    exclude-protocols = ["semver"]
    version-in-message = true
    section-order = ["Features", "Bug Fixes"]

    [tool.lazy-changelogs.bump-map]
    feat = "minor"
    fix = "patch"
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from tomlkit.exceptions import TOMLKitError

from .commits import (
    BREAKING_TRAILER,
    CONVENTIONAL_HEADER,
    DEFAULT_CHANGE_TYPES,
    ChangeType,
    CommitMessageParser,
    compile_grammar,
    default_bump_map,
)
from .exceptions import ConfigError
from .manifests import DEFAULT_EXCLUDE_DIRS, DEFAULT_MANIFEST_FILENAMES
from .models import DependencyKind, Protocol
from .tags import DEFAULT_TAG_TEMPLATE, TagTemplate
from .toml import get_tool_table, load_pyproject
from .versions import Bump

TOOL_NAME = "lazy-changelogs"


class ChangelogConfig(BaseModel):
    """All tunable behaviour, with keys accepted in kebab-case or snake_case."""

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        alias_generator=lambda name: name.replace("_", "-"),
    )

    header_patterns: list[str] = Field(default_factory=lambda: [CONVENTIONAL_HEADER])
    body_patterns: list[str] = Field(default_factory=lambda: [BREAKING_TRAILER])
    split_paragraphs: bool = False
    change_types: list[ChangeType] = Field(
        default_factory=lambda: list(DEFAULT_CHANGE_TYPES)
    )
    bump_map: dict[str, Bump] | None = None

    tag_template: str = DEFAULT_TAG_TEMPLATE
    tag_templates: dict[str, str] = Field(default_factory=dict)
    version_in_message: bool = False

    manifest_filenames: list[str] = Field(
        default_factory=lambda: list(DEFAULT_MANIFEST_FILENAMES)
    )
    exclude_dirs: list[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDE_DIRS))
    exclude_dependency_kinds: list[DependencyKind] = Field(default_factory=list)
    exclude_protocols: list[Protocol] = Field(default_factory=list)
    include_root: bool = False
    propagate: bool = False
    follow_renames: bool = True
    max_workers: int = Field(default=8, ge=1)

    changelog_filename: str = "CHANGELOG.md"
    section_titles: dict[str, str] = Field(default_factory=dict)
    section_order: list[str] = Field(default_factory=list)

    @field_validator("header_patterns")
    @classmethod
    def _check_header_patterns(cls, patterns: list[str]) -> list[str]:
        for pattern in patterns:
            compile_grammar(pattern, ("type", "title"))
        return patterns

    @field_validator("body_patterns")
    @classmethod
    def _check_body_patterns(cls, patterns: list[str]) -> list[str]:
        for pattern in patterns:
            compile_grammar(pattern, ("title",))
        return patterns

    @field_validator("tag_template")
    @classmethod
    def _check_tag_template(cls, template: str) -> str:
        TagTemplate(template)
        return template

    @field_validator("tag_templates")
    @classmethod
    def _check_tag_templates(cls, templates: dict[str, str]) -> dict[str, str]:
        for template in templates.values():
            TagTemplate(template)
        return templates

    @property
    def effective_bump_map(self) -> dict[str, Bump]:
        """The explicit bump map, or one derived from the change types."""
        if self.bump_map is not None:
            return dict(self.bump_map)
        return default_bump_map(self.change_types)

    def template_for(self, package: str) -> TagTemplate:
        """The tag template for a package (per-package override first)."""
        return TagTemplate(self.tag_templates.get(package, self.tag_template))

    def make_parser(self) -> CommitMessageParser:
        return CommitMessageParser(
            self.header_patterns,
            self.body_patterns,
            self.effective_bump_map,
            split_paragraphs=self.split_paragraphs,
        )


def load_config(root: Path) -> ChangelogConfig:
    """Load configuration from `root`/pyproject.toml.

    Returns the defaults if there is no pyproject.toml or no
    [tool.lazy-changelogs] table.

    Raises:
        ConfigError: If the table contains invalid settings.
    """
    pyproject = root / "pyproject.toml"
    if not pyproject.is_file():
        return ChangelogConfig()
    try:
        table = get_tool_table(load_pyproject(pyproject), TOOL_NAME)
    except (OSError, UnicodeDecodeError, TOMLKitError) as e:
        raise ConfigError(f"Could not read {pyproject}: {e}") from e
    try:
        return ChangelogConfig.model_validate(table)
    except ValidationError as e:
        raise ConfigError(f"Invalid [tool.{TOOL_NAME}] in {pyproject}:\n{e}") from e
