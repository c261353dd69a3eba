"""Tests for lazy_changelogs.deps."""

from __future__ import annotations

import pytest
from packaging.requirements import InvalidRequirement

from lazy_changelogs.deps import (
    classify_npm_specifier,
    parse_npm_dependencies,
    parse_pep508,
)
from lazy_changelogs.models import DependencySpec, Protocol


class TestParsePep508:
    def test_registry_dependency(self) -> None:
        specs = parse_pep508(["requests>=2.0"])

        assert specs == {"requests": DependencySpec(specifier=">=2.0", protocol=Protocol.SEMVER)}

    def test_workspace_source(self) -> None:
        specs = parse_pep508(["core"], {"core": {"workspace": True}})

        assert specs["core"].protocol is Protocol.WORKSPACE

    def test_path_source(self) -> None:
        specs = parse_pep508(["app>=0.1"], {"app": {"path": "../app"}})

        assert specs["app"] == DependencySpec(specifier="../app", protocol=Protocol.FILE)

    def test_file_url(self) -> None:
        specs = parse_pep508(["core @ file:///repo/packages/core"])

        assert specs["core"].protocol is Protocol.FILE
        assert specs["core"].specifier == "file:///repo/packages/core"

    def test_remote_url_is_not_local(self) -> None:
        specs = parse_pep508(["core @ https://example.com/core-1.0.tar.gz"])

        assert specs["core"].protocol is Protocol.SEMVER

    def test_names_are_canonical(self) -> None:
        specs = parse_pep508(["My_Lib==1.0"], {"my-lib": {"workspace": True}})

        assert list(specs) == ["my-lib"]
        assert specs["my-lib"].protocol is Protocol.WORKSPACE

    def test_first_declaration_wins(self) -> None:
        specs = parse_pep508(
            ['core>=1.0; python_version >= "3.10"', 'core>=0.9; python_version < "3.10"']
        )

        assert specs["core"].specifier == ">=1.0"

    def test_invalid_requirement(self) -> None:
        with pytest.raises(InvalidRequirement):
            parse_pep508(["not a valid ==="])


class TestNpmSpecifiers:
    @pytest.mark.parametrize(
        ("specifier", "protocol"),
        [
            ("^1.2.0", Protocol.SEMVER),
            ("latest", Protocol.SEMVER),
            ("workspace:*", Protocol.WORKSPACE),
            ("workspace:^1.0.0", Protocol.WORKSPACE),
            ("file:../core", Protocol.FILE),
            ("link:../core", Protocol.FILE),
            ("portal:../core", Protocol.FILE),
            ("npm:other@1.0.0", Protocol.SEMVER),
        ],
    )
    def test_classify(self, specifier: str, protocol: Protocol) -> None:
        assert classify_npm_specifier(specifier) is protocol

    def test_parse_table(self) -> None:
        specs = parse_npm_dependencies({"core": "workspace:*", "left-pad": "^1.3.0"})

        assert specs == {
            "core": DependencySpec(specifier="workspace:*", protocol=Protocol.WORKSPACE),
            "left-pad": DependencySpec(specifier="^1.3.0", protocol=Protocol.SEMVER),
        }

    def test_missing_or_malformed_table(self) -> None:
        assert parse_npm_dependencies(None) == {}
        assert parse_npm_dependencies(["core"]) == {}  # type: ignore[arg-type]
