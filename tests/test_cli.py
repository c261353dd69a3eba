"""Tests for lazy_changelogs.cli."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from lazy_changelogs.cli import cli
from lazy_changelogs.exceptions import RepoNotFoundError
from lazy_changelogs.models import CommitRecord


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def commits(make_commit: Callable[..., CommitRecord]) -> list[CommitRecord]:
    return [
        make_commit("feat: first", ["packages/core/a.py"], refs="tag: core@1.0.0"),
        make_commit("fix(core): second", ["packages/core/a.py"]),
    ]


class TestGraph:
    @patch("lazy_changelogs.pipeline.read_history", return_value=[])
    def test_lists_edges(
        self, mock_read: MagicMock, runner: CliRunner, monorepo: Path
    ) -> None:
        """graph prints each package's dependencies and dependants."""
        result = runner.invoke(cli, ["-C", str(monorepo), "graph"])

        assert result.exit_code == 0, result.output
        assert "core (packages/core)" in result.stdout
        assert "  needed by:  app, extra, web" in result.stdout
        assert "extra (packages/plugins/extra)\n  depends on: app\n" in result.stdout


class TestBumps:
    @patch("lazy_changelogs.pipeline.read_history")
    def test_text(
        self,
        mock_read: MagicMock,
        runner: CliRunner,
        monorepo: Path,
        commits: list[CommitRecord],
    ) -> None:
        mock_read.return_value = commits

        result = runner.invoke(cli, ["-C", str(monorepo), "bumps"])

        assert result.exit_code == 0, result.output
        assert "core: 1.0.0 → 1.0.1 [patch]" in result.stdout

    @patch("lazy_changelogs.pipeline.read_history")
    def test_json_keeps_stdout_clean(
        self,
        mock_read: MagicMock,
        runner: CliRunner,
        monorepo: Path,
        commits: list[CommitRecord],
    ) -> None:
        """With --json, progress goes to stderr and stdout is pure JSON."""
        mock_read.return_value = commits

        result = runner.invoke(cli, ["-C", str(monorepo), "bumps", "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["core"] == {"current": "1.0.0", "bump": "patch", "next": "1.0.1"}
        assert data["web"]["bump"] == "none"
        assert "Computing version bumps" in result.stderr


class TestChangelog:
    @patch("lazy_changelogs.pipeline.read_history")
    def test_prints_selected_packages(
        self,
        mock_read: MagicMock,
        runner: CliRunner,
        monorepo: Path,
        commits: list[CommitRecord],
    ) -> None:
        mock_read.return_value = commits

        result = runner.invoke(cli, ["-C", str(monorepo), "changelog", "core"])

        assert result.exit_code == 0, result.output
        assert result.stdout.startswith("# Changelog - core\n")
        assert "- **core:** second" in result.stdout
        assert "# Changelog - app" not in result.stdout

    @patch("lazy_changelogs.pipeline.read_history")
    def test_write(
        self,
        mock_read: MagicMock,
        runner: CliRunner,
        monorepo: Path,
        commits: list[CommitRecord],
    ) -> None:
        mock_read.return_value = commits

        result = runner.invoke(cli, ["-C", str(monorepo), "changelog", "--write", "core"])

        assert result.exit_code == 0, result.output
        assert "Wrote packages/core/CHANGELOG.md" in result.stdout
        assert (monorepo / "packages/core/CHANGELOG.md").read_text().startswith(
            "# Changelog - core"
        )

    @patch("lazy_changelogs.pipeline.read_history")
    def test_json(
        self,
        mock_read: MagicMock,
        runner: CliRunner,
        monorepo: Path,
        commits: list[CommitRecord],
    ) -> None:
        mock_read.return_value = commits

        result = runner.invoke(cli, ["-C", str(monorepo), "changelog", "--json", "core"])

        assert result.exit_code == 0, result.output
        records = json.loads(result.stdout)
        assert [r["version"] for r in records] == [None, "1.0.0"]


class TestErrors:
    @patch(
        "lazy_changelogs.pipeline.find_repo_root",
        side_effect=RepoNotFoundError("/nowhere"),
    )
    def test_library_errors_become_click_errors(
        self, mock_find: MagicMock, runner: CliRunner, tmp_path: Path
    ) -> None:
        result = runner.invoke(cli, ["-C", str(tmp_path), "bumps"])

        assert result.exit_code == 1
        assert "No .git directory found" in result.stderr

    def test_missing_directory(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["-C", str(tmp_path / "missing"), "bumps"])

        assert result.exit_code == 2
