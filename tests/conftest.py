"""Shared test fixtures."""

from __future__ import annotations

import json
import os
import shutil
import subprocess
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from lazy_changelogs.models import CommitRecord

BASE_DATE = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_commit() -> Callable[..., CommitRecord]:
    """Build CommitRecords with sequential hashes and dates."""
    counter = {"n": 0}

    def factory(
        header: str,
        files: tuple[str, ...] | list[str] = (),
        *,
        body: str = "",
        refs: str = "",
        renames: tuple[tuple[str, str], ...] = (),
    ) -> CommitRecord:
        counter["n"] += 1
        n = counter["n"]
        return CommitRecord(
            hash=f"{n:040x}",
            author_name="Test",
            author_email="test@test.com",
            date=BASE_DATE + timedelta(days=n),
            header=header,
            body=body,
            refs=refs,
            files=tuple(files),
            renames=renames,
        )

    return factory


@pytest.fixture
def monorepo(tmp_path: Path) -> Path:
    """Create a small monorepo with a .git directory and mixed manifests.

    Layout:
        pyproject.toml           root workspace (lazy-changelogs config)
        packages/core            python package
        packages/app             python package, depends on core (workspace)
        packages/plugins/extra   python package, dev-depends on app (path)
        packages/web             package.json, depends on core via semver
    """
    (tmp_path / ".git").mkdir()
    (tmp_path / "pyproject.toml").write_text(
        """\
[project]
name = "monorepo"
version = "0.0.0"

[tool.uv.workspace]
members = ["packages/*"]

[tool.lazy-changelogs]
tag-template = "{name}@{version}"
"""
    )
    _write(
        tmp_path / "packages/core/pyproject.toml",
        """\
[project]
name = "core"
version = "1.0.0"
dependencies = ["requests>=2.0"]
""",
    )
    _write(
        tmp_path / "packages/app/pyproject.toml",
        """\
[project]
name = "app"
version = "0.3.0"
dependencies = ["core"]

[tool.uv.sources]
core = { workspace = true }
""",
    )
    _write(
        tmp_path / "packages/plugins/extra/pyproject.toml",
        """\
[project]
name = "extra"
version = "0.1.0"

[dependency-groups]
dev = ["app"]

[tool.uv.sources]
app = { path = "../../app" }
""",
    )
    _write(
        tmp_path / "packages/web/package.json",
        json.dumps(
            {"name": "web", "version": "2.0.0", "dependencies": {"core": "^1.0.0"}}
        ),
    )
    # Dependency caches are never scanned
    _write(
        tmp_path / "packages/web/node_modules/left-pad/package.json",
        json.dumps({"name": "left-pad", "version": "1.3.0"}),
    )
    return tmp_path


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)


@pytest.fixture
def git_repo(tmp_path: Path) -> Callable[..., str]:
    """A real git repository with a helper that commits files.

    The helper writes the given files, commits them with `message` and
    optionally tags the commit; it returns the commit hash. `moves` maps
    paths to rename with `git mv` before committing. Skips the test when git
    is not installed.
    """
    if shutil.which("git") is None:
        pytest.skip("git not installed")

    env = {
        **os.environ,
        "GIT_AUTHOR_NAME": "Test",
        "GIT_AUTHOR_EMAIL": "test@test.com",
        "GIT_COMMITTER_NAME": "Test",
        "GIT_COMMITTER_EMAIL": "test@test.com",
        "GIT_CONFIG_NOSYSTEM": "1",
        "HOME": str(tmp_path),
    }

    def run(*args: str) -> str:
        result = subprocess.run(
            ["git", *args], cwd=tmp_path, env=env, capture_output=True, text=True, check=True
        )
        return result.stdout.strip()

    run("init", "-q")
    run("config", "commit.gpgsign", "false")
    run("config", "tag.gpgsign", "false")

    def commit(
        message: str,
        files: dict[str, str],
        tag: str | None = None,
        moves: dict[str, str] | None = None,
    ) -> str:
        for old, new in (moves or {}).items():
            (tmp_path / new).parent.mkdir(parents=True, exist_ok=True)
            run("mv", old, new)
        for rel, content in files.items():
            _write(tmp_path / rel, content)
        run("add", "-A")
        run("commit", "-q", "-m", message)
        if tag:
            run("tag", tag)
        return run("rev-parse", "HEAD")

    commit.root = tmp_path  # type: ignore[attr-defined]
    return commit
