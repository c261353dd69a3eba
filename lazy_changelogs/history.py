"""Reading commit history from git.

The whole log is fetched with a single `git log` call. Commits come back
oldest first in topological order (parents before children), which is
deterministic for a given repository state and is the order the changelog
renderer walks when assigning changes to versions.
"""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path

from .exceptions import RepoNotFoundError
from .models import CommitRecord
from .shell import git

# ASCII record/unit separators never appear in commit metadata
RECORD_SEP = "\x1e"
FIELD_SEP = "\x1f"

LOG_FORMAT = FIELD_SEP.join(["%H", "%an", "%ae", "%aI", "%D", "%s", "%b", ""])

_TAG_REF = re.compile(r"\btag: (?P<tag>[^\s,]+)")


def find_repo_root(start: Path | str) -> Path:
    """Find the git repository root containing `start`.

    Walks from `start` up to the filesystem root, returning the first
    directory that contains a `.git` directory.

    Raises:
        RepoNotFoundError: If no such directory exists.
    """
    current = Path(start).resolve()
    while True:
        if (current / ".git").is_dir():
            return current
        if current.parent == current:
            raise RepoNotFoundError(start)
        current = current.parent


def read_history(root: Path | str) -> list[CommitRecord]:
    """Read every commit reachable from HEAD, oldest first.

    Args:
        root: Repository root (see find_repo_root()).

    Returns:
        Commits in parent-before-child topological order; empty if the
        repository has no commits yet.
    """
    if not git("rev-parse", "--verify", "--quiet", "HEAD", cwd=root, check=False):
        return []
    output = git(
        "-c",
        "core.quotepath=off",
        "log",
        "--topo-order",
        "--reverse",
        "--no-color",
        "--find-renames",
        "--name-status",
        f"--format={RECORD_SEP}{LOG_FORMAT}",
        cwd=root,
    )
    return parse_log_output(output)


def parse_log_output(output: str) -> list[CommitRecord]:
    """Parse the output of the `git log` call made by read_history()."""
    commits: list[CommitRecord] = []
    for record in output.split(RECORD_SEP):
        if not record.strip():
            continue
        fields = record.split(FIELD_SEP, 7)
        if len(fields) < 8:
            continue
        hash_, name, email, date, refs, subject, body, status = fields
        commits.append(
            CommitRecord(
                hash=hash_.strip(),
                author_name=name,
                author_email=email,
                date=datetime.fromisoformat(date),
                header=subject.strip(),
                body=body.strip(),
                refs=refs.strip(),
                files=tuple(parse_name_status(status)),
                renames=tuple(parse_renames(status)),
            )
        )
    return commits


def parse_name_status(text: str) -> list[str]:
    """Extract the distinct paths from `--name-status` lines.

    Renames and copies (R/C status) list both the old and the new path, so
    a file moved between packages counts as touching both.
    """
    paths: list[str] = []
    seen: set[str] = set()
    for line in text.splitlines():
        parts = line.split("\t")
        if len(parts) < 2:
            continue
        for path in parts[1:]:
            path = _unquote(path.strip())
            if path and path not in seen:
                seen.add(path)
                paths.append(path)
    return paths


def parse_renames(text: str) -> list[tuple[str, str]]:
    """Extract (old, new) path pairs from the rename lines of `--name-status`."""
    renames: list[tuple[str, str]] = []
    for line in text.splitlines():
        parts = line.split("\t")
        if len(parts) == 3 and parts[0].startswith("R"):
            renames.append((_unquote(parts[1].strip()), _unquote(parts[2].strip())))
    return renames


def refs_to_tags(refs: str) -> list[str]:
    """Extract tag names from a `%D` ref decoration string.

    Example:
        "HEAD -> main, tag: core@1.0.0, origin/main" → ["core@1.0.0"]
    """
    if not refs:
        return []
    return [m.group("tag") for m in _TAG_REF.finditer(refs)]


def _unquote(path: str) -> str:
    # git still quotes paths containing quotes or control characters
    if len(path) >= 2 and path[0] == path[-1] == '"':
        return path[1:-1].replace('\\"', '"').replace("\\\\", "\\")
    return path
