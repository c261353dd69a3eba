"""Shell and git utilities.

Provides a simple wrapper around subprocess calls for running git, plus
output formatting helpers used by the pipeline and CLI.
"""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path

from .exceptions import GitError


def git(*args: str, cwd: Path | str | None = None, check: bool = True) -> str:
    """Run a git command and return stdout.

    Args:
        *args: Arguments to pass to git (e.g., "log", "--topo-order").
        cwd: Directory to run git in. Defaults to the current directory.
        check: If True (default), raise GitError on non-zero exit. Set to
               False for commands that may legitimately fail.

    Returns:
        Stdout from the git command, with trailing whitespace removed.
    """
    try:
        result = subprocess.run(
            ["git", *args], capture_output=True, text=True, cwd=cwd, check=check
        )
    except FileNotFoundError as e:
        raise GitError("git executable not found") from e
    except subprocess.CalledProcessError as e:
        raise GitError(
            f"git {args[0] if args else ''} failed with exit code {e.returncode}",
            stderr=e.stderr or "",
        ) from e
    return result.stdout.rstrip()


def step(msg: str) -> None:
    """Print a visually distinct step header.

    Used to separate major phases of the pipeline in terminal output.
    """
    print(f"\n{'─' * 60}\n{msg}\n{'─' * 60}")


def warn(msg: str) -> None:
    """Print a non-fatal warning to stderr."""
    print(f"  Warning: {msg}", file=sys.stderr)
