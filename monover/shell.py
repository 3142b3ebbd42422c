"""Process and output helpers.

Thin wrappers around subprocess for git, plus the section-header helper used
to separate pipeline phases in terminal output. The environment for every git
invocation is passed explicitly; nothing here mutates ``os.environ``.
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping
from pathlib import Path

from .errors import GitError


def git(
    *args: str,
    cwd: Path | str | None = None,
    env: Mapping[str, str] | None = None,
    check: bool = True,
) -> str:
    """Run a git command and return stdout.

    Args:
        *args: Arguments to pass to git (e.g., "tag", "--list").
        cwd: Directory to run in; defaults to the process working directory.
        env: Complete environment for the child process. None inherits ours.
        check: If True (default), raise GitError on non-zero exit. Set to
               False for commands that may legitimately fail.

    Returns:
        Stdout of the git command with the trailing newline removed.
    """
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        env=dict(env) if env is not None else None,
        capture_output=True,
        text=True,
        check=False,
    )
    if check and result.returncode != 0:
        raise GitError(args, result.returncode, result.stderr)
    return result.stdout.rstrip("\r\n")


def isolated_git_env(base: Mapping[str, str] | None = None) -> dict[str, str]:
    """Environment that ignores the user's global and system git config.

    Used for ephemeral repositories (tests, sandboxes) so concurrent runs never
    depend on, or interfere with, the machine's git configuration.
    """
    env = dict(os.environ if base is None else base)
    env["GIT_CONFIG_GLOBAL"] = os.devnull
    env["GIT_CONFIG_NOSYSTEM"] = "1"
    return env


def step(msg: str) -> None:
    """Print a visually distinct step header.

    Used to separate major phases of the release pipeline in terminal output.
    """
    print(f"\n{'─' * 60}\n{msg}\n{'─' * 60}")
