"""Git operations consumed by the engine.

Tag source, commit source and tag sink. Every function takes the repository
directory and an optional explicit environment, which is forwarded untouched
to ``shell.git``.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from pathlib import Path

from .errors import GitError
from .models import Commit
from .parsers import parse_commit
from .results import Valid
from .shell import git

Env = Mapping[str, str] | None

# Field and record markers for `git log --format`. Random enough never to
# appear in a commit message.
_FIELD_SEP = "050a6083-931d-4ef4-ac29-f57bb30bddab"
_RECORD_END = "d93b92df-991d-4768-ab42-2a8d09f5f006"

_EMPTY_REPO_RE = re.compile(r"your current branch .* does not have any commits yet")


def get_root_dir(cwd: Path | str | None = None, env: Env = None) -> Path:
    return Path(git("rev-parse", "--show-toplevel", cwd=cwd, env=env))


def get_current_branch(cwd: Path | str | None = None, env: Env = None) -> str:
    return git("branch", "--show-current", cwd=cwd, env=env)


def create_tag(
    name: str, message: str = "", *, cwd: Path | str | None = None, env: Env = None
) -> None:
    """Create an annotated tag at HEAD."""
    git("tag", "-a", name, "-m", message, cwd=cwd, env=env)


def push_tag(name: str, *, cwd: Path | str | None = None, env: Env = None) -> None:
    git("push", "origin", name, cwd=cwd, env=env)


def list_tags(
    *,
    branch: str | None = None,
    pattern: str | None = None,
    sort: str = "refname",
    cwd: Path | str | None = None,
    env: Env = None,
) -> list[str]:
    """List tag names.

    Args:
        branch: Only tags reachable from this branch.
        pattern: Only tags matching this glob.
        sort: ``refname`` (default), ``creatordate`` or ``-creatordate``.
    """
    args = ["tag", "--list", "--sort", sort]
    if branch:
        args.extend(["--merged", branch])
    if pattern:
        args.append(pattern)
    stdout = git(*args, cwd=cwd, env=env)
    if not stdout:
        return []
    return stdout.splitlines()


def list_commits(
    *,
    revision_range: str | None = None,
    paths: Sequence[str | Path] | None = None,
    cwd: Path | str | None = None,
    env: Env = None,
) -> list[Commit]:
    """List commits, newest first.

    Args:
        revision_range: e.g. ``pkg@1.0.0..HEAD``; None means all history.
        paths: Only commits touching any of these paths.

    Records that do not validate as a Commit are skipped. A repository
    without any commits yields an empty list.
    """
    # %-C() swallows the trailing newline git appends after %b.
    args = ["log", f"--format={_FIELD_SEP}%h{_FIELD_SEP}%s{_FIELD_SEP}%b%-C(){_RECORD_END}"]
    if revision_range:
        args.append(revision_range)
    if paths:
        args.extend(["--", *(str(p) for p in paths)])

    try:
        stdout = git(*args, cwd=cwd, env=env)
    except GitError as exc:
        if _EMPTY_REPO_RE.search(exc.stderr):
            return []
        raise

    commits: list[Commit] = []
    for record in stdout.split(_RECORD_END):
        if _FIELD_SEP not in record:
            continue
        _, abbrev_hash, subject, body = record.split(_FIELD_SEP, 3)
        parsed = parse_commit(
            {"abbrev_hash": abbrev_hash, "subject": subject, "body": body or None}
        )
        if isinstance(parsed, Valid):
            commits.append(parsed.value)
    return commits
