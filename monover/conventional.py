"""Conventional commit parsing and bump level calculation.

Only ``feat`` and ``fix`` commits count towards a release. A breaking change
can be signalled by a ``!`` after the type/scope or by a ``BREAKING CHANGE:``
footer in the body; both are detected independently.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from .models import (
    BumpLevel,
    Commit,
    ConventionalCommit,
    ConventionalCommitBody,
    ConventionalCommitSubject,
    WorkspaceState,
    escalate,
)
from .parsers import parse_conventional_commit_subject, subject_fields
from .results import Ignored, Recognition, Recognized, recognized_values, require_valid

SUBJECT_RE = re.compile(
    r"^(?P<type>feat|fix)(\((?P<scope>.+)\))?(?P<breaking>!)?: (?P<description>.+)$"
)

# Captures up to the next footer-shaped paragraph ("Token: " or "Token #"),
# so multi-paragraph descriptions survive but trailing footers do not.
BREAKING_CHANGE_FOOTER_RE = re.compile(
    r"(?:\n\n)?(BREAKING[ -]CHANGE(?:: | #))"
    r"(?P<description>(?:(?!\n\n[\w-]+(?:: | #)).)*)",
    re.DOTALL,
)


def parse_subject(subject: str) -> Recognition[ConventionalCommitSubject]:
    """Parse a commit subject line.

    Returns Ignored for anything that is not a ``feat``/``fix`` conventional
    subject. A match whose fields fail validation raises ParseError.
    """
    match = SUBJECT_RE.match(subject)
    if match is None:
        return Ignored("not a conventional commit subject")
    fields = subject_fields(match.groupdict())
    return Recognized(require_valid(parse_conventional_commit_subject(fields)))


def parse_breaking_change_description(body: str) -> str | None:
    """Return the breaking-change footer text of a commit body, if any."""
    match = BREAKING_CHANGE_FOOTER_RE.search(body)
    if match is None:
        return None
    return match.group("description")


def parse_conventional_commit(commit: Commit) -> Recognition[ConventionalCommit]:
    parsed = parse_subject(commit.subject)
    if isinstance(parsed, Ignored):
        return parsed
    description = parse_breaking_change_description(commit.body) if commit.body else None
    return Recognized(
        ConventionalCommit(
            abbrev_hash=commit.abbrev_hash,
            subject=parsed.value,
            body=ConventionalCommitBody(breaking_change_description=description),
        )
    )


def parse_conventional_commits(commits: Iterable[Commit]) -> list[ConventionalCommit]:
    """Keep only the commits that follow the conventional commit format."""
    return recognized_values([parse_conventional_commit(c) for c in commits])


def calculate_semver_inc_level(
    commits: Iterable[ConventionalCommit],
) -> BumpLevel | None:
    """Reduce a set of conventional commits to a single bump level.

    Presence matters, not counts or order: any breaking commit means major,
    else any feat means minor, else any fix means patch.
    """
    level: BumpLevel | None = None
    for commit in commits:
        if commit.is_breaking:
            return BumpLevel.MAJOR
        if commit.subject.type == "feat":
            level = escalate(level, BumpLevel.MINOR)
        elif commit.subject.type == "fix":
            level = escalate(level, BumpLevel.PATCH)
    return level


def _unreleased_on_stable(state: WorkspaceState) -> list[ConventionalCommit]:
    """Prerelease-side commits that have not shipped on stable yet.

    Commits since the latest stable tag are exactly the ones not released on
    stable, so this is the intersection of both windows by abbreviated hash.
    """
    stable_hashes = {
        c.abbrev_hash
        for c in state.commits.since_latest_stable.conventional_touching_workspace
    }
    return [
        c
        for c in state.commits.since_latest_prerelease.conventional_touching_workspace
        if c.abbrev_hash in stable_hashes
    ]


def _stable_bump_level(state: WorkspaceState, bump_on_lockfile_change: bool) -> BumpLevel | None:
    window = state.commits.since_latest_stable
    level = calculate_semver_inc_level(window.conventional_touching_workspace)
    if level is None and bump_on_lockfile_change and window.touching_lockfile:
        level = BumpLevel.PATCH
    return level


def _prerelease_bump_level(
    state: WorkspaceState, bump_on_lockfile_change: bool
) -> BumpLevel | None:
    window = state.commits.since_latest_prerelease
    pending = _unreleased_on_stable(state)
    if not pending and window.conventional_touching_workspace:
        # Everything pending here already shipped on stable: sync bump only.
        level: BumpLevel | None = BumpLevel.PATCH
    else:
        level = calculate_semver_inc_level(pending)
    if level is None and bump_on_lockfile_change and window.touching_lockfile:
        level = BumpLevel.PATCH
    return level


def add_bump_levels(
    workspaces: list[WorkspaceState],
    *,
    on_stable_branch: bool,
    bump_on_lockfile_change: bool = False,
) -> list[WorkspaceState]:
    """Attach the direct bump level of every workspace.

    On the stable branch the level comes from commits since the latest stable
    tag. On the prerelease branch only commits not yet released on stable
    count; if all of them already shipped on stable a patch "sync" bump
    re-aligns the prerelease line. In both cases lockfile-only changes force
    a patch when ``bump_on_lockfile_change`` is enabled.
    """
    result: list[WorkspaceState] = []
    for state in workspaces:
        if on_stable_branch:
            level = _stable_bump_level(state, bump_on_lockfile_change)
        else:
            level = _prerelease_bump_level(state, bump_on_lockfile_change)
        result.append(state.model_copy(update={"bump_level": level}))
    return result
