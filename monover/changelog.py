"""Changelog rendering.

Builds a markdown changelog per released workspace from the commits of the
window that drove the release, the dependency bumps that forced it, and any
lockfile-only commits.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from pydantic import BaseModel, Field

from .errors import DependencyVersionError
from .models import Commit, ConventionalCommit, RunResult


class DependencyBump(BaseModel):
    name: str
    version: str


class ChangelogEntry(BaseModel):
    """Inputs for one workspace's changelog."""

    name: str
    next_version: str | None
    conventional_commits: list[ConventionalCommit] = Field(default_factory=list)
    commits_touching_lockfile: list[Commit] = Field(default_factory=list)
    bumped_workspace_dependencies: list[str] = Field(default_factory=list)


class WorkspaceChangelog(BaseModel):
    name: str
    changelog: str


def _scope_prefix(commit: ConventionalCommit) -> str:
    return f"**{commit.subject.scope}:** " if commit.subject.scope else ""


def generate_changelog(
    next_version: str,
    conventional_commits: Sequence[ConventionalCommit],
    commits_touching_lockfile: Sequence[Commit],
    bumped_workspace_dependencies: Sequence[DependencyBump],
    today: date | None = None,
) -> str:
    """Render the markdown changelog of one release.

    Sections appear only when non-empty, in this order: Features, Fixes,
    Workspace Dependency Bumps, Breaking Changes, Lockfile Changes.
    """
    features: list[str] = []
    fixes: list[str] = []
    breaking: list[str] = []

    for commit in conventional_commits:
        scope = _scope_prefix(commit)
        line = f"- {scope}{commit.subject.description} ({commit.abbrev_hash})"
        if commit.subject.type == "feat":
            features.append(line)
        elif commit.subject.type == "fix":
            fixes.append(line)
        if commit.is_breaking:
            breaking.append(f"- {scope}{commit.breaking_description} ({commit.abbrev_hash})")

    dependency_bumps = [
        f"- **{dep.name}** bumped to {dep.version}" for dep in bumped_workspace_dependencies
    ]
    lockfile_changes = [f"- {c.subject} ({c.abbrev_hash})" for c in commits_touching_lockfile]

    day = (today or date.today()).isoformat()
    changelog = f"# {next_version} ({day})"
    for title, lines in (
        ("Features", features),
        ("Fixes", fixes),
        ("Workspace Dependency Bumps", dependency_bumps),
        ("Breaking Changes", breaking),
        ("Lockfile Changes", lockfile_changes),
    ):
        if lines:
            changelog += f"\n## {title}\n" + "".join(f"{line}\n" for line in lines)
    return changelog


def generate_changelogs(
    entries: Sequence[ChangelogEntry], today: date | None = None
) -> list[WorkspaceChangelog]:
    """Render changelogs for every entry.

    Each bumped dependency must itself be among the entries with a next
    version, otherwise the release would be inconsistent.

    Raises:
        DependencyVersionError: If a bumped dependency is unknown or has no
            next version.
    """
    by_name = {e.name: e for e in entries}
    changelogs: list[WorkspaceChangelog] = []
    for entry in entries:
        if entry.next_version is None:
            raise DependencyVersionError(f"Workspace {entry.name} does not have a next version")
        bumps: list[DependencyBump] = []
        for dep_name in entry.bumped_workspace_dependencies:
            dep = by_name.get(dep_name)
            if dep is None:
                raise DependencyVersionError(
                    f"Workspace dependency {dep_name} not found in run result"
                )
            if dep.next_version is None:
                raise DependencyVersionError(
                    f"Workspace dependency {dep_name} does not have a next version"
                )
            bumps.append(DependencyBump(name=dep.name, version=dep.next_version))

        # Lockfile commits that are also conventional commits are listed once.
        conventional_hashes = {c.abbrev_hash for c in entry.conventional_commits}
        lockfile_only = [
            c for c in entry.commits_touching_lockfile if c.abbrev_hash not in conventional_hashes
        ]
        changelogs.append(
            WorkspaceChangelog(
                name=entry.name,
                changelog=generate_changelog(
                    entry.next_version,
                    entry.conventional_commits,
                    lockfile_only,
                    bumps,
                    today=today,
                ),
            )
        )
    return changelogs


def changelog_entries(result: RunResult) -> list[ChangelogEntry]:
    """Entries for every released workspace, using the branch's commit window."""
    entries: list[ChangelogEntry] = []
    for state in result.released():
        window = state.window(result.on_stable_branch)
        entries.append(
            ChangelogEntry(
                name=state.name,
                next_version=str(state.next_version),
                conventional_commits=window.conventional_touching_workspace,
                commits_touching_lockfile=window.touching_lockfile,
                bumped_workspace_dependencies=state.bumped_workspace_dependencies,
            )
        )
    return entries
