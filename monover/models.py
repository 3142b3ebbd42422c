"""Data models for monover.

These Pydantic models represent the core data structures that flow through
the version-resolution pipeline. Each pipeline stage returns fresh copies
rather than mutating the previous stage's objects.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Literal

import semver
from pydantic import BaseModel, ConfigDict, Field


class BumpLevel(str, Enum):
    """Semantic-version component that must increase for a release.

    Ordering is patch < minor < major; use ``rank`` or ``escalate`` to
    compare, never the string values.
    """

    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def __str__(self) -> str:
        return self.value


_RANKS = {BumpLevel.PATCH: 0, BumpLevel.MINOR: 1, BumpLevel.MAJOR: 2}


def escalate(current: BumpLevel | None, candidate: BumpLevel | None) -> BumpLevel | None:
    """Return the more severe of two bump levels. Levels never downgrade."""
    if current is None:
        return candidate
    if candidate is None:
        return current
    return candidate if candidate.rank > current.rank else current


class Commit(BaseModel):
    """A single commit as reported by ``git log``.

    Attributes:
        abbrev_hash: Abbreviated commit hash.
        subject: First line of the commit message.
        body: Remainder of the message, or None when empty.
    """

    model_config = ConfigDict(frozen=True)

    abbrev_hash: str = Field(pattern=r"^[0-9a-f]{7,40}$")
    subject: str
    body: str | None = None


class ConventionalCommitSubject(BaseModel):
    """Parsed ``type(scope)!: description`` subject line."""

    model_config = ConfigDict(frozen=True, strict=True)

    type: Literal["feat", "fix"]
    scope: str | None = None
    breaking: bool
    description: str


class ConventionalCommitBody(BaseModel):
    model_config = ConfigDict(frozen=True)

    breaking_change_description: str | None = None


class ConventionalCommit(BaseModel):
    """A commit whose subject follows the conventional commit grammar.

    The breaking-change footer is parsed independently from the subject;
    either one can mark the commit as breaking.
    """

    model_config = ConfigDict(frozen=True)

    abbrev_hash: str
    subject: ConventionalCommitSubject
    body: ConventionalCommitBody | None = None

    @property
    def is_breaking(self) -> bool:
        return self.subject.breaking or bool(
            self.body and self.body.breaking_change_description
        )

    @property
    def breaking_description(self) -> str | None:
        """Human-readable breaking change text, footer preferred over subject."""
        if not self.is_breaking:
            return None
        if self.body and self.body.breaking_change_description:
            return self.body.breaking_change_description
        return self.subject.description


class ReleaseTag(BaseModel):
    """A git tag of the form ``<package_name>@<semver>``."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    raw: str
    version: semver.Version
    package_name: str


class PackageManifest(BaseModel):
    """The parts of a package manifest the engine cares about.

    Mirrors ``package.json`` field names through aliases; uv workspaces are
    mapped onto the same shape with dependency names as keys.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", strict=True)

    name: str
    version: str | None = None
    workspaces: list[str] | None = None
    dependencies: dict[str, str] | None = None
    dev_dependencies: dict[str, str] | None = Field(default=None, alias="devDependencies")
    peer_dependencies: dict[str, str] | None = Field(
        default=None, alias="peerDependencies"
    )

    def all_dependency_names(self) -> list[str]:
        """Names from dependencies, devDependencies and peerDependencies, in order."""
        merged: dict[str, str] = {
            **(self.dependencies or {}),
            **(self.dev_dependencies or {}),
            **(self.peer_dependencies or {}),
        }
        return list(merged)


class Workspace(BaseModel):
    """A package in the monorepo.

    Attributes:
        name: Unique package name (tags use it verbatim).
        dir: Absolute path of the package directory.
        manifest: Validated manifest contents.
        workspace_dependencies: Names of sibling workspaces this one depends on.
    """

    name: str
    dir: Path
    manifest: PackageManifest
    workspace_dependencies: list[str] = Field(default_factory=list)


class LatestVersionSet(BaseModel):
    """Latest release tags of one workspace.

    ``overall`` is whichever of stable/prerelease is semantically greater.
    """

    model_config = ConfigDict(frozen=True)

    stable: ReleaseTag | None = None
    prerelease: ReleaseTag | None = None
    overall: ReleaseTag | None = None


class CommitWindow(BaseModel):
    """Commits in one history window (since a tag, or all history)."""

    conventional_touching_workspace: list[ConventionalCommit] = Field(
        default_factory=list
    )
    touching_lockfile: list[Commit] = Field(default_factory=list)


class WorkspaceCommits(BaseModel):
    since_latest_stable: CommitWindow = Field(default_factory=CommitWindow)
    since_latest_prerelease: CommitWindow = Field(default_factory=CommitWindow)


class WorkspaceState(BaseModel):
    """Everything computed about one workspace during a single run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    workspace: Workspace
    latest_version: LatestVersionSet = Field(default_factory=LatestVersionSet)
    commits: WorkspaceCommits = Field(default_factory=WorkspaceCommits)
    bump_level: BumpLevel | None = None
    bumped_workspace_dependencies: list[str] = Field(default_factory=list)
    next_version: semver.Version | None = None
    created_tag: str | None = None

    @property
    def name(self) -> str:
        return self.workspace.name

    @property
    def dir(self) -> Path:
        return self.workspace.dir

    @property
    def workspace_dependencies(self) -> list[str]:
        return self.workspace.workspace_dependencies

    def window(self, on_stable_branch: bool) -> CommitWindow:
        """The commit window that drives the release on the current branch."""
        if on_stable_branch:
            return self.commits.since_latest_stable
        return self.commits.since_latest_prerelease


class RunResult(BaseModel):
    workspaces: list[WorkspaceState]
    on_stable_branch: bool

    def released(self) -> list[WorkspaceState]:
        """Workspaces that resolved a next version."""
        return [w for w in self.workspaces if w.next_version is not None]
