"""Shared test fixtures."""

from __future__ import annotations

import json
import shutil
from collections.abc import Callable, Sequence
from itertools import count
from pathlib import Path
from typing import Any

import pytest
import semver

from monover.config import Config, PrereleaseConfig, StableConfig
from monover.models import (
    BumpLevel,
    Commit,
    CommitWindow,
    ConventionalCommit,
    ConventionalCommitBody,
    ConventionalCommitSubject,
    LatestVersionSet,
    PackageManifest,
    ReleaseTag,
    Workspace,
    WorkspaceCommits,
    WorkspaceState,
)
from monover.shell import git, isolated_git_env

_hashes = count(0xA000)


def next_hash() -> str:
    return f"{next(_hashes):07x}"


def conventional(
    type_: str = "fix",
    description: str = "change",
    *,
    scope: str | None = None,
    breaking: bool = False,
    footer: str | None = None,
    abbrev_hash: str | None = None,
) -> ConventionalCommit:
    return ConventionalCommit(
        abbrev_hash=abbrev_hash or next_hash(),
        subject=ConventionalCommitSubject(
            type=type_, scope=scope, breaking=breaking, description=description
        ),
        body=ConventionalCommitBody(breaking_change_description=footer),
    )


def tag(raw: str) -> ReleaseTag:
    name, _, version = raw.rpartition("@")
    return ReleaseTag(raw=raw, version=semver.Version.parse(version), package_name=name)


@pytest.fixture
def config() -> Config:
    return Config(
        stable=StableConfig(branch="main"),
        prerelease=PrereleaseConfig(branch="staging", identifier="rc"),
        push_tags=False,
    )


@pytest.fixture
def make_commit() -> Callable[..., Commit]:
    def _make(subject: str, body: str | None = None) -> Commit:
        return Commit(abbrev_hash=next_hash(), subject=subject, body=body)

    return _make


@pytest.fixture
def make_conventional() -> Callable[..., ConventionalCommit]:
    return conventional


@pytest.fixture
def make_tag() -> Callable[[str], ReleaseTag]:
    return tag


@pytest.fixture
def make_state(tmp_path: Path) -> Callable[..., WorkspaceState]:
    """Factory for a WorkspaceState at any point of the pipeline."""

    def _make(
        name: str,
        *,
        deps: Sequence[str] = (),
        stable: str | None = None,
        prerelease: str | None = None,
        since_stable: Sequence[ConventionalCommit] = (),
        since_prerelease: Sequence[ConventionalCommit] = (),
        lockfile_since_stable: Sequence[Commit] = (),
        lockfile_since_prerelease: Sequence[Commit] = (),
        bump_level: BumpLevel | None = None,
        forced_by: Sequence[str] = (),
    ) -> WorkspaceState:
        stable_tag = tag(stable) if stable else None
        prerelease_tag = tag(prerelease) if prerelease else None
        overall = stable_tag
        if prerelease_tag is not None and (
            overall is None or prerelease_tag.version > overall.version
        ):
            overall = prerelease_tag
        return WorkspaceState(
            workspace=Workspace(
                name=name,
                dir=tmp_path / "packages" / name,
                manifest=PackageManifest(name=name),
                workspace_dependencies=list(deps),
            ),
            latest_version=LatestVersionSet(
                stable=stable_tag, prerelease=prerelease_tag, overall=overall
            ),
            commits=WorkspaceCommits(
                since_latest_stable=CommitWindow(
                    conventional_touching_workspace=list(since_stable),
                    touching_lockfile=list(lockfile_since_stable),
                ),
                since_latest_prerelease=CommitWindow(
                    conventional_touching_workspace=list(since_prerelease),
                    touching_lockfile=list(lockfile_since_prerelease),
                ),
            ),
            bump_level=bump_level,
            bumped_workspace_dependencies=list(forced_by),
        )

    return _make


class GitRepo:
    """A throwaway repository driven through an isolated git environment."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.env = isolated_git_env()

    def git(self, *args: str) -> str:
        return git(*args, cwd=self.root, env=self.env)

    def write(self, relpath: str, content: str) -> None:
        path = self.root / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)

    def write_pkg_json(self, reldir: str, data: dict[str, Any]) -> None:
        self.write(f"{reldir}/package.json" if reldir else "package.json", json.dumps(data, indent=2))

    def commit(self, message: str) -> None:
        self.git("add", "--all")
        self.git("commit", "--allow-empty", "-m", message)

    def checkout(self, branch: str) -> None:
        self.git("checkout", branch)

    def merge(self, branch: str) -> None:
        self.git("merge", "--no-edit", branch)

    def tags(self) -> list[str]:
        out = self.git("tag", "--list", "--sort", "refname")
        return out.splitlines() if out else []


@pytest.fixture
def git_repo(tmp_path: Path) -> GitRepo:
    """Empty repository on branch ``main`` with a local identity."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    root = tmp_path / "repo"
    root.mkdir()
    repo = GitRepo(root.resolve())
    repo.git("init", "-b", "main")
    repo.git("config", "user.email", "john@example.com")
    repo.git("config", "user.name", "John Doe")
    repo.git("config", "commit.gpgsign", "false")
    repo.git("config", "tag.gpgsign", "false")
    return repo
