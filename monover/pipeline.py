"""Version pipeline: discover → tags → commits → bump → propagate → resolve → tag.

This module orchestrates a monover run:
1. Resolve the repository root and check the current branch against config
2. Discover all workspaces and their internal dependencies
3. Find the latest stable/prerelease tag of every workspace
4. Collect commits since those tags (concurrently, one task per workspace)
5. Derive a bump level per workspace from its conventional commits
6. Propagate bumps to every workspace that depends on a bumped one
7. Resolve next versions
8. Create (and optionally push) one tag per released workspace

Nothing persists between runs except the tags themselves, so re-running on
unchanged history computes the same versions.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from .config import Config, validate_config
from .conventional import add_bump_levels, parse_conventional_commits
from .graph import add_bumped_workspace_deps, check_acyclic
from .models import CommitWindow, ReleaseTag, RunResult, WorkspaceCommits, WorkspaceState
from .shell import step
from .tags import add_latest_tags, create_tags, parse_release_tags
from .vcs import get_current_branch, get_root_dir, list_commits, list_tags
from .versions import add_next_versions
from .workspaces import PackageManager, add_workspace_deps, get_lockfile_name, list_workspaces

Env = Mapping[str, str] | None


def _since(tag: ReleaseTag | None) -> str | None:
    return f"{tag.raw}..HEAD" if tag is not None else None


def collect_commits(
    state: WorkspaceState, lockfile: str, root_dir: Path, env: Env = None
) -> WorkspaceCommits:
    """Commits since the latest stable and latest prerelease tag of one workspace."""

    def window(tag: ReleaseTag | None) -> CommitWindow:
        since = _since(tag)
        touching_workspace = list_commits(
            revision_range=since, paths=[state.dir], cwd=root_dir, env=env
        )
        touching_lockfile = list_commits(
            revision_range=since, paths=[lockfile], cwd=root_dir, env=env
        )
        return CommitWindow(
            conventional_touching_workspace=parse_conventional_commits(touching_workspace),
            touching_lockfile=touching_lockfile,
        )

    return WorkspaceCommits(
        since_latest_stable=window(state.latest_version.stable),
        since_latest_prerelease=window(state.latest_version.prerelease),
    )


def add_conventional_commits(
    workspaces: list[WorkspaceState],
    *,
    package_manager: PackageManager,
    root_dir: Path,
    env: Env = None,
    max_workers: int | None = None,
) -> list[WorkspaceState]:
    """Attach commit windows to every workspace.

    History queries are read-only and independent per workspace, so they run
    concurrently; results are matched back by position, not arrival order.
    """
    step("Collecting commits")
    lockfile = get_lockfile_name(package_manager)
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        windows = list(
            pool.map(lambda s: collect_commits(s, lockfile, root_dir, env), workspaces)
        )

    result: list[WorkspaceState] = []
    for state, commits in zip(workspaces, windows):
        stable = len(commits.since_latest_stable.conventional_touching_workspace)
        pre = len(commits.since_latest_prerelease.conventional_touching_workspace)
        print(f"  {state.name}: {stable} since stable, {pre} since prerelease")
        result.append(state.model_copy(update={"commits": commits}))
    return result


def discover_workspaces(root_dir: Path, package_manager: PackageManager):
    """Discover workspaces, attach their internal deps and reject cycles."""
    step("Discovering workspaces")
    workspaces = add_workspace_deps(list_workspaces(root_dir, package_manager))
    check_acyclic(workspaces)
    for w in workspaces:
        deps = f" → [{', '.join(w.workspace_dependencies)}]" if w.workspace_dependencies else ""
        print(f"  {w.name} ({os.path.relpath(w.dir, root_dir)}){deps}")
    return workspaces


def find_latest_tags(
    workspaces, config: Config, root_dir: Path, env: Env = None
) -> list[WorkspaceState]:
    step("Finding latest release tags")
    release_tags = parse_release_tags(list_tags(cwd=root_dir, env=env))
    states = add_latest_tags(workspaces, release_tags, config)
    for s in states:
        latest = s.latest_version
        stable = latest.stable.raw if latest.stable else "<none>"
        pre = latest.prerelease.raw if latest.prerelease else "<none>"
        print(f"  {s.name}: stable {stable}, prerelease {pre}")
    return states


def resolve_versions(
    workspaces: list[WorkspaceState],
    *,
    config: Config,
    on_stable_branch: bool,
) -> list[WorkspaceState]:
    """Bump levels → propagation → next versions. Pure, no git access."""
    step("Resolving next versions")
    with_levels = add_bump_levels(
        workspaces,
        on_stable_branch=on_stable_branch,
        bump_on_lockfile_change=config.bump_on_lockfile_change,
    )
    with_deps = add_bumped_workspace_deps(with_levels)
    resolved = add_next_versions(with_deps, on_stable_branch=on_stable_branch, config=config)
    for s in resolved:
        if s.next_version is None:
            print(f"  {s.name}: no release")
            continue
        reason = str(s.bump_level) if s.bump_level else "patch"
        if s.bumped_workspace_dependencies:
            reason += f", depends on {', '.join(s.bumped_workspace_dependencies)}"
        print(f"  {s.name}: {s.next_version} ({reason})")
    return resolved


def run(
    config: Config,
    package_manager: PackageManager,
    *,
    cwd: Path | str | None = None,
    env: Env = None,
) -> RunResult:
    """Execute the full version pipeline.

    Args:
        config: Release configuration.
        package_manager: Decides manifest format and lockfile name.
        cwd: Any directory inside the repository; defaults to the process cwd.
        env: Explicit environment for every git invocation.

    Raises:
        BranchNotConfiguredError: If the current branch is not configured.
        MonoverError: For any other fatal condition.
    """
    root_dir = get_root_dir(cwd, env)
    branch = get_current_branch(root_dir, env)
    on_stable_branch = validate_config(config, branch)
    step(f"On {'stable' if on_stable_branch else 'prerelease'} branch {branch}")

    workspaces = discover_workspaces(root_dir, package_manager)
    with_tags = find_latest_tags(workspaces, config, root_dir, env)
    with_commits = add_conventional_commits(
        with_tags, package_manager=package_manager, root_dir=root_dir, env=env
    )
    resolved = resolve_versions(
        with_commits, config=config, on_stable_branch=on_stable_branch
    )

    if config.dry_run:
        step("Dry run: no tags created")
    else:
        step("Creating tags")
    tagged = create_tags(
        resolved, push_tags=config.push_tags, dry_run=config.dry_run, cwd=root_dir, env=env
    )
    return RunResult(workspaces=tagged, on_stable_branch=on_stable_branch)
