"""Release tag model.

Release tags follow the pattern ``{package-name}@{semver}``. Package names may
themselves contain ``@`` (``@scope/pkg``), so tags are always split on the last
separator. The version may carry one leading ``v``. Tags that do not carry a
valid semantic version are unrelated to us and silently skipped.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path

import semver

from .config import Config
from .models import LatestVersionSet, ReleaseTag, Workspace, WorkspaceState
from .results import Ignored, Recognition, Recognized, recognized_values
from .vcs import create_tag, push_tag

TAG_SEPARATOR = "@"


def format_tag(package_name: str, version: semver.Version | str) -> str:
    return f"{package_name}{TAG_SEPARATOR}{version}"


def parse_release_tag(raw: str) -> Recognition[ReleaseTag]:
    package_name, sep, version = raw.rpartition(TAG_SEPARATOR)
    if not sep or not package_name:
        return Ignored(f"{raw}: no package separator")
    # one leading "v" is tolerated; raw keeps it so git still finds the tag
    candidate = version[1:] if version.startswith("v") else version
    try:
        parsed = semver.Version.parse(candidate)
    except (ValueError, TypeError):
        return Ignored(f"{raw}: {version!r} is not a semantic version")
    return Recognized(ReleaseTag(raw=raw, version=parsed, package_name=package_name))


def parse_release_tags(raw_tags: Iterable[str]) -> list[ReleaseTag]:
    """Parse raw tag names, keeping only valid ``name@semver`` tags in order."""
    return recognized_values([parse_release_tag(raw) for raw in raw_tags])


def get_latest_release_tag(
    tags: Iterable[ReleaseTag],
    package_name: str,
    prerelease_identifier: str | None = None,
) -> ReleaseTag | None:
    """Find the highest-version tag of a package.

    With a prerelease identifier, only tags whose first prerelease component
    equals it exactly are considered. Without one, only tags that have no
    prerelease component at all.
    """
    latest: ReleaseTag | None = None
    for tag in tags:
        if tag.package_name != package_name:
            continue
        if prerelease_identifier:
            if _first_prerelease_component(tag.version) != prerelease_identifier:
                continue
        elif tag.version.prerelease:
            continue
        if latest is None or tag.version > latest.version:
            latest = tag
    return latest


def _first_prerelease_component(version: semver.Version) -> str | None:
    if not version.prerelease:
        return None
    return version.prerelease.split(".")[0]


def get_latest_release_tag_of(
    a: ReleaseTag | None, b: ReleaseTag | None
) -> ReleaseTag | None:
    """Return the semantically greater tag; ties go to ``b``."""
    if a is None:
        return b
    if b is None:
        return a
    return a if a.version > b.version else b


def add_latest_tags(
    workspaces: Iterable[Workspace],
    release_tags: list[ReleaseTag],
    config: Config,
) -> list[WorkspaceState]:
    """Attach the latest stable, prerelease and overall tag to each workspace."""
    identifier = config.prerelease.identifier if config.prerelease else None
    states: list[WorkspaceState] = []
    for workspace in workspaces:
        stable = get_latest_release_tag(release_tags, workspace.name)
        prerelease = (
            get_latest_release_tag(release_tags, workspace.name, identifier)
            if identifier
            else None
        )
        states.append(
            WorkspaceState(
                workspace=workspace,
                latest_version=LatestVersionSet(
                    stable=stable,
                    prerelease=prerelease,
                    overall=get_latest_release_tag_of(stable, prerelease),
                ),
            )
        )
    return states


def create_tags(
    workspaces: list[WorkspaceState],
    *,
    push_tags: bool,
    dry_run: bool,
    cwd: Path | str | None = None,
    env: Mapping[str, str] | None = None,
) -> list[WorkspaceState]:
    """Create (and optionally push) one tag per workspace with a next version.

    Runs sequentially in workspace order. There is no rollback: if a git call
    fails, tags created before it remain. Under ``dry_run`` nothing is created.
    """
    result: list[WorkspaceState] = []
    for state in workspaces:
        created: str | None = None
        if state.next_version is not None and not dry_run:
            created = format_tag(state.name, state.next_version)
            create_tag(created, "", cwd=cwd, env=env)
            print(f"  {created}")
            if push_tags:
                push_tag(created, cwd=cwd, env=env)
        result.append(state.model_copy(update={"created_tag": created}))
    return result
