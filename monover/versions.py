"""Next-version resolution.

Combines the latest known tags, the bump level and the branch context into a
concrete next version. On the prerelease branch the base is the overall latest
version (stable or prerelease, whichever is greater) and the resolver decides
between bumping only the prerelease counter and starting a fresh prerelease
line at a new level.
"""

from __future__ import annotations

import semver

from .config import Config
from .errors import MissingPrereleaseIdentifierError
from .models import BumpLevel, WorkspaceState

FIRST_VERSION = semver.Version(1, 0, 0)


def get_version_type(version: semver.Version) -> BumpLevel:
    """Infer which component a version was last bumped at.

    ``1.0.3`` is a patch version, ``1.2.0`` a minor one, ``2.0.0`` a major one.
    Prerelease parts are ignored.
    """
    if version.patch > 0:
        return BumpLevel.PATCH
    if version.minor > 0:
        return BumpLevel.MINOR
    return BumpLevel.MAJOR


def increment(version: semver.Version, level: BumpLevel) -> semver.Version:
    """Release increment of a version.

    A prerelease of the target version is finalized rather than skipped:
    ``1.1.0-rc.2`` bumped at minor becomes ``1.1.0``.
    """
    if version.prerelease:
        base = version.replace(prerelease=None, build=None)
        if (
            level is BumpLevel.PATCH
            or (level is BumpLevel.MINOR and version.patch == 0)
            or (level is BumpLevel.MAJOR and version.minor == 0 and version.patch == 0)
        ):
            return base
    if level is BumpLevel.MAJOR:
        return version.bump_major()
    if level is BumpLevel.MINOR:
        return version.bump_minor()
    return version.bump_patch()


def increment_pre(
    version: semver.Version, level: BumpLevel, identifier: str
) -> semver.Version:
    """Start a new prerelease line: ``1.0.0`` at minor -> ``1.1.0-rc.0``."""
    if level is BumpLevel.MAJOR:
        bumped = version.bump_major()
    elif level is BumpLevel.MINOR:
        bumped = version.bump_minor()
    else:
        bumped = version.bump_patch()
    return bumped.replace(prerelease=f"{identifier}.0")


def increment_prerelease(version: semver.Version, identifier: str) -> semver.Version:
    """Bump only the prerelease counter: ``1.1.0-rc.0`` -> ``1.1.0-rc.1``.

    The last numeric part is the counter (``rc.1.beta`` -> ``rc.2.beta``); with
    none, ``0`` is appended. A prerelease with a different identifier, or whose
    second part is not numeric, restarts at ``<identifier>.0``. A plain release
    gets a fresh patch line.
    """
    if not version.prerelease:
        return increment_pre(version, BumpLevel.PATCH, identifier)
    parts = version.prerelease.split(".")
    if parts[0] != identifier:
        return version.replace(prerelease=f"{identifier}.0", build=None)
    for i in range(len(parts) - 1, -1, -1):
        if parts[i].isdigit():
            parts[i] = str(int(parts[i]) + 1)
            break
    else:
        parts.append("0")
    if not parts[1].isdigit():
        parts = [identifier, "0"]
    return version.replace(prerelease=".".join(parts), build=None)


def _is_active_prerelease_line(state: WorkspaceState) -> bool:
    latest = state.latest_version
    return (
        latest.overall is not None
        and latest.prerelease is not None
        and latest.overall.version == latest.prerelease.version
    )


def _prerelease_bump_allowed(level: BumpLevel, base: semver.Version) -> bool:
    base_type = get_version_type(base)
    if level is BumpLevel.PATCH:
        return True
    if level is BumpLevel.MINOR:
        return base_type is not BumpLevel.PATCH
    return base_type is BumpLevel.MAJOR


def calculate_next_version(
    state: WorkspaceState,
    *,
    on_stable_branch: bool,
    prerelease_identifier: str | None = None,
) -> semver.Version | None:
    """Resolve the next version of one workspace, or None if it has no release.

    A workspace releases when it has a direct bump level or a dependency forced
    it to; propagation alone means a patch.

    Raises:
        MissingPrereleaseIdentifierError: On the prerelease branch without an
            identifier.
    """
    if state.bump_level is None and not state.bumped_workspace_dependencies:
        return None
    level = state.bump_level or BumpLevel.PATCH

    if on_stable_branch:
        stable = state.latest_version.stable
        if stable is None:
            return FIRST_VERSION
        return increment(stable.version, level)

    if not prerelease_identifier:
        raise MissingPrereleaseIdentifierError()

    overall = state.latest_version.overall
    if overall is None:
        return FIRST_VERSION.replace(prerelease=f"{prerelease_identifier}.0")

    base = overall.version
    if _is_active_prerelease_line(state) and _prerelease_bump_allowed(level, base):
        return increment_prerelease(base, prerelease_identifier)
    return increment_pre(base, level, prerelease_identifier)


def add_next_versions(
    workspaces: list[WorkspaceState],
    *,
    on_stable_branch: bool,
    config: Config,
) -> list[WorkspaceState]:
    identifier = config.prerelease.identifier if config.prerelease else None
    return [
        state.model_copy(
            update={
                "next_version": calculate_next_version(
                    state,
                    on_stable_branch=on_stable_branch,
                    prerelease_identifier=identifier,
                )
            }
        )
        for state in workspaces
    ]
