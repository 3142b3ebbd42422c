"""Workspace discovery.

Finds every package of the monorepo from the root manifest's workspace globs
and works out which sibling workspaces each one depends on.

- npm, yarn and pnpm: ``workspaces`` in the root ``package.json``
- uv: ``[tool.uv.workspace].members`` in the root ``pyproject.toml``
"""

from __future__ import annotations

import glob
from collections.abc import Sequence
from enum import Enum
from pathlib import Path

from .errors import ManifestError, UnsupportedPackageManagerError
from .manifests import (
    PACKAGE_JSON,
    PYPROJECT_TOML,
    get_workspace_member_globs,
    load_pkg_json,
    load_pyproject,
    load_pyproject_manifest,
    update_pkg_json_version,
    update_pyproject_version,
)
from .models import PackageManifest, Workspace


class PackageManager(str, Enum):
    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"
    UV = "uv"

    def __str__(self) -> str:
        return self.value


def get_lockfile_name(package_manager: PackageManager) -> str:
    """Lockfile path, relative to the repository root."""
    if package_manager is PackageManager.PNPM:
        return "pnpm-lock.yaml"
    if package_manager is PackageManager.NPM:
        return "package-lock.json"
    if package_manager is PackageManager.YARN:
        return "yarn.lock"
    if package_manager is PackageManager.UV:
        return "uv.lock"
    raise UnsupportedPackageManagerError(package_manager)


def get_manifest_name(package_manager: PackageManager) -> str:
    if package_manager in (PackageManager.NPM, PackageManager.YARN, PackageManager.PNPM):
        return PACKAGE_JSON
    if package_manager is PackageManager.UV:
        return PYPROJECT_TOML
    raise UnsupportedPackageManagerError(package_manager)


def _member_globs(root_dir: Path, package_manager: PackageManager) -> list[str]:
    manifest_name = get_manifest_name(package_manager)
    if manifest_name == PYPROJECT_TOML:
        return get_workspace_member_globs(load_pyproject(root_dir / PYPROJECT_TOML))
    root_manifest = load_pkg_json(root_dir / PACKAGE_JSON)
    if not root_manifest.workspaces:
        raise ManifestError(f"No workspaces found in root {PACKAGE_JSON}")
    return root_manifest.workspaces


def match_workspace_dirs(globs: Sequence[str], root_dir: Path) -> list[Path]:
    """Expand workspace globs to directories, honouring ``!`` exclusions."""
    included: set[Path] = set()
    excluded: set[Path] = set()
    for pattern in globs:
        target = excluded if pattern.startswith("!") else included
        for match in glob.glob(str(root_dir / pattern.lstrip("!"))):
            p = Path(match)
            if p.is_dir():
                target.add(p.resolve())
    return sorted(included - excluded)


def load_manifest(directory: Path, package_manager: PackageManager) -> PackageManifest:
    manifest_name = get_manifest_name(package_manager)
    if manifest_name == PYPROJECT_TOML:
        return load_pyproject_manifest(directory / PYPROJECT_TOML, directory.name)
    return load_pkg_json(directory / PACKAGE_JSON)


def list_workspaces(root_dir: Path, package_manager: PackageManager) -> list[Workspace]:
    """Discover all workspaces under ``root_dir``.

    Directories matched by the globs but lacking a manifest are skipped.

    Raises:
        ManifestError: If no workspace globs are configured or two workspaces
            share a name.
    """
    manifest_name = get_manifest_name(package_manager)
    workspaces: list[Workspace] = []
    seen: dict[str, Path] = {}
    for directory in match_workspace_dirs(_member_globs(root_dir, package_manager), root_dir):
        if not (directory / manifest_name).is_file():
            continue
        manifest = load_manifest(directory, package_manager)
        if manifest.name in seen:
            raise ManifestError(
                f"Workspace name {manifest.name!r} used by both "
                f"{seen[manifest.name]} and {directory}"
            )
        seen[manifest.name] = directory
        workspaces.append(Workspace(name=manifest.name, dir=directory, manifest=manifest))
    return workspaces


def list_workspace_dependencies(
    manifest: PackageManifest, workspace_names: Sequence[str]
) -> list[str]:
    """Names of sibling workspaces the manifest depends on, in manifest order."""
    names = set(workspace_names)
    return [dep for dep in manifest.all_dependency_names() if dep in names]


def add_workspace_deps(workspaces: Sequence[Workspace]) -> list[Workspace]:
    names = [w.name for w in workspaces]
    return [
        w.model_copy(
            update={
                "workspace_dependencies": [
                    d for d in list_workspace_dependencies(w.manifest, names) if d != w.name
                ]
            }
        )
        for w in workspaces
    ]


def update_manifest_version(
    directory: Path, version: str, package_manager: PackageManager
) -> Path:
    """Write ``version`` into the workspace manifest and return its path."""
    manifest_name = get_manifest_name(package_manager)
    path = directory / manifest_name
    if manifest_name == PYPROJECT_TOML:
        update_pyproject_version(path, version)
    else:
        update_pkg_json_version(path, version)
    return path
