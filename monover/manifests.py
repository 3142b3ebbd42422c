"""Package manifest reading and writing.

Two manifest flavours are supported: ``package.json`` (npm, yarn, pnpm) and
``pyproject.toml`` (uv workspaces). Both are validated into a
``PackageManifest`` at the boundary. TOML goes through tomlkit so that
rewriting a version preserves formatting and comments.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, cast

import tomlkit
from packaging.requirements import InvalidRequirement, Requirement
from packaging.utils import canonicalize_name
from tomlkit.exceptions import TOMLKitError

from .errors import ManifestError
from .models import PackageManifest
from .parsers import parse_package_manifest
from .results import Invalid

PACKAGE_JSON = "package.json"
PYPROJECT_TOML = "pyproject.toml"


def load_pkg_json(path: Path) -> PackageManifest:
    """Load and validate a ``package.json`` file.

    Raises:
        ManifestError: If the file is not JSON or lacks the expected shape.
    """
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as exc:
        raise ManifestError(f"Could not read {path}: {exc}") from exc
    result = parse_package_manifest(data)
    if isinstance(result, Invalid):
        raise ManifestError(f"{path}: {result.reason}")
    return result.value


def load_pyproject(path: Path) -> tomlkit.TOMLDocument:
    """Load and parse a pyproject.toml file.

    Returns a TOMLDocument that preserves formatting when modified and saved.
    """
    try:
        return tomlkit.parse(path.read_text())
    except (OSError, TOMLKitError) as exc:
        raise ManifestError(f"Could not read {path}: {exc}") from exc


def save_pyproject(path: Path, doc: tomlkit.TOMLDocument) -> None:
    """Save a TOMLDocument back to disk, preserving original formatting."""
    path.write_text(tomlkit.dumps(doc))


def dep_canonical_name(dep_str: str) -> str:
    """Extract the canonical package name from a PEP 508 dependency string.

    Examples:
        "requests>=2.0" → "requests"
        "My_Package[extra]~=1.0" → "my-package"
    """
    return canonicalize_name(Requirement(dep_str).name)


def get_project_name(doc: tomlkit.TOMLDocument, fallback: str) -> str:
    """Canonical ``[project].name`` (PEP 503), or ``fallback`` when missing."""
    return canonicalize_name(doc.get("project", {}).get("name", fallback))


def get_all_dependency_strings(doc: tomlkit.TOMLDocument) -> list[str]:
    """Collect all dependency strings from a pyproject.toml.

    Gathers dependencies from three locations:
    - [project].dependencies (main runtime deps)
    - [project].optional-dependencies.* (extras like [dev], [test])
    - [dependency-groups].* (PEP 735 dependency groups)

    Non-string entries (PEP 735 ``include-group`` tables) are skipped.
    """
    project = doc.get("project", {})
    deps: list[Any] = list(project.get("dependencies", []))
    for group_deps in project.get("optional-dependencies", {}).values():
        deps.extend(group_deps)
    for group_deps in doc.get("dependency-groups", {}).values():
        deps.extend(group_deps)
    return [str(d) for d in deps if isinstance(d, str)]


def get_workspace_member_globs(doc: tomlkit.TOMLDocument) -> list[str]:
    """Extract workspace member glob patterns from ``[tool.uv.workspace]``.

    Raises:
        ManifestError: If no workspace members are defined.
    """
    members = doc.get("tool", {}).get("uv", {}).get("workspace", {}).get("members")
    if not members:
        raise ManifestError("No [tool.uv.workspace] members defined in root pyproject.toml")
    return [str(m) for m in members]


def load_pyproject_manifest(path: Path, fallback_name: str) -> PackageManifest:
    """Map a member ``pyproject.toml`` onto a PackageManifest.

    Dependency names are canonicalized; the raw PEP 508 string is kept as the
    value. Unparseable requirement strings are a manifest error.
    """
    doc = load_pyproject(path)
    dependencies: dict[str, str] = {}
    for dep_str in get_all_dependency_strings(doc):
        try:
            name = dep_canonical_name(dep_str)
        except InvalidRequirement as exc:
            raise ManifestError(f"{path}: invalid requirement {dep_str!r}: {exc}") from exc
        dependencies.setdefault(name, dep_str)
    version = doc.get("project", {}).get("version")
    return PackageManifest(
        name=get_project_name(doc, fallback_name),
        version=str(version) if version is not None else None,
        dependencies=dependencies,
    )


def update_pkg_json_version(path: Path, version: str) -> None:
    """Set ``version`` in a package.json, keeping all other fields."""
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as exc:
        raise ManifestError(f"Could not read {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ManifestError(f"Expected {path} to be an object")
    data["version"] = version
    path.write_text(json.dumps(data, indent=2) + "\n")


def update_pyproject_version(path: Path, version: str) -> None:
    """Set ``[project].version`` in a pyproject.toml, preserving formatting."""
    doc = load_pyproject(path)
    project = doc.get("project")
    if project is None:
        raise ManifestError(f"{path} has no [project] table")
    # Cast needed because tomlkit types are complex unions
    cast(dict[str, Any], project)["version"] = version
    save_pyproject(path, doc)
