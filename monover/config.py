"""Configuration for monover.

Configuration lives in ``monover.toml`` at the repository root or, failing
that, in the ``[tool.monover]`` table of the root ``pyproject.toml``. Keys may
be written in kebab-case (``push-tags``) or snake_case (``push_tags``).

Example:
    [tool.monover]
    push-tags = true

    [tool.monover.stable]
    branch = "main"

    [tool.monover.prerelease]
    branch = "next"
    identifier = "rc"
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomlkit
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from tomlkit.exceptions import TOMLKitError

from .errors import BranchNotConfiguredError, ConfigError

CONFIG_FILE = "monover.toml"


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        return tomlkit.parse(path.read_text()).unwrap()
    except (OSError, TOMLKitError) as exc:
        raise ConfigError(f"Could not read {path}: {exc}") from exc


class StableConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    branch: str = Field(min_length=1)


class PrereleaseConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    branch: str = Field(min_length=1)
    identifier: str = Field(min_length=1, pattern=r"^[0-9A-Za-z-]+$")


class Config(BaseModel):
    """Release configuration.

    Attributes:
        stable: The branch producing non-prerelease versions.
        prerelease: Optional branch producing ``<version>-<identifier>.N``.
        push_tags: Push created tags to ``origin``.
        dry_run: Compute versions but create no tags.
        bump_on_lockfile_change: Patch-bump workspaces whose only change
            since the relevant tag is a lockfile update.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    stable: StableConfig
    prerelease: PrereleaseConfig | None = None
    push_tags: bool = Field(default=True, alias="push-tags")
    dry_run: bool = Field(default=False, alias="dry-run")
    bump_on_lockfile_change: bool = Field(
        default=False, alias="bump-on-lockfile-change"
    )


def parse_config(data: dict[str, Any]) -> Config:
    """Validate a configuration mapping, raising ConfigError on bad input."""
    try:
        return Config.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid monover configuration:\n{exc}") from exc


def load_config(root: Path) -> Config:
    """Load configuration from ``monover.toml`` or ``pyproject.toml``.

    Raises:
        ConfigError: If no configuration is found, cannot be read,
            or does not validate.
    """
    dedicated = root / CONFIG_FILE
    if dedicated.is_file():
        return parse_config(_read_toml(dedicated))

    pyproject = root / "pyproject.toml"
    if pyproject.is_file():
        doc = _read_toml(pyproject)
        table = doc.get("tool", {}).get("monover")
        if table is not None:
            return parse_config(table)

    raise ConfigError(
        f"No monover configuration found in {root}. "
        f"Add {CONFIG_FILE} or a [tool.monover] table to pyproject.toml."
    )


def validate_config(config: Config, current_branch: str) -> bool:
    """Check the current branch against the config.

    Returns:
        True when on the stable branch, False when on the prerelease branch.

    Raises:
        BranchNotConfiguredError: If the branch is neither.
    """
    if current_branch == config.stable.branch:
        return True
    if config.prerelease is not None and current_branch == config.prerelease.branch:
        return False
    raise BranchNotConfiguredError(current_branch)
