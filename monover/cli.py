"""CLI entry point for monover."""

from __future__ import annotations

from pathlib import Path

import click

from .changelog import changelog_entries, generate_changelogs
from .config import Config, load_config
from .errors import MonoverError
from .models import RunResult
from .pipeline import run
from .shell import step
from .vcs import get_root_dir
from .workspaces import PackageManager, update_manifest_version

PACKAGE_MANAGERS = [pm.value for pm in PackageManager]


def _load(config_path: str | None, cwd: Path) -> Config:
    if config_path is not None:
        return load_config(Path(config_path))
    return load_config(get_root_dir(cwd))


def _write_outputs(
    result: RunResult,
    package_manager: PackageManager,
    changelog_dir: str | None,
    write_versions: bool,
) -> None:
    if write_versions:
        step("Writing manifest versions")
        for state in result.released():
            path = update_manifest_version(state.dir, str(state.next_version), package_manager)
            click.echo(f"  {path}")

    if changelog_dir is not None:
        step("Writing changelogs")
        dest = Path(changelog_dir)
        dest.mkdir(parents=True, exist_ok=True)
        for entry in generate_changelogs(changelog_entries(result)):
            # Scoped names contain a slash.
            path = dest / f"{entry.name.replace('/', '__')}.md"
            path.write_text(entry.changelog)
            click.echo(f"  {path}")


def _execute(
    *,
    package_manager: str,
    config_path: str | None,
    dry_run: bool,
    push: bool | None,
    bump_on_lockfile_change: bool | None,
    changelog_dir: str | None,
    write_versions: bool,
) -> RunResult:
    cwd = Path.cwd()
    pm = PackageManager(package_manager)
    try:
        config = _load(config_path, cwd)
        overrides: dict[str, object] = {}
        if dry_run:
            overrides["dry_run"] = True
        if push is not None:
            overrides["push_tags"] = push
        if bump_on_lockfile_change is not None:
            overrides["bump_on_lockfile_change"] = bump_on_lockfile_change
        result = run(config.model_copy(update=overrides), pm, cwd=cwd)
        _write_outputs(result, pm, changelog_dir, write_versions)
    except MonoverError as exc:
        raise click.ClickException(str(exc)) from exc
    return result


def _summary(result: RunResult) -> None:
    released = result.released()
    click.echo()
    if not released:
        click.echo("Nothing to release.")
        return
    for state in released:
        click.echo(f"{state.name}@{state.next_version}")


package_manager_option = click.option(
    "--package-manager",
    "-p",
    type=click.Choice(PACKAGE_MANAGERS),
    default=PackageManager.PNPM.value,
    show_default=True,
    help="Decides manifest format, workspace globs and lockfile name.",
)
config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, file_okay=False),
    default=None,
    help="Directory holding monover.toml or pyproject.toml (default: repo root).",
)
lockfile_option = click.option(
    "--bump-on-lockfile-change/--no-bump-on-lockfile-change",
    default=None,
    help="Patch-bump workspaces whose only change is a lockfile update.",
)
changelog_option = click.option(
    "--changelog-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Write one markdown changelog per released workspace here.",
)
write_versions_option = click.option(
    "--write-versions",
    is_flag=True,
    help="Write the next version into each released workspace manifest.",
)


@click.group()
@click.version_option(package_name="monover")
def cli() -> None:
    """Conventional-commit versioning for monorepos."""


@cli.command()
@package_manager_option
@config_option
@lockfile_option
@changelog_option
@write_versions_option
def plan(
    package_manager: str,
    config_path: str | None,
    bump_on_lockfile_change: bool | None,
    changelog_dir: str | None,
    write_versions: bool,
) -> None:
    """Compute next versions without creating any tags."""
    result = _execute(
        package_manager=package_manager,
        config_path=config_path,
        dry_run=True,
        push=None,
        bump_on_lockfile_change=bump_on_lockfile_change,
        changelog_dir=changelog_dir,
        write_versions=write_versions,
    )
    _summary(result)


@cli.command()
@package_manager_option
@config_option
@lockfile_option
@changelog_option
@write_versions_option
@click.option("--dry-run", is_flag=True, help="Compute versions but create no tags.")
@click.option(
    "--push/--no-push",
    default=None,
    help="Push created tags to origin (default from config).",
)
def release(
    package_manager: str,
    config_path: str | None,
    bump_on_lockfile_change: bool | None,
    changelog_dir: str | None,
    write_versions: bool,
    dry_run: bool,
    push: bool | None,
) -> None:
    """Compute next versions and tag every released workspace (usually called from CI)."""
    result = _execute(
        package_manager=package_manager,
        config_path=config_path,
        dry_run=dry_run,
        push=push,
        bump_on_lockfile_change=bump_on_lockfile_change,
        changelog_dir=changelog_dir,
        write_versions=write_versions,
    )
    _summary(result)
