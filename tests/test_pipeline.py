"""Tests for monover.pipeline."""

from __future__ import annotations

import os
import time
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import semver

from conftest import conventional, tag
from monover.errors import BranchNotConfiguredError
from monover.models import BumpLevel, Commit, PackageManifest, Workspace
from monover.pipeline import add_conventional_commits, discover_workspaces, resolve_versions, run
from monover.workspaces import PackageManager


class TestAddConventionalCommits:
    """Tests for add_conventional_commits()."""

    @patch("monover.pipeline.step")
    @patch("monover.pipeline.list_commits")
    def test_queries_both_windows(
        self, mock_list_commits: MagicMock, mock_step: MagicMock, make_state, tmp_path: Path
    ) -> None:
        """Workspace dir and lockfile are each queried since stable and since prerelease."""
        state = make_state("a", stable="a@1.0.0", prerelease="a@1.1.0-rc.0")

        def fake(*, revision_range, paths, cwd, env):
            if paths == ["pnpm-lock.yaml"]:
                return [Commit(abbrev_hash="1111aaa", subject="chore: lock")]
            if revision_range == "a@1.0.0..HEAD":
                return [Commit(abbrev_hash="2222bbb", subject="feat: stable side")]
            return [
                Commit(abbrev_hash="3333ccc", subject="fix: pre side"),
                Commit(abbrev_hash="4444ddd", subject="docs: noise"),
            ]

        mock_list_commits.side_effect = fake

        [result] = add_conventional_commits(
            [state], package_manager=PackageManager.PNPM, root_dir=tmp_path
        )

        stable = result.commits.since_latest_stable
        pre = result.commits.since_latest_prerelease
        assert [c.abbrev_hash for c in stable.conventional_touching_workspace] == ["2222bbb"]
        assert [c.abbrev_hash for c in pre.conventional_touching_workspace] == ["3333ccc"]
        assert [c.abbrev_hash for c in stable.touching_lockfile] == ["1111aaa"]
        ranges = sorted(
            (call.kwargs["revision_range"], tuple(map(str, call.kwargs["paths"])))
            for call in mock_list_commits.call_args_list
        )
        assert ranges == sorted(
            [
                ("a@1.0.0..HEAD", (str(state.dir),)),
                ("a@1.0.0..HEAD", ("pnpm-lock.yaml",)),
                ("a@1.1.0-rc.0..HEAD", (str(state.dir),)),
                ("a@1.1.0-rc.0..HEAD", ("pnpm-lock.yaml",)),
            ]
        )

    @patch("monover.pipeline.step")
    @patch("monover.pipeline.list_commits")
    def test_no_tags_means_all_history(
        self, mock_list_commits: MagicMock, mock_step: MagicMock, make_state, tmp_path: Path
    ) -> None:
        mock_list_commits.return_value = []
        add_conventional_commits(
            [make_state("a")], package_manager=PackageManager.UV, root_dir=tmp_path
        )
        assert {c.kwargs["revision_range"] for c in mock_list_commits.call_args_list} == {None}
        assert ["uv.lock"] in [c.kwargs["paths"] for c in mock_list_commits.call_args_list]

    @patch("monover.pipeline.step")
    @patch("monover.pipeline.list_commits")
    def test_results_matched_by_workspace_not_arrival(
        self, mock_list_commits: MagicMock, mock_step: MagicMock, make_state, tmp_path: Path
    ) -> None:
        """The first workspace's queries finish last; results still line up."""
        states = [make_state("slow"), make_state("fast")]

        def fake(*, revision_range, paths, cwd, env):
            path = str(paths[0])
            if path.endswith("slow"):
                time.sleep(0.05)
                return [Commit(abbrev_hash="5555eee", subject="feat: slow")]
            if path.endswith("fast"):
                return [Commit(abbrev_hash="6666fff", subject="fix: fast")]
            return []

        mock_list_commits.side_effect = fake

        slow, fast = add_conventional_commits(
            states, package_manager=PackageManager.NPM, root_dir=tmp_path, max_workers=4
        )
        assert slow.name == "slow"
        assert slow.commits.since_latest_stable.conventional_touching_workspace[0].abbrev_hash == "5555eee"
        assert fast.commits.since_latest_stable.conventional_touching_workspace[0].abbrev_hash == "6666fff"


class TestDiscoverWorkspaces:
    """Tests for discover_workspaces()."""

    @patch("monover.pipeline.step")
    @patch("monover.pipeline.list_workspaces")
    def test_workspace_outside_root(
        self,
        mock_list_workspaces: MagicMock,
        mock_step: MagicMock,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """A symlinked workspace resolving outside the root is still listed."""
        root = tmp_path / "repo"
        outside = tmp_path / "elsewhere" / "a"
        mock_list_workspaces.return_value = [
            Workspace(name="a", dir=outside, manifest=PackageManifest(name="a")),
            Workspace(
                name="b",
                dir=root / "packages" / "b",
                manifest=PackageManifest(name="b", dependencies={"a": "workspace:*"}),
            ),
        ]

        a, b = discover_workspaces(root, PackageManager.PNPM)

        assert b.workspace_dependencies == ["a"]
        out = capsys.readouterr().out
        assert f"a ({os.path.join('..', 'elsewhere', 'a')})" in out
        assert f"b ({os.path.join('packages', 'b')}) → [a]" in out


class TestResolveVersions:
    """Bump, propagate and resolve without git."""

    @patch("monover.pipeline.step")
    def test_dependent_gets_patch(self, mock_step: MagicMock, make_state, config) -> None:
        states = [
            make_state("a", stable="a@1.0.0", since_stable=[conventional("feat")]),
            make_state("b", stable="b@1.0.0", deps=["a"]),
            make_state("c", stable="c@1.0.0"),
        ]
        a, b, c = resolve_versions(states, config=config, on_stable_branch=True)
        assert a.bump_level is BumpLevel.MINOR
        assert a.next_version == semver.Version(1, 1, 0)
        assert b.bump_level is None
        assert b.bumped_workspace_dependencies == ["a"]
        assert b.next_version == semver.Version(1, 0, 1)
        assert c.next_version is None

    @patch("monover.pipeline.step")
    def test_prerelease_sync_bump(self, mock_step: MagicMock, make_state, config) -> None:
        shipped = conventional("feat", breaking=True)
        state = make_state("a", stable="a@2.0.0", since_prerelease=[shipped])
        [a] = resolve_versions([state], config=config, on_stable_branch=False)
        assert a.bump_level is BumpLevel.PATCH
        assert a.next_version == semver.Version.parse("2.0.1-rc.0")


class TestRun:
    """Tests for run() with git mocked out."""

    @pytest.fixture
    def workspaces(self, tmp_path: Path) -> list[Workspace]:
        return [
            Workspace(name="a", dir=tmp_path / "packages" / "a", manifest=PackageManifest(name="a")),
            Workspace(
                name="b",
                dir=tmp_path / "packages" / "b",
                manifest=PackageManifest(name="b", dependencies={"a": "workspace:*"}),
            ),
        ]

    @patch("monover.pipeline.step")
    @patch("monover.pipeline.create_tags", side_effect=lambda ws, **kw: ws)
    @patch("monover.pipeline.list_commits")
    @patch("monover.pipeline.list_tags")
    @patch("monover.pipeline.list_workspaces")
    @patch("monover.pipeline.get_current_branch", return_value="main")
    @patch("monover.pipeline.get_root_dir")
    def test_full_stable_run(
        self,
        mock_root: MagicMock,
        mock_branch: MagicMock,
        mock_list_workspaces: MagicMock,
        mock_list_tags: MagicMock,
        mock_list_commits: MagicMock,
        mock_create_tags: MagicMock,
        mock_step: MagicMock,
        workspaces: list[Workspace],
        tmp_path: Path,
        config,
    ) -> None:
        mock_root.return_value = tmp_path
        mock_list_workspaces.return_value = workspaces
        mock_list_tags.return_value = ["a@1.0.0", "b@1.0.0", "unrelated"]

        def fake(*, revision_range, paths, cwd, env):
            if str(paths[0]).endswith("packages/a"):
                return [Commit(abbrev_hash="7777aaa", subject="feat(a): shiny")]
            return []

        mock_list_commits.side_effect = fake

        result = run(config, PackageManager.PNPM, cwd=tmp_path)

        assert result.on_stable_branch is True
        a, b = result.workspaces
        assert a.latest_version.stable == tag("a@1.0.0")
        assert b.workspace_dependencies == ["a"]
        assert a.next_version == semver.Version(1, 1, 0)
        assert b.next_version == semver.Version(1, 0, 1)
        _, kwargs = mock_create_tags.call_args
        assert kwargs["push_tags"] is False
        assert kwargs["dry_run"] is False

    @patch("monover.pipeline.list_workspaces")
    @patch("monover.pipeline.get_current_branch", return_value="feature/x")
    @patch("monover.pipeline.get_root_dir")
    def test_unconfigured_branch_aborts(
        self,
        mock_root: MagicMock,
        mock_branch: MagicMock,
        mock_list_workspaces: MagicMock,
        tmp_path: Path,
        config,
    ) -> None:
        mock_root.return_value = tmp_path
        with pytest.raises(BranchNotConfiguredError):
            run(config, PackageManager.NPM)
        mock_list_workspaces.assert_not_called()
