"""Tests for the release command."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from tests._fixtures.fakes import RecordingExecutor
from tplforge.config import ReleaseConfig, ToolConfig
from tplforge.errors import AppExit
from tplforge.models import Completed, Failed
from tplforge.process import CommandResult, ProcessRunner
from tplforge.release import ReleaseManager, ReleaseResult, next_version

CLOCK = 1_700_000_000.0
VERSION = "1.2.4+1700000000000"

INSIDE_REPO = ("git", "rev-parse", "--is-inside-work-tree")
STATUS = ("git", "status", "--porcelain")
REMOTES = ("git", "remote")


@pytest.mark.parametrize(
    ("current", "metadata", "expected"),
    [
        ("1.2.3", None, "1.2.4"),
        ("1.2.3-beta.1", None, "1.2.4"),
        ("1.2.3+999", 5, "1.2.4+5"),
        ("0.9.9", 42, "0.9.10+42"),
        (None, None, "0.0.2"),
    ],
)
def test_next_version_bumps_patch(current, metadata, expected) -> None:  # type: ignore[no-untyped-def]
    assert next_version(current, build_metadata=metadata) == expected


def test_next_version_rejects_malformed_versions() -> None:
    with pytest.raises(AppExit):
        next_version("one.two")


def _project(project_builder, **extra) -> Path:  # type: ignore[no-untyped-def]
    project_builder.package_json({"name": "demo", "version": "1.2.3", **extra})
    return project_builder.path()


def _manager(root: Path, executor: RecordingExecutor, **release) -> ReleaseManager:  # type: ignore[no-untyped-def]
    return ReleaseManager(
        runner=ProcessRunner(executor=executor),
        config=ToolConfig(root=root, release=ReleaseConfig(**release)),
        cwd=root,
        clock=lambda: CLOCK,
    )


def test_release_bumps_commits_tags_and_pushes(project_builder) -> None:
    root = _project(project_builder, repository={"url": "git+https://github.com/acme/demo.git"})
    executor = RecordingExecutor(
        {
            INSIDE_REPO: CommandResult(exit_code=0, stdout="true\n"),
            STATUS: CommandResult(exit_code=0, stdout=""),
            REMOTES: CommandResult(exit_code=0, stdout="origin\n"),
        }
    )

    outcome = _manager(root, executor).run()

    assert outcome == Completed(
        ReleaseResult(previous_version="1.2.3", version=VERSION, tag=f"v{VERSION}", pushed=True)
    )
    assert executor.commands == [
        list(INSIDE_REPO),
        ["git", "add", "package.json"],
        ["git", "commit", "-m", f"chore: release {VERSION}"],
        ["git", "tag", "-a", f"v{VERSION}", "-m", f"Release {VERSION}"],
        list(STATUS),
        list(REMOTES),
        ["git", "push", "origin", "HEAD"],
        ["git", "push", "origin", f"v{VERSION}"],
    ]
    manifest = json.loads((root / "package.json").read_text(encoding="utf-8"))
    assert manifest["version"] == VERSION
    assert manifest["name"] == "demo"


def test_release_without_build_metadata(project_builder) -> None:
    root = _project(project_builder)
    executor = RecordingExecutor({INSIDE_REPO: CommandResult(exit_code=0, stdout="true")})

    outcome = _manager(root, executor, build_metadata=False, tag_prefix="release-").run()

    assert isinstance(outcome, Completed)
    assert outcome.value.version == "1.2.4"
    assert outcome.value.tag == "release-1.2.4"


def test_release_initialises_repository_when_missing(project_builder) -> None:
    root = _project(project_builder)
    executor = RecordingExecutor({INSIDE_REPO: CommandResult(exit_code=128)})

    outcome = _manager(root, executor).run()

    assert isinstance(outcome, Completed)
    assert executor.commands[1] == ["git", "init"]


def test_release_skips_push_without_remote(project_builder) -> None:
    root = _project(project_builder)
    executor = RecordingExecutor({INSIDE_REPO: CommandResult(exit_code=0, stdout="true")})

    outcome = _manager(root, executor).run()

    assert isinstance(outcome, Completed)
    assert outcome.value.pushed is False
    assert not any(command[:2] == ["git", "push"] for command in executor.commands)


def test_release_commits_pending_changes_before_push(project_builder) -> None:
    root = _project(project_builder)
    executor = RecordingExecutor(
        {
            INSIDE_REPO: CommandResult(exit_code=0, stdout="true"),
            STATUS: CommandResult(exit_code=0, stdout=" M src/index.ts\n"),
        }
    )

    _manager(root, executor).run()

    status_index = executor.commands.index(list(STATUS))
    assert executor.commands[status_index + 1 : status_index + 3] == [
        ["git", "add", "."],
        ["git", "commit", "-m", "Update files before release"],
    ]


def test_release_tolerates_failed_release_commit(project_builder) -> None:
    root = _project(project_builder)
    executor = RecordingExecutor(
        {
            INSIDE_REPO: CommandResult(exit_code=0, stdout="true"),
            ("git", "commit", "-m", f"chore: release {VERSION}"): CommandResult(exit_code=1),
        }
    )

    assert isinstance(_manager(root, executor).run(), Completed)


def test_push_failure_is_fatal(project_builder) -> None:
    root = _project(project_builder)
    executor = RecordingExecutor(
        {
            INSIDE_REPO: CommandResult(exit_code=0, stdout="true"),
            REMOTES: CommandResult(exit_code=0, stdout="origin"),
            ("git", "push", "origin", "HEAD"): CommandResult(exit_code=1),
        }
    )

    outcome = _manager(root, executor).run()

    assert isinstance(outcome, Failed)
    assert "Failed to push" in str(outcome.error)


def test_release_outside_a_project_fails(tmp_path: Path) -> None:
    outcome = _manager(tmp_path, RecordingExecutor()).run()

    assert isinstance(outcome, Failed)
