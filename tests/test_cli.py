"""CLI parser and dispatch tests."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from tplforge import cli
from tplforge.cli import _build_parser
from tplforge.dist import DistResult
from tplforge.errors import AppExit
from tplforge.models import Cancelled, Completed, ExtractionResult, Failed
from tplforge.release import ReleaseResult


@pytest.fixture(autouse=True)
def _reset_tplforge_logger() -> None:
    yield
    logger = logging.getLogger("tplforge")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "release"])
    assert args.verbose is True
    assert args.command == "release"


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["release", "-v"])
    assert args.verbose is True
    assert args.command == "release"


def test_cli_create_takes_optional_name() -> None:
    parser = _build_parser()
    assert parser.parse_args(["create"]).name is None
    assert parser.parse_args(["create", "my-app"]).name == "my-app"


def test_cli_dist_options() -> None:
    parser = _build_parser()
    args = parser.parse_args(["dist", "src/main.ts", "--out", "build", "--naming", "hash", "--tree-shake"])
    assert args.entry == "src/main.ts"
    assert args.out_dir == "build"
    assert args.naming == "hash"
    assert args.tree_shake is True

    defaults = parser.parse_args(["dist"])
    assert defaults.entry is None
    assert defaults.out_dir is None
    assert defaults.naming is None
    assert defaults.tree_shake is None


def test_cli_rejects_unknown_naming_mode() -> None:
    with pytest.raises(SystemExit):
        _build_parser().parse_args(["dist", "--naming", "nested"])


class _StubDistBuilder:
    outcome = None
    calls: list = []

    def __init__(self, *args, **kwargs) -> None:  # type: ignore[no-untyped-def]
        pass

    def run(self, entry, out_dir, *, naming=None, tree_shake=None):  # type: ignore[no-untyped-def]
        _StubDistBuilder.calls.append((entry, out_dir, naming, tree_shake))
        return _StubDistBuilder.outcome


@pytest.fixture
def stub_dist(monkeypatch: pytest.MonkeyPatch) -> type:
    _StubDistBuilder.calls = []
    monkeypatch.setattr(cli, "DistBuilder", _StubDistBuilder)
    return _StubDistBuilder


def test_main_dispatches_dist_and_reports_success(stub_dist, capsys, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
    extraction = ExtractionResult(external_dependencies={}, emitted_count=3, entry_output_name="index.ts")
    stub_dist.outcome = Completed(
        DistResult(
            out_dir=tmp_path / "dist",
            manifest_path=tmp_path / "dist" / "package.json",
            extraction=extraction,
            dependencies={},
            dev_dependencies={},
        )
    )

    cli.main(["dist", "main.ts", "--out", "dist"])

    assert stub_dist.calls == [("main.ts", "dist", None, None)]
    assert "Extracted 3 file(s)" in capsys.readouterr().out


def test_main_reports_cancel_without_error(stub_dist, capsys) -> None:  # type: ignore[no-untyped-def]
    stub_dist.outcome = Cancelled()

    cli.main(["dist"])

    assert "Cancelled: cancelled by user" in capsys.readouterr().out


def test_main_exits_non_zero_on_failure(stub_dist, capsys) -> None:  # type: ignore[no-untyped-def]
    stub_dist.outcome = Failed(AppExit("boom"))

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["dist"])

    assert excinfo.value.code == 1
    assert "tplforge dist failed: boom" in capsys.readouterr().err


def test_main_reports_release(monkeypatch: pytest.MonkeyPatch, capsys) -> None:  # type: ignore[no-untyped-def]
    class _StubReleaseManager:
        def run(self):  # type: ignore[no-untyped-def]
            return Completed(ReleaseResult(previous_version="1.0.0", version="1.0.1", tag="v1.0.1", pushed=False))

    monkeypatch.setattr(cli, "ReleaseManager", _StubReleaseManager)

    cli.main(["release"])

    assert "Released 1.0.1 as v1.0.1 (not pushed)" in capsys.readouterr().out


def test_main_tags_log_lines_with_the_subcommand(stub_dist) -> None:  # type: ignore[no-untyped-def]
    stub_dist.outcome = Cancelled()

    cli.main(["dist", "-v"])

    logger = logging.getLogger("tplforge")
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    assert logger.handlers[0].formatter._fmt == "[tplforge dist] %(levelname)s %(message)s"
