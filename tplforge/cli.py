"""CLI entrypoints for tplforge commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .dist import DistBuilder, DistResult
from .logging import configure_logging
from .models import Cancelled, Failed, Outcome
from .release import ReleaseManager, ReleaseResult
from .template import CreateResult, ProjectCreator


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tplforge",
        description="Scaffold projects from templates, cut releases, and extract single-entry dists.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    create_parser = subparsers.add_parser(
        "create",
        help="Create a new project from a template.",
    )
    _add_verbose_option(create_parser, suppress_default=True)
    create_parser.add_argument(
        "name",
        nargs="?",
        default=None,
        help="Project directory name (prompted when omitted).",
    )

    release_parser = subparsers.add_parser(
        "release",
        help="Bump the patch version, tag it, and push to the remote.",
    )
    _add_verbose_option(release_parser, suppress_default=True)

    dist_parser = subparsers.add_parser(
        "dist",
        help="Copy an entry file and its local imports into a flat directory with a trimmed package.json.",
    )
    _add_verbose_option(dist_parser, suppress_default=True)
    dist_parser.add_argument(
        "entry",
        nargs="?",
        default=None,
        help="Entry file relative to the current directory (prompted when omitted).",
    )
    dist_parser.add_argument(
        "--out",
        dest="out_dir",
        default=None,
        help="Output directory name (prompted when omitted; must not exist).",
    )
    dist_parser.add_argument(
        "--naming",
        choices=("flatten", "hash"),
        default=None,
        help="How non-entry files are named in the output directory.",
    )
    dist_parser.add_argument(
        "--tree-shake",
        action="store_true",
        default=None,
        help="Drop unexported top-level declarations that are never referenced.",
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for tplforge commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), command=args.command)

    if args.command == "create":
        outcome = ProjectCreator().run(args.name)
    elif args.command == "release":
        outcome = ReleaseManager().run()
    elif args.command == "dist":
        outcome = DistBuilder().run(
            args.entry,
            args.out_dir,
            naming=args.naming,
            tree_shake=args.tree_shake,
        )
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")

    _finish(parser, args.command, outcome)


def _finish(parser: argparse.ArgumentParser, command: str, outcome: Outcome) -> None:
    if isinstance(outcome, Cancelled):
        print(f"Cancelled: {outcome.reason}")
        return
    if isinstance(outcome, Failed):
        parser.exit(
            1,
            f"tplforge {command} failed: {outcome.error}\nRun with --verbose for more details.\n",
        )
    value = outcome.value
    if isinstance(value, CreateResult):
        print(f"Project created at {_relativize(value.target)}")
    elif isinstance(value, ReleaseResult):
        suffix = "" if value.pushed else " (not pushed)"
        print(f"Released {value.version} as {value.tag}{suffix}")
    elif isinstance(value, DistResult):
        print(
            f"Extracted {value.extraction.emitted_count} file(s) to {_relativize(value.out_dir)}"
        )


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
