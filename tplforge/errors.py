"""Fatal error types raised by tplforge commands."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


class AppExit(Exception):
    """Unrecoverable condition that aborts the current command."""


class ProjectNotFound(AppExit):
    """Raised when no package.json exists between a directory and the filesystem root."""

    def __init__(self, start_dir: Path) -> None:
        self.start_dir = start_dir
        super().__init__(f"No package.json found in {start_dir} or any parent directory")


class EntryNotFound(AppExit):
    """Raised when the extraction entry file does not exist."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Entry file not found: {path}")


class UnsupportedEntry(AppExit):
    """Raised when the entry file has no supported source extension."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Entry file is not a JavaScript/TypeScript source: {path}")


class OutputPathError(AppExit):
    """Raised when the output directory cannot be used."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot write to {path}: {reason}")


class ProcessError(AppExit):
    """Raised when an external command exits non-zero in strict mode."""

    def __init__(self, command: Sequence[str], exit_code: int) -> None:
        self.command = list(command)
        self.exit_code = exit_code
        super().__init__(f"Command failed with exit code {exit_code}: {' '.join(self.command)}")


__all__ = [
    "AppExit",
    "EntryNotFound",
    "OutputPathError",
    "ProcessError",
    "ProjectNotFound",
    "UnsupportedEntry",
]
