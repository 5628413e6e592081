"""External command execution."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence

from .errors import ProcessError
from .logging import get_logger


@dataclass(frozen=True)
class CommandResult:
    """Exit status and captured stdout of a finished command."""

    exit_code: int
    stdout: str = ""


Executor = Callable[..., CommandResult]


class ProcessRunner:
    """Runs git and package-manager executables.

    In strict mode a non-zero exit raises :class:`ProcessError`; in best-effort
    mode the failure is logged and the exit code returned.
    """

    def __init__(self, executor: Optional[Executor] = None) -> None:
        self._executor = executor or self._default_executor
        self.logger = get_logger("process")

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path,
        inherit_io: bool = True,
        strict: bool = True,
    ) -> int:
        """Run ``command`` and return its exit code."""
        return self._execute(command, cwd=cwd, inherit_io=inherit_io, strict=strict).exit_code

    def capture(self, command: Sequence[str], *, cwd: Path, strict: bool = True) -> str:
        """Run ``command`` and return its stripped stdout ("" on best-effort failure)."""
        result = self._execute(command, cwd=cwd, inherit_io=False, strict=strict)
        if result.exit_code != 0:
            return ""
        return result.stdout.strip()

    def _execute(
        self,
        command: Sequence[str],
        *,
        cwd: Path,
        inherit_io: bool,
        strict: bool,
    ) -> CommandResult:
        args = list(command)
        self.logger.debug("$ %s (cwd=%s)", " ".join(args), cwd)
        try:
            result = self._executor(args, cwd=cwd, capture_output=not inherit_io)
        except FileNotFoundError as exc:
            if strict:
                raise ProcessError(args, 127) from exc
            self.logger.warning("Command not found: %s", args[0])
            return CommandResult(exit_code=127)
        if result.exit_code != 0:
            if strict:
                raise ProcessError(args, result.exit_code)
            self.logger.warning(
                "Ignoring failure of `%s` (exit code %d)", " ".join(args), result.exit_code
            )
        return result

    @staticmethod
    def _default_executor(
        args: Sequence[str],
        *,
        cwd: Path,
        capture_output: bool = False,
    ) -> CommandResult:
        completed = subprocess.run(
            list(args),
            cwd=str(cwd),
            check=False,
            text=True,
            capture_output=capture_output,
        )
        return CommandResult(
            exit_code=completed.returncode,
            stdout=completed.stdout if capture_output else "",
        )


def detect_package_manager(runner: ProcessRunner, cwd: Path) -> str:
    """Return the first of pnpm, yarn or npm that answers ``--version``."""
    for manager in ("pnpm", "yarn"):
        if runner.run([manager, "--version"], cwd=cwd, inherit_io=False, strict=False) == 0:
            return manager
    return "npm"


__all__ = ["CommandResult", "ProcessRunner", "detect_package_manager"]
