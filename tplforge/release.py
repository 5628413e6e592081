"""Version bump, tag and push for the project containing the working directory."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from .config import ConfigError, ToolConfig, load_config
from .errors import AppExit, ProcessError
from .logging import get_logger
from .models import Completed, Failed, Outcome, ProjectInfo
from .process import ProcessRunner
from .project import locate_project, write_package_json

DEFAULT_VERSION = "0.0.1"

_GITHUB_URL = re.compile(r"github\.com[/:]([^/]+)/([^/#]+?)(?:\.git)?(?:#.*)?$")


@dataclass
class ReleaseResult:
    """Versions and tag produced by a release run."""

    previous_version: str
    version: str
    tag: str
    pushed: bool


def next_version(current: Optional[str], *, build_metadata: Optional[int] = None) -> str:
    """Bump the patch number, dropping any pre-release/build suffix.

    ``build_metadata`` (epoch millis) is appended as ``+<n>`` when given.
    """
    base = re.split(r"[-+]", (current or DEFAULT_VERSION).strip(), maxsplit=1)[0]
    parts = base.split(".")
    if len(parts) != 3 or not all(part.isdigit() for part in parts):
        raise AppExit(f"Cannot bump malformed version {current!r}")
    major, minor, patch = (int(part) for part in parts)
    bumped = f"{major}.{minor}.{patch + 1}"
    if build_metadata is not None:
        bumped = f"{bumped}+{build_metadata}"
    return bumped


class ReleaseManager:
    """Commits a bumped package.json, tags it, and pushes when a remote exists."""

    def __init__(
        self,
        runner: ProcessRunner | None = None,
        config: ToolConfig | None = None,
        cwd: Path | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.runner = runner or ProcessRunner()
        self.config = config
        self.cwd = (cwd or Path.cwd()).resolve()
        self.clock = clock
        self.logger = get_logger("release")

    def run(self) -> Outcome:
        try:
            project = locate_project(self.cwd)
            config = self.config or load_config(project.root_dir)
            result = self._release(project, config)
        except (AppExit, ConfigError, OSError) as exc:
            self.logger.error("release failed: %s", exc)
            return Failed(exc)
        return Completed(result)

    def _release(self, project: ProjectInfo, config: ToolConfig) -> ReleaseResult:
        repo = project.root_dir
        self.logger.info("Starting release for %s", repo)
        self._ensure_repository(repo)

        previous = str(project.manifest.get("version") or DEFAULT_VERSION)
        metadata = int(self.clock() * 1000) if config.release.build_metadata else None
        version = next_version(previous, build_metadata=metadata)
        tag = f"{config.release.tag_prefix}{version}"

        manifest = dict(project.manifest)
        manifest["version"] = version
        write_package_json(project.manifest_path, manifest)
        self.logger.info("Version %s -> %s", previous, version)

        manifest_arg = project.manifest_path.relative_to(repo).as_posix()
        self.runner.run(["git", "add", manifest_arg], cwd=repo, strict=False)
        self.runner.run(["git", "commit", "-m", f"chore: release {version}"], cwd=repo, strict=False)
        self.runner.run(["git", "tag", "-a", tag, "-m", f"Release {version}"], cwd=repo, strict=False)

        self._commit_pending(repo)
        pushed = self._push(repo, config.release.remote, tag)

        self._log_links(project, tag)
        return ReleaseResult(previous_version=previous, version=version, tag=tag, pushed=pushed)

    def _ensure_repository(self, repo: Path) -> None:
        inside = self.runner.capture(["git", "rev-parse", "--is-inside-work-tree"], cwd=repo, strict=False)
        if inside != "true":
            self.logger.info("Initialising git repository in %s", repo)
            self.runner.run(["git", "init"], cwd=repo, strict=False)

    def _commit_pending(self, repo: Path) -> None:
        status = self.runner.capture(["git", "status", "--porcelain"], cwd=repo, strict=False)
        if not status:
            return
        try:
            self.runner.run(["git", "add", "."], cwd=repo)
            self.runner.run(["git", "commit", "-m", "Update files before release"], cwd=repo)
        except ProcessError as exc:
            raise AppExit(f"Failed to commit pending changes: {exc}") from exc
        self.logger.info("Committed pending changes before release")

    def _push(self, repo: Path, remote: str, tag: str) -> bool:
        remotes = self.runner.capture(["git", "remote"], cwd=repo, strict=False)
        if not remotes:
            self.logger.info("No git remote configured; skipping push")
            return False
        try:
            self.runner.run(["git", "push", remote, "HEAD"], cwd=repo)
            self.runner.run(["git", "push", remote, tag], cwd=repo)
        except ProcessError as exc:
            raise AppExit(f"Failed to push to {remote}: {exc}") from exc
        return True

    def _log_links(self, project: ProjectInfo, tag: str) -> None:
        repository = project.manifest.get("repository")
        url = repository.get("url") if isinstance(repository, dict) else repository
        if isinstance(url, str):
            match = _GITHUB_URL.search(url)
            if match:
                owner, name = match.groups()
                release_tag = tag.split("+", 1)[0]
                self.logger.info("GitHub release: https://github.com/%s/%s/releases/tag/%s", owner, name, release_tag)
        package = project.manifest.get("name")
        if isinstance(package, str) and package:
            self.logger.info("npm package: https://www.npmjs.com/package/%s", package)


__all__ = ["ReleaseManager", "ReleaseResult", "next_version"]
