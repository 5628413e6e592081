"""The create command: scaffold a new project from a template source."""

from __future__ import annotations

import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from jinja2 import Environment, FileSystemLoader, TemplateError

from .config import ConfigError, TemplateSource, ToolConfig, load_config
from .dist import DistBuilder, list_entry_candidates
from .errors import AppExit
from .logging import get_logger
from .models import Cancelled, Completed, Failed, Outcome
from .process import ProcessRunner, detect_package_manager
from .project import (
    MANIFEST_NAME,
    load_package_json,
    locate_project,
    read_template_metadata,
    write_package_json,
)
from .prompts import Choice, PromptService

PROJECT_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
DEFAULT_PROJECT_NAME = "my-app"
WORKFLOW_PATH = Path(".github") / "workflows" / "publish.yml"

_INSTALL_COMMANDS = {
    "pnpm": "pnpm install --frozen-lockfile=false",
    "yarn": "yarn install",
    "npm": "npm install",
}
_PUBLISH_COMMANDS = {
    "pnpm": "pnpm publish --no-git-checks --access public",
    "yarn": "yarn npm publish --access public",
    "npm": "npm publish --access public",
}


@dataclass
class CreateResult:
    """The scaffolded project and how it was produced."""

    name: str
    target: Path
    template: TemplateSource
    package_manager: Optional[str]
    installed: bool


def validate_project_name(name: str, parent: Path) -> Union[bool, str]:
    """Return True or a message explaining why ``name`` cannot be used."""
    if not name or not name.strip():
        return "Project name cannot be empty"
    if "/" in name:
        return "Project name cannot contain /"
    if not PROJECT_NAME_PATTERN.match(name):
        return "Project name may only contain letters, digits, - and _"
    if (parent / name).exists():
        return f"Directory already exists: {name}"
    return True


class ProjectCreator:
    """Walks the user through naming, template choice, and project setup."""

    def __init__(
        self,
        prompts: PromptService | None = None,
        runner: ProcessRunner | None = None,
        config: ToolConfig | None = None,
        cwd: Path | None = None,
        dist_builder: DistBuilder | None = None,
    ) -> None:
        self.prompts = prompts or PromptService()
        self.runner = runner or ProcessRunner()
        self.config = config
        self.cwd = (cwd or Path.cwd()).resolve()
        self.dist_builder = dist_builder or DistBuilder(prompts=self.prompts, cwd=self.cwd)
        self.logger = get_logger("create")
        self._env = Environment(
            loader=FileSystemLoader(str(Path(__file__).with_name("templates"))),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def run(self, name: Optional[str] = None) -> Outcome:
        target: Optional[Path] = None
        try:
            config = self.config or load_config(self.cwd)

            project_name = self._choose_name(name)
            if isinstance(project_name, Cancelled):
                return project_name
            target = self.cwd / project_name

            template = self._choose_template(config)
            if isinstance(template, Cancelled):
                return template

            self.logger.info("Creating %s from %s", project_name, template.id)
            materialised = self._materialise(template, target, config)
            if isinstance(materialised, Cancelled):
                self._cleanup(target)
                return materialised

            self._add_publish_workflow(target, config)
            self._set_package_name(target, project_name)
            manager, installed = self._install(target, config)
        except (AppExit, ConfigError, OSError) as exc:
            self.logger.error("create failed: %s", exc)
            self._cleanup(target)
            return Failed(exc)

        self.logger.info("Project ready at %s", target)
        self.logger.info("Next steps: cd %s && %s run dev", project_name, manager or "npm")
        return Completed(
            CreateResult(
                name=project_name,
                target=target,
                template=template,
                package_manager=manager,
                installed=installed,
            )
        )

    # ------------------------------------------------------------------
    # Interactive steps

    def _choose_name(self, initial: Optional[str]) -> Union[str, Cancelled]:
        candidate = initial
        while True:
            if candidate is None:
                answer = self.prompts.ask_text("Project name", default=DEFAULT_PROJECT_NAME)
                if isinstance(answer, Cancelled):
                    return answer
                candidate = answer
            candidate = candidate.strip()
            verdict = validate_project_name(candidate, self.cwd)
            if verdict is True:
                return candidate
            self.logger.error("%s", verdict)
            candidate = None

    def _choose_template(self, config: ToolConfig) -> Union[TemplateSource, Cancelled]:
        templates = self.available_templates(config)
        return self.prompts.ask_select(
            "Select a template",
            [Choice(title=f"{template.description} ({template.id})", value=template) for template in templates],
        )

    def available_templates(self, config: ToolConfig) -> List[TemplateSource]:
        """Configured templates followed by one entry per built-in template directory."""
        templates = list(config.templates)
        templates_dir = config.templates_dir
        if templates_dir is None or not templates_dir.is_dir():
            return templates
        for directory in sorted(path for path in templates_dir.iterdir() if path.is_dir()):
            name, description = read_template_metadata(directory)
            label = f"{name} - {description}" if description else name
            templates.append(
                TemplateSource(id=str(directory), description=f"Built-in template: {label}", kind="builtin")
            )
        return templates

    # ------------------------------------------------------------------
    # Materialisation

    def _materialise(
        self, template: TemplateSource, target: Path, config: ToolConfig
    ) -> Optional[Cancelled]:
        if template.kind == "degit":
            self.runner.run(["npx", "--yes", "degit", "--force", template.id, str(target)], cwd=self.cwd)
            return None
        if template.kind == "builtin":
            self._copy_builtin(template, target, config)
            return None
        return self._extract_local(target)

    def _copy_builtin(self, template: TemplateSource, target: Path, config: ToolConfig) -> None:
        source = Path(template.id)
        if not source.is_absolute():
            source = config.root / source
        if not source.is_dir():
            raise AppExit(f"Template directory does not exist: {source}")
        dist = source / "dist"
        source = dist if dist.is_dir() else source
        self.logger.info("Copying template files from %s", source)
        shutil.copytree(source, target)

    def _extract_local(self, target: Path) -> Optional[Cancelled]:
        answer = self.prompts.ask_text(
            "Local project directory or entry file",
            default=str(self.cwd),
            validate=lambda value: True if Path(value).expanduser().exists() else f"{value} does not exist",
        )
        if isinstance(answer, Cancelled):
            return answer
        selected = Path(answer).expanduser().resolve()
        if selected.is_file():
            entry = selected
        else:
            candidates = list_entry_candidates(selected)
            if not candidates:
                raise AppExit(f"No JavaScript/TypeScript entry file found in {selected}")
            if len(candidates) == 1:
                entry = candidates[0]
            else:
                picked = self.prompts.ask_select(
                    "Select the entry file",
                    [Choice(title=path.name, value=path) for path in candidates],
                )
                if isinstance(picked, Cancelled):
                    return picked
                entry = picked
        project = locate_project(entry.parent)
        self.logger.info("Extracting %s from %s", entry.name, project.root_dir)
        self.dist_builder.build(project, entry, target, config=load_config(project.root_dir))
        return None

    # ------------------------------------------------------------------
    # Post-processing

    def _add_publish_workflow(self, target: Path, config: ToolConfig) -> None:
        manager = config.package_manager or "pnpm"
        try:
            rendered = self._env.get_template("publish.yml.j2").render(
                package_manager=manager,
                node_version="20",
                tag_prefix=config.release.tag_prefix,
                install_command=_INSTALL_COMMANDS[manager],
                publish_command=_PUBLISH_COMMANDS[manager],
            )
            destination = target / WORKFLOW_PATH
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_text(rendered, encoding="utf-8")
        except (TemplateError, OSError) as exc:
            raise AppExit(f"Failed to add GitHub Actions workflow: {exc}") from exc
        self.logger.info("Added %s", WORKFLOW_PATH.as_posix())

    def _set_package_name(self, target: Path, name: str) -> None:
        manifest_path = target / MANIFEST_NAME
        if not manifest_path.is_file():
            self.logger.warning("No %s in %s; name not updated", MANIFEST_NAME, target)
            return
        try:
            manifest = load_package_json(manifest_path)
        except AppExit as exc:
            self.logger.warning("Could not update %s: %s", MANIFEST_NAME, exc)
            return
        manifest["name"] = name
        write_package_json(manifest_path, manifest)
        self.logger.info("%s name set to %s", MANIFEST_NAME, name)

    def _install(self, target: Path, config: ToolConfig) -> tuple[Optional[str], bool]:
        if not config.install:
            return config.package_manager, False
        manager = config.package_manager or detect_package_manager(self.runner, self.cwd)
        self.logger.info("Installing dependencies with %s", manager)
        exit_code = self.runner.run([manager, "install"], cwd=target, strict=False)
        return manager, exit_code == 0

    def _cleanup(self, target: Optional[Path]) -> None:
        if target is None or not target.exists():
            return
        self.logger.info("Removing %s", target)
        try:
            shutil.rmtree(target)
        except OSError as exc:
            self.logger.warning("Could not remove %s: %s", target, exc)


__all__ = ["CreateResult", "ProjectCreator", "validate_project_name"]
