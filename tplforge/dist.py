"""The dist command: extract an entry's closure and write a trimmed package.json."""

from __future__ import annotations

import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .config import ConfigError, ToolConfig, load_config
from .errors import AppExit
from .extract import NODE_BUILTINS, DependencyExtractor
from .logging import get_logger
from .models import Cancelled, Completed, ExtractionResult, Failed, Outcome, ProjectInfo
from .project import MANIFEST_NAME, locate_project, write_package_json
from .prompts import Choice, PromptService

DIR_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
ENTRY_SUFFIXES = (".js", ".jsx", ".ts", ".tsx", ".cjs", ".mjs")
_TYPESCRIPT_SUFFIXES = {".ts", ".tsx", ".mts", ".cts"}
_COPIED_FIELDS = ("description", "keywords", "author", "license", "repository")


@dataclass
class DistResult:
    """Where the dist output landed and which packages it depends on."""

    out_dir: Path
    manifest_path: Path
    extraction: ExtractionResult
    dependencies: Dict[str, str]
    dev_dependencies: Dict[str, str]


class DistBuilder:
    """Runs the interactive dist flow for the project containing ``cwd``."""

    def __init__(
        self,
        prompts: PromptService | None = None,
        config: ToolConfig | None = None,
        cwd: Path | None = None,
    ) -> None:
        self.prompts = prompts or PromptService()
        self.config = config
        self.cwd = (cwd or Path.cwd()).resolve()
        self.logger = get_logger("dist")

    def run(
        self,
        entry: Optional[str] = None,
        out_dir_name: Optional[str] = None,
        *,
        naming: Optional[str] = None,
        tree_shake: Optional[bool] = None,
    ) -> Outcome:
        created: Optional[Path] = None
        try:
            project = locate_project(self.cwd)
            config = self.config or load_config(project.root_dir)
            self.logger.info("Starting dist for %s", project.root_dir)

            dir_name = self._choose_out_dir(out_dir_name, config)
            if isinstance(dir_name, Cancelled):
                return dir_name
            out_dir = self.cwd / dir_name

            entry_path = self._choose_entry(entry)
            if isinstance(entry_path, Cancelled):
                return entry_path

            created = out_dir
            result = self.build(
                project,
                entry_path,
                out_dir,
                config=config,
                naming=naming,
                tree_shake=tree_shake,
            )
        except (AppExit, ConfigError, OSError) as exc:
            self.logger.error("dist failed: %s", exc)
            self._cleanup(created)
            return Failed(exc)
        return Completed(result)

    def build(
        self,
        project: ProjectInfo,
        entry: Path,
        out_dir: Path,
        *,
        config: ToolConfig,
        naming: Optional[str] = None,
        tree_shake: Optional[bool] = None,
    ) -> DistResult:
        """Extract ``entry`` into ``out_dir`` and write its package.json (no prompts)."""
        declared = {**project.dev_dependencies, **project.dependencies}
        extractor = DependencyExtractor(
            extensions=config.extract.extensions,
            builtins=NODE_BUILTINS | set(config.extract.builtins),
            naming=naming or config.extract.naming,
            tree_shake=config.extract.tree_shake if tree_shake is None else tree_shake,
            declared_versions=declared,
        )
        extraction = extractor.extract(entry, out_dir, project.root_dir)

        dependencies, dev_dependencies = self._split_dependencies(project, extraction)
        manifest = build_dist_manifest(
            project.manifest,
            extraction.entry_output_name,
            fallback_name=out_dir.name,
            dependencies=dependencies,
            dev_dependencies=dev_dependencies,
        )
        if MANIFEST_NAME in extraction.outputs.values():
            self.logger.warning("Extracted %s is replaced by the generated manifest", MANIFEST_NAME)
        manifest_path = out_dir / MANIFEST_NAME
        write_package_json(manifest_path, manifest)
        self.logger.info("Wrote %s", manifest_path)
        return DistResult(
            out_dir=out_dir,
            manifest_path=manifest_path,
            extraction=extraction,
            dependencies=dependencies,
            dev_dependencies=dev_dependencies,
        )

    def _choose_out_dir(self, given: Optional[str], config: ToolConfig) -> Union[str, Cancelled]:
        if given is not None:
            verdict = self._validate_dir_name(given.strip())
            if verdict is not True:
                raise AppExit(str(verdict))
            return given.strip()
        return self.prompts.ask_text(
            "Output directory name",
            default=config.dist.out_dir,
            validate=self._validate_dir_name,
        )

    def _validate_dir_name(self, value: str) -> Union[bool, str]:
        if not value:
            return "Directory name cannot be empty"
        if not DIR_NAME_PATTERN.match(value):
            return "Directory name may only contain letters, digits, - and _"
        if (self.cwd / value).exists():
            return f"{self.cwd / value} already exists, choose another name"
        return True

    def _choose_entry(self, given: Optional[str]) -> Union[Path, Cancelled]:
        if given is not None:
            return (self.cwd / given).resolve()
        candidates = list_entry_candidates(self.cwd)
        if not candidates:
            raise AppExit(f"No JavaScript/TypeScript entry file found in {self.cwd}")
        picked = self.prompts.ask_select(
            "Select the entry file",
            [Choice(title=path.name, value=path) for path in candidates],
        )
        if not isinstance(picked, Cancelled):
            self.logger.info("Entry file: %s", picked.name)
        return picked

    def _split_dependencies(
        self, project: ProjectInfo, extraction: ExtractionResult
    ) -> Tuple[Dict[str, str], Dict[str, str]]:
        runtime = project.dependencies
        dev = project.dev_dependencies
        dependencies: Dict[str, str] = {}
        dev_dependencies: Dict[str, str] = {}
        for name in sorted(extraction.external_dependencies):
            if name in runtime:
                dependencies[name] = runtime[name]
            elif name in dev:
                dev_dependencies[name] = dev[name]
            else:
                self.logger.warning("%s is imported but not declared in %s", name, project.manifest_path)
                dependencies[name] = ""
        return dependencies, dev_dependencies

    def _cleanup(self, path: Optional[Path]) -> None:
        if path is None or not path.exists():
            return
        self.logger.info("Removing partial output %s", path)
        try:
            shutil.rmtree(path)
        except OSError as exc:
            self.logger.warning("Could not remove %s: %s", path, exc)


def list_entry_candidates(directory: Path) -> List[Path]:
    """Script files directly inside ``directory``, sorted by name."""
    return sorted(
        (path for path in directory.iterdir() if path.is_file() and path.suffix.lower() in ENTRY_SUFFIXES),
        key=lambda path: path.name,
    )


def build_dist_manifest(
    source: Mapping[str, Any],
    entry_output_name: str,
    *,
    fallback_name: str,
    dependencies: Mapping[str, str],
    dev_dependencies: Mapping[str, str],
) -> Dict[str, Any]:
    """Return the package.json for a dist directory whose entry is ``entry_output_name``."""
    main = f"./{entry_output_name}"
    manifest: Dict[str, Any] = {
        "name": source.get("name") or fallback_name,
        "version": source.get("version") or "1.0.0",
    }
    for key in _COPIED_FIELDS:
        if key in source:
            manifest[key] = source[key]
    manifest["type"] = "module"
    manifest["main"] = main
    manifest["module"] = main

    exports: Dict[str, str] = {}
    if Path(entry_output_name).suffix in _TYPESCRIPT_SUFFIXES:
        manifest["types"] = main
        exports["types"] = main
    exports["import"] = main
    exports["default"] = main
    manifest["exports"] = {".": exports}
    manifest["dependencies"] = dict(dependencies)
    manifest["devDependencies"] = dict(dev_dependencies)
    return manifest


__all__ = ["DistBuilder", "DistResult", "build_dist_manifest", "list_entry_candidates"]
