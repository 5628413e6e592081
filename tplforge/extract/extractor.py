"""Dependency-closure extraction for a single entry file."""

from __future__ import annotations

import logging
import shutil
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import AbstractSet, Deque, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from ..config import DEFAULT_EXTENSIONS
from ..errors import AppExit, EntryNotFound, OutputPathError, UnsupportedEntry
from ..logging import get_logger
from ..models import ExtractionResult, SourceUnit
from .naming import OutputNamer
from .parser import Edit, SourceParser, apply_edits
from .resolver import BUILTIN, EXTERNAL, NODE_BUILTINS, ModuleResolver, canonical_path, package_name
from .treeshake import TreeShaker


@dataclass
class _Run:
    """Per-call traversal state; discarded when ``extract`` returns."""

    entry_key: str
    namer: OutputNamer
    units: Dict[str, SourceUnit] = field(default_factory=dict)
    links: Dict[Tuple[str, int], str] = field(default_factory=dict)
    skipped: Set[str] = field(default_factory=set)
    externals: Dict[str, str] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)


class DependencyExtractor:
    """Copies an entry file and every local file it reaches into a flat directory.

    Relative specifiers are rewritten to the flattened names, external package
    imports are left alone and reported with the version the host project
    declares for them (empty when undeclared).
    """

    def __init__(
        self,
        *,
        extensions: Sequence[str] = DEFAULT_EXTENSIONS,
        builtins: AbstractSet[str] = NODE_BUILTINS,
        naming: str = "flatten",
        tree_shake: bool = False,
        declared_versions: Optional[Mapping[str, str]] = None,
        logger: Optional[logging.Logger] = None,
        parser: Optional[SourceParser] = None,
    ) -> None:
        self.parser = parser or SourceParser()
        self.resolver = ModuleResolver(extensions=extensions, builtins=builtins)
        self.naming = naming
        self.tree_shaker = TreeShaker(self.parser) if tree_shake else None
        self.declared_versions = dict(declared_versions or {})
        self.logger = logger or get_logger("extract")

    def extract(self, entry_path: Path | str, out_dir: Path | str, project_root: Path | str) -> ExtractionResult:
        entry = Path(canonical_path(entry_path))
        if not entry.is_file():
            raise EntryNotFound(entry)
        if not self.parser.supports(entry):
            raise UnsupportedEntry(entry)
        destination = Path(out_dir)
        if destination.exists() and not destination.is_dir():
            raise OutputPathError(destination, "path exists and is not a directory")

        run = _Run(
            entry_key=canonical_path(entry),
            namer=OutputNamer(Path(project_root), mode=self.naming),
        )
        self.logger.debug("Extracting closure of %s into %s", entry, destination)
        self._traverse(run, entry)

        rendered: Dict[str, bytes] = {}
        for key, unit in run.units.items():
            if not unit.is_asset:
                rendered[key] = self._render(run, key, unit)

        self._emit(run, rendered, destination)
        entry_name = run.units[run.entry_key].output_name or ""
        self.logger.info(
            "Extracted %d file(s) from %s (%d external package(s))",
            len(run.units),
            entry.name,
            len(run.externals),
        )
        return ExtractionResult(
            external_dependencies=dict(run.externals),
            emitted_count=len(run.units),
            entry_output_name=entry_name,
            outputs={key: unit.output_name or "" for key, unit in run.units.items()},
            warnings=list(run.warnings),
        )

    # ------------------------------------------------------------------
    # Traversal

    def _traverse(self, run: _Run, entry: Path) -> None:
        queue: Deque[Path] = deque([entry])
        visited: Set[str] = set()
        while queue:
            path = queue.popleft()
            key = canonical_path(path)
            if key in visited:
                continue
            visited.add(key)

            if key == run.entry_key:
                name = run.namer.assign_entry(path)
            else:
                name = run.namer.assign(path)
            if name is None:
                candidate = run.namer.candidate(path)
                self._warn(
                    run,
                    "Output name %s for %s is already used by %s; skipping file",
                    candidate,
                    path,
                    run.namer.path_for(candidate),
                )
                run.skipped.add(key)
                continue

            unit = self._load(run, path, is_entry=key == run.entry_key)
            unit.output_name = name
            run.units[key] = unit

            for specifier in unit.specifiers:
                kind = self.resolver.classify(specifier.value)
                if kind == BUILTIN:
                    continue
                if kind == EXTERNAL:
                    self._record_external(run, specifier.value)
                    continue
                target = self.resolver.resolve(specifier.value, path)
                if target is None:
                    self._warn(run, "Unable to resolve %r imported from %s", specifier.value, path)
                    continue
                target_key = canonical_path(target)
                run.links[(key, specifier.start)] = target_key
                if target_key not in visited:
                    queue.append(target)

    def _load(self, run: _Run, path: Path, *, is_entry: bool) -> SourceUnit:
        if not self.parser.supports(path):
            return SourceUnit(path=path, content="", is_asset=True)
        try:
            raw = path.read_bytes()
            content = raw.decode("utf-8")
        except UnicodeDecodeError:
            if is_entry:
                raise AppExit(f"Entry file is not valid UTF-8: {path}")
            self._warn(run, "%s is not valid UTF-8; copying it unchanged", path)
            return SourceUnit(path=path, content="", is_asset=True)
        return SourceUnit(path=path, content=content, specifiers=self.parser.scan(path, raw))

    def _record_external(self, run: _Run, specifier: str) -> None:
        name = package_name(specifier)
        if not name or name in run.externals:
            return
        run.externals[name] = self.declared_versions.get(name, "")
        self.logger.debug("External package %s (from %r)", name, specifier)

    # ------------------------------------------------------------------
    # Rewriting and emission

    def _render(self, run: _Run, key: str, unit: SourceUnit) -> bytes:
        edits: List[Edit] = []
        for specifier in unit.specifiers:
            target_key = run.links.get((key, specifier.start))
            if target_key is None:
                continue
            target = run.units.get(target_key)
            if target is None:
                self._warn(
                    run,
                    "Leaving %r in %s unchanged; its target was skipped",
                    specifier.value,
                    unit.path,
                )
                continue
            edits.append((specifier.start, specifier.end, self._reference(target).encode("utf-8")))
        rendered = apply_edits(unit.content.encode("utf-8"), edits)
        if self.tree_shaker is not None:
            rendered = self.tree_shaker.shake(unit.path, rendered)
        return rendered

    @staticmethod
    def _reference(target: SourceUnit) -> str:
        name = target.output_name or ""
        if target.is_asset:
            return f"./{name}"
        return f"./{Path(name).stem}"

    def _emit(self, run: _Run, rendered: Mapping[str, bytes], destination: Path) -> None:
        try:
            destination.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OutputPathError(destination, str(exc)) from exc
        for key, unit in run.units.items():
            target = destination / (unit.output_name or "")
            target.parent.mkdir(parents=True, exist_ok=True)
            if unit.is_asset:
                shutil.copyfile(unit.path, target)
            else:
                target.write_bytes(rendered[key])
            self.logger.debug("Wrote %s", target)

    def _warn(self, run: _Run, message: str, *args: object) -> None:
        text = message % args
        run.warnings.append(text)
        self.logger.warning(text)


__all__ = ["DependencyExtractor"]
