"""Output file names for extracted sources."""

from __future__ import annotations

import hashlib
import os
from pathlib import Path
from typing import Dict, Optional

from .parser import language_for_path
from .resolver import canonical_path

ENTRY_STEM = "index"


class OutputNamer:
    """Assigns each source file a unique name inside the flat output directory.

    The entry always becomes ``index<ext>``. Other files are named by
    flattening their project-relative path (``flatten``) or by stem plus a
    short path hash (``hash``). Uniqueness is checked on the reference an
    importer uses: the extension-less stem for scripts (``./src_a`` covers both
    ``src_a.ts`` and ``src_a.js``) and the full name for assets. Keys are
    case-insensitive so the output is safe on case-insensitive filesystems.
    """

    def __init__(self, project_root: Path, mode: str = "flatten") -> None:
        if mode not in {"flatten", "hash"}:
            raise ValueError(f"Unknown naming mode: {mode}")
        self.project_root = Path(canonical_path(project_root))
        self.mode = mode
        self._by_path: Dict[str, str] = {}
        self._by_name: Dict[str, str] = {}

    def assign_entry(self, path: Path) -> Optional[str]:
        return self._claim(path, f"{ENTRY_STEM}{path.suffix}")

    def assign(self, path: Path) -> Optional[str]:
        """Return the name for ``path``, or None when it collides with a claimed name."""
        return self._claim(path, self.candidate(path))

    def candidate(self, path: Path) -> str:
        relative = self._relative(path)
        if relative is None:
            return self._hashed(path, canonical_path(path))
        if self.mode == "hash":
            return self._hashed(path, relative)
        return relative.replace("/", "_").replace("\\", "_")

    def name_for(self, path: Path | str) -> Optional[str]:
        return self._by_path.get(canonical_path(path))

    def path_for(self, name: str) -> Optional[str]:
        """Canonical path that owns the reference ``name`` would be imported by."""
        return self._by_name.get(reference_key(name))

    def _claim(self, path: Path, name: str) -> Optional[str]:
        key = canonical_path(path)
        existing = self._by_path.get(key)
        if existing is not None:
            return existing
        reference = reference_key(name)
        if reference in self._by_name:
            return None
        self._by_path[key] = name
        self._by_name[reference] = key
        return name

    def _relative(self, path: Path) -> Optional[str]:
        try:
            relative = os.path.relpath(canonical_path(path), self.project_root)
        except ValueError:
            return None
        relative = Path(relative).as_posix()
        if relative == ".." or relative.startswith("../"):
            return None
        return relative

    @staticmethod
    def _hashed(path: Path, identity: str) -> str:
        digest = hashlib.sha1(identity.encode("utf-8")).hexdigest()[:8]
        return f"{path.stem}.{digest}{path.suffix}"


def reference_key(name: str) -> str:
    """Case-folded form of the specifier that will point at ``name``."""
    if language_for_path(name) is not None:
        return Path(name).stem.casefold()
    return name.casefold()


__all__ = ["ENTRY_STEM", "OutputNamer", "reference_key"]
