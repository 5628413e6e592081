"""Helper utilities for constructing temporary JavaScript projects in tests."""

from __future__ import annotations

import json
import textwrap
from pathlib import Path
from typing import Any, Mapping


class ProjectBuilder:
    """Utility for writing files into a throwaway project directory."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "project"
        self.root.mkdir()

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries into the project."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")

    def package_json(self, data: Mapping[str, Any]) -> Path:
        """Write package.json at the project root and return its path."""
        path = self.root / "package.json"
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return path

    def path(self, relative: str = "") -> Path:
        """Return the project root, or a path inside it."""
        return self.root / relative if relative else self.root


__all__ = ["ProjectBuilder"]
