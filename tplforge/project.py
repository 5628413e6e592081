"""Locate and rewrite the nearest package.json."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Mapping

from .errors import AppExit, ProjectNotFound
from .models import ProjectInfo

MANIFEST_NAME = "package.json"


def locate_project(start_dir: Path | str) -> ProjectInfo:
    """Return the closest ancestor of ``start_dir`` (inclusive) holding a package.json."""
    start = Path(start_dir).expanduser().resolve()
    for directory in (start, *start.parents):
        manifest_path = directory / MANIFEST_NAME
        if manifest_path.is_file():
            return ProjectInfo(
                manifest_path=manifest_path,
                manifest=load_package_json(manifest_path),
                root_dir=directory,
            )
    raise ProjectNotFound(start)


def load_package_json(path: Path) -> Dict[str, Any]:
    """Parse a package.json file, raising AppExit when it is not a JSON object."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise AppExit(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise AppExit(f"{path} must contain a JSON object")
    return data


def write_package_json(path: Path, data: Mapping[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


def read_template_metadata(template_dir: Path) -> tuple[str, str]:
    """Return ``(name, description)`` from a template's package.json, defaulting to the directory name."""
    name = template_dir.name
    description = ""
    manifest_path = template_dir / MANIFEST_NAME
    if manifest_path.is_file():
        try:
            data = json.loads(manifest_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return name, description
        if isinstance(data, dict):
            name = str(data.get("name") or name)
            description = str(data.get("description") or "")
    return name, description


__all__ = [
    "MANIFEST_NAME",
    "load_package_json",
    "locate_project",
    "read_template_metadata",
    "write_package_json",
]
