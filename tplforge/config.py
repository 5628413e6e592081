"""Configuration loading for tplforge (.tplforge.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".tplforge.yml"

DEFAULT_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx")
NAMING_MODES = ("flatten", "hash")
TEMPLATE_KINDS = ("degit", "builtin", "local")
PACKAGE_MANAGERS = ("pnpm", "yarn", "npm")


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class ExtractConfig:
    """Dependency-closure extraction settings."""

    extensions: List[str] = field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
    naming: str = "flatten"
    tree_shake: bool = False
    builtins: List[str] = field(default_factory=list)


@dataclass
class DistConfig:
    """Defaults for the dist command."""

    out_dir: str = "dist"


@dataclass
class ReleaseConfig:
    """Git settings used by the release command."""

    remote: str = "origin"
    tag_prefix: str = "v"
    build_metadata: bool = True


@dataclass(frozen=True)
class TemplateSource:
    """A template offered by the create command."""

    id: str
    description: str
    kind: str


DEFAULT_TEMPLATES = (
    TemplateSource(id="local", description="Extract from a local project", kind="local"),
    TemplateSource(
        id="see7788/electron-template",
        description="Electron application scaffold",
        kind="degit",
    ),
    TemplateSource(
        id="see7788/ts-template",
        description="Basic TypeScript scaffold",
        kind="degit",
    ),
)


@dataclass
class ToolConfig:
    """Represents the settings defined in .tplforge.yml."""

    root: Path
    extract: ExtractConfig = field(default_factory=ExtractConfig)
    dist: DistConfig = field(default_factory=DistConfig)
    release: ReleaseConfig = field(default_factory=ReleaseConfig)
    templates: List[TemplateSource] = field(default_factory=lambda: list(DEFAULT_TEMPLATES))
    templates_dir: Optional[Path] = None
    package_manager: Optional[str] = None
    install: bool = True


def load_config(config_path: Path) -> ToolConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return _apply_env(ToolConfig(root=root))

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    extract = ExtractConfig()
    extract_data = _as_dict(data.get("extract"))
    if extract_data:
        extensions = [_normalise_extension(ext) for ext in _as_str_list(extract_data.get("extensions"))]
        if extensions:
            extract.extensions = extensions
        naming = _as_str(extract_data.get("naming"))
        if naming is not None:
            if naming not in NAMING_MODES:
                raise ConfigError(
                    f"extract.naming must be one of {', '.join(NAMING_MODES)} (got {naming!r})"
                )
            extract.naming = naming
        tree_shake = _as_bool(extract_data.get("tree_shake"))
        if tree_shake is not None:
            extract.tree_shake = tree_shake
        extract.builtins = _as_str_list(extract_data.get("builtins"))

    dist = DistConfig()
    dist_data = _as_dict(data.get("dist"))
    out_dir = _as_str(dist_data.get("out_dir")) if dist_data else None
    if out_dir:
        dist.out_dir = out_dir

    release = ReleaseConfig()
    release_data = _as_dict(data.get("release"))
    if release_data:
        release.remote = _as_str(release_data.get("remote")) or release.remote
        tag_prefix = _as_str(release_data.get("tag_prefix"))
        if tag_prefix is not None:
            release.tag_prefix = tag_prefix
        build_metadata = _as_bool(release_data.get("build_metadata"))
        if build_metadata is not None:
            release.build_metadata = build_metadata

    templates = list(DEFAULT_TEMPLATES)
    if "templates" in data:
        templates = _parse_templates(data.get("templates"))

    templates_dir_str = _as_str(data.get("templates_dir"))
    templates_dir = root / templates_dir_str if templates_dir_str else None

    package_manager = _as_str(data.get("package_manager"))
    if package_manager is not None and package_manager not in PACKAGE_MANAGERS:
        raise ConfigError(
            f"package_manager must be one of {', '.join(PACKAGE_MANAGERS)} (got {package_manager!r})"
        )

    install = _as_bool(data.get("install"))

    config = ToolConfig(
        root=root,
        extract=extract,
        dist=dist,
        release=release,
        templates=templates,
        templates_dir=templates_dir,
        package_manager=package_manager,
        install=True if install is None else install,
    )
    return _apply_env(config)


def _apply_env(config: ToolConfig) -> ToolConfig:
    manager = os.environ.get("TPLFORGE_PACKAGE_MANAGER")
    if manager:
        manager = manager.strip().lower()
        if manager not in PACKAGE_MANAGERS:
            raise ConfigError(f"TPLFORGE_PACKAGE_MANAGER must be one of {', '.join(PACKAGE_MANAGERS)}")
        config.package_manager = manager
    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _parse_templates(value: Any) -> List[TemplateSource]:
    if not isinstance(value, list):
        raise ConfigError("templates must be a list of mappings")
    templates: List[TemplateSource] = []
    for item in value:
        entry = _as_dict(item)
        template_id = _as_str(entry.get("id"))
        if not template_id:
            raise ConfigError("Each template needs an id")
        kind = _as_str(entry.get("kind")) or "degit"
        if kind not in TEMPLATE_KINDS:
            raise ConfigError(f"Template {template_id!r} has unknown kind {kind!r}")
        description = _as_str(entry.get("description")) or template_id
        templates.append(TemplateSource(id=template_id, description=description, kind=kind))
    return templates


def _normalise_extension(value: str) -> str:
    value = value.strip()
    return value if value.startswith(".") else f".{value}"


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    return str(value) if isinstance(value, (str, int, float)) else None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []
