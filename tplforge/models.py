"""Core data models shared across tplforge components."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union


@dataclass(frozen=True)
class ModuleSpecifier:
    """An import/export target as written in source.

    ``start`` and ``end`` are UTF-8 byte offsets of the specifier text,
    excluding the surrounding quotes.
    """

    value: str
    start: int
    end: int
    kind: str = "import"


@dataclass
class SourceUnit:
    """One file discovered while walking the import graph."""

    path: Path
    content: str
    specifiers: List[ModuleSpecifier] = field(default_factory=list)
    output_name: Optional[str] = None
    is_asset: bool = False


@dataclass
class ExtractionResult:
    """Summary returned by a dependency-closure extraction."""

    external_dependencies: Dict[str, str]
    emitted_count: int
    entry_output_name: str
    outputs: Dict[str, str] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)


@dataclass
class ProjectInfo:
    """Nearest package.json and the directory that holds it."""

    manifest_path: Path
    manifest: Dict[str, Any]
    root_dir: Path

    @property
    def dependencies(self) -> Dict[str, str]:
        return _string_map(self.manifest.get("dependencies"))

    @property
    def dev_dependencies(self) -> Dict[str, str]:
        return _string_map(self.manifest.get("devDependencies"))


def _string_map(value: Any) -> Dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(key): str(version) for key, version in value.items()}


@dataclass(frozen=True)
class Completed:
    """Command finished; ``value`` holds its result."""

    value: Any = None


@dataclass(frozen=True)
class Cancelled:
    """User aborted an interactive step. Not an error."""

    reason: str = "cancelled by user"


@dataclass(frozen=True)
class Failed:
    """Command aborted on a fatal error."""

    error: Exception


Outcome = Union[Completed, Cancelled, Failed]
