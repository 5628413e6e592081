"""Dependency-closure extraction for JavaScript/TypeScript entry files."""

from __future__ import annotations

from .extractor import DependencyExtractor
from .naming import OutputNamer
from .parser import SourceParser, language_for_path
from .resolver import NODE_BUILTINS, ModuleResolver, package_name
from .treeshake import TreeShaker

__all__ = [
    "DependencyExtractor",
    "ModuleResolver",
    "NODE_BUILTINS",
    "OutputNamer",
    "SourceParser",
    "TreeShaker",
    "language_for_path",
    "package_name",
]
