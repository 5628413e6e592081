"""Module specifier classification and on-disk resolution."""

from __future__ import annotations

import os
from pathlib import Path
from typing import AbstractSet, Iterator, Optional, Sequence

from ..config import DEFAULT_EXTENSIONS

RELATIVE = "relative"
EXTERNAL = "external"
BUILTIN = "builtin"

NODE_BUILTINS: frozenset[str] = frozenset(
    {
        "assert",
        "async_hooks",
        "buffer",
        "child_process",
        "cluster",
        "console",
        "constants",
        "crypto",
        "dgram",
        "diagnostics_channel",
        "dns",
        "domain",
        "events",
        "fs",
        "http",
        "http2",
        "https",
        "inspector",
        "module",
        "net",
        "os",
        "path",
        "perf_hooks",
        "process",
        "punycode",
        "querystring",
        "readline",
        "repl",
        "stream",
        "string_decoder",
        "sys",
        "timers",
        "tls",
        "trace_events",
        "tty",
        "url",
        "util",
        "v8",
        "vm",
        "wasi",
        "worker_threads",
        "zlib",
    }
)

# TypeScript ESM sources are imported with the extension of their compiled output.
_COMPILED_TO_SOURCE = {
    ".js": (".ts", ".tsx"),
    ".jsx": (".tsx",),
    ".mjs": (".mts",),
    ".cjs": (".cts",),
}


def canonical_path(path: Path | str) -> str:
    """Absolute, normalised, forward-slash form used as the visited-set key."""
    return Path(os.path.normpath(os.path.abspath(path))).as_posix()


def is_local_specifier(specifier: str) -> bool:
    return specifier.startswith(".") or specifier.startswith("/") or os.path.isabs(specifier)


def package_name(specifier: str) -> str:
    """``@scope/name/sub`` -> ``@scope/name``; ``name/sub`` -> ``name``."""
    segments = specifier.split("/")
    if specifier.startswith("@") and len(segments) >= 2:
        return "/".join(segments[:2])
    return segments[0]


class ModuleResolver:
    """Classifies specifiers and resolves local ones to files."""

    def __init__(
        self,
        extensions: Sequence[str] = DEFAULT_EXTENSIONS,
        builtins: AbstractSet[str] = NODE_BUILTINS,
    ) -> None:
        self.extensions = tuple(extensions)
        self.builtins = frozenset(builtins)

    def classify(self, specifier: str) -> str:
        if is_local_specifier(specifier):
            return RELATIVE
        if specifier.startswith("node:") or package_name(specifier) in self.builtins:
            return BUILTIN
        return EXTERNAL

    def resolve(self, specifier: str, importer: Path) -> Optional[Path]:
        """Return the file a local specifier points at, or None.

        Paths inside ``node_modules`` are never returned.
        """
        if os.path.isabs(specifier):
            base = Path(os.path.normpath(specifier))
        else:
            base = Path(os.path.normpath(importer.parent / specifier))
        tail = specifier.rstrip("/").rsplit("/", 1)[-1]
        directory_only = specifier.endswith("/") or tail in {".", ".."}
        for candidate in self._candidates(base, directory_only):
            if candidate.is_file():
                if "node_modules" in candidate.parts:
                    return None
                return candidate
        return None

    def _candidates(self, base: Path, directory_only: bool) -> Iterator[Path]:
        if not directory_only:
            yield base
            for ext in self.extensions:
                yield base.with_name(base.name + ext)
            for source_ext in _COMPILED_TO_SOURCE.get(base.suffix, ()):
                yield base.with_suffix(source_ext)
        for ext in self.extensions:
            yield base / f"index{ext}"


__all__ = [
    "BUILTIN",
    "EXTERNAL",
    "ModuleResolver",
    "NODE_BUILTINS",
    "RELATIVE",
    "canonical_path",
    "is_local_specifier",
    "package_name",
]
