"""Tree-sitter powered scanner for import/export module specifiers."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser, Tree

from ..models import ModuleSpecifier

_GRAMMARS: Dict[str, Callable[[], object]] = {
    "typescript": tree_sitter_typescript.language_typescript,
    "tsx": tree_sitter_typescript.language_tsx,
    "javascript": tree_sitter_javascript.language,
}

_LANGUAGE_BY_SUFFIX = {
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
}

# Statements whose `source` field holds the module specifier.
_SOURCE_FIELD_NODES = {
    "import_statement": "import",
    "export_statement": "export",
    "import_require_clause": "require",
}

Edit = Tuple[int, int, bytes]


def language_for_path(path: Path | str) -> Optional[str]:
    """Return the grammar key for a source file, or None for non-script files."""
    return _LANGUAGE_BY_SUFFIX.get(Path(path).suffix.lower())


def apply_edits(source: bytes, edits: Iterable[Edit]) -> bytes:
    """Replace ``(start, end, replacement)`` byte spans; spans must not overlap."""
    result = source
    for start, end, replacement in sorted(edits, key=lambda edit: edit[0], reverse=True):
        result = result[:start] + replacement + result[end:]
    return result


class SourceParser:
    """Parses JavaScript/TypeScript sources and lists their module specifiers."""

    def __init__(self) -> None:
        self._parsers: Dict[str, Parser] = {}

    def supports(self, path: Path | str) -> bool:
        return language_for_path(path) is not None

    def parse(self, path: Path | str, source: bytes) -> Tree:
        language_key = language_for_path(path)
        if language_key is None:
            raise ValueError(f"No grammar registered for {path}")
        return self._get_parser(language_key).parse(source)

    def scan(self, path: Path | str, source: bytes) -> List[ModuleSpecifier]:
        """Return every static module specifier in ``source``, in source order."""
        tree = self.parse(path, source)
        found: List[ModuleSpecifier] = []
        stack: List[Node] = [tree.root_node]
        while stack:
            node = stack.pop()
            kind = _SOURCE_FIELD_NODES.get(node.type)
            if kind is not None:
                string_node = self._source_string(node)
                if string_node is not None:
                    found.append(self._specifier(string_node, source, kind))
            elif node.type == "call_expression":
                specifier = self._call_specifier(node, source)
                if specifier is not None:
                    found.append(specifier)
            stack.extend(reversed(node.children))
        found.sort(key=lambda specifier: specifier.start)
        return found

    def _get_parser(self, language_key: str) -> Parser:
        parser = self._parsers.get(language_key)
        if parser is not None:
            return parser
        parser = Parser(Language(_GRAMMARS[language_key]()))
        self._parsers[language_key] = parser
        return parser

    @staticmethod
    def _source_string(node: Node) -> Optional[Node]:
        source = node.child_by_field_name("source")
        if source is not None:
            return source if source.type == "string" else None
        if node.type == "import_require_clause":
            for child in node.named_children:
                if child.type == "string":
                    return child
        return None

    def _call_specifier(self, node: Node, source: bytes) -> Optional[ModuleSpecifier]:
        function = node.child_by_field_name("function")
        if function is None:
            return None
        if function.type == "import":
            kind = "dynamic"
        elif function.type == "identifier" and node_text(function, source) == "require":
            kind = "require"
        else:
            return None
        arguments = node.child_by_field_name("arguments")
        if arguments is None:
            return None
        named = [child for child in arguments.named_children if child.type != "comment"]
        if len(named) != 1 or named[0].type != "string":
            return None
        return self._specifier(named[0], source, kind)

    @staticmethod
    def _specifier(string_node: Node, source: bytes, kind: str) -> ModuleSpecifier:
        start = string_node.start_byte + 1
        end = max(start, string_node.end_byte - 1)
        value = source[start:end].decode("utf-8", errors="replace")
        return ModuleSpecifier(value=value, start=start, end=end, kind=kind)


def node_text(node: Node, source: bytes) -> str:
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")


def walk(node: Node) -> Iterable[Node]:
    """Yield ``node`` and all of its descendants depth-first."""
    stack: List[Node] = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


__all__ = [
    "SourceParser",
    "apply_edits",
    "language_for_path",
    "node_text",
    "walk",
]
