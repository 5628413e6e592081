"""Single-file removal of unreferenced, unexported top-level declarations."""

from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import List, Optional

from tree_sitter import Node

from .parser import Edit, SourceParser, apply_edits, node_text, walk

_NAMED_DECLARATIONS = {
    "function_declaration",
    "generator_function_declaration",
    "class_declaration",
    "abstract_class_declaration",
    "interface_declaration",
    "type_alias_declaration",
    "enum_declaration",
}

_VARIABLE_DECLARATIONS = {"lexical_declaration", "variable_declaration"}

# Initializers that cannot run code when the declaration is evaluated.
_INERT_INITIALIZERS = {
    "arrow_function",
    "function_expression",
    "function",
    "string",
    "number",
    "true",
    "false",
    "null",
    "undefined",
    "regex",
}

_REFERENCE_NODES = {
    "identifier",
    "type_identifier",
    "shorthand_property_identifier",
    "shorthand_property_identifier_pattern",
}

# Classic-runtime JSX compiles to React.createElement, an implicit reference.
_JSX_NODES = {"jsx_element", "jsx_self_closing_element", "jsx_fragment"}
JSX_FACTORY = "React"


class TreeShaker:
    """Best-effort dead-declaration pass.

    Only files that are ES modules are touched, the pass is not transitive,
    and anything whose name appears anywhere else in the file is kept.
    """

    def __init__(self, parser: SourceParser | None = None) -> None:
        self.parser = parser or SourceParser()

    def shake(self, path: Path, source: bytes) -> bytes:
        if not self.parser.supports(path):
            return source
        root = self.parser.parse(path, source).root_node
        if root.has_error or not self._is_module(root):
            return source

        occurrences: Counter[str] = Counter()
        has_jsx = False
        for node in walk(root):
            if node.type in _REFERENCE_NODES:
                occurrences[node_text(node, source)] += 1
            elif node.type in _JSX_NODES:
                has_jsx = True
        if has_jsx:
            occurrences[JSX_FACTORY] += 1
        edits: List[Edit] = []
        for statement in root.named_children:
            names = self._declared_names(statement, source)
            if not names:
                continue
            if all(occurrences[name] == 1 for name in names):
                edits.append((statement.start_byte, self._end_with_newline(statement, source), b""))
        if not edits:
            return source
        return apply_edits(source, edits)

    @staticmethod
    def _is_module(root: Node) -> bool:
        return any(child.type in {"import_statement", "export_statement"} for child in root.named_children)

    def _declared_names(self, statement: Node, source: bytes) -> Optional[List[str]]:
        if statement.type in _NAMED_DECLARATIONS:
            if any(child.type == "decorator" for child in statement.children):
                return None
            name = statement.child_by_field_name("name")
            return [node_text(name, source)] if name is not None else None
        if statement.type in _VARIABLE_DECLARATIONS:
            declarators = [child for child in statement.named_children if child.type == "variable_declarator"]
            if len(declarators) != 1:
                return None
            name = declarators[0].child_by_field_name("name")
            value = declarators[0].child_by_field_name("value")
            if name is None or name.type != "identifier":
                return None
            if value is not None and value.type not in _INERT_INITIALIZERS:
                return None
            return [node_text(name, source)]
        if statement.type == "import_statement":
            return self._imported_names(statement, source)
        return None

    @staticmethod
    def _imported_names(statement: Node, source: bytes) -> Optional[List[str]]:
        clause = next((child for child in statement.named_children if child.type == "import_clause"), None)
        if clause is None:
            return None
        names: List[str] = []
        for child in clause.named_children:
            if child.type == "identifier":
                names.append(node_text(child, source))
            elif child.type == "namespace_import":
                names.extend(
                    node_text(grandchild, source)
                    for grandchild in child.named_children
                    if grandchild.type == "identifier"
                )
            elif child.type == "named_imports":
                for specifier in child.named_children:
                    if specifier.type != "import_specifier":
                        continue
                    local = specifier.child_by_field_name("alias") or specifier.child_by_field_name("name")
                    if local is None or local.type != "identifier":
                        return None
                    names.append(node_text(local, source))
        return names or None

    @staticmethod
    def _end_with_newline(statement: Node, source: bytes) -> int:
        end = statement.end_byte
        if source[end : end + 2] == b"\r\n":
            return end + 2
        if source[end : end + 1] == b"\n":
            return end + 1
        return end


__all__ = ["TreeShaker"]
