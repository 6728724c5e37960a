"""JavaScript / TypeScript / TSX definition extraction.

One extractor serves the three grammars; TypeScript-only node types simply
never appear in JavaScript trees.

Handles:
- function declarations (incl. generators)
- ``const|let|var name = () => ...`` and function expressions bound to a name
- other top-level declarators as variables, with a value kind
- classes (incl. abstract), with ``extends`` and ``implements`` names as bases
- methods and method signatures inside class and interface bodies
- interfaces (with ``extends``), type aliases, enums
- decorators on classes and methods
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from codegraph.index._internal.extraction.models import Definition, DefinitionKind
from codegraph.index._internal.extraction.treewalk import (
    end_line,
    field_text,
    iter_descendants,
    iter_nodes,
    node_text,
    preceding_siblings,
    span,
    start_line,
)

if TYPE_CHECKING:
    from tree_sitter import Node

FUNCTION_VALUE_TYPES = frozenset(
    {"arrow_function", "function_expression", "function", "generator_function"}
)
FUNCTION_DECLARATION_TYPES = frozenset({"function_declaration", "generator_function_declaration"})
CLASS_DECLARATION_TYPES = frozenset({"class_declaration", "abstract_class_declaration"})
METHOD_TYPES = frozenset({"method_definition", "method_signature", "abstract_method_signature"})
DECLARATION_LIST_TYPES = frozenset({"lexical_declaration", "variable_declaration"})

_VALUE_KINDS = {
    "string": "string",
    "template_string": "string",
    "number": "number",
    "true": "boolean",
    "false": "boolean",
    "array": "array",
    "object": "object",
    "null": "null",
    "undefined": "undefined",
}


def infer_value_kind(node: Node | None) -> str:
    if node is None:
        return "unknown"
    return _VALUE_KINDS.get(node.type, "unknown")


def _type_name(node: Node) -> str:
    """``Foo``, ``ns.Foo`` or ``Foo<T>`` -> name without type arguments."""
    if node.type == "generic_type":
        name = node.child_by_field_name("name")
        if name is not None:
            return node_text(name)
    return node_text(node).split("<", 1)[0].strip()


_HERITAGE_NAME_TYPES = frozenset(
    {
        "identifier",
        "member_expression",
        "type_identifier",
        "nested_type_identifier",
        "generic_type",
    }
)


def heritage_names(class_node: Node) -> list[str]:
    """Names listed after ``extends`` and ``implements``."""
    names: list[str] = []
    for child in class_node.children:
        if child.type != "class_heritage":
            continue
        for part in child.named_children:
            if part.type in ("extends_clause", "implements_clause"):
                names.extend(
                    _type_name(n) for n in part.named_children if n.type in _HERITAGE_NAME_TYPES
                )
            elif part.type in _HERITAGE_NAME_TYPES:
                # JavaScript grammar: class_heritage holds the expression directly
                names.append(_type_name(part))
            elif part.type == "call_expression":
                # extends mixin(Base)
                names.append(field_text(part, "function"))
    return [n for n in names if n]


def interface_extends(interface_node: Node) -> list[str]:
    names: list[str] = []
    for child in interface_node.children:
        if child.type == "extends_type_clause":
            names.extend(
                _type_name(n) for n in child.named_children if n.type in _HERITAGE_NAME_TYPES
            )
    return [n for n in names if n]


def decorator_name(decorator: Node) -> str:
    for child in decorator.named_children:
        if child.type in ("identifier", "member_expression"):
            return node_text(child)
        if child.type == "call_expression":
            return field_text(child, "function")
    return ""


def _is_top_level(declaration: Node) -> bool:
    parent = declaration.parent
    if parent is not None and parent.type == "export_statement":
        parent = parent.parent
    return parent is not None and parent.type == "program"


def _is_async(node: Node | None) -> bool:
    return node is not None and any(child.type == "async" for child in node.children)


class JavaScriptDefinitionExtractor:
    """Two-pass extractor for the JavaScript family.

    Pass 1 marks function nodes nested inside class bodies so that pass 2
    reports them only through their class (as methods) or not at all.
    """

    language_family = "javascript"

    def extract(self, root: Node) -> list[Definition]:
        in_class = self._mark_class_functions(root)
        definitions: list[Definition] = []

        for node in iter_nodes(root):
            kind = node.type
            if kind in FUNCTION_DECLARATION_TYPES:
                if span(node) not in in_class:
                    self._add_named(node, DefinitionKind.FUNCTION, definitions)
            elif kind == "variable_declarator":
                if span(node) not in in_class:
                    self._add_declarator(node, definitions)
            elif kind in CLASS_DECLARATION_TYPES:
                self._add_class(node, definitions)
            elif kind == "interface_declaration":
                self._add_interface(node, definitions)
            elif kind == "type_alias_declaration":
                name = field_text(node, "name")
                if name:
                    definitions.append(
                        Definition(
                            name=name,
                            kind=DefinitionKind.CLASS,
                            start_line=start_line(node),
                            end_line=end_line(node),
                            extra={"typeAlias": True},
                        )
                    )
            elif kind == "enum_declaration":
                self._add_named(node, DefinitionKind.ENUM, definitions)

        return definitions

    @staticmethod
    def _mark_class_functions(root: Node) -> set[tuple[int, int]]:
        marked: set[tuple[int, int]] = set()
        for node in iter_nodes(root):
            if node.type not in CLASS_DECLARATION_TYPES and node.type != "class":
                continue
            body = node.child_by_field_name("body")
            if body is None:
                continue
            for inner in iter_descendants(body):
                if inner.type in FUNCTION_DECLARATION_TYPES or inner.type == "variable_declarator":
                    marked.add(span(inner))
        return marked

    @staticmethod
    def _add_named(node: Node, kind: DefinitionKind, out: list[Definition]) -> None:
        name = field_text(node, "name")
        if not name:
            return
        out.append(
            Definition(
                name=name,
                kind=kind,
                start_line=start_line(node),
                end_line=end_line(node),
                is_async=_is_async(node),
            )
        )

    @staticmethod
    def _add_declarator(node: Node, out: list[Definition]) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None or name_node.type != "identifier":
            return  # destructuring patterns
        name = node_text(name_node)
        if not name:
            return
        value = node.child_by_field_name("value")
        if value is not None and value.type in FUNCTION_VALUE_TYPES:
            out.append(
                Definition(
                    name=name,
                    kind=DefinitionKind.FUNCTION,
                    start_line=start_line(node),
                    end_line=end_line(node),
                    is_async=_is_async(value),
                )
            )
            return
        declaration = node.parent
        if declaration is None or declaration.type not in DECLARATION_LIST_TYPES:
            return
        if not _is_top_level(declaration):
            return
        out.append(
            Definition(
                name=name,
                kind=DefinitionKind.VARIABLE,
                start_line=start_line(node),
                end_line=end_line(node),
                variable_type=infer_value_kind(value),
            )
        )

    def _add_class(self, node: Node, out: list[Definition]) -> None:
        name = field_text(node, "name")
        if not name:
            return
        decorators = self._collect_decorators(self._class_decorators(node), name, out)
        out.append(
            Definition(
                name=name,
                kind=DefinitionKind.CLASS,
                start_line=start_line(node),
                end_line=end_line(node),
                decorators=decorators,
                base_types=heritage_names(node),
                extra={"abstract": True} if node.type == "abstract_class_declaration" else {},
            )
        )
        self._add_methods(node.child_by_field_name("body"), name, out)

    def _add_interface(self, node: Node, out: list[Definition]) -> None:
        name = field_text(node, "name")
        if not name:
            return
        out.append(
            Definition(
                name=name,
                kind=DefinitionKind.INTERFACE,
                start_line=start_line(node),
                end_line=end_line(node),
                base_types=interface_extends(node),
            )
        )
        self._add_methods(node.child_by_field_name("body"), name, out)

    def _add_methods(self, body: Node | None, owner: str, out: list[Definition]) -> None:
        if body is None:
            return
        for child in body.named_children:
            if child.type not in METHOD_TYPES:
                continue
            name = field_text(child, "name")
            if not name:
                continue
            # Decorators are class_body siblings preceding the method
            decorators = self._collect_decorators(
                list(reversed(preceding_siblings(child, "decorator"))), name, out
            )
            decorators += self._collect_decorators(
                [c for c in child.children if c.type == "decorator"], name, out
            )
            out.append(
                Definition(
                    name=name,
                    kind=DefinitionKind.METHOD,
                    start_line=start_line(child),
                    end_line=end_line(child),
                    parent_class=owner,
                    decorators=decorators,
                    is_async=_is_async(child),
                )
            )

    @staticmethod
    def _class_decorators(node: Node) -> list[Node]:
        found = [c for c in node.children if c.type == "decorator"]
        parent = node.parent
        if parent is not None and parent.type == "export_statement":
            found = [c for c in parent.children if c.type == "decorator"] + found
        return found

    @staticmethod
    def _collect_decorators(nodes: list[Node], target: str, out: list[Definition]) -> list[str]:
        names: list[str] = []
        for decorator in nodes:
            name = decorator_name(decorator)
            if not name:
                continue
            names.append(name)
            out.append(
                Definition(
                    name=name,
                    kind=DefinitionKind.DECORATOR,
                    start_line=start_line(decorator),
                    end_line=end_line(decorator),
                    decorated_target=target,
                )
            )
        return names
