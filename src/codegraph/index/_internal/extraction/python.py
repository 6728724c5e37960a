"""Python definition extraction from tree-sitter-python trees.

Handles:
- Functions (sync and async), at any nesting level outside classes
- Classes with base lists; Protocol bases make an Interface, Enum bases an Enum
- Methods: functions directly in a class body, tagged with the class name
- Decorators, paired with the definition they decorate
- Module-level assignments, with a best-effort value kind
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

INTERFACE_BASES = frozenset({"Protocol"})
ENUM_BASES = frozenset({"Enum", "IntEnum", "StrEnum", "Flag", "IntFlag"})

_VALUE_KINDS = {
    "string": "string",
    "concatenated_string": "string",
    "integer": "number",
    "float": "number",
    "true": "boolean",
    "false": "boolean",
    "list": "array",
    "tuple": "array",
    "set": "array",
    "list_comprehension": "array",
    "dictionary": "object",
    "dictionary_comprehension": "object",
    "none": "null",
}


def infer_value_kind(node: Node | None) -> str:
    if node is None:
        return "unknown"
    return _VALUE_KINDS.get(node.type, "unknown")


def decorator_name(decorator: Node) -> str:
    """Name of a decorator: ``@name``, ``@pkg.name`` or ``@name(...)``."""
    for child in decorator.named_children:
        if child.type in ("identifier", "attribute"):
            return node_text(child)
        if child.type == "call":
            return field_text(child, "function")
    return ""


def base_type_names(class_node: Node) -> list[str]:
    """Positional bases from the ``superclasses`` list. Keyword args are skipped."""
    supers = class_node.child_by_field_name("superclasses")
    if supers is None:
        return []
    names: list[str] = []
    for child in supers.named_children:
        if child.type in ("identifier", "attribute"):
            names.append(node_text(child))
        elif child.type == "subscript":
            # Generic[T], Protocol[T]
            names.append(field_text(child, "value"))
    return [n for n in names if n]


def _class_kind(base_types: list[str]) -> DefinitionKind:
    bare = {b.rsplit(".", 1)[-1] for b in base_types}
    if bare & INTERFACE_BASES:
        return DefinitionKind.INTERFACE
    if bare & ENUM_BASES:
        return DefinitionKind.ENUM
    return DefinitionKind.CLASS


def _is_async(func_node: Node) -> bool:
    return any(child.type == "async" for child in func_node.children)


class PythonDefinitionExtractor:
    """Two-pass extractor.

    Pass 1 marks every function node nested in a class so pass 2 does not
    report methods (or helpers defined inside methods) as free functions.
    """

    language_family = "python"

    def extract(self, root: Node) -> list[Definition]:
        in_class = self._mark_class_functions(root)
        definitions: list[Definition] = []

        for node in iter_nodes(root):
            if node.type == "function_definition":
                if span(node) in in_class:
                    continue
                self._add_function(node, DefinitionKind.FUNCTION, None, definitions)
            elif node.type == "class_definition":
                self._add_class(node, definitions)
            elif node.type == "expression_statement" and node.parent is not None:
                if node.parent.type == "module":
                    self._add_variables(node, definitions)

        return definitions

    @staticmethod
    def _mark_class_functions(root: Node) -> set[tuple[int, int]]:
        marked: set[tuple[int, int]] = set()
        for node in iter_nodes(root):
            if node.type != "class_definition":
                continue
            for inner in iter_descendants(node):
                if inner.type == "function_definition":
                    marked.add(span(inner))
        return marked

    def _add_function(
        self,
        node: Node,
        kind: DefinitionKind,
        parent_class: str | None,
        out: list[Definition],
    ) -> None:
        name = field_text(node, "name")
        if not name:
            return
        decorators = self._collect_decorators(node, name, out)
        out.append(
            Definition(
                name=name,
                kind=kind,
                start_line=start_line(node),
                end_line=end_line(node),
                parent_class=parent_class,
                decorators=decorators,
                is_async=_is_async(node),
            )
        )

    def _add_class(self, node: Node, out: list[Definition]) -> None:
        name = field_text(node, "name")
        if not name:
            return
        base_types = base_type_names(node)
        decorators = self._collect_decorators(node, name, out)
        out.append(
            Definition(
                name=name,
                kind=_class_kind(base_types),
                start_line=start_line(node),
                end_line=end_line(node),
                decorators=decorators,
                base_types=base_types,
            )
        )

        body = node.child_by_field_name("body")
        if body is None:
            return
        for child in body.named_children:
            func = child
            if child.type == "decorated_definition":
                func = child.child_by_field_name("definition")
            if func is not None and func.type == "function_definition":
                self._add_function(func, DefinitionKind.METHOD, name, out)

    @staticmethod
    def _collect_decorators(node: Node, target: str, out: list[Definition]) -> list[str]:
        """Decorators adjacent to ``node`` inside its decorated_definition.

        Emits one Decorator definition per occurrence and returns the names
        in source order.
        """
        parent = node.parent
        if parent is None or parent.type != "decorated_definition":
            return []
        names: list[str] = []
        for decorator in reversed(preceding_siblings(node, "decorator")):
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

    @staticmethod
    def _add_variables(statement: Node, out: list[Definition]) -> None:
        for child in statement.named_children:
            if child.type != "assignment":
                continue
            left = child.child_by_field_name("left")
            if left is None or left.type != "identifier":
                continue
            name = node_text(left)
            if not name:
                continue
            out.append(
                Definition(
                    name=name,
                    kind=DefinitionKind.VARIABLE,
                    start_line=start_line(child),
                    end_line=end_line(child),
                    variable_type=infer_value_kind(child.child_by_field_name("right")),
                )
            )
