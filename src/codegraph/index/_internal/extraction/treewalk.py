"""Small helpers over tree-sitter nodes."""

from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tree_sitter import Node


def node_text(node: Node | None) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def field_text(node: Node, field_name: str) -> str:
    return node_text(node.child_by_field_name(field_name))


def start_line(node: Node) -> int:
    """1-based first line."""
    return node.start_point[0] + 1


def end_line(node: Node) -> int:
    """1-based last line."""
    return node.end_point[0] + 1


def span(node: Node) -> tuple[int, int]:
    return (node.start_byte, node.end_byte)


def iter_nodes(root: Node) -> Iterator[Node]:
    """Pre-order traversal in document order. Iterative, so nesting depth is unbounded."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def iter_descendants(root: Node) -> Iterator[Node]:
    nodes = iter_nodes(root)
    next(nodes, None)
    yield from nodes


def preceding_siblings(node: Node, node_type: str) -> list[Node]:
    """Contiguous previous siblings of one type, nearest first."""
    found: list[Node] = []
    sibling = node.prev_sibling
    while sibling is not None and sibling.type == node_type:
        found.append(sibling)
        sibling = sibling.prev_sibling
    return found
