"""Shared fixtures for graph tests."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from codegraph.graph.knowledge import KnowledgeGraph
from codegraph.graph.models import GraphNode, NodeKind, RelationshipKind, node_id


def _add_node(
    graph: KnowledgeGraph,
    kind: NodeKind,
    name: str,
    file_path: str = "src/app.py",
    start_line: int = 1,
    **props: Any,
) -> GraphNode:
    return graph.add_node(
        GraphNode(
            id=node_id(kind, file_path, name, start_line),
            kind=kind,
            properties={"name": name, "filePath": file_path, "startLine": start_line, **props},
        )
    )


@pytest.fixture
def add_node() -> Callable[..., GraphNode]:
    """Factory adding a definition-like node to a graph."""
    return _add_node


@pytest.fixture
def graph() -> KnowledgeGraph:
    return KnowledgeGraph()


@pytest.fixture
def call_graph() -> KnowledgeGraph:
    """7 Function nodes, 3 Method nodes, a CALLS cycle a -> b -> c -> a."""
    g = KnowledgeGraph()
    functions = [
        _add_node(g, NodeKind.FUNCTION, name, start_line=i + 1, size=(i + 1) * 10)
        for i, name in enumerate(["a", "b", "c", "test_alpha", "test_beta", "helper", "main"])
    ]
    for i, name in enumerate(["save", "load", "close"]):
        _add_node(g, NodeKind.METHOD, name, start_line=100 + i, parentClass="Store")

    a, b, c = functions[0], functions[1], functions[2]
    g.add_relationship(RelationshipKind.CALLS, a.id, b.id)
    g.add_relationship(RelationshipKind.CALLS, b.id, c.id)
    g.add_relationship(RelationshipKind.CALLS, c.id, a.id)
    return g
