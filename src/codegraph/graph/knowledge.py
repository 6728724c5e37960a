"""In-memory knowledge graph.

Nodes and relationships live in insertion-ordered lists so that consumers
(query engine, export) see a stable order. Lookup indexes are maintained
incrementally on every insertion:

- by id and by kind for nodes
- by (kind, source, target) for relationships, which makes edge insertion
  idempotent
- outgoing/incoming adjacency lists for traversal

Dangling edge endpoints are tolerated while the pipeline is still adding
nodes (forward references); validate() must pass once a run completes.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Iterable
from typing import Any

from codegraph.core.errors import GraphInvariantError
from codegraph.graph.models import (
    GraphNode,
    GraphRelationship,
    NodeKind,
    RelationshipKind,
    relationship_id,
)


class KnowledgeGraph:
    """Typed nodes plus directed relationships, with derived indexes."""

    def __init__(self) -> None:
        self.nodes: list[GraphNode] = []
        self.relationships: list[GraphRelationship] = []
        self._by_id: dict[str, GraphNode] = {}
        self._by_kind: dict[NodeKind, list[GraphNode]] = defaultdict(list)
        self._edges: dict[tuple[RelationshipKind, str, str], GraphRelationship] = {}
        self._outgoing: dict[str, list[GraphRelationship]] = defaultdict(list)
        self._incoming: dict[str, list[GraphRelationship]] = defaultdict(list)
        self._version = 0

    @property
    def version(self) -> int:
        """Mutation counter. Changes whenever a node or edge is added."""
        return self._version

    def __len__(self) -> int:
        return len(self.nodes)

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def add_node(self, node: GraphNode) -> GraphNode:
        """Insert a node, returning the stored instance.

        Re-adding an id of the same kind returns the existing node untouched.

        Raises:
            GraphInvariantError: if the id is already used by another kind.
        """
        existing = self._by_id.get(node.id)
        if existing is not None:
            if existing.kind != node.kind:
                raise GraphInvariantError.duplicate_node(
                    node.id, existing.kind.value, node.kind.value
                )
            return existing
        self.nodes.append(node)
        self._by_id[node.id] = node
        self._by_kind[node.kind].append(node)
        self._version += 1
        return node

    def get_node(self, node_id: str) -> GraphNode | None:
        return self._by_id.get(node_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._by_id

    def nodes_of_kind(self, kind: NodeKind) -> list[GraphNode]:
        return list(self._by_kind.get(kind, ()))

    # ------------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------------

    def add_relationship(
        self,
        kind: RelationshipKind,
        source: str,
        target: str,
        properties: dict[str, Any] | None = None,
    ) -> GraphRelationship | None:
        """Insert an edge unless the (kind, source, target) triple exists.

        Returns:
            The new relationship, or None when it was already present.
        """
        key = (kind, source, target)
        if key in self._edges:
            return None
        rel = GraphRelationship(
            id=relationship_id(kind, source, target),
            kind=kind,
            source=source,
            target=target,
            properties=dict(properties or {}),
        )
        self.relationships.append(rel)
        self._edges[key] = rel
        self._outgoing[source].append(rel)
        self._incoming[target].append(rel)
        self._version += 1
        return rel

    def has_relationship(self, kind: RelationshipKind, source: str, target: str) -> bool:
        return (kind, source, target) in self._edges

    def get_relationship(
        self, kind: RelationshipKind, source: str, target: str
    ) -> GraphRelationship | None:
        return self._edges.get((kind, source, target))

    def outgoing(
        self, node_id: str, kind: RelationshipKind | None = None
    ) -> list[GraphRelationship]:
        rels = self._outgoing.get(node_id, ())
        return [r for r in rels if kind is None or r.kind == kind]

    def incoming(
        self, node_id: str, kind: RelationshipKind | None = None
    ) -> list[GraphRelationship]:
        rels = self._incoming.get(node_id, ())
        return [r for r in rels if kind is None or r.kind == kind]

    # ------------------------------------------------------------------
    # Integrity
    # ------------------------------------------------------------------

    def dangling_relationships(self) -> list[GraphRelationship]:
        return [
            r
            for r in self.relationships
            if r.source not in self._by_id or r.target not in self._by_id
        ]

    def validate(self) -> None:
        """Check that every edge endpoint exists.

        Raises:
            GraphInvariantError: listing the offending edge ids.
        """
        dangling = self.dangling_relationships()
        if dangling:
            raise GraphInvariantError.dangling_edges([r.id for r in dangling])

    def summary(self) -> dict[str, Any]:
        """Counts per node kind and per relationship kind."""
        node_counts = Counter(n.kind.value for n in self.nodes)
        rel_counts = Counter(r.kind.value for r in self.relationships)
        return {
            "nodes": len(self.nodes),
            "relationships": len(self.relationships),
            "node_kinds": dict(sorted(node_counts.items())),
            "relationship_kinds": dict(sorted(rel_counts.items())),
        }

    def extend(
        self,
        nodes: Iterable[GraphNode],
        relationships: Iterable[GraphRelationship] = (),
    ) -> None:
        """Bulk insert, keeping each relationship's properties."""
        for node in nodes:
            self.add_node(node)
        for rel in relationships:
            self.add_relationship(rel.kind, rel.source, rel.target, rel.properties)
