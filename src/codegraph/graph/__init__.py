"""Graph module - the knowledge graph, its query engine and its export format.

Public API:
- KnowledgeGraph: node/relationship store with derived indexes
- QueryEngine: Cypher-like read queries
- dump_graph / load_graph: JSON-compatible export
"""

from codegraph.graph.knowledge import KnowledgeGraph
from codegraph.graph.models import (
    GraphNode,
    GraphRelationship,
    NodeKind,
    RelationshipKind,
    node_id,
    relationship_id,
)
from codegraph.graph.query import QueryEngine, QueryResult, parse_query
from codegraph.graph.serialization import dump_graph, load_graph

__all__ = [
    "KnowledgeGraph",
    "GraphNode",
    "GraphRelationship",
    "NodeKind",
    "RelationshipKind",
    "node_id",
    "relationship_id",
    # Query
    "QueryEngine",
    "QueryResult",
    "parse_query",
    # Export
    "dump_graph",
    "load_graph",
]
