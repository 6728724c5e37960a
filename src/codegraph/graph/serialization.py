"""Graph export/import boundary.

Records coming from outside the pipeline (a JSON export, an alternate
storage backend) are validated against the canonical node/relationship
shape before they enter a KnowledgeGraph. Each record carries a
``record_type`` discriminator so mixed streams can be decoded in one pass.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from codegraph.core.errors import InternalError
from codegraph.graph.knowledge import KnowledgeGraph
from codegraph.graph.models import GraphNode, NodeKind, RelationshipKind

FORMAT_VERSION = 1

PropertyValue = str | int | float | bool | None | list[str]


class NodeRecord(BaseModel):
    """Serialized GraphNode."""

    record_type: Literal["node"] = "node"
    id: str = Field(min_length=1)
    kind: NodeKind
    properties: dict[str, PropertyValue] = Field(default_factory=dict)


class RelationshipRecord(BaseModel):
    """Serialized GraphRelationship."""

    record_type: Literal["relationship"] = "relationship"
    id: str = Field(min_length=1)
    kind: RelationshipKind
    source: str = Field(min_length=1)
    target: str = Field(min_length=1)
    properties: dict[str, PropertyValue] = Field(default_factory=dict)


GraphRecord = Annotated[NodeRecord | RelationshipRecord, Field(discriminator="record_type")]

_RECORDS = TypeAdapter(list[GraphRecord])


def dump_graph(graph: KnowledgeGraph) -> dict[str, Any]:
    """Serialize a graph into a JSON-compatible dict."""
    records: list[dict[str, Any]] = []
    for node in graph.nodes:
        records.append({"record_type": "node", **node.to_dict()})
    for rel in graph.relationships:
        records.append({"record_type": "relationship", **rel.to_dict()})
    return {"version": FORMAT_VERSION, "records": records}


def decode_records(raw: Iterable[Any]) -> list[NodeRecord | RelationshipRecord]:
    """Validate raw records.

    Raises:
        InternalError: when any record does not match either shape.
    """
    try:
        return _RECORDS.validate_python(list(raw))
    except ValidationError as e:
        err = e.errors()[0]
        location = ".".join(str(loc) for loc in err["loc"])
        raise InternalError.unexpected(
            f"invalid graph record at {location}: {err['msg']}", location=location
        ) from e


def load_graph(payload: dict[str, Any]) -> KnowledgeGraph:
    """Rebuild a KnowledgeGraph from dump_graph() output.

    Nodes are inserted before relationships regardless of record order, and
    the result is validated for dangling edges.
    """
    records = decode_records(payload.get("records", []))
    graph = KnowledgeGraph()
    for record in records:
        if isinstance(record, NodeRecord):
            graph.add_node(
                GraphNode(id=record.id, kind=record.kind, properties=dict(record.properties))
            )
    for record in records:
        if isinstance(record, RelationshipRecord):
            graph.add_relationship(
                record.kind, record.source, record.target, dict(record.properties)
            )
    graph.validate()
    return graph
