"""Graph vocabulary: node and relationship kinds, records, deterministic ids."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class NodeKind(str, Enum):
    """Node labels. Values are the labels used by the query language."""

    PROJECT = "Project"
    FOLDER = "Folder"
    FILE = "File"
    MODULE = "Module"
    CLASS = "Class"
    FUNCTION = "Function"
    METHOD = "Method"
    VARIABLE = "Variable"
    INTERFACE = "Interface"
    ENUM = "Enum"
    DECORATOR = "Decorator"


class RelationshipKind(str, Enum):
    """Directed edge types."""

    CONTAINS = "CONTAINS"
    CALLS = "CALLS"
    INHERITS = "INHERITS"
    OVERRIDES = "OVERRIDES"
    IMPLEMENTS = "IMPLEMENTS"
    DECORATES = "DECORATES"
    IMPORTS = "IMPORTS"


# Kinds that may exist without an incoming CONTAINS edge
ROOT_KINDS: frozenset[NodeKind] = frozenset((NodeKind.PROJECT, NodeKind.FILE, NodeKind.MODULE))

# Kinds produced from code definitions (carry startLine/qualifiedName)
DEFINITION_KINDS: frozenset[NodeKind] = frozenset(
    (
        NodeKind.CLASS,
        NodeKind.FUNCTION,
        NodeKind.METHOD,
        NodeKind.VARIABLE,
        NodeKind.INTERFACE,
        NodeKind.ENUM,
        NodeKind.DECORATOR,
    )
)


def node_id(kind: NodeKind, file_path: str, name: str, start_line: int = 0) -> str:
    """Compute a stable node id from (kind, file_path, name, start_line)."""
    digest = hashlib.sha256(f"{kind.value}:{file_path}:{name}:{start_line}".encode()).hexdigest()
    return f"{kind.value.lower()}:{digest[:16]}"


def relationship_id(kind: RelationshipKind, source: str, target: str) -> str:
    """Compute a stable edge id. One id per (kind, source, target) triple."""
    digest = hashlib.sha256(f"{kind.value}:{source}->{target}".encode()).hexdigest()
    return f"{kind.value.lower()}:{digest[:16]}"


@dataclass
class GraphNode:
    """A node in the knowledge graph."""

    id: str
    kind: NodeKind
    properties: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return str(self.properties.get("name", ""))

    @property
    def file_path(self) -> str | None:
        value = self.properties.get("filePath")
        return str(value) if value is not None else None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "kind": self.kind.value, "properties": dict(self.properties)}


@dataclass
class GraphRelationship:
    """A directed, typed edge between two node ids."""

    id: str
    kind: RelationshipKind
    source: str
    target: str
    properties: dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> tuple[RelationshipKind, str, str]:
        return (self.kind, self.source, self.target)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "source": self.source,
            "target": self.target,
            "properties": dict(self.properties),
        }
