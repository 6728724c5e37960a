"""Extractor output records."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from codegraph.graph.models import NodeKind


class DefinitionKind(str, Enum):
    """Kinds of named code constructs found in a file."""

    FUNCTION = "function"
    CLASS = "class"
    METHOD = "method"
    INTERFACE = "interface"
    ENUM = "enum"
    DECORATOR = "decorator"
    VARIABLE = "variable"

    @property
    def node_kind(self) -> NodeKind:
        return _NODE_KINDS[self]


_NODE_KINDS: dict[DefinitionKind, NodeKind] = {
    DefinitionKind.FUNCTION: NodeKind.FUNCTION,
    DefinitionKind.CLASS: NodeKind.CLASS,
    DefinitionKind.METHOD: NodeKind.METHOD,
    DefinitionKind.INTERFACE: NodeKind.INTERFACE,
    DefinitionKind.ENUM: NodeKind.ENUM,
    DefinitionKind.DECORATOR: NodeKind.DECORATOR,
    DefinitionKind.VARIABLE: NodeKind.VARIABLE,
}

# Definitions that can own methods
CONTAINER_KINDS: frozenset[DefinitionKind] = frozenset(
    (DefinitionKind.CLASS, DefinitionKind.INTERFACE)
)


@dataclass
class Definition:
    """One named construct, before it becomes a graph node."""

    name: str
    kind: DefinitionKind
    start_line: int
    end_line: int | None = None
    parent_class: str | None = None
    decorators: list[str] = field(default_factory=list)
    base_types: list[str] = field(default_factory=list)
    import_path: str | None = None
    decorated_target: str | None = None
    variable_type: str | None = None
    is_async: bool = False
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class ExtractionResult:
    """Definitions found in one file."""

    definitions: list[Definition] = field(default_factory=list)
    used_fallback: bool = False

    def __iter__(self) -> Iterator[Definition]:
        return iter(self.definitions)

    def __len__(self) -> int:
        return len(self.definitions)

    def of_kind(self, kind: DefinitionKind) -> list[Definition]:
        return [d for d in self.definitions if d.kind == kind]
