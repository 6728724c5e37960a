"""Turns extracted definitions into graph nodes and structural edges.

Per file, add_file_definitions creates one node per definition, the
CONTAINS edge from its owner (the file, or the class/interface for a
method), DECORATES edges, and the matching Symbol Registry entries.

Inheritance is linked in a second step (link_hierarchy) once every file is
registered, so a base class declared in a later file still resolves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog

from codegraph.graph.knowledge import KnowledgeGraph
from codegraph.graph.models import GraphNode, NodeKind, RelationshipKind, node_id
from codegraph.index._internal.extraction.models import (
    CONTAINER_KINDS,
    Definition,
    DefinitionKind,
)
from codegraph.index._internal.registry import SymbolEntry, SymbolRegistry, qualified_name_for

log = structlog.get_logger(__name__)

_TYPE_KINDS = frozenset((NodeKind.CLASS, NodeKind.INTERFACE))


@dataclass
class HierarchyStats:
    """Edge counts from hierarchy linking."""

    inherits: int = 0
    implements: int = 0
    overrides: int = 0
    unresolved: int = 0

    def merge(self, other: HierarchyStats) -> None:
        self.inherits += other.inherits
        self.implements += other.implements
        self.overrides += other.overrides
        self.unresolved += other.unresolved


@dataclass
class _TypeDecl:
    entry: SymbolEntry
    base_types: list[str] = field(default_factory=list)


def definition_properties(
    definition: Definition, file_path: str, language: str | None
) -> dict[str, Any]:
    """Graph properties for a definition node."""
    props: dict[str, Any] = {
        "name": definition.name,
        "filePath": file_path,
        "startLine": definition.start_line,
        "qualifiedName": qualified_name_for(file_path, definition.name, definition.parent_class),
    }
    if definition.end_line is not None:
        props["endLine"] = definition.end_line
    if definition.parent_class:
        props["parentClass"] = definition.parent_class
    if definition.decorators:
        props["decorators"] = list(definition.decorators)
    if definition.base_types:
        props["baseTypes"] = list(definition.base_types)
    if definition.import_path:
        props["importPath"] = definition.import_path
    if definition.decorated_target:
        props["decoratedTarget"] = definition.decorated_target
    if definition.variable_type:
        props["variableType"] = definition.variable_type
    if definition.is_async:
        props["isAsync"] = True
    if language:
        props["language"] = language
    for key, value in definition.extra.items():
        props.setdefault(key, value)
    return props


class RelationshipBuilder:
    """Writes definition nodes and structural edges into a graph.

    Usage::

        builder = RelationshipBuilder(graph, registry)
        builder.add_file_definitions("src/app.py", file_id, definitions, "python")
        ...
        builder.link_hierarchy("src/app.py")  # after every file is added
    """

    def __init__(self, graph: KnowledgeGraph, registry: SymbolRegistry) -> None:
        self._graph = graph
        self._registry = registry
        self._types: dict[str, list[_TypeDecl]] = {}

    def add_file_definitions(
        self,
        file_path: str,
        file_node_id: str,
        definitions: list[Definition],
        language: str | None,
    ) -> list[SymbolEntry]:
        """Add nodes, CONTAINS and DECORATES edges, and registry entries for one file."""
        entries: list[SymbolEntry] = []
        # Containers seen so far in this file, by name, latest last
        containers: dict[str, list[tuple[int, str]]] = {}
        pending_decorators: list[tuple[str, str]] = []
        type_decls = self._types.setdefault(file_path, [])

        for definition in definitions:
            kind = definition.kind.node_kind
            qualified_name = qualified_name_for(
                file_path, definition.name, definition.parent_class
            )
            # Same-line methods of different classes (minified code) need distinct ids
            nid = node_id(kind, file_path, qualified_name, definition.start_line)
            self._graph.add_node(
                GraphNode(
                    id=nid,
                    kind=kind,
                    properties=definition_properties(definition, file_path, language),
                )
            )

            owner = file_node_id
            if definition.kind is DefinitionKind.METHOD and definition.parent_class:
                owner = self._container_for(containers, definition) or file_node_id
            self._graph.add_relationship(RelationshipKind.CONTAINS, owner, nid)

            if definition.kind is DefinitionKind.DECORATOR:
                pending_decorators.append((nid, definition.decorated_target or ""))
                continue

            if pending_decorators:
                matched = [d for d, target in pending_decorators if target == definition.name]
                for decorator_id in matched:
                    self._graph.add_relationship(RelationshipKind.DECORATES, decorator_id, nid)
                pending_decorators = [
                    (d, target) for d, target in pending_decorators if target != definition.name
                ]

            if definition.kind in CONTAINER_KINDS:
                containers.setdefault(definition.name, []).append((definition.start_line, nid))

            entry = SymbolEntry(
                node_id=nid,
                qualified_name=qualified_name,
                file_path=file_path,
                bare_name=definition.name,
                kind=kind,
                start_line=definition.start_line,
                end_line=definition.end_line,
                parent_class=definition.parent_class,
            )
            self._registry.add_definition(entry)
            entries.append(entry)
            if kind in _TYPE_KINDS and definition.base_types:
                type_decls.append(_TypeDecl(entry, list(definition.base_types)))

        if pending_decorators:
            log.debug(
                "decorator_target_missing",
                path=file_path,
                targets=sorted({t for _d, t in pending_decorators}),
            )
        return entries

    @staticmethod
    def _container_for(
        containers: dict[str, list[tuple[int, str]]], definition: Definition
    ) -> str | None:
        candidates = containers.get(definition.parent_class or "", [])
        preceding = [nid for line, nid in candidates if line <= definition.start_line]
        if preceding:
            return preceding[-1]
        return candidates[-1][1] if candidates else None

    # ------------------------------------------------------------------
    # Hierarchy
    # ------------------------------------------------------------------

    def _resolve_base(self, child: SymbolEntry, base_type: str) -> SymbolEntry | None:
        bare = base_type.rsplit(".", 1)[-1]
        local = [
            e
            for e in self._registry.find_in_file(child.file_path, bare)
            if e.kind in _TYPE_KINDS and e.node_id != child.node_id
        ]
        if local:
            return local[0]
        candidates = [
            e
            for e in self._registry.find_by_bare_name(bare)
            if e.kind in _TYPE_KINDS and e.node_id != child.node_id
        ]
        return self._registry.best_candidate(candidates, child.file_path)

    def _methods_of(self, owner: SymbolEntry) -> dict[str, SymbolEntry]:
        methods: dict[str, SymbolEntry] = {}
        for entry in self._registry.find_in_file(owner.file_path):
            if entry.kind is NodeKind.METHOD and entry.parent_class == owner.bare_name:
                methods.setdefault(entry.bare_name, entry)
        return methods

    def _link_overrides(self, child: SymbolEntry, base: SymbolEntry) -> int:
        base_methods = self._methods_of(base)
        added = 0
        for name, method in self._methods_of(child).items():
            target = base_methods.get(name)
            if target is not None and self._graph.add_relationship(
                RelationshipKind.OVERRIDES, method.node_id, target.node_id
            ):
                added += 1
        return added

    def link_hierarchy(self, file_path: str) -> HierarchyStats:
        """Emit INHERITS / IMPLEMENTS / OVERRIDES for the types declared in a file."""
        stats = HierarchyStats()
        for decl in self._types.get(file_path, []):
            child = decl.entry
            for base_type in decl.base_types:
                base = self._resolve_base(child, base_type)
                if base is None:
                    stats.unresolved += 1
                    log.debug(
                        "base_type_unresolved",
                        path=file_path,
                        type=child.bare_name,
                        base=base_type,
                    )
                    continue

                props = {"baseType": base_type}
                if child.kind is NodeKind.CLASS and base.kind is NodeKind.INTERFACE:
                    if self._graph.add_relationship(
                        RelationshipKind.IMPLEMENTS, child.node_id, base.node_id, props
                    ):
                        stats.implements += 1
                elif child.kind == base.kind:
                    if self._graph.add_relationship(
                        RelationshipKind.INHERITS, child.node_id, base.node_id, props
                    ):
                        stats.inherits += 1
                    stats.overrides += self._link_overrides(child, base)
                else:
                    log.debug(
                        "base_type_kind_mismatch",
                        path=file_path,
                        type=child.bare_name,
                        base=base_type,
                        base_kind=base.kind.value,
                    )
        return stats
