"""Tests for graph export and import."""

from __future__ import annotations

import json
from collections.abc import Callable

import pytest

from codegraph.core.errors import ErrorCode, GraphInvariantError, InternalError
from codegraph.graph.knowledge import KnowledgeGraph
from codegraph.graph.models import GraphNode, NodeKind, RelationshipKind
from codegraph.graph.serialization import (
    FORMAT_VERSION,
    NodeRecord,
    RelationshipRecord,
    decode_records,
    dump_graph,
    load_graph,
)

AddNode = Callable[..., GraphNode]


class TestDumpGraph:
    def test_records_are_tagged(self, call_graph: KnowledgeGraph) -> None:
        payload = dump_graph(call_graph)
        assert payload["version"] == FORMAT_VERSION
        types = [r["record_type"] for r in payload["records"]]
        assert types.count("node") == 10
        assert types.count("relationship") == 3
        # Nodes precede relationships
        assert types == sorted(types)

    def test_json_compatible(self, call_graph: KnowledgeGraph) -> None:
        text = json.dumps(dump_graph(call_graph), sort_keys=True)
        assert json.loads(text)["records"][0]["kind"] == "Function"


class TestLoadGraph:
    def test_reload_preserves_graph(self, call_graph: KnowledgeGraph) -> None:
        payload = json.loads(json.dumps(dump_graph(call_graph)))
        loaded = load_graph(payload)

        assert loaded.summary() == call_graph.summary()
        assert [n.id for n in loaded.nodes] == [n.id for n in call_graph.nodes]
        assert [r.id for r in loaded.relationships] == [r.id for r in call_graph.relationships]
        helper = next(n for n in loaded.nodes if n.name == "helper")
        assert helper.properties["size"] == 60

    def test_relationship_records_may_come_first(self, call_graph: KnowledgeGraph) -> None:
        payload = dump_graph(call_graph)
        payload["records"].reverse()
        assert len(load_graph(payload).relationships) == 3

    def test_dangling_edge_rejected(self, graph: KnowledgeGraph, add_node: AddNode) -> None:
        node = add_node(graph, NodeKind.FUNCTION, "lonely")
        graph.add_relationship(RelationshipKind.CALLS, node.id, "function:missing")
        with pytest.raises(GraphInvariantError) as exc_info:
            load_graph(dump_graph(graph))
        assert exc_info.value.code == ErrorCode.GRAPH_INVARIANT

    def test_empty_payload(self) -> None:
        assert len(load_graph({})) == 0


class TestDecodeRecords:
    def test_discriminates_record_types(self) -> None:
        records = decode_records(
            [
                {"record_type": "node", "id": "n1", "kind": "Class"},
                {
                    "record_type": "relationship",
                    "id": "r1",
                    "kind": "INHERITS",
                    "source": "n1",
                    "target": "n2",
                },
            ]
        )
        assert isinstance(records[0], NodeRecord)
        assert isinstance(records[1], RelationshipRecord)
        assert records[1].kind is RelationshipKind.INHERITS

    @pytest.mark.parametrize(
        "record",
        [
            {"record_type": "node", "id": "n1", "kind": "Widget"},
            {"record_type": "node", "id": "", "kind": "Class"},
            {"record_type": "edge", "id": "x", "kind": "CALLS"},
            {"record_type": "relationship", "id": "r", "kind": "CALLS", "source": "a"},
        ],
    )
    def test_invalid_record_raises(self, record: dict[str, object]) -> None:
        with pytest.raises(InternalError) as exc_info:
            decode_records([record])
        assert exc_info.value.code == ErrorCode.INTERNAL_ERROR
        assert "invalid graph record" in exc_info.value.message
