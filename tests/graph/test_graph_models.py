"""Tests for graph vocabulary and ids."""

from __future__ import annotations

from codegraph.graph.models import (
    GraphNode,
    GraphRelationship,
    NodeKind,
    RelationshipKind,
    node_id,
    relationship_id,
)


class TestNodeId:
    """Deterministic node ids."""

    def test_stable_across_calls(self) -> None:
        assert node_id(NodeKind.FUNCTION, "a/x.py", "helper", 1) == node_id(
            NodeKind.FUNCTION, "a/x.py", "helper", 1
        )

    def test_prefixed_with_lowercased_kind(self) -> None:
        nid = node_id(NodeKind.CLASS, "a/x.py", "Base", 3)
        prefix, digest = nid.split(":")
        assert prefix == "class"
        assert len(digest) == 16

    def test_start_line_distinguishes_redefinitions(self) -> None:
        first = node_id(NodeKind.FUNCTION, "a.py", "f", 1)
        assert first != node_id(NodeKind.FUNCTION, "a.py", "f", 9)

    def test_kind_distinguishes_same_name(self) -> None:
        assert node_id(NodeKind.CLASS, "a.py", "X", 1) != node_id(NodeKind.FUNCTION, "a.py", "X", 1)


class TestRelationshipId:
    def test_one_id_per_triple(self) -> None:
        rid = relationship_id(RelationshipKind.CALLS, "function:1", "function:2")
        assert rid.startswith("calls:")
        assert rid == relationship_id(RelationshipKind.CALLS, "function:1", "function:2")
        assert rid != relationship_id(RelationshipKind.CALLS, "function:2", "function:1")


class TestRecords:
    def test_node_accessors_and_dict(self) -> None:
        node = GraphNode("file:1", NodeKind.FILE, {"name": "x.py", "filePath": "a/x.py"})
        assert node.name == "x.py"
        assert node.file_path == "a/x.py"
        assert node.to_dict() == {
            "id": "file:1",
            "kind": "File",
            "properties": {"name": "x.py", "filePath": "a/x.py"},
        }

    def test_project_has_no_file_path(self) -> None:
        assert GraphNode("project:1", NodeKind.PROJECT, {"name": "p"}).file_path is None

    def test_relationship_key(self) -> None:
        rel = GraphRelationship("calls:1", RelationshipKind.CALLS, "s", "t")
        assert rel.key == (RelationshipKind.CALLS, "s", "t")
        assert rel.to_dict()["kind"] == "CALLS"
