"""Tests for definition nodes, containment and hierarchy edges."""

from __future__ import annotations

from collections.abc import Callable

import pytest
from tree_sitter import Tree

from codegraph.graph.knowledge import KnowledgeGraph
from codegraph.graph.models import GraphNode, NodeKind, RelationshipKind
from codegraph.index._internal.extraction import DefinitionExtractor
from codegraph.index._internal.grammars import language_for_path
from codegraph.index._internal.registry import SymbolRegistry
from codegraph.index._internal.relationships import RelationshipBuilder, definition_properties
from codegraph.index._internal.structure import StructureBuilder

Parse = Callable[[str, str], Tree]


class _Indexer:
    """Structure pass plus definitions for a handful of in-memory files."""

    def __init__(self, parse: Parse) -> None:
        self.parse = parse
        self.graph = KnowledgeGraph()
        self.registry = SymbolRegistry()
        self.builder = RelationshipBuilder(self.graph, self.registry)

    def index(self, files: dict[str, str]) -> KnowledgeGraph:
        structure = StructureBuilder(self.graph).build("demo", files)
        for path, content in files.items():
            language = language_for_path(path)
            assert language is not None
            tree = self.parse(language, content)
            result = DefinitionExtractor().extract(path, content, language, tree)
            self.builder.add_file_definitions(
                path, structure.file_ids[path], result.definitions, language
            )
        for path in files:
            self.builder.link_hierarchy(path)
        return self.graph

    def node(self, kind: NodeKind, name: str, parent: str | None = None) -> GraphNode:
        matches = [
            n
            for n in self.graph.nodes_of_kind(kind)
            if n.name == name and n.properties.get("parentClass") == parent
        ]
        assert len(matches) == 1, matches
        return matches[0]


@pytest.fixture
def indexer(parse: Parse) -> _Indexer:
    return _Indexer(parse)


class TestDefinitionNodes:
    """Nodes, properties and CONTAINS edges per file."""

    def test_properties(self, indexer: _Indexer) -> None:
        indexer.index({"app/models.py": "class User:\n    async def save(self):\n        pass\n"})
        save = indexer.node(NodeKind.METHOD, "save", "User")
        assert save.properties["qualifiedName"] == "app.models.User.save"
        assert save.properties["filePath"] == "app/models.py"
        assert save.properties["startLine"] == 2
        assert save.properties["endLine"] == 3
        assert save.properties["isAsync"] is True
        assert save.properties["language"] == "python"

    def test_method_contained_by_class_others_by_file(self, indexer: _Indexer) -> None:
        source = "def main():\n    pass\n\nclass A:\n    def m(self): ...\n"
        graph = indexer.index({"app.py": source})
        main = indexer.node(NodeKind.FUNCTION, "main")
        cls = indexer.node(NodeKind.CLASS, "A")
        method = indexer.node(NodeKind.METHOD, "m", "A")

        (main_parent,) = graph.incoming(main.id, RelationshipKind.CONTAINS)
        (method_parent,) = graph.incoming(method.id, RelationshipKind.CONTAINS)
        (class_parent,) = graph.incoming(cls.id, RelationshipKind.CONTAINS)
        assert graph.get_node(main_parent.source).kind is NodeKind.FILE
        assert method_parent.source == cls.id
        assert class_parent.source == main_parent.source

    def test_redefined_class_owns_its_own_methods(self, indexer: _Indexer) -> None:
        source = "class A:\n    def m(self): ...\n\nclass A:\n    def m(self): ...\n"
        graph = indexer.index({"dup.py": source})
        classes = sorted(
            graph.nodes_of_kind(NodeKind.CLASS), key=lambda n: n.properties["startLine"]
        )
        methods = sorted(
            graph.nodes_of_kind(NodeKind.METHOD), key=lambda n: n.properties["startLine"]
        )
        assert len(classes) == len(methods) == 2
        for cls, method in zip(classes, methods, strict=True):
            (parent,) = graph.incoming(method.id, RelationshipKind.CONTAINS)
            assert parent.source == cls.id

    def test_same_line_methods_of_different_classes(self, indexer: _Indexer) -> None:
        graph = indexer.index({"bundle.ts": "class A { m() {} } class B { m() {} }\n"})
        a_m = indexer.node(NodeKind.METHOD, "m", "A")
        b_m = indexer.node(NodeKind.METHOD, "m", "B")
        assert a_m.id != b_m.id
        assert len(graph.nodes_of_kind(NodeKind.METHOD)) == 2
        (a_parent,) = graph.incoming(a_m.id, RelationshipKind.CONTAINS)
        (b_parent,) = graph.incoming(b_m.id, RelationshipKind.CONTAINS)
        assert a_parent.source == indexer.node(NodeKind.CLASS, "A").id
        assert b_parent.source == indexer.node(NodeKind.CLASS, "B").id
        graph.validate()

    def test_decorates_edges(self, indexer: _Indexer) -> None:
        source = "@cache\n@trace(level=1)\ndef load():\n    pass\n"
        graph = indexer.index({"svc.py": source})
        load = indexer.node(NodeKind.FUNCTION, "load")
        decorators = {
            graph.get_node(r.source).name  # type: ignore[union-attr]
            for r in graph.incoming(load.id, RelationshipKind.DECORATES)
        }
        assert decorators == {"cache", "trace"}
        assert load.properties["decorators"] == ["cache", "trace"]

    def test_registry_is_populated(self, indexer: _Indexer) -> None:
        indexer.index({"pkg/util.py": "def helper():\n    pass\n"})
        (entry,) = indexer.registry.get_exact_match("pkg.util.helper")
        assert entry.kind is NodeKind.FUNCTION
        assert indexer.registry.find_in_file("pkg/util.py", "helper") == [entry]

    def test_definition_properties_copy_extra(self) -> None:
        from codegraph.index._internal.extraction.models import Definition, DefinitionKind

        definition = Definition(
            name="build",
            kind=DefinitionKind.FUNCTION,
            start_line=4,
            extra={"command": "vite build", "name": "ignored"},
        )
        props = definition_properties(definition, "package.json", None)
        assert props["command"] == "vite build"
        assert props["name"] == "build"
        assert "language" not in props


class TestHierarchy:
    """INHERITS, OVERRIDES and IMPLEMENTS."""

    def test_inherits_and_overrides(self, indexer: _Indexer) -> None:
        source = (
            "class Base:\n"
            "    def save(self):\n"
            "        pass\n"
            "\n"
            "class Child(Base):\n"
            "    def save(self):\n"
            "        pass\n"
        )
        graph = indexer.index({"models.py": source})
        base = indexer.node(NodeKind.CLASS, "Base")
        child = indexer.node(NodeKind.CLASS, "Child")
        base_save = indexer.node(NodeKind.METHOD, "save", "Base")
        child_save = indexer.node(NodeKind.METHOD, "save", "Child")

        inherits = [r for r in graph.relationships if r.kind is RelationshipKind.INHERITS]
        overrides = [r for r in graph.relationships if r.kind is RelationshipKind.OVERRIDES]
        assert [(r.source, r.target) for r in inherits] == [(child.id, base.id)]
        assert [(r.source, r.target) for r in overrides] == [(child_save.id, base_save.id)]
        assert inherits[0].properties == {"baseType": "Base"}

    def test_base_declared_in_later_file(self, indexer: _Indexer) -> None:
        graph = indexer.index(
            {
                "a/child.py": "from b.base import Base\n\nclass Child(Base):\n    pass\n",
                "b/base.py": "class Base:\n    pass\n",
            }
        )
        child = indexer.node(NodeKind.CLASS, "Child")
        base = indexer.node(NodeKind.CLASS, "Base")
        assert graph.has_relationship(RelationshipKind.INHERITS, child.id, base.id)

    def test_unresolved_base_is_skipped(self, indexer: _Indexer) -> None:
        graph = indexer.index({"x.py": "class Error(Exception):\n    pass\n"})
        assert not any(r.kind is RelationshipKind.INHERITS for r in graph.relationships)
        assert indexer.builder.link_hierarchy("x.py").unresolved == 1

    def test_implements_and_interface_extends(self, indexer: _Indexer) -> None:
        source = (
            "interface Shape {\n  area(): number;\n}\n"
            "interface Solid extends Shape {\n  volume(): number;\n}\n"
            "class Cube implements Solid {\n  area() { return 0; }\n  volume() { return 0; }\n}\n"
        )
        graph = indexer.index({"shapes.ts": source})
        shape = indexer.node(NodeKind.INTERFACE, "Shape")
        solid = indexer.node(NodeKind.INTERFACE, "Solid")
        cube = indexer.node(NodeKind.CLASS, "Cube")
        assert graph.has_relationship(RelationshipKind.IMPLEMENTS, cube.id, solid.id)
        assert graph.has_relationship(RelationshipKind.INHERITS, solid.id, shape.id)
        assert not graph.has_relationship(RelationshipKind.INHERITS, cube.id, solid.id)

    def test_link_hierarchy_is_idempotent(self, indexer: _Indexer) -> None:
        graph = indexer.index({"m.py": "class A:\n    pass\n\nclass B(A):\n    pass\n"})
        before = len(graph.relationships)
        stats = indexer.builder.link_hierarchy("m.py")
        assert len(graph.relationships) == before
        assert stats.inherits == 0
