"""Tests for the symbol registry."""

from __future__ import annotations

import pytest

from codegraph.graph.models import NodeKind
from codegraph.index._internal.registry import (
    SymbolEntry,
    SymbolRegistry,
    calculate_import_distance,
    module_path,
    qualified_name_for,
)


def _entry(
    file_path: str,
    name: str,
    kind: NodeKind = NodeKind.FUNCTION,
    parent_class: str | None = None,
    start_line: int = 1,
) -> SymbolEntry:
    return SymbolEntry(
        node_id=f"{kind.value.lower()}:{file_path}:{name}:{start_line}",
        qualified_name=qualified_name_for(file_path, name, parent_class),
        file_path=file_path,
        bare_name=name,
        kind=kind,
        start_line=start_line,
        parent_class=parent_class,
    )


class TestNames:
    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("src/app/models.py", "src.app.models"),
            ("index.ts", "index"),
            ("Makefile", "Makefile"),
        ],
    )
    def test_module_path(self, path: str, expected: str) -> None:
        assert module_path(path) == expected

    def test_qualified_name(self) -> None:
        assert qualified_name_for("src/app.py", "save", "User") == "src.app.User.save"
        assert qualified_name_for("src/app.py", "main") == "src.app.main"


class TestImportDistance:
    @pytest.mark.parametrize(
        ("caller", "candidate", "distance"),
        [
            ("a/main.py", "a/main.py", 0),
            ("a/main.py", "a/x.py", 0),
            ("a/b/c.py", "a/x.py", 1),
            ("a/main.py", "b/x.py", 2),
            ("a/b/c/d.py", "z/y.py", 4),
        ],
    )
    def test_distance(self, caller: str, candidate: str, distance: int) -> None:
        assert calculate_import_distance(caller, candidate) == distance

    def test_sibling_is_closer_than_cousin(self) -> None:
        sibling = calculate_import_distance("pkg/a/main.py", "pkg/a/util.py")
        cousin = calculate_import_distance("pkg/a/main.py", "pkg/b/util.py")
        assert sibling < cousin


class TestSymbolRegistry:
    """Trie and index lookups."""

    @pytest.fixture
    def registry(self) -> SymbolRegistry:
        registry = SymbolRegistry()
        registry.add_definition(_entry("src/app.py", "User", NodeKind.CLASS))
        registry.add_definition(_entry("src/app.py", "save", NodeKind.METHOD, "User", 3))
        registry.add_definition(_entry("src/db.py", "save", NodeKind.FUNCTION))
        registry.add_definition(_entry("lib/db.py", "save", NodeKind.FUNCTION))
        return registry

    def test_len(self, registry: SymbolRegistry) -> None:
        assert len(registry) == 4

    def test_exact_match(self, registry: SymbolRegistry) -> None:
        (entry,) = registry.get_exact_match("src.app.User.save")
        assert entry.parent_class == "User"
        assert registry.get_exact_match("src.app.User.load") == []
        # A prefix is not a match
        assert registry.get_exact_match("src.app") == []

    def test_redefinitions_share_a_name(self) -> None:
        registry = SymbolRegistry()
        registry.add_definition(_entry("a.py", "f", start_line=1))
        registry.add_definition(_entry("a.py", "f", start_line=9))
        assert [e.start_line for e in registry.get_exact_match("a.f")] == [1, 9]

    def test_bare_name_keeps_registration_order(self, registry: SymbolRegistry) -> None:
        assert [e.file_path for e in registry.find_by_bare_name("save")] == [
            "src/app.py",
            "src/db.py",
            "lib/db.py",
        ]

    def test_find_in_file(self, registry: SymbolRegistry) -> None:
        assert len(registry.find_in_file("src/app.py")) == 2
        assert [e.kind for e in registry.find_in_file("src/app.py", "save")] == [NodeKind.METHOD]
        assert registry.find_in_file("missing.py") == []

    def test_find_ending_with(self, registry: SymbolRegistry) -> None:
        assert [e.file_path for e in registry.find_ending_with("db.save")] == [
            "src/db.py",
            "lib/db.py",
        ]
        assert len(registry.find_ending_with("User.save")) == 1

    def test_remove_file_definitions_prunes(self, registry: SymbolRegistry) -> None:
        assert registry.remove_file_definitions("src/app.py") == 2
        assert registry.get_exact_match("src.app.User.save") == []
        assert registry.find_by_bare_name("User") == []
        assert len(registry.find_by_bare_name("save")) == 2
        assert "src/app.py" not in registry.files()
        assert len(registry) == 2

    def test_best_candidate_prefers_nearest_file(self, registry: SymbolRegistry) -> None:
        candidates = registry.find_by_bare_name("save")
        best = registry.best_candidate(candidates, "lib/main.py")
        assert best is not None
        assert best.file_path == "lib/db.py"

    def test_ties_keep_registration_order(self, registry: SymbolRegistry) -> None:
        candidates = [e for e in registry.find_by_bare_name("save") if e.file_path != "lib/db.py"]
        ranked = registry.rank_candidates(candidates, "src/main.py")
        assert [e.file_path for e in ranked] == ["src/app.py", "src/db.py"]

    def test_clear(self, registry: SymbolRegistry) -> None:
        registry.clear()
        assert len(registry) == 0
        assert registry.all_definitions() == []
