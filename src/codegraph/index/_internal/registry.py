"""Symbol registry: qualified-name trie plus bare-name and file indexes.

Qualified names are ``<path without extension, '/' -> '.'>.<parent?>.<name>``.
The trie is authoritative for exact lookups; the two dict indexes mirror
the same entries for constant-time "by bare name" and "in this file"
queries. Several entries may share one qualified name (redefinitions,
overloads), so every lookup returns a list in registration order.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from codegraph.graph.models import NodeKind


@dataclass(frozen=True)
class SymbolEntry:
    """A registered definition, pointing at its graph node."""

    node_id: str
    qualified_name: str
    file_path: str
    bare_name: str
    kind: NodeKind
    start_line: int
    end_line: int | None = None
    parent_class: str | None = None

    def spans(self, line: int) -> bool:
        """True when ``line`` falls inside this definition."""
        end = self.end_line if self.end_line is not None else self.start_line
        return self.start_line <= line <= end


@dataclass
class _TrieNode:
    children: dict[str, _TrieNode] = field(default_factory=dict)
    entries: list[SymbolEntry] = field(default_factory=list)


def module_path(file_path: str) -> str:
    """Dotted module path of a file: ``src/app/models.py`` -> ``src.app.models``."""
    path = PurePosixPath(file_path)
    stem = str(path.with_suffix("")) if path.suffix else str(path)
    return ".".join(part for part in stem.split("/") if part)


def qualified_name_for(file_path: str, name: str, parent_class: str | None = None) -> str:
    parts = [module_path(file_path)]
    if parent_class:
        parts.append(parent_class)
    parts.append(name)
    return ".".join(p for p in parts if p)


def calculate_import_distance(caller_path: str, candidate_path: str) -> int:
    """Path proximity between two files, lower is closer.

    ``max(len) - common_prefix``, minus one when the shorter path diverges
    only at its last segment (a sibling module).
    """
    caller_parts = [p for p in caller_path.split("/") if p]
    candidate_parts = [p for p in candidate_path.split("/") if p]

    common = 0
    for left, right in zip(caller_parts, candidate_parts, strict=False):
        if left != right:
            break
        common += 1

    distance = max(len(caller_parts), len(candidate_parts)) - common
    if common == min(len(caller_parts), len(candidate_parts)) - 1:
        distance -= 1
    return distance


class SymbolRegistry:
    """Indexed trie over qualified symbol names.

    Usage::

        registry = SymbolRegistry()
        registry.add_definition(entry)
        registry.get_exact_match("src.app.models.User.save")
        registry.find_by_bare_name("save")
    """

    def __init__(self) -> None:
        self._root = _TrieNode()
        self._by_bare_name: dict[str, list[SymbolEntry]] = {}
        self._by_file: dict[str, list[SymbolEntry]] = {}
        self._count = 0

    def __len__(self) -> int:
        return self._count

    def add_definition(self, entry: SymbolEntry) -> None:
        node = self._root
        for part in entry.qualified_name.split("."):
            node = node.children.setdefault(part, _TrieNode())
        node.entries.append(entry)
        self._by_bare_name.setdefault(entry.bare_name, []).append(entry)
        self._by_file.setdefault(entry.file_path, []).append(entry)
        self._count += 1

    def get_exact_match(self, qualified_name: str) -> list[SymbolEntry]:
        node = self._root
        for part in qualified_name.split("."):
            child = node.children.get(part)
            if child is None:
                return []
            node = child
        return list(node.entries)

    def find_by_bare_name(self, name: str) -> list[SymbolEntry]:
        return list(self._by_bare_name.get(name, ()))

    def find_in_file(self, file_path: str, name: str | None = None) -> list[SymbolEntry]:
        entries = self._by_file.get(file_path, ())
        return [e for e in entries if name is None or e.bare_name == name]

    def find_ending_with(self, suffix: str) -> list[SymbolEntry]:
        """Entries whose qualified name ends with the dotted ``suffix``."""
        tail = suffix.split(".")
        return [
            e
            for e in self._by_bare_name.get(tail[-1], ())
            if e.qualified_name.split(".")[-len(tail) :] == tail
        ]

    def files(self) -> list[str]:
        return list(self._by_file)

    def remove_file_definitions(self, file_path: str) -> int:
        """Drop every entry registered for a file.

        Empty trie branches and empty index buckets are pruned.

        Returns:
            Number of entries removed.
        """
        entries = self._by_file.pop(file_path, [])
        for entry in entries:
            self._remove_from_trie(entry)
            bucket = self._by_bare_name.get(entry.bare_name)
            if bucket is not None:
                bucket[:] = [e for e in bucket if e.file_path != file_path]
                if not bucket:
                    del self._by_bare_name[entry.bare_name]
        self._count -= len(entries)
        return len(entries)

    def _remove_from_trie(self, entry: SymbolEntry) -> None:
        path: list[tuple[_TrieNode, str]] = []
        node = self._root
        for part in entry.qualified_name.split("."):
            child = node.children.get(part)
            if child is None:
                return
            path.append((node, part))
            node = child
        node.entries[:] = [e for e in node.entries if e is not entry]

        for parent, part in reversed(path):
            child = parent.children[part]
            if child.entries or child.children:
                break
            del parent.children[part]

    def all_definitions(self) -> list[SymbolEntry]:
        return [entry for entries in self._by_file.values() for entry in entries]

    def clear(self) -> None:
        self._root = _TrieNode()
        self._by_bare_name.clear()
        self._by_file.clear()
        self._count = 0

    @staticmethod
    def rank_candidates(
        candidates: Iterable[SymbolEntry], caller_path: str
    ) -> list[SymbolEntry]:
        """Candidates ordered by import distance; ties keep registration order."""
        return sorted(candidates, key=lambda e: calculate_import_distance(caller_path, e.file_path))

    def best_candidate(
        self, candidates: Sequence[SymbolEntry], caller_path: str
    ) -> SymbolEntry | None:
        ranked = self.rank_candidates(candidates, caller_path)
        return ranked[0] if ranked else None
