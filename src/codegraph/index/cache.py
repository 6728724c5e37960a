"""Bounded caches shared by the pipeline components.

One CacheService is built per pipeline (or shared across pipelines in the
same process) and handed to the components that need it. Every cache is a
size-bounded LRU; evicting an entry never affects a graph already built
from it, only a later re-parse or re-query pays the cost again.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from collections.abc import Hashable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from codegraph.config.models import CacheConfig

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass
class CacheStats:
    """Hit/miss/eviction counters for one cache."""

    size: int
    max_entries: int
    hits: int
    misses: int
    evictions: int


class LRUCache(Generic[K, V]):
    """Thread-safe least-recently-used cache."""

    def __init__(self, max_entries: int) -> None:
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self._entries: OrderedDict[K, V] = OrderedDict()
        self._lock = threading.Lock()
        self._max = max_entries
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @property
    def max_entries(self) -> int:
        return self._max

    def get(self, key: K) -> V | None:
        with self._lock:
            if key not in self._entries:
                self._misses += 1
                return None
            self._entries.move_to_end(key)
            self._hits += 1
            return self._entries[key]

    def put(self, key: K, value: V) -> None:
        with self._lock:
            self._entries[key] = value
            self._entries.move_to_end(key)
            # Evict oldest if over capacity
            while len(self._entries) > self._max:
                self._entries.popitem(last=False)
                self._evictions += 1

    def pop(self, key: K) -> V | None:
        with self._lock:
            return self._entries.pop(key, None)

    def keys(self) -> list[K]:
        """Keys from least to most recently used."""
        with self._lock:
            return list(self._entries)

    def items(self) -> list[tuple[K, V]]:
        with self._lock:
            return list(self._entries.items())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                size=len(self._entries),
                max_entries=self._max,
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
            )

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class CacheService:
    """Syntax-tree, parser and query-result caches."""

    def __init__(self, config: CacheConfig | None = None) -> None:
        from codegraph.config.models import CacheConfig

        config = config or CacheConfig()
        self.asts: LRUCache[str, Any] = LRUCache(config.ast_size)
        self.parsers: LRUCache[str, Any] = LRUCache(config.parser_size)
        self.queries: LRUCache[tuple[str, int, int, int], Any] = LRUCache(config.query_size)

    def clear(self) -> None:
        self.asts.clear()
        self.parsers.clear()
        self.queries.clear()

    def stats(self) -> dict[str, CacheStats]:
        return {
            "asts": self.asts.stats(),
            "parsers": self.parsers.stats(),
            "queries": self.queries.stats(),
        }
