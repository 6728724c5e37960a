"""Index module - builds the knowledge graph from source files.

This module provides:
- Path selection and batching
- Tree-sitter parsing with a regex fallback
- Definition, import and call-site extraction
- Symbol registry and heuristic call resolution

Public API is in `codegraph.index.pipeline`:
- IndexingPipeline: run orchestration
- PipelineOptions, RunStats: run input and output
- load_directory: read a local tree

Internal implementations are in `codegraph.index._internal/`.
"""

from codegraph.index._internal.registry import (
    SymbolEntry,
    SymbolRegistry,
    calculate_import_distance,
)
from codegraph.index.cache import CacheService, CacheStats, LRUCache
from codegraph.index.pipeline import IndexingPipeline, PipelineOptions, RunStats, load_directory

__all__ = [
    # Public API (pipeline.py)
    "IndexingPipeline",
    "PipelineOptions",
    "RunStats",
    "load_directory",
    # Registry
    "SymbolEntry",
    "SymbolRegistry",
    "calculate_import_distance",
    # Caches
    "CacheService",
    "CacheStats",
    "LRUCache",
]
