"""Indexing pipeline entry point.

Phases of one run, in order:

1. filter and partition the discovered paths
2. Project / Folder / File skeleton
3. per source file, in batches: parse (or regex fallback), extract
   definitions, add nodes / CONTAINS / DECORATES, register symbols,
   collect imports and call sites
4. inheritance linking (INHERITS, OVERRIDES, IMPLEMENTS)
5. call resolution (CALLS)
6. IMPORTS edges
7. config-file definitions
8. graph validation

Cancellation is polled before every batch. A cancelled run skips the
remaining phases but still validates what it built.
"""

from __future__ import annotations

import os
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from codegraph.config.constants import ALLOWED_HIDDEN_DIRS, IGNORED_SEGMENTS
from codegraph.config.models import CodeGraphConfig
from codegraph.core.errors import IndexingError
from codegraph.core.logging import run_scope
from codegraph.index._internal.calls import CallResolver, collect_call_sites, scan_call_sites
from codegraph.index._internal.extraction import (
    DefinitionExtractor,
    extract_config_definitions,
    generated_reason,
)
from codegraph.index._internal.grammars import GrammarRegistry, language_for_path
from codegraph.index._internal.ignore import PathFilter, iter_batches, normalize_path
from codegraph.index._internal.imports import ModuleResolver, extract_imports, scan_imports
from codegraph.index._internal.registry import SymbolRegistry
from codegraph.index._internal.relationships import HierarchyStats, RelationshipBuilder
from codegraph.index._internal.structure import StructureBuilder
from codegraph.index.cache import CacheService

if TYPE_CHECKING:
    from tree_sitter import Tree

    from codegraph.graph.knowledge import KnowledgeGraph

log = structlog.get_logger(__name__)

ProgressCallback = Callable[[str, int, int], None]


@dataclass
class PipelineOptions:
    """Per-run options.

    ``on_progress`` receives ``(phase, done, total)``.
    """

    directory_filter: str | Sequence[str] | None = None
    extension_filter: str | Sequence[str] | None = None
    project_name: str = "project"
    should_cancel: Callable[[], bool] | None = None
    on_progress: ProgressCallback | None = None


@dataclass
class RunStats:
    """Counters for one pipeline run."""

    run_id: str = ""
    files_attempted: int = 0
    files_succeeded: int = 0
    files_failed: int = 0
    files_fallback: int = 0
    files_generated: int = 0
    files_too_large: int = 0
    files_ignored: int = 0
    config_files: int = 0
    config_files_failed: int = 0
    definitions: int = 0
    calls_resolved: int = 0
    calls_unresolved: int = 0
    imports_linked: int = 0
    inherits: int = 0
    implements: int = 0
    overrides: int = 0
    batches: int = 0
    cancelled: bool = False
    duration_sec: float = 0.0
    unavailable_languages: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class _RunState:
    graph: KnowledgeGraph
    contents: dict[str, str]
    file_ids: dict[str, str]
    builder: RelationshipBuilder
    resolver: CallResolver
    stats: RunStats


class IndexingPipeline:
    """Builds a knowledge graph from file contents.

    Usage::

        pipeline = IndexingPipeline(load_config())
        graph = KnowledgeGraph()
        stats = pipeline.process(graph, paths, contents)
        pipeline.registry.find_by_bare_name("helper")
    """

    def __init__(
        self,
        config: CodeGraphConfig | None = None,
        cache: CacheService | None = None,
    ) -> None:
        self._config = config or CodeGraphConfig()
        self._cache = cache or CacheService(self._config.cache)
        self._grammars = GrammarRegistry(self._cache)
        self._extractor = DefinitionExtractor()
        self.registry = SymbolRegistry()

    @property
    def config(self) -> CodeGraphConfig:
        return self._config

    @property
    def cache(self) -> CacheService:
        return self._cache

    @property
    def grammars(self) -> GrammarRegistry:
        return self._grammars

    def get_ast(self, file_path: str) -> Tree | None:
        """Cached syntax tree of a file from the latest run, if not evicted."""
        return self._cache.asts.get(normalize_path(file_path))

    def get_cached_asts(self) -> dict[str, Tree]:
        return dict(self._cache.asts.items())

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def process(
        self,
        graph: KnowledgeGraph,
        file_paths: Sequence[str],
        file_contents: Mapping[str, str],
        options: PipelineOptions | None = None,
    ) -> RunStats:
        """Index the given files into ``graph``.

        Raises:
            GraphInvariantError: if the finished graph has dangling edges.
        """
        options = options or PipelineOptions()
        with run_scope() as run_id:
            started = time.perf_counter()
            stats = RunStats(run_id=run_id)
            try:
                self._run(graph, file_paths, file_contents, options, stats)
            finally:
                stats.duration_sec = round(time.perf_counter() - started, 4)
                stats.unavailable_languages = self._grammars.unavailable_languages()
                log.info(
                    "pipeline_completed",
                    files=stats.files_attempted,
                    failed=stats.files_failed,
                    definitions=stats.definitions,
                    calls_resolved=stats.calls_resolved,
                    cancelled=stats.cancelled,
                    duration_sec=stats.duration_sec,
                    **graph.summary(),
                )
        return stats

    def _run(
        self,
        graph: KnowledgeGraph,
        file_paths: Sequence[str],
        file_contents: Mapping[str, str],
        options: PipelineOptions,
        stats: RunStats,
    ) -> None:
        index_cfg = self._config.index
        self.registry.clear()

        selected = PathFilter(options.directory_filter, options.extension_filter).filter(
            file_paths, file_contents
        )
        stats.files_ignored = selected.ignored_count
        log.info(
            "pipeline_started",
            source_files=len(selected.source_files),
            config_files=len(selected.config_files),
            ignored=selected.ignored_count,
        )

        structure = StructureBuilder(graph).build(options.project_name, selected.all_files)
        state = _RunState(
            graph=graph,
            contents={normalize_path(k): v for k, v in file_contents.items()},
            file_ids=structure.file_ids,
            builder=RelationshipBuilder(graph, self.registry),
            resolver=CallResolver(graph, self.registry, ModuleResolver(selected.source_files)),
            stats=stats,
        )

        total = len(selected.source_files)
        done = 0
        for batch in iter_batches(
            selected.source_files, index_cfg.batch_size, index_cfg.batch_pause_sec
        ):
            if options.should_cancel is not None and options.should_cancel():
                stats.cancelled = True
                log.warning("pipeline_cancelled", processed=done, remaining=total - done)
                break
            stats.batches += 1
            log.debug("batch_started", batch=stats.batches, size=len(batch))
            for path in batch:
                self._process_file(state, path)
                done += 1
            if options.on_progress is not None:
                options.on_progress("parse", done, total)

        if not stats.cancelled:
            self._link(state, selected.source_files, options)
            self._process_config_files(state, selected.config_files)

        graph.validate()

    def _link(
        self, state: _RunState, source_files: list[str], options: PipelineOptions
    ) -> None:
        hierarchy = HierarchyStats()
        for path in source_files:
            hierarchy.merge(state.builder.link_hierarchy(path))
        state.stats.inherits = hierarchy.inherits
        state.stats.implements = hierarchy.implements
        state.stats.overrides = hierarchy.overrides
        log.debug("hierarchy_linked", **asdict(hierarchy))
        if options.on_progress is not None:
            options.on_progress("hierarchy", len(source_files), len(source_files))

        calls = state.resolver.resolve_all()
        state.stats.calls_resolved = calls.resolved
        state.stats.calls_unresolved = calls.unresolved
        state.stats.imports_linked = state.resolver.link_imports()
        if options.on_progress is not None:
            options.on_progress("calls", calls.total, calls.total)

    # ------------------------------------------------------------------
    # Per file
    # ------------------------------------------------------------------

    def _parse(self, state: _RunState, path: str, language: str, content: str) -> Tree | None:
        """Syntax tree, or None when the caller should fall back to regex scanning."""
        if not self._grammars.is_available(language):
            return None
        try:
            return self._grammars.parse(language, content)
        except IndexingError:
            return None
        except Exception as e:
            # Any parser failure is contained to this file
            state.stats.files_failed += 1
            file_node = state.graph.get_node(state.file_ids[path])
            if file_node is not None:
                file_node.properties["parseError"] = True
            log.warning("file_parse_failed", path=path, language=language, error=str(e))
            return None

    def _process_file(self, state: _RunState, path: str) -> None:
        stats = state.stats
        stats.files_attempted += 1
        content = state.contents.get(path, "")
        language = language_for_path(path)
        file_id = state.file_ids[path]
        file_node = state.graph.get_node(file_id)
        props = file_node.properties if file_node is not None else {}
        props["size"] = len(content)
        index_cfg = self._config.index

        if language is None:
            stats.files_succeeded += 1
            return

        if len(content) > index_cfg.max_file_chars:
            props["tooLarge"] = True
            stats.files_too_large += 1
            stats.files_succeeded += 1
            log.info("file_too_large", path=path, size=len(content))
            return

        reason = generated_reason(path, content, index_cfg.generated_line_threshold)
        if reason is not None:
            props["generated"] = True
            stats.files_generated += 1
            stats.files_succeeded += 1
            log.debug("file_generated", path=path, reason=reason)
            return

        failed_before = stats.files_failed
        tree = self._parse(state, path, language, content)
        result = self._extractor.extract(path, content, language, tree)
        if tree is not None:
            self._cache.asts.put(path, tree)
            if tree.root_node.has_error:
                props["syntaxErrors"] = True
            imports = extract_imports(path, tree.root_node, language)
            sites = collect_call_sites(path, tree.root_node, language)
        else:
            imports = scan_imports(path, content, language)
            sites = scan_call_sites(path, content, language)

        if result.used_fallback:
            props["fallback"] = True
            stats.files_fallback += 1
        props["definitionCount"] = len(result)

        state.builder.add_file_definitions(path, file_id, result.definitions, language)
        state.resolver.register_file(path, imports, sites, language)
        stats.definitions += len(result)
        if stats.files_failed == failed_before:
            stats.files_succeeded += 1

    def _process_config_files(self, state: _RunState, config_files: list[str]) -> None:
        index_cfg = self._config.index
        stats = state.stats
        for path in config_files:
            stats.config_files += 1
            file_id = state.file_ids[path]
            file_node = state.graph.get_node(file_id)
            props = file_node.properties if file_node is not None else {}
            content = state.contents.get(path, "")
            props.setdefault("size", len(content))

            # Same skip rules as source files; a source-and-config file is only counted once
            if len(content) > index_cfg.max_file_chars:
                if not props.get("tooLarge"):
                    props["tooLarge"] = True
                    stats.files_too_large += 1
                    log.info("file_too_large", path=path, size=len(content))
                continue
            reason = generated_reason(path, content, index_cfg.generated_line_threshold)
            if reason is not None:
                if not props.get("generated"):
                    props["generated"] = True
                    stats.files_generated += 1
                    log.debug("file_generated", path=path, reason=reason)
                continue

            try:
                definitions = extract_config_definitions(path, content)
            except IndexingError as e:
                stats.config_files_failed += 1
                props["parseError"] = True
                log.warning("config_parse_failed", path=path, error=e.message)
                continue
            if not definitions:
                continue
            state.builder.add_file_definitions(path, file_id, definitions, None)
            stats.definitions += len(definitions)


def load_directory(root: str | Path) -> tuple[list[str], dict[str, str]]:
    """Read a local tree for indexing.

    Ignored and hidden directories are pruned during the walk; files that
    are not valid UTF-8 are skipped.

    Returns:
        (relative POSIX paths, path -> content)
    """
    root_path = Path(root)
    paths: list[str] = []
    contents: dict[str, str] = {}
    for dirpath, dirnames, filenames in os.walk(root_path):
        # Prune in place to skip whole subtrees
        dirnames[:] = sorted(
            d
            for d in dirnames
            if d.lower() not in IGNORED_SEGMENTS
            and (not d.startswith(".") or d.lower() in ALLOWED_HIDDEN_DIRS)
        )
        for filename in sorted(filenames):
            full_path = Path(dirpath) / filename
            rel_str = full_path.relative_to(root_path).as_posix()
            try:
                contents[rel_str] = full_path.read_text(encoding="utf-8")
            except (UnicodeDecodeError, OSError) as e:
                log.debug("file_unreadable", path=rel_str, error=str(e))
                continue
            paths.append(rel_str)
    return paths, contents
