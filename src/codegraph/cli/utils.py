"""CLI utilities."""

from pathlib import Path

import click

from codegraph.config import CodeGraphConfig, load_config
from codegraph.core.errors import CodeGraphError
from codegraph.graph.knowledge import KnowledgeGraph
from codegraph.index.pipeline import IndexingPipeline, PipelineOptions, RunStats, load_directory


def split_csv(value: str | None) -> list[str] | None:
    """Turn ``"src,lib"`` into ``["src", "lib"]``; None or blank stays None."""
    if not value:
        return None
    parts = [p.strip() for p in value.split(",") if p.strip()]
    return parts or None


def load_project_config(root: Path) -> CodeGraphConfig:
    """Load config for a project root, converting errors to ClickException."""
    try:
        return load_config(repo_root=root)
    except CodeGraphError as e:
        raise click.ClickException(e.message) from e


def build_graph(
    root: Path,
    config: CodeGraphConfig,
    *,
    dirs: str | None = None,
    exts: str | None = None,
) -> tuple[KnowledgeGraph, RunStats]:
    """Index a local directory into a fresh graph.

    Raises:
        click.ClickException: if the run fails with a CodeGraphError.
    """
    paths, contents = load_directory(root)
    graph = KnowledgeGraph()
    options = PipelineOptions(
        directory_filter=split_csv(dirs),
        extension_filter=split_csv(exts),
        project_name=root.name or "project",
    )
    try:
        stats = IndexingPipeline(config).process(graph, paths, contents, options)
    except CodeGraphError as e:
        raise click.ClickException(str(e)) from e
    return graph, stats
