"""codegraph index command - build a graph from a directory."""

import json
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from codegraph.cli.utils import build_graph, load_project_config
from codegraph.graph.serialization import dump_graph


@click.command()
@click.argument("path", default=".", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--dirs", default=None, help="Comma-separated directory prefixes to include")
@click.option("--exts", default=None, help="Comma-separated extensions to include (e.g. .py,.js)")
@click.option("--json", "as_json", is_flag=True, help="Print run stats and graph summary as JSON")
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the full graph export to this file",
)
def index_command(
    path: Path, dirs: str | None, exts: str | None, as_json: bool, output: Path | None
) -> None:
    """Index a source tree and report what was built.

    PATH is the project root (default: current directory).
    """
    root = path.resolve()
    config = load_project_config(root)
    graph, stats = build_graph(root, config, dirs=dirs, exts=exts)

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(json.dumps(dump_graph(graph), indent=2))

    summary = graph.summary()
    if as_json:
        click.echo(json.dumps({"stats": stats.to_dict(), "graph": summary}, indent=2))
        return

    console = Console()
    console.print(f"[bold]Indexed[/bold] {root}")

    nodes = Table(title="Nodes")
    nodes.add_column("Kind")
    nodes.add_column("Count", justify="right")
    for kind, count in summary["node_kinds"].items():
        nodes.add_row(kind, str(count))
    console.print(nodes)

    rels = Table(title="Relationships")
    rels.add_column("Kind")
    rels.add_column("Count", justify="right")
    for kind, count in summary["relationship_kinds"].items():
        rels.add_row(kind, str(count))
    console.print(rels)

    console.print(
        f"files: {stats.files_attempted} "
        f"(failed {stats.files_failed}, fallback {stats.files_fallback}, "
        f"generated {stats.files_generated})  "
        f"calls: {stats.calls_resolved} resolved / {stats.calls_unresolved} unresolved  "
        f"[dim]{stats.duration_sec}s[/dim]"
    )
    if stats.unavailable_languages:
        for language, reason in stats.unavailable_languages.items():
            console.print(f"[yellow]Grammar unavailable[/yellow] {language}: {reason}")
    if output is not None:
        console.print(f"Graph written to [cyan]{output}[/cyan]")
