"""codegraph stats command - summarize an exported graph."""

import json
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from codegraph.core.errors import CodeGraphError
from codegraph.graph.serialization import load_graph


@click.command()
@click.argument("graph_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def stats_command(graph_file: Path, as_json: bool) -> None:
    """Show node and relationship counts of a graph written by ``index --output``."""
    try:
        payload = json.loads(graph_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise click.ClickException(f"{graph_file} is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise click.ClickException(f"{graph_file} is not a graph export")
    try:
        graph = load_graph(payload)
    except CodeGraphError as e:
        raise click.ClickException(e.message) from e

    summary = graph.summary()
    if as_json:
        click.echo(json.dumps(summary, indent=2))
        return

    console = Console()
    table = Table(title=str(graph_file))
    table.add_column("Kind")
    table.add_column("Type", style="dim")
    table.add_column("Count", justify="right")
    for kind, count in summary["node_kinds"].items():
        table.add_row(kind, "node", str(count))
    for kind, count in summary["relationship_kinds"].items():
        table.add_row(kind, "relationship", str(count))
    console.print(table)
    console.print(f"{summary['nodes']} nodes, {summary['relationships']} relationships")
