"""codegraph query command - index a directory and run one query."""

import json
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from codegraph.cli.utils import build_graph, load_project_config
from codegraph.core.errors import QueryParseError
from codegraph.graph.models import GraphNode
from codegraph.graph.query import QueryEngine
from codegraph.index.cache import CacheService


def _cell(value: Any) -> str:
    if isinstance(value, GraphNode):
        return f"{value.kind.value}:{value.name}"
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return "" if value is None else str(value)


@click.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("text")
@click.option("--limit", type=int, default=None, help="Maximum rows (default from config)")
@click.option("--offset", type=int, default=0, show_default=True, help="Rows to skip")
@click.option("--dirs", default=None, help="Comma-separated directory prefixes to include")
@click.option("--exts", default=None, help="Comma-separated extensions to include")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def query_command(
    path: Path,
    text: str,
    limit: int | None,
    offset: int,
    dirs: str | None,
    exts: str | None,
    as_json: bool,
) -> None:
    """Run a query against a freshly indexed source tree.

    PATH is the project root; TEXT is the query, e.g.
    "MATCH (f:Function) RETURN f.name".
    """
    root = path.resolve()
    config = load_project_config(root)
    graph, _stats = build_graph(root, config, dirs=dirs, exts=exts)
    engine = QueryEngine(graph, config.query, CacheService(config.cache))
    try:
        result = engine.execute_query(text, limit=limit, offset=offset)
    except QueryParseError as e:
        raise click.ClickException(e.message) from e

    if as_json:
        click.echo(json.dumps(result.to_dict()["data"], indent=2))
        return

    console = Console()
    if not result.data:
        console.print("[yellow]No results[/yellow]")
        return
    columns = list(result.data[0])
    table = Table()
    for column in columns:
        table.add_column(column)
    for row in result.data:
        table.add_row(*(_cell(row.get(c)) for c in columns))
    console.print(table)
    console.print(f"[dim]{len(result.data)} row(s)[/dim]")
