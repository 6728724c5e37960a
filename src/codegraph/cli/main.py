"""codegraph CLI - index source trees and query the resulting graph."""

import click

from codegraph import __version__
from codegraph.cli.index import index_command
from codegraph.cli.query import query_command
from codegraph.cli.stats import stats_command
from codegraph.core.logging import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="codegraph")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """codegraph - Build a code knowledge graph and query it."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "WARNING")


cli.add_command(index_command, name="index")
cli.add_command(query_command, name="query")
cli.add_command(stats_command, name="stats")


if __name__ == "__main__":
    cli()
