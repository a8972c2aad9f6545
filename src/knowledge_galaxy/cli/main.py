"""
galaxy - inspect knowledge galaxies from the terminal
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from knowledge_galaxy import __version__
from knowledge_galaxy.adapters import (
    AdapterConfig,
    HttpSourceAdapter,
    StatisticsCapability,
    build_default_registry,
)
from knowledge_galaxy.errors import GalaxyError, UnknownAdapter
from knowledge_galaxy.fs import LocalFileSystem
from knowledge_galaxy.graph.models import GraphData, Node
from knowledge_galaxy.ingestion import ConfigIngestionService, DocumentIngestionService, ManifestLoader
from knowledge_galaxy.layout import LayoutAlgorithm
from knowledge_galaxy.settings import settings
from knowledge_galaxy.store import GalaxyStore

console = Console()


def _configure_logging(level: str | None = None) -> None:
    level = (level or settings.log_level or "INFO").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def build_store(layout: str | None = None) -> GalaxyStore:
    fs = LocalFileSystem()
    return GalaxyStore(
        DocumentIngestionService(fs),
        ConfigIngestionService(ManifestLoader(fs)),
        layout=layout,
    )


def _kind_table(title: str, counts: Counter) -> Table:
    table = Table(title=title)
    table.add_column("Kind", style="magenta")
    table.add_column("Count", style="cyan", justify="right")
    for kind, n in sorted(counts.items()):
        table.add_row(kind, str(n))
    return table


def _node_table(nodes: list[Node], limit: int) -> Table:
    table = Table(title=f"Nodes ({len(nodes)})")
    table.add_column("Id", style="blue", overflow="fold")
    table.add_column("Kind", style="magenta", width=10)
    table.add_column("Title", style="white", overflow="fold")
    table.add_column("Position", style="green")
    for n in nodes[:limit]:
        x, y, z = n.position
        table.add_row(n.id, n.kind.value, n.title, f"({x:.1f}, {y:.1f}, {z:.1f})")
    return table


@click.group()
@click.option("--log-level", default=None, help="Override KNOWLEDGE_GALAXY_LOG_LEVEL")
@click.version_option(__version__, prog_name="galaxy")
def cli(log_level):
    """Knowledge Galaxy - agent config and docs as one 3D graph"""
    _configure_logging(log_level)


@cli.command()
@click.argument("root", required=False)
@click.option(
    "--layout",
    type=click.Choice([a.value for a in LayoutAlgorithm]),
    default=None,
    help="Layout algorithm (default from settings)",
)
@click.option("--search", "query", default=None, help="Only list nodes matching this text")
@click.option("--limit", default=20, help="Number of nodes to list")
def load(root, layout, query, limit):
    """Ingest ROOT (default ~/.claude) and print the laid-out graph"""
    store = build_store(layout)
    if not asyncio.run(store.load(root)):
        console.print(f"[red]Load failed:[/red] {store.error}")
        raise SystemExit(1)

    console.print(_kind_table("Nodes by kind", Counter(n.kind.value for n in store.nodes)))
    console.print(_kind_table("Connections by kind", Counter(c.kind.value for c in store.connections)))

    stats = store.config_stats
    if stats is not None:
        console.print(
            Panel(
                f"Skills: {stats.enabled_skills}/{stats.total_skills} enabled\n"
                f"MCP servers: {stats.enabled_mcps}/{stats.total_mcps} enabled\n"
                f"Plugins: {stats.enabled_plugins}/{stats.total_plugins} enabled",
                title="Agent configuration",
            )
        )

    nodes = store.search(query) if query else store.nodes
    if not nodes:
        console.print("[yellow]No matching nodes[/yellow]")
        return
    console.print(_node_table(nodes, limit))


@cli.command()
def adapters():
    """List registered source adapters"""
    table = Table(title="Adapters")
    table.add_column("Name", style="cyan")
    table.add_column("Display name", style="white")
    table.add_column("Type", style="magenta", width=6)
    table.add_column("Description", style="white", overflow="fold")
    for info in build_default_registry().describe():
        table.add_row(info.name, info.display_name, info.source_type, info.description)
    console.print(table)


@cli.command()
@click.argument("name")
@click.option("--endpoint", default=None, help="API endpoint for api adapters")
@click.option("--file", "file_path", default=None, help="JSON file for file adapters")
@click.option("--retries", default=5, help="Attempts on transient HTTP errors")
def fetch(name, endpoint, file_path, retries):
    """Run one adapter and print what it produced"""
    config = AdapterConfig(api_endpoint=endpoint, file_path=file_path, custom={"retries": retries})
    try:
        adapter = build_default_registry().get(name, config)
    except UnknownAdapter as e:
        raise click.BadParameter(str(e), param_hint="NAME") from e

    async def _run():
        try:
            data = await adapter.fetch_data()
            stats = await adapter.get_statistics() if isinstance(adapter, StatisticsCapability) else None
        finally:
            if isinstance(adapter, HttpSourceAdapter):
                await adapter.aclose()
        return data, stats

    try:
        data, stats = asyncio.run(_run())
    except GalaxyError as e:
        console.print(f"[red]{type(e).__name__}:[/red] {e}")
        raise SystemExit(1)

    _print_fetch(adapter.display_name, data, stats)


def _print_fetch(title: str, data: GraphData, stats) -> None:
    console.print(f"[bold]{title}[/bold]: {len(data.nodes)} nodes, {len(data.connections)} connections")
    if stats is not None:
        console.print(f"Categories: {', '.join(stats.categories) or '-'}")
    console.print(_kind_table("Nodes by kind", Counter(n.kind.value for n in data.nodes)))


if __name__ == "__main__":
    cli()
