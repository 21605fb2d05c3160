"""Command line interface for CrateNav."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from cratenav.config import AppConfig
from cratenav.errors import CrateNavError
from cratenav.graph.links import reference_targets
from cratenav.graph.tree import find_path
from cratenav.graph.values import entity_values, render_value
from cratenav.loader.expand import JsonLdExpander, offline_expander
from cratenav.loader.fetch import DefaultFetcher
from cratenav.models import NodeKind, TreeNode
from cratenav.navigation.navigator import CrateNavigator
from cratenav.web.app import app as web_app


console = Console()
app = typer.Typer(help="CrateNav - browse and search RO-Crate metadata packages")

_KIND_STYLE = {
    NodeKind.DATASET: "bold blue",
    NodeKind.FILE: "green",
    NodeKind.LINK: "yellow",
    NodeKind.BROKEN_LINK: "red",
}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _build_navigator(proxy: Optional[str], offline: bool) -> CrateNavigator:
    config = AppConfig.from_env()
    if proxy is not None:
        config.cors_proxy_url = proxy
    expander = offline_expander if offline else JsonLdExpander()
    return CrateNavigator(DefaultFetcher(config), expander, config=config)


def _open(navigator: CrateNavigator, locator: str, nested: List[str]) -> None:
    async def run() -> None:
        await navigator.open_package(locator, is_first_package=True)
        for reference in nested:
            await navigator.open_nested_package(reference)

    try:
        asyncio.run(run())
    except CrateNavError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc


def _add_branch(branch: Tree, node: TreeNode, depth: int, max_depth: Optional[int]) -> None:
    for child in node.children:
        label = f"[{_KIND_STYLE[child.kind]}]{child.name}[/] [dim]({child.kind.value}: {child.id})[/dim]"
        sub = branch.add(label)
        if max_depth is None or depth + 1 < max_depth:
            _add_branch(sub, child, depth + 1, max_depth)


@app.command()
def tree(
    locator: str = typer.Argument(..., help="URL, JSON/ZIP file or directory of the crate"),
    nested: List[str] = typer.Option([], "--nested", "-n", help="Nested crate references to follow"),
    depth: Optional[int] = typer.Option(None, help="Maximum depth to display"),
    reveal: Optional[str] = typer.Option(None, help="Entity @id whose position in the tree to print"),
    proxy: Optional[str] = typer.Option(None, help="CORS proxy URL prefix"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Print the crate hierarchy.

    The tree only depends on part-of links, so JSON-LD expansion is skipped.
    """
    _setup_logging(verbose)
    navigator = _build_navigator(proxy, offline=True)
    _open(navigator, locator, nested)

    root = navigator.tree
    if root is None:
        console.print("[red]No crate loaded[/red]")
        raise typer.Exit(code=1)
    rendered = Tree(f"[{_KIND_STYLE[root.kind]}]{root.name}[/] [dim]({root.id})[/dim]")
    _add_branch(rendered, root, 0, depth)
    for crumb in navigator.state.breadcrumbs:
        console.print(f"[dim]{crumb.name} ({crumb.locator}) >[/dim]")
    console.print(rendered)

    if reveal is not None:
        path = find_path(root, reveal)
        if path is None:
            console.print(f"[yellow]Not in tree: {escape(reveal)}[/yellow]")
            raise typer.Exit(code=1)
        console.print("Path: " + " > ".join(escape(part) for part in path))


@app.command()
def show(
    locator: str = typer.Argument(..., help="URL, JSON/ZIP file or directory of the crate"),
    entity_id: str = typer.Argument(..., help="Entity @id to display"),
    proxy: Optional[str] = typer.Option(None, help="CORS proxy URL prefix"),
    offline: bool = typer.Option(False, help="Skip JSON-LD expansion"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Show one entity, marking properties that reference other entities."""
    _setup_logging(verbose)
    navigator = _build_navigator(proxy, offline)
    _open(navigator, locator, [])

    entity = navigator.entity(entity_id)
    if entity is None:
        console.print(f"[yellow]Entity not found: {entity_id}[/yellow]")
        raise typer.Exit(code=1)

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Property")
    table.add_column("Value")
    table.add_column("References")
    hints = navigator.link_hints.get(entity_id, {})
    for name, value in entity_values(entity, hints).items():
        targets = reference_targets(navigator.link_hints, entity_id, name)
        table.add_row(escape(name), escape(render_value(value)[:180]), ", ".join(sorted(targets)))
    console.print(table)


@app.command()
def search(
    locator: str = typer.Argument(..., help="URL, JSON/ZIP file or directory of the crate"),
    query: str = typer.Argument(..., help="Query text"),
    nested: List[str] = typer.Option([], "--nested", "-n", help="Nested crate references to load too"),
    top_k: int = typer.Option(10, help="Number of results to display"),
    proxy: Optional[str] = typer.Option(None, help="CORS proxy URL prefix"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Fuzzy search across the crate and any nested crates loaded.

    Search reads raw entity text only, so JSON-LD expansion is skipped.
    """
    _setup_logging(verbose)
    navigator = _build_navigator(proxy, offline=True)
    _open(navigator, locator, nested)

    results = navigator.search(query, top_k)
    if not results:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Score")
    table.add_column("Crate")
    table.add_column("Entity")
    table.add_column("Name")
    for hit in results:
        entity = navigator.entity(hit.entity_id, hit.crate_id) or {}
        table.add_row(f"{hit.score:.1f}", hit.crate_id, hit.entity_id, str(entity.get("name", "")))
    console.print(table)


@app.command()
def links(
    locator: str = typer.Argument(..., help="URL, JSON/ZIP file or directory of the crate"),
    proxy: Optional[str] = typer.Option(None, help="CORS proxy URL prefix"),
    offline: bool = typer.Option(False, help="Skip JSON-LD expansion"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """List every property whose values reference other entities."""
    _setup_logging(verbose)
    navigator = _build_navigator(proxy, offline)
    _open(navigator, locator, [])

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Entity")
    table.add_column("Property")
    table.add_column("IRI")
    table.add_column("Targets")
    rows = 0
    for entity_id, hints in navigator.link_hints.items():
        for name, hint in hints.items():
            if hint.value_iris:
                table.add_row(entity_id, name, hint.property_iri or "", ", ".join(sorted(hint.value_iris)))
                rows += 1

    if not rows:
        console.print("[yellow]No references found.[/yellow]")
        return
    console.print(table)


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
) -> None:
    """Start the JSON API."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    console.print(f"Starting CrateNav API on http://{host}:{port}")
    uvicorn.run(
        web_app,
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )
