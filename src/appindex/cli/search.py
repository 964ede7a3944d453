"""appindex search / history — ranked lookup against the stored catalog.

Usage:
  appindex search cal
  appindex search cal --record
  appindex history
  appindex history --clear
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from appindex.catalog import AppCatalog
from appindex.cli.context import console, open_catalog, resolve_config
from appindex.db.models import ApplicationRecord


def search_cmd(
    query: Annotated[str, typer.Argument(help="Search text (empty string shows everything).")],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the catalog database."),
    ] = None,
    record: Annotated[
        bool,
        typer.Option("--record", help="Add the query to the search history."),
    ] = False,
) -> None:
    """Show the ranked applications matching QUERY (at most 50)."""
    cfg = resolve_config(db)

    with open_catalog(cfg) as catalog:
        results = asyncio.run(_search(catalog, query))
        if record:
            catalog.commit_search(query)

    if not results:
        console.print(f"[yellow]No applications match[/] '{query}'.")
        raise typer.Exit(0)
    console.print(render_records(results, title=f"Results for '{query}'", show_score=True))


async def _search(catalog: AppCatalog, query: str) -> list[ApplicationRecord]:
    await catalog.start()
    catalog.search(query)
    return await catalog.engine.settled()


def history_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the catalog database."),
    ] = None,
    clear: Annotated[
        bool,
        typer.Option("--clear", help="Forget every recorded search."),
    ] = False,
) -> None:
    """List recent searches, newest first."""
    cfg = resolve_config(db)

    with open_catalog(cfg) as catalog:
        if clear:
            catalog.clear_search_history()
            console.print("[green]✓[/] Search history cleared")
            return
        entries = catalog.search_history()

    if not entries:
        console.print("[dim]No recent searches.[/]")
        return
    for entry in entries:
        console.print(f"  {entry}")


def render_records(
    records: list[ApplicationRecord], *, title: str, show_score: bool = False
) -> Table:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("", width=1)
    table.add_column("Name", style="bold")
    table.add_column("Id")
    table.add_column("Launches", justify="right")
    if show_score:
        table.add_column("Score", justify="right")
    for r in records:
        row = [
            "[yellow]★[/]" if r.is_favorite else "",
            r.label,
            f"[dim]{r.id}[/]",
            str(r.launch_count),
        ]
        if show_score:
            row.append(f"{r.transient_score:.1f}" if r.transient_score is not None else "")
        table.add_row(*row)
    return table
