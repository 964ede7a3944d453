"""appindex favorites / most-used / sweep — query-independent catalog views."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer

from appindex.cli.context import console, open_catalog, resolve_config
from appindex.cli.search import render_records
from appindex.db.store import MOST_USED_LIMIT


def favorites_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the catalog database."),
    ] = None,
) -> None:
    """List favorite applications."""
    cfg = resolve_config(db)

    with open_catalog(cfg) as catalog:
        asyncio.run(catalog.start())
        records = catalog.favorites.value

    if not records:
        console.print("[dim]No favorites yet.[/]  Run:  appindex favorite <id>")
        return
    console.print(render_records(records, title="Favorites"))


def most_used_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the catalog database."),
    ] = None,
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", min=1, max=MOST_USED_LIMIT, help="How many to show."),
    ] = MOST_USED_LIMIT,
) -> None:
    """List the most launched applications."""
    cfg = resolve_config(db)

    with open_catalog(cfg) as catalog:
        records = catalog.most_used_apps(limit).value

    if not records:
        console.print("[dim]Nothing launched yet.[/]")
        return
    console.print(render_records(records, title="Most used"))


def sweep_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the catalog database."),
    ] = None,
) -> None:
    """Delete long-unused, never-launched, non-favorite records."""
    cfg = resolve_config(db)
    if not cfg.retention.enabled:
        console.print("[dim]Retention sweep disabled (retention.enabled: false).[/]")
        return

    with open_catalog(cfg) as catalog:
        removed = asyncio.run(catalog.sweep())

    console.print(
        f"[green]✓[/] Retention sweep removed {removed} record(s) "
        f"older than {cfg.retention.days} days"
    )
