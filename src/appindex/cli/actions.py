"""appindex launch / favorite — user actions that update usage statistics.

Usage:
  appindex launch org.gnome.Calculator
  appindex favorite org.gnome.Calculator
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer

from appindex.cli.context import console, open_catalog, resolve_config
from appindex.cli.errors import err_app_not_found, err_launch_unavailable


def launch_cmd(
    app_id: Annotated[str, typer.Argument(help="Application id (see appindex search).")],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the catalog database."),
    ] = None,
) -> None:
    """Launch an application and count the launch."""
    cfg = resolve_config(db)

    with open_catalog(cfg) as catalog:
        launched = asyncio.run(catalog.launch(app_id))

    if not launched:
        console.print(err_launch_unavailable(app_id))
        raise typer.Exit(1)
    console.print(f"[green]✓[/] Launched {app_id}")


def favorite_cmd(
    app_id: Annotated[str, typer.Argument(help="Application id (see appindex search).")],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the catalog database."),
    ] = None,
) -> None:
    """Toggle the favorite flag of an application."""
    cfg = resolve_config(db)

    with open_catalog(cfg) as catalog:
        flag = asyncio.run(catalog.toggle_favorite(app_id))

    if flag is None:
        console.print(err_app_not_found(app_id))
        raise typer.Exit(0)
    state = "[yellow]★ favorite[/]" if flag else "not a favorite"
    console.print(f"{app_id}: {state}")
