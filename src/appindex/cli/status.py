"""appindex status — catalog overview.

Shows the database location, record counts and the applications directories
discovery will scan.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.panel import Panel

from appindex.cli.context import console, open_catalog, resolve_config
from appindex.db.schema import schema_version
from appindex.discovery.desktop import default_application_dirs


def status_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the catalog database."),
    ] = None,
) -> None:
    """Show catalog status: database, counts and discovery directories."""
    cfg = resolve_config(db)

    dirs = cfg.discovery.application_dirs or default_application_dirs()
    dir_lines = "\n".join(
        f"  {'[green]✓[/]' if d.is_dir() else '[dim]-[/]'} {d}" for d in dirs
    )

    # ---- Panel 1: Database ----
    if not cfg.store.path.exists():
        console.print(
            Panel(
                f"Database: {cfg.store.path}\n"
                "[yellow]No catalog yet.[/]\n"
                "  Run:  appindex refresh",
                title="[bold]Catalog[/]",
                expand=False,
            )
        )
    else:
        with open_catalog(cfg) as catalog:
            stats = catalog.stats()
            version = schema_version(catalog.store.connection)
            size_kb = cfg.store.path.stat().st_size / 1024
        lines = [
            f"Database:     {cfg.store.path}  ({size_kb:.0f} KB, schema v{version})",
        ]
        if stats is None:
            lines.append("[red]Could not read catalog statistics.[/]")
        else:
            lines.append(f"Applications: {stats.total}")
            lines.append(f"Favorites:    {stats.favorites}")
        console.print(Panel("\n".join(lines), title="[bold]Catalog[/]", expand=False))

    # ---- Panel 2: Discovery ----
    retention = (
        f"{cfg.retention.days} days" if cfg.retention.enabled else "[dim]disabled[/]"
    )
    console.print(
        Panel(
            f"Applications directories:\n{dir_lines}\n"
            f"Known ids:    {len(cfg.discovery.known_ids)}\n"
            f"Retention:    {retention}",
            title="[bold]Discovery[/]",
            expand=False,
        )
    )
