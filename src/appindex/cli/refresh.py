"""appindex refresh — run one discovery + reconciliation cycle.

Usage:
  appindex refresh
  appindex refresh --db ~/catalog.db
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer

from appindex.catalog import RefreshOutcome
from appindex.cli.context import console, open_catalog, resolve_config
from appindex.cli.errors import err_no_applications, err_store_failed, warn_partial_enumeration
from appindex.config import ensure_global_config


def refresh_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the catalog database."),
    ] = None,
) -> None:
    """Discover installed applications and update the catalog.

    Writes a default global config on first run.
    """
    ensure_global_config()
    cfg = resolve_config(db)

    with open_catalog(cfg, must_exist=False) as catalog:
        with console.status("Discovering applications…"):
            report = asyncio.run(catalog.refresh())

        if report.outcome is RefreshOutcome.NO_APPLICATIONS:
            console.print(err_no_applications(report.failures))
            raise typer.Exit(0)
        if report.outcome is RefreshOutcome.STORE_FAILED:
            console.print(err_store_failed())
            raise typer.Exit(1)

        changes = report.reconcile
        console.print(f"[green]✓[/] {report.discovered} applications discovered")
        if changes is not None:
            console.print(f"  {changes.summary()}")
        if report.outcome is RefreshOutcome.MERGED:
            console.print(warn_partial_enumeration())
