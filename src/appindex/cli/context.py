"""Shared CLI plumbing: config loading and catalog construction."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer
from rich.console import Console

from appindex.catalog import AppCatalog
from appindex.cli.errors import err_config, err_no_db
from appindex.config import AppIndexConfig, ConfigError, load_config
from appindex.db.connection import Database
from appindex.db.schema import initialize

console = Console()


def resolve_config(db: Path | None) -> AppIndexConfig:
    """Load config, apply the --db flag, and configure logging."""
    try:
        cfg = load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1) from exc
    if db is not None:
        cfg.store.path = db
    logging.basicConfig(
        level=cfg.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return cfg


@contextmanager
def open_catalog(cfg: AppIndexConfig, *, must_exist: bool = True) -> Iterator[AppCatalog]:
    """Open the catalog database and yield a wired AppCatalog."""
    if must_exist and not cfg.store.path.exists():
        console.print(err_no_db(str(cfg.store.path)))
        raise typer.Exit(1)
    conn = Database(cfg.store.path).connect()
    try:
        initialize(conn)
        yield AppCatalog.from_config(cfg, conn)
    finally:
        conn.close()
