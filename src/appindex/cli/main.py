"""appindex CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from appindex.cli.actions import favorite_cmd, launch_cmd
from appindex.cli.refresh import refresh_cmd
from appindex.cli.search import history_cmd, search_cmd
from appindex.cli.status import status_cmd
from appindex.cli.views import favorites_cmd, most_used_cmd, sweep_cmd


def _version_callback(value: bool) -> None:
    if value:
        try:
            ver = importlib.metadata.version("appindex")
        except importlib.metadata.PackageNotFoundError:
            ver = "dev"
        typer.echo(f"appindex {ver}")
        raise typer.Exit()


app = typer.Typer(
    name="appindex",
    help=(
        "appindex — installed-application catalog with ranked search.\n\n"
        "  appindex refresh   Discover installed applications and update the catalog.\n"
        "  appindex search    Ranked lookup by name, id or description."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """appindex — installed-application catalog with ranked search."""


app.command("refresh")(refresh_cmd)
app.command("search")(search_cmd)
app.command("history")(history_cmd)
app.command("launch")(launch_cmd)
app.command("favorite")(favorite_cmd)
app.command("favorites")(favorites_cmd)
app.command("most-used")(most_used_cmd)
app.command("sweep")(sweep_cmd)
app.command("status")(status_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed appindex version."""
    try:
        ver = importlib.metadata.version("appindex")
    except importlib.metadata.PackageNotFoundError:
        ver = "dev"
    typer.echo(f"appindex {ver}")


if __name__ == "__main__":
    app()
