"""appindex rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from appindex.cli.errors import err_no_db
    console.print(err_no_db(str(db)))
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_no_db(db_path: str) -> str:
    """No catalog database at *db_path*."""
    return (
        f"[red]Error:[/] No catalog found at '{db_path}'.\n"
        "  Run:  appindex refresh"
    )


def err_config(message: str) -> str:
    """Config file contains an invalid value."""
    return (
        f"[red]Error:[/] Invalid configuration.\n"
        f"  {message}\n"
        "  Fix appindex.yaml (or ~/.appindex/config.yaml) and retry."
    )


def err_no_applications(failures: list[str]) -> str:
    """Every discovery strategy came back empty; the catalog was left as is."""
    detail = "\n".join(f"    - {f}" for f in failures) if failures else "    - (no strategy reported a reason)"
    return (
        "[yellow]No applications found.[/] The catalog was left unchanged.\n"
        f"  Strategies:\n{detail}\n"
        "  Check that your applications directories are readable, or list\n"
        "  known ids under discovery.known_ids in appindex.yaml."
    )


def err_store_failed() -> str:
    """Reconciliation transaction rolled back."""
    return (
        "[red]Error:[/] The catalog could not be updated; nothing was changed.\n"
        "  Check that the database file is writable and not locked, then retry."
    )


def err_launch_unavailable(app_id: str) -> str:
    """No launch entry point for *app_id*."""
    return (
        f"[red]Error:[/] '{app_id}' cannot be launched.\n"
        "  The application may have been removed. Run:  appindex refresh"
    )


def err_app_not_found(app_id: str) -> str:
    """Id not in the catalog."""
    return (
        f"[yellow]Not in catalog:[/] '{app_id}'.\n"
        "  Run:  appindex search <name>  to find the id."
    )


def warn_partial_enumeration() -> str:
    """Shown after a merge-only refresh."""
    return (
        "[yellow]⚠[/] Discovery was incomplete; new applications were added but\n"
        "  nothing was removed. Fix directory permissions for a full refresh."
    )
