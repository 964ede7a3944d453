"""Forward-only migration runner for the catalog schema."""

from __future__ import annotations

import sqlite3

# schema_version is the bootstrap table, created before migrations run.
_CREATE_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    applied_at  DATETIME NOT NULL DEFAULT (datetime('now'))
)
"""

# Timestamps are ISO-8601 UTC text with second precision so that text
# comparison orders them chronologically.
_V1_SQL = """
CREATE TABLE IF NOT EXISTS applications (
    id                  TEXT PRIMARY KEY,
    display_name        TEXT NOT NULL,
    secondary_name      TEXT,
    version_label       TEXT,
    version_ordinal     INTEGER NOT NULL DEFAULT 0,
    is_system_component INTEGER NOT NULL DEFAULT 0,
    installed_at        TEXT,
    updated_at          TEXT,
    category            TEXT NOT NULL DEFAULT 'other',
    enabled             INTEGER NOT NULL DEFAULT 1,
    launch_count        INTEGER NOT NULL DEFAULT 0 CHECK (launch_count >= 0),
    last_launched_at    TEXT,
    is_favorite         INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_applications_favorite
    ON applications (is_favorite);

CREATE INDEX IF NOT EXISTS idx_applications_launch_count
    ON applications (launch_count DESC);

CREATE TABLE IF NOT EXISTS search_history (
    query       TEXT PRIMARY KEY,
    seq         INTEGER NOT NULL
);
"""

# Append-only. Each entry: (version: int, sql: str).
# executescript() issues an implicit COMMIT before running.
MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_SQL),
]


def run_migrations(conn: sqlite3.Connection) -> None:
    """Apply all pending migrations in ascending version order.

    Idempotent: safe to call on a database at any version.
    """
    conn.execute(_CREATE_SCHEMA_VERSION)
    conn.commit()

    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    current = row[0] if row[0] is not None else 0

    for version, sql in MIGRATIONS:
        if version > current:
            conn.executescript(sql)
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )
            conn.commit()
