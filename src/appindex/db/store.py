"""Catalog store — the durable application table and sole owner of usage statistics.

Single interface for: record reads, identity upserts (reconciler), deletes,
launch accounting, favorite flags and the retention sweep. Every write is
serialised through one re-entrant lock so the reconciler, the launch path and
the favorite path never lose each other's updates. Any ``sqlite3.Error`` is
re-raised as ``StoreIOError`` after the open transaction is rolled back.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import timedelta

from appindex.clock import Clock, SystemClock
from appindex.db.models import ApplicationRecord, Category, from_db_time, to_db_time
from appindex.errors import StoreIOError

logger = logging.getLogger(__name__)

MOST_USED_LIMIT = 10
RETENTION_DAYS = 30

_COLUMNS = (
    "id, display_name, secondary_name, version_label, version_ordinal, "
    "is_system_component, installed_at, updated_at, category, enabled, "
    "launch_count, last_launched_at, is_favorite"
)


class CatalogStore:
    """Data access layer for application records.

    Wraps an open sqlite3.Connection (schema initialised, see
    ``appindex.db.schema.initialize``). The connection is owned by the caller
    and must be closed after use.
    """

    def __init__(self, conn: sqlite3.Connection, *, clock: Clock | None = None) -> None:
        self._conn = conn
        self._clock = clock or SystemClock()
        self._lock = threading.RLock()
        self._depth = 0

    @property
    def lock(self) -> threading.RLock:
        """The write lock; collaborators sharing the connection must hold it."""
        return self._lock

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def batch(self, operation: str = "batch") -> Iterator[sqlite3.Connection]:
        """Hold the write lock and run the body as one transaction.

        Nested batches join the outermost one; only the outermost commits.
        """
        with self._lock:
            self._depth += 1
            try:
                yield self._conn
            except sqlite3.Error as exc:
                if self._depth == 1:
                    self._rollback()
                raise StoreIOError(operation, exc) from exc
            except BaseException:
                if self._depth == 1:
                    self._rollback()
                raise
            else:
                if self._depth == 1:
                    try:
                        self._conn.commit()
                    except sqlite3.Error as exc:
                        self._rollback()
                        raise StoreIOError(operation, exc) from exc
            finally:
                self._depth -= 1

    def _rollback(self) -> None:
        try:
            self._conn.rollback()
        except sqlite3.Error as exc:
            logger.error("Rollback failed: %s", exc)

    def _query(self, operation: str, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as exc:
                raise StoreIOError(operation, exc) from exc

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_records(self, *, enabled_only: bool = False) -> list[ApplicationRecord]:
        """Return every record ordered by id (optionally enabled ones only)."""
        where = " WHERE enabled = 1" if enabled_only else ""
        rows = self._query(
            "read-all", f"SELECT {_COLUMNS} FROM applications{where} ORDER BY id"
        )
        return [_row_to_record(r) for r in rows]

    def get(self, app_id: str) -> ApplicationRecord | None:
        """Return the record for *app_id*, or None if not stored."""
        rows = self._query(
            "read-by-id", f"SELECT {_COLUMNS} FROM applications WHERE id = ?", (app_id,)
        )
        return _row_to_record(rows[0]) if rows else None

    def ids(self) -> set[str]:
        """Return the set of stored ids."""
        return {r["id"] for r in self._query("read-ids", "SELECT id FROM applications")}

    def favorites(self) -> list[ApplicationRecord]:
        """Favorite records, most launched first, then by name."""
        rows = self._query(
            "read-favorites",
            f"""
            SELECT {_COLUMNS} FROM applications
            WHERE is_favorite = 1
            ORDER BY launch_count DESC, display_name COLLATE NOCASE ASC
            """,
        )
        return [_row_to_record(r) for r in rows]

    def most_used(self, limit: int = MOST_USED_LIMIT) -> list[ApplicationRecord]:
        """Launched records by launch count descending, capped at MOST_USED_LIMIT."""
        limit = max(0, min(limit, MOST_USED_LIMIT))
        rows = self._query(
            "read-most-used",
            f"""
            SELECT {_COLUMNS} FROM applications
            WHERE launch_count > 0
            ORDER BY launch_count DESC, last_launched_at DESC
            LIMIT ?
            """,
            (limit,),
        )
        return [_row_to_record(r) for r in rows]

    def count(self) -> int:
        return self._query("count", "SELECT COUNT(*) FROM applications")[0][0]

    def favorite_count(self) -> int:
        return self._query(
            "count-favorites", "SELECT COUNT(*) FROM applications WHERE is_favorite = 1"
        )[0][0]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def upsert_many(self, records: Iterable[ApplicationRecord]) -> int:
        """Insert new records, refresh identity fields of existing ones.

        Statistics columns (launch_count, last_launched_at, is_favorite) are
        written only on insert; an existing row keeps its own values.

        Returns:
            Number of rows written.
        """
        rows = [
            (
                r.id,
                r.display_name,
                r.secondary_name,
                r.version_label,
                r.version_ordinal,
                int(r.is_system_component),
                to_db_time(r.installed_at),
                to_db_time(r.updated_at),
                r.category.value,
                int(r.enabled),
                r.launch_count,
                to_db_time(r.last_launched_at),
                int(r.is_favorite),
            )
            for r in records
        ]
        if not rows:
            return 0
        with self.batch("upsert-many") as conn:
            conn.executemany(
                f"""
                INSERT INTO applications ({_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    display_name        = excluded.display_name,
                    secondary_name      = excluded.secondary_name,
                    version_label       = excluded.version_label,
                    version_ordinal     = excluded.version_ordinal,
                    is_system_component = excluded.is_system_component,
                    installed_at        = excluded.installed_at,
                    updated_at          = excluded.updated_at,
                    category            = excluded.category,
                    enabled             = excluded.enabled
                """,
                rows,
            )
        return len(rows)

    def delete(self, app_id: str) -> bool:
        """Delete the record for *app_id*. Returns False if it was not stored."""
        with self.batch("delete-by-id") as conn:
            cur = conn.execute("DELETE FROM applications WHERE id = ?", (app_id,))
        return cur.rowcount > 0

    def delete_many(self, app_ids: Iterable[str]) -> int:
        """Delete every listed id; returns the number of rows removed."""
        ids = [(i,) for i in app_ids]
        if not ids:
            return 0
        with self.batch("delete-many") as conn:
            before = conn.total_changes
            conn.executemany("DELETE FROM applications WHERE id = ?", ids)
            return conn.total_changes - before

    def increment_launch(self, app_id: str) -> bool:
        """Atomically bump launch_count and stamp last_launched_at.

        Returns:
            False if *app_id* is not stored (nothing changes).
        """
        now = to_db_time(self._clock.now())
        with self.batch("increment-launch") as conn:
            cur = conn.execute(
                """
                UPDATE applications
                SET launch_count = launch_count + 1, last_launched_at = ?
                WHERE id = ?
                """,
                (now, app_id),
            )
        return cur.rowcount > 0

    def set_favorite(self, app_id: str, favorite: bool) -> bool:
        """Set the favorite flag. Returns False if *app_id* is not stored."""
        with self.batch("set-favorite") as conn:
            cur = conn.execute(
                "UPDATE applications SET is_favorite = ? WHERE id = ?",
                (int(favorite), app_id),
            )
        return cur.rowcount > 0

    def toggle_favorite(self, app_id: str) -> bool | None:
        """Flip the favorite flag atomically.

        Returns:
            The new flag, or None if *app_id* is not stored.
        """
        with self.batch("toggle-favorite") as conn:
            cur = conn.execute(
                "UPDATE applications SET is_favorite = 1 - is_favorite WHERE id = ?",
                (app_id,),
            )
            if cur.rowcount == 0:
                return None
            row = conn.execute(
                "SELECT is_favorite FROM applications WHERE id = ?", (app_id,)
            ).fetchone()
        return bool(row["is_favorite"])

    def sweep(self, days: int = RETENTION_DAYS) -> int:
        """Delete never-launched, non-favorite records not updated for *days*.

        Records without an update timestamp are kept.

        Returns:
            Number of records deleted.
        """
        cutoff = to_db_time(self._clock.now() - timedelta(days=days))
        with self.batch("retention-sweep") as conn:
            cur = conn.execute(
                """
                DELETE FROM applications
                WHERE launch_count = 0
                  AND is_favorite = 0
                  AND updated_at IS NOT NULL
                  AND updated_at < ?
                """,
                (cutoff,),
            )
        if cur.rowcount:
            logger.info("Retention sweep removed %d record(s) older than %d days", cur.rowcount, days)
        return cur.rowcount


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------


def _row_to_record(row: sqlite3.Row) -> ApplicationRecord:
    return ApplicationRecord(
        id=row["id"],
        display_name=row["display_name"],
        secondary_name=row["secondary_name"],
        version_label=row["version_label"],
        version_ordinal=row["version_ordinal"],
        is_system_component=bool(row["is_system_component"]),
        installed_at=from_db_time(row["installed_at"]),
        updated_at=from_db_time(row["updated_at"]),
        category=Category.parse(row["category"]),
        enabled=bool(row["enabled"]),
        launch_count=row["launch_count"],
        last_launched_at=from_db_time(row["last_launched_at"]),
        is_favorite=bool(row["is_favorite"]),
    )
