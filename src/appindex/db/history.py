"""Durable search history: the most recent distinct queries, capped at 20."""

from __future__ import annotations

from appindex.db.store import CatalogStore

MAX_SEARCH_HISTORY = 20


class SearchHistory:
    """Ordered set of recent query strings stored next to the catalog.

    Exact-match dedupe; re-adding a query moves it to the most recent slot;
    the least recently added entry is evicted once the capacity is exceeded.
    Shares the catalog store's connection and write lock.
    """

    def __init__(self, store: CatalogStore, *, capacity: int = MAX_SEARCH_HISTORY) -> None:
        self._store = store
        self.capacity = capacity

    def add(self, query: str) -> bool:
        """Record *query*. Blank queries are ignored (returns False)."""
        if not query.strip():
            return False
        with self._store.batch("history-add") as conn:
            seq = conn.execute("SELECT COALESCE(MAX(seq), 0) + 1 FROM search_history").fetchone()[0]
            conn.execute(
                """
                INSERT INTO search_history (query, seq) VALUES (?, ?)
                ON CONFLICT(query) DO UPDATE SET seq = excluded.seq
                """,
                (query, seq),
            )
            conn.execute(
                """
                DELETE FROM search_history
                WHERE query NOT IN (
                    SELECT query FROM search_history ORDER BY seq DESC LIMIT ?
                )
                """,
                (self.capacity,),
            )
        return True

    def entries(self, *, newest_first: bool = True) -> list[str]:
        order = "DESC" if newest_first else "ASC"
        with self._store.batch("history-read") as conn:
            rows = conn.execute(
                f"SELECT query FROM search_history ORDER BY seq {order}"
            ).fetchall()
        return [r["query"] for r in rows]

    def clear(self) -> None:
        with self._store.batch("history-clear") as conn:
            conn.execute("DELETE FROM search_history")

    def __len__(self) -> int:
        with self._store.batch("history-count") as conn:
            return conn.execute("SELECT COUNT(*) FROM search_history").fetchone()[0]
