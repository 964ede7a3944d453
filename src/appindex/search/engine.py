"""Query engine: live query + catalog snapshot in, ranked capped results out.

Every change to either input schedules a full re-rank of the snapshot. Query
changes are debounced; snapshot changes recompute immediately. Each trigger
takes a new generation number and cancels the pending recompute, and a
recompute only publishes if its generation is still the latest when it
finishes, so the most recently *started* trigger always wins.

Without a running event loop (plain synchronous callers) the recompute runs
inline and publishes immediately.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from appindex.db.models import ApplicationRecord
from appindex.search.ranker import MAX_RESULTS, rank
from appindex.search.streams import StateStream

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE = 0.1


class QueryEngine:
    """Holds the current query and snapshot; publishes ranked results."""

    def __init__(self, *, debounce: float = DEFAULT_DEBOUNCE, limit: int = MAX_RESULTS) -> None:
        self.debounce = max(0.0, debounce)
        self.limit = min(limit, MAX_RESULTS)
        self.results: StateStream[list[ApplicationRecord]] = StateStream([])
        self._query = ""
        self._snapshot: tuple[ApplicationRecord, ...] = ()
        self._generation = 0
        self._task: asyncio.Task[None] | None = None

    @property
    def query(self) -> str:
        return self._query

    @property
    def snapshot(self) -> tuple[ApplicationRecord, ...]:
        return self._snapshot

    @property
    def generation(self) -> int:
        return self._generation

    def set_query(self, query: str) -> None:
        query = query.strip()
        if query == self._query:
            return
        self._query = query
        self._trigger(self.debounce)

    def set_snapshot(self, records: Iterable[ApplicationRecord]) -> None:
        self._snapshot = tuple(records)
        self._trigger(0.0)

    def _trigger(self, delay: float) -> None:
        self._generation += 1
        generation = self._generation
        if self._task is not None and not self._task.done():
            self._task.cancel()

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._task = None
            self.results.publish(rank(self._query, self._snapshot, limit=self.limit))
            return

        self._task = loop.create_task(
            self._recompute(generation, self._query, self._snapshot, delay)
        )

    async def _recompute(
        self,
        generation: int,
        query: str,
        snapshot: tuple[ApplicationRecord, ...],
        delay: float,
    ) -> None:
        if delay:
            await asyncio.sleep(delay)
        ranked = rank(query, snapshot, limit=self.limit)
        if generation != self._generation:
            logger.debug("Discarding superseded recompute %d (latest %d)", generation, self._generation)
            return
        self.results.publish(ranked)

    async def settled(self) -> list[ApplicationRecord]:
        """Wait until the latest trigger has published; return the results."""
        while self._task is not None:
            task = self._task
            await asyncio.wait({task})
            if task is self._task:
                break
        return self.results.value
