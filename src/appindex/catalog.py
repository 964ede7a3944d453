"""AppCatalog — the context object consumers talk to.

Constructed once at start-up with explicit references to the catalog store,
discovery source, launcher, query engine, icon cache and search history, then
passed to consumers. There is no global lookup.

All blocking work (platform calls, SQLite) runs in worker threads through
``asyncio.to_thread`` so the event loop driving the UI never waits on it.
Failures never reach the consumer: refresh returns a ``RefreshReport``,
launch returns a bool, favorite toggles and icon lookups return None on
failure, and everything is logged.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from dataclasses import dataclass, field
from enum import Enum

from appindex.config import AppIndexConfig
from appindex.db.history import SearchHistory
from appindex.db.models import ApplicationRecord
from appindex.db.store import MOST_USED_LIMIT, RETENTION_DAYS, CatalogStore
from appindex.discovery.base import DiscoveryResult, DiscoverySource
from appindex.discovery.desktop import (
    DesktopEntryReader,
    DirectoryListingStrategy,
    KnownIdentifierStrategy,
    MimeHandlerStrategy,
)
from appindex.discovery.launcher import DesktopLauncher, Launcher
from appindex.errors import NoApplicationsDiscovered, StoreIOError
from appindex.icons import DesktopIconResolver, IconCache, IconHandle
from appindex.reconcile import ReconcileReport, reconcile
from appindex.search.engine import QueryEngine
from appindex.search.streams import StateStream

logger = logging.getLogger(__name__)


class RefreshOutcome(str, Enum):
    """How a discovery cycle ended."""

    RECONCILED = "reconciled"            # complete enumeration, full replace
    MERGED = "merged"                    # partial enumeration, no deletions
    NO_APPLICATIONS = "no_applications"  # nothing discovered, store untouched
    STORE_FAILED = "store_failed"        # reconciliation rolled back


@dataclass
class RefreshReport:
    outcome: RefreshOutcome
    discovered: int = 0
    reconcile: ReconcileReport | None = None
    failures: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.outcome in (RefreshOutcome.RECONCILED, RefreshOutcome.MERGED)


@dataclass
class CatalogStats:
    total: int
    favorites: int
    icons_cached: int


class AppCatalog:
    """Discovery → reconciliation → store → live query pipeline.

    Args:
        store: Catalog store (sole owner of usage statistics).
        source: Discovery source to enumerate installed applications.
        launcher: Platform launch facility.
        engine: Query engine; a default one is created when omitted.
        icons: Icon cache; ``icon_for`` returns None when omitted.
        history: Search history; ``commit_search`` is a no-op when omitted.
        retention_days: Age threshold for the retention sweep.
        history_min_length: Shorter queries are not recorded.
    """

    def __init__(
        self,
        store: CatalogStore,
        source: DiscoverySource,
        launcher: Launcher,
        *,
        engine: QueryEngine | None = None,
        icons: IconCache | None = None,
        history: SearchHistory | None = None,
        retention_days: int = RETENTION_DAYS,
        history_min_length: int = 2,
    ) -> None:
        self.store = store
        self.source = source
        self.launcher = launcher
        self.engine = engine or QueryEngine()
        self.icons = icons
        self.history = history
        self.retention_days = retention_days
        self.history_min_length = history_min_length

        self.is_loading: StateStream[bool] = StateStream(False)
        self.favorites: StateStream[list[ApplicationRecord]] = StateStream([])
        self.last_refresh: StateStream[RefreshReport | None] = StateStream(None)
        self._most_used: dict[int, StateStream[list[ApplicationRecord]]] = {}
        self._refresh_task: asyncio.Task[RefreshReport] | None = None

    @classmethod
    def from_config(cls, cfg: AppIndexConfig, conn: sqlite3.Connection) -> AppCatalog:
        """Wire the desktop-entry platform and the store on *conn* from *cfg*."""
        store = CatalogStore(conn)
        reader = DesktopEntryReader(cfg.discovery.application_dirs or None)
        strategies = [
            DirectoryListingStrategy(reader),
            MimeHandlerStrategy(reader),
        ]
        if cfg.discovery.known_ids:
            strategies.append(KnownIdentifierStrategy(reader, cfg.discovery.known_ids))
        source = DiscoverySource(
            strategies,
            hidden_ids=cfg.discovery.hidden_ids,
            self_id=cfg.discovery.self_id,
        )
        resolver = DesktopIconResolver(
            reader,
            icon_dirs=cfg.icons.theme_dirs or None,
            extensions=cfg.icons.extensions,
        )
        return cls(
            store,
            source,
            DesktopLauncher(reader),
            engine=QueryEngine(debounce=cfg.search.debounce_ms / 1000),
            icons=IconCache(resolver),
            history=SearchHistory(store),
            retention_days=cfg.retention.days,
            history_min_length=cfg.search.history_min_length,
        )

    # ------------------------------------------------------------------
    # Reactive views
    # ------------------------------------------------------------------

    @property
    def results(self) -> StateStream[list[ApplicationRecord]]:
        return self.engine.results

    def most_used_apps(self, limit: int = MOST_USED_LIMIT) -> StateStream[list[ApplicationRecord]]:
        """Stream of the most launched records, independent of the live query."""
        limit = max(0, min(limit, MOST_USED_LIMIT))
        stream = self._most_used.get(limit)
        if stream is None:
            try:
                initial = self.store.most_used(limit)
            except StoreIOError as exc:
                logger.error("Could not read most-used view: %s", exc)
                initial = []
            stream = self._most_used[limit] = StateStream(initial)
        return stream

    async def start(self) -> None:
        """Publish the stored catalog to every view without running discovery."""
        await self._reload()

    async def _reload(self) -> None:
        try:
            records = await asyncio.to_thread(self.store.list_records, enabled_only=True)
            favorites = await asyncio.to_thread(self.store.favorites)
            most_used = {
                limit: await asyncio.to_thread(self.store.most_used, limit)
                for limit in list(self._most_used)
            }
        except StoreIOError as exc:
            logger.error("Could not reload catalog views: %s", exc)
            return
        self.engine.set_snapshot(records)
        self.favorites.publish(favorites)
        for limit, rows in most_used.items():
            self._most_used[limit].publish(rows)

    # ------------------------------------------------------------------
    # Live query
    # ------------------------------------------------------------------

    def search(self, query: str) -> None:
        self.engine.set_query(query)

    def clear_search(self) -> None:
        self.engine.set_query("")

    def commit_search(self, query: str) -> bool:
        """Record *query* in the search history (on submit, not per keystroke)."""
        query = query.strip()
        if self.history is None or len(query) < self.history_min_length:
            return False
        try:
            return self.history.add(query)
        except StoreIOError as exc:
            logger.error("Could not record search history: %s", exc)
            return False

    def search_history(self) -> list[str]:
        if self.history is None:
            return []
        try:
            return self.history.entries()
        except StoreIOError as exc:
            logger.error("Could not read search history: %s", exc)
            return []

    def clear_search_history(self) -> None:
        if self.history is None:
            return
        try:
            self.history.clear()
        except StoreIOError as exc:
            logger.error("Could not clear search history: %s", exc)

    # ------------------------------------------------------------------
    # Discovery cycle
    # ------------------------------------------------------------------

    async def refresh(self) -> RefreshReport:
        """Run one discovery + reconciliation cycle.

        Concurrent calls while a cycle is in flight share that cycle.
        """
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.get_running_loop().create_task(self._run_refresh())
        return await asyncio.shield(self._refresh_task)

    async def _run_refresh(self) -> RefreshReport:
        self.is_loading.publish(True)
        try:
            report = await self._discover_and_reconcile()
            await self._reload()
        finally:
            self.is_loading.publish(False)
        self.last_refresh.publish(report)
        return report

    async def _discover_and_reconcile(self) -> RefreshReport:
        try:
            result: DiscoveryResult = await asyncio.to_thread(self.source.enumerate)
        except NoApplicationsDiscovered as exc:
            logger.warning("Reconciliation withheld: %s", exc)
            return RefreshReport(
                RefreshOutcome.NO_APPLICATIONS,
                failures=[str(f) for f in exc.failures],
            )

        failures = [str(f) for f in result.failures]
        if not result.complete:
            logger.warning(
                "Enumeration incomplete (%d found); merging without deletions", len(result)
            )
        try:
            changes = await asyncio.to_thread(
                reconcile, self.store, result.descriptors, delete_missing=result.complete
            )
        except StoreIOError as exc:
            logger.error("Reconciliation failed: %s", exc)
            return RefreshReport(RefreshOutcome.STORE_FAILED, len(result), failures=failures)

        outcome = RefreshOutcome.RECONCILED if result.complete else RefreshOutcome.MERGED
        return RefreshReport(outcome, len(result), changes, failures)

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    async def launch(self, app_id: str) -> bool:
        """Launch *app_id*; on success count the launch. Returns launch success."""
        launched = await asyncio.to_thread(self.launcher.attempt_launch, app_id)
        if not launched:
            return False
        try:
            counted = await asyncio.to_thread(self.store.increment_launch, app_id)
        except StoreIOError as exc:
            logger.error("Launch of %s not counted: %s", app_id, exc)
            return True
        if counted:
            await self._reload()
        return True

    async def toggle_favorite(self, app_id: str) -> bool | None:
        """Flip the favorite flag. Returns the new flag, or None (unknown id / failure)."""
        try:
            flag = await asyncio.to_thread(self.store.toggle_favorite, app_id)
        except StoreIOError as exc:
            logger.error("Favorite toggle for %s failed: %s", app_id, exc)
            return None
        if flag is not None:
            await self._reload()
        return flag

    def icon_for(self, app_id: str) -> IconHandle | None:
        if self.icons is None:
            return None
        return self.icons.get(app_id)

    async def load_icon(self, app_id: str) -> IconHandle | None:
        """``icon_for`` off the event loop; a cache miss reads the icon file."""
        if self.icons is None:
            return None
        return await asyncio.to_thread(self.icons.get, app_id)

    async def details(self, app_id: str) -> ApplicationRecord | None:
        try:
            return await asyncio.to_thread(self.store.get, app_id)
        except StoreIOError as exc:
            logger.error("Could not read %s: %s", app_id, exc)
            return None

    async def sweep(self) -> int:
        """Advisory housekeeping: retention sweep plus icon cache trim."""
        if self.icons is not None:
            self.icons.trim()
        try:
            removed = await asyncio.to_thread(self.store.sweep, self.retention_days)
        except StoreIOError as exc:
            logger.warning("Retention sweep skipped: %s", exc)
            return 0
        if removed:
            await self._reload()
        return removed

    def stats(self) -> CatalogStats | None:
        try:
            return CatalogStats(
                total=self.store.count(),
                favorites=self.store.favorite_count(),
                icons_cached=len(self.icons) if self.icons is not None else 0,
            )
        except StoreIOError as exc:
            logger.error("Could not read catalog statistics: %s", exc)
            return None
