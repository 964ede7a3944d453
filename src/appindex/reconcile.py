"""Reconciler — merge a fresh enumeration into the catalog store.

Full-replace reconciliation keyed by id:

  1. every discovered id is upserted (identity fields refreshed, usage
     statistics untouched; new ids start at zero),
  2. every stored id absent from the enumeration is deleted.

Step 2 only runs with ``delete_missing=True``. Callers pass that only for an
enumeration they trust to be complete; a partial enumeration is merged without
deletions so temporarily invisible applications keep their history. The whole
pass is one store transaction.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from appindex.db.store import CatalogStore
from appindex.discovery.base import RawApplicationDescriptor

logger = logging.getLogger(__name__)


@dataclass
class ReconcileReport:
    """What one reconciliation pass changed."""

    inserted: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    delete_missing: bool = True

    @property
    def changed(self) -> bool:
        return bool(self.inserted or self.deleted or self.updated)

    def summary(self) -> str:
        return (
            f"{len(self.inserted)} inserted, {len(self.updated)} updated, "
            f"{len(self.deleted)} deleted"
        )


def reconcile(
    store: CatalogStore,
    discovered: Iterable[RawApplicationDescriptor],
    *,
    delete_missing: bool = True,
) -> ReconcileReport:
    """Merge *discovered* into *store* and return what changed.

    Duplicate ids in *discovered* collapse to the first occurrence. An empty
    enumeration with ``delete_missing=True`` empties the store; callers should
    retry discovery rather than pass one.

    Raises:
        StoreIOError: The transaction failed and was rolled back.
    """
    fresh: dict[str, RawApplicationDescriptor] = {}
    for descriptor in discovered:
        fresh.setdefault(descriptor.id, descriptor)

    report = ReconcileReport(delete_missing=delete_missing)
    with store.batch("reconcile"):
        existing = store.ids()
        for app_id in fresh:
            (report.updated if app_id in existing else report.inserted).append(app_id)
        store.upsert_many(d.to_record() for d in fresh.values())
        if delete_missing:
            report.deleted = sorted(existing - fresh.keys())
            store.delete_many(report.deleted)

    logger.info("Reconciled catalog: %s", report.summary())
    return report
