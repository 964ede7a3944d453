"""Ranker: pure relevance scoring and total ordering of application records.

Scoring rules, first match wins, case-insensitive:

  empty query                  1.0  (every enabled record)
  display name starts with q   1.0
  display name contains q      0.8
  id contains q                0.6
  secondary name contains q    0.4
  otherwise                    unranked (excluded)

Ordering, descending: favorite, score, launch count; then display name
ascending (case-insensitive). Results are capped at MAX_RESULTS.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace

from appindex.db.models import ApplicationRecord

MAX_RESULTS = 50

SCORE_PREFIX = 1.0
SCORE_NAME = 0.8
SCORE_ID = 0.6
SCORE_SECONDARY = 0.4


def normalize(query: str) -> str:
    return query.strip().lower()


def score(query: str, record: ApplicationRecord) -> float | None:
    """Relevance of *record* for *query* in [0, 1], or None when unranked."""
    q = normalize(query)
    if not q:
        return SCORE_PREFIX if record.enabled else None

    name = record.display_name.lower()
    if name.startswith(q):
        return SCORE_PREFIX
    if q in name:
        return SCORE_NAME
    if q in record.id.lower():
        return SCORE_ID
    if record.secondary_name and q in record.secondary_name.lower():
        return SCORE_SECONDARY
    return None


def sort_key(record: ApplicationRecord) -> tuple:
    """Ascending sort key realising the descending ranking order."""
    return (
        not record.is_favorite,
        -(record.transient_score or 0.0),
        -record.launch_count,
        record.display_name.lower(),
        record.id,
    )


def rank(
    query: str,
    records: Iterable[ApplicationRecord],
    *,
    limit: int = MAX_RESULTS,
) -> list[ApplicationRecord]:
    """Score, order and cap *records* for *query*.

    Disabled records are never returned and each id appears at most once.
    Returned records are copies carrying ``transient_score``; the inputs are
    not modified.
    """
    limit = max(0, min(limit, MAX_RESULTS))
    seen: set[str] = set()
    scored: list[ApplicationRecord] = []
    for record in records:
        if not record.enabled or record.id in seen:
            continue
        value = score(query, record)
        if value is None:
            continue
        seen.add(record.id)
        scored.append(replace(record, transient_score=value))
    scored.sort(key=sort_key)
    return scored[:limit]
