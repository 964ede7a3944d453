"""appindex search — ranking, reactive streams and the live query engine."""

from appindex.search.engine import QueryEngine
from appindex.search.ranker import MAX_RESULTS, rank, score
from appindex.search.streams import StateStream

__all__ = [
    "MAX_RESULTS",
    "QueryEngine",
    "StateStream",
    "rank",
    "score",
]
