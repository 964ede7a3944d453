"""appindex database layer."""

from appindex.db.connection import Database
from appindex.db.history import MAX_SEARCH_HISTORY, SearchHistory
from appindex.db.migrations import MIGRATIONS, run_migrations
from appindex.db.models import ApplicationRecord, Category
from appindex.db.schema import initialize
from appindex.db.store import MOST_USED_LIMIT, CatalogStore

__all__ = [
    "ApplicationRecord",
    "CatalogStore",
    "Category",
    "Database",
    "MAX_SEARCH_HISTORY",
    "MIGRATIONS",
    "MOST_USED_LIMIT",
    "SearchHistory",
    "initialize",
    "run_migrations",
]
