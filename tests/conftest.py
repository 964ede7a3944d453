"""Shared pytest fixtures."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from appindex.clock import FixedClock
from appindex.db.connection import Database
from appindex.db.schema import initialize
from appindex.db.store import CatalogStore

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / "catalog.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def store(tmp_db, clock):
    return CatalogStore(tmp_db, clock=clock)
