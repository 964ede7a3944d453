"""Tests for the durable search history."""

from __future__ import annotations

import pytest

from appindex.db.history import MAX_SEARCH_HISTORY, SearchHistory


@pytest.fixture
def history(store):
    return SearchHistory(store)


def test_empty_history(history):
    assert history.entries() == []
    assert len(history) == 0


def test_newest_first(history):
    for q in ("cal", "mail", "term"):
        history.add(q)
    assert history.entries() == ["term", "mail", "cal"]
    assert history.entries(newest_first=False) == ["cal", "mail", "term"]


def test_re_adding_moves_to_newest(history):
    for q in ("cal", "mail", "term"):
        history.add(q)
    history.add("cal")
    assert history.entries() == ["cal", "term", "mail"]
    assert len(history) == 3


def test_blank_query_ignored(history):
    assert history.add("   ") is False
    assert len(history) == 0


def test_capacity_evicts_oldest(history):
    for i in range(MAX_SEARCH_HISTORY + 5):
        history.add(f"q{i}")
    entries = history.entries()
    assert len(entries) == MAX_SEARCH_HISTORY
    assert entries[0] == f"q{MAX_SEARCH_HISTORY + 4}"
    assert "q0" not in entries
    assert "q4" not in entries
    assert "q5" in entries


def test_custom_capacity(store):
    small = SearchHistory(store, capacity=2)
    for q in ("a1", "b2", "c3"):
        small.add(q)
    assert small.entries() == ["c3", "b2"]


def test_clear(history):
    history.add("cal")
    history.clear()
    assert history.entries() == []


def test_history_survives_reopen(tmp_path):
    from appindex.db.connection import Database
    from appindex.db.schema import initialize
    from appindex.db.store import CatalogStore

    path = tmp_path / "catalog.db"
    conn = Database(path).connect()
    initialize(conn)
    SearchHistory(CatalogStore(conn)).add("firefox")
    conn.close()

    conn = Database(path).connect()
    assert SearchHistory(CatalogStore(conn)).entries() == ["firefox"]
    conn.close()
