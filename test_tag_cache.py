#!/usr/bin/env python3
"""Tests for the bounded tag usage cache (LFU, then LRU on ties)."""

import os
import sqlite3
import sys
import tempfile
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Add the project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from cardwise.engine.db import Database
from cardwise.engine.models import Answer, AnswerKind, Card
from cardwise.engine.tags import TagCache

T0 = datetime(2024, 3, 1, 10, 0, 0)


def at(minutes):
    return T0 + timedelta(minutes=minutes)


@pytest.fixture
def db():
    temp_dir = tempfile.mkdtemp()
    database = Database(os.path.join(temp_dir, "tags.sqlite"))
    yield database
    database.close()


def card_with_tags(card_id, tags, updated):
    return Card(card_id, "q", Answer(AnswerKind.TEXT, "a"), tags, updated, updated)


def test_use_creates_and_increments(db):
    cache = TagCache(db)
    first = cache.use("  German ", at(0))
    second = cache.use("german", at(5))

    assert first.tag == "german"
    assert first.count == 1
    assert second.count == 2
    assert cache.get("GERMAN").last_used == at(5)
    assert len(cache) == 1


def test_blank_tags_ignored(db):
    cache = TagCache(db)
    assert cache.use("   ", at(0)) is None
    assert len(cache) == 0


def test_never_exceeds_capacity(db):
    cache = TagCache(db, max_size=3)
    for i in range(10):
        cache.use(f"tag{i}", at(i))
        assert len(cache) <= 3


def test_evicts_oldest_among_least_used(db):
    """A(count 1, later) and B(count 1, earlier) at capacity: C evicts B."""
    cache = TagCache(db, max_size=2)
    cache.use("b", at(0))
    cache.use("a", at(10))
    cache.use("c", at(20))

    assert cache.get("b") is None
    assert cache.get("a") is not None
    assert cache.get("c").count == 1


def test_frequency_beats_recency(db):
    cache = TagCache(db, max_size=2)
    cache.use("old", at(0))
    cache.use("old", at(1))
    cache.use("recent", at(30))
    cache.use("new", at(40))

    assert cache.get("recent") is None
    assert cache.get("old").count == 2


def test_use_many_evicts_per_new_tag(db):
    cache = TagCache(db, max_size=2)
    cache.use_many(["x", "y"], at(0))
    cache.use_many(["x", "z", "w"], at(5))

    assert len(cache) == 2
    assert cache.get("x").count == 2
    # y went when z arrived, z went when w arrived
    assert cache.get("w") is not None


def test_rank_order(db):
    cache = TagCache(db)
    cache.use("rare", at(0))
    cache.use("common", at(1))
    cache.use("common", at(2))
    cache.use("fresh", at(3))

    assert [u.tag for u in cache.rank()] == ["common", "fresh", "rare"]


def test_filter_exact_first(db):
    cache = TagCache(db)
    cache.use_many(["verbs", "verbs", "irregular verbs", "verb"], at(0))
    cache.use("nouns", at(1))

    assert [u.tag for u in cache.filter("VERB")] == ["verb", "verbs", "irregular verbs"]
    assert [u.tag for u in cache.filter("verb", limit=2)] == ["verb", "verbs"]
    assert len(cache.filter("")) == 4
    assert cache.filter("xyz") == []


def test_clear(db):
    cache = TagCache(db)
    cache.use_many(["a", "b"], at(0))
    cache.clear()
    assert len(cache) == 0


def test_invalid_size(db):
    with pytest.raises(ValueError):
        TagCache(db, max_size=0)


def test_initialize_from_cards_merges(db):
    cache = TagCache(db)
    cache.use("german", at(100))

    cards = [
        card_with_tags("1", ["German", "A1"], at(0)),
        card_with_tags("2", ["german"], at(200)),
        card_with_tags("3", ["A1", "verbs"], at(50)),
    ]
    cache.initialize_from_cards(cards)

    german = cache.get("german")
    assert german.count == 2
    assert german.last_used == at(200)
    assert cache.get("a1").count == 2
    assert cache.get("a1").last_used == at(50)
    assert cache.get("verbs").count == 1


def test_initialize_is_idempotent(db):
    cache = TagCache(db)
    cards = [
        card_with_tags("1", ["german", "a1"], at(0)),
        card_with_tags("2", ["german"], at(10)),
    ]
    cache.initialize_from_cards(cards)
    before = cache.rank()
    cache.initialize_from_cards(cards)

    assert cache.rank() == before


def test_initialize_respects_capacity(db):
    cache = TagCache(db, max_size=2)
    cards = [
        card_with_tags("1", ["popular", "second", "rare"], at(0)),
        card_with_tags("2", ["popular", "second"], at(10)),
        card_with_tags("3", ["popular"], at(20)),
    ]
    cache.initialize_from_cards(cards)

    assert [u.tag for u in cache.rank()] == ["popular", "second"]


def test_same_second_uses_keep_their_order(db):
    """Uses within one clock second still evict the earlier tag."""
    cache = TagCache(db, max_size=2)
    cache.use("zeta")
    cache.use("alpha")
    cache.use("new")

    assert sorted(u.tag for u in cache.rank()) == ["alpha", "new"]


def test_same_timestamp_rank_most_recent_first(db):
    cache = TagCache(db)
    cache.use("zeta", at(0))
    cache.use("alpha", at(0))
    cache.use("zeta", at(0))
    cache.use("alpha", at(0))

    assert [u.tag for u in cache.rank()] == ["alpha", "zeta"]


def test_resize_shrinks_cache(db):
    cache = TagCache(db, max_size=5)
    for i in range(5):
        cache.use(f"t{i}", at(i))
    cache.use("t0", at(10))

    assert cache.resize(2) == 3
    assert cache.max_size == 2
    assert [u.tag for u in cache.rank()] == ["t0", "t4"]

    # Known tags do not grow the cache past the new size
    cache.use("t0", at(11))
    assert len(cache) == 2
    cache.use("fresh", at(12))
    assert len(cache) == 2
    assert cache.get("t4") is None


def test_resize_grow_keeps_entries(db):
    cache = TagCache(db, max_size=2)
    cache.use_many(["a", "b"], at(0))

    assert cache.resize(10) == 0
    cache.use("c", at(1))
    assert len(cache) == 3


def test_resize_invalid(db):
    cache = TagCache(db, max_size=3)
    cache.use("a", at(0))
    with pytest.raises(ValueError):
        cache.resize(0)
    assert cache.max_size == 3
    assert len(cache) == 1


def test_older_database_gains_use_order(tmp_path):
    path = str(tmp_path / "old.sqlite")
    conn = sqlite3.connect(path)
    conn.executescript("""
        CREATE TABLE tag_usages (tag TEXT PRIMARY KEY, count INTEGER NOT NULL,
                                 last_used_ts INTEGER NOT NULL);
        CREATE INDEX idx_tag_usages_rank ON tag_usages(count, last_used_ts);
    """)
    conn.execute("INSERT INTO tag_usages VALUES ('legacy', 3, 0)")
    conn.commit()
    conn.close()

    database = Database(path)
    try:
        cache = TagCache(database)
        cache.use("fresh", at(0))
        assert [u.tag for u in cache.rank()] == ["legacy", "fresh"]
    finally:
        database.close()


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
