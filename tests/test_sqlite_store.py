"""Tests for the SQLite content store and its schema migrations."""

from __future__ import annotations

import sqlite3
import tempfile
import unittest
from pathlib import Path

import pytest  # type: ignore

from cinepulse.errors import PersistenceError
from cinepulse.records import ContentRecord, ContentType
from cinepulse.storage import DATABASE_FILENAME, MigrationManager, SQLiteContentStore


def _movie(title: str, **kwargs) -> ContentRecord:
    kwargs.setdefault("category", "Hollywood")
    return ContentRecord(title=title, type=ContentType.MOVIE, **kwargs)


def test_initialize_creates_database(tmp_path: Path) -> None:
    store = SQLiteContentStore(str(tmp_path / "nested" / "data"))
    store.initialize()
    try:
        assert (tmp_path / "nested" / "data" / DATABASE_FILENAME).exists()
        assert store.migrations().version() == store.migrations().latest
    finally:
        store.close()


def test_insert_sets_all_timestamps(store, clock) -> None:
    saved = store.upsert(_movie("Z", year=2020), source_url="https://nkiri.com/")
    assert saved.year == 2020
    assert saved.source_url == "https://nkiri.com/"
    assert saved.created_at == saved.updated_at == saved.scraped_at


def test_upsert_preserves_first_save_timestamps(store) -> None:
    first = store.upsert(_movie("Z", year=2020))
    second = store.upsert(_movie("Z", year=2021, category="Foreign", rating=7.5), source_url="https://b.example")

    assert second.year == 2021
    assert second.category == "Foreign"
    assert second.rating == 7.5
    assert second.source_url == "https://b.example"
    assert second.created_at == first.created_at
    assert second.scraped_at == first.scraped_at
    assert second.updated_at > first.updated_at
    assert store.get_stats()["total"] == 1


def test_same_title_different_type_is_a_new_record(store) -> None:
    store.upsert(_movie("Dune"))
    store.upsert(ContentRecord(title="Dune", type=ContentType.SERIES, category="TV Series"))
    assert store.get_stats() == {"total": 2, "movies": 1, "series": 1}


def test_read_queries(store) -> None:
    store.upsert(_movie("The Batman", year=2022))
    store.upsert(_movie("Batman Begins", year=2005))
    store.upsert(ContentRecord(title="Arcane", type=ContentType.SERIES, category="Anime", extra_info="Season 2"))

    assert [r.title for r in store.get_all()] == ["Arcane", "Batman Begins", "The Batman"]
    assert [r.title for r in store.get_by_type("series")] == ["Arcane"]
    assert {r.title for r in store.search("batman")} == {"The Batman", "Batman Begins"}
    assert store.get("Arcane", ContentType.SERIES).extra_info == "Season 2"
    assert store.get("Arcane", "movie") is None


def test_uninitialized_store_raises(tmp_path: Path) -> None:
    store = SQLiteContentStore(str(tmp_path))
    with pytest.raises(PersistenceError):
        store.upsert(_movie("Z"))


def test_integer_overflow_is_a_persistence_error(store) -> None:
    with pytest.raises(PersistenceError):
        store.upsert(_movie("Huge", year=10**20))
    assert store.get("Huge", "movie") is None
    assert store.upsert(_movie("Huge", year=2020)).year == 2020


class TestMigrations(unittest.TestCase):
    """Schema migrations applied, reverted and reported on a fresh database."""

    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.conn = sqlite3.connect(str(Path(self.temp_dir.name) / "m.db"), isolation_level=None)
        self.manager = MigrationManager(self.conn)

    def tearDown(self) -> None:
        self.conn.close()
        self.temp_dir.cleanup()

    def _columns(self) -> set:
        return {row[1] for row in self.conn.execute("PRAGMA table_info(content)")}

    def test_up_applies_everything(self) -> None:
        self.assertEqual(self.manager.version(), 0)
        self.assertEqual(self.manager.up(), self.manager.latest)
        self.assertTrue({"rating", "source_url", "scraped_at"} <= self._columns())
        self.assertTrue(all(applied for _, _, applied in self.manager.status()))

    def test_up_is_idempotent(self) -> None:
        self.manager.up()
        self.assertEqual(self.manager.up(), self.manager.latest)

    def test_down_reverts_one_step(self) -> None:
        self.manager.up()
        self.assertEqual(self.manager.down(), 2)
        self.assertEqual(self.manager.down(), 1)
        self.assertNotIn("rating", self._columns())
        self.assertEqual(
            [applied for _, _, applied in self.manager.status()],
            [True, False, False],
        )

    def test_down_at_zero_is_noop(self) -> None:
        self.assertEqual(self.manager.down(), 0)

    def test_reset_reapplies(self) -> None:
        self.manager.up()
        self.conn.execute(
            "INSERT INTO content (title, category, type) VALUES ('A', 'Anime', 'movie')"
        )
        self.assertEqual(self.manager.reset(), self.manager.latest)
        count = self.conn.execute("SELECT COUNT(*) FROM content").fetchone()[0]
        self.assertEqual(count, 0)

    def test_natural_key_is_unique(self) -> None:
        self.manager.up()
        self.conn.execute("INSERT INTO content (title, category, type) VALUES ('A', 'Anime', 'movie')")
        with self.assertRaises(sqlite3.IntegrityError):
            self.conn.execute("INSERT INTO content (title, category, type) VALUES ('A', 'Anime', 'movie')")

    def test_backfills_scraped_at(self) -> None:
        conn = self.conn
        # initial schema only
        MigrationManager(conn, self.manager.migrations[:1]).up()
        conn.execute(
            "INSERT INTO content (title, category, type, created_at) VALUES ('Old', 'Anime', 'movie', '2025-01-01T00:00:00')"
        )
        self.manager.up()
        scraped = conn.execute("SELECT scraped_at FROM content WHERE title = 'Old'").fetchone()[0]
        self.assertEqual(scraped, "2025-01-01T00:00:00")
