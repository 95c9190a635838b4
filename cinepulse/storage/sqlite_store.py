"""
SQLite content store.

Stores `ContentRecord` rows in ``<data_path>/cine_pulse.db`` and
reconciles new extractions against existing rows by the natural key
``(title, type)``:

* a new key is inserted with ``scraped_at``, ``created_at`` and
  ``updated_at`` all set to the current time;
* an existing key only has ``year``, ``category``, ``extra_info``,
  ``rating`` and ``source_url`` overwritten and ``updated_at``
  refreshed.  ``created_at`` and ``scraped_at`` keep their first-seen
  values.

Timestamps come from an injectable clock and are stored as ISO 8601
UTC strings.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ..errors import PersistenceError
from ..records import ContentRecord, ContentType
from .base import ContentStore
from .migrations import MigrationManager, transaction

logger = logging.getLogger(__name__)

DATABASE_FILENAME = "cine_pulse.db"

_COLUMNS = "title, year, category, extra_info, type, rating, source_url, scraped_at, created_at, updated_at"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _row_to_record(row: sqlite3.Row) -> ContentRecord:
    return ContentRecord(
        title=row["title"],
        type=ContentType(row["type"]),
        category=row["category"],
        extra_info=row["extra_info"] or "",
        year=row["year"],
        rating=row["rating"],
        source_url=row["source_url"],
        scraped_at=_parse_ts(row["scraped_at"]),
        created_at=_parse_ts(row["created_at"]),
        updated_at=_parse_ts(row["updated_at"]),
    )


class SQLiteContentStore(ContentStore):
    """Content store backed by a single SQLite file."""

    def __init__(self, data_path: str, clock: Callable[[], datetime] = utc_now) -> None:
        self.data_path = Path(data_path)
        self.db_path = self.data_path / DATABASE_FILENAME
        self.clock = clock
        self._conn: Optional[sqlite3.Connection] = None

    def initialize(self, migrate: bool = True) -> None:
        """Create the data directory, open the database and apply migrations."""
        try:
            self.data_path.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path), isolation_level=None, check_same_thread=False)
        except (OSError, sqlite3.Error) as exc:
            raise PersistenceError(f"failed to open database {self.db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        self._conn = conn
        if migrate:
            self.migrations().up()
        logger.info("SQLite database initialized at: %s", self.db_path)

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise PersistenceError("store is not initialized")
        return self._conn

    def migrations(self) -> MigrationManager:
        return MigrationManager(self.conn)

    def upsert(self, record: ContentRecord, source_url: Optional[str] = None) -> ContentRecord:
        source = source_url if source_url is not None else record.source_url
        now = self.clock().isoformat()
        title, type_ = record.natural_key
        try:
            with transaction(self.conn):
                existing = self.conn.execute(
                    "SELECT 1 FROM content WHERE title = ? AND type = ?", (title, type_)
                ).fetchone()
                if existing:
                    self.conn.execute(
                        """
                        UPDATE content
                        SET year = ?, category = ?, extra_info = ?, rating = ?, source_url = ?, updated_at = ?
                        WHERE title = ? AND type = ?
                        """,
                        (record.year, record.category, record.extra_info, record.rating, source, now, title, type_),
                    )
                else:
                    self.conn.execute(
                        f"INSERT INTO content ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                        (title, record.year, record.category, record.extra_info, type_,
                         record.rating, source, now, now, now),
                    )
        except (sqlite3.Error, OverflowError) as exc:
            raise PersistenceError(f"failed to save content {title!r}: {exc}") from exc
        stored = self.get(title, type_)
        if stored is None:
            raise PersistenceError(f"content {title!r} missing after save")
        return stored

    def _query(self, sql: str, params: tuple = ()) -> List[ContentRecord]:
        try:
            rows = self.conn.execute(sql, params).fetchall()
        except (sqlite3.Error, OverflowError) as exc:
            raise PersistenceError(f"failed to query content: {exc}") from exc
        return [_row_to_record(row) for row in rows]

    def get(self, title: str, content_type: Any) -> Optional[ContentRecord]:
        type_value = ContentType(content_type).value
        rows = self._query(f"SELECT {_COLUMNS} FROM content WHERE title = ? AND type = ?", (title, type_value))
        return rows[0] if rows else None

    def get_all(self) -> List[ContentRecord]:
        return self._query(f"SELECT {_COLUMNS} FROM content ORDER BY created_at DESC, id DESC")

    def get_by_type(self, content_type: Any) -> List[ContentRecord]:
        type_value = ContentType(content_type).value
        return self._query(
            f"SELECT {_COLUMNS} FROM content WHERE type = ? ORDER BY created_at DESC, id DESC", (type_value,)
        )

    def search(self, title: str) -> List[ContentRecord]:
        """Case-insensitive substring search on titles."""
        return self._query(
            f"SELECT {_COLUMNS} FROM content WHERE title LIKE ? ORDER BY created_at DESC, id DESC",
            (f"%{title}%",),
        )

    def get_stats(self) -> Dict[str, int]:
        try:
            row = self.conn.execute(
                """
                SELECT COUNT(*) AS total,
                       COALESCE(SUM(type = 'movie'), 0) AS movies,
                       COALESCE(SUM(type = 'series'), 0) AS series
                FROM content
                """
            ).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(f"failed to get stats: {exc}") from exc
        return {"total": row["total"], "movies": row["movies"], "series": row["series"]}

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "SQLiteContentStore":
        if self._conn is None:
            self.initialize()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
