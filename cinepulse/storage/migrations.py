"""
Versioned schema migrations for the SQLite content store.

Each migration carries the statements to apply and to revert it.  The
applied version is tracked in SQLite's ``PRAGMA user_version`` so no
bookkeeping table is needed.  Migrations run inside a transaction; a
failing statement leaves the schema at the previous version.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Sequence, Tuple

from ..errors import PersistenceError

logger = logging.getLogger(__name__)


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Run a block in an explicit transaction on an autocommit connection."""
    conn.execute("BEGIN")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")


@dataclass(frozen=True)
class Migration:
    version: int
    description: str
    up: Sequence[str]
    down: Sequence[str]


MIGRATIONS: Tuple[Migration, ...] = (
    Migration(
        1,
        "initial schema",
        up=(
            """
            CREATE TABLE IF NOT EXISTS content (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL,
                year INTEGER,
                category TEXT NOT NULL,
                extra_info TEXT,
                type TEXT NOT NULL,
                created_at TEXT,
                updated_at TEXT
            )
            """,
            "CREATE INDEX IF NOT EXISTS idx_content_title ON content(title)",
            "CREATE INDEX IF NOT EXISTS idx_content_type ON content(type)",
            "CREATE INDEX IF NOT EXISTS idx_content_category ON content(category)",
            "CREATE INDEX IF NOT EXISTS idx_content_year ON content(year)",
        ),
        down=(
            "DROP INDEX IF EXISTS idx_content_year",
            "DROP INDEX IF EXISTS idx_content_category",
            "DROP INDEX IF EXISTS idx_content_type",
            "DROP INDEX IF EXISTS idx_content_title",
            "DROP TABLE IF EXISTS content",
        ),
    ),
    Migration(
        2,
        "add rating, source url and scrape timestamp",
        up=(
            "ALTER TABLE content ADD COLUMN rating REAL",
            "ALTER TABLE content ADD COLUMN source_url TEXT",
            "ALTER TABLE content ADD COLUMN scraped_at TEXT",
            "UPDATE content SET scraped_at = created_at WHERE scraped_at IS NULL",
            "CREATE INDEX IF NOT EXISTS idx_content_rating ON content(rating)",
        ),
        down=(
            "DROP INDEX IF EXISTS idx_content_rating",
            "ALTER TABLE content DROP COLUMN scraped_at",
            "ALTER TABLE content DROP COLUMN source_url",
            "ALTER TABLE content DROP COLUMN rating",
        ),
    ),
    Migration(
        3,
        "unique natural key",
        up=("CREATE UNIQUE INDEX IF NOT EXISTS idx_content_natural_key ON content(title, type)",),
        down=("DROP INDEX IF EXISTS idx_content_natural_key",),
    ),
)


class MigrationManager:
    """Apply and revert :data:`MIGRATIONS` on an open connection."""

    def __init__(self, conn: sqlite3.Connection, migrations: Sequence[Migration] = MIGRATIONS) -> None:
        self.conn = conn
        self.migrations = sorted(migrations, key=lambda m: m.version)

    @property
    def latest(self) -> int:
        return self.migrations[-1].version if self.migrations else 0

    def version(self) -> int:
        return self.conn.execute("PRAGMA user_version").fetchone()[0]

    def _apply(self, migration: Migration, statements: Sequence[str], target: int) -> None:
        try:
            with transaction(self.conn):
                for statement in statements:
                    self.conn.execute(statement)
                # PRAGMA does not accept bound parameters
                self.conn.execute(f"PRAGMA user_version = {int(target)}")
        except sqlite3.Error as exc:
            raise PersistenceError(f"migration {migration.version} ({migration.description}) failed: {exc}") from exc

    def up(self) -> int:
        """Apply every pending migration and return the new version."""
        current = self.version()
        for migration in self.migrations:
            if migration.version <= current:
                continue
            self._apply(migration, migration.up, migration.version)
            logger.info("Applied migration %d: %s", migration.version, migration.description)
        return self.version()

    def down(self) -> int:
        """Revert the most recently applied migration."""
        current = self.version()
        applied = [m for m in self.migrations if m.version <= current]
        if not applied:
            logger.info("No migrations to roll back")
            return current
        migration = applied[-1]
        previous = applied[-2].version if len(applied) > 1 else 0
        self._apply(migration, migration.down, previous)
        logger.info("Rolled back migration %d: %s", migration.version, migration.description)
        return self.version()

    def reset(self) -> int:
        """Revert all migrations, then apply them again."""
        while self.version() > 0:
            self.down()
        return self.up()

    def status(self) -> List[Tuple[int, str, bool]]:
        current = self.version()
        return [(m.version, m.description, m.version <= current) for m in self.migrations]
