"""
Storage subsystem for Cine Pulse.

`SQLiteContentStore` persists records and implements the natural-key
upsert; `MigrationManager` versions its schema.
"""

from .base import ContentStore  # noqa: F401
from .migrations import MIGRATIONS, Migration, MigrationManager  # noqa: F401
from .sqlite_store import DATABASE_FILENAME, SQLiteContentStore  # noqa: F401
