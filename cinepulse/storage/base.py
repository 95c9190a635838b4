"""Storage interface used by the run driver."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from ..records import ContentRecord


class ContentStore(ABC):
    @abstractmethod
    def upsert(self, record: ContentRecord, source_url: Optional[str] = None) -> ContentRecord:
        """Insert or update *record* by its natural key ``(title, type)``.

        Returns:
            The stored record, timestamps included.

        Raises:
            PersistenceError: the write failed.
        """
        raise NotImplementedError

    def close(self) -> None:
        """Release the underlying connection."""
