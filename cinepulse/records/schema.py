"""
Content record schema.

Defines the dataclass stored by the content store and emailed by the
notifier.  A record is identified by its natural key ``(title, type)``;
``year``, ``rating`` and ``source_url`` are optional and stay ``None``
when absent rather than defaulting to a sentinel value.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

# Intermediate mapping of field name to raw extracted value.
FieldBag = Dict[str, Any]

# Category that is never stored, whatever the provider returns.
EXCLUDED_CATEGORY = "Korean"


class ContentType(str, Enum):
    MOVIE = "movie"
    SERIES = "series"


@dataclass(frozen=True)
class ContentRecord:
    """A movie or series entry extracted from a source page.

    The timestamp fields are only populated on records read back from
    the store; records produced by the extraction pipeline leave them
    as ``None``.
    """

    title: str
    type: ContentType
    category: str
    extra_info: str = ""
    year: Optional[int] = None
    rating: Optional[float] = None
    source_url: Optional[str] = None
    scraped_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def natural_key(self) -> Tuple[str, str]:
        return self.title, self.type.value

    def with_source(self, source_url: str) -> "ContentRecord":
        return replace(self, source_url=source_url)

    def to_dict(self) -> Dict[str, Any]:
        """Serialise using the same field names the extraction prompt asks for."""
        data: Dict[str, Any] = {
            "title": self.title,
            "category": self.category,
            "extra_info": self.extra_info,
            "type": self.type.value,
        }
        if self.year is not None:
            data["year"] = self.year
        if self.rating is not None:
            data["rating"] = self.rating
        if self.source_url is not None:
            data["source_url"] = self.source_url
        return data
