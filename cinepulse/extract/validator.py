"""
Field rules for extracted records.

Every recovery tier funnels its field bags through :func:`validate`.
Required fields are checked in a fixed order and the first failure
rejects the bag; optional numeric fields that cannot be parsed are
dropped instead of rejecting the record.  ``rating`` is documented as
a 1-10 score but only its parseability is checked.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ..errors import ValidationError
from ..records import ContentRecord, ContentType, EXCLUDED_CATEGORY

logger = logging.getLogger(__name__)

MISSING_TITLE = "missing title"
MISSING_CATEGORY = "missing category"
EXCLUDED = "excluded category"
INVALID_TYPE = "invalid type"
NOT_AN_OBJECT = "not an object"

# SQLite INTEGER bounds
_YEAR_MIN = -(2**63)
_YEAR_MAX = 2**63 - 1


@dataclass(frozen=True)
class Validation:
    """Outcome of validating one field bag: a record or a rejection reason."""

    record: Optional[ContentRecord] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.record is not None


def _text(value: Any) -> Optional[str]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value.strip()
    return None


def _parse_year(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        year = value
    elif isinstance(value, float):
        if not value.is_integer():
            return None
        year = int(value)
    elif isinstance(value, str):
        try:
            year = int(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not _YEAR_MIN <= year <= _YEAR_MAX:
        return None
    return year


def _parse_rating(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        rating = float(value)
    except (TypeError, ValueError):
        return None
    # NaN and infinity parse but cannot be stored
    return rating if math.isfinite(rating) else None


def _build(bag: Mapping[str, Any]) -> ContentRecord:
    title = _text(bag.get("title"))
    if not title:
        raise ValidationError(MISSING_TITLE)

    category = _text(bag.get("category"))
    if not category:
        raise ValidationError(MISSING_CATEGORY)
    if category == EXCLUDED_CATEGORY:
        raise ValidationError(EXCLUDED)

    raw_type = bag.get("type")
    if raw_type not in (ContentType.MOVIE.value, ContentType.SERIES.value):
        raise ValidationError(INVALID_TYPE)

    extra_info = _text(bag.get("extra_info")) or ""

    year = None
    if "year" in bag:
        year = _parse_year(bag["year"])
        if year is None and bag["year"] is not None:
            logger.debug("Dropping unparsable year %r for %s", bag["year"], title)

    rating = None
    if "rating" in bag:
        rating = _parse_rating(bag["rating"])
        if rating is None and bag["rating"] is not None:
            logger.debug("Dropping unparsable rating %r for %s", bag["rating"], title)

    return ContentRecord(
        title=title,
        type=ContentType(raw_type),
        category=category,
        extra_info=extra_info,
        year=year,
        rating=rating,
    )


def validate(bag: Any) -> Validation:
    """Validate and normalise a loosely typed field bag.

    Args:
        bag: Mapping of field name to raw value.  Anything that is not
            a mapping is rejected.

    Returns:
        A :class:`Validation` holding either the record or the reason
        it was rejected.  Never raises for malformed input.
    """
    if not isinstance(bag, Mapping):
        return Validation(reason=NOT_AN_OBJECT)
    try:
        return Validation(record=_build(bag))
    except ValidationError as exc:
        return Validation(reason=exc.reason)
