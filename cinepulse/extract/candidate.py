"""
Bookkeeping types for the recovery tiers.

An `ExtractionCandidate` is a single fragment a tier tried to turn into
a record.  Candidates only live for one normalizer call; they exist so
the normalizer can report how many fragments each tier discarded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ..records import ContentRecord


class Tier(str, Enum):
    """Recovery strategies, cheapest first."""

    FRAGMENT_SCAN = "fragment_scan"
    ARRAY_REPAIR = "array_repair"
    RECONSTRUCTION = "reconstruction"


@dataclass
class ExtractionCandidate:
    fragment: str
    tier: Tier
    record: Optional[ContentRecord] = None
    reason: Optional[str] = None

    @property
    def valid(self) -> bool:
        return self.record is not None


@dataclass
class TierOutcome:
    """Records and candidates produced by one tier."""

    tier: Tier
    candidates: List[ExtractionCandidate] = field(default_factory=list)

    @property
    def records(self) -> List[ContentRecord]:
        return [c.record for c in self.candidates if c.record is not None]

    @property
    def discarded(self) -> int:
        return sum(1 for c in self.candidates if not c.valid)
