"""
Response normalizer.

Turns one raw provider response into an ordered list of validated
`ContentRecord` objects by running the recovery tiers in order:

* **Tier A** (:mod:`.fragment_scan`) always runs.  If it yields at least
  one valid record the later tiers are skipped.
* **Tier B** (:mod:`.array_repair`) isolates and repairs the JSON array.
  If no array or object is present the response yields nothing.
* **Tier C** (:mod:`.reconstruct`) only runs when both Tier B parse
  attempts failed.

Malformed input never raises; the worst case is an empty result.  The
returned :class:`NormalizationResult` records which tier produced the
records and how many fragments every tier discarded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..errors import ParseError
from ..records import ContentRecord
from .array_repair import recover_array
from .candidate import Tier, TierOutcome
from .fragment_scan import scan_fragments
from .reconstruct import reconstruct

logger = logging.getLogger(__name__)

LOG_PREVIEW_CHARS = 200


def truncate(text: str, max_len: int = LOG_PREVIEW_CHARS) -> str:
    if len(text) <= max_len:
        return text
    return text[:max_len] + "..."


@dataclass
class NormalizationResult:
    records: List[ContentRecord] = field(default_factory=list)
    tier: Optional[Tier] = None
    outcomes: List[TierOutcome] = field(default_factory=list)

    @property
    def tiers_attempted(self) -> List[Tier]:
        return [outcome.tier for outcome in self.outcomes]

    @property
    def discarded(self) -> Dict[Tier, int]:
        return {outcome.tier: outcome.discarded for outcome in self.outcomes}

    def __bool__(self) -> bool:
        return bool(self.records)

    def __len__(self) -> int:
        return len(self.records)


class ResponseNormalizer:
    """Stateless tiered recovery; one instance can be shared freely."""

    def normalize(self, raw: str) -> NormalizationResult:
        result = NormalizationResult()
        if not raw or not raw.strip():
            logger.debug("Empty model response")
            return result
        logger.debug("Raw model response: %s", truncate(raw))

        outcome = scan_fragments(raw)
        result.outcomes.append(outcome)
        if outcome.records:
            return self._finish(result, outcome)

        try:
            outcome = recover_array(raw)
        except ParseError as exc:
            logger.debug("%s", exc)
            result.outcomes.append(TierOutcome(Tier.ARRAY_REPAIR))
            outcome = reconstruct(exc.text)
        result.outcomes.append(outcome)
        return self._finish(result, outcome)

    def _finish(self, result: NormalizationResult, outcome: TierOutcome) -> NormalizationResult:
        result.records = outcome.records
        if result.records:
            result.tier = outcome.tier
        logger.debug(
            "Normalized %d records via %s (discarded per tier: %s)",
            len(result.records),
            result.tier.value if result.tier else "none",
            {tier.value: count for tier, count in result.discarded.items()},
        )
        return result


def normalize_response(raw: str) -> List[ContentRecord]:
    """Convenience wrapper returning only the records."""
    return ResponseNormalizer().normalize(raw).records
