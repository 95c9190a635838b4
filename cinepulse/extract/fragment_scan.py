"""
Tier A: direct fragment scan.

Finds every self-contained ``{...}`` block (one that contains no nested
braces) anywhere in the model output and pulls each field out by its
label with a regular expression.  Nothing is parsed as JSON, so stray
commas, missing brackets or prose around the objects do not matter.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Pattern

from ..records import FieldBag
from .candidate import ExtractionCandidate, Tier, TierOutcome
from .validator import validate

logger = logging.getLogger(__name__)

OBJECT_PATTERN = re.compile(r"\{[^{}]*\}")

FIELD_PATTERNS: Dict[str, Pattern[str]] = {
    "title": re.compile(r'"title"\s*:\s*"([^"]+)"'),
    "year": re.compile(r'"year"\s*:\s*(\d+)'),
    "category": re.compile(r'"category"\s*:\s*"([^"]+)"'),
    "extra_info": re.compile(r'"extra_info"\s*:\s*"([^"]+)"'),
    "type": re.compile(r'"type"\s*:\s*"([^"]+)"'),
    "rating": re.compile(r'"rating"\s*:\s*(\d+(?:\.\d+)?)'),
}


def fields_from_block(block: str) -> FieldBag:
    """Extract labelled field values from a single brace-delimited block."""
    bag: FieldBag = {}
    for name, pattern in FIELD_PATTERNS.items():
        match = pattern.search(block)
        if match:
            bag[name] = match.group(1)
    return bag


def scan_fragments(text: str) -> TierOutcome:
    outcome = TierOutcome(Tier.FRAGMENT_SCAN)
    blocks = OBJECT_PATTERN.findall(text)
    logger.debug("Found %d potential content objects in response", len(blocks))
    for block in blocks:
        result = validate(fields_from_block(block))
        outcome.candidates.append(
            ExtractionCandidate(block, Tier.FRAGMENT_SCAN, record=result.record, reason=result.reason)
        )
    return outcome
