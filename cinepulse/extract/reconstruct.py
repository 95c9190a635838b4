"""
Tier C: fragment reconstruction.

Last resort when the repaired array still does not parse.  The array
body is split on ``},`` to approximate object boundaries, braces are
restored on every piece and each piece is parsed on its own, so one
broken object no longer takes the whole response down with it.
"""

from __future__ import annotations

import json
import logging
from typing import List

from .candidate import ExtractionCandidate, Tier, TierOutcome
from .validator import validate

logger = logging.getLogger(__name__)

OBJECT_BOUNDARY = "},"


def split_objects(array_text: str) -> List[str]:
    """Split an array slice into brace-balanced object candidates."""
    body = array_text.strip()
    if body.startswith("["):
        body = body[1:]
    if body.endswith("]"):
        body = body[:-1]

    parts = [part.strip() for part in body.strip().split(OBJECT_BOUNDARY)]
    pieces = [part + "}" for part in parts[:-1]]
    last = parts[-1]
    if not last.endswith("}"):
        last += "}"
    pieces.append(last)

    fragments = []
    for piece in pieces:
        if not piece.startswith("{"):
            piece = "{" + piece
        if not piece.endswith("}"):
            piece += "}"
        fragments.append(piece)
    return fragments


def reconstruct(array_text: str) -> TierOutcome:
    outcome = TierOutcome(Tier.RECONSTRUCTION)
    for fragment in split_objects(array_text):
        try:
            item = json.loads(fragment)
        except (ValueError, RecursionError):
            logger.debug("Skipping invalid object: %s", fragment[:200])
            outcome.candidates.append(ExtractionCandidate(fragment, Tier.RECONSTRUCTION, reason="unparsable"))
            continue
        result = validate(item)
        outcome.candidates.append(
            ExtractionCandidate(fragment, Tier.RECONSTRUCTION, record=result.record, reason=result.reason)
        )
    return outcome
