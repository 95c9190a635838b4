"""
Tier B: bracket/array recovery.

Isolates the JSON array in the model output (or a lone object, which is
wrapped into a one-element array), applies a fixed sequence of textual
repairs for mistakes models commonly make, and parses the result.  If
parsing fails a narrower second pass is applied and parsing is retried
once; if that fails too a :class:`~cinepulse.errors.ParseError` carrying
the repaired text is raised so Tier C can take over.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, List, Optional

from ..errors import ParseError
from .candidate import ExtractionCandidate, Tier, TierOutcome
from .validator import validate

logger = logging.getLogger(__name__)

FENCE_MARKERS = ("```json", "```")

_SPACE_BEFORE_COLON = re.compile(r'"([^"]+)" :')
# A bare value follows a key's closing quote and starts with anything that
# cannot open a JSON value (quote, bracket, brace, digit, space).  The JSON
# literals are left alone.
_BARE = r'(?<="): *(?!(?:true|false|null)\b)([^"{}\[\],\d\s][^{}\[\],\s]*)'
_BARE_BEFORE_COMMA = re.compile(_BARE + ",")
_BARE_BEFORE_CLOSE = re.compile(_BARE + r"(\s*[}\]])")
_BARE_AT_END = re.compile(_BARE + "$")
_CONTROL_CHARS = re.compile(r"[\x00-\x1F\x7F]")
_TRAILING_COMMA_OBJECT = re.compile(r",\s*\}")
_TRAILING_COMMA_ARRAY = re.compile(r",\s*\]")


def strip_fences(text: str) -> str:
    for marker in FENCE_MARKERS:
        text = text.replace(marker, "")
    return text


def isolate_array(text: str) -> Optional[str]:
    """Return the ``[...]`` slice of *text*, or a lone ``{...}`` wrapped in brackets.

    Returns ``None`` when neither form is present.
    """
    text = strip_fences(text)
    start = text.find("[")
    end = text.rfind("]")
    if start != -1 and end > start:
        return text[start:end + 1]

    obj_start = text.find("{")
    obj_end = text.rfind("}")
    if obj_start != -1 and obj_end > obj_start:
        logger.debug("Found JSON object instead of array, wrapping in array")
        return "[" + text[obj_start:obj_end + 1] + "]"
    return None


def repair(fragment: str) -> str:
    """Apply the first repair pass, in order."""
    fragment = fragment.replace("`", "")
    fragment = _SPACE_BEFORE_COLON.sub(r'"\1":', fragment)
    fragment = _BARE_BEFORE_COMMA.sub(r':"\1",', fragment)
    fragment = _BARE_BEFORE_CLOSE.sub(r':"\1"\2', fragment)
    fragment = _BARE_AT_END.sub(r':"\1"', fragment)
    fragment = fragment.replace('\\"', '"')
    fragment = _CONTROL_CHARS.sub("", fragment)
    fragment = _TRAILING_COMMA_OBJECT.sub("}", fragment)
    fragment = _TRAILING_COMMA_ARRAY.sub("]", fragment)
    return fragment


def repair_quotes(fragment: str) -> str:
    """Second, narrower pass used before the single retry."""
    fragment = fragment.replace('""', '"')
    fragment = fragment.replace("''", "'")
    return fragment.replace("…", "...")


def _load_array(fragment: str) -> List[Any]:
    data = json.loads(fragment)
    if not isinstance(data, list):
        raise ValueError(f"expected a JSON array, got {type(data).__name__}")
    return data


def parse_array(fragment: str) -> List[Any]:
    """Repair and parse an isolated array slice.

    Raises:
        ParseError: both parse attempts failed.  ``exc.text`` holds the
            fully repaired slice.
    """
    repaired = repair(fragment)
    try:
        return _load_array(repaired)
    except (ValueError, RecursionError) as exc:
        logger.debug("Extracted JSON is not valid: %s", exc)

    repaired = repair_quotes(repaired)
    try:
        return _load_array(repaired)
    except (ValueError, RecursionError) as exc:
        raise ParseError(f"JSON is still invalid after fixes: {exc}", text=repaired) from exc


def recover_array(text: str) -> TierOutcome:
    """Run Tier B over raw model output.

    An outcome with no candidates means no bracket form was found.
    """
    outcome = TierOutcome(Tier.ARRAY_REPAIR)
    fragment = isolate_array(text)
    if fragment is None:
        logger.debug("No JSON array or object found in response")
        return outcome

    for item in parse_array(fragment):
        result = validate(item)
        outcome.candidates.append(
            ExtractionCandidate(
                json.dumps(item, ensure_ascii=False),
                Tier.ARRAY_REPAIR,
                record=result.record,
                reason=result.reason,
            )
        )
    return outcome
