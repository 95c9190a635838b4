"""
Extraction subsystem for Cine Pulse.

Converts free-form provider output into validated `ContentRecord`
instances.  :mod:`.validator` holds the field rules shared by every
recovery tier; :mod:`.normalizer` sequences the tiers.
"""

from .candidate import ExtractionCandidate, Tier, TierOutcome  # noqa: F401
from .validator import Validation, validate  # noqa: F401
from .normalizer import NormalizationResult, ResponseNormalizer, normalize_response  # noqa: F401
