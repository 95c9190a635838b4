"""
Provider fallback orchestration.

Tries each configured provider in priority order and normalizes its
reply.  The first provider whose reply yields at least one valid record
wins.  A provider that fails, or whose reply normalizes to nothing, is
treated the same way: log it and move on.  Provider failures are never
raised to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from ..errors import ProviderError
from ..extract import NormalizationResult, ResponseNormalizer
from ..extract.normalizer import truncate
from ..records import ContentRecord
from .llm_providers import TextGenerationProvider

logger = logging.getLogger(__name__)


@dataclass
class ProviderAttempt:
    provider: str
    error: Optional[str] = None
    normalization: Optional[NormalizationResult] = None

    @property
    def record_count(self) -> int:
        return len(self.normalization) if self.normalization is not None else 0


@dataclass
class OrchestrationResult:
    records: List[ContentRecord] = field(default_factory=list)
    provider: Optional[str] = None
    attempts: List[ProviderAttempt] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.records)


class ProviderOrchestrator:
    def __init__(
        self,
        providers: Iterable[TextGenerationProvider],
        normalizer: Optional[ResponseNormalizer] = None,
    ) -> None:
        self.providers: List[TextGenerationProvider] = list(providers)
        self.normalizer = normalizer or ResponseNormalizer()

    def extract(self, prompt: str) -> OrchestrationResult:
        """Run *prompt* through the providers until one yields records.

        Returns:
            The records of the first successful provider together with
            its name, or an empty result with ``provider=None``.
        """
        result = OrchestrationResult()
        for provider in self.providers:
            attempt = ProviderAttempt(provider.name)
            result.attempts.append(attempt)
            try:
                raw = provider.generate(prompt)
            except ProviderError as exc:
                logger.warning("Error generating text with %s: %s", provider.name, exc)
                attempt.error = str(exc)
                continue
            except Exception as exc:  # noqa: BLE001
                logger.exception("Unexpected failure from provider %s: %s", provider.name, exc)
                attempt.error = str(exc)
                continue

            try:
                attempt.normalization = self.normalizer.normalize(raw)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Unexpected failure normalizing %s response: %s", provider.name, exc)
                attempt.error = str(exc)
                continue
            if attempt.normalization.records:
                result.records = attempt.normalization.records
                result.provider = provider.name
                logger.info(
                    "Provider %s produced %d records (%s)",
                    provider.name,
                    len(result.records),
                    attempt.normalization.tier.value,
                )
                return result
            logger.warning(
                "Provider %s response yielded no records; raw response: %s",
                provider.name,
                truncate(raw, 100),
            )
        return result

    def close(self) -> None:
        for provider in self.providers:
            provider.close()
