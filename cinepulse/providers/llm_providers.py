"""
Text-generation provider abstractions.

This module defines the common interface for the large language model
(LLM) providers Cine Pulse sends its extraction prompt to.  Concrete
implementations are provided for the OpenAI and Gemini (Google
Generative AI) APIs.  A provider only turns a prompt into raw text;
interpreting that text is the job of :mod:`cinepulse.extract`.

Every provider failure (missing package, authentication, quota,
timeout, transport, empty reply) surfaces as
:class:`~cinepulse.errors.ProviderError` so the orchestrator can move
on to the next provider.

:func:`build_providers` builds the ordered provider list from
:class:`~cinepulse.config.Settings`.  Providers whose API key is not
configured are left out.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, List, Optional

from ..errors import ConfigError, ProviderError

if TYPE_CHECKING:  # pragma: no cover
    from ..config import Settings

logger = logging.getLogger(__name__)

OPENAI = "openai"
GEMINI = "gemini"
SUPPORTED_KINDS = (GEMINI, OPENAI)

DEFAULT_OPENAI_MODEL = "gpt-4o"
DEFAULT_GEMINI_MODEL = "gemini-1.5-flash"


@dataclass
class GenerationOptions:
    """Sampling options shared by all providers."""

    max_tokens: int = 1000
    temperature: float = 0.7
    top_p: float = 0.9
    top_k: int = 40


class TextGenerationProvider(ABC):
    """Abstract base class for text-generation providers."""

    kind: str = ""

    def __init__(self, model: str) -> None:
        self.model_name = model

    @property
    def name(self) -> str:
        """Identifier used for logging and result attribution, e.g. ``gemini:gemini-1.5-flash``."""
        return f"{self.kind}:{self.model_name}"

    @abstractmethod
    def generate(self, prompt: str) -> str:
        """Send *prompt* to the provider and return the raw reply text.

        Raises:
            ProviderError: the call failed or returned no text.
        """
        raise NotImplementedError

    def close(self) -> None:
        """Release any resources held by the client."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"


class OpenAIProvider(TextGenerationProvider):
    """Provider that uses the OpenAI chat completions API."""

    kind = OPENAI

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_OPENAI_MODEL,
        *,
        options: Optional[GenerationOptions] = None,
        timeout: float = 30.0,
        client: Any = None,
    ) -> None:
        super().__init__(model or DEFAULT_OPENAI_MODEL)
        self.options = options or GenerationOptions()
        if client is not None:
            self.client = client
            return
        if not api_key:
            raise ValueError("OPENAI_API_KEY not provided")
        try:
            import openai
        except ImportError as exc:
            raise RuntimeError(
                "openai package is required for OpenAIProvider. Install it via pip."
            ) from exc
        self.client = openai.OpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    def generate(self, prompt: str) -> str:
        logger.debug("Sending prompt to %s (%d chars)", self.name, len(prompt))
        try:
            response = self.client.chat.completions.create(
                model=self.model_name,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self.options.max_tokens,
                temperature=self.options.temperature,
                top_p=self.options.top_p,
            )
        except Exception as exc:  # noqa: BLE001
            raise ProviderError(self.name, f"API call failed: {exc}") from exc
        if not response.choices:
            raise ProviderError(self.name, "no choices in response")
        content = response.choices[0].message.content
        if not content:
            raise ProviderError(self.name, "empty response")
        return content

    def close(self) -> None:
        closer = getattr(self.client, "close", None)
        if callable(closer):
            closer()


class GeminiProvider(TextGenerationProvider):
    """Provider that uses Google Generative AI (Gemini) via google-generativeai."""

    kind = GEMINI

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_GEMINI_MODEL,
        *,
        options: Optional[GenerationOptions] = None,
        timeout: float = 30.0,
        client: Any = None,
    ) -> None:
        super().__init__(model or DEFAULT_GEMINI_MODEL)
        self.options = options or GenerationOptions()
        self.timeout = timeout
        if client is not None:
            self.model = client
            return
        if not api_key:
            raise ValueError("GEMINI_API_KEY/GOOGLE_API_KEY not provided")
        try:
            import google.generativeai as genai
        except ImportError as exc:
            raise RuntimeError(
                "google-generativeai package is required for GeminiProvider. Install it via pip."
            ) from exc
        genai.configure(api_key=api_key)
        try:
            self.model = genai.GenerativeModel(
                self.model_name,
                generation_config={
                    "max_output_tokens": self.options.max_tokens,
                    "temperature": self.options.temperature,
                    "top_p": self.options.top_p,
                    "top_k": self.options.top_k,
                },
            )
        except Exception as exc:  # noqa: BLE001
            raise RuntimeError(f"Failed to load Gemini model {self.model_name}: {exc}") from exc

    def generate(self, prompt: str) -> str:
        logger.debug("Sending prompt to %s (%d chars)", self.name, len(prompt))
        try:
            response = self.model.generate_content(prompt, request_options={"timeout": self.timeout})
            # .text raises ValueError when the candidate was blocked or empty
            content = response.text
        except Exception as exc:  # noqa: BLE001
            raise ProviderError(self.name, f"API call failed: {exc}") from exc
        if not content:
            raise ProviderError(self.name, "empty response")
        return content


def detect_provider_kind(model_name: str) -> Optional[str]:
    """Guess the provider kind from a model name, e.g. ``gpt-4o`` -> ``openai``."""
    lowered = (model_name or "").lower()
    if "gpt" in lowered or "openai" in lowered:
        return OPENAI
    if "gemini" in lowered:
        return GEMINI
    return None


def create_provider(
    kind: str,
    api_key: str,
    model: str = "",
    *,
    options: Optional[GenerationOptions] = None,
    timeout: float = 30.0,
) -> TextGenerationProvider:
    """Instantiate a provider by kind.

    Raises:
        ConfigError: *kind* is not a supported provider.
    """
    kind = kind.strip().lower()
    if kind == OPENAI:
        return OpenAIProvider(api_key, model, options=options, timeout=timeout)
    if kind == GEMINI:
        return GeminiProvider(api_key, model, options=options, timeout=timeout)
    raise ConfigError(f"Unknown LLM provider '{kind}'; expected one of {', '.join(SUPPORTED_KINDS)}")


def build_providers(settings: "Settings") -> List[TextGenerationProvider]:
    """Return the configured providers in priority order.

    Providers without an API key are skipped.  A provider that fails to
    initialise (missing package, bad model name) is logged and skipped.

    Raises:
        ConfigError: the provider order names an unknown provider.
    """
    providers: List[TextGenerationProvider] = []
    options = GenerationOptions(max_tokens=settings.llm_max_tokens)
    for kind in settings.llm_providers:
        kind = kind.strip().lower()
        if kind not in SUPPORTED_KINDS:
            raise ConfigError(f"Unknown LLM provider '{kind}'; expected one of {', '.join(SUPPORTED_KINDS)}")
        api_key = settings.gemini_api_key if kind == GEMINI else settings.openai_api_key
        model = settings.gemini_model if kind == GEMINI else settings.openai_model
        if not api_key:
            logger.info("No API key configured for %s; skipping provider", kind)
            continue
        try:
            providers.append(
                create_provider(kind, api_key, model, options=options, timeout=settings.llm_timeout_seconds)
            )
        except (ValueError, RuntimeError) as exc:
            logger.warning("Failed to initialise %s provider: %s", kind, exc)
    logger.info("Configured providers: %s", ", ".join(p.name for p in providers) or "none")
    return providers
