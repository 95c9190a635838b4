"""
Provider subsystem for Cine Pulse.

`llm_providers` defines the text-generation interface and its OpenAI
and Gemini implementations; `orchestrator` tries them in priority order
until one produces usable records.
"""

from .llm_providers import (  # noqa: F401
    GeminiProvider,
    GenerationOptions,
    OpenAIProvider,
    TextGenerationProvider,
    build_providers,
    create_provider,
    detect_provider_kind,
)
from .orchestrator import OrchestrationResult, ProviderAttempt, ProviderOrchestrator  # noqa: F401
