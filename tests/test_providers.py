"""Tests for the provider implementations and the fallback orchestrator.

The OpenAI and Gemini providers are constructed with injected clients so
no SDK call leaves the process.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest import mock

import pytest  # type: ignore

from cinepulse.config import Settings
from cinepulse.errors import ConfigError, ProviderError
from cinepulse.extract import Tier
from cinepulse.providers import (
    GeminiProvider,
    OpenAIProvider,
    ProviderOrchestrator,
    build_providers,
    create_provider,
    detect_provider_kind,
)
from cinepulse.providers import llm_providers

from .fakes import FakeProvider

GOOD = '[{"title":"Dune","year":2021,"category":"Hollywood","type":"movie"},{"title":"Arcane","category":"Anime","type":"series"}]'


def _chat_response(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


# Orchestrator


def test_fallback_to_second_provider_when_first_yields_nothing() -> None:
    first = FakeProvider("one", "I could not find anything.")
    second = FakeProvider("two", GOOD)
    result = ProviderOrchestrator([first, second]).extract("prompt")

    assert [r.title for r in result.records] == ["Dune", "Arcane"]
    assert result.provider == "fake:two"
    assert [a.provider for a in result.attempts] == ["fake:one", "fake:two"]
    assert result.attempts[0].record_count == 0
    assert result.attempts[1].normalization.tier is Tier.FRAGMENT_SCAN


def test_failing_provider_is_skipped() -> None:
    failing = FakeProvider("down", None)
    working = FakeProvider("up", GOOD)
    result = ProviderOrchestrator([failing, working]).extract("prompt")
    assert result.provider == "fake:up"
    assert "quota exceeded" in result.attempts[0].error


def test_unexpected_exception_is_contained() -> None:
    broken = FakeProvider("broken", GOOD)
    broken.generate = mock.Mock(side_effect=KeyError("boom"))
    result = ProviderOrchestrator([broken]).extract("prompt")
    assert not result
    assert result.provider is None
    assert result.attempts[0].error


def test_normalizer_failure_moves_to_next_provider() -> None:
    first = FakeProvider("one", GOOD)
    second = FakeProvider("two", GOOD)
    orchestrator = ProviderOrchestrator([first, second])
    real_normalize = orchestrator.normalizer.normalize
    orchestrator.normalizer = mock.Mock()
    orchestrator.normalizer.normalize.side_effect = [RuntimeError("normalizer bug"), real_normalize(GOOD)]

    result = orchestrator.extract("prompt")
    assert result.provider == "fake:two"
    assert "normalizer bug" in result.attempts[0].error
    assert result.attempts[0].normalization is None
    assert [r.title for r in result.records] == ["Dune", "Arcane"]


def test_first_success_stops_the_chain() -> None:
    first = FakeProvider("one", GOOD)
    second = FakeProvider("two", GOOD)
    ProviderOrchestrator([first, second]).extract("prompt")
    assert first.prompts == ["prompt"]
    assert second.prompts == []


def test_no_providers_yields_empty_result() -> None:
    result = ProviderOrchestrator([]).extract("prompt")
    assert result.records == []
    assert result.attempts == []


def test_close_closes_every_provider() -> None:
    providers = [FakeProvider("a", GOOD), FakeProvider("b", GOOD)]
    ProviderOrchestrator(providers).close()
    assert all(p.closed for p in providers)


# OpenAI


def test_openai_generate_uses_chat_completions() -> None:
    client = mock.Mock()
    client.chat.completions.create.return_value = _chat_response(GOOD)
    provider = OpenAIProvider("sk-test", "gpt-4o", client=client)

    assert provider.generate("extract this") == GOOD
    assert provider.name == "openai:gpt-4o"
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4o"
    assert kwargs["messages"] == [{"role": "user", "content": "extract this"}]
    assert kwargs["max_tokens"] == 1000
    assert kwargs["temperature"] == 0.7


@pytest.mark.parametrize(
    "configure",
    [
        lambda c: setattr(c.chat.completions.create, "side_effect", RuntimeError("401 Unauthorized")),
        lambda c: setattr(c.chat.completions.create, "return_value", SimpleNamespace(choices=[])),
        lambda c: setattr(c.chat.completions.create, "return_value", _chat_response("")),
    ],
)
def test_openai_failures_raise_provider_error(configure) -> None:
    client = mock.Mock()
    configure(client)
    provider = OpenAIProvider("sk-test", client=client)
    with pytest.raises(ProviderError) as excinfo:
        provider.generate("prompt")
    assert excinfo.value.provider == "openai:gpt-4o"


def test_openai_requires_key() -> None:
    with pytest.raises(ValueError):
        OpenAIProvider("")


# Gemini


def test_gemini_generate_passes_timeout() -> None:
    model = mock.Mock()
    model.generate_content.return_value = SimpleNamespace(text=GOOD)
    provider = GeminiProvider("key", client=model, timeout=12)

    assert provider.generate("prompt") == GOOD
    assert provider.name == "gemini:gemini-1.5-flash"
    model.generate_content.assert_called_once_with("prompt", request_options={"timeout": 12})


def test_gemini_blocked_response_raises_provider_error() -> None:
    class Blocked:
        @property
        def text(self):
            raise ValueError("response was blocked")

    model = mock.Mock()
    model.generate_content.return_value = Blocked()
    with pytest.raises(ProviderError):
        GeminiProvider("key", client=model).generate("prompt")


# Factory helpers


@pytest.mark.parametrize(
    "model_name, kind",
    [("gpt-4o", "openai"), ("openai/gpt-4.1", "openai"), ("gemini-1.5-flash", "gemini"), ("llama3", None), ("", None)],
)
def test_detect_provider_kind(model_name, kind) -> None:
    assert detect_provider_kind(model_name) == kind


def test_create_provider_rejects_unknown_kind() -> None:
    with pytest.raises(ConfigError):
        create_provider("claude", "key")


def test_build_providers_respects_order_and_skips_missing_keys(monkeypatch: pytest.MonkeyPatch) -> None:
    created = []

    def fake_create(kind, api_key, model="", *, options=None, timeout=30.0):
        created.append((kind, api_key, model, options.max_tokens, timeout))
        return FakeProvider(model, GOOD)

    monkeypatch.setattr(llm_providers, "create_provider", fake_create)
    settings = Settings(
        llm_providers=["openai", "gemini"],
        openai_api_key="sk-test",
        gemini_api_key="",
        llm_max_tokens=2048,
        llm_timeout_seconds=15,
    )
    providers = build_providers(settings)
    assert len(providers) == 1
    assert created == [("openai", "sk-test", "gpt-4o", 2048, 15)]


def test_build_providers_skips_provider_that_fails_to_initialise(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_create(kind, api_key, model="", *, options=None, timeout=30.0):
        if kind == "gemini":
            raise RuntimeError("google-generativeai package is required")
        return FakeProvider(model, GOOD)

    monkeypatch.setattr(llm_providers, "create_provider", fake_create)
    settings = Settings(gemini_api_key="g", openai_api_key="o")
    providers = build_providers(settings)
    assert [p.model_name for p in providers] == ["gpt-4o"]


def test_build_providers_rejects_unknown_name() -> None:
    with pytest.raises(ConfigError):
        build_providers(Settings(llm_providers=["mystery"], openai_api_key="o"))
