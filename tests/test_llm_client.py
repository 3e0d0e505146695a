import asyncio
from typing import Optional

import pytest

from issue_investigator.config import InvestigatorSettings
from issue_investigator.exceptions import LLMProviderError
from issue_investigator.infrastructure.llm import LLMClient, ProviderRegistry, estimate_tokens
from issue_investigator.infrastructure.llm.providers import BaseLLMProvider, LLMResponse, ProviderConfig


class FakeProvider(BaseLLMProvider):
    def __init__(self, name: str, answer: Optional[str] = "ok", tokens: int = 0):
        super().__init__(ProviderConfig(name=name, models=["fake-model"]))
        self._name = name
        self.answer = answer
        self.tokens = tokens
        self.prompts = []

    @property
    def provider_name(self) -> str:
        return self._name

    async def generate(self, prompt, system_prompt=None, model=None, temperature=None) -> LLMResponse:
        self.prompts.append((prompt, system_prompt))
        if self.answer is None:
            raise ConnectionError(f"{self._name} unreachable")
        return LLMResponse(
            content=self.answer,
            provider=self._name,
            model=self.get_effective_model(model),
            tokens_used=self.tokens,
            response_time_ms=1,
        )

    def is_available(self) -> bool:
        return True

    async def check_connection(self) -> str:
        return f"{self._name} 1.0"


def test_complete_passes_system_prompt_and_counts_tokens():
    registry = ProviderRegistry()
    provider = FakeProvider("fake", answer="two words", tokens=0)
    registry.register_provider(provider)
    client = LLMClient(registry)

    answer = asyncio.run(client.complete("one two three", "be terse"))

    assert answer == "two words"
    assert provider.prompts == [("one two three", "be terse")]
    stats = client.get_stats()
    assert stats["total_requests"] == 1
    assert stats["failed_requests"] == 0
    assert stats["estimated_tokens_used"] == estimate_tokens("one two three", "two words")
    assert stats["last_request_time"] is not None
    assert stats["providers"] == ["fake"]


def test_reported_token_usage_wins_over_estimate():
    registry = ProviderRegistry()
    registry.register_provider(FakeProvider("fake", tokens=42))
    client = LLMClient(registry)

    asyncio.run(client.complete("hello", "sys"))
    assert client.get_stats()["estimated_tokens_used"] == 42


def test_falls_back_to_next_provider():
    registry = ProviderRegistry()
    registry.register_provider(FakeProvider("backup", answer="from backup"))
    registry.register_provider(FakeProvider("primary", answer=None), primary=True)
    client = LLMClient(registry)

    assert registry.get_fallback_chain() == ["primary", "backup"]
    assert asyncio.run(client.complete("hi", "sys")) == "from backup"


def test_all_providers_failing_raises_and_counts_failure():
    registry = ProviderRegistry()
    registry.register_provider(FakeProvider("only", answer=None))
    client = LLMClient(registry)

    with pytest.raises(LLMProviderError, match="only unreachable"):
        asyncio.run(client.complete("hi", "sys"))

    stats = client.get_stats()
    assert stats["total_requests"] == 1
    assert stats["failed_requests"] == 1

    client.reset_stats()
    assert client.get_stats()["total_requests"] == 0


def test_none_prompt_is_rejected():
    client = LLMClient(ProviderRegistry())
    with pytest.raises(TypeError):
        asyncio.run(client.complete(None, "sys"))


def test_verify_connection_checks_primary_provider():
    registry = ProviderRegistry()
    registry.register_provider(FakeProvider("fake"))
    assert asyncio.run(LLMClient(registry).verify_connection()) == "fake 1.0"


def test_verify_connection_without_providers():
    with pytest.raises(LLMProviderError, match="No LLM provider configured"):
        asyncio.run(LLMClient(ProviderRegistry()).verify_connection())


def test_registry_from_settings_orders_primary_first():
    settings = InvestigatorSettings(llm_provider="openai", openai_api_key="sk-test")
    registry = ProviderRegistry(settings)
    assert registry.get_fallback_chain() == ["openai", "local"]


def test_registry_skips_openai_without_key():
    registry = ProviderRegistry(InvestigatorSettings(llm_provider="openai"))
    assert registry.get_fallback_chain() == ["local"]


def test_unknown_provider_defaults_to_local():
    registry = ProviderRegistry(InvestigatorSettings(llm_provider="mystery"))
    assert registry.get_fallback_chain()[0] == "local"


class FlakyProvider(FakeProvider):
    def __init__(self, failures: int):
        super().__init__("flaky")
        self.failures = failures
        self.checks = 0

    async def check_connection(self) -> str:
        self.checks += 1
        if self.checks <= self.failures:
            raise ConnectionError("model server still starting")
        return "flaky 2.0"


def test_verify_connection_retries_until_the_server_answers():
    registry = ProviderRegistry()
    provider = FlakyProvider(failures=2)
    registry.register_provider(provider)

    version = asyncio.run(LLMClient(registry).verify_connection(max_attempts=3, min_wait=0, max_wait=0))

    assert version == "flaky 2.0"
    assert provider.checks == 3


def test_verify_connection_gives_up_after_max_attempts():
    registry = ProviderRegistry()
    provider = FlakyProvider(failures=5)
    registry.register_provider(provider)

    with pytest.raises(ConnectionError, match="still starting"):
        asyncio.run(LLMClient(registry).verify_connection(max_attempts=2, min_wait=0, max_wait=0))
    assert provider.checks == 2
