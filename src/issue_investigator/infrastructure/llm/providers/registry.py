"""
Provider Registry for LLM providers.

Builds the configured providers from ``InvestigatorSettings`` and routes a
request through a fallback chain (primary provider first). Falling back to
another provider is the only retry that exists for model calls.
"""

import logging
from typing import Dict, List, Optional

from issue_investigator.config.settings import InvestigatorSettings
from issue_investigator.exceptions import LLMProviderError

from .base import BaseLLMProvider, LLMResponse, ProviderConfig
from .local_provider import LocalProvider
from .openai_provider import OpenAIProvider


# Data-driven provider schema - single source of truth
PROVIDER_SCHEMA = {
    "local": {
        "provider_class": LocalProvider,
        "requires_api_key": False,
    },
    "openai": {
        "provider_class": OpenAIProvider,
        "requires_api_key": True,
    },
}


class ProviderRegistry:
    """Registry of configured LLM providers and their fallback order"""

    def __init__(self, settings: Optional[InvestigatorSettings] = None):
        """Build providers from settings; without settings the registry starts empty."""
        self.logger = logging.getLogger(__name__)
        self.settings = settings
        self._providers: Dict[str, BaseLLMProvider] = {}
        self._fallback_chain: List[str] = []
        if settings is not None:
            self._initialize_from_settings()

    def _create_provider_config(self, provider_name: str) -> Optional[ProviderConfig]:
        """Create provider configuration from settings"""
        settings = self.settings
        if provider_name == "local":
            return ProviderConfig(
                name="local",
                base_url=settings.ollama_base_url.rstrip("/"),
                models=[settings.ollama_model],
                timeout=settings.llm_request_timeout,
            )
        if provider_name == "openai":
            if not settings.openai_api_key:
                self.logger.debug("Skipping provider 'openai': OPENAI_API_KEY not set")
                return None
            return ProviderConfig(
                name="openai",
                api_key=settings.openai_api_key,
                base_url=settings.openai_base_url.rstrip("/"),
                models=[settings.openai_model],
                timeout=settings.llm_request_timeout,
            )
        return None

    def _initialize_from_settings(self):
        primary_provider = self.settings.llm_provider
        if primary_provider not in PROVIDER_SCHEMA:
            self.logger.error(
                f"Invalid LLM_PROVIDER: '{primary_provider}'. "
                f"Valid options: {list(PROVIDER_SCHEMA.keys())}. Defaulting to 'local'"
            )
            primary_provider = "local"

        for provider_name, schema in PROVIDER_SCHEMA.items():
            config = self._create_provider_config(provider_name)
            if config is None:
                continue
            provider = schema["provider_class"](config)
            if provider.is_available():
                self._providers[provider_name] = provider
                self.logger.info(f"Provider '{provider_name}' initialized ({config.default_model})")
            else:
                self.logger.warning(f"Provider '{provider_name}' not available (missing config)")

        chain = [primary_provider] if primary_provider in self._providers else []
        for provider_name in self._providers:
            if provider_name not in chain:
                chain.append(provider_name)
        self._fallback_chain = chain
        self.logger.info(f"Provider fallback chain: {' -> '.join(chain) or '(empty)'}")

    def register_provider(self, provider: BaseLLMProvider, primary: bool = False):
        """Add an already-built provider, optionally at the head of the chain"""
        name = provider.provider_name
        self._providers[name] = provider
        if name in self._fallback_chain:
            self._fallback_chain.remove(name)
        if primary:
            self._fallback_chain.insert(0, name)
        else:
            self._fallback_chain.append(name)

    def get_provider(self, name: str) -> Optional[BaseLLMProvider]:
        return self._providers.get(name)

    def get_fallback_chain(self) -> List[str]:
        return self._fallback_chain.copy()

    async def route_request(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> LLMResponse:
        """
        Route request through the fallback chain until one provider answers

        Raises:
            LLMProviderError: If every provider fails
        """
        last_error: Optional[Exception] = None

        for provider_name in self._fallback_chain:
            provider = self._providers.get(provider_name)
            if not provider:
                continue

            try:
                self.logger.debug(f"Trying provider: {provider_name}")
                return await provider.generate(
                    prompt=prompt,
                    system_prompt=system_prompt,
                    temperature=temperature,
                )
            except Exception as e:
                self.logger.warning(f"Provider {provider_name} failed: {e}")
                last_error = e
                continue

        error_msg = f"All providers failed. Last error: {last_error}"
        self.logger.error(error_msg)
        raise LLMProviderError(
            error_msg,
            context={"fallback_chain": self._fallback_chain.copy()},
        )
