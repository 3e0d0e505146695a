"""
Language model client used by every pipeline stage.

``LanguageModel`` is the contract stages depend on: a single, self-contained
request/response. ``LLMClient`` implements it on top of the provider
registry and owns the usage statistics for the process that constructed it.
Construct it once and pass it down; there is no module-level state.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from issue_investigator.config.settings import InvestigatorSettings
from issue_investigator.exceptions import LLMProviderError
from issue_investigator.utils.resilience import create_custom_retry

from .providers import ProviderRegistry

logger = logging.getLogger(__name__)


class LanguageModel(ABC):
    """Single request/response text completion."""

    @abstractmethod
    async def complete(self, prompt: str, system_prompt: str) -> str:
        """Return the model's raw text answer to ``prompt``."""
        pass


@dataclass
class LLMUsageStats:
    """Counters owned by one ``LLMClient`` instance"""

    total_requests: int = 0
    failed_requests: int = 0
    estimated_tokens_used: int = 0
    last_request_time: Optional[datetime] = None


def estimate_tokens(prompt: str, response: str) -> int:
    """Rough token estimate for servers that do not report usage."""
    return len(prompt.split()) + len(response.split()) * 2


class LLMClient(LanguageModel):
    """Registry-backed language model with usage accounting"""

    def __init__(self, registry: ProviderRegistry, temperature: Optional[float] = None):
        self.registry = registry
        self.temperature = temperature
        self._stats = LLMUsageStats()

    @classmethod
    def from_settings(cls, settings: InvestigatorSettings) -> "LLMClient":
        return cls(ProviderRegistry(settings))

    async def complete(self, prompt: str, system_prompt: str) -> str:
        """
        Send one prompt through the provider fallback chain.

        Args:
            prompt: User prompt
            system_prompt: Instruction prompt

        Returns:
            Raw text content of the answer

        Raises:
            LLMProviderError: If all providers fail
        """
        if prompt is None:
            raise TypeError("Prompt cannot be None")

        self._stats.last_request_time = datetime.now(timezone.utc)
        self._stats.total_requests += 1

        try:
            response = await self.registry.route_request(
                prompt=prompt,
                system_prompt=system_prompt,
                temperature=self.temperature,
            )
        except Exception as e:
            self._stats.failed_requests += 1
            logger.error(f"Failed to send message to LLM: {e}")
            raise

        tokens = response.tokens_used or estimate_tokens(prompt, response.content)
        self._stats.estimated_tokens_used += tokens
        logger.debug(
            f"LLM answered via {response.provider}/{response.model} "
            f"in {response.response_time_ms}ms ({tokens} tokens)"
        )
        return response.content

    async def verify_connection(self, max_attempts: int = 5, min_wait: float = 2, max_wait: float = 32) -> str:
        """Check the primary provider is reachable, retrying with exponential backoff.

        Args:
            max_attempts: Attempts before the last error is re-raised
            min_wait: Lower bound of the wait between attempts (seconds)
            max_wait: Upper bound of the wait between attempts (seconds)

        Returns:
            Version string reported by the model server

        Raises:
            LLMProviderError: If no provider is configured
            Exception: If the check keeps failing after retries
        """
        chain = self.registry.get_fallback_chain()
        if not chain:
            raise LLMProviderError("No LLM provider configured", error_code="LLM_CONFIG_ERROR")

        provider = self.registry.get_provider(chain[0])

        @create_custom_retry(max_attempts=max_attempts, min_wait=min_wait, max_wait=max_wait)
        async def check_primary_provider() -> str:
            return await provider.check_connection()

        return await check_primary_provider()

    def get_stats(self) -> Dict[str, Any]:
        """Snapshot of usage counters plus the active fallback chain"""
        stats = asdict(self._stats)
        last = self._stats.last_request_time
        stats["last_request_time"] = last.isoformat() if last else None
        stats["providers"] = self.registry.get_fallback_chain()
        return stats

    def reset_stats(self):
        """Zero all usage counters"""
        self._stats = LLMUsageStats()
