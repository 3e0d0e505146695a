"""
Base provider interface for LLM providers.

This module defines the abstract base class that all LLM providers must implement,
so the client can walk a fallback chain without knowing provider details.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class LLMResponse:
    """Response from LLM provider"""

    content: str
    provider: str
    model: str
    tokens_used: int
    response_time_ms: int


@dataclass
class ProviderConfig:
    """Configuration for an LLM provider"""

    name: str
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    models: List[str] = field(default_factory=list)
    timeout: float = 120.0
    default_model: Optional[str] = None

    def __post_init__(self):
        if self.default_model is None and self.models:
            self.default_model = self.models[0]


class BaseLLMProvider(ABC):
    """Abstract base class for all LLM providers"""

    def __init__(self, config: ProviderConfig):
        self.config = config
        self.start_time = None

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the unique name of this provider"""
        pass

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> LLMResponse:
        """
        Generate a single completion.

        Every call is self-contained: no conversation state is kept between
        calls, so the system prompt travels with each request.

        Args:
            prompt: User prompt
            system_prompt: Instruction prompt sent alongside the user prompt
            model: Specific model to use (optional)
            temperature: Sampling temperature (provider default when None)

        Returns:
            LLMResponse with generated content
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the provider is properly configured and available"""
        pass

    async def check_connection(self) -> str:
        """Contact the provider endpoint and return a version/status string.

        Providers without a cheap status call report their configuration instead.
        """
        return f"{self.provider_name} (unverified)"

    def _start_timing(self):
        """Start timing for response measurement"""
        self.start_time = time.time()

    def _get_response_time_ms(self) -> int:
        """Get response time in milliseconds"""
        if self.start_time is None:
            return 0
        return int((time.time() - self.start_time) * 1000)

    def _validate_response_content(self, content: Optional[str]) -> str:
        """Validate and clean response content"""
        if content is None:
            raise ValueError(f"{self.provider_name} returned None content")

        content = content.strip()
        if not content:
            raise ValueError(f"{self.provider_name} returned empty content")

        return content

    def get_effective_model(self, requested_model: Optional[str] = None) -> str:
        """Get the model to use, with fallback logic"""
        if requested_model and requested_model in self.config.models:
            return requested_model

        if self.config.default_model:
            return self.config.default_model

        if self.config.models:
            return self.config.models[0]

        raise ValueError(f"No valid model available for provider {self.provider_name}")
