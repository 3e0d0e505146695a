"""Language model access."""

from .client import LanguageModel, LLMClient, LLMUsageStats, estimate_tokens
from .providers import LLMResponse, ProviderConfig, ProviderRegistry

__all__ = [
    "LanguageModel",
    "LLMClient",
    "LLMUsageStats",
    "estimate_tokens",
    "LLMResponse",
    "ProviderConfig",
    "ProviderRegistry",
]
