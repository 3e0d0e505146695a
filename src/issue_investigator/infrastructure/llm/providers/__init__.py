"""
LLM Provider Package

Provider registry and implementations for the model servers the pipeline
can talk to.
"""

from .base import BaseLLMProvider, LLMResponse, ProviderConfig
from .registry import PROVIDER_SCHEMA, ProviderRegistry
from .openai_provider import OpenAIProvider
from .local_provider import LocalProvider

__all__ = [
    "BaseLLMProvider",
    "LLMResponse",
    "ProviderConfig",
    "PROVIDER_SCHEMA",
    "ProviderRegistry",
    "OpenAIProvider",
    "LocalProvider",
]
