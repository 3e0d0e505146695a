"""
Local LLM provider implementation.

Talks to a self-hosted Ollama server through its ``/api/generate`` endpoint.
"""

import asyncio
import logging
from typing import Optional

import aiohttp

from issue_investigator.exceptions import LLMProviderError

from .base import BaseLLMProvider, LLMResponse, ProviderConfig


class LocalProvider(BaseLLMProvider):
    """Ollama-backed provider"""

    def __init__(self, config: ProviderConfig):
        super().__init__(config)
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def provider_name(self) -> str:
        return "local"

    def is_available(self) -> bool:
        """Check if local provider is properly configured"""
        return bool(
            self.config.base_url and
            self.config.models
        )

    async def check_connection(self) -> str:
        """Return the Ollama server version.

        Raises:
            LLMProviderError: If the server is unreachable or answers with an error
        """
        async with aiohttp.ClientSession() as session:
            async with session.get(
                f"{self.config.base_url}/api/version",
                timeout=aiohttp.ClientTimeout(total=10),
            ) as response:
                if response.status != 200:
                    raise LLMProviderError(
                        f"Failed to connect to Ollama: {response.status} {response.reason}",
                        context={"provider": self.provider_name},
                    )
                data = await response.json()
                version = data.get("version", "unknown")
                self.logger.info(f"Connected to Ollama version: {version}")
                return version

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> LLMResponse:
        """Generate response using the Ollama API"""

        self._start_timing()
        effective_model = self.get_effective_model(model)

        payload = {
            "model": effective_model,
            "prompt": prompt,
            "stream": False,
        }
        if system_prompt:
            payload["system"] = system_prompt
        if temperature is not None:
            payload["options"] = {"temperature": temperature}

        self.logger.debug(f"Ollama request: model={effective_model}, prompt_chars={len(prompt)}")

        async with aiohttp.ClientSession() as session:
            try:
                async with session.post(
                    f"{self.config.base_url}/api/generate",
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=self.config.timeout),
                ) as response:

                    if response.status != 200:
                        error_text = await response.text()
                        raise LLMProviderError(
                            f"Ollama API error {response.status}: {error_text}",
                            context={"provider": self.provider_name, "status": response.status},
                        )

                    data = await response.json()

                    content = data.get("response")
                    if not content:
                        raise LLMProviderError("Ollama API returned no response content")

                    content = self._validate_response_content(content)

                    # Ollama reports generated tokens as eval_count
                    tokens_used = data.get("eval_count", 0) + data.get("prompt_eval_count", 0)

                    return LLMResponse(
                        content=content,
                        provider=self.provider_name,
                        model=effective_model,
                        tokens_used=tokens_used,
                        response_time_ms=self._get_response_time_ms(),
                    )

            except asyncio.TimeoutError:
                self.logger.warning(
                    f"Timeout after {self._get_response_time_ms()}ms (limit: {self.config.timeout}s)"
                )
                raise LLMProviderError(
                    f"Local LLM request timed out after {self.config.timeout} seconds",
                    error_code="LLM_TIMEOUT",
                )
