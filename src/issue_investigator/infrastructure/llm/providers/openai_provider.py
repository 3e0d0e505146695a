"""
OpenAI provider implementation.

Works with the OpenAI API and any server exposing a compatible
``/chat/completions`` endpoint.
"""

from typing import Optional

import aiohttp

from issue_investigator.exceptions import LLMProviderError

from .base import BaseLLMProvider, LLMResponse


class OpenAIProvider(BaseLLMProvider):
    """OpenAI LLM provider implementation"""

    @property
    def provider_name(self) -> str:
        return "openai"

    def is_available(self) -> bool:
        """Check if OpenAI provider is properly configured"""
        return bool(
            self.config.api_key and
            self.config.base_url and
            self.config.models
        )

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> LLMResponse:
        """Generate response using OpenAI API"""

        self._start_timing()
        effective_model = self.get_effective_model(model)

        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        payload = {
            "model": effective_model,
            "messages": messages,
        }
        if temperature is not None:
            payload["temperature"] = temperature

        async with aiohttp.ClientSession() as session:
            async with session.post(
                f"{self.config.base_url}/chat/completions",
                headers=headers,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self.config.timeout),
            ) as response:

                if response.status != 200:
                    error_text = await response.text()
                    raise LLMProviderError(
                        f"OpenAI API error {response.status}: {error_text}",
                        context={"provider": self.provider_name, "status": response.status},
                    )

                data = await response.json()

                if not data.get("choices") or len(data["choices"]) == 0:
                    raise LLMProviderError("OpenAI API returned no choices")

                content = self._validate_response_content(
                    data["choices"][0]["message"].get("content")
                )

                usage = data.get("usage", {})
                tokens_used = usage.get("total_tokens", 0)

                return LLMResponse(
                    content=content,
                    provider=self.provider_name,
                    model=effective_model,
                    tokens_used=tokens_used,
                    response_time_ms=self._get_response_time_ms(),
                )
