"""Ollama LLM provider adapter.

Talks to a local Ollama server through its OpenAI-compatible ``/v1``
endpoint using the ``openai`` client.  Useful for running Examly offline;
local models are weaker at producing strict JSON, so the synthesizer's
lenient parsing matters more here.

Setup: install Ollama, ``ollama pull llama3.1``, then set
OLLAMA_BASE_URL=http://localhost:11434
"""

from __future__ import annotations

import httpx
import openai
import structlog

from examly.config.settings import Settings
from examly.interfaces.llm_provider import ILLMProvider
from examly.providers.llm._errors import translate_sdk_error
from examly.utils.errors import EmptyAIResponse

logger = structlog.get_logger(logger_name=__name__)


class OllamaLLMProvider(ILLMProvider):
    """LLM provider backed by a local Ollama server."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._base_url = settings.ollama_base_url
        self._client = openai.AsyncOpenAI(
            base_url=f"{self._base_url.rstrip('/')}/v1",
            # Ollama ignores the key but the SDK requires a non-empty value.
            api_key="ollama",
            timeout=openai.Timeout(settings.llm_timeout_seconds, connect=10.0),
        )
        self._text_model = settings.ollama_model

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 8192,
    ) -> str:
        """Generate a text completion via Ollama's OpenAI-compatible API."""
        try:
            response = await self._client.chat.completions.create(
                model=self._text_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.APIError as exc:
            raise translate_sdk_error(openai, exc, self.get_provider_name()) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise EmptyAIResponse(
                message="Ollama returned an empty response",
                provider_name=self.get_provider_name(),
            )
        logger.info("ollama_completion", model=self._text_model)
        return content

    def is_available(self) -> bool:
        """Return ``True`` if the Ollama base URL is configured."""
        return bool(self._base_url)

    async def validate_credentials(self) -> bool:
        """Check that the Ollama server is running via its ``/api/tags`` endpoint."""
        if not self.is_available():
            return False
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                response = await client.get(f"{self._base_url.rstrip('/')}/api/tags")
                return response.status_code == 200
        except httpx.HTTPError:
            return False

    def get_provider_name(self) -> str:
        return "ollama"
