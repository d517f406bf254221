"""OpenAI-compatible LLM provider adapter.

Wraps the ``openai`` async client to implement :class:`ILLMProvider`.
When a custom ``openai_base_url`` is configured the client points at that
URL instead of the default OpenAI endpoint.  Gemini is reached the same
way through Google's OpenAI-compatible endpoint (see :meth:`for_gemini`).
"""

from __future__ import annotations

import openai
import structlog

from examly.config.settings import GEMINI_OPENAI_BASE_URL, Settings
from examly.interfaces.llm_provider import ILLMProvider
from examly.providers.llm._errors import translate_sdk_error
from examly.utils.errors import EmptyAIResponse

logger = structlog.get_logger(logger_name=__name__)


class OpenAILLMProvider(ILLMProvider):
    """LLM provider backed by an OpenAI-compatible chat completions API.

    Uses ``gpt-4o-mini`` by default; ``openai_text_model`` overrides it.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        label: str | None = None,
    ) -> None:
        self._settings = settings
        self._api_key = settings.openai_api_key if api_key is None else api_key
        base_url = settings.openai_base_url if base_url is None else base_url

        client_kwargs: dict = {
            "api_key": self._api_key,
            "timeout": openai.Timeout(settings.llm_timeout_seconds, connect=10.0),
        }
        if base_url:
            client_kwargs["base_url"] = base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._text_model = model or settings.openai_text_model or "gpt-4o-mini"
        self._provider_label = label or ("openai-compatible" if base_url else "openai")

    @classmethod
    def for_gemini(cls, settings: Settings) -> OpenAILLMProvider:
        """Build a provider that talks to Gemini's OpenAI-compatible endpoint."""
        return cls(
            settings,
            api_key=settings.gemini_api_key,
            base_url=GEMINI_OPENAI_BASE_URL,
            model=settings.gemini_model,
            label="gemini",
        )

    # ------------------------------------------------------------------
    # ILLMProvider implementation
    # ------------------------------------------------------------------

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 8192,
    ) -> str:
        """Generate a text completion via the chat completions API."""
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
            raise translate_sdk_error(openai, exc, self._provider_label) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise EmptyAIResponse(
                message=f"{self._provider_label} returned an empty response",
                provider_name=self._provider_label,
            )
        logger.info(
            "openai_completion",
            model=self._text_model,
            provider=self._provider_label,
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return content

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured (doesn't verify it works)."""
        return bool(self._api_key)

    async def validate_credentials(self) -> bool:
        """List models to verify the API key without incurring inference costs."""
        if not self.is_available():
            return False
        try:
            await self._client.models.list()
            return True
        except openai.APIError:
            return False

    def get_provider_name(self) -> str:
        return self._provider_label
