"""Abstract base class for LLM service providers.

Defines the contract for the large-language-model backend used for
chapter sequencing, title detection and study-material synthesis.
Implementations wrap the Anthropic API, any OpenAI-compatible endpoint
(OpenAI itself, Gemini's compatibility layer) or a local Ollama server.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: AnthropicLLMProvider, OpenAILLMProvider, OllamaLLMProvider
# Located in: examly/providers/llm/
class ILLMProvider(ABC):
    """Contract for text-completion services used by the ingestion pipeline."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 8192,
    ) -> str:
        """Generate a text completion from the model.

        Parameters
        ----------
        system_prompt:
            The system/instruction message that sets the model's behaviour.
        user_prompt:
            The user-facing prompt containing the actual request or data.
        temperature:
            Sampling temperature (0.0 = deterministic, 1.0 = creative).
        max_tokens:
            Upper bound on the number of tokens in the response.

        Returns
        -------
        str
            The model's text response.

        Raises
        ------
        examly.utils.errors.ConfigurationError
            If the provider rejects the configured credential.
        examly.utils.errors.RateLimited
            If the provider reports a quota or rate limit.
        examly.utils.errors.EmptyAIResponse
            If the provider returns no text.
        examly.utils.errors.LLMError
            For any other API failure.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier for this provider, e.g. ``"anthropic"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured.

        Implementations check that credentials are present without making
        an inference call.
        """

    @abstractmethod
    async def validate_credentials(self) -> bool:
        """Perform a lightweight API call to confirm credentials are valid."""
