"""LLM provider adapters."""

from examly.providers.llm.anthropic_provider import AnthropicLLMProvider
from examly.providers.llm.ollama_provider import OllamaLLMProvider
from examly.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["AnthropicLLMProvider", "OllamaLLMProvider", "OpenAILLMProvider"]
