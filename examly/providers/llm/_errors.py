"""Translate SDK exceptions into Examly's error hierarchy.

The ``openai`` and ``anthropic`` SDKs share the same exception shape
(``AuthenticationError``, ``PermissionDeniedError``, ``RateLimitError``,
``APITimeoutError`` under ``APIError``), so one mapping serves every
provider.  Callers pass the SDK module they use.
"""

from __future__ import annotations

from types import ModuleType

from examly.utils.errors import ConfigurationError, ExamlyError, LLMError, RateLimited


def translate_sdk_error(sdk: ModuleType, exc: Exception, provider: str) -> ExamlyError:
    """Return the Examly exception matching *exc*; the caller raises it ``from exc``."""
    if isinstance(exc, (sdk.AuthenticationError, sdk.PermissionDeniedError)):
        return ConfigurationError(
            message=f"{provider} rejected the configured API key: {exc}",
            provider_name=provider,
        )
    if isinstance(exc, sdk.RateLimitError):
        return RateLimited(
            message=f"{provider} quota or rate limit exceeded: {exc}",
            provider_name=provider,
        )
    if isinstance(exc, sdk.APITimeoutError):
        return LLMError(message=f"{provider} request timed out", provider_name=provider)
    return LLMError(message=f"{provider} API error: {exc}", provider_name=provider)
