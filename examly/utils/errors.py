"""Custom exception hierarchy for Examly.

All application exceptions inherit from :class:`ExamlyError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "youtube", "local_blob") caused the failure.

    ExamlyError  (base)
    +-- ExtractionError          (document -> text)
    |   +-- UnsupportedFileType
    |   +-- EmptyExtraction
    +-- ConfigurationError       (missing credential / bad config)
    +-- LLMError                 (any LLM API call failure)
    +-- RateLimited              (provider quota or rate limit)
    +-- EmptyAIResponse
    +-- AIResponseNotJSON        (carries a preview of the raw text)
    +-- AIProcessingFailed
    +-- PipelineError            (ingestion orchestration)
    |   +-- IngestionTimeout
    +-- BlobStoreError
    +-- NotFound
    +-- Unauthorized
    +-- InvalidInput

The HTTP layer maps each class to a status code in
``examly.api.middleware``; nothing here knows about HTTP.
"""


class ExamlyError(Exception):
    """Base exception for all Examly errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name``.  ``str()`` prefixes the provider in brackets for log
    scanning, e.g. ``[openai] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Text extraction
# ---------------------------------------------------------------------------

class ExtractionError(ExamlyError):
    """Raised when a document cannot be read (corrupt archive, bad PDF)."""

    def __init__(
        self,
        message: str = "Text extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class UnsupportedFileType(ExtractionError):
    """Raised when the file extension is not one of the supported formats."""

    def __init__(
        self,
        message: str = "Unsupported file type",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmptyExtraction(ExtractionError):
    """Raised when a document yields no usable text."""

    def __init__(
        self,
        message: str = "No text content could be extracted",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# AI service errors
# ---------------------------------------------------------------------------

class ConfigurationError(ExamlyError):
    """Raised when configuration is invalid or a required credential is missing."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(ExamlyError):
    """Raised when an LLM API call fails."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RateLimited(ExamlyError):
    """Raised when the AI service reports quota exhaustion or rate limiting.

    The core never retries on its own; callers should try again later.
    """

    def __init__(
        self,
        message: str = "API quota exceeded or rate limited. Please try again later.",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmptyAIResponse(ExamlyError):
    """Raised when the model returns no text at all."""

    def __init__(
        self,
        message: str = "Empty response from AI",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class AIResponseNotJSON(ExamlyError):
    """Raised when no JSON object can be recovered from a model response."""

    def __init__(
        self,
        message: str = "AI response is not valid JSON",
        provider_name: str | None = None,
        preview: str = "",
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._preview = preview

    @property
    def preview(self) -> str:
        """First characters of the raw response, for diagnostics."""
        return self._preview


class AIProcessingFailed(ExamlyError):
    """Raised for any other failure of an AI request."""

    def __init__(
        self,
        message: str = "AI processing failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Orchestration / storage
# ---------------------------------------------------------------------------

class PipelineError(ExamlyError):
    """Raised when an ingestion run fails as a whole."""

    def __init__(
        self,
        message: str = "Ingestion pipeline failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class IngestionTimeout(PipelineError):
    """Raised when an ingestion run exceeds its configured ceiling."""

    def __init__(
        self,
        message: str = "Ingestion timed out",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class BlobStoreError(ExamlyError):
    """Raised when the blob store cannot read or write an object."""

    def __init__(
        self,
        message: str = "Blob storage operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Access checks / request validation
# ---------------------------------------------------------------------------

class NotFound(ExamlyError):
    """Raised when a material, document or notification does not exist."""

    def __init__(
        self,
        message: str = "Resource not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class Unauthorized(ExamlyError):
    """Raised when the caller may not perform an action on a resource."""

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class InvalidInput(ExamlyError):
    """Raised when a request is well-formed but semantically unusable."""

    def __init__(
        self,
        message: str = "Invalid input",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
