"""Utility modules for Examly.

- **errors** -- Domain exception hierarchy rooted at ExamlyError.
- **logging** -- structlog setup with console/JSON dual rendering.
- **concurrency** -- semaphore-throttled ``asyncio.gather``.
- **filenames** -- the single file-name humanizer used for every
  filename-derived title.
- **highlighting** -- heading/definition/formula span detection.
- **llm_json** -- JSON recovery from free-form model output.
"""

from examly.utils.concurrency import throttled_gather
from examly.utils.errors import (
    AIProcessingFailed,
    AIResponseNotJSON,
    BlobStoreError,
    ConfigurationError,
    EmptyAIResponse,
    EmptyExtraction,
    ExamlyError,
    ExtractionError,
    IngestionTimeout,
    InvalidInput,
    LLMError,
    NotFound,
    PipelineError,
    RateLimited,
    Unauthorized,
    UnsupportedFileType,
)
from examly.utils.filenames import common_prefix, humanize_filename
from examly.utils.highlighting import HighlightSpan, find_highlights
from examly.utils.logging import configure_logging, get_logger

__all__ = [
    "AIProcessingFailed",
    "AIResponseNotJSON",
    "BlobStoreError",
    "ConfigurationError",
    "EmptyAIResponse",
    "EmptyExtraction",
    "ExamlyError",
    "ExtractionError",
    "HighlightSpan",
    "IngestionTimeout",
    "InvalidInput",
    "LLMError",
    "NotFound",
    "PipelineError",
    "RateLimited",
    "Unauthorized",
    "UnsupportedFileType",
    "common_prefix",
    "configure_logging",
    "find_highlights",
    "get_logger",
    "humanize_filename",
    "throttled_gather",
]
