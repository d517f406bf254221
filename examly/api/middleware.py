"""API middleware: CORS, request logging, and error handling.

Middleware is a stack; the last one added runs first.  ``main.py`` adds
``ErrorHandlingMiddleware`` before ``RequestLoggingMiddleware`` so the
request log sees the final status code, including the structured error
responses produced here.
"""

from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from examly.api.schemas import ErrorResponse
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
from examly.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

# Subclasses come before their parents; the first isinstance match wins.
_STATUS_BY_ERROR: tuple[tuple[type[ExamlyError], int], ...] = (
    (InvalidInput, 400),
    (UnsupportedFileType, 415),
    (EmptyExtraction, 422),
    (ExtractionError, 422),
    (NotFound, 404),
    (Unauthorized, 403),
    (RateLimited, 429),
    (IngestionTimeout, 504),
    (LLMError, 502),
    (EmptyAIResponse, 502),
    (AIResponseNotJSON, 502),
    (AIProcessingFailed, 502),
    (BlobStoreError, 502),
    (ConfigurationError, 500),
    (PipelineError, 500),
)

_RETRYABLE_STATUSES = frozenset({429, 502, 504})


def status_for(exc: ExamlyError) -> int:
    """HTTP status code for an application error (500 when unmapped)."""
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 500


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware to the FastAPI application.

    Parameters
    ----------
    app:
        The FastAPI application instance.
    allowed_origins:
        Explicit list of allowed origins.  Defaults to ``["*"]`` for
        development; restrict it in production.
    """
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            status_code = response.status_code if response else 500
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=status_code,
                duration_ms=duration_ms,
            )


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turn ``ExamlyError`` subclasses into structured JSON errors.

    The client sees the exception class name, its message and whether
    retrying later may help.  Tracebacks stay in the server log.
    Anything that is not an ``ExamlyError`` falls through to FastAPI's
    default 500 handler.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except ExamlyError as exc:
            status = status_for(exc)
            log = _logger.error if status >= 500 else _logger.warning
            log(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                path=str(request.url.path),
                status=status,
                exc_info=status == 500,
            )
            body = ErrorResponse(
                error=type(exc).__name__,
                detail=exc.message,
                retryable=status in _RETRYABLE_STATUSES,
            )
            return JSONResponse(status_code=status, content=body.model_dump())
