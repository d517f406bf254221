"""Examly API layer: routes, schemas, and middleware."""

from examly.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
    status_for,
)
from examly.api.routes import router
from examly.api.schemas import (
    ErrorResponse,
    HealthResponse,
    MaterialDetailResponse,
    MaterialListResponse,
    ProcessResponse,
    ShareResponse,
    UploadResponse,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "status_for",
    "router",
    "ErrorResponse",
    "HealthResponse",
    "MaterialDetailResponse",
    "MaterialListResponse",
    "ProcessResponse",
    "ShareResponse",
    "UploadResponse",
]
