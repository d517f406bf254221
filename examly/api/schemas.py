"""Pydantic request/response schemas for the Examly API.

Domain models (``Material``, ``Document``, ``Chapter``) are returned as-is
where their wire shape is already right; the classes here cover request
bodies and the responses that join or reshape domain records.  All field
names are camelCase on the wire, except :class:`ErrorResponse`, which
keeps the ``{error, detail, retryable}`` shape shared by every failure.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from examly.models.base import CamelModel
from examly.models.document import Document
from examly.models.material import Chapter, Material, VoteTally, VoteValue
from examly.models.notification import NotificationType
from examly.models.pipeline import PipelineErrorRecord
from examly.models.study import OutputLanguage
from examly.utils.highlighting import HighlightSpan


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
    retryable: bool = False


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class DocumentSummary(CamelModel):
    id: str
    original_name: str
    file_type: str
    file_path: str

    @classmethod
    def from_document(cls, doc: Document) -> DocumentSummary:
        return cls(
            id=doc.id,
            original_name=doc.original_name,
            file_type=doc.file_type,
            file_path=doc.file_path,
        )


class UploadedDocument(CamelModel):
    id: str
    file_name: str
    original_name: str
    file_type: str
    file_size: int
    file_path: str
    has_text: bool


class RejectedFile(CamelModel):
    file_name: str
    reason: str


class UploadResponse(CamelModel):
    documents: list[UploadedDocument]
    rejected: list[RejectedFile] = Field(default_factory=list)
    message: str


class ExtractionStatus(CamelModel):
    """Progress-polling view of one document."""

    id: str
    original_name: str
    file_type: str
    extracted_text: str
    processed: bool


class ExtractionStatusResponse(CamelModel):
    documents: list[ExtractionStatus]


class DocumentUrlResponse(CamelModel):
    url: str
    file_name: str
    file_type: str
    expires_in: int


class HighlightsResponse(CamelModel):
    document_id: str
    highlights: list[HighlightSpan]


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


class ProcessResponse(CamelModel):
    """The assembled material plus any recoverable problems met on the way."""

    material: Material
    warnings: list[PipelineErrorRecord] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Materials
# ---------------------------------------------------------------------------


class MaterialListItem(CamelModel):
    id: str
    user_id: str
    title: str
    summary: str | None = None
    output_language: OutputLanguage
    chapters: list[Chapter]
    documents: list[DocumentSummary]
    is_owner: bool
    votes: VoteTally
    created_at: datetime
    updated_at: datetime


class MaterialListResponse(CamelModel):
    materials: list[MaterialListItem]


class MaterialDetailResponse(CamelModel):
    material: Material
    is_owner: bool
    tally: VoteTally


class MaterialDocumentsResponse(CamelModel):
    documents: list[Document]


class UpdateTitleRequest(CamelModel):
    title: str = Field(..., max_length=300)


class ShareRequest(CamelModel):
    """Either a single ``email`` or a list of ``emails`` (or both)."""

    email: str | None = None
    emails: list[str] = Field(default_factory=list)

    def all_emails(self) -> list[str]:
        return ([self.email] if self.email else []) + list(self.emails)


class ShareResponse(CamelModel):
    message: str
    shared: list[str]
    already_shared: list[str]
    not_found: list[str]
    errors: list[str]


class VoteRequest(CamelModel):
    vote: VoteValue


class DeleteResponse(CamelModel):
    deleted: bool = True
    id: str


# ---------------------------------------------------------------------------
# Notifications / users
# ---------------------------------------------------------------------------


class SharerInfo(CamelModel):
    id: str
    name: str
    email: str


class NotificationItem(CamelModel):
    id: str
    type: NotificationType
    material_id: str
    material_title: str
    shared_by: SharerInfo
    message: str
    read: bool
    created_at: datetime


class NotificationListResponse(CamelModel):
    notifications: list[NotificationItem]


class RegisterUserRequest(CamelModel):
    email: str = Field(..., min_length=3, max_length=320)
    name: str | None = Field(default=None, max_length=200)


class UserInfo(CamelModel):
    id: str
    email: str
    name: str


class UserSuggestionsResponse(CamelModel):
    users: list[UserInfo]


# ---------------------------------------------------------------------------
# Videos / health
# ---------------------------------------------------------------------------


class VideoSearchRequest(CamelModel):
    search_query: str = Field(..., min_length=1, max_length=300)
    max_results: int = Field(default=5, ge=1, le=25)


class VideoItem(CamelModel):
    video_id: str
    title: str
    description: str
    thumbnail: str
    channel_title: str
    published_at: str
    duration: str | None = None
    url: str


class VideoSearchResponse(CamelModel):
    videos: list[VideoItem]


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]
    llm_credentials_valid: bool | None = None
