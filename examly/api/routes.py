"""FastAPI routes for Examly.

Every route lives under ``/api/v1``.  Services are resolved from
``app.state`` (populated in ``main.py``) through ``Depends`` using the
``Annotated`` pattern, so tests can swap any of them.  The calling user
is identified by the ``X-User-Id`` header set by the authenticating
proxy in front of the app; a missing header is a 401.

Endpoint                                   Method  Description
/api/v1/documents/upload                   POST    Upload files, extract text
/api/v1/documents/extract-status           GET     Poll extraction progress
/api/v1/documents/{id}/url                 GET     Signed download URL
/api/v1/documents/{id}/highlights          GET     Heading/definition/formula spans
/api/v1/files/{path}                       GET     Serve a signed blob
/api/v1/process                            POST    Run ingestion, return the material
/api/v1/materials                          GET     Owned and shared materials
/api/v1/materials/{id}                     GET     Material detail
/api/v1/materials/{id}                     PUT     Rename
/api/v1/materials/{id}                     DELETE  Delete with documents
/api/v1/materials/{id}/documents           GET     Chapter documents with text
/api/v1/materials/{id}/share               POST    Share by email
/api/v1/materials/{id}/vote                POST    Up/down vote
/api/v1/notifications                      GET     Share notifications
/api/v1/notifications/{id}/read            PUT     Mark one read
/api/v1/users                              POST    Register the caller's profile
/api/v1/users/suggestions                  GET     Email suggestions for sharing
/api/v1/videos/search                      POST    YouTube search
/api/v1/health                             GET     Health + providers (?verify=true checks the LLM key)
"""

from __future__ import annotations

import mimetypes
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, Response, UploadFile

from examly import __version__
from examly.api.schemas import (
    DeleteResponse,
    DocumentSummary,
    DocumentUrlResponse,
    ErrorResponse,
    ExtractionStatus,
    ExtractionStatusResponse,
    HealthResponse,
    HighlightsResponse,
    MaterialDetailResponse,
    MaterialDocumentsResponse,
    MaterialListItem,
    MaterialListResponse,
    NotificationItem,
    NotificationListResponse,
    ProcessResponse,
    RegisterUserRequest,
    RejectedFile,
    ShareRequest,
    ShareResponse,
    SharerInfo,
    UpdateTitleRequest,
    UploadedDocument,
    UploadResponse,
    UserInfo,
    UserSuggestionsResponse,
    VideoItem,
    VideoSearchRequest,
    VideoSearchResponse,
    VoteRequest,
)
from examly.interfaces.llm_provider import ILLMProvider
from examly.interfaces.video_search_provider import IVideoSearchProvider
from examly.models.material import Material, VoteTally
from examly.models.pipeline import IngestionRequest
from examly.models.user import User
from examly.pipeline.orchestrator import IngestionPipeline
from examly.services.document_service import DocumentService, UploadedFile
from examly.services.material_service import MaterialService
from examly.services.notification_service import NotificationService
from examly.services.user_service import UserService
from examly.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

# Uploads are read in chunks so an oversized file is cut off early.
_UPLOAD_CHUNK_SIZE = 64 * 1024

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


# ---------------------------------------------------------------------------
# Dependency injection helpers (resolve singletons from app.state)
# ---------------------------------------------------------------------------


def _get_user_id(x_user_id: Annotated[str | None, Header()] = None) -> str:
    """Return the caller's id from the ``X-User-Id`` header."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Authentication required")
    return x_user_id.strip()


def _get_pipeline(request: Request) -> IngestionPipeline:
    return request.app.state.pipeline


def _get_document_service(request: Request) -> DocumentService:
    return request.app.state.document_service


def _get_material_service(request: Request) -> MaterialService:
    return request.app.state.material_service


def _get_notification_service(request: Request) -> NotificationService:
    return request.app.state.notification_service


def _get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


def _get_video_search(request: Request) -> IVideoSearchProvider | None:
    """Return the video search provider from application state, or ``None``."""
    return getattr(request.app.state, "video_search", None)


UserIdDep = Annotated[str, Depends(_get_user_id)]
PipelineDep = Annotated[IngestionPipeline, Depends(_get_pipeline)]
DocumentsDep = Annotated[DocumentService, Depends(_get_document_service)]
MaterialsDep = Annotated[MaterialService, Depends(_get_material_service)]
NotificationsDep = Annotated[NotificationService, Depends(_get_notification_service)]
UsersDep = Annotated[UserService, Depends(_get_user_service)]
VideoSearchDep = Annotated[IVideoSearchProvider | None, Depends(_get_video_search)]


async def _read_capped(file: UploadFile, limit: int) -> bytes:
    """Read *file* but stop once more than *limit* bytes have arrived."""
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await file.read(_UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        chunks.append(chunk)
        total += len(chunk)
        if total > limit:
            break
    return b"".join(chunks)


def _user_info(user: User) -> UserInfo:
    return UserInfo(id=user.id, email=user.email, name=user.name or user.email.split("@")[0])


def _detail(material: Material, user_id: str) -> MaterialDetailResponse:
    return MaterialDetailResponse(
        material=material,
        is_owner=material.is_owner(user_id),
        tally=material.tally(),
    )


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@router.post(
    "/documents/upload",
    response_model=UploadResponse,
    responses={**_ERROR_RESPONSES, 415: {"model": ErrorResponse}},
    summary="Upload study documents",
)
async def upload_documents(
    files: list[UploadFile],
    request: Request,
    user_id: UserIdDep,
    documents: DocumentsDep,
) -> UploadResponse:
    """Store the files, extract their text and return the created documents."""
    limit = request.app.state.settings.max_upload_bytes
    uploads = [
        UploadedFile(
            filename=file.filename or "upload",
            data=await _read_capped(file, limit),
            content_type=file.content_type,
        )
        for file in files
    ]
    result = await documents.upload(user_id, uploads)
    count = len(result.documents)
    return UploadResponse(
        documents=[
            UploadedDocument(
                id=doc.id,
                file_name=doc.file_name,
                original_name=doc.original_name,
                file_type=doc.file_type,
                file_size=doc.file_size,
                file_path=doc.file_path,
                has_text=doc.has_text,
            )
            for doc in result.documents
        ],
        rejected=[RejectedFile(file_name=r.file_name, reason=r.reason) for r in result.rejected],
        message=f"{count} file{'s' if count != 1 else ''} uploaded successfully",
    )


@router.get(
    "/documents/extract-status",
    response_model=ExtractionStatusResponse,
    summary="Extraction progress for uploaded documents",
)
async def extraction_status(
    user_id: UserIdDep,
    documents: DocumentsDep,
    document_ids: Annotated[str, Query(alias="documentIds")] = "",
) -> ExtractionStatusResponse:
    ids = [part.strip() for part in document_ids.split(",") if part.strip()]
    found = await documents.extraction_status(user_id, ids)
    return ExtractionStatusResponse(
        documents=[
            ExtractionStatus(
                id=doc.id,
                original_name=doc.original_name,
                file_type=doc.file_type,
                extracted_text=doc.extracted_text,
                processed=doc.processed,
            )
            for doc in found
        ]
    )


@router.get(
    "/documents/{document_id}/url",
    response_model=DocumentUrlResponse,
    responses=_ERROR_RESPONSES,
    summary="Signed, expiring download URL for a document",
)
async def document_url(
    document_id: str,
    request: Request,
    user_id: UserIdDep,
    documents: DocumentsDep,
) -> DocumentUrlResponse:
    doc, url = await documents.signed_url(user_id, document_id)
    return DocumentUrlResponse(
        url=url,
        file_name=doc.original_name,
        file_type=doc.file_type,
        expires_in=request.app.state.settings.signed_url_ttl_seconds,
    )


@router.get(
    "/documents/{document_id}/highlights",
    response_model=HighlightsResponse,
    responses=_ERROR_RESPONSES,
    summary="Heading, definition and formula spans in a document's text",
)
async def document_highlights(
    document_id: str,
    user_id: UserIdDep,
    documents: DocumentsDep,
) -> HighlightsResponse:
    spans = await documents.highlights(user_id, document_id)
    return HighlightsResponse(document_id=document_id, highlights=spans)


@router.get(
    "/files/{path:path}",
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Serve a file addressed by a signed URL",
)
async def signed_file(
    path: str,
    expires: int,
    signature: str,
    documents: DocumentsDep,
) -> Response:
    data = await documents.read_signed_file(path, expires, signature)
    media_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    return Response(content=data, media_type=media_type)


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


@router.post(
    "/process",
    response_model=ProcessResponse,
    response_model_exclude_none=True,
    responses={
        **_ERROR_RESPONSES,
        422: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
    summary="Generate a study material from uploaded documents",
)
async def process_documents(
    body: IngestionRequest,
    user_id: UserIdDep,
    pipeline: PipelineDep,
) -> ProcessResponse:
    """Run the whole ingestion pipeline and return the persisted material.

    Chapters whose enrichment failed carry only ``order``, ``title`` and
    ``documentId``; the matching problems are listed in ``warnings``.
    """
    state = await pipeline.run(body, user_id)
    if state.material is None:
        raise HTTPException(status_code=500, detail="Processing finished without a material")
    return ProcessResponse(material=state.material, warnings=state.errors)


# ---------------------------------------------------------------------------
# Materials
# ---------------------------------------------------------------------------


@router.get(
    "/materials",
    response_model=MaterialListResponse,
    response_model_exclude_none=True,
    summary="Materials owned by or shared with the caller",
)
async def list_materials(user_id: UserIdDep, materials: MaterialsDep) -> MaterialListResponse:
    listings = await materials.list_for_user(user_id)
    return MaterialListResponse(
        materials=[
            MaterialListItem(
                id=item.material.id,
                user_id=item.material.user_id,
                title=item.material.title,
                summary=item.material.summary,
                output_language=item.material.output_language,
                chapters=item.material.chapters,
                documents=[DocumentSummary.from_document(doc) for doc in item.documents],
                is_owner=item.is_owner,
                votes=item.material.tally(),
                created_at=item.material.created_at,
                updated_at=item.material.updated_at,
            )
            for item in listings
        ]
    )


@router.get(
    "/materials/{material_id}",
    response_model=MaterialDetailResponse,
    response_model_exclude_none=True,
    responses=_ERROR_RESPONSES,
    summary="One material with its chapters",
)
async def get_material(
    material_id: str, user_id: UserIdDep, materials: MaterialsDep
) -> MaterialDetailResponse:
    return _detail(await materials.get(user_id, material_id), user_id)


@router.put(
    "/materials/{material_id}",
    response_model=MaterialDetailResponse,
    response_model_exclude_none=True,
    responses=_ERROR_RESPONSES,
    summary="Rename a material",
)
async def update_material(
    material_id: str,
    body: UpdateTitleRequest,
    user_id: UserIdDep,
    materials: MaterialsDep,
) -> MaterialDetailResponse:
    return _detail(await materials.update_title(user_id, material_id, body.title), user_id)


@router.delete(
    "/materials/{material_id}",
    response_model=DeleteResponse,
    responses=_ERROR_RESPONSES,
    summary="Delete a material and its documents",
)
async def delete_material(
    material_id: str, user_id: UserIdDep, materials: MaterialsDep
) -> DeleteResponse:
    await materials.delete(user_id, material_id)
    return DeleteResponse(id=material_id)


@router.get(
    "/materials/{material_id}/documents",
    response_model=MaterialDocumentsResponse,
    responses=_ERROR_RESPONSES,
    summary="A material's documents in chapter order",
)
async def material_documents(
    material_id: str, user_id: UserIdDep, materials: MaterialsDep
) -> MaterialDocumentsResponse:
    return MaterialDocumentsResponse(documents=await materials.documents(user_id, material_id))


@router.post(
    "/materials/{material_id}/share",
    response_model=ShareResponse,
    responses=_ERROR_RESPONSES,
    summary="Share a material with other users by email",
)
async def share_material(
    material_id: str,
    body: ShareRequest,
    user_id: UserIdDep,
    materials: MaterialsDep,
) -> ShareResponse:
    outcome = await materials.share(user_id, material_id, body.all_emails())
    return ShareResponse(
        message=outcome.message,
        shared=outcome.shared,
        already_shared=outcome.already_shared,
        not_found=outcome.not_found,
        errors=outcome.errors,
    )


@router.post(
    "/materials/{material_id}/vote",
    response_model=VoteTally,
    responses=_ERROR_RESPONSES,
    summary="Vote a material up or down",
)
async def vote_material(
    material_id: str,
    body: VoteRequest,
    user_id: UserIdDep,
    materials: MaterialsDep,
) -> VoteTally:
    return await materials.vote(user_id, material_id, body.vote)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


@router.get(
    "/notifications",
    response_model=NotificationListResponse,
    summary="The caller's newest share notifications",
)
async def list_notifications(
    user_id: UserIdDep, notifications: NotificationsDep
) -> NotificationListResponse:
    views = await notifications.list_for_user(user_id)
    items: list[NotificationItem] = []
    for view in views:
        note = view.notification
        sharer = view.sharer
        items.append(
            NotificationItem(
                id=note.id,
                type=note.type,
                material_id=note.material_id,
                material_title=view.material_title,
                shared_by=SharerInfo(
                    id=note.shared_by,
                    name=sharer.display_name if sharer else "Unknown",
                    email=sharer.email if sharer else "",
                ),
                message=note.message,
                read=note.read,
                created_at=note.created_at,
            )
        )
    return NotificationListResponse(notifications=items)


@router.put(
    "/notifications/{notification_id}/read",
    responses={404: {"model": ErrorResponse}},
    summary="Mark a notification as read",
)
async def mark_notification_read(
    notification_id: str, user_id: UserIdDep, notifications: NotificationsDep
) -> dict[str, bool]:
    await notifications.mark_read(user_id, notification_id)
    return {"success": True}


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@router.post(
    "/users",
    response_model=UserInfo,
    responses={400: {"model": ErrorResponse}},
    summary="Register or update the caller's profile",
)
async def register_user(body: RegisterUserRequest, user_id: UserIdDep, users: UsersDep) -> UserInfo:
    return _user_info(await users.register(user_id, body.email, body.name))


@router.get(
    "/users/suggestions",
    response_model=UserSuggestionsResponse,
    summary="Email suggestions for sharing",
)
async def user_suggestions(
    user_id: UserIdDep,
    users: UsersDep,
    query: Annotated[str, Query(max_length=320)] = "",
) -> UserSuggestionsResponse:
    found = await users.suggestions(user_id, query)
    return UserSuggestionsResponse(users=[_user_info(user) for user in found])


# ---------------------------------------------------------------------------
# Videos
# ---------------------------------------------------------------------------


@router.post(
    "/videos/search",
    response_model=VideoSearchResponse,
    summary="Find watchable videos for a search query",
)
async def search_videos(
    body: VideoSearchRequest,
    user_id: UserIdDep,
    video_search: VideoSearchDep,
) -> VideoSearchResponse:
    if video_search is None:
        return VideoSearchResponse(videos=[])
    results = await video_search.search(body.search_query, body.max_results)
    _logger.debug("video_search", user_id=user_id, results=len(results))
    return VideoSearchResponse(
        videos=[
            VideoItem(
                video_id=video.video_id,
                title=video.title,
                description=video.description,
                thumbnail=video.thumbnail,
                channel_title=video.channel_title,
                published_at=video.published_at,
                duration=video.duration,
                url=video.url,
            )
            for video in results
        ]
    )


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(
    request: Request,
    verify: Annotated[bool, Query(description="Also confirm the LLM credentials work")] = False,
) -> HealthResponse:
    """Return application health, version, and configured providers.

    With ``verify=true`` the configured LLM provider is asked to confirm
    its credentials.  Some providers spend a small completion on this, so
    it is never done implicitly.
    """
    providers: dict[str, Any] = dict(getattr(request.app.state, "provider_registry", {}))
    llm: ILLMProvider | None = getattr(request.app.state, "llm_provider", None)
    credentials_valid: bool | None = None
    if verify and llm is not None:
        credentials_valid = await llm.validate_credentials()
        if not credentials_valid:
            _logger.warning("llm_credentials_invalid", provider=llm.get_provider_name())

    status = "healthy" if providers.get("llm") and credentials_valid is not False else "degraded"
    return HealthResponse(
        status=status,
        version=__version__,
        providers=providers,
        llm_credentials_valid=credentials_valid,
    )

