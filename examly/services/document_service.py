"""Upload, status and read-access operations on uploaded documents.

Uploaded bytes go to the blob store under ``<user_id>/<unique name>``;
text is extracted straight from the in-memory bytes so the ingestion
pipeline rarely has to download anything.  A file that fails validation
is rejected on its own and never sinks the rest of the upload.
"""

from __future__ import annotations

import secrets
import time
import uuid
from dataclasses import dataclass, field

import structlog

from examly.interfaces.blob_store import IBlobStore
from examly.interfaces.material_store import IMaterialStore
from examly.models.document import Document
from examly.services.text_extractor import SUPPORTED_EXTENSIONS, TextExtractor
from examly.utils.errors import (
    ExtractionError,
    InvalidInput,
    NotFound,
    Unauthorized,
    UnsupportedFileType,
)
from examly.utils.filenames import file_extension
from examly.utils.highlighting import HighlightSpan, find_highlights

logger = structlog.get_logger(logger_name=__name__)

_UNSUPPORTED_REASON = "Unsupported file type"


@dataclass(frozen=True)
class UploadedFile:
    """One multipart file as received by the HTTP layer."""

    filename: str
    data: bytes
    content_type: str | None = None


@dataclass(frozen=True)
class UploadRejection:
    file_name: str
    reason: str


@dataclass
class UploadResult:
    documents: list[Document] = field(default_factory=list)
    rejected: list[UploadRejection] = field(default_factory=list)


class DocumentService:
    """Document-level operations for the HTTP layer.

    Parameters
    ----------
    store:
        Record store holding documents and materials.
    blob_store:
        Where the uploaded bytes are kept.
    extractor:
        Text extractor applied at upload time.
    max_files:
        Maximum number of files in one upload.
    max_bytes:
        Maximum size of a single file.
    signed_url_ttl:
        Lifetime in seconds of the URLs returned by :meth:`signed_url`.
    """

    def __init__(
        self,
        store: IMaterialStore,
        blob_store: IBlobStore,
        extractor: TextExtractor,
        max_files: int = 10,
        max_bytes: int = 50 * 1024 * 1024,
        signed_url_ttl: int = 3600,
    ) -> None:
        self._store = store
        self._blobs = blob_store
        self._extractor = extractor
        self._max_files = max_files
        self._max_bytes = max_bytes
        self._signed_url_ttl = signed_url_ttl

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    async def upload(self, user_id: str, files: list[UploadedFile]) -> UploadResult:
        """Store each acceptable file and create its Document.

        Returns
        -------
        UploadResult
            The created documents in upload order plus one rejection per
            refused file.

        Raises
        ------
        InvalidInput
            No files, too many files, or no file was acceptable.
        UnsupportedFileType
            Every file was refused because of its extension.
        BlobStoreError
            Writing an accepted file failed.
        """
        if not files:
            raise InvalidInput(message="No files uploaded")
        if len(files) > self._max_files:
            raise InvalidInput(
                message=f"Too many files: {len(files)} uploaded, at most {self._max_files} allowed"
            )

        result = UploadResult()
        for upload in files:
            ext = file_extension(upload.filename)
            if ext not in SUPPORTED_EXTENSIONS:
                result.rejected.append(
                    UploadRejection(upload.filename, f"{_UNSUPPORTED_REASON}: {ext or '(none)'}")
                )
                continue
            if len(upload.data) > self._max_bytes:
                result.rejected.append(
                    UploadRejection(
                        upload.filename,
                        f"File exceeds the {self._max_bytes // (1024 * 1024)} MB limit",
                    )
                )
                continue
            if not upload.data:
                result.rejected.append(UploadRejection(upload.filename, "File is empty"))
                continue
            result.documents.append(await self._store_file(user_id, upload, ext))

        if not result.documents:
            if all(r.reason.startswith(_UNSUPPORTED_REASON) for r in result.rejected):
                raise UnsupportedFileType(
                    message="Unsupported file type. Allowed: PDF, Word, PowerPoint, TXT"
                )
            raise InvalidInput(
                message="; ".join(f"{r.file_name}: {r.reason}" for r in result.rejected)
            )

        logger.info(
            "documents_uploaded",
            user_id=user_id,
            accepted=len(result.documents),
            rejected=len(result.rejected),
        )
        return result

    async def _store_file(self, user_id: str, upload: UploadedFile, ext: str) -> Document:
        file_name = f"{int(time.time() * 1000)}-{secrets.token_hex(3)}{ext}"
        file_path = f"{user_id}/{file_name}"
        await self._blobs.upload(file_path, upload.data, upload.content_type)

        try:
            text = await self._extractor.extract_async(upload.data, ext)
        except ExtractionError as exc:
            # The pipeline retries from the blob; an empty text is not fatal here.
            logger.warning(
                "upload_extraction_failed", file_name=upload.filename, error=str(exc)
            )
            text = ""

        document = Document(
            id=uuid.uuid4().hex,
            user_id=user_id,
            file_name=file_name,
            original_name=upload.filename,
            file_type=ext,
            file_size=len(upload.data),
            file_path=file_path,
            extracted_text=text,
        )
        return await self._store.create_document(document)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def extraction_status(self, user_id: str, document_ids: list[str]) -> list[Document]:
        """The caller's own documents among *document_ids*, in request order."""
        if not document_ids:
            raise InvalidInput(message="No document IDs provided")
        documents = await self._store.get_documents(document_ids)
        return [doc for doc in documents if doc.user_id == user_id]

    async def get_readable_document(self, user_id: str, document_id: str) -> Document:
        """Return the document if the caller owns it or can read its material.

        Raises
        ------
        NotFound
            The document does not exist.
        Unauthorized
            The caller has no read access.
        """
        document = await self._store.get_document(document_id)
        if document is None:
            raise NotFound(message="Document not found")
        if document.user_id == user_id:
            return document
        material = await self._store.get_material_for_document(document_id)
        if material is None or not material.can_read(user_id):
            raise Unauthorized(message="You do not have access to this document")
        return document

    async def signed_url(self, user_id: str, document_id: str) -> tuple[Document, str]:
        document = await self.get_readable_document(user_id, document_id)
        url = self._blobs.signed_url(document.file_path, self._signed_url_ttl)
        return document, url

    async def highlights(self, user_id: str, document_id: str) -> list[HighlightSpan]:
        document = await self.get_readable_document(user_id, document_id)
        return find_highlights(document.extracted_text)

    async def read_signed_file(self, path: str, expires: int, signature: str) -> bytes:
        """Serve a blob addressed by a signed URL.

        Raises
        ------
        Unauthorized
            The signature is wrong or has expired.
        NotFound
            Nothing is stored under *path*.
        """
        if not self._blobs.verify_signature(path, expires, signature):
            raise Unauthorized(message="Invalid or expired file link")
        return await self._blobs.download(path)
