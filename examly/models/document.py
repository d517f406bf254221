"""Uploaded document model.

A Document is created at upload time with whatever text could be extracted
immediately.  ``chapter_order`` / ``chapter_title`` are filled in when an
ingestion run persists its Material, and ``processed`` flips to ``True``
once the document has been incorporated.  ``extracted_text`` always holds
the complete text, never a preview.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import Field

from examly.models.base import CamelModel


class Document(CamelModel):
    """One uploaded file and its extracted text."""

    id: str
    user_id: str
    file_name: str                 # unique stored name, e.g. "1718000000-ab12cd.pdf"
    original_name: str             # name as uploaded by the user
    file_type: str                 # lower-cased extension including the dot
    file_size: int = Field(ge=0)
    file_path: str                 # blob-store key: "<user_id>/<file_name>"
    chapter_order: int | None = Field(default=None, ge=1)
    chapter_title: str | None = None
    extracted_text: str = ""
    processed: bool = False
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )

    @property
    def has_text(self) -> bool:
        return bool(self.extracted_text.strip())
