"""Read, rename, delete, share and vote on persisted materials.

Access rules:
    - the owner may do everything;
    - a user in ``shared_with`` may read and vote;
    - anyone else gets :class:`Unauthorized` (or :class:`NotFound` when the
      material does not exist at all).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

import structlog

from examly.interfaces.blob_store import IBlobStore
from examly.interfaces.material_store import IMaterialStore
from examly.models.document import Document
from examly.models.material import Material, VoteTally, VoteValue
from examly.models.notification import Notification, NotificationType
from examly.utils.errors import InvalidInput, NotFound, Unauthorized

logger = structlog.get_logger(logger_name=__name__)


@dataclass(frozen=True)
class MaterialListing:
    """A material as shown in the caller's list."""

    material: Material
    is_owner: bool
    documents: list[Document]


@dataclass
class ShareOutcome:
    shared: list[str] = field(default_factory=list)
    already_shared: list[str] = field(default_factory=list)
    not_found: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        """``"Successfully shared with 1 user. 1 user already had access"``."""
        parts: list[str] = []
        if self.shared:
            parts.append(f"Successfully shared with {_users(len(self.shared))}")
        if self.already_shared:
            parts.append(f"{_users(len(self.already_shared))} already had access")
        if self.not_found:
            parts.append(f"{_users(len(self.not_found))} not found")
        if self.errors:
            count = len(self.errors)
            parts.append(f"{count} error{'s' if count != 1 else ''}")
        return ". ".join(parts)


def _users(count: int) -> str:
    return f"{count} user{'s' if count != 1 else ''}"


class MaterialService:
    """Material operations on behalf of one calling user at a time."""

    def __init__(self, store: IMaterialStore, blob_store: IBlobStore) -> None:
        self._store = store
        self._blobs = blob_store

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_for_user(self, user_id: str, limit: int = 100) -> list[MaterialListing]:
        """Owned and shared materials, newest first, with document summaries."""
        materials = await self._store.list_materials_for_user(user_id, limit=limit)
        listings: list[MaterialListing] = []
        for material in materials:
            documents = await self._store.get_documents(material.document_ids)
            listings.append(
                MaterialListing(
                    material=material,
                    is_owner=material.is_owner(user_id),
                    documents=documents,
                )
            )
        return listings

    async def get(self, user_id: str, material_id: str) -> Material:
        """Return a material the caller may read.

        Raises
        ------
        NotFound
            No material has this id.
        Unauthorized
            The caller neither owns it nor was it shared with them.
        """
        material = await self._store.get_material(material_id)
        if material is None:
            raise NotFound(message="Study material not found")
        if not material.can_read(user_id):
            raise Unauthorized(message="You do not have access to this study material")
        return material

    async def documents(self, user_id: str, material_id: str) -> list[Document]:
        """The material's documents in chapter order, with full text."""
        material = await self.get(user_id, material_id)
        documents = await self._store.get_documents(material.document_ids)
        position = {doc_id: i for i, doc_id in enumerate(material.document_ids)}
        return sorted(
            documents,
            key=lambda doc: (
                doc.chapter_order if doc.chapter_order is not None else len(position) + 1,
                position.get(doc.id, 0),
            ),
        )

    # ------------------------------------------------------------------
    # Owner-only writes
    # ------------------------------------------------------------------

    async def _owned(self, user_id: str, material_id: str, action: str) -> Material:
        material = await self._store.get_material(material_id)
        if material is None:
            raise NotFound(message="Study material not found")
        if not material.is_owner(user_id):
            raise Unauthorized(message=f"Only the owner can {action} this study material")
        return material

    async def update_title(self, user_id: str, material_id: str, title: str) -> Material:
        cleaned = title.strip()
        if not cleaned:
            raise InvalidInput(message="Title is required")
        await self._owned(user_id, material_id, "rename")
        updated = await self._store.update_material_title(material_id, cleaned)
        if updated is None:
            raise NotFound(message="Study material not found")
        logger.info("material_renamed", material_id=material_id)
        return updated

    async def delete(self, user_id: str, material_id: str) -> None:
        """Delete the material and its documents; blob removal is best-effort."""
        await self._owned(user_id, material_id, "delete")
        documents = await self._store.delete_material(material_id)
        for doc in documents:
            try:
                await self._blobs.delete(doc.file_path)
            except Exception as exc:  # noqa: BLE001 -- the records are already gone
                logger.warning(
                    "blob_delete_failed",
                    material_id=material_id,
                    path=doc.file_path,
                    error=str(exc),
                )
        logger.info("material_deleted", material_id=material_id, documents=len(documents))

    async def share(self, user_id: str, material_id: str, emails: list[str]) -> ShareOutcome:
        """Grant read access to each email and notify newly added users.

        Emails are trimmed and lower-cased; blanks are ignored.

        Raises
        ------
        InvalidInput
            No usable email was given.
        """
        normalised = list(dict.fromkeys(e.strip().lower() for e in emails if e and e.strip()))
        if not normalised:
            raise InvalidInput(message="At least one email is required")

        material = await self._owned(user_id, material_id, "share")
        sharer = await self._store.get_user(user_id)
        sharer_name = sharer.display_name if sharer else "Someone"

        outcome = ShareOutcome()
        for email in normalised:
            target = await self._store.get_user_by_email(email)
            if target is None:
                outcome.not_found.append(email)
                continue
            if target.id == user_id:
                outcome.errors.append(f"{email} (cannot share with yourself)")
                continue
            if not await self._store.add_share(material_id, target.id):
                outcome.already_shared.append(email)
                continue
            outcome.shared.append(email)
            await self._store.create_notification(
                Notification(
                    id=uuid.uuid4().hex,
                    user_id=target.id,
                    type=NotificationType.MATERIAL_SHARED,
                    material_id=material_id,
                    shared_by=user_id,
                    message=f'{sharer_name} shared "{material.title}" with you',
                )
            )

        logger.info(
            "material_shared",
            material_id=material_id,
            shared=len(outcome.shared),
            already_shared=len(outcome.already_shared),
            not_found=len(outcome.not_found),
            errors=len(outcome.errors),
        )
        return outcome

    # ------------------------------------------------------------------
    # Votes
    # ------------------------------------------------------------------

    async def vote(self, user_id: str, material_id: str, vote: VoteValue) -> VoteTally:
        """Record the caller's vote (replacing any earlier one) and return the tally."""
        await self.get(user_id, material_id)
        await self._store.upsert_vote(material_id, user_id, vote)
        updated = await self._store.get_material(material_id)
        if updated is None:
            raise NotFound(message="Study material not found")
        return updated.tally()
