"""Abstract base class for Examly's record store.

One store holds the four record kinds the application persists: users,
documents, materials (with their shared-with set and votes) and share
notifications.  All operations are async to support network-backed
databases; callers may rely on read-after-write consistency.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from examly.models.document import Document
from examly.models.material import Material, VoteValue
from examly.models.notification import Notification
from examly.models.user import User


# Concrete implementation: SQLiteMaterialStore (examly/providers/store/)
class IMaterialStore(ABC):
    """Contract for user, document, material and notification persistence."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist.  Called at startup."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this store."""

    # -- Users ---------------------------------------------------------------

    @abstractmethod
    async def upsert_user(self, user: User) -> User:
        """Insert *user* or update the name of the existing record with its id.

        Raises
        ------
        examly.utils.errors.InvalidInput
            If another user already owns the email (case-insensitive).
        """

    @abstractmethod
    async def get_user(self, user_id: str) -> User | None: ...

    @abstractmethod
    async def get_user_by_email(self, email: str) -> User | None:
        """Look up a user by email, ignoring case."""

    @abstractmethod
    async def search_users(
        self, query: str, exclude_user_id: str, limit: int = 10
    ) -> list[User]:
        """Users whose email contains *query*, sorted by email."""

    # -- Documents -----------------------------------------------------------

    @abstractmethod
    async def create_document(self, document: Document) -> Document: ...

    @abstractmethod
    async def get_document(self, document_id: str) -> Document | None: ...

    @abstractmethod
    async def get_documents(self, document_ids: list[str]) -> list[Document]:
        """Return the documents that exist, in the order of *document_ids*."""

    @abstractmethod
    async def update_document_text(self, document_id: str, text: str) -> None:
        """Store the complete extracted text of a document."""

    @abstractmethod
    async def mark_documents_processed(self, document_ids: list[str]) -> None: ...

    # -- Materials -----------------------------------------------------------

    @abstractmethod
    async def create_material(self, material: Material) -> Material:
        """Persist *material* and its documents' chapter order and title.

        Both writes happen in one transaction: either the material and
        every chapter assignment are stored, or nothing is.
        """

    @abstractmethod
    async def get_material(self, material_id: str) -> Material | None: ...

    @abstractmethod
    async def get_material_for_document(self, document_id: str) -> Material | None:
        """The material that incorporates *document_id*, if any."""

    @abstractmethod
    async def list_materials_for_user(self, user_id: str, limit: int = 100) -> list[Material]:
        """Materials owned by or shared with *user_id*, newest first."""

    @abstractmethod
    async def update_material_title(self, material_id: str, title: str) -> Material | None: ...

    @abstractmethod
    async def delete_material(self, material_id: str) -> list[Document]:
        """Delete a material and its documents.

        Returns
        -------
        list[Document]
            The deleted documents, so the caller can remove their blobs.
        """

    @abstractmethod
    async def add_share(self, material_id: str, user_id: str) -> bool:
        """Grant *user_id* read access.  Returns ``False`` if already shared."""

    @abstractmethod
    async def upsert_vote(self, material_id: str, user_id: str, vote: VoteValue) -> None:
        """Record *vote*, replacing any earlier vote by the same user."""

    # -- Notifications -------------------------------------------------------

    @abstractmethod
    async def create_notification(self, notification: Notification) -> Notification: ...

    @abstractmethod
    async def list_notifications(self, user_id: str, limit: int = 50) -> list[Notification]:
        """Notifications addressed to *user_id*, newest first."""

    @abstractmethod
    async def mark_notification_read(self, notification_id: str, user_id: str) -> bool:
        """Flip ``read`` on a notification owned by *user_id*.

        Returns ``False`` if no such notification belongs to the user.
        """
