"""User profiles and share-by-email suggestions.

Identity is established outside Examly; this service only keeps the
profile (email and display name) that sharing and notifications need.
"""

from __future__ import annotations

import structlog

from examly.interfaces.material_store import IMaterialStore
from examly.models.user import User
from examly.utils.errors import InvalidInput

logger = structlog.get_logger(logger_name=__name__)

_MIN_QUERY_LENGTH = 2
_MAX_SUGGESTIONS = 10


class UserService:
    def __init__(self, store: IMaterialStore) -> None:
        self._store = store

    async def register(self, user_id: str, email: str, name: str | None = None) -> User:
        """Create or update the caller's profile.

        Raises
        ------
        InvalidInput
            The email is blank, malformed, or belongs to another user.
        """
        cleaned = email.strip().lower()
        if not cleaned or "@" not in cleaned:
            raise InvalidInput(message="A valid email is required")
        user = await self._store.upsert_user(
            User(id=user_id, email=cleaned, name=(name or "").strip() or None)
        )
        logger.info("user_registered", user_id=user_id)
        return user

    async def suggestions(self, user_id: str, query: str) -> list[User]:
        """Users whose email contains *query*, excluding the caller.

        Queries shorter than two characters return nothing.
        """
        query = query.strip()
        if len(query) < _MIN_QUERY_LENGTH:
            return []
        return await self._store.search_users(query, exclude_user_id=user_id, limit=_MAX_SUGGESTIONS)
