"""Share notifications for the calling user."""

from __future__ import annotations

from dataclasses import dataclass

from examly.interfaces.material_store import IMaterialStore
from examly.models.notification import Notification
from examly.models.user import User
from examly.utils.errors import NotFound


@dataclass(frozen=True)
class NotificationView:
    """A notification joined with its material title and sharer."""

    notification: Notification
    material_title: str
    sharer: User | None


class NotificationService:
    def __init__(self, store: IMaterialStore) -> None:
        self._store = store

    async def list_for_user(self, user_id: str, limit: int = 50) -> list[NotificationView]:
        notifications = await self._store.list_notifications(user_id, limit=limit)
        titles: dict[str, str] = {}
        sharers: dict[str, User | None] = {}
        views: list[NotificationView] = []
        for item in notifications:
            if item.material_id not in titles:
                material = await self._store.get_material(item.material_id)
                titles[item.material_id] = material.title if material else "Unknown Material"
            if item.shared_by not in sharers:
                sharers[item.shared_by] = await self._store.get_user(item.shared_by)
            views.append(
                NotificationView(
                    notification=item,
                    material_title=titles[item.material_id],
                    sharer=sharers[item.shared_by],
                )
            )
        return views

    async def mark_read(self, user_id: str, notification_id: str) -> None:
        if not await self._store.mark_notification_read(notification_id, user_id):
            raise NotFound(message="Notification not found")
