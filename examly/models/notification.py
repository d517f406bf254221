"""Share notifications shown to the recipient of a shared material."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import Field

from examly.models.base import CamelModel


class NotificationType(str, Enum):  # noqa: UP042
    MATERIAL_SHARED = "material_shared"
    MATERIAL_INVITED = "material_invited"


class Notification(CamelModel):
    """Created once per share event; only ``read`` ever changes."""

    id: str
    user_id: str              # recipient
    type: NotificationType
    material_id: str
    shared_by: str            # user id of the sharer
    message: str
    read: bool = False
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )
