"""User profile model.

Authentication lives outside Examly; a user record exists so that
materials can be shared by email and notifications can name the sharer.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import Field, field_validator

from examly.models.base import CamelModel


class User(CamelModel):
    id: str
    email: str
    name: str | None = None
    password_hash: str = Field(default="", exclude=True)
    email_verified: bool = False
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )

    @field_validator("email")
    @classmethod
    def _normalise_email(cls, value: str) -> str:
        return value.strip().lower()

    @property
    def display_name(self) -> str:
        return self.name or self.email
