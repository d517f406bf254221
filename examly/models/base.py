"""Shared pydantic configuration for Examly models.

Every domain model is frozen (state changes go through
``model_copy(update={...})``) and uses snake_case in Python with camelCase
aliases on the wire, so ``key_points`` travels as ``keyPoints``.  Both
spellings are accepted on input.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Frozen base model with camelCase aliases."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )
