"""Ingestion pipeline state models.

Defines the request that starts an ingestion run and the frozen
:class:`IngestionState` the orchestrator advances phase by phase.
State transitions produce new instances via ``model_copy(update={...})``.

Architecture note:
    The orchestrator (examly/pipeline/orchestrator.py) records non-fatal
    problems (a document whose text could not be extracted, a chapter
    whose synthesis failed) as :class:`PipelineErrorRecord` entries instead
    of raising.  Fatal problems raise from ``examly.utils.errors``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import Field, field_validator

from examly.models.base import CamelModel
from examly.models.material import Material
from examly.models.study import FeatureFlags, OutputLanguage


class IngestionPhase(str, Enum):  # noqa: UP042 StrEnum requires Python 3.11+
    """Phases of one ingestion run, in the order they are reached.

    RECEIVED → TEXTS_RESOLVED → CHAPTERS_SEQUENCED → OVERALL_SYNTHESIZED →
    CHAPTERS_SYNTHESIZED → ASSEMBLED → PERSISTED
    """

    RECEIVED = "RECEIVED"                          # Request validated
    TEXTS_RESOLVED = "TEXTS_RESOLVED"              # Every document has text (or "")
    CHAPTERS_SEQUENCED = "CHAPTERS_SEQUENCED"      # Reading order decided
    OVERALL_SYNTHESIZED = "OVERALL_SYNTHESIZED"    # Combined-text bundle ready
    CHAPTERS_SYNTHESIZED = "CHAPTERS_SYNTHESIZED"  # Per-chapter bundles settled
    ASSEMBLED = "ASSEMBLED"                        # Material built in memory
    PERSISTED = "PERSISTED"                        # Material written to the store


class PipelineErrorRecord(CamelModel):
    """A problem recorded during a run without aborting it."""

    phase: IngestionPhase
    message: str
    document_id: str | None = None
    recoverable: bool = True
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )


class IngestionRequest(CamelModel):
    """Input of one ingestion run."""

    document_ids: list[str] = Field(min_length=1)
    features: FeatureFlags = Field(default_factory=FeatureFlags)
    title: str | None = None
    output_language: OutputLanguage = OutputLanguage.ENGLISH

    @field_validator("title")
    @classmethod
    def _blank_title_is_none(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()


class IngestionState(CamelModel):
    """Snapshot of an ingestion run.  Immutable."""

    run_id: str
    user_id: str
    phase: IngestionPhase = IngestionPhase.RECEIVED
    errors: list[PipelineErrorRecord] = Field(default_factory=list)
    material: Material | None = None
    started_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )
    completed_at: datetime | None = None

    def advance(self, phase: IngestionPhase, **updates: object) -> IngestionState:
        return self.model_copy(update={"phase": phase, **updates})

    def with_error(self, record: PipelineErrorRecord) -> IngestionState:
        return self.model_copy(update={"errors": [*self.errors, record]})
