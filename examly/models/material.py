"""Study-material models: the persisted output of an ingestion run.

A :class:`Material` combines one overall enrichment bundle with one
:class:`Chapter` per originating document.  Chapters whose synthesis
failed carry only ``order``, ``title`` and ``document_id``.

Invariants held by the pipeline and the store:
    - ``chapters[i].order`` values are unique and run 1..N.
    - a user appears at most once in ``votes``.
    - only ``title`` and ``shared_with`` change after creation.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import Field

from examly.models.base import CamelModel
from examly.models.study import (
    ExamQuestion,
    Flashcard,
    Formula,
    MultipleChoiceQuestion,
    OutputLanguage,
    StudyBundle,
    StudyPlan,
    VideoSuggestion,
)


class ChapterPlan(CamelModel):
    """Sequencer output: reading position and title for one input file."""

    order: int = Field(ge=1)
    title: str
    content: str = ""
    file_index: int = Field(ge=0)


class Chapter(CamelModel):
    """One document's position, title and (optional) enrichment."""

    order: int = Field(ge=1)
    title: str
    document_id: str
    summary: str | None = None
    key_points: list[str] | None = None
    formulas: list[Formula] | None = None
    exam_questions: list[ExamQuestion] | None = None
    mcqs: list[MultipleChoiceQuestion] | None = None
    flashcards: list[Flashcard] | None = None
    study_plan: StudyPlan | None = None
    youtube_videos: list[VideoSuggestion] | None = None

    @classmethod
    def from_bundle(cls, order: int, title: str, document_id: str, bundle: StudyBundle) -> Chapter:
        return cls(
            order=order,
            title=title,
            document_id=document_id,
            summary=bundle.summary,
            key_points=bundle.key_points,
            formulas=bundle.formulas,
            exam_questions=bundle.exam_questions,
            mcqs=bundle.mcqs,
            flashcards=bundle.flashcards,
            study_plan=bundle.study_plan,
            youtube_videos=bundle.youtube_videos,
        )

    @property
    def is_enriched(self) -> bool:
        return self.youtube_videos is not None


class VoteValue(str, Enum):  # noqa: UP042
    UP = "up"
    DOWN = "down"


class Vote(CamelModel):
    user_id: str
    vote: VoteValue


class VoteTally(CamelModel):
    up: int = 0
    down: int = 0
    total: int = 0

    @classmethod
    def from_votes(cls, votes: list[Vote]) -> VoteTally:
        up = sum(1 for v in votes if v.vote is VoteValue.UP)
        down = sum(1 for v in votes if v.vote is VoteValue.DOWN)
        return cls(up=up, down=down, total=len(votes))


class Material(CamelModel):
    """A generated study-material bundle owned by ``user_id``."""

    id: str
    user_id: str
    title: str
    document_ids: list[str] = Field(default_factory=list)
    summary: str | None = None
    key_points: list[str] | None = None
    formulas: list[Formula] | None = None
    exam_questions: list[ExamQuestion] | None = None
    mcqs: list[MultipleChoiceQuestion] | None = None
    flashcards: list[Flashcard] | None = None
    study_plan: StudyPlan | None = None
    output_language: OutputLanguage = OutputLanguage.ENGLISH
    chapters: list[Chapter] = Field(default_factory=list)
    shared_with: list[str] = Field(default_factory=list)
    votes: list[Vote] = Field(default_factory=list)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )

    def is_owner(self, user_id: str) -> bool:
        return self.user_id == user_id

    def can_read(self, user_id: str) -> bool:
        return self.user_id == user_id or user_id in self.shared_with

    def tally(self) -> VoteTally:
        return VoteTally.from_votes(self.votes)
