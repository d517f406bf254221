"""Study-bundle models: what one synthesis call produces.

A :class:`StudyBundle` is the parsed, validated form of one AI response.
The same enrichment shapes are reused for a Material's overall content and
for each of its chapters.

Architecture note:
    Multiple-choice answers arrive from the model as either an ``int`` or
    a list of ints.  They are decoded once, at the model boundary, into
    the tagged variants :class:`SingleAnswer` / :class:`MultipleAnswer`
    so nothing downstream has to guess which shape it holds.  On the wire
    (API responses, the SQLite JSON columns) they are written back in the
    compact int / list form.
"""

from __future__ import annotations

from datetime import date as Date
from enum import Enum
from typing import Any, Literal

from pydantic import Field, field_serializer, field_validator, model_validator

from examly.models.base import CamelModel


class OutputLanguage(str, Enum):  # noqa: UP042 StrEnum requires Python 3.11+
    """Language the study material is generated in."""

    ENGLISH = "english"
    FRENCH = "french"
    ARABIC = "arabic"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


# ---------------------------------------------------------------------------
# Feature selection
# ---------------------------------------------------------------------------

class StudyPlanOptions(CamelModel):
    """Options for the study-plan feature."""

    difficulty: str | None = None


class FeatureFlags(CamelModel):
    """Which enrichment categories to request from the AI service.

    ``study_plan`` is an options object rather than a bool; ``true`` is
    accepted as shorthand for "enabled with default options".
    """

    summary: bool = False
    key_points: bool = False
    formulas: bool = False
    exam_questions: bool = False
    mcqs: bool = False
    flashcards: bool = False
    study_plan: StudyPlanOptions | None = None

    @field_validator("study_plan", mode="before")
    @classmethod
    def _coerce_study_plan(cls, value: Any) -> Any:
        if value is True:
            return StudyPlanOptions()
        if value is False:
            return None
        return value

    def enabled(self) -> list[str]:
        """Names (snake_case) of the features that are switched on."""
        names = [
            name for name in (
                "summary", "key_points", "formulas", "exam_questions", "mcqs", "flashcards",
            )
            if getattr(self, name)
        ]
        if self.study_plan is not None:
            names.append("study_plan")
        return names


# ---------------------------------------------------------------------------
# Enrichment items
# ---------------------------------------------------------------------------

class Formula(CamelModel):
    formula: str
    description: str = ""
    context: str = ""


class ExamQuestion(CamelModel):
    question: str
    answer: str = ""
    type: Literal["short", "long", "essay"] = "short"

    @field_validator("type", mode="before")
    @classmethod
    def _normalise_type(cls, value: Any) -> str:
        text = str(value or "").strip().lower()
        return text if text in ("short", "long", "essay") else "short"


class SingleAnswer(CamelModel):
    """Exactly one correct option."""

    kind: Literal["single"] = "single"
    index: int

    def indices(self) -> list[int]:
        return [self.index]


class MultipleAnswer(CamelModel):
    """Several correct options."""

    kind: Literal["multiple"] = "multiple"
    choices: list[int] = Field(min_length=1)

    def indices(self) -> list[int]:
        return list(self.choices)


def _as_index(value: Any) -> int:
    # bool is an int subclass; true/false are never option indices.
    if isinstance(value, bool):
        raise ValueError(f"Invalid answer index: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ValueError(f"Invalid answer index: {value!r}")


def decode_correct_answer(raw: Any) -> SingleAnswer | MultipleAnswer:
    """Decode the model's loose ``correctAnswer`` into a tagged variant.

    Raises
    ------
    ValueError
        If *raw* is neither an index nor a non-empty list of indices.
    """
    if isinstance(raw, (SingleAnswer, MultipleAnswer)):
        return raw
    if isinstance(raw, dict) and raw.get("kind") == "single":
        return SingleAnswer.model_validate(raw)
    if isinstance(raw, dict) and raw.get("kind") == "multiple":
        return MultipleAnswer.model_validate(raw)
    if isinstance(raw, list):
        choices = sorted({_as_index(item) for item in raw})
        if not choices:
            raise ValueError("correctAnswer list is empty")
        return MultipleAnswer(choices=choices)
    return SingleAnswer(index=_as_index(raw))


class MultipleChoiceQuestion(CamelModel):
    """An MCQ whose answer indices are guaranteed to point into ``options``."""

    question: str
    options: list[str]
    correct_answer: SingleAnswer | MultipleAnswer
    explanation: str | None = None

    @field_validator("correct_answer", mode="before")
    @classmethod
    def _decode_answer(cls, value: Any) -> SingleAnswer | MultipleAnswer:
        return decode_correct_answer(value)

    @model_validator(mode="after")
    def _check_indices(self) -> MultipleChoiceQuestion:
        for index in self.correct_answer.indices():
            if not 0 <= index < len(self.options):
                raise ValueError(
                    f"correctAnswer index {index} outside 0..{len(self.options) - 1}"
                )
        return self

    @field_serializer("correct_answer")
    def _serialize_answer(self, answer: SingleAnswer | MultipleAnswer) -> int | list[int]:
        if isinstance(answer, SingleAnswer):
            return answer.index
        return answer.indices()


class Flashcard(CamelModel):
    front: str
    back: str
    category: str | None = None


class StudyDay(CamelModel):
    date: Date
    topics: list[str] = Field(default_factory=list)
    difficulty: Literal["easy", "medium", "hard"] = "medium"

    @field_validator("difficulty", mode="before")
    @classmethod
    def _normalise_difficulty(cls, value: Any) -> str:
        text = str(value or "").strip().lower()
        return text if text in ("easy", "medium", "hard") else "medium"


class StudyPlan(CamelModel):
    schedule: list[StudyDay] = Field(default_factory=list)
    exam_date: Date | None = None
    total_days: int = 0


class VideoSuggestion(CamelModel):
    """A video the model recommends; ``search_query`` finds it on YouTube."""

    title: str
    description: str = ""
    search_query: str = ""
    relevance: str = ""


class ChapterInfo(CamelModel):
    order: int | None = None
    title: str | None = None
    content: str | None = None


# ---------------------------------------------------------------------------
# The bundle
# ---------------------------------------------------------------------------

class StudyBundle(CamelModel):
    """One parsed synthesis result.

    Fields for features that were not requested stay ``None``;
    ``youtube_videos`` is always present (possibly empty).
    """

    summary: str | None = None
    key_points: list[str] | None = None
    formulas: list[Formula] | None = None
    exam_questions: list[ExamQuestion] | None = None
    mcqs: list[MultipleChoiceQuestion] | None = None
    flashcards: list[Flashcard] | None = None
    study_plan: StudyPlan | None = None
    youtube_videos: list[VideoSuggestion] = Field(default_factory=list)
    chapter_info: ChapterInfo | None = None
