"""Examly domain models: re-exports all public model classes.

The models are organised by domain concern:
    - study.py        : enrichment shapes and the StudyBundle
    - document.py     : uploaded documents
    - material.py     : Materials, chapters and votes
    - notification.py : share notifications
    - user.py         : user profiles
    - pipeline.py     : ingestion request and state
"""

from __future__ import annotations

from examly.models.base import CamelModel
from examly.models.document import Document
from examly.models.material import (
    Chapter,
    ChapterPlan,
    Material,
    Vote,
    VoteTally,
    VoteValue,
)
from examly.models.notification import Notification, NotificationType
from examly.models.pipeline import (
    IngestionPhase,
    IngestionRequest,
    IngestionState,
    PipelineErrorRecord,
)
from examly.models.study import (
    ChapterInfo,
    ExamQuestion,
    FeatureFlags,
    Flashcard,
    Formula,
    MultipleAnswer,
    MultipleChoiceQuestion,
    OutputLanguage,
    SingleAnswer,
    StudyBundle,
    StudyDay,
    StudyPlan,
    StudyPlanOptions,
    VideoSuggestion,
    decode_correct_answer,
)
from examly.models.user import User

__all__ = [
    "CamelModel",
    "Chapter",
    "ChapterInfo",
    "ChapterPlan",
    "Document",
    "ExamQuestion",
    "FeatureFlags",
    "Flashcard",
    "Formula",
    "IngestionPhase",
    "IngestionRequest",
    "IngestionState",
    "Material",
    "MultipleAnswer",
    "MultipleChoiceQuestion",
    "Notification",
    "NotificationType",
    "OutputLanguage",
    "PipelineErrorRecord",
    "SingleAnswer",
    "StudyBundle",
    "StudyDay",
    "StudyPlan",
    "StudyPlanOptions",
    "User",
    "VideoSuggestion",
    "Vote",
    "VoteTally",
    "VoteValue",
    "decode_correct_answer",
]
