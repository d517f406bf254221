"""Study-material synthesis: one LLM call, one structured StudyBundle.

The prompt is composed from a table of fragments, one per feature.  Only
the fragments for the enabled feature flags are included, plus the
always-on ``youtubeVideos`` and ``chapterInfo`` fragments.  The response is
recovered as JSON (fenced block, then greedy brace match, then the whole
response) and decoded leniently: an individual item that does not fit its
model (an MCQ whose answer index is out of range, say) is dropped and
logged rather than failing the whole bundle.

Failure classification
----------------------
``ConfigurationError``   no provider, or the credential was rejected
``RateLimited``          quota / rate-limit reported by the provider
``EmptyAIResponse``      the provider returned no text
``AIResponseNotJSON``    no JSON object could be recovered
``AIProcessingFailed``   anything else
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

from examly.interfaces.llm_provider import ILLMProvider
from examly.models.study import (
    ChapterInfo,
    ExamQuestion,
    FeatureFlags,
    Flashcard,
    Formula,
    MultipleChoiceQuestion,
    OutputLanguage,
    StudyBundle,
    StudyDay,
    StudyPlan,
    VideoSuggestion,
)
from examly.utils.errors import (
    AIProcessingFailed,
    AIResponseNotJSON,
    ConfigurationError,
    EmptyAIResponse,
    ExamlyError,
    RateLimited,
)
from examly.utils.llm_json import parse_json_object
from examly.utils.logging import get_logger

MAX_TEXT_CHARS = 2_000_000
TRUNCATION_NOTICE = "\n\n[Content truncated due to length - analyzing first 2M characters...]"
_PREVIEW_CHARS = 500

_SYSTEM_PROMPT = (
    "You are an AI Study Assistant. You answer with a single JSON object "
    "and nothing else."
)

_PROMPT_HEADER = """\
You are an AI Study Assistant. Analyze the following study material THOROUGHLY and provide a comprehensive, DETAILED JSON response.

IMPORTANT:
- You MUST respond in {language}. All summaries, key points, questions, and explanations must be in {language}.
- Analyze the ENTIRE content - do not skip any important details
- Extract MAXIMUM information - be comprehensive and detailed
- Make sure students don't miss anything important from the material

STUDY MATERIAL:
{text}

INSTRUCTIONS:
1. Read and analyze the ENTIRE content carefully - every paragraph, every section
2. Identify ALL chapters, sections, subsections, and their order
3. Extract ALL requested information with maximum detail
4. Generate as many questions, MCQs, and flashcards as possible - QUANTITY IS KEY
5. Return ONLY valid JSON, no markdown formatting or explanations outside JSON

REQUIRED JSON FORMAT:
{{
"""

_PROMPT_FOOTER = """\
}

IMPORTANT:
- If chapters are detected, organize content by chapter order
- Extract ALL formulas, even if written in different formats
- Generate diverse question types
- Make flashcards concise but informative
- Study plan should be realistic and spread over available days
- Return ONLY the JSON object, no additional text"""


# ---------------------------------------------------------------------------
# Prompt fragments
# ---------------------------------------------------------------------------

def _summary_fragment(language: str, features: FeatureFlags) -> str:
    return (
        f'  "summary": "A concise and clear summary (1-2 paragraphs maximum, 3-5 sentences) '
        f"in {language} that explains what this chapter/material is about. Focus on the main "
        f"topic and purpose. Keep it brief, clear, and to the point - the objective is to explain "
        f'what the chapter is about, not to provide every detail.",\n'
    )


def _key_points_fragment(language: str, features: FeatureFlags) -> str:
    return (
        f'  "keyPoints": ["Really important key point 1 in {language}", '
        f'"Really important key point 2 in {language}", ...],\n'
        "NOTE: Focus on DEFINITIONS and really important key points. Include ALL important "
        "definitions from the chapter - these are critical. Also include the most critical "
        "concepts and ideas that students absolutely must know. Do not include minor details.\n"
    )


def _formulas_fragment(language: str, features: FeatureFlags) -> str:
    return (
        '  "formulas": [\n'
        "    {\n"
        '      "formula": "Mathematical formula in LaTeX or text format",\n'
        f'      "description": "What this formula represents (in {language})",\n'
        f'      "context": "Where/when to use this formula (in {language})"\n'
        "    }\n"
        "  ],\n"
        "NOTE: Only include formulas if they actually exist in the material. "
        "If no formulas exist, return an empty array [].\n"
    )


def _exam_questions_fragment(language: str, features: FeatureFlags) -> str:
    return (
        '  "examQuestions": [\n'
        "    {\n"
        f'      "question": "Exam-simulated question in {language}",\n'
        f'      "answer": "Very short and concise answer in {language} (1 sentence maximum, '
        '10-20 words).",\n'
        '      "type": "short" | "long" | "essay"\n'
        "    }\n"
        "  ],\n"
        "NOTE: Generate at least 10 exam-simulated questions. Answers should be VERY SHORT "
        "(1 sentence, 10-20 words maximum). Generate more questions (15-20) for longer or more "
        "complex chapters.\n"
    )


def _mcqs_fragment(language: str, features: FeatureFlags) -> str:
    return (
        '  "mcqs": [\n'
        "    {\n"
        f'      "question": "Multiple choice question in {language}",\n'
        f'      "options": ["Option A in {language}", "Option B in {language}", '
        f'"Option C in {language}", "Option D in {language}"],\n'
        '      "correctAnswer": 0,\n'
        f'      "explanation": "Why this answer is correct (in {language})"\n'
        "    }\n"
        "  ],\n"
        "NOTE: Generate at least 15 MCQs, each with exactly 4 options. correctAnswer is a single "
        "zero-based index (0-3) for single-answer questions, or an array of indices like [0, 2] "
        "when several options are genuinely correct.\n"
    )


def _flashcards_fragment(language: str, features: FeatureFlags) -> str:
    return (
        '  "flashcards": [\n'
        "    {\n"
        f'      "front": "Question or term in {language}",\n'
        f'      "back": "Answer or definition in {language} with key information",\n'
        '      "category": "Category name"\n'
        "    }\n"
        "  ],\n"
        "NOTE: Create flashcards for ALL important terms, concepts, definitions, and key ideas. "
        "Aim for 40-60 flashcards.\n"
    )


def _youtube_videos_fragment(language: str, features: FeatureFlags) -> str:
    return (
        '  "youtubeVideos": [\n'
        "    {\n"
        '      "title": "Suggested video title that would help students understand this topic",\n'
        '      "description": "Brief description of what the video covers and why it\'s relevant",\n'
        f'      "searchQuery": "YouTube search query to find this video (in {language})",\n'
        '      "relevance": "Why this video is relevant to the chapter content"\n'
        "    }\n"
        "  ],\n"
        "NOTE: Suggest 8-15 YouTube videos covering the important concepts, definitions, "
        f"formulas and examples. The searchQuery should be in {language} and specific enough "
        "to find relevant videos.\n"
    )


def _study_plan_fragment(language: str, features: FeatureFlags) -> str:
    difficulty = features.study_plan.difficulty if features.study_plan else None
    target = f"NOTE: Pitch the plan at {difficulty} difficulty.\n" if difficulty else ""
    return (
        '  "studyPlan": {\n'
        '    "schedule": [\n'
        "      {\n"
        '        "date": "YYYY-MM-DD",\n'
        '        "topics": ["Topic 1", "Topic 2"],\n'
        '        "difficulty": "easy" | "medium" | "hard"\n'
        "      }\n"
        "    ],\n"
        '    "totalDays": 7\n'
        "  },\n"
        f"{target}"
    )


def _chapter_info_fragment(language: str, features: FeatureFlags) -> str:
    return (
        '  "chapterInfo": {\n'
        '    "order": 1,\n'
        '    "title": "Chapter title if detected",\n'
        '    "content": "Brief description"\n'
        "  }\n"
    )


@dataclass(frozen=True)
class PromptFragment:
    """One requestable section of the response object."""

    feature: str
    build: Callable[[str, FeatureFlags], str]
    always: bool = False


PROMPT_FRAGMENTS: tuple[PromptFragment, ...] = (
    PromptFragment("summary", _summary_fragment),
    PromptFragment("key_points", _key_points_fragment),
    PromptFragment("formulas", _formulas_fragment),
    PromptFragment("exam_questions", _exam_questions_fragment),
    PromptFragment("mcqs", _mcqs_fragment),
    PromptFragment("flashcards", _flashcards_fragment),
    PromptFragment("youtube_videos", _youtube_videos_fragment, always=True),
    PromptFragment("study_plan", _study_plan_fragment),
    PromptFragment("chapter_info", _chapter_info_fragment, always=True),
)

# Response key -> item model for the list-valued features.
_LIST_ITEM_MODELS: dict[str, tuple[str, type[BaseModel]]] = {
    "formulas": ("formulas", Formula),
    "exam_questions": ("examQuestions", ExamQuestion),
    "mcqs": ("mcqs", MultipleChoiceQuestion),
    "flashcards": ("flashcards", Flashcard),
}


def build_prompt(text: str, features: FeatureFlags, output_language: OutputLanguage) -> str:
    """Compose the synthesis prompt from the fragments *features* selects."""
    language = output_language.display_name
    enabled = set(features.enabled())
    body = "".join(
        fragment.build(language, features)
        for fragment in PROMPT_FRAGMENTS
        if fragment.always or fragment.feature in enabled
    )
    return _PROMPT_HEADER.format(language=language, text=text) + body + _PROMPT_FOOTER


def truncate_text(text: str) -> str:
    if len(text) <= MAX_TEXT_CHARS:
        return text
    return text[:MAX_TEXT_CHARS] + TRUNCATION_NOTICE


class MaterialSynthesizer:
    """Turn one text into a :class:`StudyBundle` via the LLM.

    Parameters
    ----------
    llm_provider:
        The LLM backend, or ``None`` when no provider is configured.
    temperature:
        Sampling temperature for synthesis calls.
    max_tokens:
        Response budget; bundles with dozens of MCQs and flashcards are long.
    """

    def __init__(
        self,
        llm_provider: ILLMProvider | None,
        temperature: float = 0.3,
        max_tokens: int = 8192,
    ) -> None:
        self._llm = llm_provider
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._logger = get_logger(__name__)

    @property
    def is_configured(self) -> bool:
        return self._llm is not None

    async def synthesize(
        self,
        text: str,
        features: FeatureFlags,
        output_language: OutputLanguage = OutputLanguage.ENGLISH,
    ) -> StudyBundle:
        """Request and parse one study bundle for *text*.

        Returns
        -------
        StudyBundle
            Fields for features that were not requested are ``None``;
            ``youtube_videos`` is always a list.

        Raises
        ------
        ConfigurationError, RateLimited, EmptyAIResponse,
        AIResponseNotJSON, AIProcessingFailed
            See the module docstring.
        """
        if self._llm is None:
            raise ConfigurationError(message="No LLM provider is configured")

        prompt = build_prompt(truncate_text(text), features, output_language)
        provider = self._llm.get_provider_name()
        self._logger.info(
            "synthesis_start",
            provider=provider,
            text_chars=len(text),
            truncated=len(text) > MAX_TEXT_CHARS,
            features=features.enabled(),
        )

        try:
            response = await self._llm.complete(
                system_prompt=_SYSTEM_PROMPT,
                user_prompt=prompt,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except (
            ConfigurationError, RateLimited, EmptyAIResponse, AIResponseNotJSON, AIProcessingFailed
        ) as exc:
            self._logger.error("synthesis_failed", provider=provider, error=str(exc))
            raise
        except Exception as exc:
            self._logger.error(
                "synthesis_failed", provider=provider, error=str(exc), error_type=type(exc).__name__
            )
            raise classify_failure(exc, provider) from exc

        if not response or not response.strip():
            raise EmptyAIResponse(message="Empty response from AI", provider_name=provider)

        try:
            payload = parse_json_object(response)
        except ValueError as exc:
            preview = response[:_PREVIEW_CHARS]
            self._logger.error("synthesis_not_json", provider=provider, preview=preview)
            raise AIResponseNotJSON(
                message=f"AI response is not valid JSON: {exc}",
                provider_name=provider,
                preview=preview,
            ) from exc

        bundle = self.decode_bundle(payload, features)
        self._logger.info(
            "synthesis_complete",
            provider=provider,
            mcqs=len(bundle.mcqs or []),
            flashcards=len(bundle.flashcards or []),
            videos=len(bundle.youtube_videos),
        )
        return bundle

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    def decode_bundle(self, payload: dict[str, Any], features: FeatureFlags) -> StudyBundle:
        """Build a :class:`StudyBundle` keeping only the requested keys."""
        enabled = set(features.enabled())
        fields: dict[str, Any] = {}

        if "summary" in enabled and isinstance(payload.get("summary"), str):
            fields["summary"] = payload["summary"].strip()
        if "key_points" in enabled and isinstance(payload.get("keyPoints"), list):
            fields["key_points"] = [
                str(point).strip() for point in payload["keyPoints"]
                if isinstance(point, (str, int, float)) and str(point).strip()
            ]
        for feature, (key, model) in _LIST_ITEM_MODELS.items():
            if feature in enabled and isinstance(payload.get(key), list):
                fields[feature] = self._decode_items(payload[key], model, key)
        if "study_plan" in enabled and isinstance(payload.get("studyPlan"), dict):
            fields["study_plan"] = self._decode_study_plan(payload["studyPlan"])

        videos = payload.get("youtubeVideos")
        fields["youtube_videos"] = (
            self._decode_items(videos, VideoSuggestion, "youtubeVideos")
            if isinstance(videos, list) else []
        )
        chapter_info = payload.get("chapterInfo")
        if isinstance(chapter_info, dict):
            try:
                fields["chapter_info"] = ChapterInfo.model_validate(chapter_info)
            except ValidationError:
                self._logger.debug("chapter_info_dropped")

        return StudyBundle(**fields)

    def _decode_items(self, items: list[Any], model: type[BaseModel], key: str) -> list[Any]:
        decoded = []
        for position, item in enumerate(items):
            try:
                decoded.append(model.model_validate(item))
            except ValidationError as exc:
                self._logger.warning(
                    "synthesis_item_dropped",
                    key=key,
                    position=position,
                    errors=exc.error_count(),
                )
        return decoded

    def _decode_study_plan(self, raw: dict[str, Any]) -> StudyPlan | None:
        schedule = raw.get("schedule")
        days = (
            self._decode_items(schedule, StudyDay, "studyPlan.schedule")
            if isinstance(schedule, list) else []
        )
        total_days = raw.get("totalDays")
        if isinstance(total_days, bool) or not isinstance(total_days, int):
            total_days = len(days)
        try:
            return StudyPlan(
                schedule=days,
                exam_date=raw.get("examDate") or None,
                total_days=total_days,
            )
        except ValidationError:
            self._logger.warning("study_plan_dropped")
            return StudyPlan(schedule=days, total_days=len(days))


def classify_failure(exc: Exception, provider: str | None = None) -> ExamlyError:
    """Map an arbitrary failure of the AI call onto the error taxonomy."""
    if isinstance(
        exc, (ConfigurationError, RateLimited, EmptyAIResponse, AIResponseNotJSON, AIProcessingFailed)
    ):
        return exc
    message = exc.message if isinstance(exc, ExamlyError) else str(exc)
    lowered = message.lower()
    if "api key" in lowered or "api_key" in lowered:
        return ConfigurationError(
            message=f"Invalid or missing AI provider API key: {message}", provider_name=provider
        )
    if "quota" in lowered or "rate limit" in lowered:
        return RateLimited(
            message="API quota exceeded or rate limited. Please try again later.",
            provider_name=provider,
        )
    return AIProcessingFailed(message=f"AI processing failed: {message}", provider_name=provider)
