"""Unit tests for MaterialSynthesizer: prompt composition, decoding, failures."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest

from examly.interfaces.llm_provider import ILLMProvider
from examly.models.study import FeatureFlags, MultipleAnswer, OutputLanguage, SingleAnswer
from examly.services.material_synthesizer import (
    MAX_TEXT_CHARS,
    TRUNCATION_NOTICE,
    MaterialSynthesizer,
    build_prompt,
    classify_failure,
    truncate_text,
)
from examly.utils.errors import (
    AIProcessingFailed,
    AIResponseNotJSON,
    ConfigurationError,
    EmptyAIResponse,
    LLMError,
    RateLimited,
)
from tests.conftest import bundle_payload, bundle_response

ALL_FEATURES = FeatureFlags(
    summary=True,
    key_points=True,
    formulas=True,
    exam_questions=True,
    mcqs=True,
    flashcards=True,
    study_plan={"difficulty": "hard"},
)


class TestBuildPrompt:
    def test_only_requested_sections_plus_always_on(self) -> None:
        prompt = build_prompt("text", FeatureFlags(summary=True), OutputLanguage.ENGLISH)
        assert '"summary"' in prompt
        assert '"youtubeVideos"' in prompt
        assert '"chapterInfo"' in prompt
        for absent in ('"keyPoints"', '"formulas"', '"mcqs"', '"flashcards"', '"studyPlan"'):
            assert absent not in prompt

    def test_language_and_difficulty(self) -> None:
        prompt = build_prompt("text", ALL_FEATURES, OutputLanguage.ARABIC)
        assert "You MUST respond in Arabic" in prompt
        assert "hard difficulty" in prompt

    def test_text_is_embedded(self) -> None:
        prompt = build_prompt("Entropy rises.", FeatureFlags(), OutputLanguage.ENGLISH)
        assert "STUDY MATERIAL:\nEntropy rises." in prompt


class TestTruncate:
    def test_short_text_untouched(self) -> None:
        assert truncate_text("abc") == "abc"

    def test_long_text_is_cut_with_notice(self) -> None:
        result = truncate_text("x" * (MAX_TEXT_CHARS + 10))
        assert result.endswith(TRUNCATION_NOTICE)
        assert len(result) == MAX_TEXT_CHARS + len(TRUNCATION_NOTICE)


class TestSynthesize:
    async def test_full_bundle(self, mock_llm_provider: ILLMProvider) -> None:
        bundle = await MaterialSynthesizer(mock_llm_provider).synthesize("text", ALL_FEATURES)
        assert bundle.summary == "Energy is conserved in closed systems."
        assert bundle.key_points == [
            "First law of thermodynamics",
            "Internal energy is a state function",
        ]
        assert bundle.formulas[0].formula == "dU = dQ - dW"
        assert bundle.exam_questions[0].type == "short"
        assert bundle.mcqs[0].correct_answer == SingleAnswer(index=0)
        assert bundle.flashcards[0].front == "Internal energy"
        assert bundle.study_plan.total_days == 1
        assert bundle.youtube_videos[0].search_query == "first law of thermodynamics"

    async def test_unrequested_keys_are_dropped(self, mock_llm_provider: ILLMProvider) -> None:
        bundle = await MaterialSynthesizer(mock_llm_provider).synthesize(
            "text", FeatureFlags(summary=True)
        )
        assert bundle.summary
        assert bundle.key_points is None
        assert bundle.mcqs is None
        assert bundle.study_plan is None

    async def test_videos_present_even_with_no_features(
        self, mock_llm_provider: ILLMProvider
    ) -> None:
        for _ in range(3):
            bundle = await MaterialSynthesizer(mock_llm_provider).synthesize("text", FeatureFlags())
            assert len(bundle.youtube_videos) == 1

    async def test_missing_videos_become_empty_list(self, mock_llm_provider: ILLMProvider) -> None:
        payload = bundle_payload()
        del payload["youtubeVideos"]
        mock_llm_provider.complete = AsyncMock(return_value=json.dumps(payload))
        bundle = await MaterialSynthesizer(mock_llm_provider).synthesize("text", FeatureFlags())
        assert bundle.youtube_videos == []

    async def test_multi_answer_and_invalid_mcqs(self, mock_llm_provider: ILLMProvider) -> None:
        mcqs = [
            {"question": "Pick two", "options": ["a", "b", "c", "d"], "correctAnswer": [2, 0]},
            {"question": "Out of range", "options": ["a", "b"], "correctAnswer": 5},
            {"question": "Boolean", "options": ["a", "b"], "correctAnswer": True},
        ]
        mock_llm_provider.complete = AsyncMock(return_value=bundle_response(mcqs=mcqs))
        bundle = await MaterialSynthesizer(mock_llm_provider).synthesize(
            "text", FeatureFlags(mcqs=True)
        )
        assert len(bundle.mcqs) == 1
        assert bundle.mcqs[0].correct_answer == MultipleAnswer(choices=[0, 2])
        for mcq in bundle.mcqs:
            for index in mcq.correct_answer.indices():
                assert 0 <= index < len(mcq.options)

    async def test_mcq_answer_serialises_compactly(self, mock_llm_provider: ILLMProvider) -> None:
        mcqs = [{"question": "Two", "options": ["a", "b", "c"], "correctAnswer": [0, 1]}]
        mock_llm_provider.complete = AsyncMock(return_value=bundle_response(mcqs=mcqs))
        bundle = await MaterialSynthesizer(mock_llm_provider).synthesize(
            "text", FeatureFlags(mcqs=True)
        )
        dumped = bundle.model_dump(by_alias=True, mode="json")
        assert dumped["mcqs"][0]["correctAnswer"] == [0, 1]

    async def test_study_plan_with_bad_total_days(self, mock_llm_provider: ILLMProvider) -> None:
        plan = {
            "schedule": [
                {"date": "2026-01-05", "topics": ["A"]},
                {"date": "not a date", "topics": ["B"]},
                {"date": "2026-01-07", "topics": ["C"], "difficulty": "brutal"},
            ],
            "totalDays": "seven",
        }
        mock_llm_provider.complete = AsyncMock(return_value=bundle_response(studyPlan=plan))
        bundle = await MaterialSynthesizer(mock_llm_provider).synthesize(
            "text", FeatureFlags(study_plan=True)
        )
        assert bundle.study_plan.total_days == 2
        assert [day.difficulty for day in bundle.study_plan.schedule] == ["medium", "medium"]

    async def test_prompt_chatter_around_json(self, mock_llm_provider: ILLMProvider) -> None:
        mock_llm_provider.complete = AsyncMock(
            return_value="Here is the analysis:\n" + json.dumps(bundle_payload()) + "\nHope it helps!"
        )
        bundle = await MaterialSynthesizer(mock_llm_provider).synthesize(
            "text", FeatureFlags(summary=True)
        )
        assert bundle.summary


class TestFailures:
    async def test_no_provider(self) -> None:
        with pytest.raises(ConfigurationError):
            await MaterialSynthesizer(None).synthesize("text", FeatureFlags())

    async def test_empty_response(self, mock_llm_provider: ILLMProvider) -> None:
        mock_llm_provider.complete = AsyncMock(return_value="   ")
        with pytest.raises(EmptyAIResponse):
            await MaterialSynthesizer(mock_llm_provider).synthesize("text", FeatureFlags())

    async def test_not_json_carries_preview(self, mock_llm_provider: ILLMProvider) -> None:
        mock_llm_provider.complete = AsyncMock(return_value="Sorry, " + "no json " * 200)
        with pytest.raises(AIResponseNotJSON) as excinfo:
            await MaterialSynthesizer(mock_llm_provider).synthesize("text", FeatureFlags())
        assert excinfo.value.preview.startswith("Sorry, no json")
        assert len(excinfo.value.preview) == 500

    async def test_rate_limit_passes_through(self, mock_llm_provider: ILLMProvider) -> None:
        mock_llm_provider.complete = AsyncMock(side_effect=RateLimited(provider_name="mock-llm"))
        with pytest.raises(RateLimited):
            await MaterialSynthesizer(mock_llm_provider).synthesize("text", FeatureFlags())

    async def test_generic_failure_is_classified(self, mock_llm_provider: ILLMProvider) -> None:
        mock_llm_provider.complete = AsyncMock(side_effect=LLMError("connection reset"))
        with pytest.raises(AIProcessingFailed, match="connection reset"):
            await MaterialSynthesizer(mock_llm_provider).synthesize("text", FeatureFlags())


@pytest.mark.parametrize(
    ("message", "expected"),
    [
        ("Incorrect API key provided", ConfigurationError),
        ("missing api_key", ConfigurationError),
        ("You exceeded your current quota", RateLimited),
        ("Rate limit reached for requests", RateLimited),
        ("socket closed", AIProcessingFailed),
    ],
)
def test_classify_failure(message: str, expected: type) -> None:
    error = classify_failure(RuntimeError(message), "openai")
    assert isinstance(error, expected)
    assert error.provider_name == "openai"
