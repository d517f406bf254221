"""Unit tests for ChapterSequencer: ordering, normalisation and fallbacks."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest

from examly.interfaces.llm_provider import ILLMProvider
from examly.models.study import OutputLanguage
from examly.services.chapter_sequencer import ChapterSequencer, clean_title
from examly.utils.errors import LLMError


def _orders(plans) -> list[int]:
    return [plan.order for plan in plans]


def _indices(plans) -> list[int]:
    return [plan.file_index for plan in plans]


class TestCleanTitle:
    def test_strips_quotes_and_collapses_whitespace(self) -> None:
        assert clean_title('"Thermo\n  dynamics"') == "Thermo dynamics"

    def test_plain_title_unchanged(self) -> None:
        assert clean_title("Heat Engines") == "Heat Engines"


class TestSequence:
    async def test_empty_input(self, mock_llm_provider: ILLMProvider) -> None:
        assert await ChapterSequencer(mock_llm_provider).sequence([], []) == []
        mock_llm_provider.complete.assert_not_awaited()

    async def test_single_file_uses_model_title(self, mock_llm_provider: ILLMProvider) -> None:
        mock_llm_provider.complete = AsyncMock(return_value='"Introduction to Thermodynamics"')
        plans = await ChapterSequencer(mock_llm_provider).sequence(
            ["Energy cannot be created or destroyed."], ["thermo.txt"], OutputLanguage.FRENCH
        )
        assert len(plans) == 1
        assert plans[0].order == 1
        assert plans[0].file_index == 0
        assert plans[0].title == "Introduction to Thermodynamics"
        assert plans[0].content == "Energy cannot be created or destroyed."
        prompt = mock_llm_provider.complete.call_args.kwargs["user_prompt"]
        assert "in French" in prompt

    async def test_single_file_falls_back_to_file_name(self, mock_llm_provider: ILLMProvider) -> None:
        mock_llm_provider.complete = AsyncMock(side_effect=LLMError("down"))
        plans = await ChapterSequencer(mock_llm_provider).sequence(
            ["Some text"], ["heat_transfer-notes.pdf"]
        )
        assert plans[0].title == "heat transfer notes"

    async def test_single_file_rejects_too_short_model_title(
        self, mock_llm_provider: ILLMProvider
    ) -> None:
        mock_llm_provider.complete = AsyncMock(return_value="ok")
        plans = await ChapterSequencer(mock_llm_provider).sequence(["text"], ["optics.txt"])
        assert plans[0].title == "optics"

    async def test_single_file_without_provider(self) -> None:
        plans = await ChapterSequencer(None).sequence(["text"], ["waves.docx"])
        assert plans[0].title == "waves"

    async def test_content_preview_is_capped(self) -> None:
        plans = await ChapterSequencer(None).sequence(["x" * 500], ["long.txt"])
        assert len(plans[0].content) == 200


class TestExtractTitle:
    async def test_heading_in_text_when_name_is_unusable(self) -> None:
        title = await ChapterSequencer(None).extract_title(
            "\n\nCHAPTER 3 WAVES AND OPTICS\nLight behaves as a wave.", ".pdf"
        )
        assert title == "CHAPTER 3 WAVES AND OPTICS"

    async def test_untitled_as_last_resort(self) -> None:
        title = await ChapterSequencer(None).extract_title("lowercase text only.", ".txt")
        assert title == "Untitled Chapter"


class TestDetectOrder:
    async def test_model_order_is_followed(self, mock_llm_provider: ILLMProvider) -> None:
        mock_llm_provider.complete = AsyncMock(
            return_value=json.dumps([
                {"order": 1, "title": "Basics", "content": "intro", "fileIndex": 2},
                {"order": 2, "title": "Middle", "content": "core", "fileIndex": 0},
                {"order": 3, "title": "Advanced", "content": "end", "fileIndex": 1},
            ])
        )
        plans = await ChapterSequencer(mock_llm_provider).sequence(
            ["b text", "c text", "a text"], ["b.txt", "c.txt", "a.txt"]
        )
        assert _orders(plans) == [1, 2, 3]
        assert _indices(plans) == [2, 0, 1]
        assert [p.title for p in plans] == ["Basics", "Middle", "Advanced"]

    async def test_prompt_lists_every_file(self, mock_llm_provider: ILLMProvider) -> None:
        mock_llm_provider.complete = AsyncMock(return_value="[]")
        await ChapterSequencer(mock_llm_provider).sequence(["one", "two"], ["a.pdf", "b.pdf"])
        prompt = mock_llm_provider.complete.call_args.kwargs["user_prompt"]
        assert "---FILE 1: a.pdf---\none" in prompt
        assert "---FILE 2: b.pdf---\ntwo" in prompt

    async def test_duplicate_and_out_of_range_indices_are_repaired(
        self, mock_llm_provider: ILLMProvider
    ) -> None:
        mock_llm_provider.complete = AsyncMock(
            return_value=json.dumps([
                {"order": 1, "title": "First", "fileIndex": 1},
                {"order": 2, "title": "Again", "fileIndex": 1},
                {"order": 3, "title": "Ghost", "fileIndex": 7},
            ])
        )
        plans = await ChapterSequencer(mock_llm_provider).sequence(
            ["zero", "one", "two"], ["zero.txt", "one.txt", "two.txt"]
        )
        assert sorted(_orders(plans)) == [1, 2, 3]
        assert sorted(_indices(plans)) == [0, 1, 2]
        assert plans[0].file_index == 1
        # Documents the model left out follow in upload order.
        assert _indices(plans)[1:] == [0, 2]
        assert plans[1].title == "zero"

    async def test_sparse_orders_are_made_dense(self, mock_llm_provider: ILLMProvider) -> None:
        mock_llm_provider.complete = AsyncMock(
            return_value=json.dumps([
                {"order": 10, "title": "Late", "fileIndex": 0},
                {"order": 5, "title": "Early", "fileIndex": 1},
            ])
        )
        plans = await ChapterSequencer(mock_llm_provider).sequence(["a", "b"], ["a.txt", "b.txt"])
        assert _orders(plans) == [1, 2]
        assert _indices(plans) == [1, 0]

    @pytest.mark.parametrize(
        "failure",
        [
            AsyncMock(side_effect=LLMError("provider down")),
            AsyncMock(return_value="I cannot help with that."),
            AsyncMock(return_value='{"not": "an array"}'),
        ],
    )
    async def test_failures_fall_back_to_upload_order(
        self, mock_llm_provider: ILLMProvider, failure: AsyncMock
    ) -> None:
        mock_llm_provider.complete = failure
        plans = await ChapterSequencer(mock_llm_provider).sequence(
            ["first text", "second text"], ["intro_notes.txt", "final-review.pdf"]
        )
        assert _orders(plans) == [1, 2]
        assert [p.order for p in plans] == [p.file_index + 1 for p in plans]
        assert [p.title for p in plans] == ["intro notes", "final review"]

    async def test_no_provider_falls_back(self) -> None:
        plans = await ChapterSequencer(None).sequence(["a", "b", "c"], ["1.txt", "2.txt", "3.txt"])
        assert _indices(plans) == [0, 1, 2]


def test_fallback_uses_generic_title_when_name_is_empty() -> None:
    plans = ChapterSequencer.fallback(["text one", "text two"], ["", ".pdf"])
    assert [p.title for p in plans] == ["Chapter 1", "Chapter 2"]
    assert [p.content for p in plans] == ["text one", "text two"]
