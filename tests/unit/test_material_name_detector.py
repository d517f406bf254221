"""Unit tests for MaterialNameDetector."""

from __future__ import annotations

from unittest.mock import AsyncMock

from examly.interfaces.llm_provider import ILLMProvider
from examly.services.material_name_detector import MaterialNameDetector
from examly.utils.errors import LLMError

LONG_PREVIEW = "Thermodynamics studies energy, heat and work. " * 5


async def test_model_title_is_used(mock_llm_provider: ILLMProvider) -> None:
    mock_llm_provider.complete = AsyncMock(return_value='"Thermodynamics Fundamentals"\n')
    title = await MaterialNameDetector(mock_llm_provider).detect(["a.pdf"], LONG_PREVIEW)
    assert title == "Thermodynamics Fundamentals"
    kwargs = mock_llm_provider.complete.call_args.kwargs
    assert kwargs["max_tokens"] == 100
    assert "File names: a.pdf" in kwargs["user_prompt"]


async def test_short_preview_skips_the_model(mock_llm_provider: ILLMProvider) -> None:
    title = await MaterialNameDetector(mock_llm_provider).detect(["lecture_notes.pdf"], "short")
    assert title == "lecture notes"
    mock_llm_provider.complete.assert_not_awaited()


async def test_model_failure_falls_back_to_file_name(mock_llm_provider: ILLMProvider) -> None:
    mock_llm_provider.complete = AsyncMock(side_effect=LLMError("down"))
    title = await MaterialNameDetector(mock_llm_provider).detect(["optics-week1.txt"], LONG_PREVIEW)
    assert title == "optics week1"


async def test_overlong_model_title_is_rejected(mock_llm_provider: ILLMProvider) -> None:
    mock_llm_provider.complete = AsyncMock(return_value="x" * 150)
    title = await MaterialNameDetector(mock_llm_provider).detect(["waves.pdf"], LONG_PREVIEW)
    assert title == "waves"


async def test_common_prefix_of_several_files() -> None:
    title = await MaterialNameDetector(None).detect(["Physics_Ch1.pdf", "Physics_Ch2.pdf"])
    assert title == "Physics Ch"


async def test_file_count_when_names_share_nothing() -> None:
    title = await MaterialNameDetector(None).detect(["alpha.pdf", "beta.pdf", "gamma.pdf"])
    assert title == "Study Material - 3 files"


async def test_unreadable_single_name() -> None:
    assert await MaterialNameDetector(None).detect([".pdf"]) == "Study Material"
