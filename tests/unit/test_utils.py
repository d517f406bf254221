"""Unit tests for the small helpers in examly.utils."""

from __future__ import annotations

import asyncio

import pytest

from examly.utils.concurrency import throttled_gather
from examly.utils.errors import ExamlyError, IngestionTimeout, PipelineError
from examly.utils.filenames import common_prefix, file_extension, humanize_filename, strip_extension
from examly.utils.highlighting import HighlightCategory, HighlightSpan, find_highlights
from examly.utils.llm_json import parse_json_array, parse_json_object

# ─── filenames ────────────────────────────────────────────────────


class TestFilenames:
    def test_strip_extension(self) -> None:
        assert strip_extension("notes.final.pdf") == "notes.final"
        assert strip_extension("README") == "README"

    def test_humanize(self) -> None:
        assert humanize_filename("chapter_02-thermo  dynamics.pdf") == "chapter 02 thermo dynamics"
        assert humanize_filename(".pdf") == ""

    def test_file_extension_is_lower_cased(self) -> None:
        assert file_extension("Slides.PPTX") == ".pptx"
        assert file_extension("noext") == ""

    def test_common_prefix(self) -> None:
        assert common_prefix(["Bio_Unit1.pdf", "Bio_Unit2.docx"]) == "Bio Unit"
        assert common_prefix([]) == ""


# ─── llm_json ─────────────────────────────────────────────────────


class TestLlmJson:
    def test_fenced_block_wins(self) -> None:
        response = 'Intro {"ignored": 1}\n```json\n{"a": 1}\n```'
        assert parse_json_object(response) == {"a": 1}

    def test_greedy_brace_match(self) -> None:
        assert parse_json_object('Sure! {"a": {"b": 2}} Done.') == {"a": {"b": 2}}

    def test_array(self) -> None:
        assert parse_json_array('Result: [{"order": 1}]') == [{"order": 1}]

    def test_wrong_type_raises(self) -> None:
        with pytest.raises(ValueError):
            parse_json_object("[1, 2, 3]")

    def test_no_json_raises(self) -> None:
        with pytest.raises(ValueError):
            parse_json_array("nothing here")


# ─── highlighting ─────────────────────────────────────────────────


class TestHighlighting:
    def test_categories_and_offsets(self) -> None:
        text = (
            "Chapter 1 Thermodynamics\n"
            "the body text goes on in lower case for a while.\n"
            "  Entropy is a measure of disorder\n"
            "dS = dQ / T\n"
        )
        spans = find_highlights(text)
        by_category: dict[HighlightCategory, HighlightSpan] = {}
        for span in spans:
            by_category.setdefault(span.category, span)

        heading = by_category[HighlightCategory.HEADING]
        assert heading.text == "Chapter 1 Thermodynamics"
        assert text[heading.start:heading.end] == heading.text

        definition = by_category[HighlightCategory.DEFINITION]
        assert definition.text == "Entropy is a measure of disorder"
        assert text[definition.start:definition.end] == definition.text

        formula = by_category[HighlightCategory.FORMULA]
        assert formula.text == "dS = dQ / T"

    def test_spans_sorted_by_start(self) -> None:
        spans = find_highlights("x = y + 1\nSECTION ONE OVERVIEW\nE = mc^2\n")
        starts = [span.start for span in spans]
        assert starts == sorted(starts)

    def test_plain_prose_has_no_highlights(self) -> None:
        assert find_highlights("just some words without structure.") == []


# ─── concurrency ──────────────────────────────────────────────────


class TestThrottledGather:
    async def test_results_keep_input_order(self) -> None:
        async def _value(v: int, delay: float) -> int:
            await asyncio.sleep(delay)
            return v

        results = await throttled_gather(
            [_value(1, 0.03), _value(2, 0.0), _value(3, 0.01)],
            semaphore=asyncio.Semaphore(3),
        )
        assert results == [1, 2, 3]

    async def test_width_is_respected_and_errors_are_returned(self) -> None:
        running = 0
        peak = 0

        async def _task(i: int) -> int:
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            if i == 2:
                raise ValueError("bad")
            return i

        results = await throttled_gather([_task(i) for i in range(5)], semaphore=asyncio.Semaphore(2))
        assert peak <= 2
        assert isinstance(results[2], ValueError)
        assert [r for i, r in enumerate(results) if i != 2] == [0, 1, 3, 4]


# ─── errors ───────────────────────────────────────────────────────


def test_error_string_includes_provider() -> None:
    exc = IngestionTimeout(message="took too long", provider_name="pipeline")
    assert isinstance(exc, PipelineError)
    assert isinstance(exc, ExamlyError)
    assert str(exc) == "[pipeline] took too long"
    assert exc.message == "took too long"
