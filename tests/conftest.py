"""Shared pytest fixtures for the Examly test suite."""

from __future__ import annotations

import asyncio
import io
import json
import zipfile
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import docx
import fitz
import pytest

from examly.interfaces.llm_provider import ILLMProvider
from examly.interfaces.video_search_provider import IVideoSearchProvider
from examly.pipeline.orchestrator import TEXT_SEPARATOR, IngestionPipeline
from examly.providers.storage.local_blob_store import LocalBlobStore
from examly.providers.store.sqlite_material_store import SQLiteMaterialStore
from examly.services.chapter_sequencer import ChapterSequencer
from examly.services.material_name_detector import MaterialNameDetector
from examly.services.material_synthesizer import MaterialSynthesizer
from examly.services.text_extractor import TextExtractor
from examly.utils.errors import LLMError

# ---------------------------------------------------------------------------
# Canned AI responses
# ---------------------------------------------------------------------------


def bundle_payload(**overrides: Any) -> dict[str, Any]:
    """A complete, valid synthesis response as the model would send it."""
    payload: dict[str, Any] = {
        "summary": "Energy is conserved in closed systems.",
        "keyPoints": ["First law of thermodynamics", "Internal energy is a state function"],
        "formulas": [
            {"formula": "dU = dQ - dW", "description": "First law", "context": "Closed systems"}
        ],
        "examQuestions": [
            {"question": "State the first law.", "answer": "Energy is conserved.", "type": "short"}
        ],
        "mcqs": [
            {
                "question": "Which quantity is conserved?",
                "options": ["Energy", "Entropy", "Temperature", "Pressure"],
                "correctAnswer": 0,
                "explanation": "The first law.",
            }
        ],
        "flashcards": [{"front": "Internal energy", "back": "U", "category": "Definitions"}],
        "youtubeVideos": [
            {
                "title": "First law explained",
                "description": "A short lecture",
                "searchQuery": "first law of thermodynamics",
                "relevance": "Core concept",
            }
        ],
        "studyPlan": {
            "schedule": [{"date": "2026-01-05", "topics": ["First law"], "difficulty": "easy"}],
            "totalDays": 1,
        },
        "chapterInfo": {"order": 1, "title": "Thermodynamics", "content": "Energy"},
    }
    payload.update(overrides)
    return payload


def bundle_response(**overrides: Any) -> str:
    return "```json\n" + json.dumps(bundle_payload(**overrides)) + "\n```"


# ---------------------------------------------------------------------------
# In-memory document fixtures
# ---------------------------------------------------------------------------


def make_pdf_bytes(pages: list[str]) -> bytes:
    pdf = fitz.open()
    for text in pages:
        page = pdf.new_page()
        page.insert_text((72, 72), text)
    data = pdf.tobytes()
    pdf.close()
    return data


def make_docx_bytes(paragraphs: list[str], table: list[list[str]] | None = None) -> bytes:
    document = docx.Document()
    for paragraph in paragraphs:
        document.add_paragraph(paragraph)
    if table:
        grid = document.add_table(rows=len(table), cols=len(table[0]))
        for r, row in enumerate(table):
            for c, value in enumerate(row):
                grid.cell(r, c).text = value
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def make_pptx_bytes(slides: list[list[str]]) -> bytes:
    """A minimal zip with ``ppt/slides/slideN.xml`` entries holding ``<a:t>`` runs."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for number, runs in enumerate(slides, start=1):
            body = "".join(f"<a:r><a:t>{run}</a:t></a:r>" for run in runs)
            archive.writestr(
                f"ppt/slides/slide{number}.xml",
                f'<p:sld xmlns:a="a" xmlns:p="p"><p:txBody><a:p>{body}</a:p></p:txBody></p:sld>',
            )
        archive.writestr("ppt/presentation.xml", "<p:presentation/>")
    return buffer.getvalue()


def make_malformed_docx_bytes() -> bytes:
    """A real .docx whose ``word/document.xml`` is not well-formed XML."""
    source = zipfile.ZipFile(io.BytesIO(make_docx_bytes(["placeholder"])))
    buffer = io.BytesIO()
    with source, zipfile.ZipFile(buffer, "w") as archive:
        for item in source.infolist():
            data = source.read(item.filename)
            if item.filename == "word/document.xml":
                data = b"<w:document this is not xml"
            archive.writestr(item, data)
    return buffer.getvalue()


def make_pptx_with_bad_crc() -> bytes:
    """A .pptx whose slide entry no longer matches its stored CRC-32."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_STORED) as archive:
        archive.writestr("ppt/slides/slide1.xml", "<a:t>Entropy rules</a:t>")
    return buffer.getvalue().replace(b"Entropy rules", b"Entropy RULES")


# ---------------------------------------------------------------------------
# Scripted LLM and pipeline assembly
# ---------------------------------------------------------------------------

FAIL_MARKER = "UNLUCKY-CHAPTER"


def scripted_llm(
    order: list[dict[str, Any]] | None = None,
    *,
    order_error: Exception | None = None,
    chapter_title: str = "Thermodynamics",
    material_title: str = "Thermodynamics Course",
    synthesis_delay: float = 0.0,
) -> MagicMock:
    """An ILLMProvider mock that answers by prompt kind.

    Chapter synthesis fails for any text containing :data:`FAIL_MARKER`;
    the overall synthesis (whose text joins every document) never does.
    """
    state = {"in_flight": 0, "peak": 0}

    async def complete(
        system_prompt: str, user_prompt: str, temperature: float = 0.3, max_tokens: int = 8192
    ) -> str:
        if "determine their chapter order" in user_prompt:
            if order_error is not None:
                raise order_error
            return json.dumps(order or [])
        if user_prompt.startswith("Extract the chapter title"):
            return chapter_title
        if "File names:" in user_prompt:
            return material_title

        state["in_flight"] += 1
        state["peak"] = max(state["peak"], state["in_flight"])
        try:
            await asyncio.sleep(synthesis_delay)
            if FAIL_MARKER in user_prompt and TEXT_SEPARATOR not in user_prompt:
                raise LLMError(message="model overloaded", provider_name="scripted")
            return bundle_response()
        finally:
            state["in_flight"] -= 1

    provider = MagicMock(spec=ILLMProvider)
    provider.complete = AsyncMock(side_effect=complete)
    provider.get_provider_name.return_value = "scripted"
    provider.is_available.return_value = True
    provider.synthesis_state = state
    return provider


def build_pipeline(
    store: SQLiteMaterialStore,
    blob_store: LocalBlobStore,
    llm: ILLMProvider | None,
    *,
    max_parallel_chapters: int = 8,
    timeout_seconds: float = 30.0,
) -> IngestionPipeline:
    return IngestionPipeline(
        store=store,
        blob_store=blob_store,
        extractor=TextExtractor(),
        sequencer=ChapterSequencer(llm),
        synthesizer=MaterialSynthesizer(llm),
        name_detector=MaterialNameDetector(llm),
        max_parallel_chapters=max_parallel_chapters,
        timeout_seconds=timeout_seconds,
    )


# ---------------------------------------------------------------------------
# Mock provider fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_llm_provider() -> ILLMProvider:
    """Mock ILLMProvider that returns a full study bundle by default.

    Override with ``mock_llm_provider.complete.return_value = "..."`` or
    ``mock_llm_provider.complete.side_effect = [...]`` in specific tests.
    """
    mock = MagicMock(spec=ILLMProvider)
    mock.get_provider_name.return_value = "mock-llm"
    mock.is_available.return_value = True
    mock.validate_credentials = AsyncMock(return_value=True)
    mock.complete = AsyncMock(return_value=bundle_response())
    return mock


@pytest.fixture
def mock_video_search() -> IVideoSearchProvider:
    mock = MagicMock(spec=IVideoSearchProvider)
    mock.get_provider_name.return_value = "mock-video"
    mock.is_available.return_value = True
    mock.search = AsyncMock(return_value=[])
    return mock


# ---------------------------------------------------------------------------
# Storage fixtures (temporary files, never the real data directory)
# ---------------------------------------------------------------------------


@pytest.fixture
async def store(tmp_path: Path) -> SQLiteMaterialStore:
    provider = SQLiteMaterialStore(db_path=tmp_path / "examly-test.db")
    await provider.initialize()
    return provider


@pytest.fixture
def blob_store(tmp_path: Path) -> LocalBlobStore:
    return LocalBlobStore(
        root=tmp_path / "blobs",
        signing_secret="test-secret",
        public_base_url="http://testserver",
    )
