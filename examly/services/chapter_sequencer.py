"""Chapter sequencing: reading order and titles for a batch of documents.

Every uploaded file becomes one chapter.  With several files, one LLM call
sees the name and the first 2,000 characters of each and returns a JSON
array ordering them.  With one file, the LLM is asked for a short title
only.

Whatever the model returns is normalised so that ``order`` is always a
permutation of 1..N and ``file_index`` a permutation of 0..N-1.  Any
failure (no provider, provider error, unparsable response) falls back to
upload order with filename-derived titles; :meth:`ChapterSequencer.fallback`
never raises.
"""

from __future__ import annotations

import math
import re
from collections.abc import Awaitable, Callable
from typing import Any

from examly.interfaces.llm_provider import ILLMProvider
from examly.models.material import ChapterPlan
from examly.models.study import OutputLanguage
from examly.utils.errors import ConfigurationError
from examly.utils.filenames import humanize_filename
from examly.utils.llm_json import parse_json_array
from examly.utils.logging import get_logger

_ORDER_PREVIEW_CHARS = 2000
_TITLE_PREVIEW_CHARS = 3000
_CONTENT_PREVIEW_CHARS = 200
_MIN_TITLE_LENGTH = 3
_MAX_TITLE_LENGTH = 150
_UNTITLED = "Untitled Chapter"

_SYSTEM_PROMPT = (
    "You organise study materials into chapters. Follow the requested "
    "output format exactly."
)

_ORDER_PROMPT = """\
Analyze these study materials and determine their chapter order, titles, and organization. Each file represents a chapter.

FILES:
{files}

IMPORTANT:
- Extract the chapter title from each file's content (look for titles, headings, chapter numbers)
- Determine the correct order (first, second, third, last, etc.) based on content analysis
- If the file name contains chapter information, use it
- If order cannot be determined from content, use file order

Return a JSON array of chapters in order:
[
  {{
    "order": 1,
    "title": "Extracted chapter title from content or filename",
    "content": "Brief description of chapter content",
    "fileIndex": 0
  }}
]

Return ONLY valid JSON array."""

_TITLE_PROMPT = """\
Extract the chapter title from this study material. Look for:
- Chapter headings (Chapter 1, Chapter 2, etc.)
- Title pages
- Main headings at the beginning
- File name hints: {file_name}

CONTENT PREVIEW:
{preview}

Return ONLY the chapter title (3-10 words maximum) in {language}, no explanations, no quotes, just the title. If no clear title is found, suggest a descriptive title based on the content."""

# Heading lines that can stand in for a title when the model gives none.
_NUMBERED_HEADING_RE = re.compile(
    r"^(?:chapter|chapitre|unit|unité|lesson|leçon|part|partie|section)\s*[\dIVXLC]+\b.*$",
    re.IGNORECASE,
)
_CAPS_HEADING_RE = re.compile(r"^[A-Z][A-Z0-9\s:,'&-]{5,}$")
_QUOTES_RE = re.compile(r"^[\"']|[\"']$")
_WHITESPACE_RE = re.compile(r"\s+")


def clean_title(raw: str) -> str:
    """Strip wrapping quotes and fold newlines/whitespace runs into spaces."""
    title = _QUOTES_RE.sub("", raw.strip())
    return _WHITESPACE_RE.sub(" ", title).strip()


def _fallback_title(file_name: str, position: int) -> str:
    return humanize_filename(file_name) or f"Chapter {position + 1}"


def _as_order(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)) and math.isfinite(value):
        return float(value)
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def _as_file_index(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


class ChapterSequencer:
    """Decide reading order and chapter titles for uploaded documents.

    Parameters
    ----------
    llm_provider:
        The LLM backend, or ``None`` when no provider is configured (every
        call then takes the deterministic path).
    temperature:
        Sampling temperature for sequencing calls.
    max_tokens:
        Response budget for sequencing calls.
    """

    def __init__(
        self,
        llm_provider: ILLMProvider | None,
        temperature: float = 0.3,
        max_tokens: int = 4000,
    ) -> None:
        self._llm = llm_provider
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._logger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def sequence(
        self,
        texts: list[str],
        file_names: list[str],
        output_language: OutputLanguage = OutputLanguage.ENGLISH,
    ) -> list[ChapterPlan]:
        """Return one :class:`ChapterPlan` per input text, sorted by order.

        Never raises; failures degrade to :meth:`fallback`.
        """
        if not texts:
            return []
        if len(texts) == 1:
            title = await self.extract_title(texts[0], file_names[0], output_language)
            return [
                ChapterPlan(
                    order=1,
                    title=title,
                    content=texts[0][:_CONTENT_PREVIEW_CHARS],
                    file_index=0,
                )
            ]
        return await self.detect_order(texts, file_names)

    async def detect_order(self, texts: list[str], file_names: list[str]) -> list[ChapterPlan]:
        """Ask the model to order several documents; fall back on any failure."""
        files = "\n\n".join(
            f"---FILE {i + 1}: {file_names[i]}---\n{text[:_ORDER_PREVIEW_CHARS]}"
            for i, text in enumerate(texts)
        )
        try:
            response = await self._complete(_ORDER_PROMPT.format(files=files))
            parsed = parse_json_array(response)
        except Exception as exc:  # noqa: BLE001 -- the fallback is the terminal safety net
            self._logger.warning(
                "chapter_order_fallback",
                files=len(texts),
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return self.fallback(texts, file_names)

        plans = self._normalise(parsed, texts, file_names)
        self._logger.info(
            "chapter_order_detected",
            files=len(texts),
            order=[plan.file_index for plan in plans],
        )
        return plans

    async def extract_title(
        self,
        text: str,
        file_name: str,
        output_language: OutputLanguage = OutputLanguage.ENGLISH,
    ) -> str:
        """Best title for a single document.

        Strategies are tried in order until one yields a title: the model,
        the humanized file name, a heading line in the text.  The terminal
        value is ``"Untitled Chapter"``.
        """
        strategies: list[Callable[[], Awaitable[str | None]]] = [
            lambda: self._title_from_model(text, file_name, output_language),
            lambda: self._title_from_file_name(file_name),
            lambda: self._title_from_heading(text),
        ]
        for strategy in strategies:
            title = await strategy()
            if title:
                return title
        return _UNTITLED

    @staticmethod
    def fallback(texts: list[str], file_names: list[str]) -> list[ChapterPlan]:
        """Upload order, filename titles, first 200 characters as content."""
        return [
            ChapterPlan(
                order=i + 1,
                title=_fallback_title(file_names[i] if i < len(file_names) else "", i),
                content=text[:_CONTENT_PREVIEW_CHARS],
                file_index=i,
            )
            for i, text in enumerate(texts)
        ]

    # ------------------------------------------------------------------
    # Title strategies
    # ------------------------------------------------------------------

    async def _title_from_model(
        self, text: str, file_name: str, output_language: OutputLanguage
    ) -> str | None:
        prompt = _TITLE_PROMPT.format(
            file_name=file_name,
            preview=text[:_TITLE_PREVIEW_CHARS],
            language=output_language.display_name,
        )
        try:
            title = clean_title(await self._complete(prompt))
        except Exception as exc:  # noqa: BLE001 -- later strategies take over
            self._logger.warning("chapter_title_model_failed", file_name=file_name, error=str(exc))
            return None
        if _MIN_TITLE_LENGTH < len(title) < _MAX_TITLE_LENGTH:
            return title
        return None

    @staticmethod
    async def _title_from_file_name(file_name: str) -> str | None:
        return humanize_filename(file_name) or None

    @staticmethod
    async def _title_from_heading(text: str) -> str | None:
        for line in text[:_TITLE_PREVIEW_CHARS].splitlines():
            stripped = line.strip()
            if not stripped or len(stripped) >= _MAX_TITLE_LENGTH:
                continue
            if _NUMBERED_HEADING_RE.match(stripped) or _CAPS_HEADING_RE.match(stripped):
                return stripped
        return None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _complete(self, prompt: str) -> str:
        if self._llm is None:
            raise ConfigurationError(message="No LLM provider is configured")
        return await self._llm.complete(
            system_prompt=_SYSTEM_PROMPT,
            user_prompt=prompt,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )

    def _normalise(
        self, raw: list[Any], texts: list[str], file_names: list[str]
    ) -> list[ChapterPlan]:
        """Turn the model's array into a dense, complete ordering.

        Entries with an out-of-range or repeated ``fileIndex`` are dropped;
        documents the model left out are appended after the rest in upload
        order.  The model's ``order`` only ranks; final orders are 1..N.
        """
        count = len(texts)
        seen: set[int] = set()
        ranked: list[tuple[float, int, int, str, str]] = []

        for position, item in enumerate(raw):
            if not isinstance(item, dict):
                continue
            index = _as_file_index(item.get("fileIndex", position))
            if index is None or not 0 <= index < count or index in seen:
                self._logger.debug("chapter_entry_dropped", position=position, entry=str(item)[:200])
                continue
            seen.add(index)
            rank = _as_order(item.get("order"))
            title = clean_title(str(item.get("title") or "")) or _fallback_title(
                file_names[index], index
            )
            content = str(item.get("content") or "").strip() or texts[index][:_CONTENT_PREVIEW_CHARS]
            ranked.append((position + 1 if rank is None else rank, position, index, title, content))

        for index in range(count):
            if index not in seen:
                ranked.append((
                    math.inf,
                    len(raw) + index,
                    index,
                    _fallback_title(file_names[index], index),
                    texts[index][:_CONTENT_PREVIEW_CHARS],
                ))

        ranked.sort(key=lambda entry: (entry[0], entry[1]))
        return [
            ChapterPlan(order=i + 1, title=title, content=content, file_index=index)
            for i, (_, _, index, title, content) in enumerate(ranked)
        ]
