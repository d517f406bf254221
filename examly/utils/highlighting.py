"""Pattern-based highlighting of headings, definitions and formulas.

A pure function over raw document text: it returns character spans and
knows nothing about how a client renders them.  A line can produce more
than one span when it matches several categories (a numbered heading that
also contains ``=`` is both a heading and a formula).
"""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict


class HighlightCategory(str, Enum):  # noqa: UP042
    HEADING = "heading"
    DEFINITION = "definition"
    FORMULA = "formula"


class HighlightSpan(BaseModel):
    """One highlighted stretch of text, ``text[start:end]``."""

    model_config = ConfigDict(frozen=True)

    start: int
    end: int
    category: HighlightCategory
    text: str


_MAX_HEADING_LENGTH = 100
_MAX_FORMULA_LENGTH = 200

_HEADING_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"^[A-Z][A-Z\s]{5,}"),  # ALL CAPS lines (further capped at 80 chars)
    re.compile(r"^(Chapter|Section|Part|Unit|Chapitre)\s*\d+", re.IGNORECASE),
    re.compile(r"^\d+\.\s+[A-Z]"),
    re.compile(r"^[A-Z][^.!?]{0,80}$"),  # short capitalised line without sentence punctuation
]

_DEFINITION_RE = re.compile(
    r"^([A-Z][A-Za-z\s]{2,40}):?\s+(is|are|refers to|means|denotes|defines?|est|sont|signifie)\b",
    re.IGNORECASE,
)

_FORMULA_OPERATOR_RE = re.compile(r"[=+\-*/^()\[\]{}]")
_ALNUM_RE = re.compile(r"[0-9a-zA-Z]")


def _is_heading(line: str) -> bool:
    if len(line) >= _MAX_HEADING_LENGTH:
        return False
    if _HEADING_PATTERNS[0].match(line) and len(line) < 80:
        return True
    if _HEADING_PATTERNS[1].match(line) or _HEADING_PATTERNS[2].match(line):
        return True
    # Single capitalised words are too noisy to count as headings.
    return bool(_HEADING_PATTERNS[3].match(line)) and " " in line


def _is_formula(line: str) -> bool:
    return (
        len(line) < _MAX_FORMULA_LENGTH
        and bool(_FORMULA_OPERATOR_RE.search(line))
        and bool(_ALNUM_RE.search(line))
    )


def find_highlights(text: str) -> list[HighlightSpan]:
    """Scan *text* line by line and return highlight spans sorted by start.

    Offsets are positions in the original *text* (leading indentation is
    excluded from a span).
    """
    spans: list[HighlightSpan] = []
    position = 0
    for line in text.splitlines(keepends=True):
        stripped = line.strip()
        if stripped:
            start = position + (len(line) - len(line.lstrip()))
            end = start + len(stripped)
            if _is_heading(stripped):
                spans.append(HighlightSpan(
                    start=start, end=end, category=HighlightCategory.HEADING, text=stripped,
                ))
            if _DEFINITION_RE.match(stripped):
                spans.append(HighlightSpan(
                    start=start, end=end, category=HighlightCategory.DEFINITION, text=stripped,
                ))
            if _is_formula(stripped):
                spans.append(HighlightSpan(
                    start=start, end=end, category=HighlightCategory.FORMULA, text=stripped,
                ))
        position += len(line)
    spans.sort(key=lambda s: s.start)
    return spans
