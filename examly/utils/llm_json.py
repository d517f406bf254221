"""Recover JSON payloads from free-form LLM responses.

Models wrap their JSON in markdown fences, prepend chatter ("Here is the
analysis:") or append notes.  Each helper tries, in order: the first
fenced ```json block, the outermost bracket pair found by a greedy match,
then the whole response.
"""

from __future__ import annotations

import json
import re
from typing import Any

_JSON_FENCE_RE = re.compile(r"```json\s*([\s\S]*?)\s*```")
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_ARRAY_RE = re.compile(r"\[[\s\S]*\]")


def _candidates(response: str, bracket_re: re.Pattern[str]) -> list[str]:
    candidates: list[str] = []
    fence = _JSON_FENCE_RE.search(response)
    if fence:
        candidates.append(fence.group(1))
    else:
        bracket = bracket_re.search(response)
        if bracket:
            candidates.append(bracket.group(0))
    candidates.append(response.strip())
    return candidates


def _parse_first(response: str, bracket_re: re.Pattern[str], expected: type) -> Any:
    last_error: ValueError | None = None
    for candidate in _candidates(response, bracket_re):
        try:
            parsed = json.loads(candidate)
        except ValueError as exc:
            last_error = exc
            continue
        if isinstance(parsed, expected):
            return parsed
        last_error = ValueError(f"Expected a JSON {expected.__name__}, got {type(parsed).__name__}")
    raise ValueError(str(last_error) if last_error else "No JSON found in response")


def parse_json_object(response: str) -> dict[str, Any]:
    """Return the first JSON object found in *response*.

    Raises
    ------
    ValueError
        If no candidate parses to a ``dict``.
    """
    return _parse_first(response, _OBJECT_RE, dict)


def parse_json_array(response: str) -> list[Any]:
    """Return the first JSON array found in *response*.

    Raises
    ------
    ValueError
        If no candidate parses to a ``list``.
    """
    return _parse_first(response, _ARRAY_RE, list)
