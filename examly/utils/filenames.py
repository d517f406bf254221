"""File-name helpers shared by chapter sequencing and material naming."""

from __future__ import annotations

import re
from pathlib import PurePosixPath

_EXTENSION_RE = re.compile(r"\.[^/.]+$")
_SEPARATOR_RE = re.compile(r"[_-]")
_WHITESPACE_RE = re.compile(r"\s+")


def strip_extension(file_name: str) -> str:
    """Remove the final ``.ext`` suffix, if any."""
    return _EXTENSION_RE.sub("", file_name)


def humanize_filename(file_name: str) -> str:
    """Turn an upload name into a readable title.

    ``"chapter_02-thermo dynamics.pdf"`` -> ``"chapter 02 thermo dynamics"``.
    Returns an empty string when nothing readable is left.
    """
    cleaned = _SEPARATOR_RE.sub(" ", strip_extension(file_name))
    return _WHITESPACE_RE.sub(" ", cleaned).strip()


def file_extension(file_name: str) -> str:
    """Lower-cased extension including the dot (``".pdf"``), or ``""``."""
    return PurePosixPath(file_name).suffix.lower()


def common_prefix(file_names: list[str]) -> str:
    """Longest common prefix of the names (extensions removed), humanized."""
    if not file_names:
        return ""
    stems = [strip_extension(name) for name in file_names]
    first = stems[0]
    length = 0
    for i, char in enumerate(first):
        if all(len(stem) > i and stem[i] == char for stem in stems[1:]):
            length = i + 1
        else:
            break
    return humanize_filename(first[:length])
