"""Default titles for materials the user did not name."""

from __future__ import annotations

from examly.interfaces.llm_provider import ILLMProvider
from examly.services.chapter_sequencer import clean_title
from examly.utils.filenames import common_prefix, humanize_filename
from examly.utils.logging import get_logger

_MIN_PREVIEW_FOR_MODEL = 100
_PREVIEW_CHARS = 500
_MIN_PREFIX_LENGTH = 3
_MIN_TITLE_LENGTH = 3
_MAX_TITLE_LENGTH = 100

_SYSTEM_PROMPT = "You name study materials. Reply with the title only."

_NAME_PROMPT = """\
Analyze these file names and a preview of the content, then suggest a concise, descriptive title for this study material.

File names: {file_names}

Content preview: {preview}

Return ONLY a title (3-8 words maximum), no explanations, no quotes, just the title."""


class MaterialNameDetector:
    """Suggest a title from file names and a text preview.

    The model is consulted only when there is a meaningful preview; the
    deterministic fallbacks are the humanized single file name, the common
    prefix of several file names, and finally ``"Study Material - <n> files"``.
    """

    def __init__(self, llm_provider: ILLMProvider | None, max_tokens: int = 100) -> None:
        self._llm = llm_provider
        self._max_tokens = max_tokens
        self._logger = get_logger(__name__)

    async def detect(self, file_names: list[str], text_preview: str = "") -> str:
        if self._llm is not None and len(text_preview) > _MIN_PREVIEW_FOR_MODEL:
            title = await self._title_from_model(file_names, text_preview)
            if title:
                return title

        if len(file_names) == 1:
            return humanize_filename(file_names[0]) or "Study Material"

        prefix = common_prefix(file_names)
        if len(prefix) > _MIN_PREFIX_LENGTH:
            return prefix
        return f"Study Material - {len(file_names)} files"

    async def _title_from_model(self, file_names: list[str], text_preview: str) -> str | None:
        prompt = _NAME_PROMPT.format(
            file_names=", ".join(file_names),
            preview=text_preview[:_PREVIEW_CHARS],
        )
        try:
            response = await self._llm.complete(
                system_prompt=_SYSTEM_PROMPT,
                user_prompt=prompt,
                temperature=0.3,
                max_tokens=self._max_tokens,
            )
        except Exception as exc:  # noqa: BLE001 -- filename fallbacks take over
            self._logger.warning("material_name_model_failed", error=str(exc))
            return None

        title = clean_title(response)
        if _MIN_TITLE_LENGTH < len(title) < _MAX_TITLE_LENGTH:
            return title
        return None
