"""Plain-text extraction from uploaded study documents.

Dispatches strictly on the lower-cased file extension:

    .pdf          PyMuPDF (fitz), span by span, percent-decoded
    .doc/.docx    python-docx, paragraphs and table cells
    .ppt/.pptx    the file read as a zip archive, ``<a:t>`` runs per slide
    .txt          bytes decoded as UTF-8, returned verbatim

Extraction itself is synchronous and CPU-bound; :meth:`extract_async`
runs it via ``asyncio.to_thread``.  When a document only exists in the
blob store, :func:`materialize` writes it to a temporary file that is
removed on every exit path.
"""

from __future__ import annotations

import asyncio
import html
import io
import os
import re
import tempfile
import zipfile
import zlib
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from urllib.parse import unquote

import docx
import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog
from docx.opc.exceptions import PackageNotFoundError
from lxml import etree

from examly.interfaces.blob_store import IBlobStore
from examly.utils.errors import EmptyExtraction, ExtractionError, UnsupportedFileType

logger = structlog.get_logger(logger_name=__name__)

SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(
    {".pdf", ".doc", ".docx", ".ppt", ".pptx", ".txt"}
)

_SLIDE_ENTRY_RE = re.compile(r"^ppt/slides/slide(\d+)\.xml$")
_TEXT_RUN_RE = re.compile(r"<a:t[^>]*>([^<]*)</a:t>")

Source = bytes | str | Path


def _read_bytes(source: Source) -> bytes:
    if isinstance(source, bytes):
        return source
    return Path(source).read_bytes()


def _decode_run(run: str) -> str:
    # A lone "%" that is not an escape is passed through rather than
    # treated as a decoding failure for the whole run.
    try:
        return unquote(run, errors="strict")
    except UnicodeDecodeError:
        return run


class TextExtractor:
    """Convert a document into plain text.

    Stateless; one instance is shared by the upload path and the
    ingestion pipeline.
    """

    def extract(self, source: Source, extension: str) -> str:
        """Extract the text of *source*.

        Parameters
        ----------
        source:
            Raw file bytes, or a path to the file on local disk.
        extension:
            The file's extension, with or without the leading dot.

        Returns
        -------
        str
            The complete extracted text.

        Raises
        ------
        UnsupportedFileType
            If *extension* is not one of :data:`SUPPORTED_EXTENSIONS`.
        EmptyExtraction
            If a PDF or PowerPoint file yields no text.
        ExtractionError
            If the file cannot be parsed.
        """
        ext = extension.lower()
        if ext and not ext.startswith("."):
            ext = f".{ext}"
        if ext not in SUPPORTED_EXTENSIONS:
            raise UnsupportedFileType(message=f"Unsupported file type: {extension or '(none)'}")

        if ext == ".pdf":
            text = self._extract_pdf(source)
        elif ext in (".doc", ".docx"):
            text = self._extract_word(source)
        elif ext in (".ppt", ".pptx"):
            text = self._extract_powerpoint(source)
        else:
            text = _read_bytes(source).decode("utf-8", errors="replace")

        logger.debug("text_extracted", extension=ext, chars=len(text))
        return text

    async def extract_async(self, source: Source, extension: str) -> str:
        return await asyncio.to_thread(self.extract, source, extension)

    # ------------------------------------------------------------------
    # Format handlers
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_pdf(source: Source) -> str:
        try:
            if isinstance(source, bytes):
                pdf = fitz.open(stream=source, filetype="pdf")
            else:
                pdf = fitz.open(str(source))
        except (RuntimeError, ValueError) as exc:
            raise ExtractionError(message=f"Could not open PDF: {exc}") from exc

        pages: list[str] = []
        with pdf:
            for page in pdf:
                runs = [
                    _decode_run(span["text"])
                    for block in page.get_text("dict")["blocks"]
                    for line in block.get("lines", [])
                    for span in line.get("spans", [])
                ]
                pages.append(" ".join(runs))

        text = "\n\n".join(pages).strip()
        if not text:
            raise EmptyExtraction(message="No text content found in PDF")
        return text

    @staticmethod
    def _extract_word(source: Source) -> str:
        try:
            document = docx.Document(io.BytesIO(_read_bytes(source)))
        except (
            zipfile.BadZipFile,
            PackageNotFoundError,
            etree.XMLSyntaxError,
            KeyError,
            ValueError,
        ) as exc:
            raise ExtractionError(message=f"Could not read Word document: {exc}") from exc

        parts = [paragraph.text for paragraph in document.paragraphs]
        for table in document.tables:
            for row in table.rows:
                parts.extend(cell.text for cell in row.cells)
        return "\n\n".join(parts)

    @staticmethod
    def _extract_powerpoint(source: Source) -> str:
        texts: list[str] = []
        try:
            with zipfile.ZipFile(io.BytesIO(_read_bytes(source))) as archive:
                slides: list[tuple[int, str]] = []
                for name in archive.namelist():
                    match = _SLIDE_ENTRY_RE.match(name)
                    if match:
                        slides.append((int(match.group(1)), name))

                for _, name in sorted(slides):
                    markup = archive.read(name).decode("utf-8", errors="replace")
                    runs = [html.unescape(run) for run in _TEXT_RUN_RE.findall(markup)]
                    slide_text = " ".join(run for run in runs if run.strip())
                    if slide_text:
                        texts.append(slide_text)
        except (zipfile.BadZipFile, zlib.error, EOFError) as exc:
            raise ExtractionError(message=f"Could not read PowerPoint file: {exc}") from exc

        text = "\n".join(texts)
        if not text.strip():
            raise EmptyExtraction(message="No text content found in PowerPoint file")
        return text


@asynccontextmanager
async def materialize(blob_store: IBlobStore, path: str, suffix: str = "") -> AsyncIterator[Path]:
    """Download *path* from *blob_store* into a temporary local file.

    The file is deleted when the context exits, whether or not the body
    raised.  A failed delete is logged, never raised.
    """
    data = await blob_store.download(path)
    fd, name = tempfile.mkstemp(prefix="examly-", suffix=suffix)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        yield Path(name)
    finally:
        try:
            os.unlink(name)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("temp_file_cleanup_failed", path=name, error=str(exc))
