"""Ingestion pipeline: documents in, one persisted Material out.

Phases (see :class:`~examly.models.pipeline.IngestionPhase`)::

    RECEIVED → TEXTS_RESOLVED → CHAPTERS_SEQUENCED → OVERALL_SYNTHESIZED →
    CHAPTERS_SYNTHESIZED → ASSEMBLED → PERSISTED

Each phase produces a new frozen :class:`IngestionState` via
``model_copy``.  A run is all-or-nothing at the top: a failed overall
synthesis or a failed write raises and nothing is persisted.  Beneath
that, work degrades locally:

    - a document whose text cannot be resolved contributes ``""``;
    - sequencing falls back to upload order;
    - a chapter whose synthesis fails keeps only order, title and
      document id.

Chapter synthesis runs concurrently through :func:`throttled_gather`;
results come back in input order and are only written after every
chapter has settled.
"""

from __future__ import annotations

import asyncio
import uuid
from contextlib import AsyncExitStack
from datetime import date, datetime, timezone

from examly.interfaces.blob_store import IBlobStore
from examly.interfaces.material_store import IMaterialStore
from examly.models.document import Document
from examly.models.material import Chapter, ChapterPlan, Material
from examly.models.pipeline import (
    IngestionPhase,
    IngestionRequest,
    IngestionState,
    PipelineErrorRecord,
)
from examly.models.study import FeatureFlags, OutputLanguage, StudyBundle
from examly.services.chapter_sequencer import ChapterSequencer
from examly.services.material_name_detector import MaterialNameDetector
from examly.services.material_synthesizer import MaterialSynthesizer
from examly.services.text_extractor import TextExtractor, materialize
from examly.utils.concurrency import throttled_gather
from examly.utils.errors import (
    ConfigurationError,
    EmptyExtraction,
    IngestionTimeout,
    NotFound,
    PipelineError,
)
from examly.utils.logging import get_logger

TEXT_SEPARATOR = "\n\n---\n\n"
_NAME_PREVIEW_CHARS = 1000


class IngestionPipeline:
    """Coordinates extraction, sequencing and synthesis for one batch.

    Parameters
    ----------
    store:
        Record store for documents and materials.
    blob_store:
        Where uploaded bytes live; read only when a document has no stored text.
    extractor, sequencer, synthesizer, name_detector:
        The leaf services.
    max_parallel_chapters:
        Upper bound on chapter-synthesis requests in flight at once.
    timeout_seconds:
        Ceiling on a whole run.
    """

    def __init__(
        self,
        store: IMaterialStore,
        blob_store: IBlobStore,
        extractor: TextExtractor,
        sequencer: ChapterSequencer,
        synthesizer: MaterialSynthesizer,
        name_detector: MaterialNameDetector,
        max_parallel_chapters: int = 8,
        timeout_seconds: float = 300.0,
    ) -> None:
        self._store = store
        self._blobs = blob_store
        self._extractor = extractor
        self._sequencer = sequencer
        self._synthesizer = synthesizer
        self._name_detector = name_detector
        self._max_parallel_chapters = max(1, max_parallel_chapters)
        self._timeout_seconds = timeout_seconds
        self._logger = get_logger(__name__)

    async def run(self, request: IngestionRequest, user_id: str) -> IngestionState:
        """Execute one ingestion run for *user_id*.

        Returns
        -------
        IngestionState
            Final state in phase ``PERSISTED`` with ``material`` set and any
            recoverable problems listed in ``errors``.

        Raises
        ------
        ConfigurationError
            No LLM provider is configured.
        NotFound
            None of the requested documents belongs to the caller.
        EmptyExtraction
            No document yielded any text.
        IngestionTimeout
            The run exceeded ``timeout_seconds``.
        PipelineError
            The Material could not be persisted.
        """
        try:
            return await asyncio.wait_for(
                self._run(request, user_id), timeout=self._timeout_seconds
            )
        except asyncio.TimeoutError as exc:
            self._logger.error(
                "ingestion_timeout",
                user_id=user_id,
                documents=len(request.document_ids),
                timeout_seconds=self._timeout_seconds,
            )
            raise IngestionTimeout(
                message=f"Processing did not finish within {self._timeout_seconds:.0f} seconds"
            ) from exc

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    async def _run(self, request: IngestionRequest, user_id: str) -> IngestionState:
        state = IngestionState(run_id=uuid.uuid4().hex, user_id=user_id)
        if not self._synthesizer.is_configured:
            raise ConfigurationError(
                message="AI service is not configured. Set an LLM provider API key."
            )

        documents = await self._load_documents(request.document_ids, user_id)
        self._logger.info(
            "ingestion_start",
            run_id=state.run_id,
            user_id=user_id,
            documents=len(documents),
            features=request.features.enabled(),
        )

        stack = AsyncExitStack()
        try:
            # -- TEXTS_RESOLVED --
            texts, state = await self._resolve_texts(documents, state, stack)
            state = state.advance(IngestionPhase.TEXTS_RESOLVED)

            # -- CHAPTERS_SEQUENCED --
            file_names = [doc.original_name for doc in documents]
            plans = await self._sequencer.sequence(texts, file_names, request.output_language)
            state = state.advance(IngestionPhase.CHAPTERS_SEQUENCED)

            # -- OVERALL_SYNTHESIZED --
            combined = TEXT_SEPARATOR.join(text for text in texts if text.strip())
            title = request.title or await self._resolve_title(file_names, combined)
            overall = await self._synthesizer.synthesize(
                combined, request.features, request.output_language
            )
            state = state.advance(IngestionPhase.OVERALL_SYNTHESIZED)
            self._logger.info("overall_synthesis_complete", run_id=state.run_id)

            # -- CHAPTERS_SYNTHESIZED --
            chapters, state = await self._synthesize_chapters(
                plans, documents, texts, request.features, request.output_language, state
            )
            state = state.advance(IngestionPhase.CHAPTERS_SYNTHESIZED)

            # -- ASSEMBLED --
            material = self._assemble(
                user_id, title, documents, overall, chapters, request.output_language
            )
            state = state.advance(IngestionPhase.ASSEMBLED, material=material)

            # -- PERSISTED --
            try:
                await self._store.create_material(material)
            except Exception as exc:
                self._logger.error(
                    "material_persist_failed", run_id=state.run_id, error=str(exc)
                )
                raise PipelineError(message=f"Failed to save study material: {exc}") from exc

            await self._mark_processed(documents)
            state = state.advance(
                IngestionPhase.PERSISTED,
                completed_at=datetime.now(tz=timezone.utc),  # noqa: UP017
            )
        finally:
            await self._release(stack)

        self._logger.info(
            "ingestion_complete",
            run_id=state.run_id,
            material_id=material.id,
            chapters=len(material.chapters),
            degraded_chapters=sum(1 for c in material.chapters if not c.is_enriched),
            recoverable_errors=len(state.errors),
        )
        return state

    async def _load_documents(self, document_ids: list[str], user_id: str) -> list[Document]:
        found = await self._store.get_documents(document_ids)
        documents = [doc for doc in found if doc.user_id == user_id]
        if not documents:
            raise NotFound(
                message="Documents not found. Make sure the files were uploaded successfully."
            )
        if len(documents) != len(document_ids):
            self._logger.warning(
                "ingestion_documents_missing",
                requested=len(document_ids),
                found=len(documents),
            )
        return documents

    async def _resolve_texts(
        self, documents: list[Document], state: IngestionState, stack: AsyncExitStack
    ) -> tuple[list[str], IngestionState]:
        """Stored text first; otherwise download and extract the original file."""
        texts: list[str] = []
        for doc in documents:
            if doc.has_text:
                texts.append(doc.extracted_text)
                continue
            try:
                path = await stack.enter_async_context(
                    materialize(self._blobs, doc.file_path, doc.file_type)
                )
                text = await self._extractor.extract_async(path, doc.file_type)
                if text.strip():
                    await self._store.update_document_text(doc.id, text)
            except Exception as exc:  # noqa: BLE001 -- one unreadable file must not sink the batch
                self._logger.warning(
                    "document_text_unavailable",
                    document_id=doc.id,
                    file_name=doc.original_name,
                    error=str(exc),
                )
                state = state.with_error(
                    PipelineErrorRecord(
                        phase=IngestionPhase.TEXTS_RESOLVED,
                        message=f"No text available for {doc.original_name}: {exc}",
                        document_id=doc.id,
                    )
                )
                text = ""
            texts.append(text)

        if not any(text.strip() for text in texts):
            raise EmptyExtraction(
                message=(
                    "No text could be extracted from the uploaded files. Please check if "
                    "the files are valid and contain readable text."
                )
            )
        return texts, state

    async def _resolve_title(self, file_names: list[str], combined: str) -> str:
        try:
            return await self._name_detector.detect(file_names, combined[:_NAME_PREVIEW_CHARS])
        except Exception as exc:  # noqa: BLE001 -- a dated default is always acceptable
            self._logger.warning("material_name_failed", error=str(exc))
            return f"Study Material - {date.today().isoformat()}"

    async def _synthesize_chapters(
        self,
        plans: list[ChapterPlan],
        documents: list[Document],
        texts: list[str],
        features: FeatureFlags,
        output_language: OutputLanguage,
        state: IngestionState,
    ) -> tuple[list[Chapter], IngestionState]:
        async def _one(plan: ChapterPlan) -> Chapter:
            doc = documents[plan.file_index]
            text = texts[plan.file_index]
            if not text.strip():
                return Chapter(order=plan.order, title=plan.title, document_id=doc.id)
            bundle = await self._synthesizer.synthesize(text, features, output_language)
            return Chapter.from_bundle(plan.order, plan.title, doc.id, bundle)

        semaphore = asyncio.Semaphore(self._max_parallel_chapters)
        results = await throttled_gather([_one(plan) for plan in plans], semaphore=semaphore)

        chapters: list[Chapter] = []
        for plan, result in zip(plans, results):
            if isinstance(result, Chapter):
                chapters.append(result)
                continue
            if not isinstance(result, Exception):
                raise result
            document_id = documents[plan.file_index].id
            self._logger.warning(
                "chapter_synthesis_failed",
                order=plan.order,
                title=plan.title,
                document_id=document_id,
                error=str(result),
                error_type=type(result).__name__,
            )
            state = state.with_error(
                PipelineErrorRecord(
                    phase=IngestionPhase.CHAPTERS_SYNTHESIZED,
                    message=f"Chapter {plan.order} ({plan.title}): {result}",
                    document_id=document_id,
                )
            )
            chapters.append(Chapter(order=plan.order, title=plan.title, document_id=document_id))

        chapters.sort(key=lambda chapter: chapter.order)
        return chapters, state

    @staticmethod
    def _assemble(
        user_id: str,
        title: str,
        documents: list[Document],
        overall: StudyBundle,
        chapters: list[Chapter],
        output_language: OutputLanguage,
    ) -> Material:
        return Material(
            id=uuid.uuid4().hex,
            user_id=user_id,
            title=title,
            document_ids=[doc.id for doc in documents],
            summary=overall.summary,
            key_points=overall.key_points,
            formulas=overall.formulas,
            exam_questions=overall.exam_questions,
            mcqs=overall.mcqs,
            flashcards=overall.flashcards,
            study_plan=overall.study_plan,
            output_language=output_language,
            chapters=chapters,
        )

    # ------------------------------------------------------------------
    # Bookkeeping (never fails the run)
    # ------------------------------------------------------------------

    async def _mark_processed(self, documents: list[Document]) -> None:
        try:
            await self._store.mark_documents_processed([doc.id for doc in documents])
        except Exception as exc:  # noqa: BLE001
            self._logger.error("mark_processed_failed", error=str(exc))

    async def _release(self, stack: AsyncExitStack) -> None:
        try:
            await stack.aclose()
        except Exception as exc:  # noqa: BLE001
            self._logger.error("temp_files_release_failed", error=str(exc))
