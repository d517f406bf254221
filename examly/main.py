"""Examly FastAPI application entry point.

Wires providers, services and routes together.  Configuration comes from
``.env`` / environment variables (:class:`Settings`) layered over
``config/config.yaml``; structured logging is configured once at import.
Every component is built in :func:`_build_all` and stored on
``app.state`` during startup, which is where the route dependencies look
for them.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from examly import __version__
from examly.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from examly.api.routes import router as api_router
from examly.config.loader import load_config
from examly.config.settings import Settings
from examly.interfaces.llm_provider import ILLMProvider
from examly.pipeline.orchestrator import IngestionPipeline
from examly.providers.llm.anthropic_provider import AnthropicLLMProvider
from examly.providers.llm.ollama_provider import OllamaLLMProvider
from examly.providers.llm.openai_provider import OpenAILLMProvider
from examly.providers.storage.local_blob_store import LocalBlobStore
from examly.providers.store.sqlite_material_store import SQLiteMaterialStore
from examly.providers.video.youtube_provider import YouTubeVideoProvider
from examly.services.chapter_sequencer import ChapterSequencer
from examly.services.document_service import DocumentService
from examly.services.material_name_detector import MaterialNameDetector
from examly.services.material_service import MaterialService
from examly.services.material_synthesizer import MaterialSynthesizer
from examly.services.notification_service import NotificationService
from examly.services.text_extractor import TextExtractor
from examly.services.user_service import UserService
from examly.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# LLM provider selection
# ---------------------------------------------------------------------------


def _build_llm_provider(app_settings: Settings) -> ILLMProvider | None:
    """Select the first configured LLM provider.

    Priority order: Anthropic -> Gemini -> OpenAI -> Ollama.  Returns
    ``None`` when nothing is configured; AI-dependent operations then
    fail with ``ConfigurationError`` instead of the app refusing to start.
    """
    if app_settings.anthropic_api_key:
        return AnthropicLLMProvider(settings=app_settings)
    if app_settings.gemini_api_key:
        return OpenAILLMProvider.for_gemini(app_settings)
    if app_settings.openai_api_key:
        return OpenAILLMProvider(settings=app_settings)
    if app_settings.ollama_base_url:
        return OllamaLLMProvider(settings=app_settings)
    return None


# ---------------------------------------------------------------------------
# Full DI assembly for the FastAPI application
# ---------------------------------------------------------------------------


def _build_all(app_settings: Settings) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    config = load_config(settings=app_settings)
    llm_config = config.get("llm", {})
    temperature = float(llm_config.get("temperature", 0.3))

    # -- Shared resources --
    http_client = httpx.AsyncClient(timeout=30.0)

    # -- Providers --
    llm = _build_llm_provider(app_settings)
    store = SQLiteMaterialStore(db_path=app_settings.database_path)
    blob_store = LocalBlobStore(
        root=app_settings.blob_root,
        signing_secret=app_settings.blob_signing_secret,
        public_base_url=app_settings.public_base_url,
    )
    video_search = YouTubeVideoProvider(http_client=http_client, api_key=app_settings.youtube_api_key)

    # -- Services --
    extractor = TextExtractor()
    sequencer = ChapterSequencer(
        llm,
        temperature=temperature,
        max_tokens=int(llm_config.get("sequencing_max_tokens", 4000)),
    )
    synthesizer = MaterialSynthesizer(
        llm, temperature=temperature, max_tokens=app_settings.llm_max_tokens
    )
    name_detector = MaterialNameDetector(
        llm, max_tokens=int(llm_config.get("naming_max_tokens", 100))
    )

    pipeline = IngestionPipeline(
        store=store,
        blob_store=blob_store,
        extractor=extractor,
        sequencer=sequencer,
        synthesizer=synthesizer,
        name_detector=name_detector,
        max_parallel_chapters=app_settings.max_parallel_chapters,
        timeout_seconds=app_settings.ingestion_timeout_seconds,
    )

    provider_registry: dict[str, Any] = {
        "llm": llm.get_provider_name() if llm else None,
        "video_search": video_search.get_provider_name() if video_search.is_available() else None,
        "blob_store": blob_store.get_provider_name(),
        "store": store.get_provider_name(),
    }

    return {
        "settings": app_settings,
        "http_client": http_client,
        "llm_provider": llm,
        "store": store,
        "blob_store": blob_store,
        "video_search": video_search,
        "pipeline": pipeline,
        "document_service": DocumentService(
            store=store,
            blob_store=blob_store,
            extractor=extractor,
            max_files=app_settings.max_upload_files,
            max_bytes=app_settings.max_upload_bytes,
            signed_url_ttl=app_settings.signed_url_ttl_seconds,
        ),
        "material_service": MaterialService(store=store, blob_store=blob_store),
        "notification_service": NotificationService(store=store),
        "user_service": UserService(store=store),
        "provider_registry": provider_registry,
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown."""
    app_settings: Settings = getattr(application.state, "settings", None) or settings
    components = _build_all(app_settings)

    for key, value in components.items():
        setattr(application.state, key, value)

    await components["store"].initialize()

    _logger.info(
        "app_startup",
        version=__version__,
        environment=app_settings.app_env,
        llm=components["provider_registry"]["llm"],
        video_search=components["provider_registry"]["video_search"],
    )
    if components["provider_registry"]["llm"] is None:
        _logger.warning("llm_not_configured", hint="set ANTHROPIC_API_KEY, GEMINI_API_KEY or OPENAI_API_KEY")

    yield

    # -- Shutdown: close shared httpx client --
    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()
    _logger.info("app_shutdown", message="HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Build and configure the FastAPI application.

    *app_settings* overrides the module-level settings read from the
    environment; the lifespan builds every component from it.
    """
    application = FastAPI(
        title="Examly API",
        version=__version__,
        description=(
            "Upload course documents, extract their text, and generate "
            "chapter-by-chapter study materials (summaries, key points, "
            "formulas, exam questions, MCQs, flashcards and a study plan) "
            "that can be shared and voted on."
        ),
        lifespan=_lifespan,
    )
    if app_settings is not None:
        application.state.settings = app_settings

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    # -- API routes --
    application.include_router(api_router)

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "examly.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
