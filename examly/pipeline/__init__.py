"""Ingestion pipeline orchestration."""

from examly.pipeline.orchestrator import TEXT_SEPARATOR, IngestionPipeline

__all__ = ["TEXT_SEPARATOR", "IngestionPipeline"]
