"""Blob storage adapters."""

from examly.providers.storage.local_blob_store import LocalBlobStore

__all__ = ["LocalBlobStore"]
