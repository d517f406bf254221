"""Abstract base class for binary object storage.

Uploaded files are stored under a key of the form ``<user_id>/<file_name>``.
The store can hand out time-limited signed URLs so the browser can
download a file without going through the authenticated API.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: LocalBlobStore (examly/providers/storage/)
class IBlobStore(ABC):
    """Contract for storing and retrieving uploaded document bytes."""

    @abstractmethod
    async def upload(self, path: str, data: bytes, content_type: str | None = None) -> None:
        """Store *data* under *path*, overwriting anything already there.

        Raises
        ------
        examly.utils.errors.BlobStoreError
            If the write fails.
        """

    @abstractmethod
    async def download(self, path: str) -> bytes:
        """Return the bytes stored under *path*.

        Raises
        ------
        examly.utils.errors.NotFound
            If nothing is stored under *path*.
        examly.utils.errors.BlobStoreError
            If the read fails.
        """

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Remove *path*.  Deleting a missing object is not an error."""

    @abstractmethod
    def signed_url(self, path: str, ttl_seconds: int) -> str:
        """Return a URL granting read access to *path* for *ttl_seconds*."""

    @abstractmethod
    def verify_signature(self, path: str, expires: int, signature: str) -> bool:
        """Return ``True`` if *signature* is valid for *path* and not expired."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier for this store."""
