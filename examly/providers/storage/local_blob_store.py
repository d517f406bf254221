"""Filesystem-backed blob store with HMAC-signed download URLs.

Objects live under ``blob_root`` at their key (``<user_id>/<file_name>``).
Signed URLs point at the API's ``/api/v1/files/{path}`` route and carry an
expiry timestamp plus an HMAC-SHA256 signature over ``path`` and
``expires``; the route calls :meth:`verify_signature` before serving.

File I/O is synchronous and executed via ``asyncio.to_thread``.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import time
from pathlib import Path, PurePosixPath
from urllib.parse import quote, urlencode

import structlog

from examly.interfaces.blob_store import IBlobStore
from examly.utils.errors import BlobStoreError, InvalidInput, NotFound

logger = structlog.get_logger(logger_name=__name__)


class LocalBlobStore(IBlobStore):
    """Blob store rooted at a local directory.

    Parameters
    ----------
    root:
        Directory that holds every object.  Created on first write.
    signing_secret:
        Key for the HMAC over signed-URL parameters.
    public_base_url:
        Scheme and host the signed URLs are built against.
    """

    def __init__(self, root: str | Path, signing_secret: str, public_base_url: str) -> None:
        self._root = Path(root)
        self._secret = signing_secret.encode("utf-8")
        self._public_base_url = public_base_url.rstrip("/")

    # -- Sync helpers (executed via asyncio.to_thread) -----------------------

    def _resolve(self, path: str) -> Path:
        parts = PurePosixPath(path).parts
        if not parts or PurePosixPath(path).is_absolute() or ".." in parts:
            raise InvalidInput(message=f"Invalid blob path: {path!r}")
        return self._root.joinpath(*parts)

    def _write_sync(self, target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    # -- IBlobStore implementation -------------------------------------------

    async def upload(self, path: str, data: bytes, content_type: str | None = None) -> None:
        target = self._resolve(path)
        try:
            await asyncio.to_thread(self._write_sync, target, data)
        except OSError as exc:
            raise BlobStoreError(
                message=f"Failed to store {path}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.debug("blob_uploaded", path=path, size=len(data), content_type=content_type)

    async def download(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return await asyncio.to_thread(target.read_bytes)
        except FileNotFoundError as exc:
            raise NotFound(message=f"File not found: {path}") from exc
        except OSError as exc:
            raise BlobStoreError(
                message=f"Failed to read {path}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def delete(self, path: str) -> None:
        target = self._resolve(path)
        try:
            await asyncio.to_thread(target.unlink, True)
        except OSError as exc:
            raise BlobStoreError(
                message=f"Failed to delete {path}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def _sign(self, path: str, expires: int) -> str:
        payload = f"{path}:{expires}".encode()
        return hmac.new(self._secret, payload, hashlib.sha256).hexdigest()

    def signed_url(self, path: str, ttl_seconds: int) -> str:
        self._resolve(path)
        expires = int(time.time()) + ttl_seconds
        query = urlencode({"expires": expires, "signature": self._sign(path, expires)})
        return f"{self._public_base_url}/api/v1/files/{quote(path)}?{query}"

    def verify_signature(self, path: str, expires: int, signature: str) -> bool:
        if expires < int(time.time()):
            return False
        return hmac.compare_digest(self._sign(path, expires), signature)

    def get_provider_name(self) -> str:
        return "local_blob"
