"""Unit tests for LocalBlobStore: object I/O, path safety, signed URLs."""

from __future__ import annotations

import time
from urllib.parse import parse_qs, urlparse

import pytest

from examly.providers.storage.local_blob_store import LocalBlobStore
from examly.utils.errors import InvalidInput, NotFound


async def test_upload_download_delete(blob_store: LocalBlobStore) -> None:
    await blob_store.upload("user-1/notes.txt", b"hello", "text/plain")
    assert await blob_store.download("user-1/notes.txt") == b"hello"

    await blob_store.delete("user-1/notes.txt")
    with pytest.raises(NotFound):
        await blob_store.download("user-1/notes.txt")


async def test_delete_missing_is_silent(blob_store: LocalBlobStore) -> None:
    await blob_store.delete("user-1/never-written.pdf")


@pytest.mark.parametrize("path", ["../escape.txt", "/etc/passwd", "user/../../x", ""])
async def test_unsafe_paths_rejected(blob_store: LocalBlobStore, path: str) -> None:
    with pytest.raises(InvalidInput):
        await blob_store.upload(path, b"x")


class TestSignedUrls:
    def _params(self, url: str) -> tuple[str, int, str]:
        parsed = urlparse(url)
        query = parse_qs(parsed.query)
        path = parsed.path.removeprefix("/api/v1/files/")
        return path, int(query["expires"][0]), query["signature"][0]

    def test_url_shape(self, blob_store: LocalBlobStore) -> None:
        url = blob_store.signed_url("user-1/notes.txt", ttl_seconds=60)
        assert url.startswith("http://testserver/api/v1/files/user-1/notes.txt?")

    def test_signature_verifies(self, blob_store: LocalBlobStore) -> None:
        path, expires, signature = self._params(blob_store.signed_url("u/a.pdf", 60))
        assert path == "u/a.pdf"
        assert expires >= int(time.time()) + 59
        assert blob_store.verify_signature(path, expires, signature)

    def test_tampered_path_fails(self, blob_store: LocalBlobStore) -> None:
        _, expires, signature = self._params(blob_store.signed_url("u/a.pdf", 60))
        assert not blob_store.verify_signature("u/b.pdf", expires, signature)

    def test_extended_expiry_fails(self, blob_store: LocalBlobStore) -> None:
        path, expires, signature = self._params(blob_store.signed_url("u/a.pdf", 60))
        assert not blob_store.verify_signature(path, expires + 3600, signature)

    def test_expired_url_fails(self, blob_store: LocalBlobStore) -> None:
        path, expires, signature = self._params(blob_store.signed_url("u/a.pdf", -10))
        assert not blob_store.verify_signature(path, expires, signature)

    def test_other_secret_fails(self, blob_store: LocalBlobStore, tmp_path) -> None:
        path, expires, signature = self._params(blob_store.signed_url("u/a.pdf", 60))
        other = LocalBlobStore(tmp_path / "other", "different-secret", "http://testserver")
        assert not other.verify_signature(path, expires, signature)
