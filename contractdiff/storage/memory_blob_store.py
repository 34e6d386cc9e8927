import threading

from contractdiff.storage.base import BaseBlobStore, BlobRef
from contractdiff.storage.exceptions import BlobNotFoundError


class InMemoryBlobStore(BaseBlobStore):
    """Keeps blobs in a dict. Used by tests and the memory store backend."""

    def __init__(self) -> None:
        self._blobs: dict[str, tuple[bytes, str | None]] = {}
        self._lock = threading.Lock()

    def upload(self, key: str, data: bytes, content_type: str | None = None) -> BlobRef:
        with self._lock:
            self._blobs[key] = (bytes(data), content_type)
        return BlobRef(key=key, size_bytes=len(data), content_type=content_type)

    def download(self, key: str) -> bytes:
        with self._lock:
            blob = self._blobs.get(key)
        if blob is None:
            raise BlobNotFoundError(f"Blob not found: {key}")
        return blob[0]

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._blobs

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._blobs.pop(key, None) is not None

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._blobs)
