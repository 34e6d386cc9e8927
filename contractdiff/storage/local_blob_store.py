from pathlib import Path

from contractdiff.storage.base import BaseBlobStore, BlobRef
from contractdiff.storage.exceptions import BlobNotFoundError, StorageError


class LocalBlobStore(BaseBlobStore):
    """Stores blobs as files below a root directory."""

    def __init__(self, root: Path) -> None:
        self._root = root.resolve()

    def upload(self, key: str, data: bytes, content_type: str | None = None) -> BlobRef:
        path = self._resolve_path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Failed to write blob '{key}': {exc}") from exc
        return BlobRef(key=key, size_bytes=len(data), content_type=content_type)

    def download(self, key: str) -> bytes:
        path = self._resolve_path(key)
        if not path.is_file():
            raise BlobNotFoundError(f"Blob not found: {key}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise StorageError(f"Failed to read blob '{key}': {exc}") from exc

    def exists(self, key: str) -> bool:
        return self._resolve_path(key).is_file()

    def delete(self, key: str) -> bool:
        path = self._resolve_path(key)
        if not path.is_file():
            return False
        try:
            path.unlink()
        except OSError as exc:
            raise StorageError(f"Failed to delete blob '{key}': {exc}") from exc
        return True

    def _resolve_path(self, key: str) -> Path:
        """Map a key to a path, rejecting keys that escape the root."""
        if not key or key.startswith("/"):
            raise StorageError(f"Invalid blob key: '{key}'")
        path = (self._root / key).resolve()
        if not path.is_relative_to(self._root):
            raise StorageError(f"Blob key escapes storage root: '{key}'")
        return path
