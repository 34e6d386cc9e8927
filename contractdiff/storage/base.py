from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class BlobRef:
    """Location of a stored blob."""

    key: str
    size_bytes: int
    content_type: str | None = None


class BaseBlobStore(ABC):
    """Contract for binary object storage keyed by path-like strings."""

    @abstractmethod
    def upload(self, key: str, data: bytes, content_type: str | None = None) -> BlobRef:
        """Store bytes under key, replacing any existing blob.

        Raises:
            StorageError: if the blob cannot be written.
        """

    @abstractmethod
    def download(self, key: str) -> bytes:
        """Return the bytes stored under key.

        Raises:
            BlobNotFoundError: if nothing is stored under key.
        """

    @abstractmethod
    def exists(self, key: str) -> bool: ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove the blob. Returns False if it did not exist."""
