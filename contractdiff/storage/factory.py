from pathlib import Path

from contractdiff.config.settings import Settings
from contractdiff.storage.base import BaseBlobStore
from contractdiff.storage.local_blob_store import LocalBlobStore
from contractdiff.storage.memory_blob_store import InMemoryBlobStore


class BlobStoreFactory:
    """Creates the blob store selected by settings."""

    BACKENDS = ("local", "memory")

    @classmethod
    def create(cls, settings: Settings) -> BaseBlobStore:
        backend = settings.storage_backend.lower()
        if backend == "local":
            return LocalBlobStore(Path(settings.storage_root))
        if backend == "memory":
            return InMemoryBlobStore()
        raise ValueError(
            f"Unknown storage backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
        )
