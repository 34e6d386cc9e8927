class StorageError(Exception):
    """Base exception for blob store errors."""


class BlobNotFoundError(StorageError):
    """Raised when a blob key does not exist in the store."""
