class ServiceError(Exception):
    """Base exception for service-level errors."""


class ValidationError(ServiceError):
    """Raised when caller input is rejected, e.g. an unsupported upload."""


class NotFoundError(ServiceError):
    """Raised when a row does not exist or is not visible to the owner."""


class DeletionError(ServiceError):
    """Raised when a document cannot be deleted."""


class MissingExtractionError(ServiceError):
    """Raised when a comparison involves a document without extracted text."""
