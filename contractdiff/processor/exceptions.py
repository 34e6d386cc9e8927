class ProcessorError(Exception):
    """Base exception for all processor-related errors."""


class TaskTimeoutError(ProcessorError, TimeoutError):
    """Raised when a task handler does not finish within its deadline."""


class DocumentNotFoundError(ProcessorError):
    """Raised when a task references a document that no longer exists."""


class MissingHandlerError(ProcessorError):
    """Raised when a task type has no registered handler."""
