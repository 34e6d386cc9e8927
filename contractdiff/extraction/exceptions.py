class ExtractionError(Exception):
    """Raised when text cannot be extracted from a document."""


class UnsupportedFileTypeError(ExtractionError):
    """Raised when no extractor handles the file extension."""


class PdfExtractionError(ExtractionError):
    """Raised when a PDF parser fails to read a document."""
