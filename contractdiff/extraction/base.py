from abc import ABC, abstractmethod

from contractdiff.extraction.models import ExtractionResult


class BaseTextExtractor(ABC):
    """Contract for per-format text extractors."""

    @abstractmethod
    def extract(self, data: bytes, content_hash: str) -> ExtractionResult:
        """Extract normalized text from raw file bytes.

        Args:
            data: Raw file content.
            content_hash: sha256 of data, carried into the result.

        Raises:
            ExtractionError: if no text can be obtained.
        """
