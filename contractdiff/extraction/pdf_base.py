from abc import ABC, abstractmethod

from contractdiff.extraction.models import ParsedPdf


class BasePdfParser(ABC):
    """Contract for all PDF parsing adapters."""

    name: str = ""

    @abstractmethod
    def parse(self, pdf_bytes: bytes) -> ParsedPdf:
        """Extract plain text and the page count from PDF bytes.

        Args:
            pdf_bytes: Raw PDF file content.

        Returns:
            Text of all pages joined by newlines, and the number of pages.

        Raises:
            PdfExtractionError: if parsing fails for any reason.
        """
