import io

import pdfplumber

from contractdiff.extraction.exceptions import PdfExtractionError
from contractdiff.extraction.models import ParsedPdf
from contractdiff.extraction.pdf_base import BasePdfParser


class PdfPlumberAdapter(BasePdfParser):
    """Parses PDF text using pdfplumber."""

    name = "pdfplumber"

    def parse(self, pdf_bytes: bytes) -> ParsedPdf:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                pages = [page.extract_text() or "" for page in pdf.pages]
            return ParsedPdf(text="\n".join(pages).strip(), page_count=len(pages))
        except PdfExtractionError:
            raise
        except Exception as exc:
            raise PdfExtractionError(f"pdfplumber extraction failed: {exc}") from exc
