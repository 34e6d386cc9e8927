import pymupdf

from contractdiff.extraction.exceptions import PdfExtractionError
from contractdiff.extraction.models import ParsedPdf
from contractdiff.extraction.pdf_base import BasePdfParser


class PyMuPdfAdapter(BasePdfParser):
    """Parses PDF text using PyMuPDF."""

    name = "pymupdf"

    def parse(self, pdf_bytes: bytes) -> ParsedPdf:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                pages = [page.get_text() for page in doc]
            return ParsedPdf(text="\n".join(pages).strip(), page_count=len(pages))
        except PdfExtractionError:
            raise
        except Exception as exc:
            raise PdfExtractionError(f"pymupdf extraction failed: {exc}") from exc
