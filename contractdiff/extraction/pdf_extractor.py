from datetime import datetime, timezone

from contractdiff.extraction.base import BaseTextExtractor
from contractdiff.extraction.exceptions import ExtractionError, PdfExtractionError
from contractdiff.extraction.models import ExtractionResult, ParsedPdf, normalize_text
from contractdiff.extraction.pdf_base import BasePdfParser
from contractdiff.extraction.pdf_fallback import RawPdfStreamScanner
from contractdiff.logging.logger import Log

PARSER_CONFIDENCE = 0.95
FALLBACK_CONFIDENCE = 0.7
FALLBACK_METHOD = "pdf-stream-fallback"


class PdfTextExtractor(BaseTextExtractor):
    """PDF text through the configured parser, raw stream scan when it fails."""

    def __init__(
        self,
        parser: BasePdfParser,
        fallback: RawPdfStreamScanner | None = None,
    ) -> None:
        self._parser = parser
        self._fallback = fallback or RawPdfStreamScanner()

    def extract(self, data: bytes, content_hash: str) -> ExtractionResult:
        try:
            parsed = self._parser.parse(data)
            if not parsed.text.strip():
                raise PdfExtractionError(f"{self._parser.name} found no text")
            return self._result(
                parsed, PARSER_CONFIDENCE, f"pdf-parser:{self._parser.name}", content_hash
            )
        except PdfExtractionError as exc:
            Log.warning(
                "PDF parser failed, scanning raw content streams",
                parser=self._parser.name,
                content_hash=content_hash,
                error=str(exc),
            )

        try:
            parsed = self._fallback.scan(data)
        except PdfExtractionError as exc:
            raise ExtractionError(f"Failed to extract text from PDF: {exc}") from exc
        return self._result(parsed, FALLBACK_CONFIDENCE, FALLBACK_METHOD, content_hash)

    @staticmethod
    def _result(
        parsed: ParsedPdf, confidence: float, method: str, content_hash: str
    ) -> ExtractionResult:
        return ExtractionResult(
            text=normalize_text(parsed.text),
            page_count=parsed.page_count,
            confidence=confidence,
            method=method,
            extracted_at=datetime.now(timezone.utc),
            content_hash=content_hash,
        )
