from datetime import datetime, timezone

from contractdiff.extraction.base import BaseTextExtractor
from contractdiff.extraction.models import (
    ExtractionResult,
    estimate_page_count,
    normalize_text,
)


class PlainTextExtractor(BaseTextExtractor):
    """UTF-8 passthrough for .txt files."""

    method = "text"

    def extract(self, data: bytes, content_hash: str) -> ExtractionResult:
        text = normalize_text(data.decode("utf-8-sig", errors="replace"))
        return ExtractionResult(
            text=text,
            page_count=estimate_page_count(text),
            confidence=1.0,
            method=self.method,
            extracted_at=datetime.now(timezone.utc),
            content_hash=content_hash,
        )
