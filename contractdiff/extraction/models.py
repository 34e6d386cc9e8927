import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any

# Rough characters per page used to estimate page counts of paginated-less formats.
CHARS_PER_PAGE = 2500

_EXCESS_NEWLINES = re.compile(r"\n{3,}")


def normalize_text(text: str) -> str:
    """CRLF to LF, at most one blank line in a row, trimmed."""
    text = text.replace("\r\n", "\n")
    text = _EXCESS_NEWLINES.sub("\n\n", text)
    return text.strip()


def estimate_page_count(text: str) -> int:
    return max(1, math.ceil(len(text) / CHARS_PER_PAGE))


@dataclass(frozen=True)
class ParsedPdf:
    text: str
    page_count: int


@dataclass(frozen=True)
class ExtractionResult:
    """Text extracted from one document plus how it was obtained."""

    text: str
    page_count: int
    confidence: float
    method: str
    extracted_at: datetime
    content_hash: str

    def to_metadata(self) -> dict[str, Any]:
        """Shape stored under the document's metadata['extraction']."""
        return {
            "pages": self.page_count,
            "confidence": self.confidence,
            "method": self.method,
            "extracted_at": self.extracted_at.isoformat(),
        }
