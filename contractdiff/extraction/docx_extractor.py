import io
from datetime import datetime, timezone

import docx
from docx.document import Document as DocxDocument
from docx.table import Table
from docx.text.paragraph import Paragraph

from contractdiff.extraction.base import BaseTextExtractor
from contractdiff.extraction.exceptions import ExtractionError
from contractdiff.extraction.models import (
    ExtractionResult,
    estimate_page_count,
    normalize_text,
)

DOCX_CONFIDENCE = 0.98
ZIP_SIGNATURE = b"PK"


class DocxTextExtractor(BaseTextExtractor):
    """Raw text of a Word document: paragraphs and table rows in body order."""

    method = "python-docx"

    def extract(self, data: bytes, content_hash: str) -> ExtractionResult:
        if not data:
            raise ExtractionError("Empty or invalid file buffer")
        if data[:2] != ZIP_SIGNATURE:
            raise ExtractionError("Invalid DOCX file format - not a ZIP archive")

        try:
            document = docx.Document(io.BytesIO(data))
            text = normalize_text("\n".join(self._blocks(document)))
        except Exception as exc:
            raise ExtractionError(f"Failed to extract text from DOCX: {exc}") from exc

        if not text:
            raise ExtractionError("No text content extracted from DOCX file")

        return ExtractionResult(
            text=text,
            page_count=estimate_page_count(text),
            confidence=DOCX_CONFIDENCE,
            method=self.method,
            extracted_at=datetime.now(timezone.utc),
            content_hash=content_hash,
        )

    def _blocks(self, document: DocxDocument) -> list[str]:
        blocks: list[str] = []
        for block in document.iter_inner_content():
            if isinstance(block, Paragraph):
                blocks.append(block.text)
            elif isinstance(block, Table):
                blocks.extend(self._table_rows(block))
        return blocks

    @staticmethod
    def _table_rows(table: Table) -> list[str]:
        rows = []
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells]
            rows.append("\t".join(cell for cell in cells if cell))
        return rows
