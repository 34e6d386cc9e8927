import io
from unittest.mock import MagicMock

import docx
import pytest

from contractdiff.extraction.docx_extractor import DocxTextExtractor
from contractdiff.extraction.exceptions import ExtractionError, UnsupportedFileTypeError
from contractdiff.extraction.extractor import DocumentTextExtractor, file_extension
from contractdiff.extraction.factory import ExtractorFactory
from contractdiff.extraction.models import ExtractionResult, estimate_page_count
from contractdiff.extraction.pdf_extractor import PdfTextExtractor
from contractdiff.extraction.text_extractor import PlainTextExtractor


def _docx_bytes(build) -> bytes:  # type: ignore[no-untyped-def]
    document = docx.Document()
    build(document)
    buf = io.BytesIO()
    document.save(buf)
    return buf.getvalue()


class TestDocxTextExtractor:
    def test_extracts_paragraphs_and_tables_in_order(self) -> None:
        def build(document) -> None:  # type: ignore[no-untyped-def]
            document.add_paragraph("1. Confidentiality")
            document.add_paragraph("Keep it secret for five years.")
            table = document.add_table(rows=1, cols=2)
            table.rows[0].cells[0].text = "Party"
            table.rows[0].cells[1].text = "Acme Ltd"
            document.add_paragraph("2. Governing Law")

        result = DocxTextExtractor().extract(_docx_bytes(build), "hash")

        assert result.text == (
            "1. Confidentiality\nKeep it secret for five years.\nParty\tAcme Ltd\n2. Governing Law"
        )
        assert result.method == "python-docx"
        assert result.confidence == 0.98
        assert result.page_count == 1

    def test_rejects_empty_buffer(self) -> None:
        with pytest.raises(ExtractionError, match="Empty or invalid"):
            DocxTextExtractor().extract(b"", "hash")

    def test_rejects_non_zip_data(self) -> None:
        with pytest.raises(ExtractionError, match="not a ZIP archive"):
            DocxTextExtractor().extract(b"{\\rtf1 old word file}", "hash")

    def test_wraps_corrupt_archive(self) -> None:
        with pytest.raises(ExtractionError, match="Failed to extract text from DOCX"):
            DocxTextExtractor().extract(b"PK\x03\x04 truncated", "hash")

    def test_rejects_document_without_text(self) -> None:
        with pytest.raises(ExtractionError, match="No text content"):
            DocxTextExtractor().extract(_docx_bytes(lambda d: None), "hash")


class TestPlainTextExtractor:
    def test_decodes_utf8_and_normalizes(self) -> None:
        data = "\ufeffClause one\r\n\r\n\r\n\r\nClause two  \n".encode("utf-8")
        result = PlainTextExtractor().extract(data, "hash")
        assert result.text == "Clause one\n\nClause two"
        assert result.confidence == 1.0
        assert result.method == "text"

    def test_replaces_invalid_bytes(self) -> None:
        result = PlainTextExtractor().extract(b"caf\xe9 terms", "hash")
        assert result.text == "caf\ufffd terms"

    def test_page_count_is_estimated(self) -> None:
        result = PlainTextExtractor().extract(b"x" * 6000, "hash")
        assert result.page_count == 3
        assert estimate_page_count("") == 1


class TestExtractionResult:
    def test_to_metadata(self) -> None:
        result = PlainTextExtractor().extract(b"text", "hash")
        metadata = result.to_metadata()
        assert metadata["pages"] == 1
        assert metadata["confidence"] == 1.0
        assert metadata["method"] == "text"
        assert metadata["extracted_at"] == result.extracted_at.isoformat()


class TestDocumentTextExtractor:
    def test_file_extension(self) -> None:
        assert file_extension("Contract.Final.PDF") == "pdf"
        assert file_extension("README") == ""

    def test_routes_by_extension(self) -> None:
        txt = MagicMock()
        txt.extract.return_value = MagicMock(spec=ExtractionResult, text="t", method="m", page_count=1)
        router = DocumentTextExtractor({"txt": txt})

        router.extract_text(b"data", "notes.TXT", "hash")

        txt.extract.assert_called_once_with(b"data", "hash")

    def test_unknown_extension_raises(self) -> None:
        router = DocumentTextExtractor({"pdf": MagicMock(), "txt": MagicMock()})
        with pytest.raises(UnsupportedFileTypeError, match="Unsupported file type: rtf"):
            router.extract_text(b"data", "contract.rtf", "hash")

    def test_unsupported_is_an_extraction_error(self) -> None:
        router = DocumentTextExtractor({})
        with pytest.raises(ExtractionError):
            router.extract_text(b"data", "noextension", "hash")


class TestExtractorFactory:
    def test_registers_all_supported_formats(self, settings) -> None:  # type: ignore[no-untyped-def]
        router = ExtractorFactory.create(settings)
        assert router.supported_extensions == ["doc", "docx", "pdf", "txt"]

    def test_pdf_uses_configured_parser(self, settings) -> None:  # type: ignore[no-untyped-def]
        router = ExtractorFactory.create(settings)
        assert isinstance(router._extractors["pdf"], PdfTextExtractor)
        assert isinstance(router._extractors["doc"], DocxTextExtractor)

    def test_extracts_real_pdf(self, settings, sample_pdf_bytes: bytes) -> None:  # type: ignore[no-untyped-def]
        result = ExtractorFactory.create(settings).extract_text(sample_pdf_bytes, "a.pdf", "h")
        assert "Hello PDF World" in result.text
        assert result.method == "pdf-parser:pdfplumber"
