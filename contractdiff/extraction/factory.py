from contractdiff.config.settings import Settings
from contractdiff.extraction.docx_extractor import DocxTextExtractor
from contractdiff.extraction.extractor import DocumentTextExtractor
from contractdiff.extraction.pdf_base import BasePdfParser
from contractdiff.extraction.pdf_extractor import PdfTextExtractor
from contractdiff.extraction.pdfplumber_adapter import PdfPlumberAdapter
from contractdiff.extraction.pymupdf_adapter import PyMuPdfAdapter
from contractdiff.extraction.text_extractor import PlainTextExtractor


class PdfParserFactory:
    """Creates the correct PDF parser based on settings."""

    ADAPTERS: dict[str, type[BasePdfParser]] = {
        "pdfplumber": PdfPlumberAdapter,
        "pymupdf": PyMuPdfAdapter,
    }

    @classmethod
    def create(cls, settings: Settings) -> BasePdfParser:
        engine = settings.pdf_engine.lower()
        adapter_cls = cls.ADAPTERS.get(engine)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.ADAPTERS)}"
            )
        return adapter_cls()


class ExtractorFactory:
    """Wires the per-format extractors into a DocumentTextExtractor."""

    @classmethod
    def create(cls, settings: Settings) -> DocumentTextExtractor:
        docx_extractor = DocxTextExtractor()
        return DocumentTextExtractor(
            {
                "pdf": PdfTextExtractor(PdfParserFactory.create(settings)),
                "docx": docx_extractor,
                "doc": docx_extractor,
                "txt": PlainTextExtractor(),
            }
        )
