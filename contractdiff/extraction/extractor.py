from contractdiff.extraction.base import BaseTextExtractor
from contractdiff.extraction.exceptions import UnsupportedFileTypeError
from contractdiff.extraction.models import ExtractionResult
from contractdiff.logging.logger import Log


def file_extension(filename: str) -> str:
    """Lower-cased extension without the dot; empty when there is none."""
    _, dot, extension = filename.rpartition(".")
    return extension.lower() if dot else ""


class DocumentTextExtractor:
    """Routes a file to the extractor registered for its extension."""

    def __init__(self, extractors: dict[str, BaseTextExtractor]) -> None:
        self._extractors = extractors

    @property
    def supported_extensions(self) -> list[str]:
        return sorted(self._extractors)

    def extract_text(
        self, data: bytes, filename: str, content_hash: str
    ) -> ExtractionResult:
        """Extract text from a file based on its extension.

        Raises:
            UnsupportedFileTypeError: if the extension has no extractor.
            ExtractionError: if the extractor cannot obtain any text.
        """
        extension = file_extension(filename)
        extractor = self._extractors.get(extension)
        if extractor is None:
            supported = ", ".join(self.supported_extensions).upper()
            raise UnsupportedFileTypeError(
                f"Unsupported file type: {extension or '(none)'}. Supported types: {supported}"
            )

        result = extractor.extract(data, content_hash)
        Log.info(
            "Text extracted",
            filename=filename,
            method=result.method,
            pages=result.page_count,
            chars=len(result.text),
        )
        return result
