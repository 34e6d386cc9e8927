from contractdiff.database.models import DocumentStatus
from contractdiff.database.repositories.base import BaseDocumentRepository
from contractdiff.extraction.extractor import DocumentTextExtractor
from contractdiff.logging.logger import Log
from contractdiff.processor.exceptions import DocumentNotFoundError
from contractdiff.processor.pipeline import PipelineContext, PipelineStep
from contractdiff.storage.base import BaseBlobStore


class LoadDocumentStep(PipelineStep):
    def __init__(self, doc_repo: BaseDocumentRepository) -> None:
        self._doc_repo = doc_repo

    def run(self, context: PipelineContext) -> PipelineContext:
        document = self._doc_repo.find_by_id(context.document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {context.document_id} not found")
        context.document = document
        return context


class MarkDocumentProcessingStep(PipelineStep):
    def __init__(self, doc_repo: BaseDocumentRepository) -> None:
        self._doc_repo = doc_repo

    def run(self, context: PipelineContext) -> PipelineContext:
        self._doc_repo.update_status(context.document_id, DocumentStatus.PROCESSING)
        Log.info(f"Document {context.document_id} marked as processing")
        return context


class DownloadBlobStep(PipelineStep):
    def __init__(self, blob_store: BaseBlobStore) -> None:
        self._blob_store = blob_store

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.document is None:
            raise ValueError("PipelineContext.document must be set before download")
        context.raw_bytes = self._blob_store.download(context.document.storage_key)
        Log.info(
            f"Loaded {len(context.raw_bytes)} bytes for document {context.document_id}"
        )
        return context


class ExtractTextStep(PipelineStep):
    def __init__(self, extractor: DocumentTextExtractor) -> None:
        self._extractor = extractor

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.document is None:
            raise ValueError("PipelineContext.document must be set before extraction")
        context.extraction = self._extractor.extract_text(
            context.raw_bytes,
            context.document.display_name,
            context.document.content_hash,
        )
        Log.info(
            f"Extracted {len(context.extraction.text)} chars from document "
            f"{context.document_id}"
        )
        return context


class PersistExtractionStep(PipelineStep):
    def __init__(self, doc_repo: BaseDocumentRepository) -> None:
        self._doc_repo = doc_repo

    def run(self, context: PipelineContext) -> PipelineContext:
        if context.document is None or context.extraction is None:
            raise ValueError("PipelineContext.extraction must be set before persist")
        metadata = {
            **context.document.metadata,
            "extraction": context.extraction.to_metadata(),
        }
        self._doc_repo.save_extraction(
            context.document_id, context.extraction.text, metadata
        )
        return context
