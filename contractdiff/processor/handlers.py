import json
from abc import ABC, abstractmethod
from datetime import datetime

from contractdiff.database.models import (
    Comparison,
    ComparisonStatus,
    DocumentStatus,
    QueueTask,
    TaskType,
)
from contractdiff.database.repositories.base import (
    BaseComparisonRepository,
    BaseDocumentRepository,
)
from contractdiff.database.store import Store
from contractdiff.extraction.extractor import DocumentTextExtractor
from contractdiff.logging.logger import Log
from contractdiff.processor.pipeline import PipelineContext, PipelineStep
from contractdiff.processor.steps import (
    DownloadBlobStep,
    ExtractTextStep,
    LoadDocumentStep,
    MarkDocumentProcessingStep,
    PersistExtractionStep,
)
from contractdiff.services.comparison_service import ComparisonService
from contractdiff.storage.base import BaseBlobStore
from contractdiff.storage.keys import export_key


class TaskHandler(ABC):
    """Executes one claimed task. Raising marks the attempt as failed."""

    @abstractmethod
    def handle(self, task: QueueTask) -> None: ...

    def on_failure(self, task: QueueTask, error_message: str) -> None:
        """Called once the task has failed for good, including by timeout."""

    def after_complete(self, task: QueueTask) -> None:
        """Called after the task row is marked completed."""


class ExtractTextHandler(TaskHandler):
    """load -> mark processing -> download -> extract -> persist."""

    def __init__(
        self,
        doc_repo: BaseDocumentRepository,
        blob_store: BaseBlobStore,
        extractor: DocumentTextExtractor,
    ) -> None:
        self._doc_repo = doc_repo
        self._steps: list[PipelineStep] = [
            LoadDocumentStep(doc_repo),
            MarkDocumentProcessingStep(doc_repo),
            DownloadBlobStep(blob_store),
            ExtractTextStep(extractor),
            PersistExtractionStep(doc_repo),
        ]

    def handle(self, task: QueueTask) -> None:
        context = PipelineContext(document_id=task.document_id, task_id=task.id)
        for step in self._steps:
            context = step.run(context)

    def on_failure(self, task: QueueTask, error_message: str) -> None:
        """Leave the document failed, with the error under metadata['extraction_error']."""
        document = self._doc_repo.find_by_id(task.document_id)
        if document is None:
            Log.warning(f"Document {task.document_id} gone before it could be marked failed")
            return
        metadata = {**document.metadata, "extraction_error": error_message}
        self._doc_repo.update_status(document.id, DocumentStatus.FAILED, metadata)
        Log.error(
            f"Extraction failed for document {document.id}: {error_message}",
            task_id=task.id,
        )


class CompareHandler(TaskHandler):
    """Runs pending comparisons whose third-party side is the task's document."""

    def __init__(self, comparison_service: ComparisonService) -> None:
        self._comparison_service = comparison_service

    def handle(self, task: QueueTask) -> None:
        results = self._comparison_service.run_pending_for_document(task.document_id)
        Log.info(
            f"Ran {len(results)} pending comparison(s) for document {task.document_id}",
            task_id=task.id,
        )

    def after_complete(self, task: QueueTask) -> None:
        """Requeue when a comparison was requested after this task's last check."""
        self._requeue_pending(task)

    def on_failure(self, task: QueueTask, error_message: str) -> None:
        self._requeue_pending(task)

    def _requeue_pending(self, task: QueueTask) -> None:
        follow_up = self._comparison_service.queue_pending_for_document(task.document_id)
        if follow_up is not None:
            Log.info(
                f"Requeued COMPARE for document {task.document_id}",
                task_id=follow_up.id,
                previous_task_id=task.id,
            )


class ExportHandler(TaskHandler):
    """Writes completed comparison reports of the task's document to the blob store."""

    def __init__(
        self, comparison_repo: BaseComparisonRepository, blob_store: BaseBlobStore
    ) -> None:
        self._comparison_repo = comparison_repo
        self._blob_store = blob_store

    def handle(self, task: QueueTask) -> None:
        comparisons = [
            c
            for c in self._comparison_repo.find_by_document(task.document_id)
            if c.status == ComparisonStatus.COMPLETED and c.result is not None
        ]
        for comparison in comparisons:
            key = export_key(comparison.owner, comparison.id)
            self._blob_store.upload(key, export_payload(comparison), "application/json")
            self._comparison_repo.set_export_key(comparison.id, key)
            Log.info(f"Exported comparison {comparison.id}", key=key, task_id=task.id)


def export_payload(comparison: Comparison) -> bytes:
    """JSON document written for an exported comparison."""
    if comparison.result is None:
        raise ValueError(f"Comparison {comparison.id} has no result to export")
    payload = {
        "metadata": {
            "comparison_id": comparison.id,
            "owner": comparison.owner,
            "standard_document_id": comparison.standard_document_id,
            "third_party_document_id": comparison.third_party_document_id,
            "created_at": _isoformat(comparison.created_at),
            "completed_at": _isoformat(comparison.completed_at),
            "processing_time_ms": comparison.processing_time_ms,
        },
        "report": comparison.result.to_dict(),
    }
    return json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def build_handlers(
    store: Store,
    blob_store: BaseBlobStore,
    extractor: DocumentTextExtractor,
    comparison_service: ComparisonService,
) -> dict[TaskType, TaskHandler]:
    """One handler per task type."""
    return {
        TaskType.EXTRACT_TEXT: ExtractTextHandler(store.documents, blob_store, extractor),
        TaskType.COMPARE: CompareHandler(comparison_service),
        TaskType.EXPORT: ExportHandler(store.comparisons, blob_store),
    }
