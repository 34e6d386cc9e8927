import time

from contractdiff.comparison.base import BaseComparisonEngine
from contractdiff.comparison.exceptions import ComparisonError
from contractdiff.config.settings import Settings
from contractdiff.database.models import (
    Comparison,
    ComparisonStatus,
    Document,
    QueueTask,
    TaskType,
)
from contractdiff.database.store import Store
from contractdiff.logging.logger import Log
from contractdiff.services.exceptions import (
    MissingExtractionError,
    NotFoundError,
    ValidationError,
)


class ComparisonService:
    """Runs and records comparisons of a third-party document against a standard one."""

    def __init__(self, store: Store, engine: BaseComparisonEngine, settings: Settings) -> None:
        self._store = store
        self._engine = engine
        self._settings = settings

    def compare_documents(
        self, owner: str, third_party_id: int, standard_id: int | None = None
    ) -> Comparison:
        """Compare synchronously. Engine failures are recorded on the returned row.

        Raises:
            NotFoundError: if a document is missing or not owned by owner.
            MissingExtractionError: if either document has no extracted text.
            ValidationError: if both ids name the same document.
        """
        standard, third_party = self._resolve_documents(owner, third_party_id, standard_id)
        comparison = self._store.comparisons.create(
            owner, standard.id, third_party.id, status=ComparisonStatus.PROCESSING
        )
        return self._run(comparison, standard, third_party)

    def request_comparison(
        self,
        owner: str,
        third_party_id: int,
        standard_id: int | None = None,
        priority: int | None = None,
    ) -> Comparison:
        """Record a pending comparison and queue a COMPARE task to run it."""
        standard, third_party = self._resolve_documents(owner, third_party_id, standard_id)
        comparison = self._store.comparisons.create(owner, standard.id, third_party.id)
        task = self._store.tasks.enqueue(third_party.id, TaskType.COMPARE, priority=priority)
        Log.info(
            "Comparison requested",
            comparison_id=comparison.id,
            task_id=task.id,
            document_id=third_party.id,
        )
        return comparison

    def request_export(
        self, owner: str, comparison_id: int, priority: int | None = None
    ) -> QueueTask:
        """Queue an EXPORT task that writes the comparison's report to the blob store."""
        comparison = self.get_comparison(owner, comparison_id)
        if comparison.status != ComparisonStatus.COMPLETED:
            raise ValidationError(
                f"Comparison {comparison_id} is {comparison.status.value}, not completed"
            )
        task = self._store.tasks.enqueue(
            comparison.third_party_document_id, TaskType.EXPORT, priority=priority
        )
        Log.info("Export requested", comparison_id=comparison_id, task_id=task.id)
        return task

    def run_pending_for_document(self, document_id: int) -> list[Comparison]:
        """Run every pending comparison whose third-party document is document_id.

        Comparisons are claimed one at a time, so an error leaves the
        unclaimed ones pending for the next COMPARE attempt.
        """
        results: list[Comparison] = []
        while True:
            comparison = self._claim_next_pending(document_id)
            if comparison is None:
                return results
            results.append(self._run_claimed(comparison))

    def queue_pending_for_document(
        self, document_id: int, priority: int | None = None
    ) -> QueueTask | None:
        """Enqueue COMPARE if comparisons of document_id are still pending."""
        if not self._store.comparisons.find_pending_for_third_party(document_id):
            return None
        return self._store.tasks.enqueue(document_id, TaskType.COMPARE, priority=priority)

    def get_comparison(self, owner: str, comparison_id: int) -> Comparison:
        comparison = self._store.comparisons.find_by_id(comparison_id)
        if comparison is None or comparison.owner != owner:
            raise NotFoundError(
                f"Comparison {comparison_id} not found or not accessible by {owner}"
            )
        return comparison

    def get_user_comparisons(self, owner: str) -> list[Comparison]:
        return self._store.comparisons.find_by_owner(owner)

    def _claim_next_pending(self, document_id: int) -> Comparison | None:
        for comparison in self._store.comparisons.find_pending_for_third_party(document_id):
            if self._store.comparisons.mark_processing(comparison.id):
                return comparison
        return None

    def _run_claimed(self, comparison: Comparison) -> Comparison:
        standard = self._store.documents.find_by_id(comparison.standard_document_id)
        third_party = self._store.documents.find_by_id(comparison.third_party_document_id)
        missing = self._missing_extraction(standard, third_party)
        if standard is None or third_party is None or missing:
            message = f"Documents without extracted text: {', '.join(missing)}"
            self._store.comparisons.fail(comparison.id, message)
            Log.error("Comparison failed", comparison_id=comparison.id, error=message)
            return self._require(comparison.id)
        return self._run(comparison, standard, third_party)

    def _run(self, comparison: Comparison, standard: Document, third_party: Document) -> Comparison:
        started = time.perf_counter()
        # Callers only pass documents with extracted text.
        standard_text = standard.extracted_text or ""
        third_party_text = third_party.extracted_text or ""
        try:
            report = self._engine.compare(standard_text, third_party_text)
        except ComparisonError as exc:
            self._store.comparisons.fail(comparison.id, str(exc))
            Log.error("Comparison failed", comparison_id=comparison.id, error=str(exc))
            return self._require(comparison.id)
        except Exception as exc:
            self._store.comparisons.fail(comparison.id, f"Unexpected error: {exc}")
            raise

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        self._store.comparisons.complete(comparison.id, report, elapsed_ms)
        Log.info(
            "Comparison completed",
            comparison_id=comparison.id,
            overall_risk=report.overall_risk.value,
            sections=len(report.sections),
            duration_ms=elapsed_ms,
        )
        return self._require(comparison.id)

    def _resolve_documents(
        self, owner: str, third_party_id: int, standard_id: int | None
    ) -> tuple[Document, Document]:
        third_party = self._owned_document(owner, third_party_id)
        if standard_id is None:
            standard = self._store.documents.find_standard(owner)
            if standard is None:
                raise NotFoundError(f"{owner} has no standard document")
        else:
            standard = self._owned_document(owner, standard_id)
        if standard.id == third_party.id:
            raise ValidationError("A document cannot be compared with itself")

        missing = self._missing_extraction(standard, third_party)
        if missing:
            raise MissingExtractionError(
                f"Documents without extracted text: {', '.join(missing)}"
            )
        return standard, third_party

    def _owned_document(self, owner: str, document_id: int) -> Document:
        document = self._store.documents.find_by_id(document_id)
        if document is None or document.owner != owner:
            raise NotFoundError(
                f"Document {document_id} not found or not accessible by {owner}"
            )
        return document

    @staticmethod
    def _missing_extraction(
        standard: Document | None, third_party: Document | None
    ) -> list[str]:
        missing = []
        if standard is None or not standard.has_extracted_text:
            missing.append(f"standard document ({standard.id if standard else 'deleted'})")
        if third_party is None or not third_party.has_extracted_text:
            missing.append(
                f"third-party document ({third_party.id if third_party else 'deleted'})"
            )
        return missing

    def _require(self, comparison_id: int) -> Comparison:
        comparison = self._store.comparisons.find_by_id(comparison_id)
        if comparison is None:
            raise NotFoundError(f"Comparison {comparison_id} not found")
        return comparison
