from unittest.mock import MagicMock

import pytest

from contractdiff.comparison.exceptions import ComparisonError
from contractdiff.comparison.heuristic_engine import HeuristicComparisonEngine
from contractdiff.comparison.models import Severity
from contractdiff.config.settings import Settings
from contractdiff.database.models import ComparisonStatus, Document, TaskType
from contractdiff.database.store import Store
from contractdiff.services.comparison_service import ComparisonService
from contractdiff.services.document_service import DocumentService
from contractdiff.services.exceptions import (
    MissingExtractionError,
    NotFoundError,
    ValidationError,
)
from contractdiff.storage.memory_blob_store import InMemoryBlobStore
from tests.conftest import STANDARD_NDA, THIRD_PARTY_NDA


def _processed(
    store: Store, documents: DocumentService, owner: str, name: str, text: str | None,
    is_standard: bool = False,
) -> Document:
    document = documents.upload(owner, name, name.encode(), is_standard=is_standard).document
    if text is not None:
        store.documents.save_extraction(document.id, text, {})
    stored = store.documents.find_by_id(document.id)
    assert stored is not None
    return stored


@pytest.fixture()
def documents(store: Store, blob_store: InMemoryBlobStore, settings: Settings) -> DocumentService:
    return DocumentService(store, blob_store, settings)


@pytest.fixture()
def service(store: Store, settings: Settings) -> ComparisonService:
    return ComparisonService(store, HeuristicComparisonEngine(), settings)


@pytest.fixture()
def pair(store: Store, documents: DocumentService) -> tuple[Document, Document]:
    standard = _processed(store, documents, "alice", "standard.txt", STANDARD_NDA, is_standard=True)
    third_party = _processed(store, documents, "alice", "vendor.txt", THIRD_PARTY_NDA)
    return standard, third_party


class TestCompareDocuments:
    def test_uses_owner_standard_by_default(
        self, service: ComparisonService, pair: tuple[Document, Document]
    ) -> None:
        standard, third_party = pair

        comparison = service.compare_documents("alice", third_party.id)

        assert comparison.status == ComparisonStatus.COMPLETED
        assert comparison.standard_document_id == standard.id
        assert comparison.result is not None
        assert comparison.result.overall_risk == Severity.HIGH
        assert comparison.processing_time_ms is not None
        assert comparison.completed_at is not None

    def test_explicit_standard(
        self, service: ComparisonService, store: Store, documents: DocumentService,
        pair: tuple[Document, Document],
    ) -> None:
        _standard, third_party = pair
        other = _processed(store, documents, "alice", "other.txt", THIRD_PARTY_NDA)

        comparison = service.compare_documents("alice", third_party.id, standard_id=other.id)

        assert comparison.standard_document_id == other.id
        assert comparison.result is not None
        assert comparison.result.sections == []

    def test_requires_standard_document(
        self, service: ComparisonService, store: Store, documents: DocumentService
    ) -> None:
        third_party = _processed(store, documents, "alice", "vendor.txt", THIRD_PARTY_NDA)
        with pytest.raises(NotFoundError, match="no standard document"):
            service.compare_documents("alice", third_party.id)

    def test_requires_extracted_text(
        self, service: ComparisonService, store: Store, documents: DocumentService
    ) -> None:
        _processed(store, documents, "alice", "standard.txt", STANDARD_NDA, is_standard=True)
        pending = _processed(store, documents, "alice", "vendor.txt", None)

        with pytest.raises(MissingExtractionError, match="third-party document"):
            service.compare_documents("alice", pending.id)
        assert store.comparisons.find_by_owner("alice") == []

    def test_rejects_self_comparison(
        self, service: ComparisonService, pair: tuple[Document, Document]
    ) -> None:
        standard, _third_party = pair
        with pytest.raises(ValidationError, match="compared with itself"):
            service.compare_documents("alice", standard.id)

    def test_rejects_other_owners_documents(
        self, service: ComparisonService, pair: tuple[Document, Document]
    ) -> None:
        _standard, third_party = pair
        with pytest.raises(NotFoundError):
            service.compare_documents("bob", third_party.id)

    def test_engine_error_is_recorded(
        self, store: Store, settings: Settings, pair: tuple[Document, Document]
    ) -> None:
        engine = MagicMock()
        engine.compare.side_effect = ComparisonError("provider unavailable")
        service = ComparisonService(store, engine, settings)

        comparison = service.compare_documents("alice", pair[1].id)

        assert comparison.status == ComparisonStatus.FAILED
        assert comparison.error_message == "provider unavailable"

    def test_unexpected_error_marks_failed_and_raises(
        self, store: Store, settings: Settings, pair: tuple[Document, Document]
    ) -> None:
        engine = MagicMock()
        engine.compare.side_effect = RuntimeError("bug")
        service = ComparisonService(store, engine, settings)

        with pytest.raises(RuntimeError):
            service.compare_documents("alice", pair[1].id)

        [comparison] = store.comparisons.find_by_owner("alice")
        assert comparison.status == ComparisonStatus.FAILED
        assert comparison.error_message == "Unexpected error: bug"


class TestQueuedComparisons:
    def test_request_creates_pending_comparison_and_task(
        self, service: ComparisonService, store: Store, pair: tuple[Document, Document]
    ) -> None:
        _standard, third_party = pair

        comparison = service.request_comparison("alice", third_party.id, priority=1)

        assert comparison.status == ComparisonStatus.PENDING
        task = store.tasks.find_active(third_party.id, TaskType.COMPARE)
        assert task is not None and task.priority == 1

    def test_run_pending_for_document(
        self, service: ComparisonService, pair: tuple[Document, Document]
    ) -> None:
        _standard, third_party = pair
        first = service.request_comparison("alice", third_party.id)
        second = service.request_comparison("alice", third_party.id)

        results = service.run_pending_for_document(third_party.id)

        assert [c.id for c in results] == [first.id, second.id]
        assert all(c.status == ComparisonStatus.COMPLETED for c in results)
        assert service.run_pending_for_document(third_party.id) == []

    def test_crash_leaves_unclaimed_comparisons_pending(
        self, store: Store, settings: Settings, pair: tuple[Document, Document]
    ) -> None:
        _standard, third_party = pair
        engine = MagicMock()
        engine.compare.side_effect = RuntimeError("bug")
        service = ComparisonService(store, engine, settings)
        first = service.request_comparison("alice", third_party.id)
        second = service.request_comparison("alice", third_party.id)

        with pytest.raises(RuntimeError):
            service.run_pending_for_document(third_party.id)

        assert service.get_comparison("alice", first.id).status == ComparisonStatus.FAILED
        assert service.get_comparison("alice", second.id).status == ComparisonStatus.PENDING

    def test_queue_pending_for_document(
        self, service: ComparisonService, store: Store, pair: tuple[Document, Document]
    ) -> None:
        _standard, third_party = pair
        assert service.queue_pending_for_document(third_party.id) is None

        store.comparisons.create("alice", pair[0].id, third_party.id)
        task = service.queue_pending_for_document(third_party.id)

        assert task is not None
        assert task.task_type == TaskType.COMPARE
        assert task.document_id == third_party.id

    def test_pending_comparison_without_text_fails(
        self, service: ComparisonService, store: Store, documents: DocumentService
    ) -> None:
        standard = _processed(store, documents, "alice", "s.txt", STANDARD_NDA)
        third_party = _processed(store, documents, "alice", "t.txt", None)
        comparison = store.comparisons.create("alice", standard.id, third_party.id)

        [result] = service.run_pending_for_document(third_party.id)

        assert result.id == comparison.id
        assert result.status == ComparisonStatus.FAILED
        assert "without extracted text" in (result.error_message or "")

    def test_request_export_requires_completed(
        self, service: ComparisonService, pair: tuple[Document, Document]
    ) -> None:
        pending = service.request_comparison("alice", pair[1].id)
        with pytest.raises(ValidationError, match="not completed"):
            service.request_export("alice", pending.id)

    def test_request_export_queues_task(
        self, service: ComparisonService, store: Store, pair: tuple[Document, Document]
    ) -> None:
        comparison = service.compare_documents("alice", pair[1].id)

        task = service.request_export("alice", comparison.id)

        assert task.task_type == TaskType.EXPORT
        assert task.document_id == pair[1].id


class TestLookups:
    def test_get_comparison_hides_other_owners(
        self, service: ComparisonService, pair: tuple[Document, Document]
    ) -> None:
        comparison = service.compare_documents("alice", pair[1].id)
        assert service.get_comparison("alice", comparison.id).id == comparison.id
        with pytest.raises(NotFoundError):
            service.get_comparison("bob", comparison.id)

    def test_get_user_comparisons(
        self, service: ComparisonService, pair: tuple[Document, Document]
    ) -> None:
        comparison = service.compare_documents("alice", pair[1].id)
        assert [c.id for c in service.get_user_comparisons("alice")] == [comparison.id]
        assert service.get_user_comparisons("bob") == []
