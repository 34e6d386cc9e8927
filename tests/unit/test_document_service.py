from unittest.mock import MagicMock, patch

import pytest

from contractdiff.config.settings import Settings
from contractdiff.database.models import DocumentStatus, TaskStatus, TaskType
from contractdiff.database.store import Store
from contractdiff.services.document_service import DocumentService
from contractdiff.services.exceptions import DeletionError, NotFoundError, ValidationError
from contractdiff.storage.exceptions import StorageError
from contractdiff.storage.memory_blob_store import InMemoryBlobStore
from tests.conftest import FakeClock


@pytest.fixture()
def service(store: Store, blob_store: InMemoryBlobStore, settings: Settings) -> DocumentService:
    return DocumentService(store, blob_store, settings)


class TestUpload:
    def test_stores_blob_and_queues_extraction(
        self, service: DocumentService, store: Store, blob_store: InMemoryBlobStore
    ) -> None:
        result = service.upload("alice", "NDA final.pdf", b"%PDF-1.4 data")

        assert result.duplicate is False
        assert result.queued is True
        document = result.document
        assert document.owner == "alice"
        assert document.display_name == "NDA final.pdf"
        assert document.status == DocumentStatus.PROCESSING
        assert document.mime_type == "application/pdf"
        assert document.file_size_bytes == 13
        assert len(document.content_hash) == 64
        assert blob_store.download(document.storage_key) == b"%PDF-1.4 data"
        assert "last_status_update" in document.metadata

        assert result.task is not None
        assert result.task.task_type == TaskType.EXTRACT_TEXT
        assert result.task.status == TaskStatus.PENDING
        assert store.tasks.find_active(document.id, TaskType.EXTRACT_TEXT) is not None

    def test_duplicate_upload_returns_existing_document(
        self, service: DocumentService, store: Store, blob_store: InMemoryBlobStore
    ) -> None:
        first = service.upload("alice", "nda.pdf", b"same bytes")
        second = service.upload("alice", "copy of nda.pdf", b"same bytes")

        assert second.duplicate is True
        assert second.queued is False
        assert second.document.id == first.document.id
        assert len(store.tasks.find_all()) == 1
        assert len(blob_store.keys()) == 1

    def test_same_bytes_for_other_owner_is_new(self, service: DocumentService) -> None:
        first = service.upload("alice", "nda.pdf", b"same bytes")
        other = service.upload("bob", "nda.pdf", b"same bytes")

        assert other.duplicate is False
        assert other.document.id != first.document.id
        assert other.document.storage_key != first.document.storage_key

    def test_upload_as_standard(self, service: DocumentService) -> None:
        old = service.upload("alice", "old.txt", b"old", is_standard=True)
        new = service.upload("alice", "new.txt", b"new", is_standard=True)

        assert new.document.is_standard is True
        assert service.get_by_id("alice", old.document.id).is_standard is False

    def test_content_type_is_kept(self, service: DocumentService) -> None:
        result = service.upload("alice", "nda.doc", b"PK..", content_type="application/msword")
        assert result.document.mime_type == "application/msword"

    @pytest.mark.parametrize(
        ("owner", "filename", "data", "message"),
        [
            ("alice", "contract.rtf", b"x", "Unsupported file type 'rtf'"),
            ("alice", "contract", b"x", r"Unsupported file type '\(none\)'"),
            ("alice", "contract.pdf", b"", "File is empty"),
            ("", "contract.pdf", b"x", "Owner is required"),
        ],
    )
    def test_rejects_invalid_upload(
        self, service: DocumentService, owner: str, filename: str, data: bytes, message: str
    ) -> None:
        with pytest.raises(ValidationError, match=message):
            service.upload(owner, filename, data)

    def test_rejects_oversized_upload(
        self, store: Store, blob_store: InMemoryBlobStore, settings: Settings
    ) -> None:
        settings.max_upload_bytes = 4
        service = DocumentService(store, blob_store, settings)
        with pytest.raises(ValidationError, match="limit is 4"):
            service.upload("alice", "a.txt", b"12345")
        assert blob_store.keys() == []


class TestLookups:
    def test_get_by_id_hides_other_owners(self, service: DocumentService) -> None:
        document = service.upload("alice", "a.txt", b"a").document
        with pytest.raises(NotFoundError, match="not accessible by bob"):
            service.get_by_id("bob", document.id)

    def test_paginated_filters_and_pages(self, service: DocumentService, clock: FakeClock) -> None:
        for i in range(5):
            service.upload("alice", f"vendor-{i}.txt", f"doc {i}".encode())
            clock.advance(1)
        service.upload("alice", "template.txt", b"standard", is_standard=True)

        page = service.get_user_documents_paginated("alice", page=2, page_size=2, kind="third_party")
        assert page.total == 5
        assert page.pages == 3
        assert [d.display_name for d in page.documents] == ["vendor-2.txt", "vendor-1.txt"]

        standard = service.get_user_documents_paginated("alice", kind="standard")
        assert [d.display_name for d in standard.documents] == ["template.txt"]

        found = service.get_user_documents_paginated("alice", search="VENDOR-4")
        assert [d.display_name for d in found.documents] == ["vendor-4.txt"]

    def test_paginated_rejects_bad_arguments(self, service: DocumentService) -> None:
        with pytest.raises(ValidationError):
            service.get_user_documents_paginated("alice", page=0)
        with pytest.raises(ValidationError, match="Unknown document kind"):
            service.get_user_documents_paginated("alice", kind="draft")

    def test_document_details(self, service: DocumentService, store: Store) -> None:
        document = service.upload("alice", "a.txt", b"a").document
        store.documents.save_extraction(document.id, "One two.\n\nThree.", {})

        details = service.get_document_details("alice", document.id)

        assert details.file_type == "txt"
        assert details.has_extracted_text is True
        assert details.extracted_text_length == 16
        assert details.related_comparisons == 0
        assert details.text_stats is not None and details.text_stats.words == 3

    def test_details_without_text(self, service: DocumentService) -> None:
        document = service.upload("alice", "a.txt", b"a").document
        details = service.get_document_details("alice", document.id)
        assert details.has_extracted_text is False
        assert details.text_stats is None

    def test_get_standard_document(self, service: DocumentService) -> None:
        assert service.get_standard_document("alice") is None
        document = service.upload("alice", "a.txt", b"a").document
        service.set_standard("alice", document.id)
        standard = service.get_standard_document("alice")
        assert standard is not None and standard.id == document.id

    def test_set_standard_rejects_foreign_document(self, service: DocumentService) -> None:
        document = service.upload("bob", "a.txt", b"a").document
        with pytest.raises(NotFoundError):
            service.set_standard("alice", document.id)


class TestDelete:
    def test_deletes_blob_and_row(
        self, service: DocumentService, store: Store, blob_store: InMemoryBlobStore
    ) -> None:
        document = service.upload("alice", "a.txt", b"a").document

        service.delete("alice", document.id)

        assert store.documents.find_by_id(document.id) is None
        assert blob_store.keys() == []
        assert store.tasks.find_by_document(document.id) == []

    def test_refuses_referenced_document(
        self, service: DocumentService, store: Store, blob_store: InMemoryBlobStore
    ) -> None:
        standard = service.upload("alice", "s.txt", b"s").document
        third_party = service.upload("alice", "t.txt", b"t").document
        store.comparisons.create("alice", standard.id, third_party.id)

        validation = service.validate_deletion("alice", third_party.id)
        assert validation.can_delete is False
        assert validation.related_comparisons == 1

        with pytest.raises(DeletionError, match="referenced by 1 comparison"):
            service.delete("alice", third_party.id)
        assert store.documents.find_by_id(third_party.id) is not None
        assert blob_store.exists(third_party.storage_key)

    def test_blob_failure_keeps_row(self, store: Store, settings: Settings) -> None:
        blob_store = MagicMock()
        blob_store.upload.return_value = MagicMock(key="k", size_bytes=1)
        blob_store.delete.side_effect = StorageError("disk gone")
        service = DocumentService(store, blob_store, settings)
        document = service.upload("alice", "a.txt", b"a").document

        with pytest.raises(DeletionError, match="disk gone"):
            service.delete("alice", document.id)
        assert store.documents.find_by_id(document.id) is not None

    def test_missing_blob_is_tolerated(
        self, service: DocumentService, store: Store, blob_store: InMemoryBlobStore
    ) -> None:
        document = service.upload("alice", "a.txt", b"a").document
        blob_store.delete(document.storage_key)

        service.delete("alice", document.id)

        assert store.documents.find_by_id(document.id) is None

    def test_row_delete_refused_raises(
        self, service: DocumentService, store: Store
    ) -> None:
        document = service.upload("alice", "a.txt", b"a").document

        with patch.object(store.documents, "delete", return_value=False):
            with pytest.raises(DeletionError, match="from the database"):
                service.delete("alice", document.id)


class TestQueueAndStatus:
    def test_queue_extraction_task_is_idempotent(self, service: DocumentService) -> None:
        document = service.upload("alice", "a.txt", b"a").document

        again = service.queue_extraction_task(document.id)

        assert again.queued is False

    def test_update_document_status_merges_metadata(
        self, service: DocumentService, store: Store
    ) -> None:
        document = service.upload("alice", "a.txt", b"a").document

        assert service.update_document_status(document.id, DocumentStatus.FAILED, {"reason": "x"})

        stored = store.documents.find_by_id(document.id)
        assert stored is not None
        assert stored.status == DocumentStatus.FAILED
        assert stored.metadata["reason"] == "x"
        assert stored.metadata["original_name"] == "a.txt"
        assert "last_status_update" in stored.metadata

    def test_update_status_of_missing_document(self, service: DocumentService) -> None:
        assert service.update_document_status(999, DocumentStatus.FAILED) is False
