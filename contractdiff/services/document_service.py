import hashlib
import math
import mimetypes
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import PurePath
from typing import Any

from contractdiff.comparison.sections import TextStats, text_stats
from contractdiff.config.settings import Settings
from contractdiff.database.models import (
    Document,
    DocumentStatus,
    NewDocument,
    QueueTask,
    TaskType,
)
from contractdiff.database.store import Store
from contractdiff.extraction.extractor import file_extension
from contractdiff.logging.logger import Log
from contractdiff.services.exceptions import DeletionError, NotFoundError, ValidationError
from contractdiff.storage.base import BaseBlobStore
from contractdiff.storage.exceptions import StorageError
from contractdiff.storage.keys import document_key


@dataclass(frozen=True)
class UploadResult:
    document: Document
    duplicate: bool
    queued: bool
    task: QueueTask | None = None


@dataclass(frozen=True)
class QueuedTask:
    task: QueueTask
    queued: bool


@dataclass(frozen=True)
class DeletionValidation:
    can_delete: bool
    blockers: list[str]
    related_comparisons: int


@dataclass(frozen=True)
class DocumentDetails:
    document: Document
    file_type: str
    has_extracted_text: bool
    extracted_text_length: int
    related_comparisons: int
    text_stats: TextStats | None = None


@dataclass(frozen=True)
class DocumentPage:
    documents: list[Document]
    total: int
    pages: int


class DocumentService:
    """Owner-scoped document operations: upload, lookup, standard flag, deletion."""

    def __init__(self, store: Store, blob_store: BaseBlobStore, settings: Settings) -> None:
        self._store = store
        self._blob_store = blob_store
        self._settings = settings

    def upload(
        self,
        owner: str,
        filename: str,
        data: bytes,
        content_type: str | None = None,
        is_standard: bool = False,
    ) -> UploadResult:
        """Store a new document and queue its text extraction.

        Uploading bytes the owner already has returns the existing document and
        queues nothing.

        Raises:
            ValidationError: if the file type, size, or owner is not acceptable.
        """
        self._validate_upload(owner, filename, data)
        content_hash = hashlib.sha256(data).hexdigest()

        existing = self._store.documents.find_by_hash(owner, content_hash)
        if existing is not None:
            Log.info("Duplicate upload detected", owner=owner, document_id=existing.id)
            return UploadResult(document=existing, duplicate=True, queued=False)

        mime_type = (
            content_type
            or mimetypes.guess_type(filename)[0]
            or "application/octet-stream"
        )
        storage_key = document_key(owner, content_hash, filename)
        blob = self._blob_store.upload(storage_key, data, mime_type)
        Log.info("Uploaded document blob", key=blob.key, size=blob.size_bytes)

        document, created = self._store.documents.insert_if_absent(
            NewDocument(
                owner=owner,
                display_name=PurePath(filename).name,
                content_hash=content_hash,
                storage_key=storage_key,
                mime_type=mime_type,
                file_size_bytes=len(data),
                metadata={"content_type": mime_type, "original_name": filename},
            )
        )
        if not created:
            Log.info("Duplicate upload detected", owner=owner, document_id=document.id)
            return UploadResult(document=document, duplicate=True, queued=False)
        Log.info("Document created", owner=owner, document_id=document.id)

        # Status must be processing before the task is visible to workers.
        self.update_document_status(document.id, DocumentStatus.PROCESSING)
        queued = self.queue_extraction_task(document.id)
        if is_standard:
            self._store.documents.set_standard(owner, document.id)

        return UploadResult(
            document=self._require(document.id),
            duplicate=False,
            queued=queued.queued,
            task=queued.task,
        )

    def get_user_documents(self, owner: str) -> list[Document]:
        documents = self._store.documents.find_by_owner(owner)
        Log.debug("Fetched documents", owner=owner, count=len(documents))
        return documents

    def get_user_documents_paginated(
        self,
        owner: str,
        page: int = 1,
        page_size: int = 20,
        kind: str | None = None,
        search: str | None = None,
    ) -> DocumentPage:
        """Owner's documents filtered by kind ('standard' or 'third_party') and name."""
        if page < 1 or page_size < 1:
            raise ValidationError("page and page_size must be positive")
        documents = self.get_user_documents(owner)
        if kind == "standard":
            documents = [d for d in documents if d.is_standard]
        elif kind == "third_party":
            documents = [d for d in documents if not d.is_standard]
        elif kind is not None:
            raise ValidationError(f"Unknown document kind '{kind}'")
        if search:
            needle = search.lower()
            documents = [d for d in documents if needle in d.display_name.lower()]

        offset = (page - 1) * page_size
        total = len(documents)
        return DocumentPage(
            documents=documents[offset : offset + page_size],
            total=total,
            pages=math.ceil(total / page_size),
        )

    def get_by_id(self, owner: str, document_id: int) -> Document:
        """Raises NotFoundError when missing or owned by someone else."""
        document = self._store.documents.find_by_id(document_id)
        if document is None or document.owner != owner:
            raise NotFoundError(
                f"Document {document_id} not found or not accessible by {owner}"
            )
        return document

    def get_standard_document(self, owner: str) -> Document | None:
        return self._store.documents.find_standard(owner)

    def get_document_details(self, owner: str, document_id: int) -> DocumentDetails:
        document = self.get_by_id(owner, document_id)
        related = self._store.comparisons.find_by_document(document_id)
        text = document.extracted_text
        return DocumentDetails(
            document=document,
            file_type=document.file_type,
            has_extracted_text=document.has_extracted_text,
            extracted_text_length=len(text) if text is not None else 0,
            related_comparisons=len(related),
            text_stats=text_stats(text) if text is not None else None,
        )

    def set_standard(self, owner: str, document_id: int) -> Document:
        """Make the document the owner's only standard document."""
        self.get_by_id(owner, document_id)
        if not self._store.documents.set_standard(owner, document_id):
            raise NotFoundError(f"Document {document_id} not found")
        Log.info("Standard document set", owner=owner, document_id=document_id)
        return self._require(document_id)

    def validate_deletion(self, owner: str, document_id: int) -> DeletionValidation:
        self.get_by_id(owner, document_id)
        related = self._store.comparisons.find_by_document(document_id)
        blockers = []
        if related:
            blockers.append(
                f"Document is referenced by {len(related)} comparison(s)"
            )
        return DeletionValidation(
            can_delete=not blockers,
            blockers=blockers,
            related_comparisons=len(related),
        )

    def delete(self, owner: str, document_id: int) -> None:
        """Delete the blob, then the row. The row stays if either step is refused.

        Raises:
            NotFoundError: if the owner has no such document.
            DeletionError: if the document is referenced or its blob cannot be removed.
        """
        document = self.get_by_id(owner, document_id)
        validation = self.validate_deletion(owner, document_id)
        if not validation.can_delete:
            raise DeletionError(
                f"Cannot delete document {document_id}: {'; '.join(validation.blockers)}"
            )

        try:
            if not self._blob_store.delete(document.storage_key):
                Log.warning("Document blob already missing", key=document.storage_key)
        except StorageError as exc:
            raise DeletionError(
                f"Failed to delete blob of document {document_id}: {exc}"
            ) from exc

        if not self._store.documents.delete(document_id):
            raise DeletionError(f"Failed to delete document {document_id} from the database")
        Log.info("Document deleted", owner=owner, document_id=document_id)

    def queue_extraction_task(
        self, document_id: int, priority: int | None = None
    ) -> QueuedTask:
        """Enqueue EXTRACT_TEXT unless the document already has an active one."""
        active = self._store.tasks.find_active(document_id, TaskType.EXTRACT_TEXT)
        if active is not None:
            Log.info("Extraction task already queued", document_id=document_id, task_id=active.id)
            return QueuedTask(task=active, queued=False)

        task = self._store.tasks.enqueue(document_id, TaskType.EXTRACT_TEXT, priority=priority)
        Log.info("Queued extraction task", document_id=document_id, task_id=task.id)
        return QueuedTask(task=task, queued=True)

    def update_document_status(
        self,
        document_id: int,
        status: DocumentStatus,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        """Set status, merging metadata into the stored one with a last_status_update stamp."""
        document = self._store.documents.find_by_id(document_id)
        if document is None:
            return False
        merged = {
            **document.metadata,
            **(metadata or {}),
            "last_status_update": datetime.now(timezone.utc).isoformat(),
        }
        updated = self._store.documents.update_status(document_id, status, merged)
        Log.info("Document status updated", document_id=document_id, status=status.value)
        return updated

    def _validate_upload(self, owner: str, filename: str, data: bytes) -> None:
        if not owner:
            raise ValidationError("Owner is required")
        extension = file_extension(filename)
        allowed = [e.lower() for e in self._settings.allowed_extensions]
        if extension not in allowed:
            raise ValidationError(
                f"Unsupported file type '{extension or '(none)'}'. "
                f"Allowed: {', '.join(allowed)}"
            )
        if not data:
            raise ValidationError("File is empty")
        if len(data) > self._settings.max_upload_bytes:
            raise ValidationError(
                f"File is {len(data)} bytes; the limit is {self._settings.max_upload_bytes}"
            )

    def _require(self, document_id: int) -> Document:
        document = self._store.documents.find_by_id(document_id)
        if document is None:
            raise NotFoundError(f"Document {document_id} not found")
        return document
