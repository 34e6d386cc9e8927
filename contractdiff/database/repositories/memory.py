"""In-memory repositories used for development and tests.

All three repositories share one ``MemoryState`` so that cross-table rules
(cascade of tasks on document delete, one standard document per owner) hold
the same way they do in Postgres. Every mutation happens under the state's
re-entrant lock, and rows are copied on the way in and out.
"""

import threading
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from itertools import count
from typing import Any

from contractdiff.comparison.models import ComparisonReport
from contractdiff.database.models import (
    TASK_TRANSITIONS,
    Comparison,
    ComparisonStatus,
    Document,
    DocumentStatus,
    NewDocument,
    QueueTask,
    TaskStatus,
    TaskType,
)
from contractdiff.database.repositories.base import (
    BaseComparisonRepository,
    BaseDocumentRepository,
    BaseTaskQueue,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class MemoryState:
    """Rows and id sequences shared by the in-memory repositories."""

    clock: Callable[[], datetime] = utc_now
    lock: threading.RLock = field(default_factory=threading.RLock)
    documents: dict[int, Document] = field(default_factory=dict)
    tasks: dict[int, QueueTask] = field(default_factory=dict)
    comparisons: dict[int, Comparison] = field(default_factory=dict)
    document_ids: Any = field(default_factory=lambda: count(1))
    task_ids: Any = field(default_factory=lambda: count(1))
    comparison_ids: Any = field(default_factory=lambda: count(1))


class InMemoryDocumentRepository(BaseDocumentRepository):
    def __init__(self, state: MemoryState) -> None:
        self._state = state

    def insert_if_absent(self, new: NewDocument) -> tuple[Document, bool]:
        with self._state.lock:
            existing = self._find_by_hash(new.owner, new.content_hash)
            if existing is not None:
                return replace(existing), False
            now = self._state.clock()
            document = Document(
                id=next(self._state.document_ids),
                owner=new.owner,
                display_name=new.display_name,
                content_hash=new.content_hash,
                storage_key=new.storage_key,
                mime_type=new.mime_type,
                file_size_bytes=new.file_size_bytes,
                is_standard=new.is_standard,
                status=new.status,
                metadata=dict(new.metadata),
                created_at=now,
                updated_at=now,
            )
            self._state.documents[document.id] = document
            return replace(document), True

    def find_by_id(self, document_id: int) -> Document | None:
        with self._state.lock:
            document = self._state.documents.get(document_id)
            return replace(document) if document is not None else None

    def find_by_owner(self, owner: str) -> list[Document]:
        with self._state.lock:
            rows = [d for d in self._state.documents.values() if d.owner == owner]
            rows.sort(key=lambda d: (d.created_at, d.id), reverse=True)
            return [replace(d) for d in rows]

    def find_by_hash(self, owner: str, content_hash: str) -> Document | None:
        with self._state.lock:
            document = self._find_by_hash(owner, content_hash)
            return replace(document) if document is not None else None

    def find_standard(self, owner: str) -> Document | None:
        with self._state.lock:
            for document in self._state.documents.values():
                if document.owner == owner and document.is_standard:
                    return replace(document)
            return None

    def update_status(
        self,
        document_id: int,
        status: DocumentStatus,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        with self._state.lock:
            document = self._state.documents.get(document_id)
            if document is None:
                return False
            document.status = status
            if metadata is not None:
                document.metadata = dict(metadata)
            document.updated_at = self._state.clock()
            return True

    def save_extraction(
        self, document_id: int, text: str, metadata: dict[str, Any]
    ) -> bool:
        with self._state.lock:
            document = self._state.documents.get(document_id)
            if document is None:
                return False
            document.extracted_text = text
            document.metadata = dict(metadata)
            document.status = DocumentStatus.PROCESSED
            document.updated_at = self._state.clock()
            return True

    def set_standard(self, owner: str, document_id: int) -> bool:
        with self._state.lock:
            target = self._state.documents.get(document_id)
            if target is None or target.owner != owner:
                return False
            now = self._state.clock()
            for document in self._state.documents.values():
                if document.owner == owner and document.is_standard and document.id != document_id:
                    document.is_standard = False
                    document.updated_at = now
            target.is_standard = True
            target.updated_at = now
            return True

    def delete(self, document_id: int) -> bool:
        with self._state.lock:
            if document_id not in self._state.documents:
                return False
            if any(c.references(document_id) for c in self._state.comparisons.values()):
                raise ValueError(
                    f"Document {document_id} is still referenced by a comparison"
                )
            del self._state.documents[document_id]
            for task_id in [
                t.id for t in self._state.tasks.values() if t.document_id == document_id
            ]:
                del self._state.tasks[task_id]
            return True

    def _find_by_hash(self, owner: str, content_hash: str) -> Document | None:
        for document in self._state.documents.values():
            if document.owner == owner and document.content_hash == content_hash:
                return document
        return None


class InMemoryTaskQueue(BaseTaskQueue):
    """Thread-safe task queue with the same claim semantics as Postgres."""

    def __init__(self, state: MemoryState, **kwargs: int) -> None:
        super().__init__(**kwargs)
        self._state = state

    def enqueue(
        self,
        document_id: int,
        task_type: TaskType,
        priority: int | None = None,
        max_attempts: int | None = None,
    ) -> QueueTask:
        with self._state.lock:
            active = self._find_active(document_id, task_type)
            if active is not None:
                return replace(active)
            now = self._state.clock()
            task = QueueTask(
                id=next(self._state.task_ids),
                document_id=document_id,
                task_type=task_type,
                priority=priority if priority is not None else self._default_priority,
                status=TaskStatus.PENDING,
                attempts=0,
                max_attempts=max_attempts if max_attempts is not None else self._max_attempts,
                scheduled_at=now,
                created_at=now,
                updated_at=now,
            )
            self._state.tasks[task.id] = task
            return replace(task)

    def get_next(self) -> QueueTask | None:
        with self._state.lock:
            now = self._state.clock()
            candidates = sorted(
                (
                    t
                    for t in self._state.tasks.values()
                    if t.status == TaskStatus.PENDING and t.scheduled_at <= now
                ),
                key=lambda t: (t.priority, t.created_at, t.id),
            )
            candidate_ids = [t.id for t in candidates]

        for task_id in candidate_ids:
            claimed = self._try_claim(task_id)
            if claimed is not None:
                return claimed
        return None

    def _try_claim(self, task_id: int) -> QueueTask | None:
        """Compare-and-set pending -> processing for one task."""
        with self._state.lock:
            task = self._state.tasks.get(task_id)
            if task is None or task.status != TaskStatus.PENDING:
                return None
            now = self._state.clock()
            task.status = TaskStatus.PROCESSING
            task.started_at = now
            task.updated_at = now
            return replace(task)

    def update_status(self, task_id: int, status: TaskStatus) -> bool:
        with self._state.lock:
            task = self._state.tasks.get(task_id)
            if task is None or status not in TASK_TRANSITIONS[task.status]:
                return False
            now = self._state.clock()
            task.status = status
            if not TASK_TRANSITIONS[status]:
                task.completed_at = now
            task.updated_at = now
            return True

    def update_error(self, task_id: int, message: str) -> bool:
        with self._state.lock:
            task = self._state.tasks.get(task_id)
            if task is None:
                return False
            task.error_message = message
            task.updated_at = self._state.clock()
            return True

    def retry(self, task_id: int) -> bool:
        with self._state.lock:
            task = self._state.tasks.get(task_id)
            if task is None or task.status != TaskStatus.PROCESSING:
                return False
            if task.attempts + 1 >= task.max_attempts:
                return False
            now = self._state.clock()
            delay = self.retry_delay_seconds(task.attempts)
            task.attempts += 1
            task.status = TaskStatus.PENDING
            task.scheduled_at = now + timedelta(seconds=delay)
            task.started_at = None
            task.updated_at = now
            return True

    def find_by_id(self, task_id: int) -> QueueTask | None:
        with self._state.lock:
            task = self._state.tasks.get(task_id)
            return replace(task) if task is not None else None

    def find_active(self, document_id: int, task_type: TaskType) -> QueueTask | None:
        with self._state.lock:
            task = self._find_active(document_id, task_type)
            return replace(task) if task is not None else None

    def find_by_document(self, document_id: int) -> list[QueueTask]:
        with self._state.lock:
            rows = [t for t in self._state.tasks.values() if t.document_id == document_id]
            rows.sort(key=lambda t: (t.created_at, t.id), reverse=True)
            return [replace(t) for t in rows]

    def find_all(self) -> list[QueueTask]:
        with self._state.lock:
            return [replace(t) for t in sorted(self._state.tasks.values(), key=lambda t: t.id)]

    def _find_active(self, document_id: int, task_type: TaskType) -> QueueTask | None:
        for task in self._state.tasks.values():
            if task.document_id == document_id and task.task_type == task_type and task.is_active:
                return task
        return None


class InMemoryComparisonRepository(BaseComparisonRepository):
    def __init__(self, state: MemoryState) -> None:
        self._state = state

    def create(
        self,
        owner: str,
        standard_document_id: int,
        third_party_document_id: int,
        status: ComparisonStatus = ComparisonStatus.PENDING,
    ) -> Comparison:
        with self._state.lock:
            for document_id in (standard_document_id, third_party_document_id):
                if document_id not in self._state.documents:
                    raise ValueError(f"Document {document_id} does not exist")
            now = self._state.clock()
            comparison = Comparison(
                id=next(self._state.comparison_ids),
                owner=owner,
                standard_document_id=standard_document_id,
                third_party_document_id=third_party_document_id,
                status=status,
                created_at=now,
                updated_at=now,
            )
            self._state.comparisons[comparison.id] = comparison
            return replace(comparison)

    def find_by_id(self, comparison_id: int) -> Comparison | None:
        with self._state.lock:
            comparison = self._state.comparisons.get(comparison_id)
            return replace(comparison) if comparison is not None else None

    def find_by_owner(self, owner: str) -> list[Comparison]:
        return self._select(lambda c: c.owner == owner, newest_first=True)

    def find_by_document(self, document_id: int) -> list[Comparison]:
        return self._select(lambda c: c.references(document_id), newest_first=True)

    def find_pending_for_third_party(self, document_id: int) -> list[Comparison]:
        return self._select(
            lambda c: c.third_party_document_id == document_id
            and c.status == ComparisonStatus.PENDING,
            newest_first=False,
        )

    def mark_processing(self, comparison_id: int) -> bool:
        with self._state.lock:
            comparison = self._state.comparisons.get(comparison_id)
            if comparison is None or comparison.status != ComparisonStatus.PENDING:
                return False
            comparison.status = ComparisonStatus.PROCESSING
            comparison.updated_at = self._state.clock()
            return True

    def complete(
        self, comparison_id: int, report: ComparisonReport, processing_time_ms: int
    ) -> bool:
        with self._state.lock:
            comparison = self._state.comparisons.get(comparison_id)
            if comparison is None:
                return False
            now = self._state.clock()
            comparison.status = ComparisonStatus.COMPLETED
            comparison.result = report
            comparison.error_message = None
            comparison.processing_time_ms = processing_time_ms
            comparison.completed_at = now
            comparison.updated_at = now
            return True

    def fail(self, comparison_id: int, error_message: str) -> bool:
        with self._state.lock:
            comparison = self._state.comparisons.get(comparison_id)
            if comparison is None:
                return False
            now = self._state.clock()
            comparison.status = ComparisonStatus.FAILED
            comparison.error_message = error_message
            comparison.completed_at = now
            comparison.updated_at = now
            return True

    def set_export_key(self, comparison_id: int, export_key: str) -> bool:
        with self._state.lock:
            comparison = self._state.comparisons.get(comparison_id)
            if comparison is None:
                return False
            comparison.export_key = export_key
            comparison.updated_at = self._state.clock()
            return True

    def _select(
        self, predicate: Callable[[Comparison], bool], newest_first: bool
    ) -> list[Comparison]:
        with self._state.lock:
            rows = [c for c in self._state.comparisons.values() if predicate(c)]
            rows.sort(key=lambda c: (c.created_at, c.id), reverse=newest_first)
            return [replace(c) for c in rows]
