from abc import ABC, abstractmethod
from typing import Any

from contractdiff.comparison.models import ComparisonReport
from contractdiff.database.models import (
    Comparison,
    ComparisonStatus,
    Document,
    DocumentStatus,
    NewDocument,
    QueueTask,
    TaskStatus,
    TaskType,
)


class BaseDocumentRepository(ABC):
    """Contract for documents table access."""

    @abstractmethod
    def insert_if_absent(self, new: NewDocument) -> tuple[Document, bool]:
        """Insert a document unless (owner, content_hash) already exists.

        Returns:
            The stored row and whether it was created by this call.
        """

    @abstractmethod
    def find_by_id(self, document_id: int) -> Document | None: ...

    @abstractmethod
    def find_by_owner(self, owner: str) -> list[Document]:
        """All documents of an owner, newest first."""

    @abstractmethod
    def find_by_hash(self, owner: str, content_hash: str) -> Document | None: ...

    @abstractmethod
    def find_standard(self, owner: str) -> Document | None: ...

    @abstractmethod
    def update_status(
        self,
        document_id: int,
        status: DocumentStatus,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        """Set status, replacing metadata when given."""

    @abstractmethod
    def save_extraction(
        self, document_id: int, text: str, metadata: dict[str, Any]
    ) -> bool:
        """Persist extracted text, metadata, and mark the document processed."""

    @abstractmethod
    def set_standard(self, owner: str, document_id: int) -> bool:
        """Make document_id the only standard document of owner, atomically.

        Returns False if the document does not exist or belongs to someone else.
        """

    @abstractmethod
    def delete(self, document_id: int) -> bool: ...


class BaseTaskQueue(ABC):
    """Contract for the persisted task queue.

    Retries back off exponentially: base * 2 ** attempts, capped.
    """

    def __init__(
        self,
        *,
        default_priority: int = 5,
        max_attempts: int = 3,
        retry_base_delay_seconds: int = 60,
        retry_max_delay_seconds: int = 900,
    ) -> None:
        self._default_priority = default_priority
        self._max_attempts = max_attempts
        self._retry_base_delay_seconds = retry_base_delay_seconds
        self._retry_max_delay_seconds = retry_max_delay_seconds

    def retry_delay_seconds(self, attempts: int) -> int:
        """Delay before the next run of a task that has failed `attempts` times before."""
        delay = self._retry_base_delay_seconds * (2 ** attempts)
        return min(delay, self._retry_max_delay_seconds)

    @abstractmethod
    def enqueue(
        self,
        document_id: int,
        task_type: TaskType,
        priority: int | None = None,
        max_attempts: int | None = None,
    ) -> QueueTask:
        """Insert a pending task, or return the active one for the same document+type."""

    @abstractmethod
    def get_next(self) -> QueueTask | None:
        """Claim the next runnable pending task (pending -> processing)."""

    @abstractmethod
    def update_status(self, task_id: int, status: TaskStatus) -> bool:
        """Apply an allowed status transition. Returns False if not applied."""

    @abstractmethod
    def update_error(self, task_id: int, message: str) -> bool: ...

    @abstractmethod
    def retry(self, task_id: int) -> bool:
        """Increment attempts and reschedule as pending while attempts < max_attempts.

        Returns False when the task has no attempts left; the caller must fail it.
        """

    @abstractmethod
    def find_by_id(self, task_id: int) -> QueueTask | None: ...

    @abstractmethod
    def find_active(self, document_id: int, task_type: TaskType) -> QueueTask | None: ...

    @abstractmethod
    def find_by_document(self, document_id: int) -> list[QueueTask]:
        """Tasks of a document, newest first."""

    @abstractmethod
    def find_all(self) -> list[QueueTask]: ...


class BaseComparisonRepository(ABC):
    """Contract for comparisons table access."""

    @abstractmethod
    def create(
        self,
        owner: str,
        standard_document_id: int,
        third_party_document_id: int,
        status: ComparisonStatus = ComparisonStatus.PENDING,
    ) -> Comparison: ...

    @abstractmethod
    def find_by_id(self, comparison_id: int) -> Comparison | None: ...

    @abstractmethod
    def find_by_owner(self, owner: str) -> list[Comparison]: ...

    @abstractmethod
    def find_by_document(self, document_id: int) -> list[Comparison]:
        """Comparisons referencing the document on either side."""

    @abstractmethod
    def find_pending_for_third_party(self, document_id: int) -> list[Comparison]: ...

    @abstractmethod
    def mark_processing(self, comparison_id: int) -> bool:
        """Claim a pending comparison. False if it was not pending."""

    @abstractmethod
    def complete(
        self, comparison_id: int, report: ComparisonReport, processing_time_ms: int
    ) -> bool: ...

    @abstractmethod
    def fail(self, comparison_id: int, error_message: str) -> bool: ...

    @abstractmethod
    def set_export_key(self, comparison_id: int, export_key: str) -> bool: ...
