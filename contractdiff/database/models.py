from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from contractdiff.comparison.models import ComparisonReport


class DocumentStatus(str, Enum):
    UPLOADING = "uploading"
    PROCESSING = "processing"
    PROCESSED = "processed"
    FAILED = "failed"


class TaskType(str, Enum):
    EXTRACT_TEXT = "EXTRACT_TEXT"
    COMPARE = "COMPARE"
    EXPORT = "EXPORT"


class TaskStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ComparisonStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


ACTIVE_TASK_STATUSES = frozenset({TaskStatus.PENDING, TaskStatus.PROCESSING})

# Completed and failed are terminal: nothing leaves them.
TASK_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.PROCESSING}),
    TaskStatus.PROCESSING: frozenset(
        {TaskStatus.COMPLETED, TaskStatus.PENDING, TaskStatus.FAILED}
    ),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.FAILED: frozenset(),
}


def allowed_sources(target: TaskStatus) -> list[TaskStatus]:
    """Statuses from which a task may move to ``target``."""
    return [source for source, targets in TASK_TRANSITIONS.items() if target in targets]


@dataclass
class Document:
    """Represents a row from the documents table."""

    id: int
    owner: str
    display_name: str
    content_hash: str
    storage_key: str
    mime_type: str
    file_size_bytes: int
    is_standard: bool = False
    extracted_text: str | None = None
    status: DocumentStatus = DocumentStatus.UPLOADING
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def file_type(self) -> str:
        _, dot, extension = self.display_name.rpartition(".")
        return extension.lower() if dot else "unknown"

    @property
    def has_extracted_text(self) -> bool:
        return self.extracted_text is not None


@dataclass
class NewDocument:
    """Column values for inserting a documents row."""

    owner: str
    display_name: str
    content_hash: str
    storage_key: str
    mime_type: str
    file_size_bytes: int
    is_standard: bool = False
    status: DocumentStatus = DocumentStatus.UPLOADING
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class QueueTask:
    """Represents a row from the queue_tasks table."""

    id: int
    document_id: int
    task_type: TaskType
    priority: int
    status: TaskStatus
    attempts: int
    max_attempts: int
    error_message: str | None = None
    scheduled_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_TASK_STATUSES


@dataclass
class Comparison:
    """Represents a row from the comparisons table."""

    id: int
    owner: str
    standard_document_id: int
    third_party_document_id: int
    status: ComparisonStatus = ComparisonStatus.PENDING
    result: ComparisonReport | None = None
    error_message: str | None = None
    processing_time_ms: int | None = None
    export_key: str | None = None
    created_at: datetime | None = None
    completed_at: datetime | None = None
    updated_at: datetime | None = None

    def references(self, document_id: int) -> bool:
        return document_id in (self.standard_document_id, self.third_party_document_id)
