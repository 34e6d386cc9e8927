from dataclasses import dataclass
from enum import Enum

from contractdiff.database.models import TaskType


class TaskOutcome(str, Enum):
    COMPLETED = "completed"
    RETRYING = "retrying"
    FAILED = "failed"


@dataclass(frozen=True)
class TaskResult:
    """Outcome of one process_next call that claimed a task."""

    task_id: int
    task_type: TaskType
    document_id: int
    status: TaskOutcome
    duration_ms: int
    attempts: int
    error_message: str | None = None
