from dataclasses import dataclass, field

from contractdiff.database.models import QueueTask, TaskStatus
from contractdiff.database.store import Store


@dataclass(frozen=True)
class QueueStats:
    pending: int
    processing: int
    completed: int
    failed: int
    total: int
    pending_tasks: list[QueueTask] = field(default_factory=list)
    failed_tasks: list[QueueTask] = field(default_factory=list)


class QueueService:
    """Read-only view over the task queue."""

    def __init__(self, store: Store) -> None:
        self._store = store

    def get_stats(self) -> QueueStats:
        tasks = self._store.tasks.find_all()
        by_status: dict[TaskStatus, list[QueueTask]] = {status: [] for status in TaskStatus}
        for task in tasks:
            by_status[task.status].append(task)
        return QueueStats(
            pending=len(by_status[TaskStatus.PENDING]),
            processing=len(by_status[TaskStatus.PROCESSING]),
            completed=len(by_status[TaskStatus.COMPLETED]),
            failed=len(by_status[TaskStatus.FAILED]),
            total=len(tasks),
            pending_tasks=by_status[TaskStatus.PENDING],
            failed_tasks=by_status[TaskStatus.FAILED],
        )
