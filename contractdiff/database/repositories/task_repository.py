from typing import Any

from psycopg.rows import dict_row

from contractdiff.database.connection import Database
from contractdiff.database.models import (
    TASK_TRANSITIONS,
    QueueTask,
    TaskStatus,
    TaskType,
    allowed_sources,
)
from contractdiff.database.repositories.base import BaseTaskQueue

_COLUMNS = """
    id, document_id, task_type, priority, status, attempts, max_attempts,
    error_message, scheduled_at, started_at, completed_at, created_at, updated_at
"""

# Candidates examined per claim attempt before giving up.
_CLAIM_BATCH = 5


def _row_to_task(row: dict[str, Any]) -> QueueTask:
    return QueueTask(
        id=row["id"],
        document_id=row["document_id"],
        task_type=TaskType(row["task_type"]),
        priority=row["priority"],
        status=TaskStatus(row["status"]),
        attempts=row["attempts"],
        max_attempts=row["max_attempts"],
        error_message=row["error_message"],
        scheduled_at=row["scheduled_at"],
        started_at=row["started_at"],
        completed_at=row["completed_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class PostgresTaskQueue(BaseTaskQueue):
    """Database operations for the queue_tasks table."""

    def __init__(self, db: Database, **kwargs: int) -> None:
        super().__init__(**kwargs)
        self._db = db

    def enqueue(
        self,
        document_id: int,
        task_type: TaskType,
        priority: int | None = None,
        max_attempts: int | None = None,
    ) -> QueueTask:
        """Insert a pending task; the partial unique index makes this idempotent."""
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO queue_tasks
                        (document_id, task_type, priority, max_attempts, scheduled_at)
                    VALUES (%s, %s, %s, %s, NOW())
                    ON CONFLICT (document_id, task_type)
                        WHERE status IN ('pending', 'processing')
                    DO NOTHING
                    RETURNING {_COLUMNS}
                    """,
                    (
                        document_id,
                        task_type.value,
                        priority if priority is not None else self._default_priority,
                        max_attempts if max_attempts is not None else self._max_attempts,
                    ),
                )
                row = cur.fetchone()
                if row is None:
                    cur.execute(
                        f"""
                        SELECT {_COLUMNS}
                        FROM queue_tasks
                        WHERE document_id = %s AND task_type = %s
                          AND status IN ('pending', 'processing')
                        """,
                        (document_id, task_type.value),
                    )
                    row = cur.fetchone()
            conn.commit()

        if row is None:
            raise RuntimeError(
                f"Active {task_type.value} task for document {document_id} vanished during enqueue"
            )
        return _row_to_task(row)

    def get_next(self) -> QueueTask | None:
        """Claim the next pending task using SELECT FOR UPDATE SKIP LOCKED.

        The claim itself is a conditional update that only succeeds while the
        row is still pending, so a competing claimer can never win the same task.
        """
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id
                    FROM queue_tasks
                    WHERE status = 'pending'
                      AND scheduled_at <= NOW()
                    ORDER BY priority, created_at, id
                    LIMIT %s
                    FOR UPDATE SKIP LOCKED
                    """,
                    (_CLAIM_BATCH,),
                )
                candidates = [row["id"] for row in cur.fetchall()]

                claimed = None
                for task_id in candidates:
                    cur.execute(
                        f"""
                        UPDATE queue_tasks
                        SET status = 'processing', started_at = NOW(), updated_at = NOW()
                        WHERE id = %s AND status = 'pending'
                        RETURNING {_COLUMNS}
                        """,
                        (task_id,),
                    )
                    claimed = cur.fetchone()
                    if claimed is not None:
                        break
            conn.commit()

        return _row_to_task(claimed) if claimed is not None else None

    def update_status(self, task_id: int, status: TaskStatus) -> bool:
        """Apply a status transition if the current status allows it."""
        sources = [s.value for s in allowed_sources(status)]
        if not sources:
            return False
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE queue_tasks
                    SET status = %s,
                        completed_at = CASE WHEN %s THEN NOW() ELSE completed_at END,
                        updated_at = NOW()
                    WHERE id = %s AND status = ANY(%s)
                    """,
                    (status.value, not TASK_TRANSITIONS[status], task_id, sources),
                )
                changed = cur.rowcount > 0
            conn.commit()
        return changed

    def update_error(self, task_id: int, message: str) -> bool:
        """Store the last error message of a task."""
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE queue_tasks
                    SET error_message = %s, updated_at = NOW()
                    WHERE id = %s
                    """,
                    (message, task_id),
                )
                changed = cur.rowcount > 0
            conn.commit()
        return changed

    def retry(self, task_id: int) -> bool:
        """Increment attempts and return the task to pending with backoff."""
        task = self.find_by_id(task_id)
        if task is None or task.status != TaskStatus.PROCESSING:
            return False
        if task.attempts + 1 >= task.max_attempts:
            return False
        delay = self.retry_delay_seconds(task.attempts)
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE queue_tasks
                    SET attempts = attempts + 1, status = 'pending',
                        scheduled_at = NOW() + %s * INTERVAL '1 second',
                        started_at = NULL, updated_at = NOW()
                    WHERE id = %s
                      AND status = 'processing'
                      AND attempts + 1 < max_attempts
                    """,
                    (delay, task_id),
                )
                changed = cur.rowcount > 0
            conn.commit()
        return changed

    def find_by_id(self, task_id: int) -> QueueTask | None:
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM queue_tasks WHERE id = %s",
                    (task_id,),
                )
                row = cur.fetchone()
        return _row_to_task(row) if row is not None else None

    def find_active(self, document_id: int, task_type: TaskType) -> QueueTask | None:
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM queue_tasks
                    WHERE document_id = %s AND task_type = %s
                      AND status IN ('pending', 'processing')
                    """,
                    (document_id, task_type.value),
                )
                row = cur.fetchone()
        return _row_to_task(row) if row is not None else None

    def find_by_document(self, document_id: int) -> list[QueueTask]:
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM queue_tasks
                    WHERE document_id = %s
                    ORDER BY created_at DESC, id DESC
                    """,
                    (document_id,),
                )
                rows = cur.fetchall()
        return [_row_to_task(row) for row in rows]

    def find_all(self) -> list[QueueTask]:
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(f"SELECT {_COLUMNS} FROM queue_tasks ORDER BY id")
                rows = cur.fetchall()
        return [_row_to_task(row) for row in rows]
