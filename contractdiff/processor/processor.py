import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

from contractdiff.comparison.base import BaseComparisonEngine
from contractdiff.comparison.factory import ComparisonEngineFactory
from contractdiff.config.settings import Settings
from contractdiff.database.models import QueueTask, TaskStatus, TaskType
from contractdiff.database.repositories.base import BaseTaskQueue
from contractdiff.database.store import Store
from contractdiff.extraction.extractor import DocumentTextExtractor
from contractdiff.extraction.factory import ExtractorFactory
from contractdiff.logging.logger import Log
from contractdiff.processor.exceptions import MissingHandlerError, TaskTimeoutError
from contractdiff.processor.handlers import TaskHandler, build_handlers
from contractdiff.processor.models import TaskOutcome, TaskResult
from contractdiff.services.comparison_service import ComparisonService
from contractdiff.storage.base import BaseBlobStore


class QueueProcessor:
    """Claims one task per call, runs its handler under a deadline, applies retry policy.

    A task that fails while attempts < max_attempts - 1 goes back to pending
    with backoff; otherwise it is marked failed and its handler's on_failure
    runs. The error message is stored in both cases.
    """

    def __init__(
        self,
        task_queue: BaseTaskQueue,
        handlers: dict[TaskType, TaskHandler],
        default_timeout_ms: int = 30000,
    ) -> None:
        missing = [t.value for t in TaskType if t not in handlers]
        if missing:
            raise MissingHandlerError(f"No handler registered for task types: {missing}")
        self._queue = task_queue
        self._handlers = handlers
        self._default_timeout_ms = default_timeout_ms

    def process_next(self, timeout_ms: int | None = None) -> TaskResult | None:
        """Process the next runnable task. Returns None when the queue is idle."""
        task = self._queue.get_next()
        if task is None:
            Log.debug("No tasks available")
            return None

        Log.info(
            "Task claimed",
            task_id=task.id,
            task_type=task.task_type.value,
            document_id=task.document_id,
            attempt=task.attempts + 1,
        )
        started = time.perf_counter()
        try:
            self._run_with_timeout(
                task, timeout_ms if timeout_ms is not None else self._default_timeout_ms
            )
        except Exception as exc:
            return self._handle_failure(task, exc, started)

        duration_ms = _elapsed_ms(started)
        if not self._queue.update_status(task.id, TaskStatus.COMPLETED):
            Log.warning("Task was no longer processing when completed", task_id=task.id)
        self._handlers[task.task_type].after_complete(task)
        Log.info(
            "Task completed",
            task_id=task.id,
            task_type=task.task_type.value,
            document_id=task.document_id,
            duration_ms=duration_ms,
        )
        return TaskResult(
            task_id=task.id,
            task_type=task.task_type,
            document_id=task.document_id,
            status=TaskOutcome.COMPLETED,
            duration_ms=duration_ms,
            attempts=task.attempts,
        )

    def _run_with_timeout(self, task: QueueTask, timeout_ms: int) -> None:
        """Run the handler on a worker thread; a timed-out thread is abandoned."""
        handler = self._handlers[task.task_type]
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"task-{task.id}")
        future = executor.submit(handler.handle, task)
        try:
            future.result(timeout=timeout_ms / 1000)
        except FutureTimeoutError as exc:
            raise TaskTimeoutError(
                f"Task {task.id} timed out after {timeout_ms} ms"
            ) from exc
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def _handle_failure(self, task: QueueTask, exc: Exception, started: float) -> TaskResult:
        duration_ms = _elapsed_ms(started)
        message = str(exc) or type(exc).__name__
        self._queue.update_error(task.id, message)

        should_retry = task.attempts < task.max_attempts - 1
        if should_retry and self._queue.retry(task.id):
            Log.warning(
                "Task failed, will be retried",
                task_id=task.id,
                task_type=task.task_type.value,
                document_id=task.document_id,
                duration_ms=duration_ms,
                attempt=task.attempts + 1,
                error=message,
            )
            return TaskResult(
                task_id=task.id,
                task_type=task.task_type,
                document_id=task.document_id,
                status=TaskOutcome.RETRYING,
                duration_ms=duration_ms,
                attempts=task.attempts + 1,
                error_message=message,
            )

        self._queue.update_status(task.id, TaskStatus.FAILED)
        self._handlers[task.task_type].on_failure(task, message)
        Log.error(
            "Task permanently failed",
            task_id=task.id,
            task_type=task.task_type.value,
            document_id=task.document_id,
            duration_ms=duration_ms,
            attempts=task.attempts + 1,
            error=message,
        )
        return TaskResult(
            task_id=task.id,
            task_type=task.task_type,
            document_id=task.document_id,
            status=TaskOutcome.FAILED,
            duration_ms=duration_ms,
            attempts=task.attempts,
            error_message=message,
        )


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def build_processor(
    settings: Settings,
    store: Store,
    blob_store: BaseBlobStore,
    extractor: DocumentTextExtractor | None = None,
    engine: BaseComparisonEngine | None = None,
) -> QueueProcessor:
    """Build a QueueProcessor with all required handlers."""
    extractor = extractor or ExtractorFactory.create(settings)
    engine = engine or ComparisonEngineFactory.create(settings)
    comparison_service = ComparisonService(store, engine, settings)
    handlers = build_handlers(store, blob_store, extractor, comparison_service)
    return QueueProcessor(
        task_queue=store.tasks,
        handlers=handlers,
        default_timeout_ms=settings.task_timeout_ms,
    )
