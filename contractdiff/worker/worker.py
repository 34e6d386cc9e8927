import time

from contractdiff.config.settings import Settings
from contractdiff.logging.logger import Log
from contractdiff.processor.models import TaskResult
from contractdiff.processor.processor import QueueProcessor


class Worker:
    """Poll loop: process next task -> sleep when idle."""

    def __init__(self, processor: QueueProcessor, settings: Settings) -> None:
        self._processor = processor
        self._settings = settings

    def run(self, max_tasks: int | None = None) -> None:
        """Main poll loop. Runs forever until interrupted.

        If max_tasks is set, stop after processing that many tasks (for testing).
        """
        Log.info("Worker started, polling for tasks")
        tasks_done = 0
        try:
            while max_tasks is None or tasks_done < max_tasks:
                result = self._try_process_next()
                if result is not None:
                    tasks_done += 1
                else:
                    Log.debug("No tasks available, sleeping")
                    time.sleep(self._settings.worker_poll_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")

    def run_until_idle(self) -> int:
        """Process tasks until none is runnable. Returns the number processed."""
        processed = 0
        while self._try_process_next() is not None:
            processed += 1
        return processed

    def _try_process_next(self) -> TaskResult | None:
        """Process one task. Queue errors are logged and treated as idle."""
        try:
            return self._processor.process_next()
        except Exception as exc:
            Log.warning(f"Queue error, will retry: {exc}")
            return None
