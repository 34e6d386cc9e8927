from dataclasses import dataclass

from contractdiff.config.settings import Settings
from contractdiff.database.connection import Database
from contractdiff.database.repositories.base import (
    BaseComparisonRepository,
    BaseDocumentRepository,
    BaseTaskQueue,
)
from contractdiff.database.repositories.comparison_repository import (
    PostgresComparisonRepository,
)
from contractdiff.database.repositories.document_repository import (
    PostgresDocumentRepository,
)
from contractdiff.database.repositories.memory import (
    InMemoryComparisonRepository,
    InMemoryDocumentRepository,
    InMemoryTaskQueue,
    MemoryState,
)
from contractdiff.database.repositories.task_repository import PostgresTaskQueue


@dataclass(frozen=True)
class Store:
    """The repositories one unit of the application works against."""

    documents: BaseDocumentRepository
    tasks: BaseTaskQueue
    comparisons: BaseComparisonRepository


class StoreFactory:
    """Creates the configured store backend."""

    BACKENDS = ("postgres", "memory")

    @classmethod
    def create(cls, settings: Settings, db: Database | None = None) -> Store:
        backend = settings.store_backend.lower()
        queue_options = cls._queue_options(settings)
        if backend == "memory":
            return cls.in_memory(**queue_options)
        if backend == "postgres":
            if db is None:
                raise ValueError("store_backend=postgres requires a Database")
            return Store(
                documents=PostgresDocumentRepository(db),
                tasks=PostgresTaskQueue(db, **queue_options),
                comparisons=PostgresComparisonRepository(db),
            )
        raise ValueError(
            f"Unknown store backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
        )

    @classmethod
    def in_memory(cls, state: MemoryState | None = None, **queue_options: int) -> Store:
        state = state or MemoryState()
        return Store(
            documents=InMemoryDocumentRepository(state),
            tasks=InMemoryTaskQueue(state, **queue_options),
            comparisons=InMemoryComparisonRepository(state),
        )

    @staticmethod
    def _queue_options(settings: Settings) -> dict[str, int]:
        return {
            "default_priority": settings.queue_default_priority,
            "max_attempts": settings.max_task_attempts,
            "retry_base_delay_seconds": settings.retry_base_delay_seconds,
            "retry_max_delay_seconds": settings.retry_max_delay_seconds,
        }
