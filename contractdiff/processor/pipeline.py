from abc import ABC, abstractmethod
from dataclasses import dataclass

from contractdiff.database.models import Document
from contractdiff.extraction.models import ExtractionResult


@dataclass(slots=True)
class PipelineContext:
    document_id: int
    task_id: int
    document: Document | None = None
    raw_bytes: bytes = b""
    extraction: ExtractionResult | None = None


class PipelineStep(ABC):
    @abstractmethod
    def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError
