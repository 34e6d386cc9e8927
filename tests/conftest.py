import io
from datetime import datetime, timedelta, timezone

import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from contractdiff.config.settings import Settings
from contractdiff.database.repositories.memory import MemoryState
from contractdiff.database.store import Store, StoreFactory
from contractdiff.storage.memory_blob_store import InMemoryBlobStore

STANDARD_NDA = """NON-DISCLOSURE AGREEMENT

1. Confidentiality
The Receiving Party shall keep all Confidential Information strictly confidential for a period of five (5) years from the date of disclosure.

2. Governing Law
This Agreement is governed by the laws of the State of New York.

3. Notices
All notices shall be given in writing to the addresses set out above.
"""

THIRD_PARTY_NDA = """NON-DISCLOSURE AGREEMENT

1. Confidentiality
The Receiving Party shall keep all Confidential Information strictly confidential for a period of two (2) years from the date of disclosure.

2. Governing Law
This Agreement is governed by the laws of the State of New York.

3. Notices
All notices shall be given in writing to the addresses set out above.
"""


class FakeClock:
    """Manually advanced UTC clock for the in-memory store."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Hello PDF World")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Page one content")
    c.showPage()
    c.drawString(72, 720, "Page two content")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def settings() -> Settings:
    """Settings for the in-memory backends, ignoring any local .env file."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        store_backend="memory",
        storage_backend="memory",
        comparison_engine="heuristic",
        task_timeout_ms=5000,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store(clock: FakeClock) -> Store:
    return StoreFactory.in_memory(MemoryState(clock=clock))


@pytest.fixture()
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()
