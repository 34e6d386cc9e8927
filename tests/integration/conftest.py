import os
import uuid
from collections.abc import Generator

import psycopg
import pytest

from contractdiff.config.settings import Settings
from contractdiff.database.connection import Database, build_conninfo
from contractdiff.database.models import Document, DocumentStatus, NewDocument
from contractdiff.database.store import Store, StoreFactory


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "contractdiff_test")
    return Settings(store_backend="postgres")


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def database(test_settings: Settings) -> Generator[Database, None, None]:
    try:
        with psycopg.connect(build_conninfo(test_settings), connect_timeout=3):
            pass
    except psycopg.OperationalError as e:
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. "
            "Set DB_* env to point at a disposable database"
        )
    db = Database.from_settings(test_settings)
    db.apply_schema()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def db(database: Database) -> Database:
    """Schema in place, tables empty."""
    with database.connection() as conn:
        conn.execute("TRUNCATE comparisons, queue_tasks, documents RESTART IDENTITY CASCADE")
        conn.commit()
    return database


@pytest.fixture
def pg_store(db: Database, test_settings: Settings) -> Store:
    return StoreFactory.create(test_settings, db)


@pytest.fixture
def owner() -> str:
    return f"owner-{uuid.uuid4().hex[:8]}"


def insert_document(
    store: Store,
    owner: str,
    name: str = "nda.txt",
    status: DocumentStatus = DocumentStatus.PROCESSING,
) -> Document:
    content_hash = uuid.uuid4().hex * 2
    document, created = store.documents.insert_if_absent(
        NewDocument(
            owner=owner,
            display_name=name,
            content_hash=content_hash,
            storage_key=f"documents/{owner}/{content_hash}/{name}",
            mime_type="text/plain",
            file_size_bytes=10,
            status=status,
        )
    )
    assert created
    return document
