from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from contractdiff.database.connection import Database
from contractdiff.database.models import Document, DocumentStatus, NewDocument
from contractdiff.database.repositories.base import BaseDocumentRepository

_COLUMNS = """
    id, owner, display_name, content_hash, storage_key, mime_type,
    file_size_bytes, is_standard, extracted_text, status, metadata,
    created_at, updated_at
"""


def _row_to_document(row: dict[str, Any]) -> Document:
    return Document(
        id=row["id"],
        owner=row["owner"],
        display_name=row["display_name"],
        content_hash=row["content_hash"],
        storage_key=row["storage_key"],
        mime_type=row["mime_type"],
        file_size_bytes=row["file_size_bytes"],
        is_standard=row["is_standard"],
        extracted_text=row["extracted_text"],
        status=DocumentStatus(row["status"]),
        metadata=row["metadata"] or {},
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class PostgresDocumentRepository(BaseDocumentRepository):
    """Database operations for the documents table."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def insert_if_absent(self, new: NewDocument) -> tuple[Document, bool]:
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO documents
                        (owner, display_name, content_hash, storage_key, mime_type,
                         file_size_bytes, is_standard, status, metadata)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (owner, content_hash) DO NOTHING
                    RETURNING {_COLUMNS}
                    """,
                    (
                        new.owner,
                        new.display_name,
                        new.content_hash,
                        new.storage_key,
                        new.mime_type,
                        new.file_size_bytes,
                        new.is_standard,
                        new.status.value,
                        Jsonb(new.metadata),
                    ),
                )
                row = cur.fetchone()
                created = row is not None
                if not created:
                    cur.execute(
                        f"""
                        SELECT {_COLUMNS}
                        FROM documents
                        WHERE owner = %s AND content_hash = %s
                        """,
                        (new.owner, new.content_hash),
                    )
                    row = cur.fetchone()
            conn.commit()

        if row is None:
            raise RuntimeError(
                f"Document {new.content_hash} of {new.owner} vanished during insert"
            )
        return _row_to_document(row), created

    def find_by_id(self, document_id: int) -> Document | None:
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM documents WHERE id = %s",
                    (document_id,),
                )
                row = cur.fetchone()
        return _row_to_document(row) if row is not None else None

    def find_by_owner(self, owner: str) -> list[Document]:
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM documents
                    WHERE owner = %s
                    ORDER BY created_at DESC, id DESC
                    """,
                    (owner,),
                )
                rows = cur.fetchall()
        return [_row_to_document(row) for row in rows]

    def find_by_hash(self, owner: str, content_hash: str) -> Document | None:
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM documents
                    WHERE owner = %s AND content_hash = %s
                    """,
                    (owner, content_hash),
                )
                row = cur.fetchone()
        return _row_to_document(row) if row is not None else None

    def find_standard(self, owner: str) -> Document | None:
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM documents
                    WHERE owner = %s AND is_standard
                    """,
                    (owner,),
                )
                row = cur.fetchone()
        return _row_to_document(row) if row is not None else None

    def update_status(
        self,
        document_id: int,
        status: DocumentStatus,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                if metadata is None:
                    cur.execute(
                        """
                        UPDATE documents
                        SET status = %s, updated_at = NOW()
                        WHERE id = %s
                        """,
                        (status.value, document_id),
                    )
                else:
                    cur.execute(
                        """
                        UPDATE documents
                        SET status = %s, metadata = %s, updated_at = NOW()
                        WHERE id = %s
                        """,
                        (status.value, Jsonb(metadata), document_id),
                    )
                changed = cur.rowcount > 0
            conn.commit()
        return changed

    def save_extraction(
        self, document_id: int, text: str, metadata: dict[str, Any]
    ) -> bool:
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET extracted_text = %s,
                        metadata = %s,
                        status = 'processed',
                        updated_at = NOW()
                    WHERE id = %s
                    """,
                    (text, Jsonb(metadata), document_id),
                )
                changed = cur.rowcount > 0
            conn.commit()
        return changed

    def set_standard(self, owner: str, document_id: int) -> bool:
        """Move the standard flag in one transaction.

        The owner's rows are locked first so concurrent calls serialize; the
        partial unique index rejects anything that slips past.
        """
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT id FROM documents WHERE owner = %s FOR UPDATE",
                    (owner,),
                )
                owned = {row[0] for row in cur.fetchall()}
                if document_id not in owned:
                    conn.rollback()
                    return False
                cur.execute(
                    """
                    UPDATE documents
                    SET is_standard = FALSE, updated_at = NOW()
                    WHERE owner = %s AND is_standard AND id <> %s
                    """,
                    (owner, document_id),
                )
                cur.execute(
                    """
                    UPDATE documents
                    SET is_standard = TRUE, updated_at = NOW()
                    WHERE id = %s
                    """,
                    (document_id,),
                )
            conn.commit()
        return True

    def delete(self, document_id: int) -> bool:
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM documents WHERE id = %s", (document_id,))
                deleted = cur.rowcount > 0
            conn.commit()
        return deleted
