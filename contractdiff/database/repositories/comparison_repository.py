from typing import Any

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from contractdiff.comparison.models import ComparisonReport
from contractdiff.database.connection import Database
from contractdiff.database.models import Comparison, ComparisonStatus
from contractdiff.database.repositories.base import BaseComparisonRepository

_COLUMNS = """
    id, owner, standard_document_id, third_party_document_id, status, result,
    error_message, processing_time_ms, export_key, created_at, completed_at,
    updated_at
"""


def _row_to_comparison(row: dict[str, Any]) -> Comparison:
    result = row["result"]
    return Comparison(
        id=row["id"],
        owner=row["owner"],
        standard_document_id=row["standard_document_id"],
        third_party_document_id=row["third_party_document_id"],
        status=ComparisonStatus(row["status"]),
        result=ComparisonReport.from_dict(result) if result else None,
        error_message=row["error_message"],
        processing_time_ms=row["processing_time_ms"],
        export_key=row["export_key"],
        created_at=row["created_at"],
        completed_at=row["completed_at"],
        updated_at=row["updated_at"],
    )


class PostgresComparisonRepository(BaseComparisonRepository):
    """Database operations for the comparisons table."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def create(
        self,
        owner: str,
        standard_document_id: int,
        third_party_document_id: int,
        status: ComparisonStatus = ComparisonStatus.PENDING,
    ) -> Comparison:
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO comparisons
                        (owner, standard_document_id, third_party_document_id, status)
                    VALUES (%s, %s, %s, %s)
                    RETURNING {_COLUMNS}
                    """,
                    (owner, standard_document_id, third_party_document_id, status.value),
                )
                row = cur.fetchone()
            conn.commit()

        if row is None:
            raise RuntimeError(
                f"Comparison of document {third_party_document_id} was not created"
            )
        return _row_to_comparison(row)

    def find_by_id(self, comparison_id: int) -> Comparison | None:
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM comparisons WHERE id = %s",
                    (comparison_id,),
                )
                row = cur.fetchone()
        return _row_to_comparison(row) if row is not None else None

    def find_by_owner(self, owner: str) -> list[Comparison]:
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM comparisons
                    WHERE owner = %s
                    ORDER BY created_at DESC, id DESC
                    """,
                    (owner,),
                )
                rows = cur.fetchall()
        return [_row_to_comparison(row) for row in rows]

    def find_by_document(self, document_id: int) -> list[Comparison]:
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM comparisons
                    WHERE standard_document_id = %s OR third_party_document_id = %s
                    ORDER BY created_at DESC, id DESC
                    """,
                    (document_id, document_id),
                )
                rows = cur.fetchall()
        return [_row_to_comparison(row) for row in rows]

    def find_pending_for_third_party(self, document_id: int) -> list[Comparison]:
        with self._db.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM comparisons
                    WHERE third_party_document_id = %s AND status = 'pending'
                    ORDER BY created_at, id
                    """,
                    (document_id,),
                )
                rows = cur.fetchall()
        return [_row_to_comparison(row) for row in rows]

    def mark_processing(self, comparison_id: int) -> bool:
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE comparisons
                    SET status = 'processing', updated_at = NOW()
                    WHERE id = %s AND status = 'pending'
                    """,
                    (comparison_id,),
                )
                changed = cur.rowcount > 0
            conn.commit()
        return changed

    def complete(
        self, comparison_id: int, report: ComparisonReport, processing_time_ms: int
    ) -> bool:
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE comparisons
                    SET status = 'completed',
                        result = %s,
                        overall_risk = %s,
                        error_message = NULL,
                        processing_time_ms = %s,
                        completed_at = NOW(),
                        updated_at = NOW()
                    WHERE id = %s
                    """,
                    (
                        Jsonb(report.to_dict()),
                        report.overall_risk.value,
                        processing_time_ms,
                        comparison_id,
                    ),
                )
                changed = cur.rowcount > 0
            conn.commit()
        return changed

    def fail(self, comparison_id: int, error_message: str) -> bool:
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE comparisons
                    SET status = 'failed', error_message = %s,
                        completed_at = NOW(), updated_at = NOW()
                    WHERE id = %s
                    """,
                    (error_message, comparison_id),
                )
                changed = cur.rowcount > 0
            conn.commit()
        return changed

    def set_export_key(self, comparison_id: int, export_key: str) -> bool:
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE comparisons
                    SET export_key = %s, updated_at = NOW()
                    WHERE id = %s
                    """,
                    (export_key, comparison_id),
                )
                changed = cur.rowcount > 0
            conn.commit()
        return changed
