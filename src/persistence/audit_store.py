"""Collection run audit trail.

A run moves queued -> running -> succeeded | failed. Each brand processed
in the run gets one status row, rewritten if the brand is recorded again.
``note`` carries non-fatal detail (a fallback adapter, a deactivation
that failed after a good upsert); ``error_message`` carries the fatal
reason for a failed brand.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from src.persistence.database import Database, PersistenceError, format_timestamp, utc_now

__all__ = [
    'AuditStore',
    'BRAND_FAILED',
    'BRAND_SUCCEEDED',
    'RUN_FAILED',
    'RUN_QUEUED',
    'RUN_RUNNING',
    'RUN_SUCCEEDED',
]

RUN_QUEUED = 'queued'
RUN_RUNNING = 'running'
RUN_SUCCEEDED = 'succeeded'
RUN_FAILED = 'failed'

BRAND_SUCCEEDED = 'succeeded'
BRAND_FAILED = 'failed'


class AuditStore:
    """Writes collection runs and per-brand outcomes."""

    def __init__(self, database: Database, clock: Callable[[], datetime] = utc_now) -> None:
        self.db = database
        self.clock = clock

    def _now(self) -> str:
        return format_timestamp(self.clock())

    def create_run(self, run_type: str, trigger: str) -> int:
        with self.db.transaction() as cursor:
            cursor.execute(
                "INSERT INTO collection_runs (run_type, trigger_source, status, created_at) "
                "VALUES (?, ?, ?, ?)",
                (run_type, trigger, RUN_QUEUED, self._now()),
            )
            run_id = cursor.lastrowid
        logging.debug(f"Created {run_type} run {run_id} ({trigger})")
        return run_id

    def _set_status(self, run_id: int, sql: str, params: tuple) -> None:
        with self.db.transaction() as cursor:
            cursor.execute(sql, params)
            if cursor.rowcount == 0:
                raise PersistenceError(f"Collection run {run_id} does not exist")

    def start_run(self, run_id: int) -> None:
        self._set_status(
            run_id,
            "UPDATE collection_runs SET status = ?, started_at = ? WHERE id = ?",
            (RUN_RUNNING, self._now(), run_id),
        )

    def complete_run(self, run_id: int, records_processed: int) -> None:
        self._set_status(
            run_id,
            "UPDATE collection_runs SET status = ?, completed_at = ?, records_processed = ? "
            "WHERE id = ?",
            (RUN_SUCCEEDED, self._now(), records_processed, run_id),
        )

    def fail_run(self, run_id: int, error: str) -> None:
        self._set_status(
            run_id,
            "UPDATE collection_runs SET status = ?, completed_at = ?, error_message = ? WHERE id = ?",
            (RUN_FAILED, self._now(), error, run_id),
        )

    def record_brand_status(
        self,
        run_id: int,
        brand_id: Union[int, str],
        status: str,
        record_count: int = 0,
        note: Optional[str] = None,
        error: Optional[str] = None,
    ) -> None:
        with self.db.transaction() as cursor:
            cursor.execute(
                """
                INSERT INTO collection_run_brands (
                    run_id, brand_id, status, records_processed, note, error_message, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(run_id, brand_id) DO UPDATE SET
                    status = excluded.status,
                    records_processed = excluded.records_processed,
                    note = excluded.note,
                    error_message = excluded.error_message,
                    updated_at = excluded.updated_at
                """,
                (run_id, brand_id, status, record_count, note, error, self._now()),
            )

    def get_run(self, run_id: int) -> Optional[Dict[str, Any]]:
        with self.db.transaction() as cursor:
            cursor.execute("SELECT * FROM collection_runs WHERE id = ?", (run_id,))
            row = cursor.fetchone()
        return dict(row) if row is not None else None

    def get_brand_statuses(self, run_id: int) -> List[Dict[str, Any]]:
        with self.db.transaction() as cursor:
            cursor.execute(
                "SELECT * FROM collection_run_brands WHERE run_id = ? ORDER BY brand_id",
                (run_id,),
            )
            return [dict(row) for row in cursor.fetchall()]
