"""
Repository for sync run audit records.
"""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.sync_audit import PipelineSyncRun
from sheet_sync.types import SyncRunRecord


class SyncRunRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def insert_run(self, record: SyncRunRecord) -> None:
        self._session.add(
            PipelineSyncRun(
                id=record.id,
                quarterly_sheet_id=record.quarterly_sheet_id,
                sync_type=record.sync_type,
                trigger=record.trigger,
                direction=record.direction,
                target_sheet=record.target_sheet,
                outcome=record.outcome,
                rows_processed=record.rows_processed,
                rows_created=record.rows_created,
                rows_updated=record.rows_updated,
                rows_deleted=record.rows_deleted,
                rows_skipped=record.rows_skipped,
                errors=list(record.errors),
                error_type=record.error_type,
                error_message=record.error_message,
                duration_ms=record.duration_ms,
            )
        )
        self._session.flush()

    def list_runs(self, quarterly_sheet_id: uuid.UUID, *, limit: int = 20) -> list[PipelineSyncRun]:
        stmt = (
            select(PipelineSyncRun)
            .where(PipelineSyncRun.quarterly_sheet_id == quarterly_sheet_id)
            .order_by(PipelineSyncRun.created_at.desc())
            .limit(max(1, limit))
        )
        return list(self._session.scalars(stmt).all())
