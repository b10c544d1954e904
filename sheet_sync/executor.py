"""
sheet_sync/executor.py

Applies a ChangeSet to the pipeline store one record at a time.

A failing record is reported and skipped; the batch always runs to the end.
"""

from __future__ import annotations

import logging
import uuid

from sheet_sync.base import PipelineStore
from sheet_sync.types import (
    ArchiveSnapshot,
    ChangeSet,
    DeleteOutcome,
    ExecutionResult,
    PipelineUpdate,
    SheetPipeline,
    StoredPipeline,
)

logger = logging.getLogger(__name__)

DELETION_REASON_REMOVED = "removed_from_sheet"
DELETION_SOURCE_SHEET_SYNC = "sheet_sync"


def _describe(exc: Exception) -> str:
    return str(exc) or type(exc).__name__


class BatchExecutor:
    def __init__(
        self,
        store: PipelineStore,
        *,
        deletion_source: str = DELETION_SOURCE_SHEET_SYNC,
    ) -> None:
        self._store = store
        self._deletion_source = deletion_source

    def execute(self, changes: ChangeSet, *, sync_run_id: uuid.UUID) -> ExecutionResult:
        """
        Apply updates, then creates, then deletes.

        Updates run first so that rows moved by a composite match vacate
        their old position before a create claims it.
        """

        errors: list[str] = []
        updated = sum(1 for update in changes.to_update if self._apply_update(update, errors))
        created = sum(1 for record in changes.to_create if self._apply_create(record, errors))

        delete_outcomes = [
            self._apply_delete(record, sync_run_id, errors) for record in changes.to_delete
        ]
        deleted = sum(1 for outcome in delete_outcomes if outcome.deleted)

        return ExecutionResult(
            created=created,
            updated=updated,
            deleted=deleted,
            errors=errors,
            delete_outcomes=delete_outcomes,
        )

    def _apply_create(self, record: SheetPipeline, errors: list[str]) -> bool:
        try:
            self._store.insert_pipeline(record)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Pipeline create failed key=%r row=%s error=%s",
                record.key,
                record.sheet_row_number,
                exc,
            )
            errors.append(f"Create failed for {record.key}: {_describe(exc)}")
            return False
        return True

    def _apply_update(self, update: PipelineUpdate, errors: list[str]) -> bool:
        values = dict(update.values)
        values["sheet_row_number"] = update.sheet_row_number
        try:
            self._store.update_pipeline(update.pipeline_id, values, update.monthly_forecasts)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Pipeline update failed id=%s key=%r reason=%s error=%s",
                update.pipeline_id,
                update.key,
                update.match_reason,
                exc,
            )
            errors.append(f"Update failed for {update.key}: {_describe(exc)}")
            return False
        if update.row_moved:
            logger.info(
                "Pipeline row moved id=%s key=%r from_row=%s to_row=%s reason=%s",
                update.pipeline_id,
                update.key,
                update.previous_row_number,
                update.sheet_row_number,
                update.match_reason,
            )
        return True

    def _apply_delete(
        self,
        record: StoredPipeline,
        sync_run_id: uuid.UUID,
        errors: list[str],
    ) -> DeleteOutcome:
        archived = False
        archive_error: str | None = None
        try:
            snapshot = ArchiveSnapshot(
                pipeline=record,
                monthly_forecasts=self._store.list_monthly_forecasts(record.id),
                deletion_reason=DELETION_REASON_REMOVED,
                deletion_source=self._deletion_source,
                sync_run_id=sync_run_id,
            )
            self._store.insert_archive(snapshot)
            archived = True
        except Exception as exc:  # noqa: BLE001
            archive_error = _describe(exc)
            logger.warning(
                "Pipeline archive failed id=%s key=%r error=%s",
                record.id,
                record.key,
                exc,
            )
            errors.append(f"Archive failed for {record.key}: {archive_error}")

        deleted = False
        delete_error: str | None = None
        try:
            self._store.delete_pipeline(record.id)
            deleted = True
        except Exception as exc:  # noqa: BLE001
            delete_error = _describe(exc)
            logger.warning(
                "Pipeline delete failed id=%s key=%r error=%s",
                record.id,
                record.key,
                exc,
            )
            errors.append(f"Delete failed for {record.key}: {delete_error}")

        if deleted and not archived:
            logger.error("Pipeline deleted without archive id=%s key=%r", record.id, record.key)

        return DeleteOutcome(
            pipeline_id=record.id,
            key=record.key,
            archived=archived,
            deleted=deleted,
            archive_error=archive_error,
            delete_error=delete_error,
        )
