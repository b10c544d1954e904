"""
sheet_sync/orchestrator.py

Runs one sheet-to-database sync for a quarterly sheet.

Flow: precondition checks -> lease -> read -> sanitize -> transform ->
reconcile -> execute -> run log -> lease release.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Iterable
from dataclasses import replace

from sheet_sync.base import (
    FIRST_DATA_ROW,
    BaseSheetReader,
    PipelineStore,
    SourceStore,
    SyncLease,
    SyncRunStore,
    Transaction,
)
from sheet_sync.errors import (
    SourceErrorType,
    SourceInactiveError,
    SourceNotFoundError,
    SourceUnavailableError,
    SyncInProgressError,
    classify_source_error,
)
from sheet_sync.executor import BatchExecutor
from sheet_sync.logging_utils import log_event
from sheet_sync.reconciler import reconcile
from sheet_sync.run_logger import RunLogger, outcome_for
from sheet_sync.sanitizer import sanitize_row
from sheet_sync.transformer import transform_rows
from sheet_sync.types import (
    SheetRow,
    SyncOutcome,
    SyncResult,
    SyncRunRecord,
    SyncSource,
    SyncTrigger,
    SyncType,
)

logger = logging.getLogger(__name__)

DEFAULT_LEASE_TTL_SECONDS = 300


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class SheetSyncOrchestrator:
    """
    Coordinates the sync stages for one source at a time.

    Stores share ``transaction``: pipeline writes are committed once after
    the batch, and the run record is committed separately by RunLogger.
    """

    def __init__(
        self,
        *,
        sources: SourceStore,
        pipelines: PipelineStore,
        runs: SyncRunStore,
        lease: SyncLease,
        reader: BaseSheetReader,
        transaction: Transaction,
        lease_ttl_seconds: int = DEFAULT_LEASE_TTL_SECONDS,
    ) -> None:
        self._sources = sources
        self._pipelines = pipelines
        self._lease = lease
        self._reader = reader
        self._transaction = transaction
        self._lease_ttl_seconds = lease_ttl_seconds
        self._run_logger = RunLogger(runs=runs, sources=sources, transaction=transaction)

    def run_sync(
        self,
        source_id: uuid.UUID,
        row_numbers: Iterable[int] | None = None,
        *,
        trigger: str = SyncTrigger.MANUAL,
    ) -> SyncResult:
        """
        Sync one source. ``row_numbers`` restricts the run to those rows.

        Raises SourceNotFoundError, SourceInactiveError or SyncInProgressError
        before any spreadsheet or pipeline I/O, and SourceUnavailableError
        when the spreadsheet cannot be read.
        """

        started = time.monotonic()
        source = self._sources.get_source(source_id)
        if source is None:
            raise SourceNotFoundError(source_id)
        if not source.is_active:
            raise SourceInactiveError(source_id, source.sync_status)

        run_id = uuid.uuid4()
        holder = str(run_id)
        if not self._lease.acquire(source.id, holder, self._lease_ttl_seconds):
            raise SyncInProgressError(source_id)

        try:
            return self._run(source, run_id, row_numbers, trigger, started)
        finally:
            self._release_lease(source.id, holder)

    def _run(
        self,
        source: SyncSource,
        run_id: uuid.UUID,
        row_numbers: Iterable[int] | None,
        trigger: str,
        started: float,
    ) -> SyncResult:
        scope = sorted({int(row) for row in row_numbers}) if row_numbers else None
        sync_type = SyncType.INCREMENTAL if scope is not None else SyncType.FULL
        log_event(
            logger,
            logging.INFO,
            "sheet_sync_started",
            run_id=run_id,
            source_id=source.id,
            sheet=source.sheet_name,
            sync_type=sync_type,
            trigger=trigger,
            rows=scope,
        )

        base_record = SyncRunRecord(
            id=run_id,
            quarterly_sheet_id=source.id,
            sync_type=sync_type,
            trigger=trigger,
            target_sheet=source.sheet_name,
            outcome=SyncOutcome.FAILED,
        )

        rows = self._read_rows(source, scope, base_record, started)

        processed = 0
        try:
            sheet_rows = [(row.row_number, sanitize_row(row.cells)) for row in rows]
            sheet_records, warnings, skipped = transform_rows(source, sheet_rows)
            processed = len(sheet_records) + skipped
            stored = self._pipelines.list_for_source(source.id)
            row_scope = [row for row in scope if row >= FIRST_DATA_ROW] if scope is not None else None
            changes = reconcile(sheet_records, stored, row_scope=row_scope)
            for key in changes.duplicate_composite_keys:
                logger.warning(
                    "Duplicate composite key in sheet source_id=%s key=%r",
                    source.id,
                    key,
                )
                warnings.append(f"Duplicate composite key in sheet: {key}")

            execution = BatchExecutor(self._pipelines).execute(changes, sync_run_id=run_id)
            self._transaction.commit()
        except Exception as exc:
            self._safe_rollback(run_id)
            duration_ms = _elapsed_ms(started)
            self._run_logger.log_failed(
                replace(
                    base_record,
                    rows_processed=processed,
                    error_type=SourceErrorType.UNKNOWN,
                    error_message=f"{type(exc).__name__}: {exc}",
                    duration_ms=duration_ms,
                )
            )
            log_event(
                logger,
                logging.ERROR,
                "sheet_sync_failed",
                run_id=run_id,
                source_id=source.id,
                error_type=SourceErrorType.UNKNOWN,
                error=str(exc),
                duration_ms=duration_ms,
            )
            raise

        outcome = outcome_for(execution.errors)
        unarchived = [item for item in execution.delete_outcomes if item.deleted_without_backup]
        duration_ms = _elapsed_ms(started)
        record = SyncRunRecord(
            id=run_id,
            quarterly_sheet_id=source.id,
            sync_type=sync_type,
            trigger=trigger,
            target_sheet=source.sheet_name,
            outcome=outcome,
            rows_processed=processed,
            rows_created=execution.created,
            rows_updated=execution.updated,
            rows_deleted=execution.deleted,
            rows_skipped=skipped,
            errors=list(execution.errors),
            duration_ms=duration_ms,
        )
        self._run_logger.log_completed(record)

        log_event(
            logger,
            logging.INFO if outcome == SyncOutcome.SUCCESS else logging.WARNING,
            "sheet_sync_completed",
            run_id=run_id,
            source_id=source.id,
            outcome=outcome,
            total=processed,
            created=execution.created,
            updated=execution.updated,
            deleted=execution.deleted,
            skipped=skipped,
            errors=len(execution.errors),
            unarchived_deletes=len(unarchived),
            warnings=len(warnings),
            duration_ms=duration_ms,
        )

        return SyncResult(
            run_id=run_id,
            source_id=source.id,
            outcome=outcome,
            total=processed,
            created=execution.created,
            updated=execution.updated,
            deleted=execution.deleted,
            skipped=skipped,
            errors=list(execution.errors),
            warnings=warnings,
            duration_ms=duration_ms,
            unarchived_deletes=unarchived,
        )

    def _read_rows(
        self,
        source: SyncSource,
        scope: list[int] | None,
        base_record: SyncRunRecord,
        started: float,
    ) -> list[SheetRow]:
        try:
            if scope is not None:
                return self._reader.fetch_specific_rows(source, scope)
            return self._reader.fetch_rows(source)
        except Exception as exc:
            error_type = classify_source_error(exc)
            message = f"Failed to read sheet {source.sheet_name!r}: {exc}"
            duration_ms = _elapsed_ms(started)
            self._run_logger.log_failed(
                replace(
                    base_record,
                    error_type=error_type,
                    error_message=message,
                    duration_ms=duration_ms,
                )
            )
            log_event(
                logger,
                logging.ERROR,
                "sheet_sync_failed",
                run_id=base_record.id,
                source_id=source.id,
                error_type=error_type,
                error=str(exc),
                duration_ms=duration_ms,
            )
            raise SourceUnavailableError(message, error_type=error_type) from exc

    def _release_lease(self, source_id: uuid.UUID, holder: str) -> None:
        try:
            self._lease.release(source_id, holder)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to release sync lease source_id=%s error=%s", source_id, exc)

    def _safe_rollback(self, run_id: uuid.UUID) -> None:
        try:
            self._transaction.rollback()
        except Exception:  # noqa: BLE001
            logger.exception("Rollback after failed sync run failed id=%s", run_id)
