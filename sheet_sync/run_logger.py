"""
sheet_sync/run_logger.py

Persists sync run records and the source's last-sync state.

Logging a run must never turn a finished sync into a failed one, so every
method here swallows and logs its own persistence errors.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timezone

from sheet_sync.base import SourceStore, SyncRunStore, Transaction
from sheet_sync.types import SyncOutcome, SyncRunRecord

logger = logging.getLogger(__name__)

MAX_ERROR_MESSAGE_LENGTH = 2000


def outcome_for(errors: list[str]) -> str:
    return SyncOutcome.PARTIAL if errors else SyncOutcome.SUCCESS


class RunLogger:
    def __init__(
        self,
        *,
        runs: SyncRunStore,
        sources: SourceStore,
        transaction: Transaction,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._runs = runs
        self._sources = sources
        self._transaction = transaction
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def log_completed(self, record: SyncRunRecord) -> bool:
        """
        Persist a finished run (success or partial) and refresh the source state.
        """

        error = "; ".join(record.errors)[:MAX_ERROR_MESSAGE_LENGTH] if record.errors else None
        return self._persist(record, error)

    def log_failed(self, record: SyncRunRecord) -> bool:
        """
        Persist an aborted run with its classified error.
        """

        error = (record.error_message or record.error_type or "unknown error")[:MAX_ERROR_MESSAGE_LENGTH]
        return self._persist(record, error)

    def _persist(self, record: SyncRunRecord, error: str | None) -> bool:
        try:
            self._runs.insert_run(record)
            self._sources.update_sync_state(
                record.quarterly_sheet_id,
                synced_at=self._clock(),
                status=record.outcome,
                error=error,
            )
            self._transaction.commit()
        except Exception:  # noqa: BLE001
            self._safe_rollback(record.id)
            logger.exception(
                "Failed to persist sync run id=%s source_id=%s outcome=%s",
                record.id,
                record.quarterly_sheet_id,
                record.outcome,
            )
            return False
        return True

    def _safe_rollback(self, run_id: uuid.UUID) -> None:
        try:
            self._transaction.rollback()
        except Exception:  # noqa: BLE001
            logger.exception("Rollback after sync run logging failure failed id=%s", run_id)
