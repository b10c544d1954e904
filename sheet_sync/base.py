"""
sheet_sync/base.py

Collaborator interfaces of the sync engine.

The engine never talks to SQLAlchemy or the Sheets API directly; the
database repositories and the Google reader implement these interfaces, and
tests substitute in-memory fakes.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any, Protocol

from sheet_sync.types import (
    ArchiveSnapshot,
    MonthlyForecast,
    SheetPipeline,
    SheetRow,
    StoredPipeline,
    SyncRunRecord,
    SyncSource,
)

HEADER_ROWS = 2
FIRST_DATA_ROW = HEADER_ROWS + 1


class BaseSheetReader(ABC):
    """
    Read-only access to the rows of one spreadsheet tab.
    """

    @abstractmethod
    def fetch_rows(self, source: SyncSource) -> list[SheetRow]:
        """
        Return every data row of the tab, header rows excluded.
        """

    @abstractmethod
    def fetch_specific_rows(self, source: SyncSource, row_numbers: Iterable[int]) -> list[SheetRow]:
        """
        Return the requested rows in one batched read.

        Rows that come back empty are returned with no cells.
        """


class SourceStore(Protocol):
    def get_source(self, source_id: uuid.UUID) -> SyncSource | None:
        ...

    def update_sync_state(
        self,
        source_id: uuid.UUID,
        *,
        synced_at: datetime,
        status: str,
        error: str | None,
    ) -> None:
        ...


class PipelineStore(Protocol):
    def list_for_source(self, source_id: uuid.UUID) -> list[StoredPipeline]:
        ...

    def insert_pipeline(self, record: SheetPipeline) -> uuid.UUID:
        ...

    def update_pipeline(
        self,
        pipeline_id: uuid.UUID,
        values: dict[str, Any],
        monthly_forecasts: Sequence[MonthlyForecast],
    ) -> None:
        ...

    def list_monthly_forecasts(self, pipeline_id: uuid.UUID) -> list[dict[str, Any]]:
        ...

    def insert_archive(self, snapshot: ArchiveSnapshot) -> None:
        ...

    def delete_pipeline(self, pipeline_id: uuid.UUID) -> None:
        ...


class SyncRunStore(Protocol):
    def insert_run(self, record: SyncRunRecord) -> None:
        ...


class SyncLease(Protocol):
    def acquire(self, source_id: uuid.UUID, holder: str, ttl_seconds: int) -> bool:
        ...

    def release(self, source_id: uuid.UUID, holder: str) -> None:
        ...


class Transaction(Protocol):
    """
    Commit boundary shared by the stores of one run. A SQLAlchemy Session
    satisfies it.
    """

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...
