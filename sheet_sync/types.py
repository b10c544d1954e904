"""
sheet_sync/types.py

Typed records passed between the sync engine stages.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Any


class SyncStatus:
    ACTIVE = "active"
    PAUSED = "paused"
    ARCHIVED = "archived"


class SyncOutcome:
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class SyncTrigger:
    MANUAL = "manual"
    WEBHOOK = "webhook"
    SCHEDULED = "scheduled"
    CLI = "cli"


class SyncType:
    FULL = "full"
    INCREMENTAL = "incremental"


class MatchReason:
    POSITION = "position"
    COMPOSITE = "composite"


class PipelineGroup:
    SALES = "sales"
    CS = "cs"


@dataclass(frozen=True)
class SyncSource:
    """
    Read-only view of one registered quarterly sheet.
    """

    id: uuid.UUID
    spreadsheet_id: str
    sheet_name: str
    group: str
    fiscal_year: int
    quarter: int
    sync_status: str

    @property
    def is_active(self) -> bool:
        return self.sync_status == SyncStatus.ACTIVE


@dataclass(frozen=True)
class SheetRow:
    """
    One raw spreadsheet row with its 1-based sheet row number.
    """

    row_number: int
    cells: tuple[Any, ...]


@dataclass(frozen=True)
class MonthlyForecast:
    year: int
    month: int
    end_date: date | None = None
    delivery_days: int | None = None
    validation_flag: bool | None = None
    gross_revenue: float | None = None
    net_revenue: float | None = None
    notes: str | None = None


@dataclass(frozen=True)
class SheetPipeline:
    """
    A pipeline decoded from one sheet row.
    """

    quarterly_sheet_id: uuid.UUID
    sheet_row_number: int
    fields: dict[str, Any]
    monthly_forecasts: tuple[MonthlyForecast, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def key(self) -> str | None:
        return self.fields.get("key")

    @property
    def position_key(self) -> tuple[uuid.UUID, int]:
        return (self.quarterly_sheet_id, self.sheet_row_number)


@dataclass(frozen=True)
class StoredPipeline:
    """
    A persisted pipeline as loaded from the entity store.

    ``fields`` carries every column of the stored row so that it can be
    archived verbatim on delete.
    """

    id: uuid.UUID
    quarterly_sheet_id: uuid.UUID | None
    sheet_row_number: int | None
    fields: dict[str, Any]

    @property
    def key(self) -> str | None:
        return self.fields.get("key")

    @property
    def position_key(self) -> tuple[uuid.UUID, int] | None:
        if self.quarterly_sheet_id is None or self.sheet_row_number is None:
            return None
        return (self.quarterly_sheet_id, self.sheet_row_number)


@dataclass(frozen=True)
class PipelineUpdate:
    """
    A matched pair whose syncable fields differ.
    """

    pipeline_id: uuid.UUID
    key: str | None
    values: dict[str, Any]
    match_reason: str
    sheet_row_number: int
    previous_row_number: int | None
    changed_fields: tuple[str, ...]
    monthly_forecasts: tuple[MonthlyForecast, ...] = ()

    @property
    def row_moved(self) -> bool:
        return self.previous_row_number != self.sheet_row_number


@dataclass(frozen=True)
class ChangeSet:
    to_create: list[SheetPipeline] = field(default_factory=list)
    to_update: list[PipelineUpdate] = field(default_factory=list)
    to_delete: list[StoredPipeline] = field(default_factory=list)
    duplicate_composite_keys: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.to_create or self.to_update or self.to_delete)


@dataclass(frozen=True)
class ArchiveSnapshot:
    """
    Everything needed to restore a pipeline removed by a sync run.
    """

    pipeline: StoredPipeline
    monthly_forecasts: list[dict[str, Any]]
    deletion_reason: str
    deletion_source: str
    sync_run_id: uuid.UUID


@dataclass(frozen=True)
class DeleteOutcome:
    """
    Per-phase result of archive-then-delete for one pipeline.
    """

    pipeline_id: uuid.UUID
    key: str | None
    archived: bool
    deleted: bool
    archive_error: str | None = None
    delete_error: str | None = None

    @property
    def deleted_without_backup(self) -> bool:
        return self.deleted and not self.archived


@dataclass(frozen=True)
class ExecutionResult:
    created: int = 0
    updated: int = 0
    deleted: int = 0
    errors: list[str] = field(default_factory=list)
    delete_outcomes: list[DeleteOutcome] = field(default_factory=list)


@dataclass(frozen=True)
class SyncRunRecord:
    """
    Immutable audit record of one sync run.
    """

    id: uuid.UUID
    quarterly_sheet_id: uuid.UUID
    sync_type: str
    trigger: str
    target_sheet: str
    outcome: str
    rows_processed: int = 0
    rows_created: int = 0
    rows_updated: int = 0
    rows_deleted: int = 0
    rows_skipped: int = 0
    errors: list[str] = field(default_factory=list)
    error_type: str | None = None
    error_message: str | None = None
    duration_ms: int = 0
    direction: str = "sheet_to_db"


@dataclass(frozen=True)
class SyncResult:
    """
    Summary returned to the caller of one sync run.
    """

    run_id: uuid.UUID
    source_id: uuid.UUID
    outcome: str
    total: int
    created: int
    updated: int
    deleted: int
    skipped: int
    errors: list[str]
    warnings: list[str]
    duration_ms: int
    # Pipelines removed even though their archive snapshot could not be written.
    unarchived_deletes: list[DeleteOutcome] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors
