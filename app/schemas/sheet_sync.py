"""
Schemas for quarterly sheet registration, sync triggers and the edit webhook.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

GroupName = Literal["sales", "cs"]
SyncStatusName = Literal["active", "paused", "archived"]


class QuarterlySheetCreateRequest(BaseModel):
    spreadsheet: str = Field(min_length=1, description="Spreadsheet URL or bare spreadsheet id")
    sheet_name: str = Field(min_length=1, max_length=255)
    group: GroupName
    fiscal_year: int = Field(ge=2000, le=2100)
    quarter: int = Field(ge=1, le=4)


class QuarterlySheetStatusUpdateRequest(BaseModel):
    sync_status: SyncStatusName


class QuarterlySheetResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    fiscal_year: int
    quarter: int
    group: str
    spreadsheet_id: str
    sheet_name: str
    sheet_url: str | None = None
    sync_status: str
    last_sync_at: datetime | None = None
    last_sync_status: str | None = None
    last_sync_error: str | None = None
    created_at: datetime
    updated_at: datetime


class QuarterlySheetCreatedResponse(QuarterlySheetResponse):
    webhook_token: str


class QuarterlySheetListResponse(BaseModel):
    sheets: list[QuarterlySheetResponse] = Field(default_factory=list)


class SyncTriggerRequest(BaseModel):
    row_numbers: list[int] | None = Field(
        default=None,
        description="Restrict the run to these 1-based sheet rows",
    )


class UnarchivedDeleteResponse(BaseModel):
    pipeline_id: UUID
    key: str | None = None
    archive_error: str | None = None


class SyncResultResponse(BaseModel):
    run_id: UUID
    quarterly_sheet_id: UUID
    success: bool
    outcome: str
    total: int
    created: int
    updated: int
    deleted: int
    skipped: int
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    duration_ms: int
    unarchived_deletes: list[UnarchivedDeleteResponse] = Field(default_factory=list)


class SyncRunResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    quarterly_sheet_id: UUID
    sync_type: str
    trigger: str
    direction: str
    target_sheet: str | None = None
    outcome: str
    rows_processed: int
    rows_created: int
    rows_updated: int
    rows_deleted: int
    rows_skipped: int
    errors: list[str] = Field(default_factory=list)
    error_type: str | None = None
    error_message: str | None = None
    duration_ms: int
    created_at: datetime


class SyncRunListResponse(BaseModel):
    runs: list[SyncRunResponse] = Field(default_factory=list)


class SheetChangedWebhookRequest(BaseModel):
    token: str = Field(min_length=1)
    spreadsheet_id: str = Field(min_length=1)
    sheet_name: str | None = None
    changed_rows: list[int] | None = None


class SheetChangedWebhookResponse(BaseModel):
    accepted: bool
    quarterly_sheet_id: UUID
    sync_type: str
    changed_rows: list[int] | None = None
