"""
app/api/routers/quarterly_sheets.py

Quarterly sheet registration and manual sync endpoints.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.config import get_sheet_sync_settings
from app.schemas.sheet_sync import (
    QuarterlySheetCreatedResponse,
    QuarterlySheetCreateRequest,
    QuarterlySheetListResponse,
    QuarterlySheetResponse,
    QuarterlySheetStatusUpdateRequest,
    SyncResultResponse,
    SyncRunListResponse,
    SyncRunResponse,
    SyncTriggerRequest,
    UnarchivedDeleteResponse,
)
from app.services.quarterly_sheet_service import (
    InvalidSpreadsheetReferenceError,
    QuarterlySheetService,
    get_quarterly_sheet_service,
)
from app.services.sheet_sync_service import SheetSyncService, get_sheet_sync_service
from db.repositories.errors import QuarterlySheetConflictError, QuarterlySheetNotFoundError
from db.session import get_db
from sheet_sync.errors import (
    SourceInactiveError,
    SourceNotFoundError,
    SourceUnavailableError,
    SyncInProgressError,
)
from sheet_sync.google_client import GoogleCredentialsError
from sheet_sync.types import SyncResult, SyncTrigger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pipelines/quarterly-sheets", tags=["quarterly-sheets"])


def _to_sync_response(result: SyncResult) -> SyncResultResponse:
    return SyncResultResponse(
        run_id=result.run_id,
        quarterly_sheet_id=result.source_id,
        success=result.success,
        outcome=result.outcome,
        total=result.total,
        created=result.created,
        updated=result.updated,
        deleted=result.deleted,
        skipped=result.skipped,
        errors=result.errors,
        warnings=result.warnings,
        duration_ms=result.duration_ms,
        unarchived_deletes=[
            UnarchivedDeleteResponse(
                pipeline_id=outcome.pipeline_id,
                key=outcome.key,
                archive_error=outcome.archive_error,
            )
            for outcome in result.unarchived_deletes
        ],
    )


@router.post(
    "",
    response_model=QuarterlySheetCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
def register_quarterly_sheet(
    body: QuarterlySheetCreateRequest,
    db: Session = Depends(get_db),
    service: QuarterlySheetService = Depends(get_quarterly_sheet_service),
) -> QuarterlySheetCreatedResponse:
    """
    Register a sheet tab as the source for one group and quarter.

    The response carries the webhook token the Apps Script trigger must send.
    """

    try:
        sheet = service.register_sheet(
            db=db,
            spreadsheet=body.spreadsheet,
            sheet_name=body.sheet_name,
            group=body.group,
            fiscal_year=body.fiscal_year,
            quarter=body.quarter,
        )
    except InvalidSpreadsheetReferenceError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except QuarterlySheetConflictError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return QuarterlySheetCreatedResponse.model_validate(sheet)


@router.get("", response_model=QuarterlySheetListResponse)
def list_quarterly_sheets(
    sync_status: str | None = Query(default=None),
    fiscal_year: int | None = Query(default=None),
    group: str | None = Query(default=None),
    db: Session = Depends(get_db),
    service: QuarterlySheetService = Depends(get_quarterly_sheet_service),
) -> QuarterlySheetListResponse:
    sheets = service.list_sheets(db=db, sync_status=sync_status, fiscal_year=fiscal_year, group=group)
    return QuarterlySheetListResponse(
        sheets=[QuarterlySheetResponse.model_validate(sheet) for sheet in sheets]
    )


@router.patch("/{sheet_id}", response_model=QuarterlySheetResponse)
def update_quarterly_sheet_status(
    sheet_id: UUID,
    body: QuarterlySheetStatusUpdateRequest,
    db: Session = Depends(get_db),
    service: QuarterlySheetService = Depends(get_quarterly_sheet_service),
) -> QuarterlySheetResponse:
    try:
        sheet = service.set_sync_status(db=db, sheet_id=sheet_id, sync_status=body.sync_status)
    except QuarterlySheetNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return QuarterlySheetResponse.model_validate(sheet)


@router.post("/{sheet_id}/sync", response_model=SyncResultResponse)
def trigger_sync(
    sheet_id: UUID,
    body: SyncTriggerRequest | None = None,
    sync_service: SheetSyncService = Depends(get_sheet_sync_service),
) -> SyncResultResponse:
    """
    Run a sync now and return its summary. Row-level failures still return
    200 with ``success`` false and the errors listed.
    """

    row_numbers = body.row_numbers if body is not None else None
    try:
        result = sync_service.run_sync(sheet_id, row_numbers, trigger=SyncTrigger.MANUAL)
    except SourceNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except SourceInactiveError as exc:
        raise HTTPException(status_code=status.HTTP_423_LOCKED, detail=str(exc)) from exc
    except SyncInProgressError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except SourceUnavailableError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"message": str(exc), "error_type": exc.error_type},
        ) from exc
    except GoogleCredentialsError as exc:
        logger.error("Sheets credentials misconfigured: %s", exc)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return _to_sync_response(result)


@router.get("/{sheet_id}/sync-runs", response_model=SyncRunListResponse)
def list_sync_runs(
    sheet_id: UUID,
    limit: int | None = Query(default=None, ge=1, le=500),
    db: Session = Depends(get_db),
    service: QuarterlySheetService = Depends(get_quarterly_sheet_service),
) -> SyncRunListResponse:
    if service.get_sheet(db=db, sheet_id=sheet_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Quarterly sheet not found: {sheet_id}")
    runs = service.list_runs(
        db=db,
        sheet_id=sheet_id,
        limit=limit or get_sheet_sync_settings().run_history_limit,
    )
    return SyncRunListResponse(runs=[SyncRunResponse.model_validate(run) for run in runs])
