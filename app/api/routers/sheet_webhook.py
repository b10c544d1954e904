"""
app/api/routers/sheet_webhook.py

Edit notifications posted by the spreadsheet's Apps Script trigger.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.schemas.sheet_sync import SheetChangedWebhookRequest, SheetChangedWebhookResponse
from app.services.quarterly_sheet_service import QuarterlySheetService, get_quarterly_sheet_service
from app.services.sheet_sync_service import SheetSyncService, get_sheet_sync_service
from db.session import get_db
from sheet_sync.types import SyncStatus, SyncTrigger, SyncType

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pipelines/webhook", tags=["sheet-webhook"])


@router.post(
    "/sheet-changed",
    response_model=SheetChangedWebhookResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def sheet_changed(
    body: SheetChangedWebhookRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    sheet_service: QuarterlySheetService = Depends(get_quarterly_sheet_service),
    sync_service: SheetSyncService = Depends(get_sheet_sync_service),
) -> SheetChangedWebhookResponse:
    sheet = sheet_service.get_by_webhook_token(db=db, token=body.token)
    if sheet is None:
        logger.warning("Webhook rejected: unknown token spreadsheet_id=%s", body.spreadsheet_id)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook token.")
    if sheet.spreadsheet_id != body.spreadsheet_id:
        logger.warning(
            "Webhook rejected: spreadsheet mismatch sheet_id=%s expected=%s got=%s",
            sheet.id,
            sheet.spreadsheet_id,
            body.spreadsheet_id,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Spreadsheet id does not match the registered sheet.",
        )
    if sheet.sync_status != SyncStatus.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_423_LOCKED,
            detail=f"Sync is {sheet.sync_status} for this sheet.",
        )

    changed_rows = sorted(set(body.changed_rows)) if body.changed_rows else None
    background_tasks.add_task(
        sync_service.run_sync_quietly,
        sheet.id,
        changed_rows,
        trigger=SyncTrigger.WEBHOOK,
    )
    logger.info("Webhook accepted sheet_id=%s changed_rows=%s", sheet.id, changed_rows)
    return SheetChangedWebhookResponse(
        accepted=True,
        quarterly_sheet_id=sheet.id,
        sync_type=SyncType.INCREMENTAL if changed_rows else SyncType.FULL,
        changed_rows=changed_rows,
    )
