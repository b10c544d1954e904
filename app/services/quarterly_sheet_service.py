"""
Registration and administration of quarterly source sheets.
"""

from __future__ import annotations

import logging
import re
import secrets
import uuid

from sqlalchemy.orm import Session

from db.models.quarterly_sheet import QuarterlySheet
from db.models.sync_audit import PipelineSyncRun
from db.repositories.quarterly_sheet_repository import QuarterlySheetRepository
from db.repositories.sync_run_repository import SyncRunRepository
from sheet_sync.schemas import get_group_schema

logger = logging.getLogger(__name__)

_SPREADSHEET_URL_PATTERN = re.compile(r"/spreadsheets/d/([a-zA-Z0-9-_]+)")
_SPREADSHEET_ID_PATTERN = re.compile(r"^[a-zA-Z0-9-_]+$")
WEBHOOK_TOKEN_BYTES = 32


class InvalidSpreadsheetReferenceError(ValueError):
    """Raised when neither a spreadsheet URL nor a bare id can be parsed."""


def extract_spreadsheet_id(reference: str) -> str:
    """
    Accept a full Google Sheets URL or a bare spreadsheet id.
    """

    reference = reference.strip()
    match = _SPREADSHEET_URL_PATTERN.search(reference)
    if match:
        return match.group(1)
    if _SPREADSHEET_ID_PATTERN.match(reference):
        return reference
    raise InvalidSpreadsheetReferenceError(f"Cannot extract a spreadsheet id from {reference!r}.")


def generate_webhook_token() -> str:
    return secrets.token_hex(WEBHOOK_TOKEN_BYTES)


class QuarterlySheetService:
    def register_sheet(
        self,
        *,
        db: Session,
        spreadsheet: str,
        sheet_name: str,
        group: str,
        fiscal_year: int,
        quarter: int,
    ) -> QuarterlySheet:
        get_group_schema(group)
        spreadsheet_id = extract_spreadsheet_id(spreadsheet)
        sheet_url = spreadsheet if spreadsheet.strip().startswith("http") else None

        repository = QuarterlySheetRepository(db)
        sheet = repository.create_sheet(
            fiscal_year=fiscal_year,
            quarter=quarter,
            group=group,
            spreadsheet_id=spreadsheet_id,
            sheet_name=sheet_name,
            sheet_url=sheet_url,
            webhook_token=generate_webhook_token(),
        )
        db.commit()
        logger.info(
            "Registered quarterly sheet id=%s group=%s fiscal_year=%s quarter=%s",
            sheet.id,
            group,
            fiscal_year,
            quarter,
        )
        return sheet

    def list_sheets(
        self,
        *,
        db: Session,
        sync_status: str | None = None,
        fiscal_year: int | None = None,
        group: str | None = None,
    ) -> list[QuarterlySheet]:
        return QuarterlySheetRepository(db).list_sheets(
            sync_status=sync_status,
            fiscal_year=fiscal_year,
            group=group,
        )

    def set_sync_status(self, *, db: Session, sheet_id: uuid.UUID, sync_status: str) -> QuarterlySheet:
        sheet = QuarterlySheetRepository(db).set_sync_status(sheet_id, sync_status)
        db.commit()
        logger.info("Quarterly sheet status changed id=%s sync_status=%s", sheet_id, sync_status)
        return sheet

    def get_sheet(self, *, db: Session, sheet_id: uuid.UUID) -> QuarterlySheet | None:
        return QuarterlySheetRepository(db).get_sheet(sheet_id)

    def get_by_webhook_token(self, *, db: Session, token: str) -> QuarterlySheet | None:
        return QuarterlySheetRepository(db).get_by_webhook_token(token)

    def list_runs(self, *, db: Session, sheet_id: uuid.UUID, limit: int) -> list[PipelineSyncRun]:
        return SyncRunRepository(db).list_runs(sheet_id, limit=limit)


def get_quarterly_sheet_service() -> QuarterlySheetService:
    return QuarterlySheetService()
