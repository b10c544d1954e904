"""
Repository for quarterly sheet registration, status and last-sync state.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Select, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db.models.quarterly_sheet import QuarterlySheet
from db.repositories.errors import QuarterlySheetConflictError, QuarterlySheetNotFoundError
from sheet_sync.types import SyncSource, SyncStatus


def to_sync_source(sheet: QuarterlySheet) -> SyncSource:
    return SyncSource(
        id=sheet.id,
        spreadsheet_id=sheet.spreadsheet_id,
        sheet_name=sheet.sheet_name,
        group=sheet.group,
        fiscal_year=sheet.fiscal_year,
        quarter=sheet.quarter,
        sync_status=sheet.sync_status,
    )


class QuarterlySheetRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get_sheet(self, sheet_id: uuid.UUID) -> QuarterlySheet | None:
        return self._session.get(QuarterlySheet, sheet_id)

    def get_source(self, source_id: uuid.UUID) -> SyncSource | None:
        sheet = self.get_sheet(source_id)
        return to_sync_source(sheet) if sheet is not None else None

    def get_by_webhook_token(self, token: str) -> QuarterlySheet | None:
        stmt = select(QuarterlySheet).where(QuarterlySheet.webhook_token == token)
        return self._session.scalars(stmt).first()

    def list_sheets(
        self,
        *,
        sync_status: str | None = None,
        fiscal_year: int | None = None,
        group: str | None = None,
    ) -> list[QuarterlySheet]:
        stmt: Select[tuple[QuarterlySheet]] = select(QuarterlySheet)
        if sync_status:
            stmt = stmt.where(QuarterlySheet.sync_status == sync_status)
        if fiscal_year is not None:
            stmt = stmt.where(QuarterlySheet.fiscal_year == fiscal_year)
        if group:
            stmt = stmt.where(QuarterlySheet.group == group)
        stmt = stmt.order_by(
            QuarterlySheet.fiscal_year.desc(),
            QuarterlySheet.quarter.desc(),
            QuarterlySheet.group,
        )
        return list(self._session.scalars(stmt).all())

    def list_active_ids(self) -> list[uuid.UUID]:
        stmt = (
            select(QuarterlySheet.id)
            .where(QuarterlySheet.sync_status == SyncStatus.ACTIVE)
            .order_by(QuarterlySheet.fiscal_year, QuarterlySheet.quarter, QuarterlySheet.group)
        )
        return list(self._session.scalars(stmt).all())

    def create_sheet(
        self,
        *,
        fiscal_year: int,
        quarter: int,
        group: str,
        spreadsheet_id: str,
        sheet_name: str,
        sheet_url: str | None,
        webhook_token: str,
    ) -> QuarterlySheet:
        sheet = QuarterlySheet(
            fiscal_year=fiscal_year,
            quarter=quarter,
            group=group,
            spreadsheet_id=spreadsheet_id,
            sheet_name=sheet_name,
            sheet_url=sheet_url,
            sync_status=SyncStatus.ACTIVE,
            webhook_token=webhook_token,
        )
        try:
            with self._session.begin_nested():
                self._session.add(sheet)
                self._session.flush()
        except IntegrityError as exc:
            raise QuarterlySheetConflictError(
                f"A {group} sheet is already registered for FY{fiscal_year} Q{quarter}."
            ) from exc
        self._session.refresh(sheet)
        return sheet

    def set_sync_status(self, sheet_id: uuid.UUID, sync_status: str) -> QuarterlySheet:
        sheet = self.get_sheet(sheet_id)
        if sheet is None:
            raise QuarterlySheetNotFoundError(f"Quarterly sheet not found: {sheet_id}")
        sheet.sync_status = sync_status
        self._session.flush()
        return sheet

    def update_sync_state(
        self,
        source_id: uuid.UUID,
        *,
        synced_at: datetime,
        status: str,
        error: str | None,
    ) -> None:
        sheet = self.get_sheet(source_id)
        if sheet is None:
            raise QuarterlySheetNotFoundError(f"Quarterly sheet not found: {source_id}")
        sheet.last_sync_at = synced_at
        sheet.last_sync_status = status
        sheet.last_sync_error = error
        self._session.flush()
