"""
Service that wires the sync engine to the database and the Sheets API.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from functools import lru_cache

from sqlalchemy.orm import Session

from app.config import (
    GoogleSheetsSettings,
    SheetSyncSettings,
    get_google_sheets_settings,
    get_sheet_sync_settings,
)
from db.repositories.pipeline_repository import PipelineRepository
from db.repositories.quarterly_sheet_repository import QuarterlySheetRepository
from db.repositories.sync_lease_repository import SyncLeaseRepository
from db.repositories.sync_run_repository import SyncRunRepository
from sheet_sync.base import BaseSheetReader
from sheet_sync.errors import SheetSyncError
from sheet_sync.google_client import build_sheets_service, load_service_account_info
from sheet_sync.orchestrator import SheetSyncOrchestrator
from sheet_sync.reader import GoogleSheetsReader
from sheet_sync.types import SyncResult, SyncTrigger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceSyncSummary:
    """
    Outcome of one source within a multi-source sync.
    """

    source_id: uuid.UUID
    result: SyncResult | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.result is not None and self.result.success


def build_google_reader(settings: GoogleSheetsSettings) -> BaseSheetReader:
    info = load_service_account_info(
        credentials_json=settings.credentials_json,
        credentials_base64=settings.credentials_base64,
    )
    return GoogleSheetsReader(build_sheets_service(info))


class SheetSyncService:
    """
    Runs syncs with a fresh session per source.

    A new Sheets client is built for every run because the underlying HTTP
    transport is not safe to share between scheduler and request threads.
    """

    def __init__(
        self,
        *,
        session_factory: Callable[[], Session] | None = None,
        reader_factory: Callable[[], BaseSheetReader] | None = None,
        settings: SheetSyncSettings | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if session_factory is None:
            from db.session import SessionLocal

            self._session_factory = SessionLocal
        else:
            self._session_factory = session_factory

        self._reader_factory = reader_factory or (
            lambda: build_google_reader(get_google_sheets_settings())
        )
        self._settings = settings or get_sheet_sync_settings()
        self._sleep = sleep

    def run_sync(
        self,
        source_id: uuid.UUID,
        row_numbers: Iterable[int] | None = None,
        *,
        trigger: str = SyncTrigger.MANUAL,
    ) -> SyncResult:
        with self._session_factory() as db:
            orchestrator = SheetSyncOrchestrator(
                sources=QuarterlySheetRepository(db),
                pipelines=PipelineRepository(db),
                runs=SyncRunRepository(db),
                lease=SyncLeaseRepository(self._session_factory),
                reader=self._reader_factory(),
                transaction=db,
                lease_ttl_seconds=self._settings.lease_ttl_seconds,
            )
            return orchestrator.run_sync(source_id, row_numbers, trigger=trigger)

    def run_sync_quietly(
        self,
        source_id: uuid.UUID,
        row_numbers: Iterable[int] | None = None,
        *,
        trigger: str = SyncTrigger.WEBHOOK,
    ) -> None:
        """
        Background-task entry point: failures are logged, never raised.
        """

        try:
            self.run_sync(source_id, row_numbers, trigger=trigger)
        except SheetSyncError as exc:
            logger.warning("Background sync rejected source_id=%s error=%s", source_id, exc)
        except Exception:  # noqa: BLE001
            logger.exception("Background sync crashed source_id=%s", source_id)

    def list_active_source_ids(self) -> list[uuid.UUID]:
        with self._session_factory() as db:
            return QuarterlySheetRepository(db).list_active_ids()

    def sync_all_active(
        self,
        *,
        trigger: str = SyncTrigger.SCHEDULED,
        delay_seconds: float | None = None,
    ) -> list[SourceSyncSummary]:
        """
        Sync every active source sequentially, pausing between sources to
        stay under the Sheets API rate limit.
        """

        delay = self._settings.batch_delay_seconds if delay_seconds is None else delay_seconds
        return self.sync_many(self.list_active_source_ids(), trigger=trigger, delay_seconds=delay)

    def sync_many(
        self,
        source_ids: Iterable[uuid.UUID],
        *,
        trigger: str,
        delay_seconds: float,
    ) -> list[SourceSyncSummary]:
        summaries: list[SourceSyncSummary] = []
        for index, source_id in enumerate(source_ids):
            if index > 0 and delay_seconds > 0:
                self._sleep(delay_seconds)
            try:
                result = self.run_sync(source_id, trigger=trigger)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Sync failed source_id=%s error=%s", source_id, exc)
                summaries.append(SourceSyncSummary(source_id=source_id, error=str(exc)))
                continue
            summaries.append(SourceSyncSummary(source_id=source_id, result=result))

        succeeded = sum(1 for summary in summaries if summary.succeeded)
        logger.info(
            "Multi-source sync finished trigger=%s sources=%s succeeded=%s",
            trigger,
            len(summaries),
            succeeded,
        )
        return summaries


@lru_cache(maxsize=1)
def get_sheet_sync_service() -> SheetSyncService:
    return SheetSyncService()
