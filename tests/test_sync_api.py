"""
tests/test_sync_api.py

HTTP contract of the quarterly sheet and webhook routers, with the
services and database session replaced through dependency overrides.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.routers import quarterly_sheets_router, sheet_webhook_router
from app.config import get_sheet_sync_settings
from app.services.quarterly_sheet_service import (
    InvalidSpreadsheetReferenceError,
    get_quarterly_sheet_service,
)
from app.services.sheet_sync_service import get_sheet_sync_service
from db.repositories.errors import QuarterlySheetConflictError, QuarterlySheetNotFoundError
from db.session import get_db
from sheet_sync.errors import (
    SourceErrorType,
    SourceInactiveError,
    SourceNotFoundError,
    SourceUnavailableError,
    SyncInProgressError,
)
from sheet_sync.google_client import GoogleCredentialsError
from sheet_sync.types import DeleteOutcome, SyncOutcome, SyncResult, SyncStatus, SyncTrigger, SyncType

NOW = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)
UNARCHIVED_ID = uuid.uuid4()
SHEET_ID = uuid.uuid4()
TOKEN = "a" * 64


def _sheet(**overrides: Any) -> SimpleNamespace:
    values: dict[str, Any] = {
        "id": SHEET_ID,
        "fiscal_year": 2026,
        "quarter": 1,
        "group": "sales",
        "spreadsheet_id": "1AbCdEfGhIjK",
        "sheet_name": "FY2026 Q1",
        "sheet_url": None,
        "sync_status": SyncStatus.ACTIVE,
        "last_sync_at": None,
        "last_sync_status": None,
        "last_sync_error": None,
        "webhook_token": TOKEN,
        "created_at": NOW,
        "updated_at": NOW,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def _run(**overrides: Any) -> SimpleNamespace:
    values: dict[str, Any] = {
        "id": uuid.uuid4(),
        "quarterly_sheet_id": SHEET_ID,
        "sync_type": SyncType.FULL,
        "trigger": SyncTrigger.SCHEDULED,
        "direction": "sheet_to_db",
        "target_sheet": "FY2026 Q1",
        "outcome": SyncOutcome.SUCCESS,
        "rows_processed": 10,
        "rows_created": 1,
        "rows_updated": 2,
        "rows_deleted": 0,
        "rows_skipped": 0,
        "errors": [],
        "error_type": None,
        "error_message": None,
        "duration_ms": 850,
        "created_at": NOW,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class FakeQuarterlySheetService:
    def __init__(self) -> None:
        self.sheets: dict[uuid.UUID, SimpleNamespace] = {SHEET_ID: _sheet()}
        self.register_error: Exception | None = None
        self.registered: list[dict[str, Any]] = []
        self.run_limits: list[int] = []

    def register_sheet(self, *, db, **kwargs: Any) -> SimpleNamespace:
        if self.register_error is not None:
            raise self.register_error
        self.registered.append(kwargs)
        return _sheet(
            id=uuid.uuid4(),
            group=kwargs["group"],
            sheet_name=kwargs["sheet_name"],
            fiscal_year=kwargs["fiscal_year"],
            quarter=kwargs["quarter"],
        )

    def list_sheets(self, *, db, sync_status=None, fiscal_year=None, group=None) -> list[SimpleNamespace]:
        return [sheet for sheet in self.sheets.values() if sync_status in (None, sheet.sync_status)]

    def set_sync_status(self, *, db, sheet_id: uuid.UUID, sync_status: str) -> SimpleNamespace:
        sheet = self.sheets.get(sheet_id)
        if sheet is None:
            raise QuarterlySheetNotFoundError(f"Quarterly sheet not found: {sheet_id}")
        sheet.sync_status = sync_status
        return sheet

    def get_sheet(self, *, db, sheet_id: uuid.UUID) -> SimpleNamespace | None:
        return self.sheets.get(sheet_id)

    def get_by_webhook_token(self, *, db, token: str) -> SimpleNamespace | None:
        return next((sheet for sheet in self.sheets.values() if sheet.webhook_token == token), None)

    def list_runs(self, *, db, sheet_id: uuid.UUID, limit: int) -> list[SimpleNamespace]:
        self.run_limits.append(limit)
        return [_run(), _run(outcome=SyncOutcome.PARTIAL, errors=["Create failed for K1: boom"])]


class FakeSheetSyncService:
    def __init__(self) -> None:
        self.error: Exception | None = None
        self.calls: list[tuple[uuid.UUID, Any, str]] = []
        self.quiet_calls: list[tuple[uuid.UUID, Any, str]] = []

    def run_sync(self, source_id: uuid.UUID, row_numbers=None, *, trigger: str) -> SyncResult:
        self.calls.append((source_id, row_numbers, trigger))
        if self.error is not None:
            raise self.error
        return SyncResult(
            run_id=uuid.uuid4(),
            source_id=source_id,
            outcome=SyncOutcome.PARTIAL,
            total=4,
            created=1,
            updated=1,
            deleted=1,
            skipped=1,
            errors=["Create failed for K-9: unique violation"],
            warnings=["Row 6: invalid status 'Hot', using default 【E】"],
            duration_ms=120,
            unarchived_deletes=[
                DeleteOutcome(
                    pipeline_id=UNARCHIVED_ID,
                    key="K-3",
                    archived=False,
                    deleted=True,
                    archive_error="archive table unavailable",
                )
            ],
        )

    def run_sync_quietly(self, source_id: uuid.UUID, row_numbers=None, *, trigger: str) -> None:
        self.quiet_calls.append((source_id, row_numbers, trigger))


@pytest.fixture()
def sheet_service() -> FakeQuarterlySheetService:
    return FakeQuarterlySheetService()


@pytest.fixture()
def sync_service() -> FakeSheetSyncService:
    return FakeSheetSyncService()


@pytest.fixture()
def client(sheet_service, sync_service) -> Iterator[TestClient]:
    def _db() -> Iterator[MagicMock]:
        yield MagicMock()

    app = FastAPI()
    app.include_router(quarterly_sheets_router)
    app.include_router(sheet_webhook_router)
    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_quarterly_sheet_service] = lambda: sheet_service
    app.dependency_overrides[get_sheet_sync_service] = lambda: sync_service

    with TestClient(app) as test_client:
        yield test_client


# ---------------------------------------------------------------------------
# Registration and administration
# ---------------------------------------------------------------------------


class TestRegistration:
    payload = {
        "spreadsheet": "https://docs.google.com/spreadsheets/d/1AbCdEfGhIjK/edit#gid=0",
        "sheet_name": "FY2026 Q2",
        "group": "cs",
        "fiscal_year": 2026,
        "quarter": 2,
    }

    def test_register_returns_webhook_token(self, client, sheet_service) -> None:
        response = client.post("/pipelines/quarterly-sheets", json=self.payload)

        assert response.status_code == 201
        body = response.json()
        assert body["webhook_token"] == TOKEN
        assert body["group"] == "cs"
        assert sheet_service.registered[0]["spreadsheet"] == self.payload["spreadsheet"]

    def test_unknown_group_is_rejected_by_schema(self, client) -> None:
        response = client.post("/pipelines/quarterly-sheets", json={**self.payload, "group": "marketing"})
        assert response.status_code == 422

    def test_invalid_reference_is_422(self, client, sheet_service) -> None:
        sheet_service.register_error = InvalidSpreadsheetReferenceError("Cannot extract a spreadsheet id")
        response = client.post("/pipelines/quarterly-sheets", json=self.payload)
        assert response.status_code == 422

    def test_duplicate_period_is_409(self, client, sheet_service) -> None:
        sheet_service.register_error = QuarterlySheetConflictError("already registered")
        response = client.post("/pipelines/quarterly-sheets", json=self.payload)
        assert response.status_code == 409


def test_list_sheets_hides_webhook_token(client) -> None:
    response = client.get("/pipelines/quarterly-sheets")

    assert response.status_code == 200
    sheets = response.json()["sheets"]
    assert [sheet["id"] for sheet in sheets] == [str(SHEET_ID)]
    assert "webhook_token" not in sheets[0]


def test_pause_sheet(client, sheet_service) -> None:
    response = client.patch(f"/pipelines/quarterly-sheets/{SHEET_ID}", json={"sync_status": "paused"})

    assert response.status_code == 200
    assert response.json()["sync_status"] == "paused"


def test_pause_unknown_sheet_is_404(client) -> None:
    response = client.patch(f"/pipelines/quarterly-sheets/{uuid.uuid4()}", json={"sync_status": "paused"})
    assert response.status_code == 404


def test_sync_runs_history(client, sheet_service) -> None:
    response = client.get(f"/pipelines/quarterly-sheets/{SHEET_ID}/sync-runs", params={"limit": 5})

    assert response.status_code == 200
    runs = response.json()["runs"]
    assert [run["outcome"] for run in runs] == ["success", "partial"]
    assert sheet_service.run_limits == [5]


def test_sync_runs_history_default_limit(client, sheet_service) -> None:
    client.get(f"/pipelines/quarterly-sheets/{SHEET_ID}/sync-runs")
    assert sheet_service.run_limits == [get_sheet_sync_settings().run_history_limit]


def test_sync_runs_for_unknown_sheet_is_404(client) -> None:
    response = client.get(f"/pipelines/quarterly-sheets/{uuid.uuid4()}/sync-runs")
    assert response.status_code == 404


# ---------------------------------------------------------------------------
# Manual sync
# ---------------------------------------------------------------------------


def test_manual_sync_returns_summary(client, sync_service) -> None:
    response = client.post(f"/pipelines/quarterly-sheets/{SHEET_ID}/sync", json={"row_numbers": [6, 4]})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["outcome"] == "partial"
    assert body["quarterly_sheet_id"] == str(SHEET_ID)
    assert body["errors"] == ["Create failed for K-9: unique violation"]
    assert body["unarchived_deletes"] == [
        {"pipeline_id": str(UNARCHIVED_ID), "key": "K-3", "archive_error": "archive table unavailable"}
    ]
    assert sync_service.calls == [(SHEET_ID, [6, 4], SyncTrigger.MANUAL)]


def test_manual_sync_without_body_is_full(client, sync_service) -> None:
    response = client.post(f"/pipelines/quarterly-sheets/{SHEET_ID}/sync")

    assert response.status_code == 200
    assert sync_service.calls == [(SHEET_ID, None, SyncTrigger.MANUAL)]


@pytest.mark.parametrize(
    ("error", "status_code"),
    [
        (SourceNotFoundError(SHEET_ID), 404),
        (SourceInactiveError(SHEET_ID, SyncStatus.PAUSED), 423),
        (SyncInProgressError(SHEET_ID), 409),
        (GoogleCredentialsError("credentials missing"), 503),
    ],
)
def test_manual_sync_error_mapping(client, sync_service, error, status_code) -> None:
    sync_service.error = error
    response = client.post(f"/pipelines/quarterly-sheets/{SHEET_ID}/sync")
    assert response.status_code == status_code


def test_unreadable_sheet_is_502_with_error_type(client, sync_service) -> None:
    sync_service.error = SourceUnavailableError("Failed to read sheet", error_type=SourceErrorType.PERMISSION_DENIED)

    response = client.post(f"/pipelines/quarterly-sheets/{SHEET_ID}/sync")

    assert response.status_code == 502
    assert response.json()["detail"] == {
        "message": "Failed to read sheet",
        "error_type": SourceErrorType.PERMISSION_DENIED,
    }


# ---------------------------------------------------------------------------
# Webhook
# ---------------------------------------------------------------------------


class TestSheetChangedWebhook:
    url = "/pipelines/webhook/sheet-changed"

    def test_changed_rows_schedule_incremental_sync(self, client, sync_service) -> None:
        response = client.post(
            self.url,
            json={"token": TOKEN, "spreadsheet_id": "1AbCdEfGhIjK", "changed_rows": [9, 4, 9]},
        )

        assert response.status_code == 202
        body = response.json()
        assert body["sync_type"] == SyncType.INCREMENTAL
        assert body["changed_rows"] == [4, 9]
        assert sync_service.quiet_calls == [(SHEET_ID, [4, 9], SyncTrigger.WEBHOOK)]

    def test_no_rows_schedules_full_sync(self, client, sync_service) -> None:
        response = client.post(self.url, json={"token": TOKEN, "spreadsheet_id": "1AbCdEfGhIjK"})

        assert response.status_code == 202
        assert response.json()["sync_type"] == SyncType.FULL
        assert sync_service.quiet_calls == [(SHEET_ID, None, SyncTrigger.WEBHOOK)]

    def test_unknown_token_is_401(self, client, sync_service) -> None:
        response = client.post(self.url, json={"token": "b" * 64, "spreadsheet_id": "1AbCdEfGhIjK"})

        assert response.status_code == 401
        assert sync_service.quiet_calls == []

    def test_spreadsheet_mismatch_is_403(self, client, sync_service) -> None:
        response = client.post(self.url, json={"token": TOKEN, "spreadsheet_id": "someone-else"})

        assert response.status_code == 403
        assert sync_service.quiet_calls == []

    def test_paused_sheet_is_423(self, client, sheet_service, sync_service) -> None:
        sheet_service.sheets[SHEET_ID].sync_status = SyncStatus.PAUSED

        response = client.post(self.url, json={"token": TOKEN, "spreadsheet_id": "1AbCdEfGhIjK"})

        assert response.status_code == 423
        assert sync_service.quiet_calls == []
