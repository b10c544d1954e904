"""
tests/conftest.py

In-memory stand-ins for the sync engine collaborators.

The fakes implement the store, lease, reader and transaction interfaces
from sheet_sync.base so engine tests run without PostgreSQL or the Sheets
API.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime
from typing import Any

import pytest

from sheet_sync.base import FIRST_DATA_ROW, BaseSheetReader
from sheet_sync.types import (
    ArchiveSnapshot,
    MonthlyForecast,
    PipelineGroup,
    SheetPipeline,
    SheetRow,
    StoredPipeline,
    SyncRunRecord,
    SyncSource,
    SyncStatus,
)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeTransaction:
    def __init__(self) -> None:
        self.commits = 0
        self.rollbacks = 0
        self.fail_commit = False

    def commit(self) -> None:
        if self.fail_commit:
            raise RuntimeError("commit refused")
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1


class FakeSourceStore:
    def __init__(self, sources: Iterable[SyncSource] = ()) -> None:
        self.sources = {source.id: source for source in sources}
        self.sync_states: list[dict[str, Any]] = []
        self.fail_update = False

    def get_source(self, source_id: uuid.UUID) -> SyncSource | None:
        return self.sources.get(source_id)

    def update_sync_state(
        self,
        source_id: uuid.UUID,
        *,
        synced_at: datetime,
        status: str,
        error: str | None,
    ) -> None:
        if self.fail_update:
            raise RuntimeError("sync state write refused")
        self.sync_states.append(
            {"source_id": source_id, "synced_at": synced_at, "status": status, "error": error}
        )


class FakeRunStore:
    def __init__(self) -> None:
        self.runs: list[SyncRunRecord] = []
        self.fail = False

    def insert_run(self, record: SyncRunRecord) -> None:
        if self.fail:
            raise RuntimeError("run log table unavailable")
        self.runs.append(record)


class FakePipelineStore:
    """
    Dict-backed pipeline table. ``calls`` records every write in order.
    """

    def __init__(self) -> None:
        self.records: dict[uuid.UUID, StoredPipeline] = {}
        self.forecasts: dict[uuid.UUID, list[dict[str, Any]]] = {}
        self.archives: list[ArchiveSnapshot] = []
        self.calls: list[tuple[str, Any]] = []
        self.fail_create_keys: set[str] = set()
        self.fail_update_ids: set[uuid.UUID] = set()
        self.fail_archive_ids: set[uuid.UUID] = set()
        self.fail_delete_ids: set[uuid.UUID] = set()
        self.fail_list = False

    def add(
        self,
        source_id: uuid.UUID | None,
        row_number: int | None,
        fields: dict[str, Any],
    ) -> StoredPipeline:
        record = StoredPipeline(
            id=uuid.uuid4(),
            quarterly_sheet_id=source_id,
            sheet_row_number=row_number,
            fields=dict(fields),
        )
        self.records[record.id] = record
        self.forecasts[record.id] = []
        return record

    def list_for_source(self, source_id: uuid.UUID) -> list[StoredPipeline]:
        if self.fail_list:
            raise RuntimeError("pipelines table unavailable")
        return sorted(
            (record for record in self.records.values() if record.quarterly_sheet_id == source_id),
            key=lambda record: (record.sheet_row_number is None, record.sheet_row_number or 0),
        )

    def insert_pipeline(self, record: SheetPipeline) -> uuid.UUID:
        self.calls.append(("create", record.key))
        if record.key in self.fail_create_keys:
            raise RuntimeError("unique violation")
        stored = self.add(record.quarterly_sheet_id, record.sheet_row_number, record.fields)
        self.forecasts[stored.id] = [_forecast_dict(forecast) for forecast in record.monthly_forecasts]
        return stored.id

    def update_pipeline(
        self,
        pipeline_id: uuid.UUID,
        values: dict[str, Any],
        monthly_forecasts: Sequence[MonthlyForecast],
    ) -> None:
        self.calls.append(("update", pipeline_id))
        if pipeline_id in self.fail_update_ids:
            raise RuntimeError("row locked")
        current = self.records[pipeline_id]
        fields = {**current.fields, **values}
        fields.pop("sheet_row_number", None)
        if values.get("publisher"):
            fields["name"] = values["publisher"]
        self.records[pipeline_id] = StoredPipeline(
            id=pipeline_id,
            quarterly_sheet_id=current.quarterly_sheet_id,
            sheet_row_number=values.get("sheet_row_number", current.sheet_row_number),
            fields=fields,
        )
        self.forecasts[pipeline_id] = [_forecast_dict(forecast) for forecast in monthly_forecasts]

    def list_monthly_forecasts(self, pipeline_id: uuid.UUID) -> list[dict[str, Any]]:
        return list(self.forecasts.get(pipeline_id, []))

    def insert_archive(self, snapshot: ArchiveSnapshot) -> None:
        self.calls.append(("archive", snapshot.pipeline.id))
        if snapshot.pipeline.id in self.fail_archive_ids:
            raise RuntimeError("archive table unavailable")
        self.archives.append(snapshot)

    def delete_pipeline(self, pipeline_id: uuid.UUID) -> None:
        self.calls.append(("delete", pipeline_id))
        if pipeline_id in self.fail_delete_ids:
            raise RuntimeError("foreign key violation")
        del self.records[pipeline_id]
        self.forecasts.pop(pipeline_id, None)


def _forecast_dict(forecast: MonthlyForecast) -> dict[str, Any]:
    return {
        "year": forecast.year,
        "month": forecast.month,
        "end_date": forecast.end_date,
        "delivery_days": forecast.delivery_days,
        "validation_flag": forecast.validation_flag,
    }


class FakeLease:
    def __init__(self) -> None:
        self.holders: dict[uuid.UUID, str] = {}
        self.acquired: list[tuple[uuid.UUID, str, int]] = []
        self.released: list[tuple[uuid.UUID, str]] = []

    def acquire(self, source_id: uuid.UUID, holder: str, ttl_seconds: int) -> bool:
        if source_id in self.holders:
            return False
        self.holders[source_id] = holder
        self.acquired.append((source_id, holder, ttl_seconds))
        return True

    def release(self, source_id: uuid.UUID, holder: str) -> None:
        if self.holders.get(source_id) == holder:
            del self.holders[source_id]
        self.released.append((source_id, holder))


class FakeReader(BaseSheetReader):
    """
    Serves a fixed sheet; ``rows`` maps 1-based row numbers to cells.
    """

    def __init__(self, rows: dict[int, Sequence[Any]] | None = None) -> None:
        self.rows: dict[int, Sequence[Any]] = dict(rows or {})
        self.error: Exception | None = None
        self.full_reads = 0
        self.specific_reads: list[list[int]] = []

    def fetch_rows(self, source: SyncSource) -> list[SheetRow]:
        self.full_reads += 1
        if self.error is not None:
            raise self.error
        return [
            SheetRow(row_number=row_number, cells=tuple(cells))
            for row_number, cells in sorted(self.rows.items())
            if row_number >= FIRST_DATA_ROW
        ]

    def fetch_specific_rows(self, source: SyncSource, row_numbers: Iterable[int]) -> list[SheetRow]:
        requested = sorted(set(row_numbers))
        self.specific_reads.append(requested)
        if self.error is not None:
            raise self.error
        return [
            SheetRow(row_number=row_number, cells=tuple(self.rows.get(row_number, ())))
            for row_number in requested
            if row_number >= FIRST_DATA_ROW
        ]


# ---------------------------------------------------------------------------
# Row builders
# ---------------------------------------------------------------------------


def build_cells(values: dict[int, Any], width: int = 37) -> list[Any]:
    """Positional row with ``values`` placed at their 0-based column index."""
    size = max(width, max(values, default=0) + 1)
    cells: list[Any] = [""] * size
    for index, value in values.items():
        cells[index] = value
    return cells


def sales_row(
    key: str = "K-001",
    *,
    classification: str = "New",
    poc: str = "Aiko",
    publisher: str = "Publisher A",
    status: str = "【A】",
    extra: dict[int, Any] | None = None,
) -> list[Any]:
    values: dict[int, Any] = {0: key, 1: classification, 2: poc, 6: publisher, 28: status}
    values.update(extra or {})
    return build_cells(values)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def source() -> SyncSource:
    return SyncSource(
        id=uuid.uuid4(),
        spreadsheet_id="1AbCdEfGhIjK",
        sheet_name="FY2026 Q1",
        group=PipelineGroup.SALES,
        fiscal_year=2026,
        quarter=1,
        sync_status=SyncStatus.ACTIVE,
    )


@pytest.fixture()
def cells() -> Callable[..., list[Any]]:
    return build_cells


@pytest.fixture()
def make_sales_row() -> Callable[..., list[Any]]:
    return sales_row


@pytest.fixture()
def transaction() -> FakeTransaction:
    return FakeTransaction()


@pytest.fixture()
def source_store(source: SyncSource) -> FakeSourceStore:
    return FakeSourceStore([source])


@pytest.fixture()
def run_store() -> FakeRunStore:
    return FakeRunStore()


@pytest.fixture()
def pipeline_store() -> FakePipelineStore:
    return FakePipelineStore()


@pytest.fixture()
def lease() -> FakeLease:
    return FakeLease()


@pytest.fixture()
def reader() -> FakeReader:
    return FakeReader()
