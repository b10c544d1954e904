"""
tests/test_executor.py

BatchExecutor against the in-memory pipeline store.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Any

import pytest

from sheet_sync.executor import DELETION_REASON_REMOVED, DELETION_SOURCE_SHEET_SYNC, BatchExecutor
from sheet_sync.reconciler import reconcile
from sheet_sync.types import ChangeSet, MonthlyForecast, SheetPipeline

RUN_ID = uuid.uuid4()


def _fields(key: str, **overrides: Any) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "key": key,
        "classification": "New",
        "poc": "Aiko",
        "publisher": f"Publisher {key}",
        "proposal_date": date(2026, 1, 5),
        "status": "【A】",
    }
    fields.update(overrides)
    return fields


def _sheet(source_id: uuid.UUID, row: int, key: str, **overrides: Any) -> SheetPipeline:
    return SheetPipeline(quarterly_sheet_id=source_id, sheet_row_number=row, fields=_fields(key, **overrides))


@pytest.fixture()
def executor(pipeline_store) -> BatchExecutor:
    return BatchExecutor(pipeline_store)


def test_applies_updates_then_creates_then_deletes(source, pipeline_store, executor) -> None:
    kept = pipeline_store.add(source.id, 3, _fields("K1"))
    removed = pipeline_store.add(source.id, 4, _fields("K2"))
    changes = reconcile(
        [_sheet(source.id, 3, "K1", status="【B】"), _sheet(source.id, 5, "K3")],
        pipeline_store.list_for_source(source.id),
    )

    result = executor.execute(changes, sync_run_id=RUN_ID)

    assert [call[0] for call in pipeline_store.calls] == ["update", "create", "archive", "delete"]
    assert (result.created, result.updated, result.deleted) == (1, 1, 1)
    assert result.errors == []
    assert pipeline_store.records[kept.id].fields["status"] == "【B】"
    assert removed.id not in pipeline_store.records


def test_moved_row_gets_new_row_number(source, pipeline_store, executor) -> None:
    stored = pipeline_store.add(source.id, 3, _fields("K1"))
    changes = reconcile([_sheet(source.id, 8, "K1")], pipeline_store.list_for_source(source.id))

    executor.execute(changes, sync_run_id=RUN_ID)

    assert pipeline_store.records[stored.id].sheet_row_number == 8


def test_update_replaces_monthly_forecasts(source, pipeline_store, executor) -> None:
    stored = pipeline_store.add(source.id, 3, _fields("K1"))
    record = SheetPipeline(
        quarterly_sheet_id=source.id,
        sheet_row_number=3,
        fields=_fields("K1", status="【S】"),
        monthly_forecasts=(MonthlyForecast(year=2026, month=2, delivery_days=10),),
    )

    executor.execute(reconcile([record], [stored]), sync_run_id=RUN_ID)

    assert pipeline_store.forecasts[stored.id] == [
        {"year": 2026, "month": 2, "end_date": None, "delivery_days": 10, "validation_flag": None}
    ]


def test_create_failure_is_recorded_and_batch_continues(source, pipeline_store, executor) -> None:
    pipeline_store.fail_create_keys.add("K1")
    changes = ChangeSet(to_create=[_sheet(source.id, 3, "K1"), _sheet(source.id, 4, "K2")])

    result = executor.execute(changes, sync_run_id=RUN_ID)

    assert result.created == 1
    assert result.errors == ["Create failed for K1: unique violation"]


def test_update_failure_is_recorded(source, pipeline_store, executor) -> None:
    stored = pipeline_store.add(source.id, 3, _fields("K1"))
    pipeline_store.fail_update_ids.add(stored.id)
    changes = reconcile([_sheet(source.id, 3, "K1", status="【C】")], [stored])

    result = executor.execute(changes, sync_run_id=RUN_ID)

    assert result.updated == 0
    assert result.errors == ["Update failed for K1: row locked"]


def test_delete_archives_snapshot_with_children(source, pipeline_store, executor) -> None:
    stored = pipeline_store.add(source.id, 3, _fields("K1"))
    pipeline_store.forecasts[stored.id] = [{"year": 2026, "month": 1, "delivery_days": 4}]

    result = executor.execute(ChangeSet(to_delete=[stored]), sync_run_id=RUN_ID)

    assert result.deleted == 1
    snapshot = pipeline_store.archives[0]
    assert snapshot.pipeline == stored
    assert snapshot.monthly_forecasts == [{"year": 2026, "month": 1, "delivery_days": 4}]
    assert snapshot.deletion_reason == DELETION_REASON_REMOVED
    assert snapshot.deletion_source == DELETION_SOURCE_SHEET_SYNC
    assert snapshot.sync_run_id == RUN_ID
    outcome = result.delete_outcomes[0]
    assert outcome.archived and outcome.deleted
    assert not outcome.deleted_without_backup


def test_archive_failure_still_deletes_and_is_surfaced(source, pipeline_store, executor) -> None:
    stored = pipeline_store.add(source.id, 3, _fields("K1"))
    pipeline_store.fail_archive_ids.add(stored.id)

    result = executor.execute(ChangeSet(to_delete=[stored]), sync_run_id=RUN_ID)

    assert result.deleted == 1
    assert stored.id not in pipeline_store.records
    assert result.errors == ["Archive failed for K1: archive table unavailable"]
    outcome = result.delete_outcomes[0]
    assert outcome.deleted_without_backup
    assert outcome.archive_error == "archive table unavailable"


def test_delete_failure_keeps_archive(source, pipeline_store, executor) -> None:
    stored = pipeline_store.add(source.id, 3, _fields("K1"))
    pipeline_store.fail_delete_ids.add(stored.id)

    result = executor.execute(ChangeSet(to_delete=[stored]), sync_run_id=RUN_ID)

    assert result.deleted == 0
    assert result.errors == ["Delete failed for K1: foreign key violation"]
    outcome = result.delete_outcomes[0]
    assert outcome.archived and not outcome.deleted
    assert outcome.delete_error == "foreign key violation"
