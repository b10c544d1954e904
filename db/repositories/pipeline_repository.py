"""
Repository for pipelines, their monthly forecasts and deletion archives.

Every write runs inside a SAVEPOINT so a failing row rolls back alone and
the surrounding sync transaction stays usable. Committing is left to the
caller.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import delete, inspect, select
from sqlalchemy.orm import Session

from db.models.pipeline import Pipeline, PipelineMonthlyForecast
from db.models.sync_audit import DeletedPipeline
from db.repositories.errors import PipelineNotFoundError
from sheet_sync.types import ArchiveSnapshot, MonthlyForecast, SheetPipeline, StoredPipeline

_FORECAST_FIELDS = (
    "year",
    "month",
    "end_date",
    "delivery_days",
    "validation_flag",
    "gross_revenue",
    "net_revenue",
    "notes",
)


def _column_names_to_attrs() -> dict[str, str]:
    mapper = inspect(Pipeline)
    return {prop.columns[0].name: prop.key for prop in mapper.column_attrs}


# Column name -> mapped attribute, e.g. "metadata" -> "metadata_".
_PIPELINE_COLUMNS = _column_names_to_attrs()
_PROTECTED_COLUMNS = frozenset({"id", "created_at", "updated_at"})


def to_jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Mapping):
        return {str(key): to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


def to_stored_pipeline(pipeline: Pipeline) -> StoredPipeline:
    fields = {column: getattr(pipeline, attr) for column, attr in _PIPELINE_COLUMNS.items()}
    return StoredPipeline(
        id=pipeline.id,
        quarterly_sheet_id=pipeline.quarterly_sheet_id,
        sheet_row_number=pipeline.sheet_row_number,
        fields=fields,
    )


def _assignable(values: Mapping[str, Any]) -> dict[str, Any]:
    return {
        _PIPELINE_COLUMNS[name]: value
        for name, value in values.items()
        if name in _PIPELINE_COLUMNS and name not in _PROTECTED_COLUMNS
    }


def _forecast_models(
    pipeline_id: uuid.UUID,
    forecasts: Sequence[MonthlyForecast],
) -> list[PipelineMonthlyForecast]:
    return [
        PipelineMonthlyForecast(
            pipeline_id=pipeline_id,
            **{name: getattr(forecast, name) for name in _FORECAST_FIELDS},
        )
        for forecast in forecasts
    ]


class PipelineRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def list_for_source(self, source_id: uuid.UUID) -> list[StoredPipeline]:
        stmt = (
            select(Pipeline)
            .where(Pipeline.quarterly_sheet_id == source_id)
            .order_by(Pipeline.sheet_row_number.asc().nulls_last(), Pipeline.created_at)
        )
        return [to_stored_pipeline(pipeline) for pipeline in self._session.scalars(stmt).all()]

    def insert_pipeline(self, record: SheetPipeline) -> uuid.UUID:
        values = _assignable(record.fields)
        values["quarterly_sheet_id"] = record.quarterly_sheet_id
        values["sheet_row_number"] = record.sheet_row_number
        with self._session.begin_nested():
            pipeline = Pipeline(**values)
            self._session.add(pipeline)
            self._session.flush()
            self._session.add_all(_forecast_models(pipeline.id, record.monthly_forecasts))
            self._session.flush()
        return pipeline.id

    def update_pipeline(
        self,
        pipeline_id: uuid.UUID,
        values: dict[str, Any],
        monthly_forecasts: Sequence[MonthlyForecast],
    ) -> None:
        with self._session.begin_nested():
            pipeline = self._session.get(Pipeline, pipeline_id)
            if pipeline is None:
                raise PipelineNotFoundError(f"Pipeline not found: {pipeline_id}")
            for attr, value in _assignable(values).items():
                setattr(pipeline, attr, value)
            if "publisher" in values:
                pipeline.name = pipeline.publisher
            self._session.execute(
                delete(PipelineMonthlyForecast).where(PipelineMonthlyForecast.pipeline_id == pipeline_id)
            )
            self._session.add_all(_forecast_models(pipeline_id, monthly_forecasts))
            self._session.flush()

    def list_monthly_forecasts(self, pipeline_id: uuid.UUID) -> list[dict[str, Any]]:
        stmt = (
            select(PipelineMonthlyForecast)
            .where(PipelineMonthlyForecast.pipeline_id == pipeline_id)
            .order_by(PipelineMonthlyForecast.year, PipelineMonthlyForecast.month)
        )
        return [
            {name: getattr(forecast, name) for name in ("id", *_FORECAST_FIELDS)}
            for forecast in self._session.scalars(stmt).all()
        ]

    def insert_archive(self, snapshot: ArchiveSnapshot) -> None:
        record = snapshot.pipeline
        fields = record.fields
        with self._session.begin_nested():
            self._session.add(
                DeletedPipeline(
                    pipeline_id=record.id,
                    quarterly_sheet_id=record.quarterly_sheet_id,
                    pipeline_snapshot=to_jsonable(fields),
                    monthly_forecasts_snapshot=to_jsonable(snapshot.monthly_forecasts),
                    key=fields.get("key"),
                    publisher=fields.get("publisher"),
                    poc=fields.get("poc"),
                    status=fields.get("status"),
                    proposal_date=fields.get("proposal_date"),
                    deletion_reason=snapshot.deletion_reason,
                    deletion_source=snapshot.deletion_source,
                    sync_run_id=snapshot.sync_run_id,
                )
            )
            self._session.flush()

    def delete_pipeline(self, pipeline_id: uuid.UUID) -> None:
        with self._session.begin_nested():
            result = self._session.execute(delete(Pipeline).where(Pipeline.id == pipeline_id))
            if result.rowcount == 0:
                raise PipelineNotFoundError(f"Pipeline not found: {pipeline_id}")
