"""
sheet_sync/transformer.py

Schema-driven decoding of sanitized sheet rows into SheetPipeline records.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from sheet_sync.errors import RowTransformationError
from sheet_sync.parsers import (
    is_blank,
    parse_boolean,
    parse_date,
    parse_decimal,
    parse_integer,
    parse_string,
)
from sheet_sync.schemas import (
    QUARTERLY_BREAKDOWN_COLUMNS,
    ColumnSpec,
    GroupSchema,
    ValueKind,
    get_group_schema,
)
from sheet_sync.types import MonthlyForecast, SheetPipeline, SyncSource

logger = logging.getLogger(__name__)

UNKNOWN_PUBLISHER = "Unknown Publisher"
UNKNOWN_POC = "Unknown"

_PARSERS: dict[str, Callable[[Any], Any]] = {
    ValueKind.STRING: parse_string,
    ValueKind.DECIMAL: parse_decimal,
    ValueKind.INTEGER: parse_integer,
    ValueKind.DATE: parse_date,
    ValueKind.BOOLEAN: parse_boolean,
}


def _cell(cells: Sequence[Any], index: int) -> Any:
    return cells[index] if index < len(cells) else None


def decode_cell(value: Any, kind: str) -> Any:
    try:
        parser = _PARSERS[kind]
    except KeyError as exc:
        raise ValueError(f"Unsupported column kind '{kind}'.") from exc
    return parser(value)


def _decode_columns(cells: Sequence[Any], columns: Sequence[ColumnSpec]) -> dict[str, Any]:
    decoded: dict[str, Any] = {}
    for spec in columns:
        value = decode_cell(_cell(cells, spec.index), spec.kind)
        if value is None and spec.default is not None:
            value = spec.default
        decoded[spec.field] = value
    return decoded


def column_letter(index: int) -> str:
    letters = ""
    index += 1
    while index:
        index, remainder = divmod(index - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def _populated_width(cells: Sequence[Any]) -> int:
    width = 0
    for index, value in enumerate(cells):
        if not is_blank(value):
            width = index + 1
    return width


def is_spacer_row(cells: Sequence[Any]) -> bool:
    """
    Rows with columns A, B and C all empty separate sections of the sheet.
    """

    return all(is_blank(_cell(cells, index)) for index in range(3))


class RowTransformer:
    """
    Decodes positional rows for one sync source.

    The group schema is resolved once; ``transform`` is pure apart from
    warning logs.
    """

    def __init__(self, source: SyncSource, schema: GroupSchema | None = None) -> None:
        self.source = source
        self.schema = schema or get_group_schema(source.group)

    def transform(self, row_number: int, cells: Sequence[Any]) -> SheetPipeline | None:
        if is_spacer_row(cells):
            return None

        width = _populated_width(cells)
        if width < self.schema.min_columns:
            raise RowTransformationError(
                row_number,
                f"row has {width} populated columns, expected at least {self.schema.min_columns}",
            )

        fields: dict[str, Any] = dict(self.schema.defaults)
        for name, value in _decode_columns(cells, self.schema.columns).items():
            if value is not None or name not in fields:
                fields[name] = value

        warnings: list[str] = []
        self._apply_fallbacks(fields)
        self._check_required(row_number, fields)
        self._normalize_status(row_number, fields, warnings)
        self._clamp_progress(fields)

        fields["group"] = self.schema.group
        fields["fiscal_year"] = self.source.fiscal_year
        fields["metadata"] = self._extract_metadata(cells)

        return SheetPipeline(
            quarterly_sheet_id=self.source.id,
            sheet_row_number=row_number,
            fields=fields,
            monthly_forecasts=tuple(self._extract_monthly_forecasts(cells)),
            warnings=tuple(warnings),
        )

    # ------------------------------------------------------------------
    # Derived fields
    # ------------------------------------------------------------------

    @staticmethod
    def _apply_fallbacks(fields: dict[str, Any]) -> None:
        if not fields.get("publisher"):
            fields["publisher"] = fields.get("domain") or UNKNOWN_PUBLISHER
        if not fields.get("poc"):
            fields["poc"] = UNKNOWN_POC
        fields["name"] = fields["publisher"]

    def _check_required(self, row_number: int, fields: dict[str, Any]) -> None:
        for spec in self.schema.columns:
            if spec.required and is_blank(fields.get(spec.field)):
                raise RowTransformationError(
                    row_number,
                    f"required column {column_letter(spec.index)} ({spec.field}) is empty",
                )

    def _normalize_status(
        self,
        row_number: int,
        fields: dict[str, Any],
        warnings: list[str],
    ) -> None:
        status = fields.get("status")
        if status in self.schema.valid_statuses:
            return
        message = (
            f"Row {row_number}: invalid status {status!r}, "
            f"using default {self.schema.default_status}"
        )
        logger.warning(
            "Invalid pipeline status row=%s status=%r source_id=%s",
            row_number,
            status,
            self.source.id,
        )
        warnings.append(message)
        fields["status"] = self.schema.default_status

    @staticmethod
    def _clamp_progress(fields: dict[str, Any]) -> None:
        progress = fields.get("progress_percent")
        if progress is None:
            return
        fields["progress_percent"] = max(0, min(100, progress))

    def _extract_metadata(self, cells: Sequence[Any]) -> dict[str, Any]:
        metadata = _decode_columns(cells, self.schema.metadata_columns)
        breakdown: dict[str, dict[str, float | None]] = {}
        for index, section, month in QUARTERLY_BREAKDOWN_COLUMNS:
            breakdown.setdefault(section, {})[month] = parse_decimal(_cell(cells, index))
        metadata["quarterly_breakdown"] = breakdown
        return metadata

    def _extract_monthly_forecasts(self, cells: Sequence[Any]) -> list[MonthlyForecast]:
        blocks = self.schema.monthly_blocks
        if not blocks:
            return []

        forecasts: list[MonthlyForecast] = []
        for offset in range(max(block.count for block in blocks)):
            values: dict[str, Any] = {}
            for block in blocks:
                if offset < block.count:
                    values[block.field] = decode_cell(_cell(cells, block.start + offset), block.kind)
            if all(value is None for value in values.values()):
                continue
            year = self.source.fiscal_year + offset // 12
            month = offset % 12 + 1
            forecasts.append(MonthlyForecast(year=year, month=month, **values))
        return forecasts


def transform_rows(
    source: SyncSource,
    rows: Sequence[tuple[int, Sequence[Any]]],
) -> tuple[list[SheetPipeline], list[str], int]:
    """
    Transform many rows, collecting warnings instead of raising.

    Returns (pipelines, warnings, skipped_count).
    """

    transformer = RowTransformer(source)
    pipelines: list[SheetPipeline] = []
    warnings: list[str] = []
    skipped = 0
    for row_number, cells in rows:
        try:
            pipeline = transformer.transform(row_number, cells)
        except RowTransformationError as exc:
            logger.warning("Skipping row source_id=%s error=%s", source.id, exc)
            warnings.append(str(exc))
            skipped += 1
            continue
        if pipeline is None:
            continue
        warnings.extend(pipeline.warnings)
        pipelines.append(pipeline)
    return pipelines, warnings, skipped
