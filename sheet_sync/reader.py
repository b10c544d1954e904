"""
sheet_sync/reader.py

Google Sheets implementation of BaseSheetReader.

Reads are unformatted (raw numbers, serial dates) so the transformer sees
the same values regardless of each cell's display format. API errors are
not caught here; the orchestrator classifies them.
"""

from __future__ import annotations

import logging
import unicodedata
from collections.abc import Iterable
from typing import Any

from sheet_sync.base import FIRST_DATA_ROW, HEADER_ROWS, BaseSheetReader
from sheet_sync.types import SheetRow, SyncSource

logger = logging.getLogger(__name__)

FIRST_COLUMN = "A"
LAST_COLUMN = "CZ"
VALUE_RENDER_OPTION = "UNFORMATTED_VALUE"
DATE_TIME_RENDER_OPTION = "SERIAL_NUMBER"


def quote_sheet_name(sheet_name: str) -> str:
    return "'" + sheet_name.replace("'", "''") + "'"


def normalize_cell_encoding(value: Any) -> Any:
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    if isinstance(value, str):
        return unicodedata.normalize("NFC", value)
    return value


def _normalize_cells(cells: Iterable[Any]) -> tuple[Any, ...]:
    return tuple(normalize_cell_encoding(cell) for cell in cells)


class GoogleSheetsReader(BaseSheetReader):
    def __init__(self, service: Any) -> None:
        self._service = service

    def fetch_rows(self, source: SyncSource) -> list[SheetRow]:
        range_name = f"{quote_sheet_name(source.sheet_name)}!{FIRST_COLUMN}:{LAST_COLUMN}"
        response = (
            self._service.spreadsheets()
            .values()
            .get(
                spreadsheetId=source.spreadsheet_id,
                range=range_name,
                valueRenderOption=VALUE_RENDER_OPTION,
                dateTimeRenderOption=DATE_TIME_RENDER_OPTION,
            )
            .execute()
        )
        values = response.get("values", [])
        rows = [
            SheetRow(row_number=index + 1, cells=_normalize_cells(cells))
            for index, cells in enumerate(values)
            if index >= HEADER_ROWS
        ]
        logger.info(
            "Fetched sheet rows source_id=%s sheet=%r rows=%s",
            source.id,
            source.sheet_name,
            len(rows),
        )
        return rows

    def fetch_specific_rows(self, source: SyncSource, row_numbers: Iterable[int]) -> list[SheetRow]:
        requested = sorted({int(row) for row in row_numbers if int(row) >= FIRST_DATA_ROW})
        if not requested:
            return []

        quoted = quote_sheet_name(source.sheet_name)
        ranges = [f"{quoted}!{FIRST_COLUMN}{row}:{LAST_COLUMN}{row}" for row in requested]
        response = (
            self._service.spreadsheets()
            .values()
            .batchGet(
                spreadsheetId=source.spreadsheet_id,
                ranges=ranges,
                valueRenderOption=VALUE_RENDER_OPTION,
                dateTimeRenderOption=DATE_TIME_RENDER_OPTION,
            )
            .execute()
        )
        value_ranges = response.get("valueRanges", [])

        rows: list[SheetRow] = []
        for index, row_number in enumerate(requested):
            values = value_ranges[index].get("values", []) if index < len(value_ranges) else []
            cells = values[0] if values else []
            rows.append(SheetRow(row_number=row_number, cells=_normalize_cells(cells)))
        logger.info(
            "Fetched specific sheet rows source_id=%s sheet=%r rows=%s",
            source.id,
            source.sheet_name,
            requested,
        )
        return rows
