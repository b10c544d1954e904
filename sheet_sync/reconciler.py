"""
sheet_sync/reconciler.py

Pure three-way diff between decoded sheet rows and stored pipelines.

Matching runs in two passes. Every sheet record first claims the stored
record at its Position Key (quarterly sheet id, row number). Only then do
the remaining sheet records look for a Composite Key match among stored
records nobody claimed, which recovers rows that moved after inserts or
deletes above them. Position matches therefore always take priority over
composite matches, regardless of row order.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Collection, Mapping, Sequence
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sheet_sync.sanitizer import sanitize_text
from sheet_sync.schemas import COMPOSITE_KEY_FIELDS, SYNCABLE_FIELDS
from sheet_sync.types import (
    ChangeSet,
    MatchReason,
    PipelineUpdate,
    SheetPipeline,
    StoredPipeline,
)

NUMERIC_PRECISION = 4


def normalize_value(value: Any) -> Any:
    """
    Canonical form used for equality between sheet and stored values.

    Empty strings become None, strings are sanitized, numbers are rounded to
    four decimals and dates compare as calendar days.
    """

    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return round(float(value), NUMERIC_PRECISION)
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        text = sanitize_text(value)
        return text or None
    return value


def composite_key(fields: Mapping[str, Any]) -> str:
    parts = []
    for name in COMPOSITE_KEY_FIELDS:
        value = normalize_value(fields.get(name))
        parts.append("" if value is None else str(value))
    return "|".join(parts)


def changed_fields(sheet_fields: Mapping[str, Any], stored_fields: Mapping[str, Any]) -> tuple[str, ...]:
    """
    Syncable fields present on the sheet record whose values differ.
    """

    return tuple(
        name
        for name in SYNCABLE_FIELDS
        if name in sheet_fields
        and normalize_value(sheet_fields[name]) != normalize_value(stored_fields.get(name))
    )


def _syncable_values(sheet_fields: Mapping[str, Any]) -> dict[str, Any]:
    return {name: sheet_fields[name] for name in SYNCABLE_FIELDS if name in sheet_fields}


def _build_update(
    sheet_record: SheetPipeline,
    stored_record: StoredPipeline,
    match_reason: str,
) -> PipelineUpdate | None:
    diff = changed_fields(sheet_record.fields, stored_record.fields)
    moved = stored_record.sheet_row_number != sheet_record.sheet_row_number
    if not diff and not moved:
        return None
    return PipelineUpdate(
        pipeline_id=stored_record.id,
        key=sheet_record.key,
        values=_syncable_values(sheet_record.fields),
        match_reason=match_reason,
        sheet_row_number=sheet_record.sheet_row_number,
        previous_row_number=stored_record.sheet_row_number,
        changed_fields=diff,
        monthly_forecasts=sheet_record.monthly_forecasts,
    )


def find_duplicate_composite_keys(sheet: Sequence[SheetPipeline]) -> tuple[str, ...]:
    counts = Counter(composite_key(record.fields) for record in sheet)
    return tuple(key for key, count in counts.items() if count > 1)


def reconcile(
    sheet: Sequence[SheetPipeline],
    stored: Sequence[StoredPipeline],
    *,
    row_scope: Collection[int] | None = None,
) -> ChangeSet:
    """
    Compute the creates, updates and deletes that make ``stored`` match ``sheet``.

    ``row_scope`` limits deletions to stored records whose row number is in
    the scope; incremental runs pass the requested rows so records outside
    the partial read are never treated as removed.
    """

    stored_by_position: dict[tuple[Any, int], StoredPipeline] = {}
    for record in stored:
        position = record.position_key
        if position is not None:
            stored_by_position.setdefault(position, record)

    matched_ids: set[Any] = set()
    pairs: list[tuple[SheetPipeline, StoredPipeline, str]] = []
    unmatched_sheet: list[SheetPipeline] = []

    # Pass A: position matches.
    for sheet_record in sheet:
        candidate = stored_by_position.get(sheet_record.position_key)
        if candidate is not None and candidate.id not in matched_ids:
            matched_ids.add(candidate.id)
            pairs.append((sheet_record, candidate, MatchReason.POSITION))
        else:
            unmatched_sheet.append(sheet_record)

    # Pass B: composite matches against stored records no position claimed.
    stored_by_composite: dict[str, list[StoredPipeline]] = {}
    for record in stored:
        if record.id not in matched_ids:
            stored_by_composite.setdefault(composite_key(record.fields), []).append(record)

    to_create: list[SheetPipeline] = []
    for sheet_record in unmatched_sheet:
        candidates = stored_by_composite.get(composite_key(sheet_record.fields))
        if candidates:
            candidate = candidates.pop(0)
            matched_ids.add(candidate.id)
            pairs.append((sheet_record, candidate, MatchReason.COMPOSITE))
        else:
            to_create.append(sheet_record)

    to_update: list[PipelineUpdate] = []
    for sheet_record, stored_record, reason in pairs:
        update = _build_update(sheet_record, stored_record, reason)
        if update is not None:
            to_update.append(update)

    scope = set(row_scope) if row_scope is not None else None
    to_delete = [
        record
        for record in stored
        if record.id not in matched_ids
        and (scope is None or record.sheet_row_number in scope)
    ]

    return ChangeSet(
        to_create=to_create,
        to_update=to_update,
        to_delete=to_delete,
        duplicate_composite_keys=find_duplicate_composite_keys(sheet),
    )
