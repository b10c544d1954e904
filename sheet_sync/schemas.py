"""
sheet_sync/schemas.py

Column layout of the quarterly pipeline sheets, one schema per group.

Column indices are 0-based (column A = 0). These tables are configuration
data; the decoding logic that consumes them lives in transformer.py.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sheet_sync.types import PipelineGroup


class ValueKind:
    STRING = "string"
    DECIMAL = "decimal"
    INTEGER = "integer"
    DATE = "date"
    BOOLEAN = "boolean"


@dataclass(frozen=True)
class ColumnSpec:
    index: int
    field: str
    kind: str = ValueKind.STRING
    required: bool = False
    default: Any = None


@dataclass(frozen=True)
class MonthlyColumnBlock:
    """
    A run of consecutive month columns holding one forecast attribute.
    """

    start: int
    count: int
    field: str
    kind: str


@dataclass(frozen=True)
class GroupSchema:
    group: str
    columns: tuple[ColumnSpec, ...]
    metadata_columns: tuple[ColumnSpec, ...]
    monthly_blocks: tuple[MonthlyColumnBlock, ...]
    valid_statuses: frozenset[str]
    default_status: str
    defaults: dict[str, Any] = field(default_factory=dict)
    # Rows whose populated cells end before this column count are rejected.
    min_columns: int = 3


VALID_STATUSES = frozenset(
    {
        "【S】",
        "【S-】",
        "【A】",
        "【B】",
        "【C+】",
        "【C】",
        "【C-】",
        "【D】",
        "【E】",
        "【Z】",
    }
)

DEFAULT_STATUS = "【E】"

DEFAULT_VALUES: dict[str, Any] = {
    "status": DEFAULT_STATUS,
    "progress_percent": 0,
    "forecast_type": "estimate",
}

# 15 months starting January of the fiscal year; identical for both groups.
MONTHLY_BLOCKS: tuple[MonthlyColumnBlock, ...] = (
    MonthlyColumnBlock(start=49, count=15, field="end_date", kind=ValueKind.DATE),
    MonthlyColumnBlock(start=64, count=15, field="delivery_days", kind=ValueKind.INTEGER),
    MonthlyColumnBlock(start=79, count=15, field="validation_flag", kind=ValueKind.BOOLEAN),
)

_SHARED_METADATA_COLUMNS: tuple[ColumnSpec, ...] = (
    ColumnSpec(12, "pipeline_quarter"),
    ColumnSpec(95, "estimate_total", ValueKind.DECIMAL),
    ColumnSpec(96, "out_of_estimate_total", ValueKind.DECIMAL),
    ColumnSpec(97, "max_total", ValueKind.DECIMAL),
    ColumnSpec(98, "report_text"),
    ColumnSpec(100, "masaya_check", ValueKind.BOOLEAN),
)

# Quarterly breakdown columns 37-48: (section, month position) per column.
QUARTERLY_BREAKDOWN_COLUMNS: tuple[tuple[int, str, str], ...] = tuple(
    (37 + section_index * 3 + month_index, section, month)
    for section_index, section in enumerate(("gross", "net", "max_gross", "max_net"))
    for month_index, month in enumerate(("first_month", "middle_month", "last_month"))
)


SALES_SCHEMA = GroupSchema(
    group=PipelineGroup.SALES,
    columns=(
        ColumnSpec(0, "key", required=True),
        ColumnSpec(1, "classification"),
        ColumnSpec(2, "poc", required=True),
        ColumnSpec(3, "team"),
        ColumnSpec(5, "pid"),
        ColumnSpec(6, "publisher", required=True),
        ColumnSpec(7, "mid"),
        ColumnSpec(8, "domain"),
        ColumnSpec(9, "zid"),
        ColumnSpec(10, "channel"),
        ColumnSpec(11, "competitors"),
        ColumnSpec(13, "description"),
        ColumnSpec(14, "product"),
        ColumnSpec(15, "day_gross", ValueKind.DECIMAL),
        ColumnSpec(16, "day_net_rev", ValueKind.DECIMAL),
        ColumnSpec(17, "imp", ValueKind.INTEGER),
        ColumnSpec(18, "ecpm", ValueKind.DECIMAL),
        ColumnSpec(19, "max_gross", ValueKind.DECIMAL),
        ColumnSpec(20, "revenue_share", ValueKind.DECIMAL),
        ColumnSpec(22, "next_action"),
        ColumnSpec(23, "action_detail"),
        ColumnSpec(24, "action_progress"),
        ColumnSpec(27, "starting_date", ValueKind.DATE),
        ColumnSpec(28, "status", default=DEFAULT_STATUS),
        ColumnSpec(29, "progress_percent", ValueKind.INTEGER),
        ColumnSpec(30, "proposal_date", ValueKind.DATE),
        ColumnSpec(31, "interested_date", ValueKind.DATE),
        ColumnSpec(32, "acceptance_date", ValueKind.DATE),
        ColumnSpec(33, "ready_to_deliver_date", ValueKind.DATE),
        ColumnSpec(34, "closed_date", ValueKind.DATE),
        ColumnSpec(35, "q_gross", ValueKind.DECIMAL),
        ColumnSpec(36, "q_net_rev", ValueKind.DECIMAL),
    ),
    metadata_columns=(
        ColumnSpec(4, "ma_mi"),
        ColumnSpec(21, "action_date_note"),
        ColumnSpec(25, "update_target"),
        *_SHARED_METADATA_COLUMNS,
    ),
    monthly_blocks=MONTHLY_BLOCKS,
    valid_statuses=VALID_STATUSES,
    default_status=DEFAULT_STATUS,
    defaults=DEFAULT_VALUES,
)


CS_SCHEMA = GroupSchema(
    group=PipelineGroup.CS,
    columns=(
        ColumnSpec(0, "key", required=True),
        ColumnSpec(1, "classification"),
        ColumnSpec(2, "poc", required=True),
        ColumnSpec(3, "team"),
        ColumnSpec(5, "pid"),
        ColumnSpec(6, "publisher", required=True),
        ColumnSpec(7, "mid"),
        ColumnSpec(8, "domain"),
        ColumnSpec(9, "zid"),
        ColumnSpec(10, "channel"),
        ColumnSpec(11, "competitors"),
        ColumnSpec(13, "description"),
        ColumnSpec(14, "product"),
        ColumnSpec(15, "day_gross", ValueKind.DECIMAL),
        ColumnSpec(16, "day_net_rev", ValueKind.DECIMAL),
        ColumnSpec(17, "imp", ValueKind.INTEGER),
        ColumnSpec(18, "ecpm", ValueKind.DECIMAL),
        ColumnSpec(19, "max_gross", ValueKind.DECIMAL),
        ColumnSpec(20, "revenue_share", ValueKind.DECIMAL),
        ColumnSpec(22, "action_date", ValueKind.DATE),
        ColumnSpec(23, "action_detail"),
        ColumnSpec(24, "action_progress"),
        ColumnSpec(25, "next_action"),
        ColumnSpec(27, "starting_date", ValueKind.DATE),
        ColumnSpec(28, "status", default=DEFAULT_STATUS),
        ColumnSpec(29, "progress_percent", ValueKind.INTEGER),
        ColumnSpec(30, "proposal_date", ValueKind.DATE),
        ColumnSpec(31, "interested_date", ValueKind.DATE),
        ColumnSpec(32, "acceptance_date", ValueKind.DATE),
        ColumnSpec(33, "ready_to_deliver_date", ValueKind.DATE),
        ColumnSpec(34, "closed_date", ValueKind.DATE),
        ColumnSpec(35, "q_gross", ValueKind.DECIMAL),
        ColumnSpec(36, "q_net_rev", ValueKind.DECIMAL),
    ),
    metadata_columns=(
        ColumnSpec(4, "ma_mi"),
        ColumnSpec(21, "estimation_logic"),
        ColumnSpec(26, "update_target"),
        *_SHARED_METADATA_COLUMNS,
    ),
    monthly_blocks=MONTHLY_BLOCKS,
    valid_statuses=VALID_STATUSES,
    default_status=DEFAULT_STATUS,
    defaults=DEFAULT_VALUES,
)


_SCHEMAS: dict[str, GroupSchema] = {
    PipelineGroup.SALES: SALES_SCHEMA,
    PipelineGroup.CS: CS_SCHEMA,
}


def get_group_schema(group: str) -> GroupSchema:
    try:
        return _SCHEMAS[group]
    except KeyError as exc:
        raise ValueError(
            f"Unsupported pipeline group '{group}'. Allowed: {sorted(_SCHEMAS)}."
        ) from exc


# Fields the sheet owns. Everything else on a stored pipeline (ids, audit
# timestamps, confirmation workflow columns) is never overwritten by a sync.
SYNCABLE_FIELDS: tuple[str, ...] = (
    "key",
    "classification",
    "poc",
    "team",
    "pid",
    "publisher",
    "mid",
    "domain",
    "zid",
    "channel",
    "competitors",
    "description",
    "product",
    "imp",
    "ecpm",
    "revenue_share",
    "day_gross",
    "day_net_rev",
    "max_gross",
    "q_gross",
    "q_net_rev",
    "action_date",
    "next_action",
    "action_detail",
    "action_progress",
    "status",
    "progress_percent",
    "starting_date",
    "proposal_date",
    "interested_date",
    "acceptance_date",
    "ready_to_deliver_date",
    "closed_date",
)

COMPOSITE_KEY_FIELDS: tuple[str, ...] = (
    "key",
    "classification",
    "poc",
    "publisher",
    "proposal_date",
)
