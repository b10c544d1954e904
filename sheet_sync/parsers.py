"""
sheet_sync/parsers.py

Typed cell parsers used by the schema-driven row decoder.

Every parser returns None for blank input. Zero is a real value and is
never coerced to None.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

# Google Sheets / Excel serial dates count days from 1899-12-30.
SERIAL_DATE_EPOCH = date(1899, 12, 30)
MIN_VALID_YEAR = 1900
MAX_VALID_YEAR = 2100

DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%Y.%m.%d",
    "%m/%d/%Y",
    "%d-%b-%Y",
    "%d %b %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d %B %Y",
    "%Y年%m月%d日",
)

_TRUE_VALUES = {"true", "1", "yes", "y"}
_FALSE_VALUES = {"false", "0", "no", "n"}


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


def _to_decimal(value: Any) -> Decimal | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        try:
            return Decimal(str(value))
        except InvalidOperation:
            return None
    cleaned = str(value).replace(",", "").strip()
    if cleaned.endswith("%"):
        cleaned = cleaned[:-1].strip()
    if not cleaned:
        return None
    try:
        parsed = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not parsed.is_finite():
        return None
    return parsed


def parse_decimal(value: Any) -> float | None:
    """
    Parse comma-grouped numbers and percentages ("1,234.5", "80%").
    """

    if is_blank(value):
        return None
    parsed = _to_decimal(value)
    return float(parsed) if parsed is not None else None


def parse_integer(value: Any) -> int | None:
    if is_blank(value):
        return None
    parsed = _to_decimal(value)
    return int(parsed) if parsed is not None else None


def parse_boolean(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if is_blank(value):
        return None
    normalized = str(value).strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    return None


def _within_range(value: date) -> bool:
    return MIN_VALID_YEAR < value.year < MAX_VALID_YEAR


def parse_date(value: Any) -> date | None:
    """
    Parse dates from date objects, spreadsheet serial numbers and strings.

    Results outside 1900-2100 are treated as spreadsheet artifacts.
    """

    if is_blank(value) or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return value.date() if _within_range(value) else None
    if isinstance(value, date):
        return value if _within_range(value) else None

    if isinstance(value, (int, float, Decimal)):
        if not 0 < value < 100000:
            return None
        parsed = SERIAL_DATE_EPOCH + timedelta(days=int(value))
        return parsed if _within_range(parsed) else None

    text = str(value).strip()
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        parsed = None
    if parsed is None:
        for fmt in DATE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt).date()
                break
            except ValueError:
                continue
    if parsed is None:
        # Serial numbers can arrive as text when the column is formatted as plain text.
        try:
            serial = float(text)
        except ValueError:
            return None
        return parse_date(serial)
    return parsed if _within_range(parsed) else None


def parse_string(value: Any) -> str | None:
    if is_blank(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()
