from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest

from sheet_sync.parsers import (
    is_blank,
    parse_boolean,
    parse_date,
    parse_decimal,
    parse_integer,
    parse_string,
)


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1,234.5", 1234.5),
        ("80%", 80.0),
        (" 12 ", 12.0),
        (7, 7.0),
        (Decimal("3.25"), 3.25),
        ("abc", None),
        ("NaN", None),
        ("", None),
        (None, None),
        (True, None),
    ],
)
def test_parse_decimal(raw: object, expected: float | None) -> None:
    assert parse_decimal(raw) == expected


def test_zero_is_preserved_not_missing() -> None:
    assert parse_decimal(0) == 0.0
    assert parse_decimal("0") == 0.0
    assert parse_integer(0) == 0
    assert parse_decimal(0) is not None


def test_parse_integer_truncates_and_ungroups() -> None:
    assert parse_integer("10,000") == 10000
    assert parse_integer(3.7) == 3
    assert parse_integer("n/a") is None


# ---------------------------------------------------------------------------
# Booleans
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (True, True),
        (False, False),
        (1, True),
        (0, False),
        ("TRUE", True),
        ("yes", True),
        ("no", False),
        ("maybe", None),
        ("", None),
    ],
)
def test_parse_boolean(raw: object, expected: bool | None) -> None:
    assert parse_boolean(raw) is expected


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


class TestParseDate:
    def test_serial_number(self) -> None:
        assert parse_date(46023) == date(2026, 1, 1)
        assert parse_date(46023.75) == date(2026, 1, 1)

    def test_serial_number_as_text(self) -> None:
        assert parse_date("46023") == date(2026, 1, 1)

    @pytest.mark.parametrize(
        "raw",
        ["2026-03-15", "2026/03/15", "03/15/2026", "Mar 15, 2026", "2026年03月15日"],
    )
    def test_text_formats(self, raw: str) -> None:
        assert parse_date(raw) == date(2026, 3, 15)

    def test_datetime_is_truncated_to_day(self) -> None:
        assert parse_date(datetime(2026, 1, 2, 10, 30)) == date(2026, 1, 2)

    def test_out_of_range_years_are_rejected(self) -> None:
        assert parse_date(date(1899, 12, 31)) is None
        assert parse_date(date(2100, 1, 1)) is None
        assert parse_date(1) is None

    def test_non_positive_serials_are_rejected(self) -> None:
        assert parse_date(0) is None
        assert parse_date(-5) is None

    def test_garbage_is_none(self) -> None:
        assert parse_date("next week") is None
        assert parse_date(True) is None
        assert parse_date("   ") is None


# ---------------------------------------------------------------------------
# Strings
# ---------------------------------------------------------------------------


def test_parse_string() -> None:
    assert parse_string(12345.0) == "12345"
    assert parse_string(12.5) == "12.5"
    assert parse_string("  x ") == "x"
    assert parse_string("") is None
    assert is_blank("  ")
    assert not is_blank(0)
