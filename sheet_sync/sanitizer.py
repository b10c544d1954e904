"""
sheet_sync/sanitizer.py

Cell text cleanup applied before any comparison or storage.

Line breaks, tabs and other vertical whitespace become single spaces; every
other control character is dropped; runs of spaces collapse; the result is
trimmed. Sanitizing already-sanitized text returns it unchanged.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any

_WHITESPACE_BREAKS = re.compile(r"[\t\n\v\f\r\x1c-\x1f\x85\xa0\u2028\u2029]+")
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0e-\x1b\x7f-\x84\x86-\x9f]")
_SPACE_RUNS = re.compile(r" {2,}")


def sanitize_text(value: str) -> str:
    text = _WHITESPACE_BREAKS.sub(" ", value)
    text = _CONTROL_CHARS.sub("", text)
    text = _SPACE_RUNS.sub(" ", text)
    return text.strip()


def sanitize_cell(value: Any) -> Any:
    """
    Sanitize string cells; numbers, booleans and None pass through.
    """

    if isinstance(value, str):
        return sanitize_text(value)
    return value


def sanitize_row(cells: Iterable[Any]) -> tuple[Any, ...]:
    return tuple(sanitize_cell(cell) for cell in cells)
