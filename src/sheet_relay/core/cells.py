"""Cell value model.

Table cells are untyped at the storage layer, so every value is one of a
closed set of kinds.  The kind is decided from the value's Python type
only -- strings are never parsed to discover a "hidden" date or number.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Union

CellValue = Union[None, str, bool, int, float, date, datetime]
Row = list


class CellKind(str, Enum):
    """Tag of a cell value."""

    EMPTY = "empty"
    BOOLEAN = "boolean"
    NUMBER = "number"
    TEXT = "text"
    DATE = "date"


def cell_kind(value: object) -> CellKind:
    """Classify *value* by its declared type.

    ``bool`` is checked before ``int`` because it is a subclass of it.
    Unknown types fall back to ``TEXT`` and are normalised by their
    string form.
    """
    match value:
        case None:
            return CellKind.EMPTY
        case str() as text if text == "":
            return CellKind.EMPTY
        case bool():
            return CellKind.BOOLEAN
        case int() | float():
            return CellKind.NUMBER
        case date():
            # datetime is a subclass of date
            return CellKind.DATE
        case _:
            return CellKind.TEXT


def is_blank(value: object) -> bool:
    """``True`` for empty cells and whitespace-only text."""
    if cell_kind(value) is CellKind.EMPTY:
        return True
    return isinstance(value, str) and not value.strip()


def cell_or_blank(row: Row, column: int) -> CellValue:
    """Return the 1-based *column* of *row*, or ``""`` if out of range.

    ``None`` is also returned as ``""`` so callers never write null
    literals into a table.
    """
    if column < 1 or column > len(row):
        return ""
    value = row[column - 1]
    return "" if value is None else value
