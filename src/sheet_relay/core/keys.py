"""Comparison keys for duplicate detection and row lookup.

``normalize()`` turns one cell into a canonical string according to its
``CellKind``; ``build_key()`` joins a primary field and any compound
fields into a single key.  Keys are case-insensitive, whitespace-trimmed
and deterministic.

Text that merely resembles a date (``"5/10/2024"``) stays text unless the
caller explicitly opts into ``date_aware`` comparison, so a typed string
never collides with a real date cell of the same calendar day.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime

from .cells import CellKind, cell_kind

DEFAULT_SEPARATOR = "|"

# Formats tried, in order, when date-aware comparison is requested.
DATE_AWARE_FORMATS = ("%m/%d/%Y", "%Y-%m-%d", "%m/%d/%y", "%d-%b-%Y")


def _format_date(value: date) -> str:
    # Use the value's own components; no timezone conversion.
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def _format_number(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _parse_date_text(text: str) -> date | None:
    for fmt in DATE_AWARE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def normalize(value: object, date_aware: bool = False) -> str:
    """Return the canonical comparison form of a cell value.

    Args:
        value: Raw cell value.
        date_aware: When ``True``, text that parses as a date (see
            ``DATE_AWARE_FORMATS``) is normalised like a date cell.

    Returns:
        ``""`` for empty cells, ``"true"``/``"false"`` for booleans,
        ``YYYY-MM-DD`` for dates and the trimmed lower-cased string form
        of anything else.
    """
    match cell_kind(value):
        case CellKind.EMPTY:
            return ""
        case CellKind.BOOLEAN:
            return "true" if value else "false"
        case CellKind.DATE:
            return _format_date(value)  # type: ignore[arg-type]
        case CellKind.NUMBER:
            return _format_number(value)  # type: ignore[arg-type]
        case _:
            text = str(value).strip()
            if date_aware and text:
                parsed = _parse_date_text(text)
                if parsed is not None:
                    return _format_date(parsed)
            return text.lower()


def build_key(
    primary: object,
    compound: Iterable[object] = (),
    separator: str = DEFAULT_SEPARATOR,
    date_aware: bool = False,
) -> str:
    """Build an order-sensitive key from a primary field and compound fields.

    Each field is normalised independently; empty fields contribute an
    empty segment so positions never shift.
    """
    key = normalize(primary, date_aware)
    for field in compound:
        key += separator + normalize(field, date_aware)
    return key


def values_match(left: object, right: object, date_aware: bool = False) -> bool:
    """``True`` when both values normalise to the same string."""
    return normalize(left, date_aware) == normalize(right, date_aware)
