"""Table accessor contract and its two back-ends.

The relay core only ever talks to a ``TableAccessor``.  Two
implementations ship with the package:

* ``Workbook`` -- in-memory tables (lists of rows, with an optional
  header row recorded per table).
* ``JsonFileWorkbook`` -- the same model persisted to a JSON file.  Reads
  reload the file when it changes on disk; every mutation is written
  through atomically (temp file + ``os.replace``) so a second process
  holding the relay lock always sees committed rows.

Rows and columns are 1-based throughout.  Unknown tables raise
``ConfigurationError``; short rows read back padded with ``""``.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import date, datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

from ..errors import ConfigurationError, ValidationError
from .cells import CellKind, CellValue, Row, cell_kind, is_blank

logger = logging.getLogger(__name__)


@runtime_checkable
class TableAccessor(Protocol):
    """Minimal table-store contract used by the relay core."""

    def has_table(self, table: str) -> bool: ...

    def read_range(
        self, table: str, row: int, col: int, num_rows: int, num_cols: int
    ) -> list[Row]: ...

    def append_row(self, table: str, row: Row) -> int: ...

    def write_cell(
        self, table: str, row: int, col: int, value: CellValue
    ) -> None: ...

    def width(self, table: str) -> int: ...

    def last_row(self, table: str) -> int: ...

    def header_rows(self, table: str) -> int: ...

    def sort_region(
        self, table: str, start_row: int, col: int, ascending: bool = True
    ) -> None: ...

    def flush(self) -> None: ...


# ----------------------------------------------------------------------
# Sorting
# ----------------------------------------------------------------------

_KIND_RANK = {
    CellKind.NUMBER: 0,
    CellKind.DATE: 1,
    CellKind.BOOLEAN: 2,
    CellKind.TEXT: 3,
}


def _sort_key(value: CellValue) -> tuple:
    kind = cell_kind(value)
    match kind:
        case CellKind.NUMBER | CellKind.BOOLEAN:
            return (_KIND_RANK[kind], float(value))  # type: ignore[arg-type]
        case CellKind.DATE:
            if isinstance(value, datetime):
                return (_KIND_RANK[kind], value.replace(tzinfo=None))
            return (_KIND_RANK[kind], datetime(value.year, value.month, value.day))  # type: ignore[union-attr]
        case _:
            return (_KIND_RANK[CellKind.TEXT], str(value).lower())


# ----------------------------------------------------------------------
# In-memory workbook
# ----------------------------------------------------------------------


class Workbook:
    """In-memory collection of named tables.

    A table given with rows has a one-row header; a table that starts
    empty is headerless, so the first appended row is data.

    Args:
        tables: Optional mapping of table name to rows.
        header_rows: Per-table header row counts overriding that default.
    """

    def __init__(
        self,
        tables: dict[str, list[Row]] | None = None,
        header_rows: dict[str, int] | None = None,
    ) -> None:
        self._tables: dict[str, list[Row]] = {
            name: [list(r) for r in rows]
            for name, rows in (tables or {}).items()
        }
        self._headers: dict[str, int] = {
            name: (header_rows or {}).get(name, 1 if rows else 0)
            for name, rows in self._tables.items()
        }
        if any(count < 0 for count in self._headers.values()):
            raise ValidationError("header_rows must be >= 0")

    # Hooks for persistent subclasses
    def _before_read(self) -> None:
        pass

    def _after_write(self) -> None:
        pass

    def _rows(self, table: str) -> list[Row]:
        try:
            return self._tables[table]
        except KeyError:
            raise ConfigurationError(
                f"Unknown table '{table}'", {"table": table}
            ) from None

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def add_table(self, table: str, header: Row | None = None) -> None:
        """Create *table* (optionally with a header row)."""
        self._before_read()
        if table in self._tables:
            raise ValidationError(f"Table '{table}' already exists")
        self._tables[table] = [list(header)] if header else []
        self._headers[table] = 1 if header else 0
        self._after_write()

    def has_table(self, table: str) -> bool:
        self._before_read()
        return table in self._tables

    def width(self, table: str) -> int:
        """Widest row length in *table* (0 for an empty table)."""
        self._before_read()
        return max((len(r) for r in self._rows(table)), default=0)

    def last_row(self, table: str) -> int:
        """Index of the last row, header included (0 when empty)."""
        self._before_read()
        return len(self._rows(table))

    def header_rows(self, table: str) -> int:
        """Number of leading header rows in *table* (0 when headerless)."""
        self._before_read()
        self._rows(table)
        return self._headers.get(table, 0)

    def rows(self, table: str) -> list[Row]:
        """Copy of every row in *table*."""
        self._before_read()
        return [list(r) for r in self._rows(table)]

    # ------------------------------------------------------------------
    # Reads / writes
    # ------------------------------------------------------------------

    def read_range(
        self, table: str, row: int, col: int, num_rows: int, num_cols: int
    ) -> list[Row]:
        """Read a rectangular block; cells past a row's end read as ``""``."""
        if row < 1 or col < 1 or num_rows < 0 or num_cols < 0:
            raise ValidationError(
                f"Invalid range R{row}C{col} ({num_rows}x{num_cols})"
            )
        self._before_read()
        rows = self._rows(table)
        block: list[Row] = []
        for r in range(row - 1, row - 1 + num_rows):
            source = rows[r] if r < len(rows) else []
            cells = source[col - 1 : col - 1 + num_cols]
            cells = ["" if v is None else v for v in cells]
            cells.extend([""] * (num_cols - len(cells)))
            block.append(cells)
        return block

    def append_row(self, table: str, row: Row) -> int:
        """Append *row* and return its 1-based position."""
        self._before_read()
        rows = self._rows(table)
        rows.append(["" if v is None else v for v in row])
        self._after_write()
        return len(rows)

    def write_cell(
        self, table: str, row: int, col: int, value: CellValue
    ) -> None:
        """Set one cell, growing the table as needed."""
        if row < 1 or col < 1:
            raise ValidationError(f"Invalid cell R{row}C{col}")
        self._before_read()
        rows = self._rows(table)
        while len(rows) < row:
            rows.append([])
        target = rows[row - 1]
        if len(target) < col:
            target.extend([""] * (col - len(target)))
        target[col - 1] = "" if value is None else value
        self._after_write()

    def sort_region(
        self, table: str, start_row: int, col: int, ascending: bool = True
    ) -> None:
        """Sort rows ``start_row..last`` by *col*; blanks always sort last."""
        self._before_read()
        rows = self._rows(table)
        head, region = rows[: start_row - 1], rows[start_row - 1 :]

        def value_at(r: Row) -> CellValue:
            return r[col - 1] if col <= len(r) else ""

        filled = [r for r in region if not is_blank(value_at(r))]
        blanks = [r for r in region if is_blank(value_at(r))]
        filled.sort(key=lambda r: _sort_key(value_at(r)), reverse=not ascending)
        rows[:] = head + filled + blanks
        self._after_write()

    def flush(self) -> None:
        """Make buffered writes visible.  In-memory writes already are."""


# ----------------------------------------------------------------------
# JSON-file workbook
# ----------------------------------------------------------------------


def _encode_cell(value: CellValue) -> object:
    if isinstance(value, datetime):
        return {"$datetime": value.isoformat()}
    if isinstance(value, date):
        return {"$date": value.isoformat()}
    return value


def _decode_cell(value: object) -> CellValue:
    if isinstance(value, dict):
        if "$datetime" in value:
            return datetime.fromisoformat(value["$datetime"])
        if "$date" in value:
            return date.fromisoformat(value["$date"])
    return value  # type: ignore[return-value]


class JsonFileWorkbook(Workbook):
    """Workbook persisted to a JSON document.

    File layout::

        {"tables": {"Forecast": [["Project", "Status"], ["Acme", "approved"]]},
         "header_rows": {"Forecast": 1}}

    A table missing from ``header_rows`` has a one-row header when it
    holds rows and none when it is empty.  Dates are stored as ``{"$date": "YYYY-MM-DD"}`` and datetimes as
    ``{"$datetime": "<iso>"}``.

    Args:
        path: Location of the JSON file.  A missing file is an empty
            workbook; it is created on first write.
    """

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = Path(path)
        self._stamp: tuple[int, int, int] | None = None
        self._before_read()

    def _before_read(self) -> None:
        try:
            st = self.path.stat()
        except FileNotFoundError:
            return
        stamp = (st.st_ino, st.st_mtime_ns, st.st_size)
        if stamp == self._stamp:
            return
        with open(self.path, encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            data = {}
        tables = data.get("tables", {})
        headers = data.get("header_rows", {})
        self._tables = {
            name: [[_decode_cell(v) for v in r] for r in rows]
            for name, rows in tables.items()
        }
        self._headers = {
            name: int(headers.get(name, 1 if rows else 0))
            for name, rows in self._tables.items()
        }
        self._stamp = stamp
        logger.debug("Loaded workbook %s (%d tables)", self.path, len(self._tables))

    def _after_write(self) -> None:
        self.save()

    def save(self) -> None:
        """Persist all tables atomically."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "tables": {
                name: [[_encode_cell(v) for v in r] for r in rows]
                for name, rows in self._tables.items()
            },
            "header_rows": dict(self._headers),
        }
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self.path.parent), suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        st = self.path.stat()
        self._stamp = (st.st_ino, st.st_mtime_ns, st.st_size)
