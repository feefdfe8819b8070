"""Collaborators the relay reports to.

* ``AuditSink`` -- stores one ``AuditEntry`` per invocation.
* ``Notifier`` -- best-effort alert for ``error`` outcomes.
* ``EditTimestampTracker`` -- told about rows the relay wrote into
  tracked tables.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

from ..core.table import TableAccessor
from .models import AuditEntry

logger = logging.getLogger(__name__)


@runtime_checkable
class AuditSink(Protocol):
    def record(self, entry: AuditEntry) -> None: ...


@runtime_checkable
class Notifier(Protocol):
    def notify(
        self,
        subject: str,
        error: BaseException | str | None,
        context_table: str | None,
        severity: str = "error",
    ) -> None: ...


@runtime_checkable
class EditTimestampTracker(Protocol):
    def tracks(self, table: str) -> bool: ...

    def on_row_written(self, table: str, row: int) -> None: ...


# ----------------------------------------------------------------------
# Audit sinks
# ----------------------------------------------------------------------


class MemoryAuditLog:
    """Keeps entries in a list."""

    def __init__(self) -> None:
        self.entries: list[AuditEntry] = []
        self._lock = threading.Lock()

    def record(self, entry: AuditEntry) -> None:
        with self._lock:
            self.entries.append(entry)


class JsonlAuditLog:
    """Appends one JSON object per line to *path*."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def record(self, entry: AuditEntry) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as fh:
            fh.write(entry.model_dump_json() + "\n")

    def read(self) -> list[AuditEntry]:
        """Return every stored entry, oldest first."""
        if not self.path.exists():
            return []
        with open(self.path, encoding="utf-8") as fh:
            return [
                AuditEntry.model_validate(json.loads(line))
                for line in fh
                if line.strip()
            ]


# ----------------------------------------------------------------------
# Notifiers
# ----------------------------------------------------------------------


class LoggingNotifier:
    """Notifier that writes alerts to a dedicated logger.

    Outbound delivery (mail, chat) hooks onto the
    ``sheet_relay.notifications`` logger with an extra handler.
    """

    def __init__(self, name: str = "sheet_relay.notifications") -> None:
        self._log = logging.getLogger(name)

    def notify(
        self,
        subject: str,
        error: BaseException | str | None,
        context_table: str | None,
        severity: str = "error",
    ) -> None:
        level = logging.WARNING if severity == "warning" else logging.ERROR
        self._log.log(
            level,
            "%s [table=%s]: %s",
            subject,
            context_table or "-",
            error if error is not None else "",
        )


# ----------------------------------------------------------------------
# Edit-timestamp tracking
# ----------------------------------------------------------------------


class ColumnTimestampTracker:
    """Stamps the write time into a per-table timestamp column.

    Args:
        accessor: Table store to write to.
        columns: Table name -> 1-based timestamp column.
    """

    def __init__(self, accessor: TableAccessor, columns: dict[str, int]) -> None:
        self.accessor = accessor
        self.columns = dict(columns)

    def tracks(self, table: str) -> bool:
        return table in self.columns

    def on_row_written(self, table: str, row: int) -> None:
        column = self.columns.get(table)
        if column is None:
            return
        self.accessor.write_cell(table, row, column, datetime.now())
        logger.debug("Stamped %s row %d column %d", table, row, column)
