"""Row transfer and field mirroring between workflow tables.

Public API for moving rows from one table to another exactly once per
identity key, and for keeping a shared field equal in two tables.

Architecture
------------
The table store offers no transactions, uniqueness constraints or change
feed, so every guarantee is assembled here:

* one global lock serialises all relay operations (bounded wait);
* scan-based duplicate checks under that lock make transfers idempotent;
* a normalised-value comparison stops mirrored writes from ping-ponging.

Modules:

- ``engine``     -- ``TransferEngine``: one source row -> one destination row.
- ``guard``      -- ``SyncGuard``: two-way field mirroring.
- ``duplicates`` -- ``DuplicateDetector``: bounded destination scans.
- ``router``     -- ``EditRouter``: edit event -> engine or guard.
- ``models``     -- ``EditEvent``, ``AuditEntry``, ``AuditResult``,
  ``TransferResult``, ``SyncResult``: core data contracts.
- ``audit``      -- audit sinks, notifiers and timestamp trackers.
- ``reporter``   -- ``OutcomePublisher`` and human/JSON formatting.

Usage example
-------------
::

    from sheet_relay.config_schema import TransferSpec
    from sheet_relay.core import ThreadLock, Workbook
    from sheet_relay.relay import (
        EditEvent, MemoryAuditLog, OutcomePublisher, TransferEngine,
    )

    workbook = Workbook({"Forecast": [["Project", "Status"], ["Acme", "approved"]],
                         "Upcoming": [["Project", "Notes", "Status"]]})
    engine = TransferEngine(workbook, ThreadLock(), OutcomePublisher(MemoryAuditLog()))
    spec = TransferSpec(name="forecast_to_upcoming", destination="Upcoming",
                        column_map={1: 1, 2: 3})
    result = engine.execute_transfer(EditEvent(table="Forecast", row=2), spec)
"""

from .audit import (
    ColumnTimestampTracker,
    JsonlAuditLog,
    LoggingNotifier,
    MemoryAuditLog,
)
from .duplicates import DuplicateDetector
from .engine import TransferEngine
from .guard import SyncGuard
from .models import (
    AuditEntry,
    AuditResult,
    EditEvent,
    SyncResult,
    TransferResult,
)
from .reporter import (
    OutcomePublisher,
    format_audit_entry,
    format_result,
    result_to_json,
)
from .router import EditRouter

__all__ = [
    "AuditEntry",
    "AuditResult",
    "ColumnTimestampTracker",
    "DuplicateDetector",
    "EditEvent",
    "EditRouter",
    "JsonlAuditLog",
    "LoggingNotifier",
    "MemoryAuditLog",
    "OutcomePublisher",
    "SyncGuard",
    "SyncResult",
    "TransferEngine",
    "TransferResult",
    "format_audit_entry",
    "format_result",
    "result_to_json",
]
