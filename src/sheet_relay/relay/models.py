"""Pydantic models for the relay engine and sync guard.

Defines the data contracts shared by all relay modules:

- ``AuditResult``: Enum of invocation outcomes.
- ``EditEvent``: One cell edit delivered by the router.
- ``AuditEntry``: Immutable record of one invocation.
- ``TransferResult``: Outcome of one row transfer.
- ``SyncResult``: Outcome of one mirrored-field propagation.

All models are frozen (immutable) for safety.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class AuditResult(str, Enum):
    """Possible outcomes of a transfer or sync invocation."""

    SUCCESS = "success"
    SKIPPED_DUPLICATE = "skipped-duplicate"
    SKIPPED_NO_LOCK = "skipped-no-lock"
    SKIPPED_MISSING_KEY = "skipped-missing-key"
    SKIPPED_UNCHANGED = "skipped-unchanged"
    SKIPPED_NO_COUNTERPART = "skipped-no-counterpart"
    ERROR = "error"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_correlation_id() -> str:
    return uuid.uuid4().hex


class EditEvent(BaseModel):
    """A single cell edit.

    Attributes:
        table: Table the edit happened in.
        row: 1-based row of the edited cell.
        column: 1-based column of the edited cell.
        old_value: Value before the edit (if known).
        new_value: Value after the edit (if known).
        user: Who made the edit.
    """

    table: str
    row: int = Field(ge=1)
    column: int = Field(default=1, ge=1)
    old_value: Any = None
    new_value: Any = None
    user: str | None = None

    model_config = {"frozen": True}


class AuditEntry(BaseModel):
    """Record of one engine or guard invocation.

    Attributes:
        timestamp: ISO 8601 UTC time the entry was created.
        correlation_id: Identifier tying logs to this invocation.
        user: Acting user.
        action: e.g. ``transfer:forecast_to_upcoming``.
        source_table: Table the event came from.
        source_row: Row the event came from.
        project_id: Identity value of the row (when known).
        detail: Free-text description.
        result: Outcome code.
        error: Error message for ``error`` outcomes.
    """

    timestamp: str = Field(default_factory=_now)
    correlation_id: str = Field(default_factory=new_correlation_id)
    user: str = "system"
    action: str
    source_table: str
    source_row: int
    project_id: str = ""
    detail: str = ""
    result: AuditResult
    error: str | None = None

    model_config = {"frozen": True}


class TransferResult(BaseModel):
    """Outcome of ``TransferEngine.execute_transfer``.

    Attributes:
        entry: The audit entry describing the outcome.
        destination_row: Position of the appended row (success only).
        appended_row: Cells that were appended (success only).
        reorder_error: Set when the post-transfer sort failed.
    """

    entry: AuditEntry
    destination_row: int | None = None
    appended_row: list[Any] | None = None
    reorder_error: str | None = None

    model_config = {"frozen": True}

    @property
    def result(self) -> AuditResult:
        return self.entry.result


class SyncResult(BaseModel):
    """Outcome of ``SyncGuard.propagate``.

    Attributes:
        entry: The audit entry describing the outcome.
        counterpart_table: Table that was (or would be) written.
        counterpart_row: Row found by identity lookup, if any.
        written: Whether a cell was actually written.
    """

    entry: AuditEntry
    counterpart_table: str | None = None
    counterpart_row: int | None = None
    written: bool = False

    model_config = {"frozen": True}

    @property
    def result(self) -> AuditResult:
        return self.entry.result
