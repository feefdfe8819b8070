"""Outcome publishing and report formatting.

``OutcomePublisher`` is the boundary between the side-effect-free relay
logic and the outside world: it stores the audit entry and decides
whether anybody needs to be notified.  Skips are audit-only; ``error``
outcomes additionally produce one best-effort notification.  Neither a
failing audit sink nor a failing notifier ever propagates back into the
operation that produced the outcome.

Formatting helpers:

- ``format_audit_entry`` -- one line per entry.
- ``format_result`` -- human-readable text for a transfer/sync result.
- ``result_to_json`` -- structured dict for machine consumers.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .models import AuditEntry, AuditResult, SyncResult, TransferResult

if TYPE_CHECKING:
    from .audit import AuditSink, Notifier

logger = logging.getLogger(__name__)


class OutcomePublisher:
    """Record audit entries and raise notifications for errors.

    Args:
        audit_sink: Where entries are stored.
        notifier: Optional alert channel for ``error`` outcomes.
    """

    def __init__(
        self, audit_sink: AuditSink, notifier: Notifier | None = None
    ) -> None:
        self.audit_sink = audit_sink
        self.notifier = notifier

    def publish(
        self, entry: AuditEntry, error: BaseException | None = None
    ) -> None:
        """Store *entry*; notify when it is an ``error`` outcome."""
        try:
            self.audit_sink.record(entry)
        except Exception as exc:
            logger.error(
                "Audit write failed for %s (%s, correlation %s): %s",
                entry.action,
                entry.result.value,
                entry.correlation_id,
                exc,
            )
            self._notify(
                f"Audit log unavailable: {entry.action}",
                exc,
                entry.source_table,
                severity="warning",
            )

        if entry.result is AuditResult.ERROR:
            self._notify(
                f"Relay failure: {entry.action}",
                error if error is not None else entry.error,
                entry.source_table,
            )

    def _notify(
        self,
        subject: str,
        error: BaseException | str | None,
        context_table: str | None,
        severity: str = "error",
    ) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.notify(subject, error, context_table, severity=severity)
        except Exception as exc:
            logger.error("Notification '%s' failed: %s", subject, exc)


# ------------------------------------------------------------------
# Human-readable output
# ------------------------------------------------------------------


def format_audit_entry(entry: AuditEntry) -> str:
    """Format one audit entry as a single line."""
    line = (
        f"{entry.timestamp} {entry.result.value:<22} {entry.action} "
        f"{entry.source_table}!{entry.source_row}"
    )
    if entry.project_id:
        line += f" [{entry.project_id}]"
    if entry.detail:
        line += f" - {entry.detail}"
    if entry.error:
        line += f" (error: {entry.error})"
    return line


def format_result(result: TransferResult | SyncResult) -> str:
    """Format a transfer or sync result for terminal output."""
    entry = result.entry
    lines = [f"{entry.action}: {entry.result.value}"]
    if entry.project_id:
        lines.append(f"  Identity: {entry.project_id}")
    if entry.detail:
        lines.append(f"  {entry.detail}")
    if isinstance(result, TransferResult) and result.reorder_error:
        lines.append(f"  Reorder failed: {result.reorder_error}")
    if entry.error:
        lines.append(f"  Error: {entry.error}")
    lines.append(f"  Correlation: {entry.correlation_id}")
    return "\n".join(lines)


def result_to_json(result: TransferResult | SyncResult) -> dict:
    """Convert a result into a JSON-serialisable dict."""
    data: dict = {"audit": result.entry.model_dump(mode="json")}
    if isinstance(result, TransferResult):
        data["destination_row"] = result.destination_row
        data["reorder_error"] = result.reorder_error
    else:
        data["counterpart_table"] = result.counterpart_table
        data["counterpart_row"] = result.counterpart_row
        data["written"] = result.written
    return data
