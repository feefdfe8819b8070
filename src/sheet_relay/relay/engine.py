"""Row transfer engine.

``TransferEngine.execute_transfer`` copies one source row into a newly
appended destination row, at most once per identity key:

1. Acquire the global relay lock (bounded wait; timeout is a skip).
2. Resolve the destination table (missing table is a configuration error).
3. Read the source row's required column span in one call.
4. Extract the identity value; blank identity is a skip.
5. Check the destination for an existing key; a hit is a skip.
6. Build the destination row at the destination's full width.
7. Append it.
8. Notify the edit-timestamp tracker for tracked tables.
9. Optionally re-sort the destination (best effort).
10. Report ``success``.

Any exception in steps 2-9 becomes an ``error`` outcome; the lock is
released on every path and exactly one audit entry is published.
"""

from __future__ import annotations

import logging

from ..config_schema import TransferSpec
from ..core.cells import cell_or_blank, is_blank
from .audit import EditTimestampTracker
from .base import Invocation, LockedOperation
from .duplicates import DuplicateDetector
from .models import AuditEntry, AuditResult, EditEvent, TransferResult

logger = logging.getLogger(__name__)


class TransferEngine(LockedOperation):
    """Move rows between tables according to a ``TransferSpec``.

    Args:
        accessor: Table store.
        lock: Global relay lock.
        publisher: Receives one audit entry per invocation.
        tracker: Optional edit-timestamp tracker.
        **kwargs: ``lock_timeout``, ``retry``, ``user``, ``sleep``
            (see ``LockedOperation``).
    """

    def __init__(
        self,
        accessor,
        lock,
        publisher,
        *,
        tracker: EditTimestampTracker | None = None,
        **kwargs,
    ) -> None:
        super().__init__(accessor, lock, publisher, **kwargs)
        self.detector = DuplicateDetector(accessor)
        self.tracker = tracker

    def _make_result(self, entry: AuditEntry, **fields) -> TransferResult:
        return TransferResult(entry=entry, **fields)

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def execute_transfer(
        self, event: EditEvent, spec: TransferSpec
    ) -> TransferResult:
        """Transfer the row named by *event* according to *spec*.

        Never raises; the outcome is described by the returned result.
        """
        return self._run(
            f"transfer:{spec.name or spec.destination}",
            event,
            lambda invocation: self._transfer(invocation, spec),
        )

    # ------------------------------------------------------------------
    # Transfer body (runs under the lock)
    # ------------------------------------------------------------------

    def _transfer(
        self, invocation: Invocation, spec: TransferSpec
    ) -> TransferResult:
        event = invocation.event
        destination = spec.destination
        accessor = self.accessor

        self._require_table(destination)

        source_row = self._read_source_row(event, spec)
        identity_col = spec.identity_source_column
        identity = cell_or_blank(source_row, identity_col)
        if len(source_row) < identity_col or is_blank(identity):
            logger.info(
                "No identity in %s!%d column %d; not transferring",
                event.table,
                event.row,
                identity_col,
            )
            return self._make_result(
                invocation.entry(
                    AuditResult.SKIPPED_MISSING_KEY,
                    detail=f"identity column {identity_col} is blank",
                )
            )
        invocation.project_id = str(identity).strip()

        if spec.duplicate_check_enabled:
            policy = spec.duplicate_check
            pairs = self._call(
                lambda: self.detector.key_pairs(destination, policy),
                "key_pairs",
            )
            key = self.detector.source_key(source_row, policy, pairs)
            found = self._call(
                lambda: self.detector.exists(destination, key, policy, pairs),
                "duplicate_check",
            )
            if found:
                logger.info(
                    "'%s' already in %s; skipping", key, destination
                )
                return self._make_result(
                    invocation.entry(
                        AuditResult.SKIPPED_DUPLICATE,
                        detail=f"key '{key}' already in {destination}",
                    )
                )

        width_before = self._call(lambda: accessor.width(destination), "width")
        new_row = [""] * max(width_before, spec.highest_destination_column)
        for src, dst in spec.column_map.items():
            new_row[dst - 1] = cell_or_blank(source_row, src)

        # Appending is not idempotent, so it is attempted exactly once.
        dest_row = accessor.append_row(destination, new_row)
        logger.info(
            "Transferred %s!%d to %s!%d",
            event.table,
            event.row,
            destination,
            dest_row,
        )

        if self.tracker is not None and self.tracker.tracks(destination):
            self._call(
                lambda: self.tracker.on_row_written(destination, dest_row),
                "on_row_written",
            )

        reorder_error = self._reorder(destination, spec)

        detail = f"appended to {destination} row {dest_row}"
        if reorder_error:
            detail += f"; reorder failed: {reorder_error}"
        return self._make_result(
            invocation.entry(AuditResult.SUCCESS, detail=detail),
            destination_row=dest_row,
            appended_row=new_row,
            reorder_error=reorder_error,
        )

    def _read_source_row(self, event: EditEvent, spec: TransferSpec) -> list:
        """Read the source row's required span, capped at the table width."""
        source_width = self._call(
            lambda: self.accessor.width(event.table), "width"
        )
        span = min(spec.required_source_span, source_width)
        if span < 1:
            return []
        block = self._call(
            lambda: self.accessor.read_range(event.table, event.row, 1, 1, span),
            "read_source_row",
        )
        return block[0] if block else []

    def _reorder(self, destination: str, spec: TransferSpec) -> str | None:
        """Apply the post-transfer sort; return an error message on failure."""
        action = spec.post_transfer
        if action is None:
            return None
        try:
            self._call(self.accessor.flush, "flush")
            header = self._call(
                lambda: self.accessor.header_rows(destination), "header_rows"
            )
            self._call(
                lambda: self.accessor.sort_region(
                    destination,
                    header + 1,
                    action.sort_column,
                    action.ascending,
                ),
                "sort_region",
            )
        except Exception as exc:
            logger.error(
                "Reorder of %s by column %d failed: %s",
                destination,
                action.sort_column,
                exc,
            )
            return str(exc)
        return None
