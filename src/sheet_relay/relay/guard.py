"""Bidirectional field mirroring with loop suppression.

When a mirrored field changes on one side, the counterpart row on the
other side is located by identity value and its field cell is updated.
The write is skipped whenever the counterpart already holds a value that
normalises to the incoming one; since no write happens, the other side's
edit handler never fires and the ping-pong stops after one hop.
"""

from __future__ import annotations

import logging

from ..config_schema import SyncFieldSpec, SyncSide
from ..core.cells import CellValue, is_blank
from ..core.keys import normalize, values_match
from ..errors import ConfigurationError
from .base import Invocation, LockedOperation
from .models import AuditEntry, AuditResult, EditEvent, SyncResult

logger = logging.getLogger(__name__)


class SyncGuard(LockedOperation):
    """Propagate a mirrored field between two tables."""

    def _make_result(self, entry: AuditEntry, **fields) -> SyncResult:
        return SyncResult(entry=entry, **fields)

    def propagate(self, event: EditEvent, spec: SyncFieldSpec) -> SyncResult:
        """Mirror the edited field of *event* onto its counterpart row.

        Never raises; the outcome is described by the returned result.
        """
        return self._run(
            f"sync:{spec.name or spec.left.table + '/' + spec.right.table}",
            event,
            lambda invocation: self._propagate(invocation, spec),
        )

    def _propagate(
        self, invocation: Invocation, spec: SyncFieldSpec
    ) -> SyncResult:
        event = invocation.event
        side = spec.side_for(event.table, event.column)
        if side is None:
            raise ConfigurationError(
                f"{event.table} column {event.column} is not part of "
                f"sync '{spec.name}'"
            )
        other = spec.counterpart_of(side)
        self._require_table(side.table)
        self._require_table(other.table)

        identity = self._read_cell(side.table, event.row, side.identity_column)
        if is_blank(identity):
            return self._make_result(
                invocation.entry(
                    AuditResult.SKIPPED_MISSING_KEY,
                    detail=f"identity column {side.identity_column} is blank",
                ),
                counterpart_table=other.table,
            )
        invocation.project_id = str(identity).strip()

        incoming = event.new_value
        if incoming is None:
            incoming = self._read_cell(side.table, event.row, side.field_column)

        row = self._find_row(other, identity, spec.date_aware)
        if row is None:
            logger.debug(
                "No counterpart for '%s' in %s", invocation.project_id, other.table
            )
            return self._make_result(
                invocation.entry(
                    AuditResult.SKIPPED_NO_COUNTERPART,
                    detail=f"no row in {other.table} for this identity",
                ),
                counterpart_table=other.table,
            )

        current = self._read_cell(other.table, row, other.field_column)
        if values_match(current, incoming, spec.date_aware):
            return self._make_result(
                invocation.entry(
                    AuditResult.SKIPPED_UNCHANGED,
                    detail=f"{other.table} row {row} already up to date",
                ),
                counterpart_table=other.table,
                counterpart_row=row,
            )

        self._call(
            lambda: self.accessor.write_cell(
                other.table, row, other.field_column, incoming
            ),
            "write_cell",
        )
        logger.info(
            "Mirrored %s!%d column %d to %s!%d column %d",
            side.table,
            event.row,
            side.field_column,
            other.table,
            row,
            other.field_column,
        )
        return self._make_result(
            invocation.entry(
                AuditResult.SUCCESS,
                detail=f"updated {other.table} row {row} column {other.field_column}",
            ),
            counterpart_table=other.table,
            counterpart_row=row,
            written=True,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _read_cell(self, table: str, row: int, column: int) -> CellValue:
        block = self._call(
            lambda: self.accessor.read_range(table, row, column, 1, 1),
            "read_cell",
        )
        return block[0][0] if block and block[0] else ""

    def _find_row(
        self, side: SyncSide, identity: CellValue, date_aware: bool
    ) -> int | None:
        """Locate the data row of *side* whose identity matches *identity*."""
        last = self._call(lambda: self.accessor.last_row(side.table), "last_row")
        header = self._call(
            lambda: self.accessor.header_rows(side.table), "header_rows"
        )
        data_rows = last - header
        if data_rows <= 0:
            return None
        block = self._call(
            lambda: self.accessor.read_range(
                side.table, header + 1, side.identity_column, data_rows, 1
            ),
            "find_row",
        )
        target = normalize(identity, date_aware)
        for index, cells in enumerate(block):
            if cells and normalize(cells[0], date_aware) == target:
                return index + header + 1
        return None
