"""Scan-based duplicate detection.

The table store has no uniqueness constraints, so "already transferred"
is answered by reading the destination's key columns and comparing keys.
Only the contiguous column span covering the configured key columns is
read, in a single call, so large destinations stay cheap.
"""

from __future__ import annotations

import logging

from ..config_schema import ColumnPair, DuplicateCheckPolicy
from ..core.cells import cell_or_blank
from ..core.keys import build_key
from ..core.table import TableAccessor

logger = logging.getLogger(__name__)

class DuplicateDetector:
    """Answer whether a key already exists in a destination table.

    Args:
        accessor: Table store holding the destination.
    """

    def __init__(self, accessor: TableAccessor) -> None:
        self.accessor = accessor

    def key_pairs(
        self, table: str, policy: DuplicateCheckPolicy
    ) -> list[ColumnPair]:
        """Return the key pairs usable against *table*'s current width.

        Compound pairs whose destination column lies beyond the table's
        extent are dropped (with a warning) and the check continues in a
        degraded form.  The primary pair is always kept.
        """
        width = self.accessor.width(table)
        usable = [policy.primary]
        for pair in policy.compound:
            if width and pair.destination > width:
                logger.warning(
                    "Compound key column %d is beyond '%s' width %d; "
                    "checking duplicates without it",
                    pair.destination,
                    table,
                    width,
                )
                continue
            usable.append(pair)
        return usable

    def source_key(
        self,
        source_row: list,
        policy: DuplicateCheckPolicy,
        pairs: list[ColumnPair],
    ) -> str:
        """Build the query key from a source row using *pairs*."""
        primary, *compound = pairs
        return build_key(
            cell_or_blank(source_row, primary.source),
            [cell_or_blank(source_row, p.source) for p in compound],
            policy.separator,
            policy.date_aware,
        )

    def exists(
        self,
        table: str,
        key: str,
        policy: DuplicateCheckPolicy,
        pairs: list[ColumnPair] | None = None,
    ) -> bool:
        """Return ``True`` when a data row of *table* has key *key*.

        Args:
            table: Destination table name.
            key: Query key (see ``source_key``).
            policy: Duplicate-check policy of the transfer.
            pairs: Key pairs to use; defaults to ``key_pairs()``.
        """
        header = self.accessor.header_rows(table)
        data_rows = self.accessor.last_row(table) - header
        if data_rows <= 0:
            return False

        if pairs is None:
            pairs = self.key_pairs(table, policy)

        columns = [p.destination for p in pairs]
        first_col, last_col = min(columns), max(columns)
        block = self.accessor.read_range(
            table,
            header + 1,
            first_col,
            data_rows,
            last_col - first_col + 1,
        )

        offsets = [c - first_col + 1 for c in columns]
        for index, cells in enumerate(block):
            row_key = build_key(
                cell_or_blank(cells, offsets[0]),
                [cell_or_blank(cells, o) for o in offsets[1:]],
                policy.separator,
                policy.date_aware,
            )
            if row_key == key:
                logger.debug(
                    "Key '%s' already present in '%s' row %d",
                    key,
                    table,
                    index + header + 1,
                )
                return True
        return False
