"""Edit-event router.

Classifies an edit by table and column and hands it to the component that
owns it:

* the ``SyncGuard`` when the edited cell is one side of a mirrored field;
* the ``TransferEngine`` for every transfer whose trigger column was
  edited to one of its trigger values.

Edits that match nothing are ignored.
"""

from __future__ import annotations

import logging

from ..config_schema import TransferSpec, UnifiedConfig
from ..core.keys import normalize
from .engine import TransferEngine
from .guard import SyncGuard
from .models import EditEvent, SyncResult, TransferResult

logger = logging.getLogger(__name__)


class EditRouter:
    """Dispatch edit events according to the relay configuration.

    Args:
        config: Loaded relay configuration.
        engine: Transfer engine to use for row migrations.
        guard: Sync guard to use for mirrored fields.
    """

    def __init__(
        self,
        config: UnifiedConfig,
        engine: TransferEngine,
        guard: SyncGuard,
    ) -> None:
        self.config = config
        self.engine = engine
        self.guard = guard

    def handle(self, event: EditEvent) -> list[TransferResult | SyncResult]:
        """Route *event*; return the outcome of every component it reached."""
        for spec in self.config.syncs.values():
            if spec.side_for(event.table, event.column) is not None:
                logger.debug(
                    "Edit %s!%d:%d -> sync '%s'",
                    event.table,
                    event.row,
                    event.column,
                    spec.name,
                )
                return [self.guard.propagate(event, spec)]

        results: list[TransferResult | SyncResult] = []
        for spec in self.config.transfers.values():
            if self._triggers(spec, event):
                logger.debug(
                    "Edit %s!%d:%d -> transfer '%s'",
                    event.table,
                    event.row,
                    event.column,
                    spec.name,
                )
                results.append(self.engine.execute_transfer(event, spec))

        if not results:
            logger.debug(
                "Edit %s!%d:%d matched no transfer or sync",
                event.table,
                event.row,
                event.column,
            )
        return results

    @staticmethod
    def _triggers(spec: TransferSpec, event: EditEvent) -> bool:
        if spec.source_table != event.table:
            return False
        if spec.trigger_column != event.column:
            return False
        value = normalize(event.new_value)
        if not spec.trigger_values:
            return value != ""
        return value in {normalize(v) for v in spec.trigger_values}
