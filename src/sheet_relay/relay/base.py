"""Shared invocation scaffolding for the transfer engine and sync guard.

Both components follow the same outer protocol:

1. acquire the global relay lock with a bounded wait (timeout is a skip,
   not an error);
2. run the component-specific body, with table-store calls wrapped in
   ``with_retry``;
3. turn any escaping exception into an ``error`` outcome;
4. release the lock on every path;
5. hand exactly one audit entry to the ``OutcomePublisher``.

Nothing raised inside the body reaches the caller.
"""

from __future__ import annotations

import logging
import time
from contextlib import ExitStack
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from ..config_schema import RetrySettings
from ..core.lock import DEFAULT_LOCK_TIMEOUT, LockProvider, held
from ..core.retry import with_retry
from ..core.table import TableAccessor
from ..errors import ConfigurationError, LockTimeoutError, classify_error
from .models import AuditEntry, AuditResult, EditEvent, new_correlation_id
from .reporter import OutcomePublisher

T = TypeVar("T")
R = TypeVar("R")
logger = logging.getLogger(__name__)


@dataclass
class Invocation:
    """Per-call context accumulated while the body runs."""

    action: str
    event: EditEvent
    user: str
    correlation_id: str = field(default_factory=new_correlation_id)
    project_id: str = ""

    def entry(
        self,
        result: AuditResult,
        detail: str = "",
        error: str | None = None,
    ) -> AuditEntry:
        return AuditEntry(
            correlation_id=self.correlation_id,
            user=self.user,
            action=self.action,
            source_table=self.event.table,
            source_row=self.event.row,
            project_id=self.project_id,
            detail=detail,
            result=result,
            error=error,
        )


class LockedOperation:
    """Base class for lock-serialised relay operations.

    Args:
        accessor: Table store.
        lock: Global relay lock.
        publisher: Receives one audit entry per invocation.
        lock_timeout: Seconds to wait for the lock.
        retry: Backoff policy for table-store calls.
        user: Acting user when the event does not name one.
        sleep: Sleep function used between retries.
    """

    def __init__(
        self,
        accessor: TableAccessor,
        lock: LockProvider,
        publisher: OutcomePublisher,
        *,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
        retry: RetrySettings | None = None,
        user: str = "system",
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.accessor = accessor
        self.lock = lock
        self.publisher = publisher
        self.lock_timeout = lock_timeout
        self.retry = retry or RetrySettings()
        self.user = user
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def _make_result(self, entry: AuditEntry, **fields: Any) -> Any:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _call(self, operation: Callable[[], T], name: str) -> T:
        """Run one table-store call under the retry policy."""
        return with_retry(
            operation,
            max_attempts=self.retry.max_attempts,
            initial_delay=self.retry.initial_delay,
            name=name,
            sleep=self._sleep,
        )

    def _require_table(self, table: str) -> None:
        if not self._call(lambda: self.accessor.has_table(table), "has_table"):
            raise ConfigurationError(
                f"Table '{table}' does not exist", {"table": table}
            )

    def _run(
        self,
        action: str,
        event: EditEvent,
        body: Callable[[Invocation], R],
    ) -> R:
        invocation = Invocation(
            action=action, event=event, user=event.user or self.user
        )
        failure: BaseException | None = None

        with ExitStack() as stack:
            # Only a timeout while acquiring is a skip; one raised by the
            # body is an ordinary failure.
            try:
                stack.enter_context(held(self.lock, self.lock_timeout))
            except LockTimeoutError as exc:
                logger.info(
                    "%s skipped for %s!%d: %s",
                    action,
                    event.table,
                    event.row,
                    exc,
                )
                result = self._make_result(
                    invocation.entry(AuditResult.SKIPPED_NO_LOCK, detail=str(exc))
                )
            else:
                try:
                    result = body(invocation)
                except Exception as exc:
                    failure = exc
                    kind = classify_error(exc)
                    logger.error(
                        "%s failed for %s!%d (%s): %s",
                        action,
                        event.table,
                        event.row,
                        kind.value,
                        exc,
                        exc_info=True,
                    )
                    result = self._make_result(
                        invocation.entry(
                            AuditResult.ERROR,
                            detail=f"{kind.value} failure",
                            error=str(exc),
                        )
                    )

        self.publisher.publish(result.entry, failure)
        return result
