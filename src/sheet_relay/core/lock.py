"""Global relay lock.

The table store has no row-level locking, so every transfer and sync is
serialised through one coarse lock.  Acquisition is always bounded: a
provider returns ``False`` when the wait expires instead of blocking.

* ``ThreadLock`` -- ``threading.Lock`` for a single process.
* ``FileLockProvider`` -- ``filelock.FileLock`` for separate processes
  sharing one workbook (e.g. concurrent CLI invocations).
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Protocol, runtime_checkable

from filelock import FileLock, Timeout

from ..errors import LockTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT = 5.0


@runtime_checkable
class LockProvider(Protocol):
    """Bounded mutual-exclusion token."""

    def try_acquire(self, timeout: float) -> bool: ...

    def release(self) -> None: ...


class ThreadLock:
    """In-process lock backed by ``threading.Lock``."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def try_acquire(self, timeout: float) -> bool:
        return self._lock.acquire(timeout=max(timeout, 0))

    def release(self) -> None:
        try:
            self._lock.release()
        except RuntimeError:
            logger.warning("Released relay lock that was not held")


class FileLockProvider:
    """Cross-process lock backed by a lock file.

    Args:
        path: Lock file location (created on demand).
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = FileLock(str(self.path))

    def try_acquire(self, timeout: float) -> bool:
        try:
            self._lock.acquire(timeout=max(timeout, 0))
        except Timeout:
            logger.info(
                "Timed out after %.1fs waiting for %s", timeout, self.path
            )
            return False
        return True

    def release(self) -> None:
        self._lock.release()


@contextmanager
def held(lock: LockProvider, timeout: float = DEFAULT_LOCK_TIMEOUT) -> Iterator[None]:
    """Hold *lock* for the duration of the block.

    Raises:
        LockTimeoutError: If the lock is not acquired within *timeout*.
    """
    if not lock.try_acquire(timeout):
        raise LockTimeoutError(timeout)
    try:
        yield
    finally:
        lock.release()
