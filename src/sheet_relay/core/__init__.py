"""Storage-independent building blocks shared by the relay engine and guard."""

from .keys import build_key, normalize
from .lock import FileLockProvider, LockProvider, ThreadLock
from .retry import with_retry
from .table import JsonFileWorkbook, TableAccessor, Workbook

__all__ = [
    "FileLockProvider",
    "JsonFileWorkbook",
    "LockProvider",
    "TableAccessor",
    "ThreadLock",
    "Workbook",
    "build_key",
    "normalize",
    "with_retry",
]
