"""Error taxonomy for the relay core.

Four kinds of failure are distinguished:

- ``VALIDATION``    -- bad or missing input data.  Never retried.
- ``CONFIGURATION`` -- bad setup (unknown table, impossible mapping).
  Never retried; halts the broader operation.
- ``TRANSIENT``     -- a time-bounded dependency hiccup (lock contention,
  flaky I/O).  Safe to retry.
- ``DEPENDENCY``    -- any other external-call failure.  Retried like
  ``TRANSIENT`` unless it wraps a validation/configuration error.

``classify_error()`` maps arbitrary exceptions onto these kinds so the
retry wrapper and the outcome publisher share one decision table.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Failure categories used for retry and notification decisions."""

    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    TRANSIENT = "transient"
    DEPENDENCY = "dependency"


class RelayError(Exception):
    """Base class for all relay errors.

    Args:
        message: Human-readable description.
        context: Optional structured details (table, row, operation...).
    """

    kind: ErrorKind = ErrorKind.DEPENDENCY

    def __init__(self, message: str, context: dict | None = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)


class ValidationError(RelayError):
    """Input data is missing or malformed."""

    kind = ErrorKind.VALIDATION


class ConfigurationError(RelayError):
    """The relay is configured in a way that cannot work."""

    kind = ErrorKind.CONFIGURATION


class DependencyError(RelayError):
    """An external call (table store, lock, sink) failed."""

    kind = ErrorKind.DEPENDENCY


class TransientError(DependencyError):
    """A dependency failure known to be temporary and safe to retry."""

    kind = ErrorKind.TRANSIENT


class LockTimeoutError(TransientError):
    """The global relay lock could not be acquired in time."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Could not acquire relay lock within {timeout:g}s",
            {"timeout": timeout},
        )


_NON_RETRYABLE = (ErrorKind.VALIDATION, ErrorKind.CONFIGURATION)


def classify_error(exc: BaseException) -> ErrorKind:
    """Return the ``ErrorKind`` for *exc*.

    A ``DependencyError`` raised ``from`` a validation or configuration
    error is reported with the cause's kind, so wrapping never turns a
    permanent failure into a retryable one.
    """
    if isinstance(exc, DependencyError):
        cause = exc.__cause__
        if cause is not None and cause is not exc:
            cause_kind = classify_error(cause)
            if cause_kind in _NON_RETRYABLE:
                return cause_kind
        return exc.kind
    if isinstance(exc, RelayError):
        return exc.kind
    if isinstance(exc, (TimeoutError, ConnectionError, OSError)):
        return ErrorKind.TRANSIENT
    return ErrorKind.DEPENDENCY


def is_retryable(exc: BaseException) -> bool:
    """``True`` unless *exc* is a validation or configuration failure."""
    return classify_error(exc) not in _NON_RETRYABLE
