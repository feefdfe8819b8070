"""Retry wrapper with exponential backoff and jitter."""

from __future__ import annotations

import logging
import random
import time
from typing import Callable, TypeVar

from ..errors import DependencyError, classify_error, is_retryable

T = TypeVar("T")
logger = logging.getLogger(__name__)

JITTER_RATIO = 0.2


def backoff_delay(attempt: int, initial_delay: float) -> float:
    """Delay before retrying after failed *attempt* (1-based).

    ``2**attempt * initial_delay`` stretched by up to 20% of jitter.
    """
    return (2**attempt) * initial_delay * (1 + random.random() * JITTER_RATIO)


def with_retry(
    operation: Callable[[], T],
    max_attempts: int = 3,
    initial_delay: float = 0.5,
    name: str | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run *operation* until it succeeds or attempts run out.

    Validation and configuration failures are re-raised immediately.
    Everything else is retried; once ``max_attempts`` is exhausted a
    ``DependencyError`` wrapping the last failure is raised.

    Args:
        operation: Zero-argument callable to invoke.
        max_attempts: Total number of attempts (>= 1).
        initial_delay: Base delay in seconds.
        name: Operation name used in logs and the final error.
        sleep: Sleep function (injectable for tests).

    Returns:
        The operation's result.

    Raises:
        ValidationError, ConfigurationError: Propagated unchanged.
        DependencyError: After the final failed attempt.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    op_name = name or getattr(operation, "__name__", "operation")
    last_error: Exception | None = None

    for attempt in range(1, max_attempts + 1):
        try:
            return operation()
        except Exception as exc:
            if not is_retryable(exc):
                raise
            last_error = exc
            if attempt == max_attempts:
                break
            delay = backoff_delay(attempt, initial_delay)
            logger.warning(
                "%s failed (attempt %d/%d, %s): %s -- retrying in %.2fs",
                op_name,
                attempt,
                max_attempts,
                classify_error(exc).value,
                exc,
                delay,
            )
            sleep(delay)

    raise DependencyError(
        f"{op_name} failed after {max_attempts} attempts: {last_error}",
        {"operation": op_name, "attempts": max_attempts},
    ) from last_error
