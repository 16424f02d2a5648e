"""Retry policy at the boundary between the engine and the store.

Only transient connectivity failures are retried. Application errors
(conflicts, validation, permissions) and integrity violations surface on
the first attempt.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TypeVar

from loguru import logger
from sqlalchemy.exc import DBAPIError, DisconnectionError, InterfaceError, OperationalError

from studyplan.core.errors import StoreUnavailableError, StudyPlanError

T = TypeVar("T")


def _is_retryable_error(error: Exception) -> bool:
    """Check if a store error is transient.

    Args:
        error: Exception raised by the unit of work

    Returns:
        True if the operation may succeed when repeated
    """
    if isinstance(error, StudyPlanError):
        return False
    if isinstance(error, (OperationalError, InterfaceError, DisconnectionError)):
        return True
    return isinstance(error, DBAPIError) and error.connection_invalidated


def _calculate_backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Calculate exponential backoff delay.

    Args:
        attempt: Current attempt number (0-indexed)
        base_delay: Base delay in seconds
        max_delay: Maximum delay in seconds

    Returns:
        Delay in seconds
    """
    delay = base_delay * (2**attempt)
    return min(delay, max_delay)


def with_store_retry(  # noqa: UP047
    operation: Callable[[], T],
    *,
    name: str,
    attempts: int = 3,
    base_delay: float = 0.2,
    max_delay: float = 2.0,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run a store operation, retrying transient failures with backoff.

    Args:
        operation: Zero-argument callable performing one unit of work
        name: Operation name for logging
        attempts: Total attempts (at least 1)
        base_delay: Base backoff delay in seconds
        max_delay: Cap on a single backoff delay
        sleep: Sleep function (injectable for tests)

    Returns:
        Result of the operation

    Raises:
        StoreUnavailableError: If every attempt failed with a transient error
        Exception: Any non-transient error, unchanged
    """
    attempts = max(attempts, 1)
    last_error: Exception | None = None
    for attempt in range(attempts):
        try:
            return operation()
        except Exception as e:
            if not _is_retryable_error(e):
                raise
            last_error = e
            if attempt + 1 >= attempts:
                break
            wait_time = _calculate_backoff_delay(attempt, base_delay, max_delay)
            logger.warning(
                f"[STORE_RETRY] {name} failed with transient error ({type(e).__name__}), "
                f"retrying in {wait_time:.2f}s (attempt {attempt + 1}/{attempts})"
            )
            sleep(wait_time)

    logger.error(f"[STORE_RETRY] {name} failed after {attempts} attempts: {last_error}")
    raise StoreUnavailableError(f"{name} failed after {attempts} attempts") from last_error
