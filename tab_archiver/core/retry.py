"""Retry helper for transient browser errors.

Archiving and reordering both hit the same transient condition: the
browser refuses tab edits while the user is dragging a tab. Both go
through :func:`retry_on_transient` so they share one definition of
"transient" and one retry loop.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from tab_archiver.core.errors import RetryExhaustedError, TabEditLockedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]
TransientPredicate = Callable[[BaseException], bool]


def is_edit_lock_error(error: BaseException) -> bool:
    """Default transient classifier: the tab-edit lock and nothing else."""
    return isinstance(error, TabEditLockedError)


@dataclass
class RetryResult(Generic[T]):
    """Value returned by a successful retried call.

    Attributes:
        value: What the operation returned.
        attempts: How many calls it took (1 means no retry was needed).
    """

    value: T
    attempts: int


async def retry_on_transient(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int,
    delay_seconds: float,
    sleep: SleepFn,
    is_transient: TransientPredicate = is_edit_lock_error,
    description: str = "operation",
) -> RetryResult[T]:
    """Run ``operation`` and retry it with a fixed delay on transient errors.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt.
        max_attempts: Total number of calls allowed (>= 1).
        delay_seconds: Fixed pause between attempts.
        sleep: Coroutine used to wait between attempts.
        is_transient: Classifier deciding which errors are worth retrying.
        description: Short label for log messages.

    Returns:
        RetryResult with the operation's value and the attempt count.

    Raises:
        RetryExhaustedError: Every attempt failed with a transient error.
        Exception: The first non-transient error, unchanged and unretried.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    for attempt in range(1, max_attempts + 1):
        try:
            value = await operation()
            return RetryResult(value=value, attempts=attempt)
        except Exception as e:
            if not is_transient(e):
                raise
            if attempt == max_attempts:
                raise RetryExhaustedError(attempts=attempt, last_error=e) from e
            logger.warning(
                f"Attempt {attempt}/{max_attempts} to {description} failed "
                f"due to drag/edit lock. Retrying in {delay_seconds * 1000:.0f}ms..."
            )
            await sleep(delay_seconds)

    # Unreachable: the loop either returns or raises
    raise AssertionError("retry loop exited without result")
