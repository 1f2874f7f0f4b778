"""
Retry logic for optimistic transactions.

A unit of work that hits a version conflict is re-run from scratch
(fresh reads) with exponential backoff, bounded by an attempt count
and by the caller's deadline.
"""

import functools
import time
from typing import Callable, Optional

from placement_engine.core.exceptions import (
    ConflictRetryable,
    OperationTimeout,
    StoreUnavailable,
)
from placement_engine.core.logger import get_logger

logger = get_logger()


def deadline_expired(deadline: Optional[float]) -> bool:
    """True when a monotonic deadline is set and has passed."""
    return deadline is not None and time.monotonic() >= deadline


def retry_on_conflict(
    max_attempts: int = 3,
    base_delay: float = 0.05,
    max_delay: float = 1.0,
    exponential_base: float = 2.0,
    on_retry: Optional[Callable] = None,
):
    """
    Decorator re-running a transactional function on ConflictRetryable.

    The wrapped function accepts an optional `deadline` keyword
    (time.monotonic() based). Every other EngineError propagates untouched.

    Args:
        max_attempts: Total attempts including the first one
        base_delay: Initial delay in seconds
        max_delay: Maximum delay between attempts in seconds
        exponential_base: Base for exponential calculation (delay *= base)
        on_retry: Optional callback function(attempt, exception, delay)

    Raises:
        StoreUnavailable: when every attempt conflicted
        OperationTimeout: when the deadline passes between attempts
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            deadline = kwargs.get("deadline")
            delay = base_delay

            for attempt in range(1, max_attempts + 1):
                if deadline_expired(deadline):
                    raise OperationTimeout()
                try:
                    return func(*args, **kwargs)
                except ConflictRetryable as e:
                    logger.record_conflict()
                    if attempt >= max_attempts:
                        raise StoreUnavailable(
                            f"Gave up after {max_attempts} conflicting attempts"
                        ) from e

                    current_delay = min(delay, max_delay)
                    logger.warning(
                        "Transaction conflict, retrying",
                        operation=func.__name__,
                        attempt=attempt,
                        record=f"{e.collection}/{e.key}",
                    )
                    if on_retry:
                        on_retry(attempt, e, current_delay)
                    if deadline is not None and time.monotonic() + current_delay >= deadline:
                        raise OperationTimeout() from e
                    time.sleep(current_delay)
                    delay *= exponential_base

        return wrapper
    return decorator


def retrying(func: Callable, settings) -> Callable:
    """Wrap `func` with retry_on_conflict configured from Settings."""
    return retry_on_conflict(
        max_attempts=settings.max_commit_attempts,
        base_delay=settings.retry_base_delay,
        max_delay=settings.retry_max_delay,
    )(func)
