"""Retry with exponential backoff for transient transport errors."""

import logging
from typing import Awaitable, Callable, Optional, TypeVar

from src.utils.clock import Clock, SystemClock

logger = logging.getLogger(__name__)
T = TypeVar("T")


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    description: str,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    exceptions: tuple[type[Exception], ...] = (Exception,),
    clock: Optional[Clock] = None,
) -> T:
    """
    Await ``operation`` until it succeeds or the attempt budget runs out.

    Only exceptions listed in ``exceptions`` are retried; anything else
    propagates on the first failure. Backoff waits go through ``clock`` so
    callers sharing a clock with the poller are scheduled the same way.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        description: What is being attempted, for log messages
        max_attempts: Maximum number of attempts, including the first call
        base_delay: Delay before the second attempt in seconds (doubles each time)
        exceptions: Exception types treated as transient
        clock: Clock used for the backoff waits

    Returns:
        Result of the first successful attempt

    Raises:
        ValueError: If max_attempts is less than 1
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    clock = clock or SystemClock()

    for attempt in range(1, max_attempts):
        try:
            return await operation()
        except exceptions as e:
            delay = base_delay * (2 ** (attempt - 1))
            logger.warning(
                f"{description} attempt {attempt}/{max_attempts} failed: {e}. "
                f"Retrying in {delay}s..."
            )
            await clock.sleep(delay)

    try:
        return await operation()
    except exceptions as e:
        logger.error(f"{description} failed after {max_attempts} attempts: {e}")
        raise
