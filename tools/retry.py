"""Bounded exponential-backoff retry for provider calls."""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Server-busy / server-error statuses that are worth retrying
TRANSIENT_STATUS_CODES = frozenset({500, 503, 529})

DEFAULT_RETRIES = 3
DEFAULT_BASE_DELAY = 2.0


def is_transient_error(error: BaseException) -> bool:
    """True if the failure carries a transient-overload signature.

    Looks for a busy status code on ``status_code`` / ``status`` or the
    word "overloaded" in the error message.
    """
    for attr in ("status_code", "status"):
        status = getattr(error, attr, None)
        if isinstance(status, int) and status in TRANSIENT_STATUS_CODES:
            return True
    return "overloaded" in str(error).lower()


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    retries: int = DEFAULT_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> T:
    """Run ``operation``, retrying transient failures with doubling delays.

    The n-th retry waits ``base_delay * 2**(n-1)``. Non-transient failures
    and the failure that exhausts the budget propagate unchanged.

    Args:
        operation: Zero-argument coroutine factory; called once per attempt.
        retries: Number of retries after the first attempt.
        base_delay: Delay before the first retry, in seconds.
        sleep: Awaitable sleep function (injectable for tests).
    """
    attempts_used = 0
    while True:
        try:
            return await operation()
        except Exception as e:
            if attempts_used >= retries or not is_transient_error(e):
                raise
            delay = base_delay * (2 ** attempts_used)
            attempts_used += 1
            logger.warning(
                "LLM call failed, retry %d/%d in %.1fs: %s",
                attempts_used, retries, delay, e,
            )
            await sleep(delay)
