import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from config import DISPATCH_BACKOFF_BASE, DISPATCH_BACKOFF_MAX, DISPATCH_MAX_ATTEMPTS
from utils.errors import TransientStoreError

logger = logging.getLogger("tutorlink.retry")

T = TypeVar("T")


async def retry_transient(
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int = DISPATCH_MAX_ATTEMPTS,
    base_delay: float = DISPATCH_BACKOFF_BASE,
    max_delay: float = DISPATCH_BACKOFF_MAX,
    label: str = "operation",
) -> T:
    """
    Await `operation()`, retrying TransientStoreError with exponential backoff.

    Delays are base_delay * 2**n, capped at max_delay. Any other exception, or
    the last TransientStoreError once the budget is spent, propagates.
    """
    attempt = 1
    while True:
        try:
            return await operation()
        except TransientStoreError as e:
            if attempt >= attempts:
                logger.error("%s failed after %d attempts: %s", label, attempt, e)
                raise
            delay = min(base_delay * (2 ** (attempt - 1)), max_delay)
            logger.warning("%s failed (attempt %d/%d), retrying in %.2fs: %s", label, attempt, attempts, delay, e)
            await asyncio.sleep(delay)
            attempt += 1
