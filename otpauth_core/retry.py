"""
Retry with Exponential Backoff
==============================
Bounded retries for transient backend failures.
"""

import asyncio
import random
from typing import Awaitable, Callable, Optional, Set, Type, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class RetryExhausted(Exception):
    """Raised when all retry attempts have been exhausted."""

    def __init__(self, message: str, last_exception: Optional[Exception] = None):
        super().__init__(message)
        self.last_exception = last_exception


async def retry_with_backoff(
    func: Callable[..., Awaitable[T]],
    *args,
    max_attempts: int = 3,
    base_delay: float = 0.05,
    max_delay: float = 2.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retryable_exceptions: Optional[Set[Type[Exception]]] = None,
    **kwargs,
) -> T:
    """
    Execute a function with exponential backoff retry.

    Exceptions outside ``retryable_exceptions`` propagate immediately.

    Args:
        func: Async function to execute
        *args: Positional arguments for func
        max_attempts: Maximum number of attempts
        base_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        exponential_base: Base for exponential calculation
        jitter: Add random jitter to delays
        retryable_exceptions: Set of exception types to retry on
        **kwargs: Keyword arguments for func

    Returns:
        Result of func

    Raises:
        RetryExhausted: If all attempts fail
    """
    retryable = tuple(retryable_exceptions or {Exception})

    for attempt in range(1, max_attempts + 1):
        try:
            return await func(*args, **kwargs)
        except retryable as e:
            if attempt == max_attempts:
                logger.error(
                    "Retry exhausted",
                    func=getattr(func, "__name__", repr(func)),
                    attempts=attempt,
                    error=str(e),
                )
                raise RetryExhausted(
                    f"Failed after {max_attempts} attempts: {e}",
                    last_exception=e,
                ) from e

            delay = min(base_delay * (exponential_base ** (attempt - 1)), max_delay)
            if jitter:
                delay = delay * (0.5 + random.random())

            logger.warning(
                "Retrying after failure",
                func=getattr(func, "__name__", repr(func)),
                attempt=attempt,
                delay=delay,
                error=str(e),
            )
            await asyncio.sleep(delay)

    raise RetryExhausted(f"Failed after {max_attempts} attempts")
