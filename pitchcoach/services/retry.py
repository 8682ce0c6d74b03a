"""Bounded retry with linear backoff for provider calls."""

import asyncio
from typing import Awaitable, Callable, TypeVar

import structlog

from pitchcoach.errors import QuotaExceededError, RetryExhaustedError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Case-insensitive substrings that identify quota / rate-limit failures
QUOTA_MARKERS = ("quota", "rate limit", "resource_exhausted", "429")

DEFAULT_ATTEMPTS = 3


def is_quota_error(error: BaseException) -> bool:
    """Return True if the error looks like quota exhaustion or rate limiting."""
    if getattr(error, "status_code", None) == 429:
        return True
    message = str(error).lower()
    return any(marker in message for marker in QUOTA_MARKERS)


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    label: str,
    attempts: int = DEFAULT_ATTEMPTS,
    base_delay: float = 1.0,
) -> T:
    """Call ``fn`` until it succeeds, up to ``attempts`` times.

    The wait before attempt ``n + 1`` is ``base_delay * n``. Quota errors are
    not retried: they surface after the first call as QuotaExceededError.

    Args:
        fn: Zero-argument coroutine factory
        label: Call-site name used in logs and in the raised error
        attempts: Maximum number of calls
        base_delay: Backoff unit in seconds

    Returns:
        Whatever ``fn`` returned on its first successful call

    Raises:
        QuotaExceededError: The provider reported a quota/rate-limit problem
        RetryExhaustedError: Every attempt failed with a transient error
    """
    last_error: BaseException | None = None

    for attempt in range(1, attempts + 1):
        try:
            return await fn()
        except Exception as e:
            if is_quota_error(e):
                logger.warning(
                    "provider_quota_exceeded",
                    label=label,
                    attempt=attempt,
                    error=str(e),
                )
                raise QuotaExceededError(label, e) from e

            last_error = e
            if attempt < attempts:
                wait_time = base_delay * attempt
                logger.warning(
                    "provider_call_retry",
                    label=label,
                    attempt=attempt,
                    wait_seconds=wait_time,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                await asyncio.sleep(wait_time)

    logger.error(
        "provider_call_failed_after_retries",
        label=label,
        attempts=attempts,
        last_error=str(last_error),
    )
    raise RetryExhaustedError(label, attempts, last_error) from last_error
