"""Retry logic with exponential backoff and jitter.

The matching engine never retries on its own: a ``TransientStoreError`` is
surfaced to the caller, and callers (the CLI, queue workers) decide how to
retry using the helpers below.

Usage:
    # Async function
    result = await retry_async(
        lambda: fetch_decision(),
        config=RetryConfig(max_retries=5, base_delay=2.0),
    )

    # Sync function
    decision = retry_sync(
        lambda: service.detect(tenant_id, document_id),
        config=store_retry_config(max_retries=3),
    )
"""

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from ledgermatch.exceptions import TransientStoreError
from ledgermatch.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior.

    Attributes:
        max_retries: Maximum number of retry attempts (default: 3)
        base_delay: Base delay in seconds before first retry (default: 1.0)
        max_delay: Maximum delay in seconds between retries (default: 60.0)
        backoff_factor: Exponential backoff multiplier (default: 2.0)
        jitter: Whether to add random jitter to delays (default: True)
        jitter_range: Range for jitter as fraction of delay (default: 0.1 = ±10%)
        retryable_exceptions: Tuple of exception types to retry (default: all)
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    backoff_factor: float = 2.0
    jitter: bool = True
    jitter_range: float = 0.1
    retryable_exceptions: tuple[type[Exception], ...] = field(default_factory=lambda: (Exception,))

    def __post_init__(self):
        """Validate configuration parameters."""
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay <= 0:
            raise ValueError("base_delay must be > 0")
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")
        if self.backoff_factor < 1:
            raise ValueError("backoff_factor must be >= 1")
        if not 0 <= self.jitter_range <= 1:
            raise ValueError("jitter_range must be between 0 and 1")

    def calculate_delay(self, attempt: int) -> float:
        """Calculate delay for a given retry attempt (0-indexed)."""
        delay = min(self.base_delay * (self.backoff_factor**attempt), self.max_delay)

        # Add jitter to prevent thundering herd
        if self.jitter:
            jitter_amount = delay * self.jitter_range
            jitter = random.uniform(-jitter_amount, jitter_amount)
            delay = max(0, delay + jitter)

        return delay


async def retry_async(
    func: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    on_retry: Callable[[Exception, int], Awaitable[None]] | None = None,
) -> T:
    """Retry an async function with exponential backoff.

    Args:
        func: Async function to retry (takes no arguments)
        config: Retry configuration (uses defaults if None)
        on_retry: Optional callback called before each retry
                 Signature: async def on_retry(error: Exception, attempt: int)

    Returns:
        The return value of func() on success

    Raises:
        The last exception if all retries are exhausted, or the first
        non-retryable exception.
    """
    config = config or RetryConfig()
    last_exception: Exception | None = None

    for attempt in range(config.max_retries + 1):
        try:
            return await func()

        except Exception as e:
            last_exception = e

            if not isinstance(e, config.retryable_exceptions):
                logger.debug(
                    "retry_skipped_non_retryable_exception",
                    exception_type=type(e).__name__,
                    error=str(e),
                )
                raise

            if attempt >= config.max_retries:
                logger.error(
                    "retry_exhausted",
                    attempts=attempt + 1,
                    exception=type(e).__name__,
                    error=str(e),
                )
                raise

            delay = config.calculate_delay(attempt)

            logger.info(
                "retry_attempt",
                attempt=attempt + 1,
                max_retries=config.max_retries,
                delay_seconds=round(delay, 2),
                exception=type(e).__name__,
                error=str(e),
            )

            if on_retry:
                try:
                    await on_retry(e, attempt + 1)
                except Exception as callback_error:
                    logger.warning(
                        "retry_callback_failed",
                        error=str(callback_error),
                    )

            await asyncio.sleep(delay)

    # Unreachable, but satisfies the type checker
    if last_exception:
        raise last_exception
    raise RuntimeError("retry_async: unexpected code path")


def retry_sync(
    func: Callable[[], T],
    config: RetryConfig | None = None,
    on_retry: Callable[[Exception, int], None] | None = None,
) -> T:
    """Sync wrapper around retry_async for blocking operations.

    Must not be called from inside a running event loop.
    """
    config = config or RetryConfig()

    async def async_on_retry(error: Exception, attempt: int) -> None:
        if on_retry:
            on_retry(error, attempt)

    async def async_func() -> T:
        return func()

    return asyncio.run(
        retry_async(
            async_func,
            config=config,
            on_retry=async_on_retry if on_retry else None,
        )
    )


def store_retry_config(max_retries: int = 3, base_delay: float = 0.5) -> RetryConfig:
    """Build a retry policy that only retries transient store failures."""
    return RetryConfig(
        max_retries=max_retries,
        base_delay=base_delay,
        max_delay=max(base_delay, 10.0),
        backoff_factor=2.0,
        retryable_exceptions=(TransientStoreError,),
    )
