"""Retry policy with capped exponential backoff.

Transient failures (request timeout, rate limit, server errors) are retried;
the wait before retry ``n`` (0-based) is ``base_delay * factor**n`` capped at
``max_delay``. Waits go through an injectable awaitable so that cancellation
of the calling task propagates out of the sleep.
"""

import asyncio
import logging
from typing import Awaitable, Callable

from fetchkit.domain.models.common import BackoffPolicy

logger = logging.getLogger(__name__)

DEFAULT_BASE_DELAY_S = 0.25
DEFAULT_MAX_DELAY_S = 2.0
DEFAULT_BACKOFF_FACTOR = 2.0

# 5xx are handled by range in is_transient_status
TRANSIENT_STATUS_CODES = frozenset({408, 429})

SleepFunc = Callable[[float], Awaitable[None]]


def is_transient_status(status_code: int) -> bool:
    """True for statuses that may succeed when retried (408, 429, >= 500)."""
    return status_code in TRANSIENT_STATUS_CODES or status_code >= 500


class RetryPolicy:
    """Computes and performs backoff waits between attempts."""

    def __init__(
        self,
        base_delay: float = DEFAULT_BASE_DELAY_S,
        max_delay: float = DEFAULT_MAX_DELAY_S,
        factor: float = DEFAULT_BACKOFF_FACTOR,
        sleep: SleepFunc = asyncio.sleep,
    ):
        """Initializes the RetryPolicy.

        Args:
            base_delay: Delay in seconds before the first retry.
            max_delay: Upper bound for any single delay.
            factor: Multiplier applied per retry (2 for exponential doubling).
            sleep: Awaitable used to wait; asyncio.sleep unless overridden in tests.
        """
        if base_delay < 0 or max_delay < 0:
            raise ValueError("Backoff delays must be non-negative")
        if factor < 1:
            raise ValueError("Backoff factor must be >= 1")
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.factor = factor
        self._sleep = sleep

    def delay_for(self, attempt: int) -> float:
        """Delay in seconds before retry number ``attempt`` (0-based)."""
        return min(self.base_delay * (self.factor ** attempt), self.max_delay)

    async def wait(self, attempt: int) -> float:
        """Sleeps for the backoff delay of ``attempt`` and returns it."""
        delay = self.delay_for(attempt)
        logger.debug(f"Backing off {delay:.3f}s before retry {attempt + 1}")
        await self._sleep(delay)
        return delay

    def as_dict(self) -> BackoffPolicy:
        return BackoffPolicy(base_delay=self.base_delay, max_delay=self.max_delay, factor=self.factor)
