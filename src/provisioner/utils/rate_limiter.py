"""Rate limiting utilities for API calls.

Implements a token bucket. `Pacer` is a single-token bucket used to space out
bulk tracker writes (labels, items, relations) to respect third-party rate
limits without changing call ordering.
"""

import time
import logging
from typing import Callable

logger = logging.getLogger(__name__)


class RateLimiter:
    """Token bucket rate limiter."""

    def __init__(
        self,
        requests_per_second: float = 10.0,
        burst_size: int = 20,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize rate limiter.

        Args:
            requests_per_second: Sustained request rate (0 disables limiting)
            burst_size: Maximum burst capacity
            clock: Monotonic clock in seconds
            sleep: Sleep function taking seconds
        """
        self.requests_per_second = requests_per_second
        self.burst_size = burst_size
        self._clock = clock
        self._sleep = sleep

        self._tokens = float(burst_size)
        self._last_update = clock()

    def _refill_tokens(self) -> None:
        """Refill tokens based on elapsed time."""
        now = self._clock()
        elapsed = now - self._last_update
        self._tokens = min(
            self.burst_size,
            self._tokens + elapsed * self.requests_per_second
        )
        self._last_update = now

    def acquire_sync(self) -> None:
        """Acquire a token synchronously, blocking if necessary."""
        if self.requests_per_second <= 0:
            return

        self._refill_tokens()

        if self._tokens < 1.0:
            wait_time = (1.0 - self._tokens) / self.requests_per_second
            logger.debug(f"Rate limit: waiting {wait_time:.2f}s")
            self._sleep(wait_time)
            self._refill_tokens()
            # Sleep can return a hair early; never go negative
            self._tokens = max(self._tokens, 1.0)

        self._tokens -= 1.0


class Pacer(RateLimiter):
    """Minimum spacing between consecutive bulk writes. The first write never waits."""

    def __init__(
        self,
        interval_ms: int = 300,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        rate = 1000.0 / interval_ms if interval_ms > 0 else 0.0
        super().__init__(requests_per_second=rate, burst_size=1, clock=clock, sleep=sleep)
        self.interval_ms = interval_ms

    def wait(self) -> None:
        """Block until the next write is allowed."""
        self.acquire_sync()
