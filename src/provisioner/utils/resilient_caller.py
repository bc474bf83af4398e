"""
Bounded retry with exponential backoff for remote calls.

Every tracker, deployment and completion call in the pipeline goes through
ResilientCaller. All exceptions are retried up to the attempt budget; the
final exception is re-raised unchanged so callers see the underlying error.
"""

import time
import logging
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_INITIAL_DELAY_MS = 1000
DEFAULT_BACKOFF_MULTIPLIER = 2


class ResilientCaller:
    """Retry policy: `max_attempts` tries, delays d, 2d, 4d, ... with no jitter."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        initial_delay_ms: int = DEFAULT_INITIAL_DELAY_MS,
        backoff_multiplier: int = DEFAULT_BACKOFF_MULTIPLIER,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize retry policy.

        Args:
            max_attempts: Total attempts including the first one
            initial_delay_ms: Delay before the second attempt
            backoff_multiplier: Factor applied to the delay after each retry
            sleep: Sleep function taking seconds (injectable for tests)
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.initial_delay_ms = initial_delay_ms
        self.backoff_multiplier = backoff_multiplier
        self._sleep = sleep

    def call(
        self,
        operation: Callable[[], T],
        max_attempts: Optional[int] = None,
        initial_delay_ms: Optional[int] = None,
    ) -> T:
        """
        Invoke `operation`, retrying on any exception.

        Args:
            operation: Zero-argument callable performing the remote call
            max_attempts: Override the policy's attempt budget for this call
            initial_delay_ms: Override the policy's initial delay for this call

        Returns:
            Result of the first successful attempt

        Raises:
            The exception from the final attempt, unchanged
        """
        attempts = max_attempts if max_attempts is not None else self.max_attempts
        if attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        delay_ms = initial_delay_ms if initial_delay_ms is not None else self.initial_delay_ms

        for attempt in range(1, attempts + 1):
            try:
                return operation()
            except Exception as e:
                if attempt >= attempts:
                    raise

                logger.warning(
                    f"Remote call failed, retrying in {delay_ms}ms "
                    f"(attempt {attempt}/{attempts}): {e}",
                    extra={"attempt": attempt, "delay_ms": delay_ms},
                )
                self._sleep(delay_ms / 1000)
                delay_ms *= self.backoff_multiplier

        raise RuntimeError("unreachable")  # loop always returns or raises

