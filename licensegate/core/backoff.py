"""Pause schedule for retried license server checks."""
import random
from typing import Callable, Iterator


class RetrySchedule:
    """
    Pauses to take before each attempt of a bounded retry loop.

    The first attempt starts immediately; every retry waits twice as long as
    the previous one, capped at max_delay, plus up to 10% jitter.

    Usage:
        for attempt, pause in enumerate(RetrySchedule(3).pauses(), start=1):
            sleep(pause)
            ...
    """

    def __init__(
        self,
        max_attempts: int = 1,
        base_delay: float = 0.5,
        max_delay: float = 5.0,
        jitter: Callable[[], float] = random.random,
    ):
        """
        Args:
            max_attempts: Total attempts including the first (at least 1)
            base_delay: Pause before the first retry, in seconds
            max_delay: Upper bound on any pause before jitter
            jitter: Returns a float in [0, 1); pin it in tests
        """
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._jitter = jitter

    def delay_before_retry(self, retry: int) -> float:
        """Pause before the given retry (1 = second attempt)."""
        delay = min(self.max_delay, self.base_delay * (2 ** (retry - 1)))
        return delay + delay * 0.1 * self._jitter()

    def pauses(self) -> Iterator[float]:
        """One pause per attempt: 0.0 for the first, then the backoff delays."""
        yield 0.0
        for retry in range(1, self.max_attempts):
            yield self.delay_before_retry(retry)
