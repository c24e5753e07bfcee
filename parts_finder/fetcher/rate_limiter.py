"""Per-marketplace token bucket with a bounded wait."""

import asyncio
import time
from typing import Any, Callable, Dict, Tuple


class RateLimiter:
    """Token bucket rate limiter keyed by marketplace source.

    Unlike a blocking limiter, ``try_acquire`` gives up after ``max_wait``
    seconds so a saturated marketplace degrades to "no live listings" instead
    of stalling a batch past its deadline.
    """

    def __init__(
        self,
        max_tokens: int = 5,
        refill_rate: float = 5.0,
        retry_sleep: float = 0.05,
        now: Callable[[], float] = time.monotonic,
        sleeper: Callable[[float], Any] = asyncio.sleep,
    ):
        """Initialize rate limiter.

        Args:
            max_tokens: Bucket capacity (burst size)
            refill_rate: Tokens added per second
            retry_sleep: Poll interval while waiting for a token
            now: Clock function (default: time.monotonic)
            sleeper: Async sleep function (default: asyncio.sleep)
        """
        self.max_tokens = max_tokens
        self.refill_rate = refill_rate
        self.retry_sleep = retry_sleep
        self._now = now
        self._sleep = sleeper
        # {source: (tokens, last_refill_time)}
        self._buckets: Dict[str, Tuple[float, float]] = {}

    def _refill(self, source: str) -> float:
        current_time = self._now()
        tokens, last_refill = self._buckets.get(source, (float(self.max_tokens), current_time))
        tokens = min(float(self.max_tokens), tokens + (current_time - last_refill) * self.refill_rate)
        self._buckets[source] = (tokens, current_time)
        return tokens

    def take(self, source: str) -> bool:
        """Consume a token if one is available right now."""
        tokens = self._refill(source)
        if tokens >= 1.0:
            self._buckets[source] = (tokens - 1.0, self._buckets[source][1])
            return True
        return False

    async def try_acquire(self, source: str, max_wait: float = 2.0) -> bool:
        """Wait up to ``max_wait`` seconds for a token.

        Check-and-consume happens without an intervening await, so no lock is
        needed on a single event loop.

        Returns:
            True if a token was consumed, False if the wait budget ran out
        """
        deadline = self._now() + max_wait
        while True:
            if self.take(source):
                return True
            if self._now() >= deadline:
                return False
            await self._sleep(self.retry_sleep)

    def tokens_available(self, source: str) -> int:
        """Tokens currently available (floored), for monitoring and tests."""
        return int(self._refill(source))
