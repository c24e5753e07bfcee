"""Clock interfaces for testable time management."""

import time
from typing import Protocol


class Clock(Protocol):
    """Clock interface for testable time management."""

    def now(self) -> float:
        """Return current time in seconds."""
        ...


class MonotonicClock:
    """Clock for measuring intervals (circuit breaker cooldowns)."""

    def now(self) -> float:
        return time.monotonic()


class WallClock:
    """Clock returning epoch seconds, used for cache expiry timestamps."""

    def now(self) -> float:
        return time.time()
