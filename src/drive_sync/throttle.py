"""Client-side rate limiting for calls to external providers."""

from __future__ import annotations

import threading
import time
from typing import Callable


class RateLimiter:
    """Space calls at least ``1 / rate`` seconds apart across threads.

    A fixed inter-call delay: every :meth:`acquire` reserves the next free
    slot under a lock and then sleeps until that slot, so concurrent
    workers never exceed the configured rate.

    Parameters
    ----------
    rate:
        Maximum calls per second.  ``None`` or ``0`` disables limiting.
    clock / sleep:
        Injectable for tests.
    """

    def __init__(
        self,
        rate: float | None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if rate is not None and rate < 0:
            raise ValueError(f"rate must be >= 0, got {rate}")
        self.interval = 1.0 / rate if rate else 0.0
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._next_slot = 0.0

    def acquire(self) -> float:
        """Block until the caller may issue its call; return the time waited."""
        if not self.interval:
            return 0.0
        with self._lock:
            now = self._clock()
            slot = max(now, self._next_slot)
            self._next_slot = slot + self.interval
        wait = slot - now
        if wait > 0:
            self._sleep(wait)
        return wait


def unlimited() -> RateLimiter:
    return RateLimiter(None)
