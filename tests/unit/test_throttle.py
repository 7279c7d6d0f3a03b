"""Unit tests for the client-side rate limiter."""

from __future__ import annotations

import pytest

from drive_sync.throttle import RateLimiter, unlimited


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def test_calls_are_spaced_by_interval() -> None:
    clock = FakeClock()
    limiter = RateLimiter(4, clock=clock, sleep=clock.sleep)
    waits = [limiter.acquire() for _ in range(3)]
    assert waits == pytest.approx([0.0, 0.25, 0.25])


def test_no_wait_after_idle_period() -> None:
    clock = FakeClock()
    limiter = RateLimiter(2, clock=clock, sleep=clock.sleep)
    limiter.acquire()
    clock.now += 10
    assert limiter.acquire() == 0.0
    assert clock.sleeps == []


def test_unlimited_never_sleeps() -> None:
    limiter = unlimited()
    assert all(limiter.acquire() == 0.0 for _ in range(100))


def test_negative_rate_rejected() -> None:
    with pytest.raises(ValueError):
        RateLimiter(-1)
