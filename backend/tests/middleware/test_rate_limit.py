"""Fixed-Window Rate Limiter — quota, window recovery, and concurrency bound.

Tests cover:
    - exactly `limit` hits admitted per window, remaining counts down
    - recovery once the window elapses (boundary inclusive)
    - keys are independent
    - expired windows swept, at most once per window length
    - concurrent hits never admit more than the quota
    - constructor rejects non-positive limits and windows
"""

import asyncio

import pytest

from userstore.middleware.rate_limit import FixedWindowRateLimiter
from tests.fakes import FakeClock


async def test_admits_up_to_limit_then_rejects():
    limiter = FixedWindowRateLimiter(3, 60, clock=FakeClock())
    decisions = [await limiter.hit("k") for _ in range(4)]
    assert [d.allowed for d in decisions] == [True, True, True, False]
    assert [d.remaining for d in decisions] == [2, 1, 0, 0]


async def test_recovers_after_window_elapses():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(1, 60, clock=clock)
    assert (await limiter.hit("k")).allowed
    clock.advance(59)
    rejected = await limiter.hit("k")
    assert not rejected.allowed
    assert rejected.retry_after_seconds == pytest.approx(1)
    clock.advance(1)
    assert (await limiter.hit("k")).allowed


async def test_keys_are_independent():
    limiter = FixedWindowRateLimiter(1, 60, clock=FakeClock())
    assert (await limiter.hit("a")).allowed
    assert (await limiter.hit("b")).allowed
    assert not (await limiter.hit("a")).allowed


async def test_concurrent_hits_never_exceed_quota():
    limiter = FixedWindowRateLimiter(10, 60, clock=FakeClock())
    decisions = await asyncio.gather(*(limiter.hit("shared") for _ in range(100)))
    assert sum(d.allowed for d in decisions) == 10


async def test_expired_windows_are_swept(monkeypatch):
    monkeypatch.setattr("userstore.middleware.rate_limit._SWEEP_THRESHOLD", 3)
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(1, 10, clock=clock)
    for key in ("a", "b", "c"):
        await limiter.hit(key)
    clock.advance(10)
    await limiter.hit("d")
    assert set(limiter._windows) == {"d"}


async def test_sweep_runs_at_most_once_per_window(monkeypatch):
    monkeypatch.setattr("userstore.middleware.rate_limit._SWEEP_THRESHOLD", 3)
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(1, 10, clock=clock)
    await limiter.hit("a")
    await limiter.hit("b")
    clock.advance(5)
    await limiter.hit("c")
    clock.advance(5)
    await limiter.hit("d")
    assert set(limiter._windows) == {"c", "d"}

    # "c" has expired, but the last sweep was less than one window ago
    clock.advance(5)
    await limiter.hit("e")
    await limiter.hit("f")
    assert set(limiter._windows) == {"c", "d", "e", "f"}

    clock.advance(5)
    await limiter.hit("g")
    assert set(limiter._windows) == {"e", "f", "g"}


@pytest.mark.parametrize("limit,window", [(0, 60), (5, 0), (5, -1)])
def test_rejects_invalid_configuration(limit, window):
    with pytest.raises(ValueError):
        FixedWindowRateLimiter(limit, window)
