from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor

from review_ranker.rate_limit import SlidingWindowRateLimiter


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_allows_up_to_limit_then_rejects():
    limiter = SlidingWindowRateLimiter(5, 60)

    assert all(limiter.allow("user-1") for _ in range(5))
    assert not limiter.allow("user-1")


def test_window_expiry_with_real_clock():
    limiter = SlidingWindowRateLimiter(2, 0.1)

    assert limiter.allow("k")
    assert limiter.allow("k")
    assert not limiter.allow("k")
    time.sleep(0.15)
    assert limiter.allow("k")


def test_keys_are_independent():
    limiter = SlidingWindowRateLimiter(1, 60)

    assert limiter.allow("a")
    assert not limiter.allow("a")
    assert limiter.allow("b")


def test_timestamp_exactly_at_cutoff_is_expired():
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(1, 10, clock=clock)

    assert limiter.allow("k")
    clock.advance(9)
    assert not limiter.allow("k")
    clock.advance(1)
    assert limiter.allow("k")


def test_expired_timestamps_are_dropped_from_history():
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(2, 10, clock=clock)

    assert limiter.allow("k")
    clock.advance(5)
    assert limiter.allow("k")
    clock.advance(2)
    assert not limiter.allow("k")
    assert limiter.history("k") == (1000.0, 1005.0)

    clock.advance(3)
    assert limiter.allow("k")
    assert not limiter.allow("k")
    assert limiter.history("k") == (1005.0, 1010.0)


def test_history_of_unknown_key_is_empty():
    limiter = SlidingWindowRateLimiter(1, 60)

    assert limiter.history("nobody") == ()
    assert len(limiter) == 0


def test_sliding_window_is_not_bucketed():
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(2, 10, clock=clock)

    assert limiter.allow("k")
    clock.advance(8)
    assert limiter.allow("k")
    clock.advance(3)
    assert limiter.allow("k")
    assert not limiter.allow("k")


def test_zero_limit_rejects_everything():
    limiter = SlidingWindowRateLimiter(0, 60)

    assert not limiter.allow("k")
    assert not limiter.allow("other")


def test_reset_clears_state():
    limiter = SlidingWindowRateLimiter(1, 60)

    assert limiter.allow("x")
    assert not limiter.allow("x")
    limiter.reset()
    assert len(limiter) == 0
    assert limiter.allow("x")


def test_sweep_drops_only_idle_keys():
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(3, 10, clock=clock)

    limiter.allow("old")
    clock.advance(6)
    limiter.allow("recent")
    clock.advance(4)

    assert limiter.sweep() == 1
    assert len(limiter) == 1
    assert limiter.allow("recent")
    assert limiter.sweep() == 0


def test_sweep_drops_keys_pruned_to_empty():
    limiter = SlidingWindowRateLimiter(0, 60)

    limiter.allow("never-accepted")

    assert len(limiter) == 1
    assert limiter.sweep() == 1
    assert len(limiter) == 0


def test_concurrent_callers_never_exceed_limit():
    max_requests = 5
    callers = max_requests * 10
    limiter = SlidingWindowRateLimiter(max_requests, 60)
    barrier = threading.Barrier(callers)

    def call() -> bool:
        barrier.wait()
        return limiter.allow("shared")

    with ThreadPoolExecutor(max_workers=callers) as pool:
        results = list(pool.map(lambda _: call(), range(callers)))

    assert results.count(True) == max_requests
    assert results.count(False) == callers - max_requests
