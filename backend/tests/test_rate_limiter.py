"""
Tests for the per-client fixed-window rate limiter.
"""

import asyncio

import pytest

from winelens.services.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


class TestCheck:
    """Tests for counting and decisions."""

    def test_allows_up_to_limit(self, clock):
        limiter = RateLimiter(max_requests=3, window_seconds=60, clock=clock)

        decisions = [limiter.check("1.2.3.4") for _ in range(3)]

        assert all(d.allowed for d in decisions)
        assert [d.remaining for d in decisions] == [2, 1, 0]

    def test_blocks_over_limit_with_retry_after(self, clock):
        limiter = RateLimiter(max_requests=2, window_seconds=60, clock=clock)
        limiter.check("a")
        clock.now += 20
        limiter.check("a")

        decision = limiter.check("a")

        assert not decision.allowed
        assert decision.retry_after == 40

    def test_new_window_after_expiry(self, clock):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=clock)
        limiter.check("a")
        assert not limiter.check("a").allowed

        clock.now += 60

        assert limiter.check("a").allowed

    def test_clients_counted_separately(self, clock):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=clock)

        assert limiter.check("a").allowed
        assert limiter.check("b").allowed
        assert not limiter.check("a").allowed


class TestBounds:
    """Tests for expiry sweeps and the client cap."""

    def test_sweep_removes_expired(self, clock):
        limiter = RateLimiter(max_requests=5, window_seconds=60, clock=clock)
        limiter.check("old")
        clock.now += 30
        limiter.check("fresh")
        clock.now += 31

        assert limiter.sweep() == 1
        assert len(limiter) == 1

    def test_max_clients_evicts_oldest(self, clock):
        limiter = RateLimiter(max_requests=5, window_seconds=60, max_clients=2, clock=clock)
        limiter.check("first")
        clock.now += 1
        limiter.check("second")
        clock.now += 1
        limiter.check("third")

        assert len(limiter) == 2
        # "first" was evicted so it starts a fresh window
        assert limiter.check("first").remaining == 4

    @pytest.mark.asyncio
    async def test_run_sweeper(self, clock):
        limiter = RateLimiter(max_requests=5, window_seconds=60, clock=clock)
        limiter.check("a")
        clock.now += 61

        task = asyncio.create_task(limiter.run_sweeper(0.01))
        await asyncio.sleep(0.05)
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

        assert len(limiter) == 0
