"""Tests for the in-memory attempt limiter."""

import threading

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from planner.services.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


class TestRateLimiter:
    def test_first_five_allowed_sixth_blocked(self, clock):
        limiter = RateLimiter(5, 60000, clock=clock)
        results = []
        for _ in range(6):
            results.append(limiter.check("auth:a@b.c"))
            clock.advance(1000)

        assert [r.allowed for r in results] == [True] * 5 + [False]
        assert [r.remaining for r in results[:5]] == [5, 4, 3, 2, 1]
        assert results[5].remaining == 0

    def test_blocked_reset_in_counts_from_oldest_attempt(self, clock):
        limiter = RateLimiter(5, 60000, clock=clock)
        for _ in range(5):
            limiter.check("k")
            clock.advance(1000)

        blocked = limiter.check("k")
        assert not blocked.allowed
        # Oldest attempt was 5s ago
        assert blocked.reset_in == pytest.approx(55000)

    def test_blocked_attempts_are_not_recorded(self, clock):
        limiter = RateLimiter(2, 10000, clock=clock)
        limiter.check("k")
        limiter.check("k")
        for _ in range(10):
            assert not limiter.check("k").allowed

        clock.advance(10001)
        assert limiter.check("k").allowed

    def test_window_slides(self, clock):
        limiter = RateLimiter(5, 60000, clock=clock)
        for _ in range(5):
            limiter.check("k")
        clock.advance(60001)

        result = limiter.check("k")
        assert result.allowed
        assert result.remaining == 5

    def test_keys_are_independent(self, clock):
        limiter = RateLimiter(1, 60000, clock=clock)
        assert limiter.check("auth:one").allowed
        assert not limiter.check("auth:one").allowed
        assert limiter.check("auth:two").allowed

    def test_reset_in_is_full_window_without_attempts(self, clock):
        limiter = RateLimiter(5, 60000, clock=clock)
        assert limiter.check("fresh").reset_in == 60000
        limiter.reset("fresh")
        assert limiter.check("fresh").remaining == 5

    def test_reset_forgets_key(self, clock):
        limiter = RateLimiter(1, 60000, clock=clock)
        limiter.check("k")
        assert not limiter.check("k").allowed
        limiter.reset("k")
        assert limiter.check("k").allowed

    def test_concurrent_checks_never_exceed_limit(self, clock):
        limiter = RateLimiter(5, 60000, clock=clock)
        barrier = threading.Barrier(16)
        results = []

        def attempt():
            barrier.wait()
            results.append(limiter.check("auth:race@example.com").allowed)

        old_interval = sys.getswitchinterval()
        sys.setswitchinterval(1e-6)
        try:
            threads = [threading.Thread(target=attempt) for _ in range(16)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()
        finally:
            sys.setswitchinterval(old_interval)

        assert results.count(True) == 5
        assert len(limiter._attempts["auth:race@example.com"]) == 5

    def test_shared_instance_uses_configured_limits(self):
        from planner.config import settings
        from planner.services.rate_limiter import rate_limiter

        assert rate_limiter.max_attempts == settings.AUTH_MAX_ATTEMPTS
        assert rate_limiter.window_ms == settings.AUTH_WINDOW_MS
