"""Unit tests for fixed-window rate limiting."""

from ecg_records.core.rate_limiter import InMemoryRateLimitStore, RateLimitEntry, RateLimiter


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestRateLimiter:
    """Tests for the rate limiter."""

    def setup_method(self) -> None:
        self.clock = FakeClock(100.0)
        self.store = InMemoryRateLimitStore()
        self.limiter = RateLimiter(self.store, limit=2, window_seconds=60, clock=self.clock)

    def test_first_request_opens_window(self) -> None:
        decision = self.limiter.check("1.2.3.4")
        assert decision.allowed
        assert decision.remaining == 1
        assert decision.reset_at == 160.0

    def test_limit_is_enforced(self) -> None:
        self.limiter.check("1.2.3.4")
        self.limiter.check("1.2.3.4")
        decision = self.limiter.check("1.2.3.4")

        assert not decision.allowed
        assert decision.remaining == 0
        assert decision.retry_after(self.clock.now) == 60

    def test_clients_are_independent(self) -> None:
        self.limiter.check("a")
        self.limiter.check("a")
        assert self.limiter.check("b").allowed

    def test_window_resets(self) -> None:
        self.limiter.check("a")
        self.limiter.check("a")
        self.clock.now = 161.0

        decision = self.limiter.check("a")

        assert decision.allowed
        assert decision.remaining == 1

    def test_retry_after_is_at_least_one_second(self) -> None:
        self.limiter.check("a")
        self.limiter.check("a")
        self.clock.now = 159.9
        assert self.limiter.check("a").retry_after(self.clock.now) == 1


class TestInMemoryStore:
    """Tests for the in-memory store."""

    def test_sweep_drops_expired_entries(self) -> None:
        store = InMemoryRateLimitStore()
        store.set("old", RateLimitEntry(count=5, reset_at=10.0))
        store.set("new", RateLimitEntry(count=1, reset_at=100.0))

        assert store.sweep(50.0) == 1
        assert store.get("old") is None
        assert store.get("new").count == 1
        assert len(store) == 1

    def test_check_sweeps(self) -> None:
        clock = FakeClock(0.0)
        store = InMemoryRateLimitStore()
        limiter = RateLimiter(store, limit=5, window_seconds=10, clock=clock)
        limiter.check("a")
        clock.now = 20.0

        limiter.check("b")

        assert store.get("a") is None
