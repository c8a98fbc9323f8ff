import pytest

from heritage_whisper.core.errors import RateLimitExceededError
from heritage_whisper.server.services.rate_limit import SlidingWindowRateLimiter


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestSlidingWindowRateLimiter:
    def test_allows_up_to_limit(self):
        limiter = SlidingWindowRateLimiter("test", 3, 60, clock=FakeClock())
        results = [limiter.hit("k") for _ in range(4)]
        assert [r.allowed for r in results] == [True, True, True, False]
        assert [r.remaining for r in results[:3]] == [2, 1, 0]

    def test_window_slides(self):
        clock = FakeClock()
        limiter = SlidingWindowRateLimiter("test", 2, 60, clock=clock)
        limiter.hit("k")
        clock.now += 30
        limiter.hit("k")
        blocked = limiter.hit("k")
        assert not blocked.allowed
        assert blocked.retry_after == 30

        clock.now += 30
        assert limiter.hit("k").allowed

    def test_keys_are_independent(self):
        limiter = SlidingWindowRateLimiter("test", 1, 60, clock=FakeClock())
        assert limiter.hit("a").allowed
        assert limiter.hit("b").allowed
        assert not limiter.hit("a").allowed

    def test_reset(self):
        limiter = SlidingWindowRateLimiter("test", 1, 60, clock=FakeClock())
        limiter.hit("a")
        limiter.reset("a")
        assert limiter.hit("a").allowed
        limiter.reset()
        assert limiter.hit("a").allowed

    @pytest.mark.asyncio
    async def test_check_raises_with_retry_after(self):
        limiter = SlidingWindowRateLimiter("test", 1, 10, clock=FakeClock())
        await limiter.check("k")
        with pytest.raises(RateLimitExceededError) as exc_info:
            await limiter.check("k")
        assert exc_info.value.retry_after == 10
        assert exc_info.value.status_code == 429

    def test_idle_keys_are_evicted(self):
        clock = FakeClock()
        limiter = SlidingWindowRateLimiter("test", 1, 60, clock=clock)
        for octet in range(50):
            limiter.hit(f"10.0.0.{octet}")
        assert limiter.tracked_keys == 50

        clock.now += 61
        assert limiter.hit("10.0.0.1").allowed

        assert limiter.tracked_keys == 1

    def test_active_keys_survive_a_sweep(self):
        clock = FakeClock()
        limiter = SlidingWindowRateLimiter("test", 1, 60, clock=clock)
        limiter.hit("idle")
        clock.now += 40
        limiter.hit("busy")

        clock.now += 30
        limiter.hit("other")

        assert limiter.tracked_keys == 2
        assert not limiter.hit("busy").allowed
