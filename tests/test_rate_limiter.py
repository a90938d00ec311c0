"""
Rate limiter and block cooldown tests.

Guards against:
1. Admission drift: the window must allow exactly max_requests, then reject
   immediately (no queueing) until old timestamps age out
2. Failed calls eating the budget (a down endpoint must not lock us out)
   and overlapping calls slipping past the window together
3. Named limiters sharing state with each other
4. Unbounded cooldowns after repeated bot-protection blocks
"""
import asyncio
import random

import pytest

from arbitrage.config import Settings
from arbitrage.utils.backoff import BlockBackoff, calculate_backoff
from arbitrage.utils.rate_limiter import RateLimiter, RateLimitExceeded, build_rate_limiters


def _run(coro):
    """Run an async coroutine in a sync test."""
    return asyncio.run(coro)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


async def _ok():
    return "ok"


async def _boom():
    raise ConnectionError("endpoint down")


# ---------------------------------------------------------------------------
# Sliding window
# ---------------------------------------------------------------------------

def test_three_per_second_rejects_the_fourth_then_recovers():
    clock = FakeClock()
    limiter = RateLimiter("test", max_requests=3, window_seconds=1.0, clock=clock)

    async def scenario():
        outcomes = []
        for _ in range(4):
            try:
                outcomes.append(await limiter.run_guarded(_ok))
            except RateLimitExceeded:
                outcomes.append("rejected")
            clock.advance(0.1)
        return outcomes

    assert _run(scenario()) == ["ok", "ok", "ok", "rejected"]

    # Past the window of every recorded call
    clock.advance(1.0)
    assert limiter.can_proceed() is True
    assert _run(limiter.run_guarded(_ok)) == "ok"


def test_can_proceed_does_not_consume_budget():
    limiter = RateLimiter("test", max_requests=1, window_seconds=10, clock=FakeClock())
    for _ in range(5):
        assert limiter.can_proceed() is True
    limiter.record()
    assert limiter.can_proceed() is False
    assert limiter.remaining() == 0


def test_rejection_carries_limiter_details():
    limiter = RateLimiter("seller_feed", max_requests=1, window_seconds=60, clock=FakeClock())
    limiter.record()
    with pytest.raises(RateLimitExceeded) as exc_info:
        _run(limiter.run_guarded(_ok))
    assert exc_info.value.limiter_name == "seller_feed"
    assert exc_info.value.max_requests == 1
    assert exc_info.value.window_seconds == 60


def test_failed_call_is_not_recorded():
    limiter = RateLimiter("test", max_requests=2, window_seconds=60, clock=FakeClock())
    for _ in range(5):
        with pytest.raises(ConnectionError):
            _run(limiter.run_guarded(_boom))
    assert limiter.remaining() == 2


def test_reset_clears_window():
    limiter = RateLimiter("test", max_requests=1, window_seconds=60, clock=FakeClock())
    limiter.record()
    limiter.reset()
    assert limiter.can_proceed() is True


def test_invalid_construction():
    with pytest.raises(ValueError):
        RateLimiter("bad", max_requests=0, window_seconds=1)
    with pytest.raises(ValueError):
        RateLimiter("bad", max_requests=1, window_seconds=0)


def test_named_limiters_are_independent():
    settings = Settings(seller_feed_rate_max_requests=1, notification_rate_max_requests=1)
    limiters = build_rate_limiters(settings, clock=FakeClock())
    assert set(limiters) == {"seller_feed", "notifications"}

    limiters["seller_feed"].record()
    assert limiters["seller_feed"].can_proceed() is False
    assert limiters["notifications"].can_proceed() is True


def test_overlapping_calls_cannot_exceed_the_window():
    limiter = RateLimiter("test", max_requests=2, window_seconds=60, clock=FakeClock())

    async def scenario():
        release = asyncio.Event()

        async def slow():
            await release.wait()
            return "ok"

        tasks = [asyncio.ensure_future(limiter.run_guarded(slow)) for _ in range(3)]
        await asyncio.sleep(0)
        release.set()
        return await asyncio.gather(*tasks, return_exceptions=True)

    outcomes = _run(scenario())
    assert outcomes[:2] == ["ok", "ok"]
    assert isinstance(outcomes[2], RateLimitExceeded)
    assert limiter.remaining() == 0


def test_in_flight_failure_gives_its_slot_back():
    limiter = RateLimiter("test", max_requests=1, window_seconds=60, clock=FakeClock())

    async def scenario():
        started = asyncio.Event()

        async def failing():
            started.set()
            await asyncio.sleep(0)
            raise ConnectionError("endpoint down")

        task = asyncio.ensure_future(limiter.run_guarded(failing))
        await started.wait()
        with pytest.raises(RateLimitExceeded):
            await limiter.run_guarded(_ok)
        with pytest.raises(ConnectionError):
            await task
        return await limiter.run_guarded(_ok)

    assert _run(scenario()) == "ok"


# ---------------------------------------------------------------------------
# Block cooldown
# ---------------------------------------------------------------------------

def test_backoff_doubles_and_caps():
    rng = random.Random(7)
    first = calculate_backoff(1, min_delay=60, max_delay=60, rng=rng)
    second = calculate_backoff(2, min_delay=60, max_delay=60, rng=rng)
    capped = calculate_backoff(10, min_delay=60, max_delay=60, max_exponent=4, rng=rng)
    assert first == 120
    assert second == 240
    assert capped == 60 * 16


def test_backoff_stays_within_bounds():
    rng = random.Random(1)
    for _ in range(50):
        delay = calculate_backoff(1, min_delay=60, max_delay=90, rng=rng)
        assert 120 <= delay <= 180


def test_block_backoff_window():
    clock = FakeClock()
    backoff = BlockBackoff(min_delay=60, max_delay=60, clock=clock)
    assert backoff.is_cooling_down() is False

    delay = backoff.record_block()
    assert delay == 120
    assert backoff.is_cooling_down() is True
    assert backoff.seconds_remaining() == 120

    clock.advance(121)
    assert backoff.is_cooling_down() is False

    backoff.record_block()
    assert backoff.consecutive_blocks == 2
    backoff.record_success()
    assert backoff.consecutive_blocks == 0
    assert backoff.is_cooling_down() is False
