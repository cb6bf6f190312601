"""
Property-based tests for the rate limit tracker.

Uses Hypothesis to drive the throttling lifecycle with a fake clock.
"""

import httpx
from hypothesis import given, settings
from hypothesis import strategies as st

from domain_list_sync.config import RateLimitConfig
from domain_list_sync.rate_limiter import RateLimitTracker
from domain_list_sync.state_store import RATE_LIMIT_HIT, RATE_LIMIT_RESET_AT, MemoryStore


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def throttle_response(reset_at=None, remaining="0") -> httpx.Response:
    headers = {}
    if remaining is not None:
        headers["X-RateLimit-Remaining"] = remaining
    if reset_at is not None:
        headers["X-RateLimit-Reset"] = str(reset_at)
    return httpx.Response(403, headers=headers)


class TestRateLimitLifecycleProperty:
    """
    Throttled immediately after a throttling response, cleared lazily once
    the reset time has passed, with exactly one persisted clear.
    """

    @given(wait=st.integers(min_value=1, max_value=3600))
    @settings(max_examples=100)
    def test_lifecycle(self, wait: int) -> None:
        clock = FakeClock()
        store = MemoryStore()
        hit_changes: list[bool] = []
        store.add_listener(
            lambda changes: hit_changes.append(changes[RATE_LIMIT_HIT][1])
            if RATE_LIMIT_HIT in changes else None
        )
        tracker = RateLimitTracker(store=store, clock=clock)

        reset_at = int(clock.now) + wait
        assert tracker.handle_rate_limit(throttle_response(reset_at))
        assert tracker.is_rate_limited()
        assert store.snapshot()[RATE_LIMIT_HIT] is True
        assert store.snapshot()[RATE_LIMIT_RESET_AT] == float(reset_at)

        clock.advance(wait - 0.5)
        assert tracker.is_rate_limited()

        clock.advance(0.5)
        assert not tracker.is_rate_limited()
        assert not tracker.is_rate_limited()
        assert store.snapshot()[RATE_LIMIT_HIT] is False
        assert hit_changes == [True, False]

    @given(remaining=st.integers(min_value=1, max_value=5000))
    @settings(max_examples=50)
    def test_forbidden_with_quota_left_is_not_throttling(self, remaining: int) -> None:
        tracker = RateLimitTracker(clock=FakeClock())
        response = throttle_response(reset_at=1_700_000_100, remaining=str(remaining))
        assert not tracker.handle_rate_limit(response)
        assert not tracker.is_rate_limited()

    @given(status=st.sampled_from([200, 401, 404, 429, 500, 502, 503]))
    @settings(max_examples=20)
    def test_other_statuses_are_not_throttling(self, status: int) -> None:
        tracker = RateLimitTracker(clock=FakeClock())
        response = httpx.Response(status, headers={"X-RateLimit-Remaining": "0"})
        assert not tracker.handle_rate_limit(response)
        assert not tracker.throttled

    def test_missing_remaining_header_counts_as_throttled(self) -> None:
        clock = FakeClock()
        tracker = RateLimitTracker(clock=clock)
        assert tracker.handle_rate_limit(throttle_response(int(clock.now) + 30, remaining=None))
        assert tracker.is_rate_limited()


class TestResetFallback:
    """A missing or unparsable reset header falls back to now + fallback."""

    @given(
        header=st.sampled_from([None, "", "soon", "12.5e"]),
        fallback=st.integers(min_value=1, max_value=600),
    )
    @settings(max_examples=50)
    def test_fallback_reset(self, header, fallback: int) -> None:
        clock = FakeClock()
        tracker = RateLimitTracker(RateLimitConfig(fallback_reset_seconds=fallback), clock=clock)
        assert tracker.handle_rate_limit(throttle_response(header))
        assert tracker.reset_at == clock.now + fallback
        assert tracker.status().wait_seconds == fallback


class TestPersistenceAndCallbacks:

    def test_restore_from_store(self) -> None:
        clock = FakeClock()
        store = MemoryStore({RATE_LIMIT_HIT: True, RATE_LIMIT_RESET_AT: clock.now + 120})
        tracker = RateLimitTracker(store=store, clock=clock)
        state = tracker.restore()
        assert state.throttled
        assert tracker.is_rate_limited()
        assert not tracker.status().allowed

    def test_restore_with_garbage_values(self) -> None:
        store = MemoryStore({RATE_LIMIT_HIT: False, RATE_LIMIT_RESET_AT: "tomorrow"})
        tracker = RateLimitTracker(store=store, clock=FakeClock())
        state = tracker.restore()
        assert not state.throttled
        assert state.reset_at == 0.0

    def test_on_change_fires_for_hit_and_clear(self) -> None:
        clock = FakeClock()
        calls = []
        tracker = RateLimitTracker(clock=clock, on_change=lambda: calls.append(tracker.throttled))
        tracker.handle_rate_limit(throttle_response(int(clock.now) + 10))
        clock.advance(10)
        tracker.is_rate_limited()
        assert calls == [True, False]

    def test_status_without_side_effects(self) -> None:
        clock = FakeClock()
        store = MemoryStore()
        tracker = RateLimitTracker(store=store, clock=clock)
        tracker.handle_rate_limit(throttle_response(int(clock.now) + 10))
        clock.advance(20)
        assert tracker.status().allowed
        assert tracker.throttled
        assert store.snapshot()[RATE_LIMIT_HIT] is True
