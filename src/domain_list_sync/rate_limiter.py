"""
Rate limit tracking for the remote issue API.

GitHub answers an exhausted quota with ``403`` and ``X-RateLimit-Remaining:
0``. Once that happens no further request can succeed until the time given
in ``X-RateLimit-Reset``, so the tracker remembers that deadline, persists
it across restarts and clears it lazily the first time it is observed to
have passed.
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from .audit_logger import AuditLogger
from .config import RateLimitConfig
from .exceptions import PersistenceError
from .models import RateLimitState
from .state_store import RATE_LIMIT_HIT, RATE_LIMIT_RESET_AT, KeyValueStore


COMPONENT = "RateLimitTracker"


@dataclass
class RateLimitStatus:
    """Result of a rate limit check."""

    allowed: bool
    wait_seconds: float
    reason: Optional[str] = None


class RateLimitTracker:
    """
    Process-wide throttling state for the remote API.

    Every state change is persisted to the store and reported through the
    ``on_change`` callback (used to refresh the badge).
    """

    def __init__(
        self,
        config: Optional[RateLimitConfig] = None,
        store: Optional[KeyValueStore] = None,
        on_change: Optional[Callable[[], None]] = None,
        clock: Callable[[], float] = time.time,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._config = config or RateLimitConfig()
        self._store = store
        self._on_change = on_change
        self._clock = clock
        self._logger = logger
        self._state = RateLimitState()

    @property
    def state(self) -> RateLimitState:
        return RateLimitState(self._state.throttled, self._state.reset_at)

    @property
    def throttled(self) -> bool:
        """Raw throttled flag, without the lazy expiry check."""
        return self._state.throttled

    @property
    def reset_at(self) -> float:
        return self._state.reset_at

    def set_change_callback(self, on_change: Optional[Callable[[], None]]) -> None:
        self._on_change = on_change

    def restore(self) -> RateLimitState:
        """Load the persisted state from the store."""
        if self._store is not None:
            stored = self._store.get([RATE_LIMIT_HIT, RATE_LIMIT_RESET_AT])
            reset_at = stored.get(RATE_LIMIT_RESET_AT) or 0
            self._state = RateLimitState(
                throttled=bool(stored.get(RATE_LIMIT_HIT, False)),
                reset_at=float(reset_at) if isinstance(reset_at, (int, float)) else 0.0,
            )
        return self.state

    def is_rate_limited(self) -> bool:
        """
        Check whether requests are currently throttled.

        Clears (and persists) the throttled state the first time the reset
        time is observed to have passed.
        """
        if not self._state.throttled:
            return False

        now = self._clock()
        if now >= self._state.reset_at:
            self._state = RateLimitState(throttled=False, reset_at=0.0)
            self._log_info("Rate limit reset", {})
            self._commit()
            return False

        self._log_debug(
            "Rate limit active",
            {"seconds_left": round(self._state.reset_at - now, 1)},
        )
        return True

    def handle_rate_limit(self, response: httpx.Response) -> bool:
        """
        Recognize a throttling response and record its reset time.

        Only a 403 whose ``X-RateLimit-Remaining`` header is ``"0"`` or
        missing counts; a 403 with quota left is a different error.

        Returns:
            True if the response signals throttling
        """
        if response.status_code != 403:
            return False

        remaining = response.headers.get("X-RateLimit-Remaining")
        if remaining is not None and remaining != "0":
            return False

        reset_at = self._parse_reset(response.headers.get("X-RateLimit-Reset"))
        self._state = RateLimitState(throttled=True, reset_at=reset_at)
        self._log_warn(
            "Rate limit reached",
            {"reset_at": reset_at, "remaining_header": remaining},
        )
        self._commit()
        return True

    def status(self) -> RateLimitStatus:
        """Describe the current state without side effects."""
        if not self._state.throttled:
            return RateLimitStatus(allowed=True, wait_seconds=0.0)
        wait = max(0.0, self._state.reset_at - self._clock())
        if wait == 0.0:
            return RateLimitStatus(allowed=True, wait_seconds=0.0)
        return RateLimitStatus(
            allowed=False,
            wait_seconds=wait,
            reason="Remote API rate limit reached",
        )

    def _parse_reset(self, header: Optional[str]) -> float:
        if header:
            try:
                return float(int(header.strip()))
            except ValueError:
                self._log_warn("Unparsable X-RateLimit-Reset header", {"value": header})
        return self._clock() + self._config.fallback_reset_seconds

    def _commit(self) -> None:
        if self._store is not None:
            try:
                self._store.set({
                    RATE_LIMIT_HIT: self._state.throttled,
                    RATE_LIMIT_RESET_AT: self._state.reset_at,
                })
            except PersistenceError as e:
                if self._logger:
                    self._logger.log_error(COMPONENT, "Failed to persist rate limit state", e)
        if self._on_change is not None:
            self._on_change()

    def _log_debug(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.debug(COMPONENT, message, data)

    def _log_info(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.info(COMPONENT, message, data)

    def _log_warn(self, message: str, data: dict) -> None:
        if self._logger:
            self._logger.warn(COMPONENT, message, data)
