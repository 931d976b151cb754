"""
Client-side rate limiting for remote calls.

Enforces a fixed minimum interval between the *start* of one remote
call and the next. The governor never makes calls itself; the remote
entry point consults it and marks the start of every attempted call.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from .models import RateLimitState

logger = logging.getLogger(__name__)

DEFAULT_MINIMUM_INTERVAL = timedelta(seconds=2)


class RateGovernor:
    """Decides whether a remote call may start now."""

    def __init__(
        self,
        minimum_interval: timedelta = DEFAULT_MINIMUM_INTERVAL,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the governor.

        Args:
            minimum_interval: Required spacing between call starts
            clock: Wall-clock source, defaults to datetime.now

        Raises:
            ValueError: If minimum_interval is negative
        """
        if minimum_interval < timedelta(0):
            raise ValueError("minimum_interval must be >= 0")
        self._clock = clock or datetime.now
        self._lock = threading.Lock()
        self._state = RateLimitState(minimum_interval=minimum_interval)

    @property
    def state(self) -> RateLimitState:
        return self._state

    @property
    def minimum_interval(self) -> timedelta:
        return self._state.minimum_interval

    def _remaining(self, now: datetime) -> timedelta:
        last = self._state.last_request_timestamp
        if last is None:
            return timedelta(0)
        # A clock that went backwards counts as no time elapsed
        elapsed = max(now - last, timedelta(0))
        return max(self._state.minimum_interval - elapsed, timedelta(0))

    def is_rate_limited(self) -> bool:
        """True iff less than minimum_interval has passed since the last call start."""
        with self._lock:
            return self._remaining(self._clock()) > timedelta(0)

    def seconds_until_next_request(self) -> float:
        """Seconds to wait before a call would be permitted (0 when allowed)."""
        with self._lock:
            return self._remaining(self._clock()).total_seconds()

    def mark_request_start(self) -> None:
        """Record that a remote call is starting now."""
        with self._lock:
            self._mark(self._clock())

    def try_begin(self) -> bool:
        """Atomically check the limit and, if permitted, mark a call start.

        Returns:
            True if the caller may dispatch its call now
        """
        with self._lock:
            now = self._clock()
            remaining = self._remaining(now)
            if remaining > timedelta(0):
                logger.info("Remote call denied, %.2fs until next request", remaining.total_seconds())
                return False
            self._mark(now)
            return True

    def _mark(self, now: datetime) -> None:
        self._state = RateLimitState(
            minimum_interval=self._state.minimum_interval,
            last_request_timestamp=now,
        )
