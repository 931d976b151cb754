"""
Usage accounting for remote calls.

Counts requests, errors and estimated cost per day and month. Rollover
is lazy: every read and write first compares the current wall-clock
day/month with the stored period markers and zeroes stale counters.
"""

import logging
import sqlite3
import threading
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, Optional, Tuple

from .models import ClassificationResult, UsageStats
from ..storage.models import LedgerSnapshot

logger = logging.getLogger(__name__)


class UsageLedger:
    """Process-local request/error/cost counters with day and month rollover.

    All mutation happens under a lock so concurrent completions from
    several threads keep the counters exact.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], datetime]] = None,
        snapshot: Optional[LedgerSnapshot] = None,
        repository=None,
    ):
        """Initialize the ledger.

        Args:
            clock: Wall-clock source, defaults to datetime.now
            snapshot: Optional LedgerSnapshot to resume from
            repository: Optional UsageRepository written after every change
        """
        self._clock = clock or datetime.now
        self._lock = threading.Lock()
        self._repository = repository
        if snapshot is not None:
            self._stats = snapshot.stats
            self._day = snapshot.day
            self._month = snapshot.month
        else:
            now = self._clock()
            self._stats = UsageStats()
            self._day = now.date()
            self._month = (now.year, now.month)

    @property
    def day(self) -> date:
        return self._day

    @property
    def month(self) -> Tuple[int, int]:
        return self._month

    def _roll_over(self, now: datetime) -> None:
        stats = self._stats
        today = now.date()
        this_month = (now.year, now.month)
        if today != self._day:
            stats = replace(stats, requests_today=0, errors_today=0)
            self._day = today
        if this_month != self._month:
            stats = replace(stats, requests_this_month=0, cost_this_month=0.0)
            self._month = this_month
        self._stats = stats

    def record_completion(self, result: ClassificationResult) -> None:
        """Account for one completed remote attempt, successful or not."""
        with self._lock:
            now = self._clock()
            self._roll_over(now)
            stats = self._stats
            if result.success:
                stats = replace(stats, cost_this_month=stats.cost_this_month + result.estimated_cost)
                logger.debug("Remote call succeeded in %.3fs, cost %.6f", result.latency, result.estimated_cost)
            else:
                stats = replace(
                    stats,
                    errors_today=stats.errors_today + 1,
                    last_error=result.error_message,
                )
                logger.warning("Remote call failed: %s", result.error_message)
            self._stats = replace(
                stats,
                requests_today=stats.requests_today + 1,
                requests_this_month=stats.requests_this_month + 1,
                last_request_time=now,
            )
            self._persist()

    def stats(self) -> UsageStats:
        """Current counters, after applying any pending rollover."""
        with self._lock:
            self._roll_over(self._clock())
            return self._stats

    def reset(self) -> None:
        """Zero every counter and clear timestamps. For test isolation only."""
        with self._lock:
            now = self._clock()
            self._stats = UsageStats()
            self._day = now.date()
            self._month = (now.year, now.month)
            self._persist()

    def snapshot(self) -> LedgerSnapshot:
        """Current state as a LedgerSnapshot, without applying rollover."""
        with self._lock:
            return LedgerSnapshot(stats=self._stats, day=self._day, month=self._month)

    def _persist(self) -> None:
        if self._repository is None:
            return
        try:
            self._repository.save_snapshot(
                LedgerSnapshot(stats=self._stats, day=self._day, month=self._month)
            )
        except sqlite3.Error:
            # Counters stay in memory until the next successful write
            logger.exception("Failed to persist usage snapshot")
