"""
Data models for storage layer.

Defines persisted records that are not domain values themselves.
"""

from dataclasses import dataclass
from datetime import date
from typing import Tuple

from clip_insight.core.models import UsageStats


@dataclass(frozen=True)
class LedgerSnapshot:
    """Usage ledger state plus the period markers its counters belong to.

    `day` is the day requests_today/errors_today count; `month` is the
    (year, month) requests_this_month/cost_this_month count.
    """
    stats: UsageStats
    day: date
    month: Tuple[int, int]
