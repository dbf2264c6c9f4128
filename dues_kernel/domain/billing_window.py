"""
Billing window -- the rolling four-period tracking window.

Responsibility:
    Derives the calendar-month boundaries that every dues computation is
    expressed against: the current month, the three prior months
    (``month1`` = previous month, ``month2``, ``month3``) and the
    untracked "older" region before ``month3``.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  The window is
    always built from an explicit ``as_of`` date; it never reads a clock.

Invariants enforced:
    - Boundaries are calendar-month starts derived from year/month, never
      a rolling 30-day offset.
    - month3 < month2 < month1 < current_month, each exactly one calendar
      month apart.
    - ``bucket_for`` is total: every date maps to exactly one bucket.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from enum import Enum


class PeriodBucket(str, Enum):
    """Dues buckets, declared oldest first."""

    OLDER_DUES = "older_dues"
    MONTH3 = "month3"
    MONTH2 = "month2"
    MONTH1 = "month1"
    CURRENT_MONTH = "current_month"


# Waterfall order for allocating money against dues.
ALLOCATION_ORDER: tuple[PeriodBucket, ...] = (
    PeriodBucket.OLDER_DUES,
    PeriodBucket.MONTH3,
    PeriodBucket.MONTH2,
    PeriodBucket.MONTH1,
    PeriodBucket.CURRENT_MONTH,
)

# The four individually tracked calendar months, oldest first.
TRACKED_PERIODS: tuple[PeriodBucket, ...] = ALLOCATION_ORDER[1:]


def month_start(day: date) -> date:
    """First day of the calendar month containing ``day``."""
    return day.replace(day=1)


def end_of_month(day: date) -> date:
    """Last day of the calendar month containing ``day``."""
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


def add_months(day: date, months: int) -> date:
    """First day of the month ``months`` away from ``day``'s month."""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


@dataclass(frozen=True)
class TrackingWindow:
    """
    Four calendar-month starts relative to an ``as_of`` date.

    Contract:
        Built with ``TrackingWindow.for_date(as_of)``.  Holds no mutable
        state; two windows built from dates in the same month are equal.
    """

    current_month: date
    month1: date
    month2: date
    month3: date

    @classmethod
    def for_date(cls, as_of: date) -> TrackingWindow:
        current = month_start(as_of)
        return cls(
            current_month=current,
            month1=add_months(current, -1),
            month2=add_months(current, -2),
            month3=add_months(current, -3),
        )

    def start_of(self, bucket: PeriodBucket) -> date | None:
        """Month start for a tracked bucket; None for older dues."""
        return {
            PeriodBucket.CURRENT_MONTH: self.current_month,
            PeriodBucket.MONTH1: self.month1,
            PeriodBucket.MONTH2: self.month2,
            PeriodBucket.MONTH3: self.month3,
        }.get(bucket)

    def bucket_for(self, day: date) -> PeriodBucket:
        """Bucket whose date range contains ``day``."""
        if day < self.month3:
            return PeriodBucket.OLDER_DUES
        if day < self.month2:
            return PeriodBucket.MONTH3
        if day < self.month1:
            return PeriodBucket.MONTH2
        if day < self.current_month:
            return PeriodBucket.MONTH1
        return PeriodBucket.CURRENT_MONTH

    def next_due_date(self, due_day_of_month: int = 5) -> date:
        """Due date in the month following the current month."""
        following = add_months(self.current_month, 1)
        day = min(due_day_of_month, calendar.monthrange(following.year, following.month)[1])
        return following.replace(day=day)
