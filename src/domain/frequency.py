from __future__ import annotations

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum

from domain.errors import UnsupportedFrequency


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    BIMONTHLY = "bimonthly"
    QUARTERLY = "quarterly"
    SEMIANNUAL = "semiannual"
    ANNUAL = "annual"
    ONE_TIME = "one_time"


BUDGET_FREQUENCIES = frozenset({
    Frequency.WEEKLY,
    Frequency.BIWEEKLY,
    Frequency.MONTHLY,
    Frequency.QUARTERLY,
    Frequency.SEMIANNUAL,
    Frequency.ANNUAL,
})

PROJECTION_FREQUENCIES = frozenset({
    Frequency.WEEKLY,
    Frequency.BIWEEKLY,
    Frequency.MONTHLY,
    Frequency.BIMONTHLY,
    Frequency.QUARTERLY,
    Frequency.SEMIANNUAL,
    Frequency.ANNUAL,
    Frequency.ONE_TIME,
})

SAVINGS_FREQUENCIES = frozenset({
    Frequency.DAILY,
    Frequency.WEEKLY,
    Frequency.BIWEEKLY,
    Frequency.MONTHLY,
    Frequency.BIMONTHLY,
    Frequency.QUARTERLY,
    Frequency.SEMIANNUAL,
    Frequency.ANNUAL,
})


@dataclass(frozen=True)
class Interval:
    """One recurrence step: a fixed day count or a calendar month count.

    ``approximate_days`` is only used to count how many steps fit in a span.
    """

    days: int = 0
    months: int = 0
    approximate_days: int = 0


# Adding a frequency means adding one row here.
_INTERVALS: dict[Frequency, Interval | None] = {
    Frequency.DAILY: Interval(days=1, approximate_days=1),
    Frequency.WEEKLY: Interval(days=7, approximate_days=7),
    Frequency.BIWEEKLY: Interval(days=14, approximate_days=14),
    Frequency.MONTHLY: Interval(months=1, approximate_days=30),
    Frequency.BIMONTHLY: Interval(months=2, approximate_days=60),
    Frequency.QUARTERLY: Interval(months=3, approximate_days=90),
    Frequency.SEMIANNUAL: Interval(months=6, approximate_days=180),
    Frequency.ANNUAL: Interval(months=12, approximate_days=365),
    Frequency.ONE_TIME: None,
}


def interval_of(frequency: Frequency) -> Interval | None:
    return _INTERVALS.get(frequency)


def require_interval(frequency: Frequency, operation: str = "") -> Interval:
    interval = interval_of(frequency)
    if interval is None:
        raise UnsupportedFrequency(frequency, operation)
    return interval


def approximate_days(frequency: Frequency) -> int | None:
    interval = interval_of(frequency)
    return interval.approximate_days if interval else None


def _add_months(start: date, months: int) -> date:
    # Clamp to the last day of the target month: Jan 31 + 1 month is Feb 28/29.
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, monthrange(year, month)[1])
    return date(year, month, day)


def add_intervals(start: date, frequency: Frequency, count: int) -> date | None:
    """Step ``count`` intervals from ``start``.

    Month steps are anchored on ``start``, so Jan 31 + 2 months is Mar 31 even
    though Jan 31 + 1 month is Feb 28.
    """
    interval = interval_of(frequency)
    if interval is None:
        return None
    if interval.months:
        return _add_months(start, interval.months * count)
    return start + timedelta(days=interval.days * count)


def add_interval(start: date, frequency: Frequency) -> date | None:
    return add_intervals(start, frequency, 1)


def end_of_period(start: date, frequency: Frequency) -> date | None:
    following = add_interval(start, frequency)
    if following is None:
        return None
    return following - timedelta(days=1)
