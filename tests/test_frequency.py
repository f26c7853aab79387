from __future__ import annotations

import unittest
from datetime import date

from domain.errors import UnsupportedFrequency
from domain.frequency import (
    BUDGET_FREQUENCIES,
    PROJECTION_FREQUENCIES,
    SAVINGS_FREQUENCIES,
    Frequency,
    add_interval,
    add_intervals,
    approximate_days,
    end_of_period,
    interval_of,
    require_interval,
)


class FrequencyCalendarTests(unittest.TestCase):
    def test_every_recurring_frequency_has_an_interval(self) -> None:
        for frequency in Frequency:
            if frequency == Frequency.ONE_TIME:
                continue
            with self.subTest(frequency=frequency):
                self.assertIsNotNone(interval_of(frequency))
                self.assertIsNotNone(add_interval(date(2026, 1, 1), frequency))

    def test_approximate_days_table(self) -> None:
        expected = {
            Frequency.DAILY: 1,
            Frequency.WEEKLY: 7,
            Frequency.BIWEEKLY: 14,
            Frequency.MONTHLY: 30,
            Frequency.BIMONTHLY: 60,
            Frequency.QUARTERLY: 90,
            Frequency.SEMIANNUAL: 180,
            Frequency.ANNUAL: 365,
        }
        for frequency, days in expected.items():
            self.assertEqual(approximate_days(frequency), days)
        self.assertIsNone(approximate_days(Frequency.ONE_TIME))

    def test_day_based_steps(self) -> None:
        start = date(2026, 1, 1)
        self.assertEqual(add_interval(start, Frequency.DAILY), date(2026, 1, 2))
        self.assertEqual(add_interval(start, Frequency.WEEKLY), date(2026, 1, 8))
        self.assertEqual(add_interval(start, Frequency.BIWEEKLY), date(2026, 1, 15))
        self.assertEqual(add_intervals(start, Frequency.DAILY, 3), date(2026, 1, 4))

    def test_monthly_from_month_end_clamps_instead_of_overflowing(self) -> None:
        self.assertEqual(add_interval(date(2026, 1, 31), Frequency.MONTHLY), date(2026, 2, 28))
        self.assertEqual(add_interval(date(2024, 1, 31), Frequency.MONTHLY), date(2024, 2, 29))
        self.assertEqual(add_interval(date(2025, 11, 30), Frequency.QUARTERLY), date(2026, 2, 28))
        self.assertEqual(add_interval(date(2024, 2, 29), Frequency.ANNUAL), date(2025, 2, 28))
        self.assertEqual(add_interval(date(2026, 12, 15), Frequency.BIMONTHLY), date(2027, 2, 15))

    def test_multiple_steps_are_anchored_on_the_start(self) -> None:
        start = date(2026, 1, 31)
        self.assertEqual(add_intervals(start, Frequency.MONTHLY, 1), date(2026, 2, 28))
        self.assertEqual(add_intervals(start, Frequency.MONTHLY, 2), date(2026, 3, 31))
        self.assertEqual(add_intervals(start, Frequency.MONTHLY, 3), date(2026, 4, 30))
        self.assertEqual(add_intervals(start, Frequency.MONTHLY, 0), start)

    def test_end_of_period_is_one_day_before_next_start(self) -> None:
        self.assertEqual(end_of_period(date(2026, 1, 1), Frequency.MONTHLY), date(2026, 1, 31))
        self.assertEqual(end_of_period(date(2026, 1, 1), Frequency.QUARTERLY), date(2026, 3, 31))
        self.assertEqual(end_of_period(date(2026, 1, 1), Frequency.WEEKLY), date(2026, 1, 7))
        self.assertEqual(end_of_period(date(2026, 2, 1), Frequency.MONTHLY), date(2026, 2, 28))

    def test_one_time_does_not_recur(self) -> None:
        start = date(2026, 1, 1)
        self.assertIsNone(interval_of(Frequency.ONE_TIME))
        self.assertIsNone(add_interval(start, Frequency.ONE_TIME))
        self.assertIsNone(end_of_period(start, Frequency.ONE_TIME))
        with self.assertRaises(UnsupportedFrequency):
            require_interval(Frequency.ONE_TIME, "next_period")

    def test_allowed_sets(self) -> None:
        self.assertNotIn(Frequency.BIMONTHLY, BUDGET_FREQUENCIES)
        self.assertNotIn(Frequency.ONE_TIME, BUDGET_FREQUENCIES)
        self.assertIn(Frequency.ONE_TIME, PROJECTION_FREQUENCIES)
        self.assertNotIn(Frequency.ONE_TIME, SAVINGS_FREQUENCIES)
        self.assertIn(Frequency.DAILY, SAVINGS_FREQUENCIES)


if __name__ == "__main__":
    unittest.main()
