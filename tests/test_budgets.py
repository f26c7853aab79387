from __future__ import annotations

import random
import unittest
from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal

from domain import budgets
from domain.errors import Conflict, InvalidInput, UnsupportedFrequency
from domain.frequency import BUDGET_FREQUENCIES, Frequency, end_of_period
from domain.models import BudgetState


def _budget(cap: str = "500000", frequency: Frequency = Frequency.MONTHLY, auto_renew: bool = False):
    return budgets.create(
        cap=Decimal(cap),
        start=date(2026, 1, 1),
        end=date(2026, 1, 31),
        frequency=frequency,
        auto_renew=auto_renew,
        category_id="cat_groceries",
        owner_id="u_1",
    )


class BudgetCreationTests(unittest.TestCase):
    def test_new_budget_starts_active_and_empty(self) -> None:
        budget = _budget()
        self.assertEqual(budget.state, BudgetState.ACTIVE)
        self.assertEqual(budget.spent_amount, Decimal("0"))
        self.assertEqual(budget.cap_amount, Decimal("500000"))
        self.assertTrue(budget.id)

    def test_rejects_non_positive_cap(self) -> None:
        for cap in ("0", "-1"):
            with self.subTest(cap=cap), self.assertRaises(InvalidInput) as ctx:
                _budget(cap=cap)
            self.assertEqual(ctx.exception.field, "cap_amount")

    def test_rejects_end_not_after_start(self) -> None:
        for end in (date(2026, 1, 1), date(2025, 12, 31)):
            with self.subTest(end=end), self.assertRaises(InvalidInput):
                budgets.create(Decimal("10"), date(2026, 1, 1), end, Frequency.MONTHLY, False, "c", "u")

    def test_rejects_frequencies_outside_budget_set(self) -> None:
        for frequency in (Frequency.BIMONTHLY, Frequency.ONE_TIME, Frequency.DAILY):
            with self.subTest(frequency=frequency), self.assertRaises(InvalidInput):
                _budget(frequency=frequency)

    def test_rejects_missing_category(self) -> None:
        with self.assertRaises(InvalidInput):
            budgets.create(Decimal("10"), date(2026, 1, 1), date(2026, 1, 31), Frequency.MONTHLY, False, "", "u")


class BudgetSpendingTests(unittest.TestCase):
    def test_monthly_budget_goes_over_cap(self) -> None:
        budget = _budget()

        budget = budgets.record_expense(budget, Decimal("320000"))
        self.assertEqual(budget.state, BudgetState.ACTIVE)
        self.assertEqual(budgets.remaining(budget), Decimal("180000"))
        self.assertEqual(budgets.utilization(budget), Decimal("0.6400"))
        self.assertEqual(budgets.utilization(budget) * 100, Decimal("64"))

        budget = budgets.record_expense(budget, Decimal("200000"))
        self.assertEqual(budget.spent_amount, Decimal("520000"))
        self.assertEqual(budget.state, BudgetState.EXCEEDED)
        self.assertEqual(budgets.remaining(budget), Decimal("0"))

    def test_reaching_the_cap_exactly_counts_as_exceeded(self) -> None:
        budget = budgets.record_expense(_budget(cap="100"), Decimal("100"))
        self.assertEqual(budget.state, BudgetState.EXCEEDED)

    def test_transitions_return_new_values(self) -> None:
        budget = _budget()
        updated = budgets.record_expense(budget, Decimal("10"))
        self.assertEqual(budget.spent_amount, Decimal("0"))
        self.assertEqual(updated.spent_amount, Decimal("10"))

    def test_non_positive_amounts_are_rejected(self) -> None:
        budget = _budget()
        for amount in (Decimal("0"), Decimal("-5")):
            with self.subTest(amount=amount):
                with self.assertRaises(InvalidInput):
                    budgets.record_expense(budget, amount)
                with self.assertRaises(InvalidInput):
                    budgets.reverse_expense(budget, amount)

    def test_reverse_floors_at_zero_and_recovers_from_exceeded(self) -> None:
        budget = budgets.record_expense(_budget(cap="100"), Decimal("150"))
        self.assertEqual(budget.state, BudgetState.EXCEEDED)

        budget = budgets.reverse_expense(budget, Decimal("60"))
        self.assertEqual(budget.spent_amount, Decimal("90"))
        self.assertEqual(budget.state, BudgetState.ACTIVE)

        budget = budgets.reverse_expense(budget, Decimal("1000"))
        self.assertEqual(budget.spent_amount, Decimal("0"))

    def test_inactive_budget_is_never_reactivated(self) -> None:
        budget = budgets.deactivate(budgets.record_expense(_budget(cap="100"), Decimal("150")))
        self.assertEqual(budget.state, BudgetState.INACTIVE)

        budget = budgets.reverse_expense(budget, Decimal("100"))
        self.assertEqual(budget.state, BudgetState.INACTIVE)
        budget = budgets.record_expense(budget, Decimal("500"))
        self.assertEqual(budget.state, BudgetState.INACTIVE)

    def test_exceeded_state_tracks_spend_over_random_sequences(self) -> None:
        rng = random.Random(20260101)
        budget = _budget(cap="1000")
        for _ in range(300):
            amount = Decimal(rng.randint(1, 40000)) / 100
            if rng.random() < 0.55:
                budget = budgets.record_expense(budget, amount)
            else:
                budget = budgets.reverse_expense(budget, amount)
            self.assertGreaterEqual(budget.spent_amount, Decimal("0"))
            self.assertEqual(budget.state == BudgetState.EXCEEDED, budget.spent_amount >= budget.cap_amount)

    def test_sync_spent_replaces_total(self) -> None:
        budget = budgets.sync_spent(_budget(cap="100"), Decimal("120"))
        self.assertEqual(budget.spent_amount, Decimal("120"))
        self.assertEqual(budget.state, BudgetState.EXCEEDED)
        with self.assertRaises(InvalidInput):
            budgets.sync_spent(budget, Decimal("-1"))

    def test_lowering_the_cap_rederives_state(self) -> None:
        budget = budgets.record_expense(_budget(cap="100"), Decimal("80"))
        budget = budgets.revise(budget, cap=Decimal("80"))
        self.assertEqual(budget.state, BudgetState.EXCEEDED)
        budget = budgets.revise(budget, cap=Decimal("200"))
        self.assertEqual(budget.state, BudgetState.ACTIVE)
        with self.assertRaises(InvalidInput):
            budgets.revise(budget, end=date(2025, 12, 1))


class BudgetReadModelTests(unittest.TestCase):
    def test_in_effect_requires_active_state_and_date_in_window(self) -> None:
        budget = _budget(cap="100")
        self.assertTrue(budgets.is_currently_in_effect(budget, date(2026, 1, 1)))
        self.assertTrue(budgets.is_currently_in_effect(budget, date(2026, 1, 31)))
        self.assertFalse(budgets.is_currently_in_effect(budget, date(2026, 2, 1)))

        exceeded = budgets.record_expense(budget, Decimal("100"))
        self.assertFalse(budgets.is_currently_in_effect(exceeded, date(2026, 1, 15)))

    def test_days_remaining_can_go_negative(self) -> None:
        budget = _budget()
        self.assertEqual(budgets.days_remaining(budget, date(2026, 1, 27)), 4)
        self.assertEqual(budgets.days_remaining(budget, date(2026, 2, 3)), -3)

    def test_near_limit(self) -> None:
        budget = budgets.record_expense(_budget(), Decimal("400000"))
        self.assertTrue(budgets.is_near_limit(budget, Decimal("0.8")))
        self.assertFalse(budgets.is_near_limit(budget, Decimal("0.9")))
        over = budgets.record_expense(budget, Decimal("100000"))
        self.assertFalse(budgets.is_near_limit(over, Decimal("0.8")))

    def test_rollover_due_only_after_period_end(self) -> None:
        budget = _budget()
        self.assertFalse(budgets.is_due_for_rollover(budget, date(2026, 1, 31)))
        self.assertTrue(budgets.is_due_for_rollover(budget, date(2026, 2, 1)))
        self.assertFalse(budgets.is_due_for_rollover(budgets.deactivate(budget), date(2026, 2, 1)))


class BudgetRenewalTests(unittest.TestCase):
    def test_next_period_follows_without_gap_for_every_frequency(self) -> None:
        for frequency in BUDGET_FREQUENCIES:
            with self.subTest(frequency=frequency):
                end = end_of_period(date(2026, 1, 31), frequency)
                budget = budgets.create(
                    Decimal("100"), date(2026, 1, 31), end, frequency, True, "cat", "u"
                )
                for _ in range(14):
                    period = budgets.next_period(budget)
                    self.assertEqual(period.start, budget.period_end + timedelta(days=1))
                    self.assertGreater(period.end, period.start)
                    _, budget = budgets.renew(budget)
                    self.assertEqual(budget.period_start, period.start)
                    self.assertEqual(budget.period_end, period.end)

    def test_monthly_next_period(self) -> None:
        period = budgets.next_period(_budget())
        self.assertEqual(period.start, date(2026, 2, 1))
        self.assertEqual(period.end, date(2026, 2, 28))

    def test_next_period_without_interval_is_a_defect(self) -> None:
        broken = replace(_budget(), frequency=Frequency.ONE_TIME)
        with self.assertRaises(UnsupportedFrequency):
            budgets.next_period(broken)

    def test_renew_closes_old_and_opens_fresh_period(self) -> None:
        budget = budgets.record_expense(_budget(auto_renew=True), Decimal("600000"))
        closed, renewed = budgets.renew(budget)

        self.assertEqual(closed.id, budget.id)
        self.assertEqual(closed.state, BudgetState.INACTIVE)
        self.assertEqual(closed.spent_amount, Decimal("600000"))

        self.assertNotEqual(renewed.id, budget.id)
        self.assertEqual(renewed.state, BudgetState.ACTIVE)
        self.assertEqual(renewed.spent_amount, Decimal("0"))
        self.assertEqual(renewed.cap_amount, budget.cap_amount)
        self.assertEqual(renewed.category_id, budget.category_id)
        self.assertEqual(renewed.frequency, budget.frequency)
        self.assertTrue(renewed.auto_renew)
        self.assertEqual(renewed.period_start, date(2026, 2, 1))

    def test_inactive_budget_cannot_be_renewed(self) -> None:
        with self.assertRaises(Conflict):
            budgets.renew(budgets.deactivate(_budget()))


if __name__ == "__main__":
    unittest.main()
