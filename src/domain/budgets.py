"""
Budget period tracking.

Every function takes a ``Budget`` and returns a new one; nothing is mutated in
place. State is always re-derived through ``_derive_state`` so that
``EXCEEDED`` holds exactly when ``spent_amount >= cap_amount`` for any budget
that has not been deactivated.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any

from domain.errors import Conflict, InvalidInput, UnsupportedFrequency
from domain.frequency import BUDGET_FREQUENCIES, Frequency, end_of_period
from domain.models import Budget, BudgetPeriod, BudgetState, new_id
from domain.money import ZERO, require_positive, round_precise, to_decimal


def _derive_state(current: BudgetState, spent: Decimal, cap: Decimal) -> BudgetState:
    if current == BudgetState.INACTIVE:
        return BudgetState.INACTIVE
    return BudgetState.EXCEEDED if spent >= cap else BudgetState.ACTIVE


def _validate_window(start: date | None, end: date | None) -> None:
    if start is None:
        raise InvalidInput("period_start", "is required")
    if end is None:
        raise InvalidInput("period_end", "is required")
    if end <= start:
        raise InvalidInput("period_end", "must be after period_start")


def _validate_frequency(frequency: Any) -> Frequency:
    if frequency is None:
        raise InvalidInput("frequency", "is required")
    try:
        value = Frequency(frequency)
    except ValueError as exc:
        raise InvalidInput("frequency", f"unknown frequency {frequency!r}") from exc
    if value not in BUDGET_FREQUENCIES:
        raise InvalidInput("frequency", f"{value.value} is not allowed for budgets")
    return value


def create(
    cap: Any,
    start: date,
    end: date,
    frequency: Frequency,
    auto_renew: bool,
    category_id: str,
    owner_id: str,
    budget_id: str | None = None,
    created_at: datetime | None = None,
) -> Budget:
    cap_amount = require_positive(cap, "cap_amount")
    _validate_window(start, end)
    freq = _validate_frequency(frequency)
    if not category_id:
        raise InvalidInput("category_id", "is required")
    if not owner_id:
        raise InvalidInput("owner_id", "is required")
    return Budget(
        id=budget_id or new_id("bud"),
        owner_id=owner_id,
        category_id=category_id,
        cap_amount=cap_amount,
        spent_amount=ZERO,
        period_start=start,
        period_end=end,
        frequency=freq,
        state=BudgetState.ACTIVE,
        auto_renew=bool(auto_renew),
        created_at=created_at or datetime.now(),
    )


def _with_spent(budget: Budget, spent: Decimal) -> Budget:
    return replace(
        budget,
        spent_amount=spent,
        state=_derive_state(budget.state, spent, budget.cap_amount),
    )


def record_expense(budget: Budget, amount: Any) -> Budget:
    value = require_positive(amount, "amount")
    return _with_spent(budget, budget.spent_amount + value)


def reverse_expense(budget: Budget, amount: Any) -> Budget:
    value = require_positive(amount, "amount")
    return _with_spent(budget, max(ZERO, budget.spent_amount - value))


def sync_spent(budget: Budget, total: Any) -> Budget:
    """Replace the cached spend with a total recomputed from the ledger."""
    value = to_decimal(total, "spent_amount")
    if value < ZERO:
        raise InvalidInput("spent_amount", "must be >= 0")
    return _with_spent(budget, value)


def revise(
    budget: Budget,
    cap: Any = None,
    start: date | None = None,
    end: date | None = None,
    auto_renew: bool | None = None,
) -> Budget:
    cap_amount = budget.cap_amount if cap is None else require_positive(cap, "cap_amount")
    new_start = start or budget.period_start
    new_end = end or budget.period_end
    _validate_window(new_start, new_end)
    return replace(
        budget,
        cap_amount=cap_amount,
        period_start=new_start,
        period_end=new_end,
        auto_renew=budget.auto_renew if auto_renew is None else bool(auto_renew),
        state=_derive_state(budget.state, budget.spent_amount, cap_amount),
    )


def deactivate(budget: Budget) -> Budget:
    return replace(budget, state=BudgetState.INACTIVE)


def is_exceeded(budget: Budget) -> bool:
    return budget.spent_amount >= budget.cap_amount


def is_currently_in_effect(budget: Budget, today: date) -> bool:
    return budget.state == BudgetState.ACTIVE and budget.period_start <= today <= budget.period_end


def is_due_for_rollover(budget: Budget, today: date) -> bool:
    return budget.state != BudgetState.INACTIVE and budget.period_end < today


def remaining(budget: Budget) -> Decimal:
    return max(ZERO, budget.cap_amount - budget.spent_amount)


def utilization(budget: Budget) -> Decimal:
    """Spent over cap as a ratio (0.64 means 64%), 4-decimal precision."""
    if budget.cap_amount == ZERO:
        return round_precise(ZERO)
    return round_precise(budget.spent_amount / budget.cap_amount)


def is_near_limit(budget: Budget, threshold: Any) -> bool:
    if budget.state != BudgetState.ACTIVE:
        return False
    return utilization(budget) >= to_decimal(threshold, "threshold")


def days_remaining(budget: Budget, today: date) -> int:
    # Negative once the period has ended.
    return (budget.period_end - today).days


def next_period(budget: Budget) -> BudgetPeriod:
    start = budget.period_end + timedelta(days=1)
    end = end_of_period(start, budget.frequency)
    if end is None:
        raise UnsupportedFrequency(budget.frequency, "next_period")
    return BudgetPeriod(start=start, end=end)


def renew(
    budget: Budget,
    new_id_value: str | None = None,
    created_at: datetime | None = None,
) -> tuple[Budget, Budget]:
    """Close ``budget`` and open the following period with spend reset.

    Returns ``(closed, renewed)``.
    """
    if budget.state == BudgetState.INACTIVE:
        raise Conflict(f"Budget {budget.id} is inactive and cannot be renewed")
    period = next_period(budget)
    renewed = create(
        cap=budget.cap_amount,
        start=period.start,
        end=period.end,
        frequency=budget.frequency,
        auto_renew=budget.auto_renew,
        category_id=budget.category_id,
        owner_id=budget.owner_id,
        budget_id=new_id_value,
        created_at=created_at,
    )
    return deactivate(budget), renewed
