"""
Savings goals, their installment schedule and the contribution arithmetic.

A goal's ``current_amount`` only ever moves by the amount of a contribution
being applied, corrected or reversed, so replaying the same contributions in any
order lands on the same total.
"""
from __future__ import annotations

import math
from dataclasses import replace
from datetime import date, datetime, timedelta
from decimal import ROUND_DOWN, Decimal
from typing import Any

from domain.errors import Conflict, InvalidInput
from domain.frequency import SAVINGS_FREQUENCIES, Frequency, add_intervals, approximate_days
from domain.models import (
    Contribution,
    GoalState,
    Installment,
    InstallmentState,
    SavingsGoal,
    new_id,
)
from domain.money import CENTS, HUNDRED, ZERO, require_positive, round_money, round_precise

_CLOSED_GOAL_STATES = (GoalState.COMPLETED, GoalState.CANCELLED)


def split_amount(total: Decimal, count: int) -> list[Decimal]:
    """Split ``total`` into ``count`` cent-rounded parts that sum to it exactly.

    Every part but the last is ``round(total / count, 2)``; the last one absorbs
    the rounding remainder. When rounding the share up would leave the last
    part negative, the share is rounded down instead and the leftover cents go
    one each to the leading parts.
    """
    if count <= 0:
        return []
    share = round_money(total / count)
    last = total - share * (count - 1)
    if last >= ZERO:
        return [share] * (count - 1) + [last]

    share = (total / count).quantize(CENTS, rounding=ROUND_DOWN)
    extra = int((total - share * count) // CENTS)
    parts = [share + CENTS] * extra + [share] * (count - extra)
    # Sub-cent residue of a target with more than two decimals.
    parts[-1] += total - sum(parts, ZERO)
    return parts


def build_schedule(
    goal_id: str,
    target: Decimal,
    start: date,
    deadline: date,
    frequency: Frequency,
) -> tuple[Installment, ...]:
    step = approximate_days(frequency)
    if step is None:
        raise InvalidInput("frequency", f"{frequency.value} cannot schedule installments")
    count = math.ceil((deadline - start).days / step)
    amounts = split_amount(target, count)
    return tuple(
        Installment(
            id=new_id("ins"),
            goal_id=goal_id,
            sequence_number=index + 1,
            scheduled_date=add_intervals(start, frequency, index),
            expected_amount=amount,
        )
        for index, amount in enumerate(amounts)
    )


def _completion_state(goal: SavingsGoal, current: Decimal, target: Decimal) -> GoalState:
    if goal.state == GoalState.CANCELLED:
        return GoalState.CANCELLED
    if current >= target:
        return GoalState.COMPLETED
    if goal.state == GoalState.COMPLETED:
        return GoalState.ACTIVE
    return goal.state


def create_goal(
    name: str,
    target: Any,
    deadline: date | None,
    start: date,
    frequency: Frequency | None,
    color: str,
    icon: str,
    owner_id: str,
    goal_id: str | None = None,
    created_at: datetime | None = None,
) -> SavingsGoal:
    target_amount = require_positive(target, "target_amount")
    if not name or not name.strip():
        raise InvalidInput("name", "is required")
    if not owner_id:
        raise InvalidInput("owner_id", "is required")
    if start is None:
        raise InvalidInput("start_date", "is required")
    freq = None
    if frequency is not None:
        try:
            freq = Frequency(frequency)
        except ValueError as exc:
            raise InvalidInput("frequency", f"unknown frequency {frequency!r}") from exc
        if freq not in SAVINGS_FREQUENCIES:
            raise InvalidInput("frequency", f"{freq.value} is not allowed for savings goals")
    if deadline is not None and deadline <= start:
        raise InvalidInput("deadline", "must be after start_date")

    goal_id = goal_id or new_id("goal")
    installments: tuple[Installment, ...] = ()
    if freq is not None and deadline is not None:
        installments = build_schedule(goal_id, target_amount, start, deadline, freq)

    return SavingsGoal(
        id=goal_id,
        owner_id=owner_id,
        name=name.strip(),
        target_amount=target_amount,
        current_amount=ZERO,
        deadline=deadline,
        start_date=start,
        frequency=freq,
        color=color or "",
        icon=icon or "",
        state=GoalState.ACTIVE,
        created_at=created_at or datetime.now(),
        installments=installments,
    )


def _replace_installment(goal: SavingsGoal, updated: Installment) -> tuple[Installment, ...]:
    return tuple(updated if item.id == updated.id else item for item in goal.installments)


def apply_contribution(
    goal: SavingsGoal,
    amount: Any,
    description: str,
    timestamp: datetime,
    installment_id: str | None = None,
    contribution_id: str | None = None,
) -> tuple[SavingsGoal, Contribution]:
    value = require_positive(amount, "amount")
    if goal.state in _CLOSED_GOAL_STATES:
        raise Conflict(f"Goal {goal.id} is {goal.state.value} and accepts no contributions")

    contribution = Contribution(
        id=contribution_id or new_id("ctb"),
        goal_id=goal.id,
        owner_id=goal.owner_id,
        amount=value,
        description=description or "",
        timestamp=timestamp,
        installment_id=installment_id,
    )

    installments = goal.installments
    if installment_id is not None:
        installment = goal.installment(installment_id)
        if installment is None:
            raise InvalidInput("installment_id", f"{installment_id} does not belong to goal {goal.id}")
        if not installment.is_open:
            raise Conflict(f"Installment {installment_id} is already {installment.state.value}")
        installments = _replace_installment(
            goal,
            replace(installment, state=InstallmentState.PAID, contribution_id=contribution.id),
        )

    current = goal.current_amount + value
    state = _completion_state(goal, current, goal.target_amount)
    if state == GoalState.PAUSED:
        state = GoalState.ACTIVE
    updated = replace(goal, current_amount=current, state=state, installments=installments)
    return updated, contribution


def reverse_contribution(goal: SavingsGoal, contribution: Contribution) -> SavingsGoal:
    if contribution.goal_id != goal.id:
        raise InvalidInput("goal_id", f"contribution {contribution.id} belongs to another goal")
    installments = goal.installments
    if contribution.installment_id is not None:
        installment = goal.installment(contribution.installment_id)
        if installment is not None and installment.contribution_id == contribution.id:
            installments = _replace_installment(
                goal,
                replace(installment, state=InstallmentState.PENDING, contribution_id=None),
            )
    current = max(ZERO, goal.current_amount - contribution.amount)
    return replace(
        goal,
        current_amount=current,
        state=_completion_state(goal, current, goal.target_amount),
        installments=installments,
    )


def correct_contribution(
    goal: SavingsGoal,
    contribution: Contribution,
    amount: Any,
    description: str | None = None,
) -> tuple[SavingsGoal, Contribution]:
    value = require_positive(amount, "amount")
    if contribution.goal_id != goal.id:
        raise InvalidInput("goal_id", f"contribution {contribution.id} belongs to another goal")
    corrected = replace(
        contribution,
        amount=value,
        description=contribution.description if description is None else description,
    )
    current = max(ZERO, goal.current_amount + (value - contribution.amount))
    updated = replace(
        goal,
        current_amount=current,
        state=_completion_state(goal, current, goal.target_amount),
    )
    return updated, corrected


def revise_goal(
    goal: SavingsGoal,
    name: str | None = None,
    target: Any = None,
    deadline: date | None = None,
    color: str | None = None,
    icon: str | None = None,
) -> SavingsGoal:
    target_amount = goal.target_amount if target is None else require_positive(target, "target_amount")
    if name is not None and not name.strip():
        raise InvalidInput("name", "must not be blank")
    if deadline is not None and deadline <= goal.start_date:
        raise InvalidInput("deadline", "must be after start_date")
    return replace(
        goal,
        name=goal.name if name is None else name.strip(),
        target_amount=target_amount,
        deadline=goal.deadline if deadline is None else deadline,
        color=goal.color if color is None else color,
        icon=goal.icon if icon is None else icon,
        state=_completion_state(goal, goal.current_amount, target_amount),
    )


def pause_goal(goal: SavingsGoal) -> SavingsGoal:
    if goal.state != GoalState.ACTIVE:
        raise Conflict(f"Only active goals can be paused; goal {goal.id} is {goal.state.value}")
    return replace(goal, state=GoalState.PAUSED)


def resume_goal(goal: SavingsGoal) -> SavingsGoal:
    if goal.state != GoalState.PAUSED:
        raise Conflict(f"Only paused goals can be resumed; goal {goal.id} is {goal.state.value}")
    return replace(goal, state=GoalState.ACTIVE)


def cancel_goal(goal: SavingsGoal) -> SavingsGoal:
    if goal.state in _CLOSED_GOAL_STATES:
        raise Conflict(f"Goal {goal.id} is already {goal.state.value}")
    installments = tuple(
        replace(item, state=InstallmentState.CANCELLED) if item.is_open else item
        for item in goal.installments
    )
    return replace(goal, state=GoalState.CANCELLED, installments=installments)


def mark_overdue(goal: SavingsGoal, today: date) -> SavingsGoal:
    # Completed and cancelled goals owe nothing.
    if goal.state in _CLOSED_GOAL_STATES:
        return goal
    installments = tuple(
        replace(item, state=InstallmentState.OVERDUE)
        if item.state == InstallmentState.PENDING and item.scheduled_date < today
        else item
        for item in goal.installments
    )
    return replace(goal, installments=installments)


def rebalance_installments(goal: SavingsGoal) -> SavingsGoal:
    """Spread what is still missing over the open installments."""
    open_items = [item for item in goal.installments if item.is_open]
    if not open_items:
        return goal
    outstanding = remaining(goal)
    amounts = dict(zip((item.id for item in open_items), split_amount(outstanding, len(open_items))))
    installments = tuple(
        replace(item, expected_amount=amounts[item.id]) if item.id in amounts else item
        for item in goal.installments
    )
    return replace(goal, installments=installments)


def remaining(goal: SavingsGoal) -> Decimal:
    return max(ZERO, goal.target_amount - goal.current_amount)


def progress(goal: SavingsGoal) -> Decimal:
    if goal.target_amount == ZERO:
        return round_precise(ZERO)
    return round_precise(goal.current_amount / goal.target_amount * HUNDRED)


def is_payable(installment: Installment, today: date, lookahead_days: int) -> bool:
    if not installment.is_open:
        return False
    return installment.scheduled_date <= today + timedelta(days=lookahead_days)


def payable_installments(goal: SavingsGoal, today: date, lookahead_days: int) -> list[Installment]:
    return [item for item in goal.installments if is_payable(item, today, lookahead_days)]
