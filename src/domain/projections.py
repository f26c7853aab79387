from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Any

from domain.errors import Conflict, InvalidInput
from domain.frequency import PROJECTION_FREQUENCIES, Frequency, add_intervals
from domain.models import Projection, TransactionKind, TransactionRequest, new_id
from domain.money import require_positive


def _validate_fields(
    name: str | None,
    kind: Any,
    category_id: str | None,
    frequency: Any,
    start_date: date | None,
) -> tuple[str, TransactionKind, Frequency]:
    if not name or not name.strip():
        raise InvalidInput("name", "is required")
    if kind is None:
        raise InvalidInput("kind", "is required")
    try:
        kind_value = TransactionKind(kind)
    except ValueError as exc:
        raise InvalidInput("kind", f"unknown kind {kind!r}") from exc
    if not category_id:
        raise InvalidInput("category_id", "is required")
    if frequency is None:
        raise InvalidInput("frequency", "is required")
    try:
        freq = Frequency(frequency)
    except ValueError as exc:
        raise InvalidInput("frequency", f"unknown frequency {frequency!r}") from exc
    if freq not in PROJECTION_FREQUENCIES:
        raise InvalidInput("frequency", f"{freq.value} is not allowed for projections")
    if start_date is None:
        raise InvalidInput("start_date", "is required")
    return name.strip(), kind_value, freq


def create(
    name: str,
    amount: Any,
    kind: TransactionKind,
    category_id: str,
    owner_id: str,
    frequency: Frequency,
    start_date: date,
    projection_id: str | None = None,
) -> Projection:
    value = require_positive(amount, "amount")
    clean_name, kind_value, freq = _validate_fields(name, kind, category_id, frequency, start_date)
    if not owner_id:
        raise InvalidInput("owner_id", "is required")
    return Projection(
        id=projection_id or new_id("prj"),
        name=clean_name,
        amount=value,
        kind=kind_value,
        category_id=category_id,
        owner_id=owner_id,
        frequency=freq,
        start_date=start_date,
    )


def revise(
    projection: Projection,
    name: str,
    amount: Any,
    kind: TransactionKind,
    category_id: str,
    frequency: Frequency,
    start_date: date,
) -> Projection:
    """Update the template.

    Changing the schedule of a projection that already ran rebases its
    occurrence count on the new schedule, so the next due date always falls
    after ``last_executed``.
    """
    value = require_positive(amount, "amount")
    clean_name, kind_value, freq = _validate_fields(name, kind, category_id, frequency, start_date)
    executions = projection.executions
    schedule_changed = freq != projection.frequency or start_date != projection.start_date
    if schedule_changed and projection.last_executed is not None:
        executions = _occurrences_through(start_date, freq, projection.last_executed)
    return replace(
        projection,
        name=clean_name,
        amount=value,
        kind=kind_value,
        category_id=category_id,
        frequency=freq,
        start_date=start_date,
        executions=executions,
    )


def _occurrences_through(start: date, frequency: Frequency, until: date) -> int:
    """Number of occurrences of the schedule on or before ``until``."""
    count = 0
    due: date | None = start
    while due is not None and due <= until:
        count += 1
        due = add_intervals(start, frequency, count)
    return count


def next_due_date(projection: Projection) -> date | None:
    """Date of the next occurrence, or None when nothing else recurs.

    A projection that never ran is due on its start date, even a past one.
    Later occurrences are counted from the start date, so a schedule starting
    Jan 31 falls on Feb 28 and then Mar 31.
    """
    if projection.executions == 0:
        return projection.start_date
    return add_intervals(projection.start_date, projection.frequency, projection.executions)


def is_due(projection: Projection, today: date) -> bool:
    if not projection.active:
        return False
    due = next_due_date(projection)
    return due is not None and due <= today


def execute(
    projection: Projection,
    today: date,
    due_date: date | None = None,
) -> tuple[Projection, TransactionRequest]:
    """Run the projection once.

    ``due_date`` identifies the occurrence the caller means to settle; a stale
    value (already settled by another submission) is rejected.
    """
    if not projection.active:
        raise Conflict(f"Projection {projection.id} is inactive")
    due = next_due_date(projection)
    if due is None:
        raise Conflict(f"Projection {projection.id} has no further occurrences")
    if due_date is not None and due_date != due:
        raise Conflict(
            f"Projection {projection.id} occurrence {due_date.isoformat()} is not pending "
            f"(next due {due.isoformat()})"
        )
    request = TransactionRequest(
        owner_id=projection.owner_id,
        amount=projection.amount,
        kind=projection.kind,
        category_id=projection.category_id,
        posted_on=today,
        description=f"Projection run: {projection.name}",
        projection_id=projection.id,
        due_date=due,
    )
    updated = replace(projection, last_executed=today, executions=projection.executions + 1)
    return updated, request


def deactivate(projection: Projection) -> Projection:
    return replace(projection, active=False)
