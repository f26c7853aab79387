from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from domain.frequency import Frequency
from domain.models import BudgetState, GoalState, InstallmentState, TransactionKind


def _coerce_date(value: Any) -> Any:
    if isinstance(value, date) or not isinstance(value, str):
        return value
    text = value.strip()
    if not text:
        return value
    # Canonical format first.
    for fmt in ("%Y-%m-%d", "%Y/%m/%d", "%d/%m/%Y", "%d-%m-%Y"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return value


# ---- requests ----

class BudgetCreateRequest(BaseModel):
    category_id: str = Field(min_length=1)
    cap_amount: Decimal
    period_start: date = Field(description="Start date in YYYY-MM-DD format, e.g. 2026-01-01.")
    period_end: date = Field(description="Inclusive end date in YYYY-MM-DD format, e.g. 2026-01-31.")
    frequency: Frequency
    auto_renew: bool = False

    @field_validator("period_start", "period_end", mode="before")
    @classmethod
    def coerce_date(cls, value: Any) -> Any:
        return _coerce_date(value)


class BudgetUpdateRequest(BaseModel):
    cap_amount: Optional[Decimal] = None
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    auto_renew: Optional[bool] = None

    @field_validator("period_start", "period_end", mode="before")
    @classmethod
    def coerce_date(cls, value: Any) -> Any:
        return _coerce_date(value)


class AmountRequest(BaseModel):
    amount: Decimal


class ProjectionRequest(BaseModel):
    name: str
    amount: Decimal
    kind: TransactionKind
    category_id: str
    frequency: Frequency
    start_date: date

    @field_validator("start_date", mode="before")
    @classmethod
    def coerce_date(cls, value: Any) -> Any:
        return _coerce_date(value)


class ExecuteProjectionRequest(BaseModel):
    """``due_date`` names the occurrence being settled, for duplicate detection."""

    due_date: Optional[date] = None
    executed_on: Optional[date] = None

    @field_validator("due_date", "executed_on", mode="before")
    @classmethod
    def coerce_date(cls, value: Any) -> Any:
        return _coerce_date(value)


class GoalRequest(BaseModel):
    name: str
    target_amount: Decimal
    deadline: Optional[date] = None
    start_date: Optional[date] = None
    frequency: Optional[Frequency] = None
    color: str = ""
    icon: str = ""

    @field_validator("deadline", "start_date", mode="before")
    @classmethod
    def coerce_date(cls, value: Any) -> Any:
        return _coerce_date(value)


class GoalUpdateRequest(BaseModel):
    name: Optional[str] = None
    target_amount: Optional[Decimal] = None
    deadline: Optional[date] = None
    color: Optional[str] = None
    icon: Optional[str] = None

    @field_validator("deadline", mode="before")
    @classmethod
    def coerce_date(cls, value: Any) -> Any:
        return _coerce_date(value)


class ContributionRequest(BaseModel):
    goal_id: str
    amount: Decimal
    description: str = ""
    installment_id: Optional[str] = None
    timestamp: Optional[datetime] = None


class ContributionUpdateRequest(BaseModel):
    amount: Decimal
    description: Optional[str] = None


# ---- views ----

class CategoryView(BaseModel):
    id: str
    name: str
    icon: str = ""
    kind: str = ""


class BudgetView(BaseModel):
    id: str
    category_id: str
    category: Optional[CategoryView] = None
    cap_amount: Decimal
    spent_amount: Decimal
    remaining_amount: Decimal
    utilization_percent: Decimal
    period_start: date
    period_end: date
    frequency: Frequency
    state: BudgetState
    auto_renew: bool
    in_effect: bool
    exceeded: bool
    near_limit: bool
    days_remaining: int
    created_at: datetime


class ProjectionView(BaseModel):
    id: str
    name: str
    amount: Decimal
    kind: TransactionKind
    category_id: str
    category: Optional[CategoryView] = None
    frequency: Frequency
    start_date: date
    last_executed: Optional[date] = None
    executions: int
    active: bool
    next_due_date: Optional[date] = None
    due_now: bool


class PostedTransactionView(BaseModel):
    transaction_id: str
    amount: Decimal
    kind: TransactionKind
    category_id: str
    posted_on: date
    description: str
    due_date: date


class ExecutionView(BaseModel):
    projection: ProjectionView
    transaction: PostedTransactionView


class InstallmentView(BaseModel):
    id: str
    sequence_number: int
    scheduled_date: date
    expected_amount: Decimal
    state: InstallmentState
    contribution_id: Optional[str] = None
    payable: bool


class GoalView(BaseModel):
    id: str
    name: str
    target_amount: Decimal
    current_amount: Decimal
    remaining_amount: Decimal
    progress_percent: Decimal
    deadline: Optional[date] = None
    start_date: date
    frequency: Optional[Frequency] = None
    color: str
    icon: str
    state: GoalState
    installment_count: int
    paid_installments: int
    created_at: datetime


class ContributionView(BaseModel):
    id: str
    goal_id: str
    amount: Decimal
    description: str
    timestamp: datetime
    installment_id: Optional[str] = None


class ContributionResultView(BaseModel):
    goal: GoalView
    contribution: ContributionView


class SweepReport(BaseModel):
    run_on: date
    renewed: List[str] = Field(default_factory=list)
    deactivated: List[str] = Field(default_factory=list)
    overdue_installments: List[str] = Field(default_factory=list)
    failures: List[str] = Field(default_factory=list)
