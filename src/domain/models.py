from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import uuid4

from domain.frequency import Frequency


class BudgetState(str, Enum):
    ACTIVE = "active"
    EXCEEDED = "exceeded"
    INACTIVE = "inactive"


class TransactionKind(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class GoalState(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"
    CANCELLED = "cancelled"


class InstallmentState(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


OPEN_INSTALLMENT_STATES = frozenset({InstallmentState.PENDING, InstallmentState.OVERDUE})


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex[:12]}"


@dataclass(frozen=True)
class BudgetPeriod:
    start: date
    end: date


@dataclass(frozen=True)
class Budget:
    id: str
    owner_id: str
    category_id: str
    cap_amount: Decimal
    spent_amount: Decimal
    period_start: date
    period_end: date
    frequency: Frequency
    state: BudgetState
    auto_renew: bool
    created_at: datetime
    version: int = 0


@dataclass(frozen=True)
class Projection:
    id: str
    name: str
    amount: Decimal
    kind: TransactionKind
    category_id: str
    owner_id: str
    frequency: Frequency
    start_date: date
    last_executed: date | None = None
    executions: int = 0
    active: bool = True
    version: int = 0


@dataclass(frozen=True)
class TransactionRequest:
    """What a projection run asks the ledger to book."""

    owner_id: str
    amount: Decimal
    kind: TransactionKind
    category_id: str
    posted_on: date
    description: str
    projection_id: str
    due_date: date


@dataclass(frozen=True)
class Installment:
    id: str
    goal_id: str
    sequence_number: int
    scheduled_date: date
    expected_amount: Decimal
    state: InstallmentState = InstallmentState.PENDING
    contribution_id: str | None = None

    @property
    def is_open(self) -> bool:
        return self.state in OPEN_INSTALLMENT_STATES


@dataclass(frozen=True)
class SavingsGoal:
    id: str
    owner_id: str
    name: str
    target_amount: Decimal
    current_amount: Decimal
    deadline: date | None
    start_date: date
    frequency: Frequency | None
    color: str
    icon: str
    state: GoalState
    created_at: datetime
    installments: tuple[Installment, ...] = ()
    version: int = 0

    def installment(self, installment_id: str) -> Installment | None:
        for item in self.installments:
            if item.id == installment_id:
                return item
        return None


@dataclass(frozen=True)
class Contribution:
    id: str
    goal_id: str
    owner_id: str
    amount: Decimal
    description: str
    timestamp: datetime
    installment_id: str | None = None
    version: int = 0
