from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any

from domain import budgets
from domain.errors import Conflict, EngineError, NotFound
from domain.models import Budget, BudgetState, TransactionKind
from domain.schemas import BudgetCreateRequest, BudgetUpdateRequest
from infrastructure.ledger import Ledger
from infrastructure.persistence.gateway import PersistenceGateway

logger = logging.getLogger(__name__)


class BudgetService:
    """Load, apply a budget transition, save."""

    def __init__(self, gateway: PersistenceGateway, ledger: Ledger):
        self._gateway = gateway
        self._ledger = ledger

    def create_budget(self, owner_id: str, request: BudgetCreateRequest) -> Budget:
        if self._live_budget(owner_id, request.category_id) is not None:
            raise Conflict(
                f"An active budget already exists for category {request.category_id}; deactivate it first"
            )
        budget = budgets.create(
            cap=request.cap_amount,
            start=request.period_start,
            end=request.period_end,
            frequency=request.frequency,
            auto_renew=request.auto_renew,
            category_id=request.category_id,
            owner_id=owner_id,
        )
        saved = self._gateway.save(budget)
        logger.info(
            "Budget created id=%s owner_id=%s category_id=%s cap=%s period=%s..%s",
            saved.id,
            owner_id,
            saved.category_id,
            saved.cap_amount,
            saved.period_start,
            saved.period_end,
        )
        return saved

    def get_budget(self, owner_id: str, budget_id: str) -> Budget:
        budget = self._gateway.load(Budget, budget_id)
        if budget.owner_id != owner_id:
            raise NotFound("Budget", budget_id)
        return budget

    def list_budgets(self, owner_id: str) -> list[Budget]:
        return sorted(self._gateway.find_by_owner(Budget, owner_id), key=lambda b: (b.period_start, b.id))

    def list_active(self, owner_id: str) -> list[Budget]:
        return [b for b in self.list_budgets(owner_id) if b.state == BudgetState.ACTIVE]

    def list_near_limit(self, owner_id: str, threshold: Decimal) -> list[Budget]:
        return [b for b in self.list_budgets(owner_id) if budgets.is_near_limit(b, threshold)]

    def record_expense(self, owner_id: str, budget_id: str, amount: Any) -> Budget:
        budget = self.get_budget(owner_id, budget_id)
        return self._store_transition(budget, budgets.record_expense(budget, amount), "record_expense")

    def reverse_expense(self, owner_id: str, budget_id: str, amount: Any) -> Budget:
        budget = self.get_budget(owner_id, budget_id)
        return self._store_transition(budget, budgets.reverse_expense(budget, amount), "reverse_expense")

    def apply_transaction(
        self,
        owner_id: str,
        category_id: str,
        amount: Decimal,
        kind: TransactionKind,
        posted_on: date,
    ) -> Budget | None:
        """Charge an expense to the owner's live budget for the category, if any."""
        if kind != TransactionKind.EXPENSE:
            return None
        budget = self._live_budget(owner_id, category_id)
        if budget is None or not (budget.period_start <= posted_on <= budget.period_end):
            return None
        return self._store_transition(budget, budgets.record_expense(budget, amount), "apply_transaction")

    def sync_spent(self, owner_id: str) -> list[Budget]:
        """Recompute every budget's spend from the owner's booked expenses."""
        expenses = [
            row for row in self._ledger.transactions(owner_id) if row["kind"] == TransactionKind.EXPENSE.value
        ]
        synced: list[Budget] = []
        for budget in self.list_budgets(owner_id):
            total = sum(
                (
                    row["amount"]
                    for row in expenses
                    if row["category_id"] == budget.category_id
                    and budget.period_start <= date.fromisoformat(row["posted_on"]) <= budget.period_end
                ),
                Decimal("0"),
            )
            synced.append(self._store_transition(budget, budgets.sync_spent(budget, total), "sync_spent"))
        logger.info("Budget spend synced owner_id=%s budgets=%d expenses=%d", owner_id, len(synced), len(expenses))
        return synced

    def update_budget(self, owner_id: str, budget_id: str, request: BudgetUpdateRequest) -> Budget:
        budget = self.get_budget(owner_id, budget_id)
        revised = budgets.revise(
            budget,
            cap=request.cap_amount,
            start=request.period_start,
            end=request.period_end,
            auto_renew=request.auto_renew,
        )
        return self._store_transition(budget, revised, "update")

    def deactivate(self, owner_id: str, budget_id: str) -> Budget:
        budget = self.get_budget(owner_id, budget_id)
        return self._store_transition(budget, budgets.deactivate(budget), "deactivate")

    def renew(self, owner_id: str, budget_id: str) -> tuple[Budget, Budget]:
        return self._renew(self.get_budget(owner_id, budget_id))

    def roll_over_due(self, today: date) -> tuple[list[str], list[str], list[str]]:
        """Renew or close every budget whose period ended before ``today``.

        Returns ``(renewed_ids, deactivated_ids, failures)``. One failing budget
        does not stop the others.
        """
        renewed: list[str] = []
        deactivated: list[str] = []
        failures: list[str] = []
        pending = [b for b in self._gateway.find(Budget) if budgets.is_due_for_rollover(b, today)]
        logger.info("Budget rollover start run_on=%s pending=%d", today, len(pending))
        for budget in pending:
            try:
                if budget.auto_renew:
                    _, current = self._renew(budget)
                    while budgets.is_due_for_rollover(current, today):
                        _, current = self._renew(current)
                    renewed.append(current.id)
                else:
                    self._store_transition(budget, budgets.deactivate(budget), "expire")
                    deactivated.append(budget.id)
            except EngineError as exc:
                logger.error("Budget rollover failed id=%s: %s", budget.id, exc)
                failures.append(f"{budget.id}: {exc.message}")
        logger.info(
            "Budget rollover complete renewed=%d deactivated=%d failed=%d",
            len(renewed),
            len(deactivated),
            len(failures),
        )
        return renewed, deactivated, failures

    def _renew(self, budget: Budget) -> tuple[Budget, Budget]:
        closed, renewed = budgets.renew(budget)
        closed = self._gateway.save(closed)
        renewed = self._gateway.save(renewed)
        logger.info(
            "Budget renewed previous_id=%s new_id=%s period=%s..%s",
            closed.id,
            renewed.id,
            renewed.period_start,
            renewed.period_end,
        )
        return closed, renewed

    def _live_budget(self, owner_id: str, category_id: str) -> Budget | None:
        for budget in self._gateway.find(Budget, owner_id=owner_id, category_id=category_id):
            if budget.state != BudgetState.INACTIVE:
                return budget
        return None

    def _store_transition(self, before: Budget, after: Budget, operation: str) -> Budget:
        saved = self._gateway.save(after)
        if before.state != saved.state:
            logger.info(
                "Budget state change id=%s operation=%s %s->%s spent=%s cap=%s",
                saved.id,
                operation,
                before.state.value,
                saved.state.value,
                saved.spent_amount,
                saved.cap_amount,
            )
        return saved
