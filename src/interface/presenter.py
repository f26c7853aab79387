from __future__ import annotations

from datetime import date
from decimal import Decimal

from domain import budgets, projections, savings
from domain.models import (
    Budget,
    Contribution,
    Installment,
    InstallmentState,
    Projection,
    SavingsGoal,
    TransactionRequest,
)
from domain.money import HUNDRED, round_for_display
from domain.schemas import (
    BudgetView,
    CategoryView,
    ContributionView,
    ExecutionView,
    GoalView,
    InstallmentView,
    PostedTransactionView,
    ProjectionView,
)
from infrastructure.categories import CategoryCatalog
from infrastructure.settings import EngineSettings


class Presenter:
    """Turns entities into API views. Derived fields always come from the domain modules."""

    def __init__(self, categories: CategoryCatalog, settings: EngineSettings | None = None):
        self._categories = categories
        self._settings = settings or EngineSettings()

    def _category(self, category_id: str) -> CategoryView | None:
        found = self._categories.find_category(category_id)
        return CategoryView.model_validate(found) if found else None

    def _percent(self, value: Decimal) -> Decimal:
        return round_for_display(value, self._settings.display_decimals)

    def budget(self, budget: Budget, today: date) -> BudgetView:
        return BudgetView(
            id=budget.id,
            category_id=budget.category_id,
            category=self._category(budget.category_id),
            cap_amount=budget.cap_amount,
            spent_amount=budget.spent_amount,
            remaining_amount=budgets.remaining(budget),
            utilization_percent=self._percent(budgets.utilization(budget) * HUNDRED),
            period_start=budget.period_start,
            period_end=budget.period_end,
            frequency=budget.frequency,
            state=budget.state,
            auto_renew=budget.auto_renew,
            in_effect=budgets.is_currently_in_effect(budget, today),
            exceeded=budgets.is_exceeded(budget),
            near_limit=budgets.is_near_limit(budget, self._settings.near_limit_threshold),
            days_remaining=budgets.days_remaining(budget, today),
            created_at=budget.created_at,
        )

    def projection(self, projection: Projection, today: date) -> ProjectionView:
        return ProjectionView(
            id=projection.id,
            name=projection.name,
            amount=projection.amount,
            kind=projection.kind,
            category_id=projection.category_id,
            category=self._category(projection.category_id),
            frequency=projection.frequency,
            start_date=projection.start_date,
            last_executed=projection.last_executed,
            executions=projection.executions,
            active=projection.active,
            next_due_date=projections.next_due_date(projection),
            due_now=projections.is_due(projection, today),
        )

    def execution(
        self,
        projection: Projection,
        request: TransactionRequest,
        transaction_id: str,
        today: date,
    ) -> ExecutionView:
        return ExecutionView(
            projection=self.projection(projection, today),
            transaction=PostedTransactionView(
                transaction_id=transaction_id,
                amount=request.amount,
                kind=request.kind,
                category_id=request.category_id,
                posted_on=request.posted_on,
                description=request.description,
                due_date=request.due_date,
            ),
        )

    def goal(self, goal: SavingsGoal) -> GoalView:
        return GoalView(
            id=goal.id,
            name=goal.name,
            target_amount=goal.target_amount,
            current_amount=goal.current_amount,
            remaining_amount=savings.remaining(goal),
            progress_percent=self._percent(savings.progress(goal)),
            deadline=goal.deadline,
            start_date=goal.start_date,
            frequency=goal.frequency,
            color=goal.color,
            icon=goal.icon,
            state=goal.state,
            installment_count=len(goal.installments),
            paid_installments=sum(1 for i in goal.installments if i.state == InstallmentState.PAID),
            created_at=goal.created_at,
        )

    def installment(self, installment: Installment, today: date) -> InstallmentView:
        return InstallmentView(
            id=installment.id,
            sequence_number=installment.sequence_number,
            scheduled_date=installment.scheduled_date,
            expected_amount=installment.expected_amount,
            state=installment.state,
            contribution_id=installment.contribution_id,
            payable=savings.is_payable(installment, today, self._settings.payable_lookahead_days),
        )

    def contribution(self, contribution: Contribution) -> ContributionView:
        return ContributionView(
            id=contribution.id,
            goal_id=contribution.goal_id,
            amount=contribution.amount,
            description=contribution.description,
            timestamp=contribution.timestamp,
            installment_id=contribution.installment_id,
        )
