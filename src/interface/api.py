from __future__ import annotations

import logging
from datetime import date, datetime
from typing import List

from fastapi import Depends, FastAPI, Header, Request
from fastapi.responses import JSONResponse

from domain.errors import Conflict, EngineError, InvalidInput, NotFound, UnsupportedFrequency
from domain.schemas import (
    AmountRequest,
    BudgetCreateRequest,
    BudgetUpdateRequest,
    BudgetView,
    ContributionRequest,
    ContributionResultView,
    ContributionUpdateRequest,
    ContributionView,
    ExecuteProjectionRequest,
    ExecutionView,
    GoalRequest,
    GoalUpdateRequest,
    GoalView,
    InstallmentView,
    ProjectionRequest,
    ProjectionView,
    SweepReport,
)
from interface.cli import build_services

logger = logging.getLogger(__name__)

app = FastAPI(title="Recurring Plans API")
services = build_services()

_STATUS_BY_ERROR = {
    InvalidInput: 422,
    Conflict: 409,
    NotFound: 404,
    UnsupportedFrequency: 500,
}


@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
    status = next((code for cls, code in _STATUS_BY_ERROR.items() if isinstance(exc, cls)), 400)
    if status >= 500:
        logger.error("Engine defect on %s %s: %s", request.method, request.url.path, exc)
    else:
        logger.info("Request rejected %s %s status=%d: %s", request.method, request.url.path, status, exc)
    return JSONResponse(status_code=status, content=exc.to_dict())


def current_owner(x_user_id: str = Header(..., min_length=1)) -> str:
    return x_user_id


def today() -> date:
    return date.today()


def now() -> datetime:
    return datetime.now()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


# ---- budgets ----

@app.post("/budgets", status_code=201)
def create_budget(
    body: BudgetCreateRequest,
    owner_id: str = Depends(current_owner),
    run_on: date = Depends(today),
) -> BudgetView:
    return services.presenter.budget(services.budgets.create_budget(owner_id, body), run_on)


@app.get("/budgets")
def list_budgets(owner_id: str = Depends(current_owner), run_on: date = Depends(today)) -> List[BudgetView]:
    return [services.presenter.budget(b, run_on) for b in services.budgets.list_budgets(owner_id)]


@app.get("/budgets/near-limit")
def list_budgets_near_limit(
    owner_id: str = Depends(current_owner),
    run_on: date = Depends(today),
) -> List[BudgetView]:
    rows = services.budgets.list_near_limit(owner_id, services.settings.near_limit_threshold)
    return [services.presenter.budget(b, run_on) for b in rows]


@app.post("/budgets/sync")
def sync_budgets(owner_id: str = Depends(current_owner), run_on: date = Depends(today)) -> List[BudgetView]:
    return [services.presenter.budget(b, run_on) for b in services.budgets.sync_spent(owner_id)]


@app.get("/budgets/{budget_id}")
def get_budget(budget_id: str, owner_id: str = Depends(current_owner), run_on: date = Depends(today)) -> BudgetView:
    return services.presenter.budget(services.budgets.get_budget(owner_id, budget_id), run_on)


@app.patch("/budgets/{budget_id}")
def update_budget(
    budget_id: str,
    body: BudgetUpdateRequest,
    owner_id: str = Depends(current_owner),
    run_on: date = Depends(today),
) -> BudgetView:
    return services.presenter.budget(services.budgets.update_budget(owner_id, budget_id, body), run_on)


@app.post("/budgets/{budget_id}/expenses")
def record_expense(
    budget_id: str,
    body: AmountRequest,
    owner_id: str = Depends(current_owner),
    run_on: date = Depends(today),
) -> BudgetView:
    return services.presenter.budget(services.budgets.record_expense(owner_id, budget_id, body.amount), run_on)


@app.post("/budgets/{budget_id}/expenses/reverse")
def reverse_expense(
    budget_id: str,
    body: AmountRequest,
    owner_id: str = Depends(current_owner),
    run_on: date = Depends(today),
) -> BudgetView:
    return services.presenter.budget(services.budgets.reverse_expense(owner_id, budget_id, body.amount), run_on)


@app.post("/budgets/{budget_id}/deactivate")
def deactivate_budget(
    budget_id: str,
    owner_id: str = Depends(current_owner),
    run_on: date = Depends(today),
) -> BudgetView:
    return services.presenter.budget(services.budgets.deactivate(owner_id, budget_id), run_on)


@app.post("/budgets/{budget_id}/renew", status_code=201)
def renew_budget(
    budget_id: str,
    owner_id: str = Depends(current_owner),
    run_on: date = Depends(today),
) -> BudgetView:
    _, renewed = services.budgets.renew(owner_id, budget_id)
    return services.presenter.budget(renewed, run_on)


# ---- projections ----

@app.post("/projections", status_code=201)
def create_projection(
    body: ProjectionRequest,
    owner_id: str = Depends(current_owner),
    run_on: date = Depends(today),
) -> ProjectionView:
    return services.presenter.projection(services.projections.create_projection(owner_id, body), run_on)


@app.get("/projections")
def list_projections(owner_id: str = Depends(current_owner), run_on: date = Depends(today)) -> List[ProjectionView]:
    return [services.presenter.projection(p, run_on) for p in services.projections.list_active(owner_id)]


@app.get("/projections/due")
def list_due_projections(
    owner_id: str = Depends(current_owner),
    run_on: date = Depends(today),
) -> List[ProjectionView]:
    return [services.presenter.projection(p, run_on) for p in services.projections.list_due(owner_id, run_on)]


@app.put("/projections/{projection_id}")
def update_projection(
    projection_id: str,
    body: ProjectionRequest,
    owner_id: str = Depends(current_owner),
    run_on: date = Depends(today),
) -> ProjectionView:
    updated = services.projections.update_projection(owner_id, projection_id, body)
    return services.presenter.projection(updated, run_on)


@app.post("/projections/{projection_id}/execute")
def execute_projection(
    projection_id: str,
    body: ExecuteProjectionRequest,
    owner_id: str = Depends(current_owner),
    run_on: date = Depends(today),
) -> ExecutionView:
    executed_on = body.executed_on or run_on
    projection, request, transaction_id = services.projections.execute(
        owner_id, projection_id, executed_on, body.due_date
    )
    return services.presenter.execution(projection, request, transaction_id, run_on)


@app.delete("/projections/{projection_id}", status_code=204)
def delete_projection(projection_id: str, owner_id: str = Depends(current_owner)) -> None:
    services.projections.deactivate(owner_id, projection_id)


# ---- savings goals ----

@app.post("/goals", status_code=201)
def create_goal(
    body: GoalRequest,
    owner_id: str = Depends(current_owner),
    run_on: date = Depends(today),
) -> GoalView:
    return services.presenter.goal(services.savings.create_goal(owner_id, body, run_on))


@app.get("/goals")
def list_goals(owner_id: str = Depends(current_owner)) -> List[GoalView]:
    return [services.presenter.goal(g) for g in services.savings.list_goals(owner_id)]


@app.get("/goals/{goal_id}")
def get_goal(goal_id: str, owner_id: str = Depends(current_owner)) -> GoalView:
    return services.presenter.goal(services.savings.get_goal(owner_id, goal_id))


@app.patch("/goals/{goal_id}")
def update_goal(goal_id: str, body: GoalUpdateRequest, owner_id: str = Depends(current_owner)) -> GoalView:
    return services.presenter.goal(services.savings.update_goal(owner_id, goal_id, body))


@app.delete("/goals/{goal_id}", status_code=204)
def delete_goal(goal_id: str, owner_id: str = Depends(current_owner)) -> None:
    services.savings.delete_goal(owner_id, goal_id)


@app.post("/goals/{goal_id}/pause")
def pause_goal(goal_id: str, owner_id: str = Depends(current_owner)) -> GoalView:
    return services.presenter.goal(services.savings.pause_goal(owner_id, goal_id))


@app.post("/goals/{goal_id}/resume")
def resume_goal(goal_id: str, owner_id: str = Depends(current_owner)) -> GoalView:
    return services.presenter.goal(services.savings.resume_goal(owner_id, goal_id))


@app.post("/goals/{goal_id}/cancel")
def cancel_goal(goal_id: str, owner_id: str = Depends(current_owner)) -> GoalView:
    return services.presenter.goal(services.savings.cancel_goal(owner_id, goal_id))


@app.post("/goals/{goal_id}/rebalance")
def rebalance_goal(goal_id: str, owner_id: str = Depends(current_owner)) -> GoalView:
    return services.presenter.goal(services.savings.rebalance(owner_id, goal_id))


@app.get("/goals/{goal_id}/installments")
def list_installments(
    goal_id: str,
    owner_id: str = Depends(current_owner),
    run_on: date = Depends(today),
) -> List[InstallmentView]:
    return [services.presenter.installment(i, run_on) for i in services.savings.list_installments(owner_id, goal_id)]


@app.get("/goals/{goal_id}/installments/payable")
def list_payable_installments(
    goal_id: str,
    owner_id: str = Depends(current_owner),
    run_on: date = Depends(today),
) -> List[InstallmentView]:
    rows = services.savings.payable_installments(owner_id, goal_id, run_on)
    return [services.presenter.installment(i, run_on) for i in rows]


@app.get("/goals/{goal_id}/contributions")
def list_contributions(goal_id: str, owner_id: str = Depends(current_owner)) -> List[ContributionView]:
    return [services.presenter.contribution(c) for c in services.savings.list_contributions(owner_id, goal_id)]


@app.post("/contributions", status_code=201)
def create_contribution(
    body: ContributionRequest,
    owner_id: str = Depends(current_owner),
    moment: datetime = Depends(now),
) -> ContributionResultView:
    goal, contribution = services.savings.contribute(owner_id, body, moment)
    return ContributionResultView(
        goal=services.presenter.goal(goal),
        contribution=services.presenter.contribution(contribution),
    )


@app.put("/contributions/{contribution_id}")
def update_contribution(
    contribution_id: str,
    body: ContributionUpdateRequest,
    owner_id: str = Depends(current_owner),
) -> ContributionResultView:
    goal, contribution = services.savings.update_contribution(owner_id, contribution_id, body)
    return ContributionResultView(
        goal=services.presenter.goal(goal),
        contribution=services.presenter.contribution(contribution),
    )


@app.delete("/contributions/{contribution_id}")
def delete_contribution(contribution_id: str, owner_id: str = Depends(current_owner)) -> GoalView:
    return services.presenter.goal(services.savings.delete_contribution(owner_id, contribution_id))


# ---- maintenance ----

@app.post("/maintenance/sweep")
def run_sweep(run_on: date = Depends(today)) -> SweepReport:
    return services.sweep.run(run_on)
