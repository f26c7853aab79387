from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal

from application.budget_service import BudgetService
from application.maintenance import MaintenanceSweep
from application.projection_service import ProjectionService
from application.savings_service import SavingsService
from domain.frequency import Frequency
from domain.models import TransactionKind
from domain.schemas import BudgetCreateRequest, GoalRequest, ProjectionRequest
from infrastructure.categories import CategoryCatalog
from infrastructure.ledger import InMemoryLedger
from infrastructure.persistence.memory_gateway import InMemoryGateway
from infrastructure.settings import EngineSettings
from interface.presenter import Presenter


@dataclass
class Services:
    settings: EngineSettings
    gateway: InMemoryGateway
    ledger: InMemoryLedger
    categories: CategoryCatalog
    budgets: BudgetService
    projections: ProjectionService
    savings: SavingsService
    sweep: MaintenanceSweep
    presenter: Presenter


def build_services(settings: EngineSettings | None = None) -> Services:
    settings = settings or EngineSettings.from_env()
    gateway = InMemoryGateway()
    ledger = InMemoryLedger()
    categories = CategoryCatalog()
    budget_service = BudgetService(gateway, ledger)
    savings_service = SavingsService(gateway, settings)
    return Services(
        settings=settings,
        gateway=gateway,
        ledger=ledger,
        categories=categories,
        budgets=budget_service,
        projections=ProjectionService(gateway, ledger, budget_service),
        savings=savings_service,
        sweep=MaintenanceSweep(budget_service, savings_service),
        presenter=Presenter(categories, settings),
    )


def _seed_demo(services: Services, owner_id: str, today: date) -> None:
    month_start = today.replace(day=1)
    previous_start = (month_start - timedelta(days=1)).replace(day=1)
    services.budgets.create_budget(owner_id, BudgetCreateRequest(
        category_id="cat_groceries",
        cap_amount=Decimal("500000"),
        period_start=previous_start,
        period_end=month_start - timedelta(days=1),
        frequency=Frequency.MONTHLY,
        auto_renew=True,
    ))
    services.projections.create_projection(owner_id, ProjectionRequest(
        name="Streaming",
        amount=Decimal("45000"),
        kind=TransactionKind.EXPENSE,
        category_id="cat_subscriptions",
        frequency=Frequency.MONTHLY,
        start_date=month_start,
    ))
    services.savings.create_goal(owner_id, GoalRequest(
        name="Emergency fund",
        target_amount=Decimal("1200000"),
        start_date=previous_start,
        deadline=previous_start + timedelta(days=365),
        frequency=Frequency.MONTHLY,
    ), today)


def main() -> None:
    run_on = date.fromisoformat(sys.argv[1]) if len(sys.argv) > 1 else date.today()
    owner_id = "u_cli"

    services = build_services()
    _seed_demo(services, owner_id, run_on)
    report = services.sweep.run(run_on)

    presenter = services.presenter
    payload = {
        "sweep": report.model_dump(mode="json"),
        "budgets": [presenter.budget(b, run_on).model_dump(mode="json") for b in services.budgets.list_budgets(owner_id)],
        "due_projections": [
            presenter.projection(p, run_on).model_dump(mode="json")
            for p in services.projections.list_due(owner_id, run_on)
        ],
        "goals": [presenter.goal(g).model_dump(mode="json") for g in services.savings.list_goals(owner_id)],
        "generated_at": datetime.now().isoformat(timespec="seconds"),
    }
    print(json.dumps(payload, indent=2))


if __name__ == "__main__":
    main()
