from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date

from application.budget_service import BudgetService
from domain import projections
from domain.errors import EngineError, NotFound
from domain.models import Projection, TransactionRequest
from domain.schemas import ProjectionRequest
from infrastructure.ledger import Ledger
from infrastructure.persistence.gateway import PersistenceGateway

logger = logging.getLogger(__name__)


class ProjectionService:
    """Manual execution of recurring income/expense templates."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        ledger: Ledger,
        budget_service: BudgetService | None = None,
    ):
        self._gateway = gateway
        self._ledger = ledger
        self._budget_service = budget_service

    def create_projection(self, owner_id: str, request: ProjectionRequest) -> Projection:
        projection = projections.create(
            name=request.name,
            amount=request.amount,
            kind=request.kind,
            category_id=request.category_id,
            owner_id=owner_id,
            frequency=request.frequency,
            start_date=request.start_date,
        )
        saved = self._gateway.save(projection)
        logger.info(
            "Projection created id=%s owner_id=%s kind=%s frequency=%s start=%s",
            saved.id,
            owner_id,
            saved.kind.value,
            saved.frequency.value,
            saved.start_date,
        )
        return saved

    def get_projection(self, owner_id: str, projection_id: str) -> Projection:
        projection = self._gateway.load(Projection, projection_id)
        if projection.owner_id != owner_id:
            raise NotFound("Projection", projection_id)
        return projection

    def list_active(self, owner_id: str) -> list[Projection]:
        rows = self._gateway.find(Projection, owner_id=owner_id, active=True)
        return sorted(rows, key=lambda p: (projections.next_due_date(p) or date.max, p.id))

    def list_due(self, owner_id: str, today: date) -> list[Projection]:
        return [p for p in self.list_active(owner_id) if projections.is_due(p, today)]

    def update_projection(self, owner_id: str, projection_id: str, request: ProjectionRequest) -> Projection:
        projection = self.get_projection(owner_id, projection_id)
        revised = projections.revise(
            projection,
            name=request.name,
            amount=request.amount,
            kind=request.kind,
            category_id=request.category_id,
            frequency=request.frequency,
            start_date=request.start_date,
        )
        return self._gateway.save(revised)

    def execute(
        self,
        owner_id: str,
        projection_id: str,
        today: date,
        due_date: date | None = None,
    ) -> tuple[Projection, TransactionRequest, str]:
        """Book one occurrence. Returns the projection, the request and the ledger id."""
        projection = self.get_projection(owner_id, projection_id)
        updated, request = projections.execute(projection, today, due_date)
        # Saving first makes a concurrent run of the same occurrence fail on the
        # version check before anything reaches the ledger.
        saved = self._gateway.save(updated)
        try:
            transaction_id = self._ledger.post(request)
        except EngineError as exc:
            self._gateway.save(replace(projection, version=saved.version))
            logger.warning(
                "Projection execution rolled back id=%s due_date=%s: %s",
                projection.id,
                request.due_date,
                exc,
            )
            raise
        logger.info(
            "Projection executed id=%s due_date=%s transaction_id=%s next_due=%s",
            saved.id,
            request.due_date,
            transaction_id,
            projections.next_due_date(saved),
        )
        if self._budget_service is not None:
            self._budget_service.apply_transaction(
                owner_id, request.category_id, request.amount, request.kind, request.posted_on
            )
        return saved, request, transaction_id

    def deactivate(self, owner_id: str, projection_id: str) -> Projection:
        projection = self.get_projection(owner_id, projection_id)
        saved = self._gateway.save(projections.deactivate(projection))
        logger.info("Projection deactivated id=%s owner_id=%s", saved.id, owner_id)
        return saved
