from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable

from domain import savings
from domain.errors import Conflict, EngineError, NotFound
from domain.models import Contribution, Installment, InstallmentState, SavingsGoal
from domain.schemas import ContributionRequest, ContributionUpdateRequest, GoalRequest, GoalUpdateRequest
from infrastructure.persistence.gateway import PersistenceGateway
from infrastructure.settings import EngineSettings

logger = logging.getLogger(__name__)


class SavingsService:
    """Savings goals, installments and the contributions that pay them."""

    def __init__(self, gateway: PersistenceGateway, settings: EngineSettings | None = None):
        self._gateway = gateway
        self._settings = settings or EngineSettings()

    # ---- goals ----
    def create_goal(self, owner_id: str, request: GoalRequest, today: date) -> SavingsGoal:
        name = (request.name or "").strip()
        if any(g.name.lower() == name.lower() for g in self._gateway.find_by_owner(SavingsGoal, owner_id)):
            raise Conflict(f"A goal named {name!r} already exists")
        goal = savings.create_goal(
            name=request.name,
            target=request.target_amount,
            deadline=request.deadline,
            start=request.start_date or today,
            frequency=request.frequency,
            color=request.color,
            icon=request.icon,
            owner_id=owner_id,
        )
        saved = self._gateway.save(goal)
        logger.info(
            "Goal created id=%s owner_id=%s target=%s installments=%d",
            saved.id,
            owner_id,
            saved.target_amount,
            len(saved.installments),
        )
        return saved

    def get_goal(self, owner_id: str, goal_id: str) -> SavingsGoal:
        goal = self._gateway.load(SavingsGoal, goal_id)
        if goal.owner_id != owner_id:
            raise NotFound("SavingsGoal", goal_id)
        return goal

    def list_goals(self, owner_id: str) -> list[SavingsGoal]:
        return sorted(self._gateway.find_by_owner(SavingsGoal, owner_id), key=lambda g: (g.created_at, g.id))

    def update_goal(self, owner_id: str, goal_id: str, request: GoalUpdateRequest) -> SavingsGoal:
        goal = self.get_goal(owner_id, goal_id)
        revised = savings.revise_goal(
            goal,
            name=request.name,
            target=request.target_amount,
            deadline=request.deadline,
            color=request.color,
            icon=request.icon,
        )
        return self._gateway.save(revised)

    def delete_goal(self, owner_id: str, goal_id: str) -> None:
        goal = self.get_goal(owner_id, goal_id)
        contributions = self._gateway.find(Contribution, goal_id=goal.id)
        for contribution in contributions:
            self._gateway.delete(Contribution, contribution.id)
        self._gateway.delete(SavingsGoal, goal.id)
        logger.info("Goal deleted id=%s contributions_removed=%d", goal.id, len(contributions))

    def pause_goal(self, owner_id: str, goal_id: str) -> SavingsGoal:
        return self._transition(owner_id, goal_id, savings.pause_goal)

    def resume_goal(self, owner_id: str, goal_id: str) -> SavingsGoal:
        return self._transition(owner_id, goal_id, savings.resume_goal)

    def cancel_goal(self, owner_id: str, goal_id: str) -> SavingsGoal:
        return self._transition(owner_id, goal_id, savings.cancel_goal)

    def rebalance(self, owner_id: str, goal_id: str) -> SavingsGoal:
        return self._transition(owner_id, goal_id, savings.rebalance_installments)

    # ---- installments ----
    def list_installments(self, owner_id: str, goal_id: str) -> list[Installment]:
        return sorted(self.get_goal(owner_id, goal_id).installments, key=lambda i: i.sequence_number)

    def payable_installments(self, owner_id: str, goal_id: str, today: date) -> list[Installment]:
        goal = self.get_goal(owner_id, goal_id)
        return savings.payable_installments(goal, today, self._settings.payable_lookahead_days)

    def mark_overdue(self, today: date) -> tuple[list[str], list[str]]:
        """Flag every pending installment whose date has passed.

        Returns ``(flagged_installment_ids, failures)``. One failing goal does
        not stop the others.
        """
        flagged: list[str] = []
        failures: list[str] = []
        for goal in self._gateway.find(SavingsGoal):
            updated = savings.mark_overdue(goal, today)
            newly = [
                after.id
                for before, after in zip(goal.installments, updated.installments)
                if before.state != after.state and after.state == InstallmentState.OVERDUE
            ]
            if not newly:
                continue
            try:
                self._gateway.save(updated)
            except EngineError as exc:
                logger.error("Overdue flagging failed goal_id=%s: %s", goal.id, exc)
                failures.append(f"{goal.id}: {exc.message}")
                continue
            flagged.extend(newly)
        logger.info(
            "Overdue installments flagged run_on=%s count=%d failed=%d",
            today,
            len(flagged),
            len(failures),
        )
        return flagged, failures

    # ---- contributions ----
    def contribute(
        self,
        owner_id: str,
        request: ContributionRequest,
        now: datetime,
    ) -> tuple[SavingsGoal, Contribution]:
        goal = self.get_goal(owner_id, request.goal_id)
        updated, contribution = savings.apply_contribution(
            goal,
            amount=request.amount,
            description=request.description,
            timestamp=request.timestamp or now,
            installment_id=request.installment_id,
        )
        saved_goal = self._gateway.save(updated)
        saved_contribution = self._gateway.save(contribution)
        logger.info(
            "Contribution applied id=%s goal_id=%s amount=%s installment_id=%s goal_state=%s",
            saved_contribution.id,
            saved_goal.id,
            saved_contribution.amount,
            saved_contribution.installment_id,
            saved_goal.state.value,
        )
        return saved_goal, saved_contribution

    def list_contributions(self, owner_id: str, goal_id: str) -> list[Contribution]:
        goal = self.get_goal(owner_id, goal_id)
        return sorted(self._gateway.find(Contribution, goal_id=goal.id), key=lambda c: (c.timestamp, c.id))

    def get_contribution(self, owner_id: str, contribution_id: str) -> Contribution:
        contribution = self._gateway.load(Contribution, contribution_id)
        if contribution.owner_id != owner_id:
            raise NotFound("Contribution", contribution_id)
        return contribution

    def update_contribution(
        self,
        owner_id: str,
        contribution_id: str,
        request: ContributionUpdateRequest,
    ) -> tuple[SavingsGoal, Contribution]:
        contribution = self.get_contribution(owner_id, contribution_id)
        goal = self.get_goal(owner_id, contribution.goal_id)
        updated_goal, corrected = savings.correct_contribution(
            goal, contribution, request.amount, request.description
        )
        saved_goal = self._gateway.save(updated_goal)
        saved_contribution = self._gateway.save(corrected)
        logger.info(
            "Contribution corrected id=%s goal_id=%s amount=%s->%s",
            contribution.id,
            goal.id,
            contribution.amount,
            corrected.amount,
        )
        return saved_goal, saved_contribution

    def delete_contribution(self, owner_id: str, contribution_id: str) -> SavingsGoal:
        contribution = self.get_contribution(owner_id, contribution_id)
        goal = self.get_goal(owner_id, contribution.goal_id)
        saved_goal = self._gateway.save(savings.reverse_contribution(goal, contribution))
        self._gateway.delete(Contribution, contribution.id)
        logger.info(
            "Contribution reversed id=%s goal_id=%s amount=%s current=%s",
            contribution.id,
            goal.id,
            contribution.amount,
            saved_goal.current_amount,
        )
        return saved_goal

    def _transition(
        self,
        owner_id: str,
        goal_id: str,
        operation: Callable[[SavingsGoal], SavingsGoal],
    ) -> SavingsGoal:
        goal = self.get_goal(owner_id, goal_id)
        saved = self._gateway.save(operation(goal))
        logger.info("Goal %s id=%s state=%s", operation.__name__, saved.id, saved.state.value)
        return saved
