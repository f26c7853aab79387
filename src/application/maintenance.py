from __future__ import annotations

import logging
import time
from datetime import date

from application.budget_service import BudgetService
from application.savings_service import SavingsService
from domain.schemas import SweepReport

logger = logging.getLogger(__name__)


class MaintenanceSweep:
    """Daily housekeeping an external scheduler triggers: budget rollover and overdue installments."""

    def __init__(self, budget_service: BudgetService, savings_service: SavingsService):
        self._budget_service = budget_service
        self._savings_service = savings_service

    def run(self, today: date) -> SweepReport:
        logger.info("Maintenance sweep start run_on=%s", today)
        t0 = time.perf_counter()

        t = time.perf_counter()
        renewed, deactivated, failures = self._budget_service.roll_over_due(today)
        logger.info("Budget rollover stage complete in %.2fs", time.perf_counter() - t)

        t = time.perf_counter()
        overdue, overdue_failures = self._savings_service.mark_overdue(today)
        failures = failures + overdue_failures
        logger.info("Overdue stage complete in %.2fs", time.perf_counter() - t)

        logger.info("Maintenance sweep complete in %.2fs", time.perf_counter() - t0)
        return SweepReport(
            run_on=today,
            renewed=renewed,
            deactivated=deactivated,
            overdue_installments=overdue,
            failures=failures,
        )
