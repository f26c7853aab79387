from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class EngineSettings:
    # How many days ahead a pending installment may already be paid.
    payable_lookahead_days: int = 7
    # Utilization ratio from which an active budget is flagged as close to its cap.
    near_limit_threshold: Decimal = Decimal("0.8")
    # Percentages in views are rounded to this many places.
    display_decimals: int = 1

    @classmethod
    def from_env(cls) -> "EngineSettings":
        return cls(
            payable_lookahead_days=int(os.getenv("PAYABLE_LOOKAHEAD_DAYS", "7")),
            near_limit_threshold=Decimal(os.getenv("BUDGET_NEAR_LIMIT_THRESHOLD", "0.8")),
            display_decimals=int(os.getenv("DISPLAY_DECIMALS", "1")),
        )
