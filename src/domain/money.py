from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from domain.errors import InvalidInput

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENTS = Decimal("0.01")
# Internal precision for ratios and percentages.
PRECISION = Decimal("0.0001")


def to_decimal(value: Any, field: str = "amount") -> Decimal:
    """Coerce ints, strings and Decimals to a finite Decimal.

    Floats go through ``str`` so that 0.1 becomes Decimal("0.1") rather than its
    binary expansion.
    """
    if value is None or isinstance(value, bool):
        raise InvalidInput(field, "is required and must be numeric")
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as exc:
            raise InvalidInput(field, f"not a number: {value!r}") from exc
    if not amount.is_finite():
        raise InvalidInput(field, f"must be finite, got {value!r}")
    return amount


def require_positive(value: Any, field: str = "amount") -> Decimal:
    amount = to_decimal(value, field)
    if amount <= ZERO:
        raise InvalidInput(field, "must be greater than 0")
    return amount


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def round_precise(value: Decimal) -> Decimal:
    return value.quantize(PRECISION, rounding=ROUND_HALF_UP)


def round_for_display(value: Decimal, places: int = 1) -> Decimal:
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
