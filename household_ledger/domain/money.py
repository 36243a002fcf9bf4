"""Fixed-point money helpers"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

from household_ledger.domain.exceptions import InvalidError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Union[Decimal, int, str], field_name: str = "amount") -> Decimal:
    """
    Normalize a monetary value to a 2-place Decimal.

    Floats are rejected; callers pass Decimal, int or str.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise InvalidError(f"{field_name} must be a decimal amount, not {type(value).__name__}")
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise InvalidError(f"{field_name} is not a valid amount: {value!r}") from e
    if not amount.is_finite():
        raise InvalidError(f"{field_name} must be finite")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def positive_money(value: Union[Decimal, int, str], field_name: str = "amount") -> Decimal:
    amount = to_money(value, field_name)
    if amount <= ZERO:
        raise InvalidError(f"{field_name} must be positive")
    return amount


def percentage(part: Decimal, whole: Decimal) -> Decimal:
    """Share of whole as a 2-place percentage (0 when whole is 0)"""
    if whole == 0:
        return ZERO
    return (part / whole * 100).quantize(CENT, rounding=ROUND_HALF_UP)
