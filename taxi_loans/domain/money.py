"""Conversions between currency units and integer minor units (cents)"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

from taxi_loans.domain.exceptions import LoanArithmeticError

MINOR_PER_UNIT = 100
CENT = Decimal("0.01")

Amount = Union[Decimal, int, float, str]


def to_decimal(value: Amount) -> Decimal:
    """Coerce to Decimal via str so floats keep their printed value (0.1 -> 0.1)"""
    if isinstance(value, bool):
        raise LoanArithmeticError(f"Expected a numeric amount, got {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except ArithmeticError as e:
            raise LoanArithmeticError(f"Not a numeric amount: {value!r}") from e
    if not result.is_finite():
        raise LoanArithmeticError(f"Amount must be finite, got {value!r}")
    return result


def to_minor(value: Amount) -> int:
    """Convert a currency amount to cents, rounding half-up"""
    return int((to_decimal(value) * MINOR_PER_UNIT).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor(minor: int) -> Decimal:
    """Convert cents to a 2-place Decimal"""
    return (Decimal(minor) / MINOR_PER_UNIT).quantize(CENT, rounding=ROUND_HALF_UP)


def divide_half_up(numerator: int, denominator: int) -> int:
    """Integer division rounded half-up, for non-negative numerator and positive denominator"""
    return (2 * numerator + denominator) // (2 * denominator)


def ceil_divide(numerator: int, denominator: int) -> int:
    """Integer ceiling division, for non-negative numerator and positive denominator"""
    return -(-numerator // denominator)
