"""Loan arithmetic - flat-rate terms and payment application in integer cents"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List

from taxi_loans.domain.exceptions import LoanArithmeticError
from taxi_loans.domain.models import LoanTerms, PaymentOutcome
from taxi_loans.domain.money import Amount, to_decimal, to_minor, from_minor, divide_half_up, ceil_divide


def compute_loan_terms(principal: Amount, annual_rate_percent: Amount, term_count: int) -> LoanTerms:
    """
    Derive total payable and weekly installment for a flat-rate loan.

    Interest is charged once on the principal, not compounded. Every step runs
    on integer cents and rounds half-up:

        principal_minor   = round(principal * 100)
        interest_minor    = round(principal_minor * rate / 100)
        total_minor       = principal_minor + interest_minor
        installment_minor = round(total_minor / term_count)

    The remainder of total_minor / term_count is not spread across periods;
    the final payment is whatever balance is left.

    Example:
        1000.00 at 40% over 12 weeks -> total 1400.00, installment 116.67

    Raises:
        LoanArithmeticError: principal <= 0, rate < 0 or term_count < 1
    """
    if isinstance(term_count, bool) or not isinstance(term_count, int):
        raise LoanArithmeticError(f"term_count must be an integer, got {term_count!r}")
    if term_count < 1:
        raise LoanArithmeticError(f"term_count must be positive, got {term_count}")

    rate = to_decimal(annual_rate_percent)
    if rate < 0:
        raise LoanArithmeticError(f"annual_rate_percent must be non-negative, got {rate}")

    principal_minor = to_minor(principal)
    if principal_minor <= 0:
        raise LoanArithmeticError(f"principal must be positive, got {principal}")

    interest_minor = int((principal_minor * rate / 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    total_minor = principal_minor + interest_minor
    installment_minor = divide_half_up(total_minor, term_count)

    return LoanTerms(
        principal_minor=principal_minor,
        interest_minor=interest_minor,
        total_minor=total_minor,
        installment_minor=installment_minor,
        total_payable=from_minor(total_minor),
        installment=from_minor(installment_minor),
    )


def apply_payment(balance_before_minor: int, installment_minor: int, payment_amount_minor: int) -> PaymentOutcome:
    """
    Apply one payment to an outstanding balance.

    The balance never goes below zero; any amount beyond it is absorbed rather
    than held as credit. Terms remaining are recomputed from the new balance
    (ceil(balance / installment)), so a large payment can clear several terms.

    Raises:
        LoanArithmeticError: negative balance, non-positive installment or payment
    """
    if balance_before_minor < 0:
        raise LoanArithmeticError(f"balance_before_minor must be non-negative, got {balance_before_minor}")
    if installment_minor <= 0:
        raise LoanArithmeticError(f"installment_minor must be positive, got {installment_minor}")
    if payment_amount_minor <= 0:
        raise LoanArithmeticError(f"payment_amount_minor must be positive, got {payment_amount_minor}")

    balance_after_minor = max(0, balance_before_minor - payment_amount_minor)
    terms_remaining = 0 if balance_after_minor == 0 else ceil_divide(balance_after_minor, installment_minor)

    return PaymentOutcome(
        balance_before_minor=balance_before_minor,
        balance_after_minor=balance_after_minor,
        terms_remaining=terms_remaining,
        is_paid_off=balance_after_minor == 0,
        overpayment_minor=max(0, payment_amount_minor - balance_before_minor),
    )


def replay_payments(total_minor: int, installment_minor: int, amounts: Iterable[int]) -> List[PaymentOutcome]:
    """Fold apply_payment over payments in chronological order, one outcome per payment"""
    outcomes: List[PaymentOutcome] = []
    balance = total_minor
    for amount in amounts:
        outcome = apply_payment(balance, installment_minor, amount)
        outcomes.append(outcome)
        balance = outcome.balance_after_minor
    return outcomes
