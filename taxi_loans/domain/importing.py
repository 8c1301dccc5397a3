"""Reconstruct historical loan state for bulk import"""

from decimal import Decimal, ROUND_HALF_UP
from typing import List

from taxi_loans.domain.arithmetic import replay_payments
from taxi_loans.domain.exceptions import ImportDataError
from taxi_loans.domain.models import ImportedLoan, ImportedLoanPlan, LoanStatus
from taxi_loans.domain.money import divide_half_up, from_minor
from taxi_loans.domain.workflow import is_finished_label
from taxi_loans.utils.date_utils import next_due_date


def derive_interest_rate(principal_cents: int, interest_cents: int) -> Decimal:
    """Flat rate in percent implied by a sheet's interest column, to 2 places"""
    if principal_cents <= 0 or interest_cents <= 0:
        return Decimal("0.00")
    rate = Decimal(interest_cents) * 100 / Decimal(principal_cents)
    return rate.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def plan_imported_loan(loan: ImportedLoan, interval_days: int = 7) -> ImportedLoanPlan:
    """
    Replay a loan's payment history so it ends in the same state the funding
    and payment endpoints would have produced.

    Requirements:
    - Payments applied oldest first through apply_payment
    - Missing total falls back to principal + interest
    - Missing weekly amount falls back to round(total / terms)
    - Replayed balance and status win over the sheet's own columns;
      disagreements are reported as warnings

    Raises:
        ImportDataError: non-positive principal or terms, or a zero weekly installment
    """
    if loan.principal_cents <= 0:
        raise ImportDataError(f"{loan.loan_no}: amount must be positive")
    if loan.terms_weeks <= 0:
        raise ImportDataError(f"{loan.loan_no}: terms must be positive")

    total_cents = loan.total_cents if loan.total_cents > 0 else loan.principal_cents + loan.interest_cents
    weekly_cents = (
        loan.weekly_payment_cents
        if loan.weekly_payment_cents > 0
        else divide_half_up(total_cents, loan.terms_weeks)
    )
    if weekly_cents <= 0:
        raise ImportDataError(f"{loan.loan_no}: total {from_minor(total_cents)} is too small for {loan.terms_weeks} weekly payments")

    payments = sorted(loan.payments, key=lambda p: p.payment_date)
    outcomes = replay_payments(total_cents, weekly_cents, [p.amount_cents for p in payments])

    if outcomes:
        remaining = outcomes[-1].balance_after_minor
        terms_remaining = outcomes[-1].terms_remaining
        next_payment_date = next_due_date(payments[-1].payment_date, interval_days)
    else:
        remaining = total_cents
        terms_remaining = loan.terms_weeks
        next_payment_date = loan.first_repayment_date or (
            next_due_date(loan.start_date, interval_days) if loan.start_date else None
        )

    status = LoanStatus.COMPLETED if remaining == 0 else LoanStatus.ACTIVE

    warnings: List[str] = []
    if is_finished_label(loan.status_label) and status != LoanStatus.COMPLETED:
        warnings.append(
            f"{loan.loan_no}: sheet marks loan finished but {from_minor(remaining)} remains after replay"
        )
    if loan.remaining_cents is not None and loan.remaining_cents != remaining:
        warnings.append(
            f"{loan.loan_no}: sheet remaining {from_minor(loan.remaining_cents)} "
            f"differs from replayed {from_minor(remaining)}"
        )
    absorbed = sum(o.overpayment_minor for o in outcomes)
    if absorbed:
        warnings.append(f"{loan.loan_no}: {from_minor(absorbed)} paid beyond the balance was absorbed")

    return ImportedLoanPlan(
        loan=loan,
        total_cents=total_cents,
        interest_rate_percent=derive_interest_rate(loan.principal_cents, loan.interest_cents),
        weekly_payment_cents=weekly_cents,
        payments=payments,
        outcomes=outcomes,
        remaining_balance_cents=remaining,
        terms_remaining=terms_remaining,
        status=status,
        next_payment_date=next_payment_date,
        warnings=warnings,
    )
