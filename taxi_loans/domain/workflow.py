"""Application and loan status rules"""

from typing import Optional

from taxi_loans.domain.exceptions import InvalidStatusTransitionError, LoanArithmeticError, LoanNotActiveError
from taxi_loans.domain.models import ApplicationStatus, LoanStatus, LoanTerms, PaymentOutcome

# Statuses staff can pick in a review
REVIEWABLE_STATUSES = frozenset(
    {
        ApplicationStatus.SUBMITTED,
        ApplicationStatus.PENDING,
        ApplicationStatus.APPROVED,
        ApplicationStatus.REJECTED,
    }
)

# Terminal for the review flow
CLOSED_STATUSES = frozenset({ApplicationStatus.FUNDED, ApplicationStatus.CANCELLED})

CANCELLABLE_STATUSES = frozenset({ApplicationStatus.SUBMITTED, ApplicationStatus.PENDING})


def check_review(current: str, target: str) -> ApplicationStatus:
    """Validate a staff review decision and return the target status"""
    target_status = ApplicationStatus(target)
    if target_status not in REVIEWABLE_STATUSES:
        raise InvalidStatusTransitionError(f"Review cannot set status '{target_status.value}'")
    if ApplicationStatus(current) in CLOSED_STATUSES:
        raise InvalidStatusTransitionError(f"Application is already {current}")
    return target_status


def check_cancel(current: str) -> None:
    if ApplicationStatus(current) not in CANCELLABLE_STATUSES:
        raise InvalidStatusTransitionError(f"Cannot cancel an application that is {current}")


def check_fundable(current: str) -> None:
    if ApplicationStatus(current) != ApplicationStatus.APPROVED:
        raise InvalidStatusTransitionError(f"Only approved applications can be funded (status is {current})")


def check_payable(current: str) -> None:
    if LoanStatus(current) != LoanStatus.ACTIVE:
        raise LoanNotActiveError(f"Loan is {current}; payments are only accepted on active loans")


def check_repayable(terms: LoanTerms) -> LoanTerms:
    """
    Reject terms whose weekly installment rounds to zero cents.

    Raises:
        LoanArithmeticError: total payable is too small to spread over the terms
    """
    if terms.installment_minor <= 0:
        raise LoanArithmeticError(
            f"Amount too small: total payable {terms.total_payable} rounds to a zero weekly installment"
        )
    return terms


def status_after_payment(outcome: PaymentOutcome) -> LoanStatus:
    """A loan completes exactly when its balance reaches zero"""
    return LoanStatus.COMPLETED if outcome.is_paid_off else LoanStatus.ACTIVE


def is_finished_label(label: Optional[str]) -> bool:
    """Spreadsheet status labels such as 'Finished' or 'finish'"""
    return bool(label) and "finish" in label.lower()
