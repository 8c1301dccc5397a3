"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional


class ApplicationStatus(str, Enum):
    SUBMITTED = "submitted"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    FUNDED = "funded"
    CANCELLED = "cancelled"


class LoanStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    DEFAULTED = "defaulted"


@dataclass(frozen=True)
class LoanTerms:
    """Derived amounts fixed when a loan is funded"""

    principal_minor: int
    interest_minor: int
    total_minor: int
    installment_minor: int
    total_payable: Decimal
    installment: Decimal


@dataclass(frozen=True)
class PaymentOutcome:
    """Loan state after one payment is applied"""

    balance_before_minor: int
    balance_after_minor: int
    terms_remaining: int
    is_paid_off: bool
    overpayment_minor: int = 0  # Absorbed, never credited


@dataclass
class ScheduledInstallment:
    """Single projected payment in a repayment schedule"""

    number: int
    due_date: date
    amount_cents: int
    balance_after_cents: int


@dataclass
class ImportedPayment:
    """Historical payment row from the loan sheet"""

    payment_date: date
    amount_cents: int


@dataclass
class ImportedLoan:
    """Loan sheet row normalised to cents and dates"""

    loan_no: str
    client_no: str
    client_name: str
    principal_cents: int
    interest_cents: int
    total_cents: int
    terms_weeks: int
    weekly_payment_cents: int
    status_label: str
    remaining_cents: Optional[int] = None
    signed_date: Optional[date] = None
    start_date: Optional[date] = None
    first_repayment_date: Optional[date] = None
    end_date: Optional[date] = None
    paid_by: Optional[str] = None
    payments: List[ImportedPayment] = field(default_factory=list)


@dataclass
class ImportedLoanPlan:
    """Loan state reconstructed by replaying its payment history"""

    loan: ImportedLoan
    total_cents: int
    interest_rate_percent: Decimal
    weekly_payment_cents: int
    payments: List[ImportedPayment]
    outcomes: List[PaymentOutcome]
    remaining_balance_cents: int
    terms_remaining: int
    status: LoanStatus
    next_payment_date: Optional[date]
    warnings: List[str] = field(default_factory=list)
