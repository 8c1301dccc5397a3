"""Pydantic schemas for API request/response validation"""

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator, model_validator
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, List, Literal, Optional
from uuid import UUID

from taxi_loans.config import settings
from taxi_loans.domain.arithmetic import compute_loan_terms
from taxi_loans.domain.models import ApplicationStatus, LoanStatus
from taxi_loans.domain.money import from_minor
from taxi_loans.domain.workflow import check_repayable


def _check_terms(value: int) -> int:
    if value not in settings.allowed_terms_weeks:
        allowed = ", ".join(str(t) for t in settings.allowed_terms_weeks)
        raise ValueError(f"terms_weeks must be one of {allowed}")
    return value


TermsWeeks = Annotated[int, AfterValidator(_check_terms)]


def _check_repayable(amount_cents: int, terms_weeks: int) -> None:
    """Weekly installment at the default rate must be at least one cent"""
    check_repayable(compute_loan_terms(from_minor(amount_cents), settings.default_interest_rate_percent, terms_weeks))


class QuoteRequest(BaseModel):
    """Request body for POST /v1/quote"""

    amount_cents: int = Field(..., gt=0, description="Requested principal in cents")
    terms_weeks: TermsWeeks = Field(..., description="Number of weekly installments")

    @model_validator(mode="after")
    def validate_installment(self) -> "QuoteRequest":
        _check_repayable(self.amount_cents, self.terms_weeks)
        return self


class QuoteResponse(BaseModel):
    """Loan preview shown before applying"""

    principal_cents: int
    interest_rate_percent: Decimal
    interest_cents: int
    total_cents: int
    weekly_payment_cents: int
    terms_weeks: int


class ApplicantDetails(BaseModel):
    """Profile fields captured on the application form"""

    email: str = Field(..., min_length=3, max_length=320)
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    bank_account: Optional[str] = None
    taxi_company: Optional[str] = None
    vehicle_number_plate: Optional[str] = None


class DocumentUrls(BaseModel):
    """Links to documents already stored by the client"""

    driver_license_url: Optional[str] = None
    taxi_front_url: Optional[str] = None
    taxi_back_url: Optional[str] = None
    face_photo_url: Optional[str] = None


class ApplicationRequest(BaseModel):
    """Request body for POST /v1/applications"""

    user_id: Optional[UUID] = Field(default=None, description="Existing profile, if known")
    applicant: ApplicantDetails
    requested_cents: int = Field(..., gt=0, description="Requested principal in cents")
    terms_weeks: TermsWeeks = Field(..., description="Number of weekly installments")
    documents: DocumentUrls = Field(default_factory=DocumentUrls)

    @field_validator("requested_cents")
    @classmethod
    def validate_requested(cls, v: int) -> int:
        if v > settings.max_requested_cents:
            raise ValueError(f"requested_cents cannot exceed {settings.max_requested_cents}")
        return v

    @model_validator(mode="after")
    def validate_installment(self) -> "ApplicationRequest":
        _check_repayable(self.requested_cents, self.terms_weeks)
        return self


class ReviewRequest(BaseModel):
    """Request body for POST /v1/applications/{id}/review"""

    status: Literal["submitted", "pending", "approved", "rejected"]
    reviewed_by: str = Field(..., min_length=1, description="Staff member identifier")
    approved_cents: Optional[int] = Field(default=None, gt=0, description="Defaults to requested amount")
    rejection_reason: Optional[str] = None
    pending_notes: Optional[str] = None


class FundRequest(BaseModel):
    """Request body for POST /v1/applications/{id}/fund"""

    start_date: date


class PaymentRequest(BaseModel):
    """Request body for POST /v1/loans/{id}/payments"""

    amount_cents: int = Field(..., gt=0, description="Payment amount in cents")
    payment_date: date = Field(default_factory=date.today)
    notes: Optional[str] = None
    paid_by: Optional[str] = None
    recorded_by: Optional[str] = None


class ApplicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    status: ApplicationStatus
    requested_cents: int
    approved_cents: Optional[int] = None
    interest_rate_percent: Decimal
    terms_weeks: int
    weekly_payment_cents: Optional[int] = None
    rejection_reason: Optional[str] = None
    pending_notes: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    driver_license_url: Optional[str] = None
    taxi_front_url: Optional[str] = None
    taxi_back_url: Optional[str] = None
    face_photo_url: Optional[str] = None
    created_at: datetime


class ScheduledInstallmentSchema(BaseModel):
    """Single projected payment"""

    model_config = ConfigDict(from_attributes=True)

    number: int
    due_date: date
    amount_cents: int
    balance_after_cents: int


class LoanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    application_id: UUID
    user_id: UUID
    loan_no: Optional[str] = None
    status: LoanStatus
    principal_cents: int
    interest_rate_percent: Decimal
    interest_cents: int
    total_cents: int
    weekly_payment_cents: int
    terms_weeks: int
    terms_remaining: int
    remaining_balance_cents: int
    start_date: Optional[date] = None
    next_payment_date: Optional[date] = None
    end_date: Optional[date] = None
    signed_date: Optional[date] = None
    paid_by: Optional[str] = None
    created_at: datetime


class LoanDetailResponse(LoanResponse):
    """Loan with its projected remaining schedule"""

    schedule: List[ScheduledInstallmentSchema] = []


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    loan_id: UUID
    user_id: UUID
    amount_cents: int
    balance_before_cents: int
    balance_after_cents: int
    payment_date: date
    notes: Optional[str] = None
    paid_by: Optional[str] = None
    recorded_by: Optional[str] = None
    created_at: datetime


class PaymentResultResponse(BaseModel):
    """Response for POST /v1/loans/{id}/payments"""

    payment: PaymentResponse
    loan: LoanResponse
    is_paid_off: bool


class DashboardResponse(BaseModel):
    """Borrower view: latest application, its loan and payment history"""

    user_id: UUID
    application: Optional[ApplicationResponse] = None
    loan: Optional[LoanDetailResponse] = None
    payments: List[PaymentResponse] = []


# Bulk import


class ImportClientRow(BaseModel):
    client_no: str = Field(..., min_length=1)
    full_name: str = ""
    email: Optional[str] = None
    occupation: Optional[str] = None
    id1_type: Optional[str] = None
    id1_number: Optional[str] = None
    id2_type: Optional[str] = None
    id2_number: Optional[str] = None
    address: Optional[str] = None
    phone_number: Optional[str] = None
    vehicle_number_plate: Optional[str] = None
    late_history: Optional[int] = None


class ImportPaymentRow(BaseModel):
    date: str = Field(..., min_length=1, description="Payment column header, ISO or sheet format")
    amount: Decimal = Field(..., gt=0)


class ImportLoanRow(BaseModel):
    loan_no: str = Field(..., min_length=1)
    client_no: str = Field(..., min_length=1)
    client_name: str = ""
    amount: Decimal = Field(..., gt=0)
    interests: Decimal = Field(default=Decimal("0"), ge=0)
    total_amount: Decimal = Field(default=Decimal("0"), ge=0)
    terms_weeks: int = Field(..., gt=0)
    weekly_repay_min: Decimal = Field(default=Decimal("0"), ge=0)
    signed_date: Optional[str] = None
    paid_by: Optional[str] = None
    start_date: Optional[str] = None
    first_repayment_date: Optional[str] = None
    end_date: Optional[str] = None
    status: str = ""
    remain_repay_amount: Optional[Decimal] = None
    payments: List[ImportPaymentRow] = []


class ImportRequest(BaseModel):
    """Request body for POST /v1/import"""

    mode: Literal["clients", "loans", "all"] = "all"
    clients: List[ImportClientRow] = []
    loans: List[ImportLoanRow] = []


class ImportEntityResult(BaseModel):
    success: int = 0
    skipped: int = 0
    errors: List[str] = []


class ImportPaymentResult(BaseModel):
    """Payments are inserted with their loan; a failed batch aborts the whole import"""

    success: int = 0


class ImportResponse(BaseModel):
    clients: ImportEntityResult = Field(default_factory=ImportEntityResult)
    loans: ImportEntityResult = Field(default_factory=ImportEntityResult)
    payments: ImportPaymentResult = Field(default_factory=ImportPaymentResult)
    warnings: List[str] = []


class PurgeResponse(BaseModel):
    """Counts of imported records removed"""

    payments: int
    loans: int
    applications: int
    profiles: int
