"""POST /v1/quote - Loan preview for the application form"""

from decimal import Decimal
from fastapi import APIRouter

from taxi_loans.api.v1.schemas import QuoteRequest, QuoteResponse
from taxi_loans.config import settings
from taxi_loans.domain.arithmetic import compute_loan_terms
from taxi_loans.domain.money import from_minor, to_decimal

router = APIRouter()


@router.post("/quote", response_model=QuoteResponse)
def quote_loan(request_body: QuoteRequest):
    """
    Preview interest, total payable and weekly installment at the default rate.

    Nothing is persisted.
    """
    rate = to_decimal(settings.default_interest_rate_percent).quantize(Decimal("0.01"))
    terms = compute_loan_terms(from_minor(request_body.amount_cents), rate, request_body.terms_weeks)

    return QuoteResponse(
        principal_cents=terms.principal_minor,
        interest_rate_percent=rate,
        interest_cents=terms.interest_minor,
        total_cents=terms.total_minor,
        weekly_payment_cents=terms.installment_minor,
        terms_weeks=request_body.terms_weeks,
    )
