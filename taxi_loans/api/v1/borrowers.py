"""GET /v1/borrowers/{user_id}/dashboard - Borrower's own loan view"""

import uuid
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from taxi_loans.api.dependencies import parse_uuid
from taxi_loans.api.v1.loans import build_loan_detail
from taxi_loans.api.v1.schemas import ApplicationResponse, DashboardResponse, PaymentResponse
from taxi_loans.domain.exceptions import ProfileNotFoundError
from taxi_loans.domain.models import ApplicationStatus
from taxi_loans.infrastructure.database.repositories import (
    ApplicationRepository,
    LoanRepository,
    PaymentRepository,
    ProfileRepository,
)
from taxi_loans.infrastructure.database.session import get_db

router = APIRouter()


def load_dashboard(db: Session, user_id: uuid.UUID) -> DashboardResponse:
    """
    Latest application for a borrower and, once funded, its loan and payments.

    Raises:
        ProfileNotFoundError: no profile with this id
    """
    if not ProfileRepository(db).get(user_id):
        raise ProfileNotFoundError(f"Borrower {user_id} not found")

    application = ApplicationRepository(db).latest_for_user(user_id)
    if not application:
        return DashboardResponse(user_id=user_id)

    dashboard = DashboardResponse(user_id=user_id, application=ApplicationResponse.model_validate(application))

    if application.status == ApplicationStatus.FUNDED.value:
        loan = LoanRepository(db).get_by_application(application.id)
        if loan:
            dashboard.loan = build_loan_detail(loan)
            dashboard.payments = [PaymentResponse.model_validate(p) for p in PaymentRepository(db).list_for_loan(loan.id)]

    return dashboard


@router.get("/borrowers/{user_id}/dashboard", response_model=DashboardResponse)
def get_dashboard(user_id: str, db: Session = Depends(get_db)):
    """
    Borrower dashboard.

    Returns:
        Application status, loan with projected schedule, payment history
    """
    try:
        return load_dashboard(db, parse_uuid(user_id, "user"))
    except ProfileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
