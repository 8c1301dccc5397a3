"""GET /v1/payments - Staff view of recent payments across all loans"""

from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from taxi_loans.api.v1.schemas import PaymentResponse
from taxi_loans.config import settings
from taxi_loans.infrastructure.database.repositories import PaymentRepository
from taxi_loans.infrastructure.database.session import get_db

router = APIRouter()


@router.get("/payments", response_model=List[PaymentResponse])
def list_payments(
    limit: int = Query(default=settings.history_limit, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    """
    Retrieve recent payments, newest payment date first.

    Returns:
        Payments with the balance before and after each one
    """
    return [PaymentResponse.model_validate(p) for p in PaymentRepository(db).list_recent(limit=limit)]
