"""Loan endpoints - listing, detail with projected schedule, payment recording"""

import logging
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from taxi_loans.api.dependencies import get_request_id, parse_uuid
from taxi_loans.api.v1.schemas import (
    LoanDetailResponse,
    LoanResponse,
    PaymentRequest,
    PaymentResponse,
    PaymentResultResponse,
    ScheduledInstallmentSchema,
)
from taxi_loans.config import settings
from taxi_loans.domain.arithmetic import apply_payment
from taxi_loans.domain.exceptions import LoanArithmeticError, LoanNotActiveError, LoanNotFoundError
from taxi_loans.domain.models import LoanStatus
from taxi_loans.domain.schedule import generate_repayment_schedule
from taxi_loans.domain.workflow import check_payable, status_after_payment
from taxi_loans.infrastructure.database.models import Loan
from taxi_loans.infrastructure.database.repositories import LoanRepository, PaymentRepository
from taxi_loans.infrastructure.database.session import get_db
from taxi_loans.infrastructure.observability.logging import log_payment
from taxi_loans.infrastructure.observability.metrics import record_payment
from taxi_loans.utils.date_utils import next_due_date

router = APIRouter()


def build_loan_detail(loan: Loan) -> LoanDetailResponse:
    """Loan response with the remaining balance laid out week by week"""
    schedule = generate_repayment_schedule(
        balance_cents=loan.remaining_balance_cents,
        installment_cents=loan.weekly_payment_cents,
        first_due_date=loan.next_payment_date or date.today(),
        interval_days=settings.payment_interval_days,
    )
    return LoanDetailResponse(
        **LoanResponse.model_validate(loan).model_dump(),
        schedule=[ScheduledInstallmentSchema.model_validate(item) for item in schedule],
    )


@router.get("/loans", response_model=List[LoanResponse])
def list_loans(
    status: Optional[LoanStatus] = Query(default=None, description="Filter by loan status"),
    limit: int = Query(default=settings.history_limit, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    """Staff view of loans, newest first"""
    loans = LoanRepository(db).list(status=status.value if status else None, limit=limit)
    return [LoanResponse.model_validate(loan) for loan in loans]


@router.get("/loans/{loan_id}", response_model=LoanDetailResponse)
def get_loan(loan_id: str, db: Session = Depends(get_db)):
    """
    Retrieve a loan with its projected repayment schedule.

    Returns:
        Loan state plus one row per remaining weekly payment
    """
    loan = LoanRepository(db).get(parse_uuid(loan_id, "loan"))
    if not loan:
        raise HTTPException(status_code=404, detail="Loan not found")
    return build_loan_detail(loan)


@router.get("/loans/{loan_id}/payments", response_model=List[PaymentResponse])
def list_loan_payments(loan_id: str, db: Session = Depends(get_db)):
    """Payment history for one loan, newest first"""
    loan_uuid = parse_uuid(loan_id, "loan")
    if not LoanRepository(db).get(loan_uuid):
        raise HTTPException(status_code=404, detail="Loan not found")
    return [PaymentResponse.model_validate(p) for p in PaymentRepository(db).list_for_loan(loan_uuid)]


@router.post("/loans/{loan_id}/payments", response_model=PaymentResultResponse, status_code=201)
def record_loan_payment(
    loan_id: str,
    request_body: PaymentRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Record a repayment against an active loan.

    Flow:
    1. Lock the loan row for the rest of the transaction
    2. Apply the payment to the current balance (never below zero)
    3. Persist the payment with its before/after balances
    4. Update balance, terms remaining, next due date and status
    5. Complete the loan when the balance reaches zero
    """
    request_id = get_request_id(request)
    loan_uuid = parse_uuid(loan_id, "loan")

    try:
        loan_repo = LoanRepository(db)
        loan = loan_repo.get(loan_uuid, for_update=True)
        if not loan:
            raise LoanNotFoundError(f"Loan {loan_id} not found")
        check_payable(loan.status)

        outcome = apply_payment(
            loan.remaining_balance_cents,
            loan.weekly_payment_cents,
            request_body.amount_cents,
        )

        payment = PaymentRepository(db).create(
            loan=loan,
            amount_cents=request_body.amount_cents,
            outcome=outcome,
            payment_date=request_body.payment_date,
            notes=request_body.notes,
            paid_by=request_body.paid_by,
            recorded_by=request_body.recorded_by,
        )
        loan_repo.apply_outcome(
            loan,
            outcome,
            status_after_payment(outcome),
            next_due_date(request_body.payment_date, settings.payment_interval_days),
        )

        db.commit()
        db.refresh(payment)
        db.refresh(loan)

    except LoanNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except LoanNotActiveError as e:
        db.rollback()
        logging.warning(f"Payment rejected: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail=str(e))

    except LoanArithmeticError as e:
        db.rollback()
        logging.warning(f"Payment rejected: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error recording payment: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    record_payment(outcome.is_paid_off, outcome.overpayment_minor)
    log_payment(
        request_id,
        str(loan.id),
        request_body.amount_cents,
        outcome.balance_after_minor,
        outcome.terms_remaining,
        outcome.overpayment_minor,
    )

    return PaymentResultResponse(
        payment=PaymentResponse.model_validate(payment),
        loan=LoanResponse.model_validate(loan),
        is_paid_off=outcome.is_paid_off,
    )
