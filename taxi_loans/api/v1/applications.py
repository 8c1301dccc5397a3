"""Loan application endpoints - submission, staff review, cancellation, funding"""

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from taxi_loans.api.dependencies import get_request_id, parse_uuid
from taxi_loans.api.v1.loans import build_loan_detail
from taxi_loans.api.v1.schemas import (
    ApplicationRequest,
    ApplicationResponse,
    FundRequest,
    LoanDetailResponse,
    ReviewRequest,
)
from taxi_loans.config import settings
from taxi_loans.domain.arithmetic import compute_loan_terms
from taxi_loans.domain.exceptions import (
    ApplicationNotFoundError,
    DuplicateRecordError,
    InvalidStatusTransitionError,
    LoanArithmeticError,
)
from taxi_loans.domain.models import ApplicationStatus
from taxi_loans.domain.money import from_minor, to_decimal
from taxi_loans.domain.workflow import check_cancel, check_fundable, check_repayable, check_review
from taxi_loans.infrastructure.database.repositories import (
    ApplicationRepository,
    LoanRepository,
    ProfileRepository,
)
from taxi_loans.infrastructure.database.session import get_db
from taxi_loans.infrastructure.observability.logging import log_funding
from taxi_loans.infrastructure.observability.metrics import (
    application_review_counter,
    applications_submitted_counter,
    record_funding,
)
from taxi_loans.utils.date_utils import loan_end_date, next_due_date

router = APIRouter()


def _load_for_update(db: Session, application_id: uuid.UUID):
    application = ApplicationRepository(db).get(application_id, for_update=True)
    if not application:
        raise ApplicationNotFoundError(f"Application {application_id} not found")
    return application


@router.post("/applications", response_model=ApplicationResponse, status_code=201)
def submit_application(
    request_body: ApplicationRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Submit a loan application.

    Flow:
    1. Create or update the applicant's profile
    2. Preview the weekly installment at the default rate
    3. Persist the application as 'submitted'
    """
    request_id = get_request_id(request)
    rate = to_decimal(settings.default_interest_rate_percent).quantize(Decimal("0.01"))

    try:
        applicant = request_body.applicant
        profile = ProfileRepository(db).upsert(
            request_body.user_id,
            applicant.email,
            full_name=applicant.full_name,
            phone_number=applicant.phone_number,
            address=applicant.address,
            bank_account=applicant.bank_account,
            taxi_company=applicant.taxi_company,
            vehicle_number_plate=applicant.vehicle_number_plate,
        )

        preview = compute_loan_terms(from_minor(request_body.requested_cents), rate, request_body.terms_weeks)

        application = ApplicationRepository(db).create(
            user_id=profile.id,
            requested_cents=request_body.requested_cents,
            terms_weeks=request_body.terms_weeks,
            interest_rate_percent=rate,
            weekly_payment_cents=preview.installment_minor,
            **request_body.documents.model_dump(),
        )
        db.commit()
        db.refresh(application)

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error submitting application: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    applications_submitted_counter.inc()
    logging.info(
        "Application submitted",
        extra={"request_id": request_id, "application_id": str(application.id), "step": "application_submitted"},
    )
    return ApplicationResponse.model_validate(application)


@router.get("/applications", response_model=List[ApplicationResponse])
def list_applications(
    status: Optional[ApplicationStatus] = Query(default=None, description="Filter by application status"),
    limit: int = Query(default=settings.history_limit, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    """Staff view of applications, newest first"""
    applications = ApplicationRepository(db).list(status=status.value if status else None, limit=limit)
    return [ApplicationResponse.model_validate(a) for a in applications]


@router.get("/applications/{application_id}", response_model=ApplicationResponse)
def get_application(application_id: str, db: Session = Depends(get_db)):
    application = ApplicationRepository(db).get(parse_uuid(application_id, "application"))
    if not application:
        raise HTTPException(status_code=404, detail="Application not found")
    return ApplicationResponse.model_validate(application)


@router.post("/applications/{application_id}/review", response_model=ApplicationResponse)
def review_application(
    application_id: str,
    request_body: ReviewRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Record a staff review decision.

    Only the field matching the chosen status is kept: the approved amount
    (defaulting to the requested amount), the rejection reason, or the pending
    notes. The others are cleared.
    """
    request_id = get_request_id(request)
    application_uuid = parse_uuid(application_id, "application")

    try:
        application = _load_for_update(db, application_uuid)
        target = check_review(application.status, request_body.status)

        approved_cents = None
        if target == ApplicationStatus.APPROVED:
            approved_cents = request_body.approved_cents or application.requested_cents
            check_repayable(
                compute_loan_terms(from_minor(approved_cents), application.interest_rate_percent, application.terms_weeks)
            )

        application.status = target.value
        application.approved_cents = approved_cents
        application.rejection_reason = request_body.rejection_reason if target == ApplicationStatus.REJECTED else None
        application.pending_notes = request_body.pending_notes if target == ApplicationStatus.PENDING else None
        application.reviewed_by = request_body.reviewed_by
        application.reviewed_at = datetime.now(timezone.utc)

        db.commit()
        db.refresh(application)

    except ApplicationNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except InvalidStatusTransitionError as e:
        db.rollback()
        logging.warning(f"Review rejected: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail=str(e))

    except LoanArithmeticError as e:
        db.rollback()
        logging.warning(f"Review rejected: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error reviewing application: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    application_review_counter.labels(status=target.value).inc()
    return ApplicationResponse.model_validate(application)


@router.post("/applications/{application_id}/cancel", response_model=ApplicationResponse)
def cancel_application(application_id: str, request: Request, db: Session = Depends(get_db)):
    """Applicant withdraws a submitted or pending application"""
    request_id = get_request_id(request)
    application_uuid = parse_uuid(application_id, "application")

    try:
        application = _load_for_update(db, application_uuid)
        check_cancel(application.status)
        application.status = ApplicationStatus.CANCELLED.value
        db.commit()
        db.refresh(application)

    except ApplicationNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except InvalidStatusTransitionError as e:
        db.rollback()
        raise HTTPException(status_code=409, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error cancelling application: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return ApplicationResponse.model_validate(application)


@router.post("/applications/{application_id}/fund", response_model=LoanDetailResponse, status_code=201)
def fund_application(
    application_id: str,
    request_body: FundRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Fund an approved application.

    Flow:
    1. Compute total payable and weekly installment from the approved amount
    2. Create the loan with the full balance and all terms outstanding
    3. First payment falls due one week after the start date
    4. Mark the application 'funded'
    """
    request_id = get_request_id(request)
    application_uuid = parse_uuid(application_id, "application")

    try:
        application = _load_for_update(db, application_uuid)
        check_fundable(application.status)

        loan_repo = LoanRepository(db)
        if loan_repo.get_by_application(application.id):
            raise DuplicateRecordError(f"Application {application_id} is already funded")

        principal_cents = application.approved_cents or application.requested_cents
        terms = check_repayable(
            compute_loan_terms(
                from_minor(principal_cents),
                application.interest_rate_percent,
                application.terms_weeks,
            )
        )

        interval = settings.payment_interval_days
        loan = loan_repo.create_from_terms(
            application=application,
            terms=terms,
            start_date=request_body.start_date,
            next_payment_date=next_due_date(request_body.start_date, interval),
            end_date=loan_end_date(request_body.start_date, application.terms_weeks, interval),
        )
        application.status = ApplicationStatus.FUNDED.value

        db.commit()
        db.refresh(loan)

    except ApplicationNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except (InvalidStatusTransitionError, DuplicateRecordError) as e:
        db.rollback()
        logging.warning(f"Funding rejected: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail=str(e))

    except LoanArithmeticError as e:
        db.rollback()
        logging.warning(f"Funding rejected: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error funding application: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    record_funding(loan.principal_cents)
    log_funding(request_id, str(loan.id), loan.principal_cents, loan.total_cents, loan.weekly_payment_cents)
    return build_loan_detail(loan)
