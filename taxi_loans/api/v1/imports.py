"""POST/DELETE /v1/import - Bulk import of historical clients, loans and payments"""

import logging
from typing import Dict, List
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from taxi_loans.api.dependencies import get_request_id
from taxi_loans.api.v1.schemas import (
    ImportClientRow,
    ImportLoanRow,
    ImportRequest,
    ImportResponse,
    PurgeResponse,
)
from taxi_loans.config import settings
from taxi_loans.domain.exceptions import ImportDataError, LoanArithmeticError
from taxi_loans.domain.importing import plan_imported_loan
from taxi_loans.domain.models import ApplicationStatus, ImportedLoan, ImportedLoanPlan, ImportedPayment
from taxi_loans.domain.money import to_minor
from taxi_loans.infrastructure.database.models import Loan
from taxi_loans.infrastructure.database.repositories import (
    ApplicationRepository,
    ImportedDataRepository,
    LoanRepository,
    PaymentRepository,
    ProfileRepository,
)
from taxi_loans.infrastructure.database.session import get_db
from taxi_loans.infrastructure.observability.metrics import record_import
from taxi_loans.utils.date_utils import parse_sheet_date

router = APIRouter()


def to_imported_loan(row: ImportLoanRow) -> ImportedLoan:
    """
    Normalise a loan sheet row to cents and dates.

    Raises:
        ImportDataError: a date cell or payment header cannot be parsed
    """
    fmt = settings.import_date_format

    def parse(value, label):
        try:
            return parse_sheet_date(value, fmt)
        except ValueError as e:
            raise ImportDataError(f"{row.loan_no}: invalid {label} '{value}'") from e

    payments = [
        ImportedPayment(payment_date=parse(p.date, "payment date"), amount_cents=to_minor(p.amount))
        for p in row.payments
    ]

    return ImportedLoan(
        loan_no=row.loan_no,
        client_no=row.client_no,
        client_name=row.client_name,
        principal_cents=to_minor(row.amount),
        interest_cents=to_minor(row.interests),
        total_cents=to_minor(row.total_amount),
        terms_weeks=row.terms_weeks,
        weekly_payment_cents=to_minor(row.weekly_repay_min),
        status_label=row.status,
        remaining_cents=to_minor(row.remain_repay_amount) if row.remain_repay_amount is not None else None,
        signed_date=parse(row.signed_date, "signed date"),
        start_date=parse(row.start_date, "start date"),
        first_repayment_date=parse(row.first_repayment_date, "first repayment date"),
        end_date=parse(row.end_date, "end date"),
        paid_by=row.paid_by or None,
        payments=payments,
    )


def _import_clients(db: Session, rows: List[ImportClientRow], client_map: Dict[str, UUID], results: ImportResponse) -> None:
    profile_repo = ProfileRepository(db)
    existing = profile_repo.map_client_numbers(row.client_no for row in rows)
    client_map.update(existing)

    seen_emails = set()
    for row in rows:
        if row.client_no in client_map:
            results.clients.skipped += 1
            continue

        email = row.email or f"client{row.client_no}@{settings.placeholder_email_domain}"
        if email in seen_emails or profile_repo.get_by_email(email):
            results.clients.errors.append(f"{row.client_no} - {row.full_name}: email {email} already in use")
            continue
        seen_emails.add(email)

        profile = profile_repo.create_imported(
            client_no=row.client_no,
            email=email,
            full_name=row.full_name or None,
            occupation=row.occupation,
            id1_type=row.id1_type,
            id1_number=row.id1_number,
            id2_type=row.id2_type,
            id2_number=row.id2_number,
            address=row.address,
            phone_number=row.phone_number,
            vehicle_number_plate=row.vehicle_number_plate,
            late_history=row.late_history,
        )
        client_map[row.client_no] = profile.id
        results.clients.success += 1


def _persist_loan(db: Session, plan: ImportedLoanPlan, user_id: UUID) -> Loan:
    """Create the funded application and loan for one replayed sheet row"""
    source = plan.loan
    application = ApplicationRepository(db).create(
        user_id=user_id,
        requested_cents=source.principal_cents,
        terms_weeks=source.terms_weeks,
        interest_rate_percent=plan.interest_rate_percent,
        weekly_payment_cents=plan.weekly_payment_cents,
        status=ApplicationStatus.FUNDED,
    )
    application.approved_cents = source.principal_cents
    return LoanRepository(db).add(
        Loan(
            application_id=application.id,
            user_id=user_id,
            loan_no=source.loan_no,
            principal_cents=source.principal_cents,
            interest_rate_percent=plan.interest_rate_percent,
            interest_cents=plan.total_cents - source.principal_cents,
            total_cents=plan.total_cents,
            weekly_payment_cents=plan.weekly_payment_cents,
            terms_weeks=source.terms_weeks,
            terms_remaining=plan.terms_remaining,
            remaining_balance_cents=plan.remaining_balance_cents,
            status=plan.status.value,
            signed_date=source.signed_date,
            paid_by=source.paid_by,
            start_date=source.start_date,
            next_payment_date=plan.next_payment_date,
            end_date=source.end_date,
        )
    )


def _import_loans(db: Session, rows: List[ImportLoanRow], client_map: Dict[str, UUID], results: ImportResponse) -> List[dict]:
    """Create loans for new loan numbers; returns payment rows to insert"""
    client_map.update(ProfileRepository(db).map_client_numbers(row.client_no for row in rows))
    existing = LoanRepository(db).existing_loan_numbers(row.loan_no for row in rows)

    payment_rows: List[dict] = []
    seen = set()
    for row in rows:
        if row.loan_no in existing or row.loan_no in seen:
            results.loans.skipped += 1
            continue
        seen.add(row.loan_no)

        user_id = client_map.get(row.client_no)
        if not user_id:
            results.loans.errors.append(f"{row.loan_no} - {row.client_name}: Client {row.client_no} not found")
            continue

        try:
            plan = plan_imported_loan(to_imported_loan(row), settings.payment_interval_days)
        except (ImportDataError, LoanArithmeticError) as e:
            results.loans.errors.append(f"{row.loan_no} - {row.client_name}: {e}")
            continue

        loan = _persist_loan(db, plan, user_id)
        results.loans.success += 1
        results.warnings.extend(plan.warnings)

        for payment, outcome in zip(plan.payments, plan.outcomes):
            payment_rows.append(
                {
                    "loan_id": loan.id,
                    "user_id": user_id,
                    "amount_cents": payment.amount_cents,
                    "balance_before_cents": outcome.balance_before_minor,
                    "balance_after_cents": outcome.balance_after_minor,
                    "payment_date": payment.payment_date,
                }
            )

    return payment_rows


@router.post("/import", response_model=ImportResponse)
def import_data(request_body: ImportRequest, request: Request, db: Session = Depends(get_db)):
    """
    Import historical clients and loans.

    Flow:
    1. Create profiles for client numbers not seen before
    2. For each new loan number, replay its payments oldest first
    3. Persist a funded application, the loan, and its payments in batches
    4. Commit everything in one transaction

    Existing client and loan numbers are skipped. Rows that fail validation
    are reported in the response and do not abort the import.
    """
    request_id = get_request_id(request)
    results = ImportResponse()
    client_map: Dict[str, UUID] = {}
    mode = request_body.mode

    logging.info(
        "Import started",
        extra={
            "request_id": request_id,
            "mode": mode,
            "clients": len(request_body.clients),
            "loans": len(request_body.loans),
        },
    )

    try:
        if mode in ("clients", "all"):
            _import_clients(db, request_body.clients, client_map, results)

        if mode in ("loans", "all"):
            payment_rows = _import_loans(db, request_body.loans, client_map, results)

            payment_repo = PaymentRepository(db)
            batch_size = settings.import_payment_batch_size
            for start in range(0, len(payment_rows), batch_size):
                results.payments.success += payment_repo.bulk_create(payment_rows[start:start + batch_size])

        db.commit()

    except Exception as e:
        db.rollback()
        logging.error(f"Import failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Import failed; no records were saved")

    record_import("clients", results.clients.success, results.clients.skipped, len(results.clients.errors))
    record_import("loans", results.loans.success, results.loans.skipped, len(results.loans.errors))
    record_import("payments", results.payments.success, 0, 0)

    for warning in results.warnings:
        logging.warning(warning, extra={"request_id": request_id, "step": "import_reconcile"})
    logging.info(
        "Import completed",
        extra={
            "request_id": request_id,
            "clients_imported": results.clients.success,
            "clients_skipped": results.clients.skipped,
            "loans_imported": results.loans.success,
            "loans_skipped": results.loans.skipped,
            "payments_imported": results.payments.success,
            "errors": len(results.clients.errors) + len(results.loans.errors),
        },
    )
    return results


@router.delete("/import", response_model=PurgeResponse)
def purge_imported_data(request: Request, db: Session = Depends(get_db)):
    """Remove everything created by bulk import"""
    request_id = get_request_id(request)

    try:
        counts = ImportedDataRepository(db).purge()
        db.commit()
    except Exception as e:
        db.rollback()
        logging.error(f"Purge failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    logging.info("Imported data purged", extra={"request_id": request_id, **counts})
    return PurgeResponse(**counts)
