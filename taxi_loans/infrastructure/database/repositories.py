"""Data access layer for lending entities"""

import uuid
from datetime import date
from typing import Dict, Iterable, List, Optional
from sqlalchemy import select, delete, insert
from sqlalchemy.orm import Session
from taxi_loans.infrastructure.database.models import Profile, LoanApplication, Loan, Payment
from taxi_loans.domain.models import ApplicationStatus, LoanStatus, LoanTerms, PaymentOutcome


class ProfileRepository:
    """Repository for borrower profiles"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: uuid.UUID) -> Optional[Profile]:
        return self.db.get(Profile, user_id)

    def get_by_email(self, email: str) -> Optional[Profile]:
        return self.db.query(Profile).filter(Profile.email == email).first()

    def upsert(self, user_id: Optional[uuid.UUID], email: str, **fields) -> Profile:
        """Update the profile matching user_id or email, creating it if neither exists"""
        profile = self.get(user_id) if user_id else None
        if profile is None:
            profile = self.get_by_email(email)
        if profile is None:
            profile = Profile(email=email)
            if user_id:
                profile.id = user_id
            self.db.add(profile)

        for name, value in fields.items():
            if value is not None:
                setattr(profile, name, value)

        self.db.flush()
        return profile

    def map_client_numbers(self, client_nos: Optional[Iterable[str]] = None) -> Dict[str, uuid.UUID]:
        """client_no -> profile id, for all imported clients or the given numbers"""
        query = self.db.query(Profile.client_no, Profile.id).filter(Profile.client_no.isnot(None))
        if client_nos is not None:
            query = query.filter(Profile.client_no.in_(list(client_nos)))
        return {client_no: profile_id for client_no, profile_id in query.all()}

    def create_imported(self, client_no: str, email: str, **fields) -> Profile:
        profile = Profile(client_no=client_no, email=email, **fields)
        self.db.add(profile)
        self.db.flush()
        return profile


class ApplicationRepository:
    """Repository for loan applications"""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        user_id: uuid.UUID,
        requested_cents: int,
        terms_weeks: int,
        interest_rate_percent,
        weekly_payment_cents: Optional[int] = None,
        status: ApplicationStatus = ApplicationStatus.SUBMITTED,
        **documents,
    ) -> LoanApplication:
        """Persist a new application without committing"""
        application = LoanApplication(
            user_id=user_id,
            requested_cents=requested_cents,
            terms_weeks=terms_weeks,
            interest_rate_percent=interest_rate_percent,
            weekly_payment_cents=weekly_payment_cents,
            status=status.value,
            **documents,
        )
        self.db.add(application)
        self.db.flush()  # Get ID without committing
        return application

    def get(self, application_id: uuid.UUID, for_update: bool = False) -> Optional[LoanApplication]:
        query = self.db.query(LoanApplication).filter(LoanApplication.id == application_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def list(self, status: Optional[str] = None, limit: int = 100) -> List[LoanApplication]:
        """Most recent applications first"""
        query = self.db.query(LoanApplication)
        if status:
            query = query.filter(LoanApplication.status == status)
        return query.order_by(LoanApplication.created_at.desc()).limit(limit).all()

    def latest_for_user(self, user_id: uuid.UUID) -> Optional[LoanApplication]:
        return (
            self.db.query(LoanApplication)
            .filter(LoanApplication.user_id == user_id)
            .order_by(LoanApplication.created_at.desc())
            .first()
        )


class LoanRepository:
    """Repository for funded loans"""

    def __init__(self, db: Session):
        self.db = db

    def create_from_terms(
        self,
        application: LoanApplication,
        terms: LoanTerms,
        start_date: date,
        next_payment_date: date,
        end_date: date,
    ) -> Loan:
        """Create a fresh loan: balance starts at total payable, all terms outstanding"""
        loan = Loan(
            application_id=application.id,
            user_id=application.user_id,
            principal_cents=terms.principal_minor,
            interest_rate_percent=application.interest_rate_percent,
            interest_cents=terms.interest_minor,
            total_cents=terms.total_minor,
            weekly_payment_cents=terms.installment_minor,
            terms_weeks=application.terms_weeks,
            terms_remaining=application.terms_weeks,
            remaining_balance_cents=terms.total_minor,
            status=LoanStatus.ACTIVE.value,
            start_date=start_date,
            next_payment_date=next_payment_date,
            end_date=end_date,
        )
        self.db.add(loan)
        self.db.flush()
        return loan

    def add(self, loan: Loan) -> Loan:
        self.db.add(loan)
        self.db.flush()
        return loan

    def get(self, loan_id: uuid.UUID, for_update: bool = False) -> Optional[Loan]:
        """Fetch a loan; for_update locks the row until the transaction ends"""
        query = self.db.query(Loan).filter(Loan.id == loan_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def get_by_application(self, application_id: uuid.UUID) -> Optional[Loan]:
        return self.db.query(Loan).filter(Loan.application_id == application_id).first()

    def list(self, status: Optional[str] = None, limit: int = 100) -> List[Loan]:
        query = self.db.query(Loan)
        if status:
            query = query.filter(Loan.status == status)
        return query.order_by(Loan.created_at.desc()).limit(limit).all()

    def existing_loan_numbers(self, loan_nos: Iterable[str]) -> set:
        rows = self.db.query(Loan.loan_no).filter(Loan.loan_no.in_(list(loan_nos))).all()
        return {loan_no for (loan_no,) in rows}

    def apply_outcome(self, loan: Loan, outcome: PaymentOutcome, status: LoanStatus, next_payment_date: date) -> None:
        loan.remaining_balance_cents = outcome.balance_after_minor
        loan.terms_remaining = outcome.terms_remaining
        loan.status = status.value
        loan.next_payment_date = next_payment_date


class PaymentRepository:
    """Repository for recorded payments"""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        loan: Loan,
        amount_cents: int,
        outcome: PaymentOutcome,
        payment_date: date,
        notes: Optional[str] = None,
        paid_by: Optional[str] = None,
        recorded_by: Optional[str] = None,
    ) -> Payment:
        payment = Payment(
            loan_id=loan.id,
            user_id=loan.user_id,
            amount_cents=amount_cents,
            balance_before_cents=outcome.balance_before_minor,
            balance_after_cents=outcome.balance_after_minor,
            payment_date=payment_date,
            notes=notes,
            paid_by=paid_by,
            recorded_by=recorded_by,
        )
        self.db.add(payment)
        self.db.flush()
        return payment

    def bulk_create(self, rows: List[dict]) -> int:
        """Insert many payments at once (rows are Payment column dicts)"""
        if not rows:
            return 0
        self.db.execute(insert(Payment), rows)
        return len(rows)

    def list_for_loan(self, loan_id: uuid.UUID) -> List[Payment]:
        """Newest payments first"""
        return (
            self.db.query(Payment)
            .filter(Payment.loan_id == loan_id)
            .order_by(Payment.payment_date.desc(), Payment.created_at.desc())
            .all()
        )

    def list_recent(self, limit: int = 100) -> List[Payment]:
        return (
            self.db.query(Payment)
            .order_by(Payment.payment_date.desc(), Payment.created_at.desc())
            .limit(limit)
            .all()
        )


class ImportedDataRepository:
    """Removal of records created by bulk import"""

    def __init__(self, db: Session):
        self.db = db

    def purge(self) -> Dict[str, int]:
        """Delete imported loans with their payments and applications, then orphaned imported profiles"""
        imported_loans = select(Loan.id).where(Loan.loan_no.isnot(None), Loan.loan_no != "")
        application_ids = [
            app_id
            for (app_id,) in self.db.query(Loan.application_id)
            .filter(Loan.loan_no.isnot(None), Loan.loan_no != "")
            .all()
        ]

        payments = self.db.execute(
            delete(Payment).where(Payment.loan_id.in_(imported_loans)).execution_options(synchronize_session=False)
        ).rowcount
        loans = self.db.execute(
            delete(Loan).where(Loan.loan_no.isnot(None), Loan.loan_no != "").execution_options(synchronize_session=False)
        ).rowcount
        applications = 0
        if application_ids:
            applications = self.db.execute(
                delete(LoanApplication)
                .where(LoanApplication.id.in_(application_ids))
                .execution_options(synchronize_session=False)
            ).rowcount

        with_applications = select(LoanApplication.user_id)
        profiles = self.db.execute(
            delete(Profile)
            .where(Profile.client_no.isnot(None), Profile.client_no != "", Profile.id.notin_(with_applications))
            .execution_options(synchronize_session=False)
        ).rowcount

        return {"payments": payments, "loans": loans, "applications": applications, "profiles": profiles}
