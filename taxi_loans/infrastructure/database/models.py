"""SQLAlchemy ORM models for borrowers, applications, loans and payments"""

import uuid
from sqlalchemy import (
    Column,
    String,
    BigInteger,
    Integer,
    Numeric,
    DateTime,
    Date,
    ForeignKey,
    Text,
    Uuid,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class Profile(Base):
    """Borrower profile, created on first application or by import"""

    __tablename__ = "profile"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(320), nullable=False, unique=True)
    full_name = Column(Text, nullable=True)
    phone_number = Column(Text, nullable=True)
    address = Column(Text, nullable=True)
    bank_account = Column(Text, nullable=True)
    taxi_company = Column(Text, nullable=True)
    vehicle_number_plate = Column(Text, nullable=True)
    occupation = Column(Text, nullable=True)
    id1_type = Column(Text, nullable=True)
    id1_number = Column(Text, nullable=True)
    id2_type = Column(Text, nullable=True)
    id2_number = Column(Text, nullable=True)
    late_history = Column(Integer, nullable=True)
    client_no = Column(String(64), nullable=True, unique=True)  # Set for imported clients
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    applications = relationship("LoanApplication", back_populates="profile")


class LoanApplication(Base):
    """Loan request moving through staff review"""

    __tablename__ = "loan_application"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("profile.id", ondelete="CASCADE"), nullable=False, index=True)
    requested_cents = Column(BigInteger, nullable=False)
    approved_cents = Column(BigInteger, nullable=True)
    interest_rate_percent = Column(Numeric(7, 2), nullable=False)
    terms_weeks = Column(Integer, nullable=False)
    weekly_payment_cents = Column(BigInteger, nullable=True)  # Preview shown to the applicant
    status = Column(Text, nullable=False, default="submitted", index=True)
    rejection_reason = Column(Text, nullable=True)
    pending_notes = Column(Text, nullable=True)
    reviewed_by = Column(Text, nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    driver_license_url = Column(Text, nullable=True)
    taxi_front_url = Column(Text, nullable=True)
    taxi_back_url = Column(Text, nullable=True)
    face_photo_url = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    profile = relationship("Profile", back_populates="applications")
    loan = relationship("Loan", back_populates="application", uselist=False)


class Loan(Base):
    """Funded loan; amounts fixed at funding, balance updated per payment"""

    __tablename__ = "loan"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    application_id = Column(
        Uuid(as_uuid=True), ForeignKey("loan_application.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    user_id = Column(Uuid(as_uuid=True), ForeignKey("profile.id", ondelete="CASCADE"), nullable=False, index=True)
    loan_no = Column(String(64), nullable=True, unique=True)  # Set for imported loans
    principal_cents = Column(BigInteger, nullable=False)
    interest_rate_percent = Column(Numeric(7, 2), nullable=False)
    interest_cents = Column(BigInteger, nullable=False)
    total_cents = Column(BigInteger, nullable=False)
    weekly_payment_cents = Column(BigInteger, nullable=False)
    terms_weeks = Column(Integer, nullable=False)
    terms_remaining = Column(Integer, nullable=False)
    remaining_balance_cents = Column(BigInteger, nullable=False)
    status = Column(Text, nullable=False, default="active", index=True)
    signed_date = Column(Date, nullable=True)
    paid_by = Column(Text, nullable=True)
    start_date = Column(Date, nullable=True)
    next_payment_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    application = relationship("LoanApplication", back_populates="loan")
    payments = relationship(
        "Payment",
        back_populates="loan",
        cascade="all, delete-orphan",
        order_by="Payment.payment_date",
    )


class Payment(Base):
    """Repayment event; immutable once recorded"""

    __tablename__ = "payment"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    loan_id = Column(Uuid(as_uuid=True), ForeignKey("loan.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("profile.id", ondelete="CASCADE"), nullable=False, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    balance_before_cents = Column(BigInteger, nullable=False)
    balance_after_cents = Column(BigInteger, nullable=False)
    payment_date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)
    paid_by = Column(Text, nullable=True)
    recorded_by = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    loan = relationship("Loan", back_populates="payments")
