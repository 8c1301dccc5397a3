"""Pytest fixtures for testing"""

import os

# Must be set before the app builds its engine
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

import pytest
from datetime import date
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from taxi_loans.api.main import create_app
from taxi_loans.infrastructure.database.models import Base
from taxi_loans.infrastructure.database.session import get_db
from taxi_loans.domain.models import ImportedLoan, ImportedPayment


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def application_payload() -> dict:
    """Application form for a $1000 loan over 12 weeks"""
    return {
        "applicant": {
            "email": "driver@example.com",
            "full_name": "Aroha Driver",
            "phone_number": "021 555 0101",
            "taxi_company": "Blue Cabs",
            "vehicle_number_plate": "TAX123",
        },
        "requested_cents": 100000,
        "terms_weeks": 12,
        "documents": {"driver_license_url": "https://files.example.com/licence.jpg"},
    }


@pytest.fixture
def funded_loan(client: TestClient, application_payload: dict) -> dict:
    """Submit, approve and fund a $1000 / 40% / 12 week loan starting 2024-01-01"""
    application = client.post("/v1/applications", json=application_payload).json()
    client.post(
        f"/v1/applications/{application['id']}/review",
        json={"status": "approved", "reviewed_by": "staff-1"},
    )
    response = client.post(f"/v1/applications/{application['id']}/fund", json={"start_date": "2024-01-01"})
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def sample_imported_loan() -> ImportedLoan:
    """Historical $1000 loan at 40% with three weekly payments"""
    return ImportedLoan(
        loan_no="L-0001",
        client_no="C-001",
        client_name="Aroha Driver",
        principal_cents=100000,
        interest_cents=40000,
        total_cents=140000,
        terms_weeks=12,
        weekly_payment_cents=11667,
        status_label="Active",
        start_date=date(2024, 1, 1),
        first_repayment_date=date(2024, 1, 8),
        payments=[
            ImportedPayment(payment_date=date(2024, 1, 22), amount_cents=11667),
            ImportedPayment(payment_date=date(2024, 1, 8), amount_cents=11667),
            ImportedPayment(payment_date=date(2024, 1, 15), amount_cents=11667),
        ],
    )
