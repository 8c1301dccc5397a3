"""Integration tests for API endpoints"""

import uuid
import pytest
from decimal import Decimal
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session
from taxi_loans.infrastructure.database.models import Loan, LoanApplication


def _approve(client: TestClient, application_id: str, **fields) -> dict:
    response = client.post(
        f"/v1/applications/{application_id}/review",
        json={"status": "approved", "reviewed_by": "staff-1", **fields},
    )
    assert response.status_code == 200
    return response.json()


@pytest.fixture
def import_payload() -> dict:
    """One historical client with a $1000 loan and three weekly payments"""
    return {
        "mode": "all",
        "clients": [
            {"client_no": "C-001", "full_name": "Aroha Driver", "phone_number": "021 555 0101", "late_history": 1},
        ],
        "loans": [
            {
                "loan_no": "L-0001",
                "client_no": "C-001",
                "client_name": "Aroha Driver",
                "amount": "1000",
                "interests": "400",
                "total_amount": "1400",
                "terms_weeks": 12,
                "weekly_repay_min": "116.67",
                "signed_date": "28/12/2023",
                "start_date": "01/01/2024",
                "first_repayment_date": "08/01/2024",
                "end_date": "25/03/2024",
                "status": "Active",
                "remain_repay_amount": "1049.99",
                "payments": [
                    {"date": "22/01/2024", "amount": "116.67"},
                    {"date": "2024-01-08", "amount": "116.67"},
                    {"date": "15/01/2024", "amount": "116.67"},
                ],
            }
        ],
    }


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "taxi-loans"}


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "taxi_loans_applications_submitted_total" in response.text


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_quote_endpoint(client: TestClient):
    """$1000 over 12 weeks at the default 40%"""
    response = client.post("/v1/quote", json={"amount_cents": 100000, "terms_weeks": 12})

    assert response.status_code == 200
    data = response.json()
    assert data["principal_cents"] == 100000
    assert data["interest_cents"] == 40000
    assert data["total_cents"] == 140000
    assert data["weekly_payment_cents"] == 11667
    assert Decimal(data["interest_rate_percent"]) == Decimal("40")


@pytest.mark.parametrize("payload", [
    {"amount_cents": 100000, "terms_weeks": 10},
    {"amount_cents": 0, "terms_weeks": 12},
    {"amount_cents": -500, "terms_weeks": 12},
    {"amount_cents": 5, "terms_weeks": 24},  # Weekly installment rounds to 0 cents
])
def test_quote_rejects_invalid_input(client: TestClient, payload: dict):
    response = client.post("/v1/quote", json=payload)
    assert response.status_code == 422


def test_submit_application(client: TestClient, application_payload: dict):
    response = client.post("/v1/applications", json=application_payload)

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "submitted"
    assert data["requested_cents"] == 100000
    assert data["weekly_payment_cents"] == 11667
    assert data["driver_license_url"] == "https://files.example.com/licence.jpg"
    assert data["approved_cents"] is None


def test_submit_application_reuses_profile_by_email(client: TestClient, application_payload: dict):
    first = client.post("/v1/applications", json=application_payload).json()
    second = client.post("/v1/applications", json=application_payload).json()

    assert first["user_id"] == second["user_id"]
    assert first["id"] != second["id"]


def test_submit_application_validation(client: TestClient, application_payload: dict):
    application_payload["terms_weeks"] = 13
    assert client.post("/v1/applications", json=application_payload).status_code == 422

    application_payload["terms_weeks"] = 12
    application_payload["requested_cents"] = 10_000_000
    assert client.post("/v1/applications", json=application_payload).status_code == 422


def test_submit_application_rejects_zero_installment(client: TestClient, application_payload: dict):
    """5 cents over 24 weeks could never be repaid"""
    application_payload.update(requested_cents=5, terms_weeks=24)
    response = client.post("/v1/applications", json=application_payload)

    assert response.status_code == 422
    assert client.get("/v1/applications").json() == []


def test_submit_application_smallest_repayable_amount(client: TestClient, application_payload: dict):
    application_payload.update(requested_cents=9, terms_weeks=24)
    response = client.post("/v1/applications", json=application_payload)

    assert response.status_code == 201
    assert response.json()["weekly_payment_cents"] == 1


def test_review_application(client: TestClient, application_payload: dict):
    application = client.post("/v1/applications", json=application_payload).json()

    pending = client.post(
        f"/v1/applications/{application['id']}/review",
        json={"status": "pending", "reviewed_by": "staff-1", "pending_notes": "Need a clearer licence photo"},
    ).json()
    assert pending["status"] == "pending"
    assert pending["pending_notes"] == "Need a clearer licence photo"

    approved = _approve(client, application["id"], approved_cents=80000)
    assert approved["status"] == "approved"
    assert approved["approved_cents"] == 80000
    assert approved["pending_notes"] is None
    assert approved["reviewed_by"] == "staff-1"
    assert approved["reviewed_at"] is not None


def test_review_rejection_clears_approved_amount(client: TestClient, application_payload: dict):
    application = client.post("/v1/applications", json=application_payload).json()
    _approve(client, application["id"])

    rejected = client.post(
        f"/v1/applications/{application['id']}/review",
        json={"status": "rejected", "reviewed_by": "staff-2", "rejection_reason": "Incomplete documents"},
    ).json()
    assert rejected["status"] == "rejected"
    assert rejected["approved_cents"] is None
    assert rejected["rejection_reason"] == "Incomplete documents"


def test_review_requires_reviewer(client: TestClient, application_payload: dict):
    application = client.post("/v1/applications", json=application_payload).json()
    response = client.post(f"/v1/applications/{application['id']}/review", json={"status": "approved"})
    assert response.status_code == 422


def test_review_funded_application_conflicts(client: TestClient, funded_loan: dict):
    response = client.post(
        f"/v1/applications/{funded_loan['application_id']}/review",
        json={"status": "rejected", "reviewed_by": "staff-1"},
    )
    assert response.status_code == 409


def test_cancel_application(client: TestClient, application_payload: dict):
    application = client.post("/v1/applications", json=application_payload).json()

    response = client.post(f"/v1/applications/{application['id']}/cancel")
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    # Already cancelled
    assert client.post(f"/v1/applications/{application['id']}/cancel").status_code == 409


def test_fund_application(funded_loan: dict):
    """Funding fixes the balance, installment and weekly dates"""
    assert funded_loan["status"] == "active"
    assert funded_loan["principal_cents"] == 100000
    assert funded_loan["interest_cents"] == 40000
    assert funded_loan["total_cents"] == 140000
    assert funded_loan["remaining_balance_cents"] == 140000
    assert funded_loan["weekly_payment_cents"] == 11667
    assert funded_loan["terms_weeks"] == 12
    assert funded_loan["terms_remaining"] == 12
    assert funded_loan["start_date"] == "2024-01-01"
    assert funded_loan["next_payment_date"] == "2024-01-08"
    assert funded_loan["end_date"] == "2024-03-25"

    schedule = funded_loan["schedule"]
    assert len(schedule) == 12
    assert schedule[0]["due_date"] == "2024-01-08"
    assert schedule[-1]["amount_cents"] == 11663
    assert schedule[-1]["balance_after_cents"] == 0


def test_fund_uses_approved_amount(client: TestClient, application_payload: dict):
    application = client.post("/v1/applications", json=application_payload).json()
    _approve(client, application["id"], approved_cents=80000)

    loan = client.post(f"/v1/applications/{application['id']}/fund", json={"start_date": "2024-01-01"}).json()
    assert loan["principal_cents"] == 80000
    assert loan["total_cents"] == 112000
    assert loan["weekly_payment_cents"] == 9333


def test_fund_requires_approval(client: TestClient, application_payload: dict):
    application = client.post("/v1/applications", json=application_payload).json()
    response = client.post(f"/v1/applications/{application['id']}/fund", json={"start_date": "2024-01-01"})
    assert response.status_code == 409


def test_fund_twice_conflicts(client: TestClient, funded_loan: dict):
    response = client.post(
        f"/v1/applications/{funded_loan['application_id']}/fund",
        json={"start_date": "2024-01-01"},
    )
    assert response.status_code == 409

    application = client.get(f"/v1/applications/{funded_loan['application_id']}").json()
    assert application["status"] == "funded"


def test_record_payment(client: TestClient, funded_loan: dict):
    response = client.post(
        f"/v1/loans/{funded_loan['id']}/payments",
        json={"amount_cents": 11667, "payment_date": "2024-01-08", "paid_by": "Aroha", "recorded_by": "staff-1"},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["is_paid_off"] is False
    assert data["payment"]["balance_before_cents"] == 140000
    assert data["payment"]["balance_after_cents"] == 128333
    assert data["loan"]["remaining_balance_cents"] == 128333
    assert data["loan"]["terms_remaining"] == 11
    assert data["loan"]["next_payment_date"] == "2024-01-15"
    assert data["loan"]["status"] == "active"


def test_payments_through_payoff(client: TestClient, funded_loan: dict):
    """Twelve installments complete the loan; further payments are refused"""
    url = f"/v1/loans/{funded_loan['id']}/payments"
    for _ in range(11):
        assert client.post(url, json={"amount_cents": 11667}).status_code == 201

    loan = client.get(f"/v1/loans/{funded_loan['id']}").json()
    assert loan["remaining_balance_cents"] == 11663
    assert loan["terms_remaining"] == 1
    assert len(loan["schedule"]) == 1
    assert loan["schedule"][0]["amount_cents"] == 11663

    final = client.post(url, json={"amount_cents": 11667}).json()
    assert final["is_paid_off"] is True
    assert final["loan"]["status"] == "completed"
    assert final["loan"]["remaining_balance_cents"] == 0
    assert final["loan"]["terms_remaining"] == 0

    assert client.post(url, json={"amount_cents": 100}).status_code == 409
    assert client.get("/v1/loans", params={"status": "completed"}).json()[0]["id"] == funded_loan["id"]

    history = client.get(f"/v1/loans/{funded_loan['id']}/payments").json()
    assert len(history) == 12
    assert client.get(f"/v1/loans/{funded_loan['id']}").json()["schedule"] == []


def test_overpayment_is_absorbed(client: TestClient, funded_loan: dict):
    response = client.post(f"/v1/loans/{funded_loan['id']}/payments", json={"amount_cents": 200000})

    data = response.json()
    assert data["is_paid_off"] is True
    assert data["payment"]["amount_cents"] == 200000
    assert data["payment"]["balance_after_cents"] == 0
    assert data["loan"]["status"] == "completed"


def test_payment_validation(client: TestClient, funded_loan: dict):
    url = f"/v1/loans/{funded_loan['id']}/payments"
    assert client.post(url, json={"amount_cents": 0}).status_code == 422
    assert client.post(url, json={"amount_cents": -100}).status_code == 422


def test_list_recent_payments(client: TestClient, funded_loan: dict):
    url = f"/v1/loans/{funded_loan['id']}/payments"
    client.post(url, json={"amount_cents": 11667, "payment_date": "2024-01-08"})
    client.post(url, json={"amount_cents": 11667, "payment_date": "2024-01-15"})

    payments = client.get("/v1/payments").json()
    assert [p["payment_date"] for p in payments] == ["2024-01-15", "2024-01-08"]


@pytest.mark.parametrize("path", ["/v1/loans/{id}", "/v1/applications/{id}", "/v1/loans/{id}/payments"])
def test_unknown_ids(client: TestClient, path: str):
    assert client.get(path.format(id="00000000-0000-0000-0000-000000000000")).status_code == 404
    assert client.get(path.format(id="not-a-uuid")).status_code == 400


def test_write_endpoints_unknown_ids(client: TestClient):
    missing = "00000000-0000-0000-0000-000000000000"
    assert client.post(f"/v1/loans/{missing}/payments", json={"amount_cents": 100}).status_code == 404
    assert client.post("/v1/loans/bad/payments", json={"amount_cents": 100}).status_code == 400
    assert client.post(f"/v1/applications/{missing}/cancel").status_code == 404
    assert client.post(f"/v1/applications/{missing}/fund", json={"start_date": "2024-01-01"}).status_code == 404


def test_borrower_dashboard(client: TestClient, funded_loan: dict):
    client.post(f"/v1/loans/{funded_loan['id']}/payments", json={"amount_cents": 11667, "payment_date": "2024-01-08"})

    response = client.get(f"/v1/borrowers/{funded_loan['user_id']}/dashboard")

    assert response.status_code == 200
    data = response.json()
    assert data["application"]["status"] == "funded"
    assert data["loan"]["remaining_balance_cents"] == 128333
    assert len(data["loan"]["schedule"]) == 11
    assert len(data["payments"]) == 1


def test_borrower_dashboard_before_funding(client: TestClient, application_payload: dict):
    application = client.post("/v1/applications", json=application_payload).json()

    data = client.get(f"/v1/borrowers/{application['user_id']}/dashboard").json()
    assert data["application"]["status"] == "submitted"
    assert data["loan"] is None
    assert data["payments"] == []


def test_borrower_dashboard_unknown_user(client: TestClient):
    response = client.get("/v1/borrowers/00000000-0000-0000-0000-000000000000/dashboard")
    assert response.status_code == 404


def test_import_replays_payment_history(client: TestClient, import_payload: dict):
    response = client.post("/v1/import", json=import_payload)

    assert response.status_code == 200
    data = response.json()
    assert data["clients"] == {"success": 1, "skipped": 0, "errors": []}
    assert data["loans"] == {"success": 1, "skipped": 0, "errors": []}
    assert data["payments"] == {"success": 3}
    assert data["warnings"] == []

    loans = client.get("/v1/loans").json()
    assert len(loans) == 1
    loan = loans[0]
    assert loan["loan_no"] == "L-0001"
    assert loan["status"] == "active"
    assert loan["remaining_balance_cents"] == 104999
    assert loan["terms_remaining"] == 9
    assert loan["next_payment_date"] == "2024-01-29"
    assert loan["signed_date"] == "2023-12-28"
    assert Decimal(loan["interest_rate_percent"]) == Decimal("40")

    history = client.get(f"/v1/loans/{loan['id']}/payments").json()
    assert [p["balance_after_cents"] for p in history] == [104999, 116666, 128333]

    application = client.get(f"/v1/applications/{loan['application_id']}").json()
    assert application["status"] == "funded"
    assert application["approved_cents"] == 100000


def test_imported_loan_accepts_new_payments(client: TestClient, import_payload: dict):
    client.post("/v1/import", json=import_payload)
    loan = client.get("/v1/loans").json()[0]

    response = client.post(f"/v1/loans/{loan['id']}/payments", json={"amount_cents": 104999})
    assert response.json()["loan"]["status"] == "completed"


def test_import_skips_existing_records(client: TestClient, import_payload: dict):
    client.post("/v1/import", json=import_payload)
    data = client.post("/v1/import", json=import_payload).json()

    assert data["clients"]["skipped"] == 1
    assert data["loans"]["skipped"] == 1
    assert data["payments"]["success"] == 0
    assert len(client.get("/v1/loans").json()) == 1


def test_import_reports_row_errors(client: TestClient, import_payload: dict):
    orphan = dict(import_payload["loans"][0], loan_no="L-0002", client_no="C-999", client_name="Nobody")
    bad_date = dict(import_payload["loans"][0], loan_no="L-0003", start_date="sometime")
    import_payload["loans"] += [orphan, bad_date]

    data = client.post("/v1/import", json=import_payload).json()

    assert data["loans"]["success"] == 1
    assert data["loans"]["errors"][0] == "L-0002 - Nobody: Client C-999 not found"
    assert "L-0003" in data["loans"]["errors"][1]
    assert len(client.get("/v1/loans").json()) == 1


def test_import_warns_when_sheet_disagrees(client: TestClient, import_payload: dict):
    import_payload["loans"][0]["status"] = "Finished"
    import_payload["loans"][0]["remain_repay_amount"] = "0"

    data = client.post("/v1/import", json=import_payload).json()

    assert len(data["warnings"]) == 2
    loan = client.get("/v1/loans").json()[0]
    assert loan["status"] == "active"
    assert loan["remaining_balance_cents"] == 104999


def test_import_clients_only(client: TestClient, import_payload: dict):
    import_payload["mode"] = "clients"
    data = client.post("/v1/import", json=import_payload).json()

    assert data["clients"]["success"] == 1
    assert data["loans"]["success"] == 0
    assert client.get("/v1/loans").json() == []

    import_payload["mode"] = "loans"
    data = client.post("/v1/import", json=import_payload).json()
    assert data["loans"]["success"] == 1


def test_purge_removes_only_imported_data(client: TestClient, funded_loan: dict, import_payload: dict):
    client.post("/v1/import", json=import_payload)
    assert len(client.get("/v1/loans").json()) == 2

    response = client.delete("/v1/import")

    assert response.status_code == 200
    assert response.json() == {"payments": 3, "loans": 1, "applications": 1, "profiles": 1}
    loans = client.get("/v1/loans").json()
    assert [loan["id"] for loan in loans] == [funded_loan["id"]]


def test_approve_rejects_zero_installment(client: TestClient, application_payload: dict):
    application_payload["terms_weeks"] = 24
    application = client.post("/v1/applications", json=application_payload).json()

    response = client.post(
        f"/v1/applications/{application['id']}/review",
        json={"status": "approved", "reviewed_by": "staff-1", "approved_cents": 5},
    )

    assert response.status_code == 422
    unchanged = client.get(f"/v1/applications/{application['id']}").json()
    assert unchanged["status"] == "submitted"
    assert unchanged["approved_cents"] is None


def test_fund_rejects_zero_installment(client: TestClient, application_payload: dict, db: Session):
    application_payload["terms_weeks"] = 24
    application = client.post("/v1/applications", json=application_payload).json()
    _approve(client, application["id"])

    stored = db.get(LoanApplication, uuid.UUID(application["id"]))
    stored.approved_cents = 5
    db.commit()

    response = client.post(f"/v1/applications/{application['id']}/fund", json={"start_date": "2024-01-01"})

    assert response.status_code == 422
    assert client.get("/v1/loans").json() == []
    assert client.get(f"/v1/applications/{application['id']}").json()["status"] == "approved"


def test_payment_on_zero_installment_loan_is_rejected(client: TestClient, funded_loan: dict, db: Session):
    """Arithmetic precondition failures are client errors, not 500s"""
    loan = db.get(Loan, uuid.UUID(funded_loan["id"]))
    loan.weekly_payment_cents = 0
    db.commit()

    response = client.post(f"/v1/loans/{funded_loan['id']}/payments", json={"amount_cents": 100})

    assert response.status_code == 422
    assert client.get(f"/v1/loans/{funded_loan['id']}/payments").json() == []
