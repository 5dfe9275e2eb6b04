from __future__ import annotations

import pytest

from src.payroll_ledger.payroll_ledger.main import create_app


@pytest.fixture
def app(monkeypatch, container):
    monkeypatch.setenv("APP_ENV", "testing")
    app = create_app(container)
    app.config["TESTING"] = True
    return app


def _login(client, role="admin"):
    with client.session_transaction() as sess:
        sess["user_id"] = 1
        sess["role"] = role


def test_requires_login(app):
    client = app.test_client()

    resp = client.get("/api/attendance/summary")

    assert resp.status_code == 401


def test_record_attendance_then_duplicate(app):
    client = app.test_client()
    _login(client)
    body = {"employee_id": 1, "work_date": "2026-03-02", "status": "present", "check_in": "22:00", "check_out": "06:00"}

    created = client.post("/api/attendance", json=body)
    again = client.post("/api/attendance", json=body)

    assert created.status_code == 201
    assert created.get_json()["work_hours"] == 8.0
    assert again.status_code == 409
    assert again.get_json()["error"] == "DUPLICATE_RECORD"


def test_plain_user_gets_403(app):
    client = app.test_client()
    _login(client, role="user")

    resp = client.post("/api/advances", json={"employee_id": 1, "amount": "100"})

    assert resp.status_code == 403
    assert resp.get_json()["error"] == "PERMISSION_DENIED"


def test_validation_errors_map_to_422(app):
    client = app.test_client()
    _login(client)

    bad_amount = client.post("/api/advances", json={"employee_id": 1, "amount": "-5"})
    bad_date = client.get("/api/payroll/wages/1?start=03/01/2026")

    assert bad_amount.status_code == 422
    assert bad_amount.get_json()["error"] == "INVALID_AMOUNT"
    assert bad_date.status_code == 422
    assert bad_date.get_json()["details"]["field"] == "period_start"


def test_pay_and_fetch_payslip(app):
    client = app.test_client()
    _login(client, role="manager")
    for day in ("2026-03-02", "2026-03-03"):
        client.post("/api/attendance", json={"employee_id": 2, "work_date": day, "status": "present"})
    client.post("/api/advances", json={"employee_id": 2, "amount": "150"})

    paid = client.post(
        "/api/payroll/payments",
        json={"employee_id": 2, "period_start": "2026-03-01", "period_end": "2026-03-31", "deduct_advances": True},
    )
    payslip = client.get(f"/api/payroll/payments/{paid.get_json()['payment_id']}/payslip")

    assert paid.status_code == 201
    assert paid.get_json()["net_amount"] == "650.00"
    assert payslip.status_code == 200
    assert payslip.get_json()["totals"]["net"] == "650.00"


def test_unknown_payslip_is_404(app):
    client = app.test_client()
    _login(client)

    resp = client.get("/api/payroll/payments/nope/payslip")

    assert resp.status_code == 404
    assert resp.get_json()["details"] == {"payment_id": "nope"}


def test_batch_endpoint_reports_per_entry(app):
    client = app.test_client()
    _login(client)
    client.post("/api/attendance", json={"employee_id": 1, "work_date": "2026-03-31", "status": "present"})

    resp = client.post(
        "/api/payroll/batch",
        json={"entries": [{"employee_id": 1}, {"employee_id": 404}], "payment_date": "2026-03-31"},
    )

    data = resp.get_json()
    assert resp.status_code == 200
    assert len(data["succeeded"]) == 1
    assert data["failed"][0]["code"] == "NOT_FOUND"
    assert data["total_net"] == "500.00"


def test_deduct_advances_string_false_is_respected(app, container):
    client = app.test_client()
    _login(client)
    client.post("/api/attendance", json={"employee_id": 1, "work_date": "2026-03-02", "status": "present"})
    client.post("/api/advances", json={"employee_id": 1, "amount": "100"})
    period = {"period_start": "2026-03-02", "period_end": "2026-03-02"}

    bad = client.post("/api/payroll/payments", json={"employee_id": 1, "deduct_advances": "maybe", **period})
    paid = client.post("/api/payroll/payments", json={"employee_id": 1, "deduct_advances": "false", **period})

    assert bad.status_code == 422
    assert bad.get_json()["details"]["field"] == "deduct_advances"
    assert paid.status_code == 201
    assert paid.get_json()["advance_deduction"] == "0.00"
    assert container.advance_ledger.get_outstanding_balance(1) == 100
