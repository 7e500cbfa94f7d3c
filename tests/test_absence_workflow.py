from datetime import date, time
import logging

import pytest

from app.models.shift import Shift, ShiftStatus


def _declare(client, headers, absence_type, start, end, **extra):
    payload = {"absence_type": absence_type, "start_date": start, "end_date": end}
    payload.update(extra)
    return client.post("/api/absences", headers=headers, json=payload)


def _balance(client, headers, contract_id, leave_year="2024-2025"):
    response = client.get(f"/api/leave-balances/{contract_id}/{leave_year}", headers=headers)
    assert response.status_code == 200
    return response.json()


@pytest.fixture
def shifts(db_session, contract):
    rows = [
        Shift(contract_id=contract.id, employee_id=contract.employee_id, date=date(2024, 3, 19),
              start_time=time(9), end_time=time(12)),
        Shift(contract_id=contract.id, employee_id=contract.employee_id, date=date(2024, 3, 20),
              start_time=time(9), end_time=time(12), status=ShiftStatus.COMPLETED.value),
        Shift(contract_id=contract.id, employee_id=contract.employee_id, date=date(2024, 3, 25),
              start_time=time(9), end_time=time(12)),
    ]
    db_session.add_all(rows)
    db_session.commit()
    return [row.id for row in rows]


def test_sick_leave_approval_cancels_shifts_and_notifies(
    client, db_session, employee, employer, contract, shifts, auth_headers
):
    response = _declare(client, auth_headers(employee), "sick", "2024-03-18", "2024-03-22", reason="<b>Flu</b>")
    assert response.status_code == 201
    absence = response.json()["absence"]
    assert absence["status"] == "pending"
    assert absence["business_days_count"] == 5
    assert absence["justification_due_date"] == "2024-03-20"
    assert absence["leave_year"] is None
    assert absence["contract_id"] == contract.id
    assert absence["reason"] == "Flu"

    requested = client.get("/api/notifications/me", headers=auth_headers(employer)).json()
    assert [n["type"] for n in requested] == ["absence_requested"]
    assert "Alex Durand" in requested[0]["message"]

    response = client.post(f"/api/absences/{absence['id']}/approve", headers=auth_headers(employer))
    assert response.status_code == 200
    assert response.json()["status"] == "approved"

    db_session.expire_all()
    statuses = [db_session.get(Shift, shift_id).status for shift_id in shifts]
    assert statuses == ["cancelled", "completed", "planned"]

    resolved = client.get("/api/notifications/me", headers=auth_headers(employee)).json()
    assert len(resolved) == 1
    assert resolved[0]["type"] == "absence_resolved"
    assert resolved[0]["data"]["status"] == "approved"


def test_vacation_initializes_balance_lazily(client, employee, contract, auth_headers):
    missing = client.get(f"/api/leave-balances/{contract.id}/2024-2025", headers=auth_headers(employee))
    assert missing.status_code == 404

    response = _declare(client, auth_headers(employee), "vacation", "2024-07-08", "2024-07-12")
    assert response.status_code == 201
    absence = response.json()["absence"]
    assert absence["status"] == "pending"
    assert absence["leave_year"] == "2024-2025"
    assert absence["business_days_count"] == 5

    balance = _balance(client, auth_headers(employee), contract.id)
    assert balance["acquired_days"] == 30.0
    assert balance["taken_days"] == 0.0
    assert balance["is_manual_init"] is False


def test_approve_then_cancel_vacation_restores_balance(client, employee, employer, contract, auth_headers):
    absence_id = _declare(client, auth_headers(employee), "vacation", "2024-07-08", "2024-07-12").json()["absence"]["id"]

    client.post(f"/api/absences/{absence_id}/approve", headers=auth_headers(employer))
    assert _balance(client, auth_headers(employee), contract.id)["taken_days"] == 5.0

    response = client.delete(f"/api/absences/{absence_id}", headers=auth_headers(employee))
    assert response.status_code == 204
    assert _balance(client, auth_headers(employee), contract.id)["taken_days"] == 0.0

    again = client.delete(f"/api/absences/{absence_id}", headers=auth_headers(employee))
    assert again.status_code == 404
    assert again.json()["errors"][0]["msg"] == "Absence not found"


def test_cancel_pending_vacation_leaves_balance_alone(client, employee, contract, auth_headers):
    absence_id = _declare(client, auth_headers(employee), "vacation", "2024-07-08", "2024-07-12").json()["absence"]["id"]
    assert client.delete(f"/api/absences/{absence_id}", headers=auth_headers(employee)).status_code == 204
    assert _balance(client, auth_headers(employee), contract.id)["taken_days"] == 0.0


def test_overlap_is_refused(client, employee, contract, auth_headers):
    first = _declare(client, auth_headers(employee), "training", "2024-03-18", "2024-03-22").json()["absence"]
    response = _declare(client, auth_headers(employee), "unavailable", "2024-03-22", "2024-03-26")
    assert response.status_code == 422
    error = response.json()["errors"][0]
    assert error["code"] == "ABSENCE_VALIDATION_FAILED"
    assert error["details"]["errors"][0]["code"] == "overlap"
    assert error["details"]["errors"][0]["details"]["absence_id"] == first["id"]


def test_rejected_dates_can_be_requested_again(client, employee, employer, contract, auth_headers):
    absence_id = _declare(client, auth_headers(employee), "training", "2024-03-18", "2024-03-22").json()["absence"]["id"]
    client.post(f"/api/absences/{absence_id}/reject", headers=auth_headers(employer))
    response = _declare(client, auth_headers(employee), "training", "2024-03-18", "2024-03-22")
    assert response.status_code == 201


def test_insufficient_balance(client, employee, contract, auth_headers):
    response = _declare(client, auth_headers(employee), "vacation", "2024-07-01", "2024-08-30")
    assert response.status_code == 422
    issue = response.json()["errors"][0]["details"]["errors"][0]
    assert issue["code"] == "insufficient_balance"
    assert issue["details"]["remaining"] == 30.0


def test_decision_is_final(client, employee, employer, contract, auth_headers):
    absence_id = _declare(client, auth_headers(employee), "training", "2024-03-18", "2024-03-22").json()["absence"]["id"]
    assert client.post(f"/api/absences/{absence_id}/reject", headers=auth_headers(employer)).status_code == 200

    response = client.post(f"/api/absences/{absence_id}/approve", headers=auth_headers(employer))
    assert response.status_code == 409
    assert response.json()["errors"][0]["code"] == "INVALID_STATUS_TRANSITION"

    assert client.delete(f"/api/absences/{absence_id}", headers=auth_headers(employee)).status_code == 409


def test_roles_and_ownership(client, db_session, employee, employer, contract, auth_headers):
    from app.models.user import User, UserRole
    stranger = User(email="other@example.com", role=UserRole.EMPLOYER)
    db_session.add(stranger)
    db_session.commit()

    absence_id = _declare(client, auth_headers(employee), "training", "2024-03-18", "2024-03-22").json()["absence"]["id"]

    assert client.post(f"/api/absences/{absence_id}/approve", headers=auth_headers(employee)).status_code == 403
    assert client.post(f"/api/absences/{absence_id}/approve", headers=auth_headers(stranger)).status_code == 403
    assert _declare(client, auth_headers(employer), "training", "2024-04-01", "2024-04-02").status_code == 403


def test_employer_decides_only_on_own_contract(client, db_session, employee, employer, contract, auth_headers):
    from app.models.contract import Contract
    from app.models.user import User, UserRole
    other_employer = User(email="second.home@example.com", full_name="Paul Leroy", role=UserRole.EMPLOYER)
    db_session.add(other_employer)
    db_session.commit()
    other_contract = Contract(
        employer_id=other_employer.id,
        employee_id=employee.id,
        start_date=date(2020, 1, 6),
        weekly_hours=35.0,
        hourly_rate=15.0
    )
    db_session.add(other_contract)
    db_session.commit()

    # Without contract_id the oldest active contract is used
    absence = _declare(client, auth_headers(employee), "vacation", "2024-07-08", "2024-07-12").json()["absence"]
    assert absence["contract_id"] == contract.id

    response = client.post(f"/api/absences/{absence['id']}/approve", headers=auth_headers(other_employer))
    assert response.status_code == 403
    assert _balance(client, auth_headers(employee), contract.id)["taken_days"] == 0.0
    listed = client.get("/api/absences/employer", headers=auth_headers(other_employer)).json()
    assert absence["id"] not in [a["id"] for a in listed]

    own = _declare(
        client, auth_headers(employee), "vacation", "2024-08-05", "2024-08-09", contract_id=other_contract.id
    ).json()["absence"]
    assert client.post(f"/api/absences/{own['id']}/approve", headers=auth_headers(other_employer)).status_code == 200
    assert _balance(client, auth_headers(employee), other_contract.id)["taken_days"] == 5.0
    assert _balance(client, auth_headers(employee), contract.id)["taken_days"] == 0.0

    assert client.post(f"/api/absences/{absence['id']}/approve", headers=auth_headers(employer)).status_code == 200
    assert _balance(client, auth_headers(employee), contract.id)["taken_days"] == 5.0


def test_absence_without_contract_is_logged(client, employee, auth_headers, caplog):
    caplog.set_level(logging.INFO, logger="app.services.absence_service")
    response = _declare(client, auth_headers(employee), "training", "2024-03-18", "2024-03-19")
    assert response.status_code == 201
    absence = response.json()["absence"]
    assert absence["contract_id"] is None
    assert f"Absence {absence['id']} has no contract; no employer notified" in caplog.text


def test_listings(client, employee, employer, contract, auth_headers):
    _declare(client, auth_headers(employee), "training", "2024-03-18", "2024-03-19")
    second = _declare(client, auth_headers(employee), "training", "2024-04-02", "2024-04-03").json()["absence"]
    client.post(f"/api/absences/{second['id']}/approve", headers=auth_headers(employer))

    mine = client.get("/api/absences/me", headers=auth_headers(employee)).json()
    assert len(mine) == 2

    approved = client.get("/api/absences/employer?status=approved", headers=auth_headers(employer)).json()
    assert [a["id"] for a in approved] == [second["id"]]


def test_validate_endpoint_writes_nothing(client, employee, contract, auth_headers):
    response = client.post(
        "/api/absences/validate",
        headers=auth_headers(employee),
        json={"absence_type": "vacation", "start_date": "2024-07-08", "end_date": "2024-07-12"}
    )
    assert response.status_code == 200
    body = response.json()
    assert body["valid"] is True
    assert body["business_days_count"] == 5
    assert body["leave_year"] == "2024-2025"

    assert client.get("/api/absences/me", headers=auth_headers(employee)).json() == []
    assert client.get("/api/leave-balances/me", headers=auth_headers(employee)).json() == []


def test_family_event_without_type(client, employee, contract, auth_headers):
    response = _declare(client, auth_headers(employee), "family_event", "2024-03-18", "2024-03-18")
    assert response.status_code == 422
    assert response.json()["errors"][0]["details"]["errors"][0]["code"] == "family_event_missing"


def test_malformed_payload(client, employee, auth_headers):
    response = client.post("/api/absences", headers=auth_headers(employee), json={"absence_type": "holiday"})
    assert response.status_code == 422
    assert response.json()["success"] is False
