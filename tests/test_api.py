from datetime import date, datetime, timedelta, timezone

import pytest

from hr_ledger.models.employees import Role

pytestmark = pytest.mark.anyio


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def upcoming_monday(weeks_ahead: int = 2) -> date:
    day = utc_today() + timedelta(weeks=weeks_ahead)
    return day + timedelta(days=(7 - day.weekday()) % 7)


async def test_health(async_client):
    response = await async_client.get("/health")

    assert response.status_code == 200
    assert response.json()["ok"] is True


async def test_register_and_login(async_client):
    response = await async_client.post("/auth/register", json={
        "name": "Jane Smith",
        "email": "jane.smith@company.com",
        "password": "employee123"
    })
    assert response.status_code == 201
    body = response.json()
    assert body["role"] == "employee"
    assert body["leave_balance"] == 20
    assert "password" not in body

    duplicate = await async_client.post("/auth/register", json={
        "name": "Jane Again",
        "email": "jane.smith@company.com",
        "password": "employee123"
    })
    assert duplicate.status_code == 400

    login = await async_client.post("/auth/login", data={
        "username": "jane.smith@company.com",
        "password": "employee123"
    })
    assert login.status_code == 200
    token = login.json()["access_token"]

    dashboard = await async_client.get("/dashboard/employee", headers={"Authorization": f"Bearer {token}"})
    assert dashboard.status_code == 200
    assert dashboard.json()["user"]["leave_balance"] == 20


async def test_admin_registration_gets_admin_allowance(async_client):
    response = await async_client.post("/auth/register", json={
        "name": "Admin User",
        "email": "admin@company.com",
        "password": "admin123",
        "role": "admin"
    })

    assert response.status_code == 201
    assert response.json()["leave_balance"] == 25


async def test_login_with_wrong_password(async_client, make_employee):
    employee = await make_employee(password="employee123")

    response = await async_client.post("/auth/login", data={
        "username": employee["email"],
        "password": "wrong-password"
    })

    assert response.status_code == 401


async def test_requests_without_token_are_unauthorized(async_client):
    response = await async_client.get("/leaves/my-leaves")

    assert response.status_code == 401


async def test_admin_routes_forbid_employees(async_client, make_employee, auth_headers):
    employee = await make_employee()
    headers = auth_headers(employee)

    assert (await async_client.get("/leaves/all", headers=headers)).status_code == 403
    assert (await async_client.get("/dashboard/admin", headers=headers)).status_code == 403
    response = await async_client.patch("/leaves/65f1c0ffee0000000000beef/approve", headers=headers)
    assert response.status_code == 403


async def test_attendance_flow(async_client, make_employee, auth_headers):
    employee = await make_employee()
    headers = auth_headers(employee)

    not_checked_in = await async_client.post("/attendance/check-out", headers=headers)
    assert not_checked_in.status_code == 400
    assert not_checked_in.json()["code"] == "not_checked_in"

    checked_in = await async_client.post("/attendance/check-in", json={"notes": "Working from the office"},
                                         headers=headers)
    assert checked_in.status_code == 200
    assert checked_in.json()["message"] == "Checked in successfully"

    again = await async_client.post("/attendance/check-in", headers=headers)
    assert again.status_code == 400
    assert again.json() == {"message": "Already checked in today", "code": "already_checked_in", "details": {}}

    checked_out = await async_client.post("/attendance/check-out", headers=headers)
    assert checked_out.status_code == 200
    assert checked_out.json()["hours_worked"] >= 0

    today = await async_client.get("/attendance/today", headers=headers)
    assert today.status_code == 200
    assert today.json()["is_checked_in"] is True
    assert today.json()["is_checked_out"] is True
    assert today.json()["attendance"]["notes"] == "Working from the office"


async def test_attendance_history_month_query(async_client, make_employee, auth_headers):
    employee = await make_employee()
    headers = auth_headers(employee)
    await async_client.post("/attendance/check-in", headers=headers)
    today = utc_today()

    response = await async_client.get(
        "/attendance/my-attendance", params={"month": today.month, "year": today.year}, headers=headers
    )
    assert response.status_code == 200
    assert response.json()["total_days"] == 1

    invalid = await async_client.get("/attendance/my-attendance", params={"month": 13, "year": 2024},
                                     headers=headers)
    assert invalid.status_code == 422


async def test_leave_flow(async_client, make_employee, auth_headers):
    employee = await make_employee(name="John Doe", leave_balance=5)
    admin = await make_employee(name="Admin User", role=Role.ADMIN)
    start = upcoming_monday()

    applied = await async_client.post("/leaves/apply", headers=auth_headers(employee), json={
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(days=2)).isoformat(),
        "leave_type": "vacation",
        "reason": "Family trip"
    })
    assert applied.status_code == 201
    leave = applied.json()["leave"]
    assert leave["status"] == "pending"
    assert leave["working_days"] == 3

    overlap = await async_client.post("/leaves/apply", headers=auth_headers(employee), json={
        "start_date": (start + timedelta(days=2)).isoformat(),
        "end_date": (start + timedelta(days=3)).isoformat(),
        "leave_type": "sick",
        "reason": "Doctor appointment"
    })
    assert overlap.status_code == 400
    assert overlap.json()["code"] == "leave_overlap"

    all_leaves = await async_client.get("/leaves/all", params={"status": "pending"}, headers=auth_headers(admin))
    assert all_leaves.status_code == 200
    assert all_leaves.json()["leaves"][0]["employee"]["name"] == "John Doe"

    approved = await async_client.patch(f"/leaves/{leave['id']}/approve", headers=auth_headers(admin))
    assert approved.status_code == 200
    assert approved.json()["leave"]["status"] == "approved"
    assert approved.json()["leave"]["approved_by"]["name"] == "Admin User"

    again = await async_client.patch(f"/leaves/{leave['id']}/approve", headers=auth_headers(admin))
    assert again.status_code == 409
    assert again.json()["code"] == "already_processed"

    mine = await async_client.get("/leaves/my-leaves", headers=auth_headers(employee))
    assert [item["status"] for item in mine.json()["leaves"]] == ["approved"]

    dashboard = await async_client.get("/dashboard/employee", headers=auth_headers(employee))
    assert dashboard.json()["user"]["leave_balance"] == 2


async def test_apply_errors_are_reported_as_json(async_client, make_employee, auth_headers):
    employee = await make_employee(leave_balance=5)
    start = upcoming_monday()

    past = await async_client.post("/leaves/apply", headers=auth_headers(employee), json={
        "start_date": (utc_today() - timedelta(days=1)).isoformat(),
        "end_date": utc_today().isoformat(),
        "leave_type": "vacation",
        "reason": "Trip"
    })
    assert past.status_code == 400
    assert past.json()["code"] == "validation_error"

    too_long = await async_client.post("/leaves/apply", headers=auth_headers(employee), json={
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(days=7)).isoformat(),
        "leave_type": "vacation",
        "reason": "Trip"
    })
    assert too_long.status_code == 400
    assert too_long.json() == {
        "message": "Insufficient leave balance",
        "code": "insufficient_balance",
        "details": {"required": 6, "available": 5},
    }


async def test_reject_with_and_without_reason(async_client, make_employee, auth_headers):
    employee = await make_employee(leave_balance=10)
    admin = await make_employee(role=Role.ADMIN)
    start = upcoming_monday()

    leave_ids = []
    for offset in (0, 7):
        applied = await async_client.post("/leaves/apply", headers=auth_headers(employee), json={
            "start_date": (start + timedelta(days=offset)).isoformat(),
            "end_date": (start + timedelta(days=offset)).isoformat(),
            "leave_type": "work_from_home",
            "reason": "Remote work"
        })
        leave_ids.append(applied.json()["leave"]["id"])

    with_reason = await async_client.patch(f"/leaves/{leave_ids[0]}/reject", headers=auth_headers(admin),
                                           json={"rejection_reason": "Team offsite"})
    assert with_reason.status_code == 200
    assert with_reason.json()["leave"]["rejection_reason"] == "Team offsite"

    without_reason = await async_client.patch(f"/leaves/{leave_ids[1]}/reject", headers=auth_headers(admin))
    assert without_reason.status_code == 200
    assert without_reason.json()["leave"]["status"] == "rejected"

    missing = await async_client.patch("/leaves/not-an-id/reject", headers=auth_headers(admin))
    assert missing.status_code == 404
    assert missing.json()["code"] == "not_found"

    dashboard = await async_client.get("/dashboard/employee", headers=auth_headers(employee))
    assert dashboard.json()["user"]["leave_balance"] == 10


async def test_admin_dashboard(async_client, make_employee, auth_headers):
    employee = await make_employee()
    admin = await make_employee(role=Role.ADMIN)
    await async_client.post("/attendance/check-in", headers=auth_headers(employee))

    response = await async_client.get("/dashboard/admin", headers=auth_headers(admin))

    assert response.status_code == 200
    body = response.json()
    assert body["total_employees"] == 1
    assert body["today_attendance"] == {"present": 0, "absent": 1, "total": 1}
