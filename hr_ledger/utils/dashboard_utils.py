from datetime import date
from typing import Any, Dict

from hr_ledger.exceptions import NotFoundError
from hr_ledger.models.employees import Role
from hr_ledger.models.leaves import LeaveStatus
from hr_ledger.utils.app_utils import parse_object_id
from hr_ledger.utils.balance_utils import VISIBLE_LEAVES
from hr_ledger.utils.calendar_utils import (from_date_key, to_date_key, working_days,
                                           working_days_elapsed_in_month)
from hr_ledger.utils.leave_utils import expand_leaves

RECENT_LEAVES_LIMIT = 5


async def get_admin_summary(db, today: date) -> Dict[str, Any]:
    """
    Company-wide figures for the admin dashboard.

    average_attendance is the share of present records among all employee working
    days elapsed this month:
        present_records / (employees * working_days_elapsed) * 100
    and is 0 when there are no employees or no working days yet.
    """
    employees = await db.employees.find({"role": Role.EMPLOYEE.value}, {"_id": 1}).to_list(length=None)
    employee_ids = [str(employee["_id"]) for employee in employees]
    total_employees = len(employee_ids)

    pending_query = {"status": LeaveStatus.PENDING.value, **VISIBLE_LEAVES}
    pending_leaves = await db.leaves.count_documents(pending_query)

    today_key = to_date_key(today)
    present_today = await db.attendance.count_documents({
        "employee_id": {"$in": employee_ids},
        "date": today_key,
        "is_present": True
    })

    month_start = today.replace(day=1)
    present_this_month = await db.attendance.count_documents({
        "employee_id": {"$in": employee_ids},
        "date": {"$gte": to_date_key(month_start), "$lte": today_key},
        "is_present": True
    })

    total_working_days = working_days_elapsed_in_month(today)
    if total_employees and total_working_days:
        average_attendance = present_this_month / (total_employees * total_working_days) * 100
    else:
        average_attendance = 0.0

    recent_cursor = db.leaves.find(pending_query).sort(
        [("created_at", -1), ("_id", -1)]
    ).limit(RECENT_LEAVES_LIMIT)
    recent_leaves = await recent_cursor.to_list(length=RECENT_LEAVES_LIMIT)

    return {
        "total_employees": total_employees,
        "pending_leaves": pending_leaves,
        "today_attendance": {
            "present": present_today,
            "absent": max(total_employees - present_today, 0),
            "total": total_employees,
        },
        "monthly_stats": {
            "average_attendance": round(average_attendance, 2),
            "total_working_days": total_working_days,
        },
        "recent_leaves": await expand_leaves(db, recent_leaves),
    }


async def get_leave_days_used(db, employee_id: str, year: int) -> int:
    """Working days of the employee's approved leaves starting in the given year."""
    approved = await db.leaves.find({
        "employee_id": employee_id,
        "status": LeaveStatus.APPROVED.value,
        "start_date": {"$gte": f"{year:04d}-01-01", "$lte": f"{year:04d}-12-31"}
    }).to_list(length=None)

    return sum(
        working_days(from_date_key(leave["start_date"]), from_date_key(leave["end_date"]))
        for leave in approved
    )


async def get_employee_summary(db, employee_id: str, today: date) -> Dict[str, Any]:
    employee = await db.employees.find_one({"_id": parse_object_id(employee_id, "Employee")})
    if not employee:
        raise NotFoundError("User not found")

    total_leave_days_used = await get_leave_days_used(db, employee_id, today.year)

    today_key = to_date_key(today)
    month_start = today.replace(day=1)
    monthly_attendance = await db.attendance.find({
        "employee_id": employee_id,
        "date": {"$gte": to_date_key(month_start), "$lte": today_key}
    }).to_list(length=None)

    total_hours = sum(record.get("hours_worked") or 0 for record in monthly_attendance)
    present_days = sum(1 for record in monthly_attendance if record.get("is_present"))

    today_attendance = next((record for record in monthly_attendance if record["date"] == today_key), None)
    today_attendance = today_attendance or {}

    pending_leaves = await db.leaves.count_documents({
        "employee_id": employee_id,
        "status": LeaveStatus.PENDING.value,
        **VISIBLE_LEAVES
    })

    return {
        "user": {
            "name": employee.get("name"),
            "email": employee.get("email"),
            "leave_balance": employee.get("leave_balance", 0),
            "total_leave_days_used": total_leave_days_used,
        },
        "today_attendance": {
            "is_checked_in": bool(today_attendance.get("check_in")),
            "is_checked_out": bool(today_attendance.get("check_out")),
            "check_in": today_attendance.get("check_in"),
            "check_out": today_attendance.get("check_out"),
            "hours_worked": today_attendance.get("hours_worked") or 0,
        },
        "monthly_stats": {
            "total_hours": round(total_hours, 2),
            "present_days": present_days,
            "total_working_days": working_days_elapsed_in_month(today),
        },
        "pending_leaves": pending_leaves,
    }
