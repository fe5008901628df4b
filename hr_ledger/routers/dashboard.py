from datetime import datetime
from pytz import UTC
from fastapi import APIRouter, Depends
from hr_ledger.db import get_db
from hr_ledger.schemas.dashboard import AdminDashboard, EmployeeDashboard
from hr_ledger.utils.app_utils import get_current_user, require_admin
from hr_ledger.utils.dashboard_utils import get_admin_summary, get_employee_summary

router = APIRouter()


@router.get("/admin", response_model=AdminDashboard)
async def admin_dashboard(user_and_type: tuple = Depends(require_admin), db=Depends(get_db)):
    """
    Company overview for admins.
    Returns:
        dict: A dictionary containing:
            - total_employees (int): Number of employee accounts
            - pending_leaves (int): Number of pending leave requests
            - today_attendance (dict): present/absent/total counts for today
            - monthly_stats (dict): month-to-date average attendance percentage and working days elapsed
            - recent_leaves (list): The 5 most recent pending leave requests
    """
    return await get_admin_summary(db, datetime.now(UTC).date())


@router.get("/employee", response_model=EmployeeDashboard)
async def employee_dashboard(user_and_type: tuple = Depends(get_current_user), db=Depends(get_db)):
    """
    Personal overview: profile and leave balance, days of leave used this year,
    today's attendance, month-to-date hours and present days, and pending leave count.
    """
    user, _ = user_and_type
    return await get_employee_summary(db, str(user["_id"]), datetime.now(UTC).date())
