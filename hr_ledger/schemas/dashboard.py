from datetime import datetime
from pydantic import BaseModel
from typing import List, Optional
from hr_ledger.schemas.leave import LeaveOut


class TodayCounts(BaseModel):
    present: int
    absent: int
    total: int


class AdminMonthlyStats(BaseModel):
    average_attendance: float
    total_working_days: int


class AdminDashboard(BaseModel):
    total_employees: int
    pending_leaves: int
    today_attendance: TodayCounts
    monthly_stats: AdminMonthlyStats
    recent_leaves: List[LeaveOut]


class ProfileSnippet(BaseModel):
    name: str
    email: str
    leave_balance: int
    total_leave_days_used: int


class TodayStatus(BaseModel):
    is_checked_in: bool
    is_checked_out: bool
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    hours_worked: float = 0


class EmployeeMonthlyStats(BaseModel):
    total_hours: float
    present_days: int
    total_working_days: int


class EmployeeDashboard(BaseModel):
    user: ProfileSnippet
    today_attendance: TodayStatus
    monthly_stats: EmployeeMonthlyStats
    pending_leaves: int
