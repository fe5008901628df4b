from datetime import date, datetime
from pydantic import BaseModel
from typing import Optional, List


class AttendanceOut(BaseModel):
    id: str
    employee_id: str
    date: date
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    hours_worked: float = 0
    is_present: bool = False
    notes: Optional[str] = None


class CheckIn(BaseModel):
    notes: Optional[str] = None


class CheckInResponse(BaseModel):
    message: str
    check_in: datetime


class CheckOutResponse(BaseModel):
    message: str
    check_out: datetime
    hours_worked: float


class TodayAttendance(BaseModel):
    attendance: Optional[AttendanceOut] = None
    is_checked_in: bool
    is_checked_out: bool


class AttendanceHistory(BaseModel):
    attendance: List[AttendanceOut]
    total_hours: float
    total_days: int
    month: int
    year: int
