from datetime import datetime
from typing import Optional
from pytz import UTC
from fastapi import APIRouter, Body, Depends, Query
from hr_ledger.db import get_db
from hr_ledger.schemas.attendance import (AttendanceHistory, CheckIn, CheckInResponse,
                                          CheckOutResponse, TodayAttendance)
from hr_ledger.utils.app_utils import get_current_user
from hr_ledger.utils.attendance_utils import (check_in, check_out, get_attendance_history,
                                              get_today_attendance)

router = APIRouter()


@router.post("/check-in", response_model=CheckInResponse)
async def employee_check_in(
    check_in_request: Optional[CheckIn] = Body(None),
    user_and_type: tuple = Depends(get_current_user),
    db=Depends(get_db)
):
    """
    Records the current user's check-in for today, with optional notes.
    Args:
        check_in_request (CheckIn): optional body carrying free-text notes.
        user_and_type (tuple): A tuple containing the user document and user type, obtained from get_current_user.
    Returns:
        dict: A dictionary with a success message and the recorded check-in time
            Example: {"message": "Checked in successfully", "check_in": "2024-03-04T08:00:00Z"}
    Raises:
        AlreadyCheckedInError: If the user has already checked in today (400)
    """
    user, _ = user_and_type

    notes = check_in_request.notes if check_in_request else None
    attendance = await check_in(db, str(user["_id"]), datetime.now(UTC), notes=notes)
    return {"message": "Checked in successfully", "check_in": attendance["check_in"]}


@router.post("/check-out", response_model=CheckOutResponse)
async def employee_check_out(user_and_type: tuple = Depends(get_current_user), db=Depends(get_db)):
    """
    Closes today's attendance record for the current user and returns the hours worked.
    Raises:
        NotCheckedInError: If there is no check-in for today (400)
        AlreadyCheckedOutError: If the user already checked out today (400)
    """
    user, _ = user_and_type

    attendance = await check_out(db, str(user["_id"]), datetime.now(UTC))
    return {
        "message": "Checked out successfully",
        "check_out": attendance["check_out"],
        "hours_worked": attendance["hours_worked"]
    }


@router.get("/today", response_model=TodayAttendance)
async def today_attendance(user_and_type: tuple = Depends(get_current_user), db=Depends(get_db)):
    user, _ = user_and_type
    return await get_today_attendance(db, str(user["_id"]), datetime.now(UTC).date())


@router.get("/my-attendance", response_model=AttendanceHistory)
async def my_attendance(
    month: Optional[int] = Query(None, ge=1, le=12, description="Month for the report (default: previous month)"),
    year: Optional[int] = Query(None, ge=1970, description="Year for the report (default: previous month's year)"),
    user_and_type: tuple = Depends(get_current_user),
    db=Depends(get_db)
):
    """
    Returns the current user's attendance records for a month, newest first,
    with the total hours worked and the number of recorded days.
    Both month and year are needed to pick a month; otherwise the previous calendar month is used.
    """
    user, _ = user_and_type
    return await get_attendance_history(
        db, str(user["_id"]), today=datetime.now(UTC).date(), month=month, year=year
    )
