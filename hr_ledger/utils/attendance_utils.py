import logging
from datetime import date, datetime
from typing import Any, Dict, Optional
from pytz import UTC
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from hr_ledger.exceptions import (AlreadyCheckedInError, AlreadyCheckedOutError,
                                  NotCheckedInError, ValidationError)
from hr_ledger.models.attendance import AttendanceRecord
from hr_ledger.utils.app_utils import serialize_doc
from hr_ledger.utils.calendar_utils import month_bounds, previous_month, to_date_key

logger = logging.getLogger(__name__)


def as_utc(value: datetime) -> datetime:
    # Mongo hands back naive datetimes unless the client is tz_aware; treat them as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def calculate_hours_worked(check_in: datetime, check_out: datetime) -> float:
    return round((as_utc(check_out) - as_utc(check_in)).total_seconds() / 3600, 2)


async def check_in(db, employee_id: str, now: datetime, notes: Optional[str] = None) -> Dict[str, Any]:
    """
    Record today's check-in for an employee.
    The record for (employee, day) is created on the first check-in. A second check-in
    on the same day raises AlreadyCheckedInError, including when two check-ins race:
    the loser's upsert collides with the unique (employee_id, date) index.
    """
    now = as_utc(now)
    date_key = to_date_key(now)

    existing = await db.attendance.find_one({"employee_id": employee_id, "date": date_key})
    if existing and existing.get("check_in"):
        raise AlreadyCheckedInError()

    notes = (notes or "").strip() or None
    record = AttendanceRecord(employee_id=employee_id, date=date_key, notes=notes, created_at=now, updated_at=now)
    on_insert = record.model_dump(exclude={"employee_id", "date", "check_in", "updated_at"})

    try:
        await db.attendance.update_one(
            {"employee_id": employee_id, "date": date_key, "check_in": None},
            {"$set": {"check_in": now, "updated_at": now}, "$setOnInsert": on_insert},
            upsert=True
        )
    except DuplicateKeyError:
        logger.warning("Concurrent check-in rejected for employee %s on %s", employee_id, date_key)
        raise AlreadyCheckedInError()

    logger.info("Employee %s checked in on %s", employee_id, date_key)
    attendance = await db.attendance.find_one({"employee_id": employee_id, "date": date_key})
    return serialize_doc(attendance)


async def check_out(db, employee_id: str, now: datetime) -> Dict[str, Any]:
    """
    Close today's attendance record: sets check_out, hours_worked (2 decimals) and is_present.
    Raises NotCheckedInError without a prior check-in and AlreadyCheckedOutError on repeat.
    """
    now = as_utc(now)
    date_key = to_date_key(now)

    attendance = await db.attendance.find_one({"employee_id": employee_id, "date": date_key})
    if not attendance or not attendance.get("check_in"):
        raise NotCheckedInError()

    if attendance.get("check_out"):
        raise AlreadyCheckedOutError()

    check_in_time = as_utc(attendance["check_in"])
    if now < check_in_time:
        raise ValidationError("Check-out time cannot be before check-in time")

    hours_worked = calculate_hours_worked(check_in_time, now)

    updated = await db.attendance.find_one_and_update(
        {"_id": attendance["_id"], "check_out": None},
        {"$set": {
            "check_out": now,
            "hours_worked": hours_worked,
            "is_present": True,
            "updated_at": now
        }},
        return_document=ReturnDocument.AFTER
    )
    if updated is None:
        logger.warning("Concurrent check-out rejected for employee %s on %s", employee_id, date_key)
        raise AlreadyCheckedOutError()

    logger.info("Employee %s checked out on %s after %.2f hours", employee_id, date_key, hours_worked)
    return serialize_doc(updated)


async def get_today_attendance(db, employee_id: str, today: date) -> Dict[str, Any]:
    attendance = await db.attendance.find_one({"employee_id": employee_id, "date": to_date_key(today)})

    return {
        "attendance": serialize_doc(attendance),
        "is_checked_in": bool(attendance and attendance.get("check_in")),
        "is_checked_out": bool(attendance and attendance.get("check_out")),
    }


async def get_attendance_history(
    db,
    employee_id: str,
    today: date,
    month: Optional[int] = None,
    year: Optional[int] = None
) -> Dict[str, Any]:
    """
    Attendance records for one calendar month, newest first.
    Without month/year the previous calendar month (relative to today) is used.
    Returns the records plus total_hours (2 decimals) and total_days.
    """
    if month is None or year is None:
        month, year = previous_month(today)

    if not 1 <= month <= 12:
        raise ValidationError("Month must be between 1 and 12")

    first_day, last_day = month_bounds(month, year)

    records = await db.attendance.find({
        "employee_id": employee_id,
        "date": {"$gte": to_date_key(first_day), "$lte": to_date_key(last_day)}
    }).sort("date", -1).to_list(length=None)

    total_hours = sum(record.get("hours_worked") or 0 for record in records)

    return {
        "attendance": [serialize_doc(record) for record in records],
        "total_hours": round(total_hours, 2),
        "total_days": len(records),
        "month": month,
        "year": year,
    }
