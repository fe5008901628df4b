"""Reset the ledger database and fill it with demo accounts, leave requests and attendance.

Run with ``python -m hr_ledger.seed``.
"""
import asyncio
import logging
import random
from datetime import datetime, timedelta, timezone

from hr_ledger.config import settings
from hr_ledger.db import client, db, ensure_indexes
from hr_ledger.models.employees import Employee, Role
from hr_ledger.models.leaves import LeaveType
from hr_ledger.utils.app_utils import hash_password
from hr_ledger.utils.attendance_utils import check_in, check_out
from hr_ledger.utils.leave_utils import apply_leave, approve_leave

UTC = timezone.utc

logger = logging.getLogger(__name__)

EMPLOYEES = [
    ("John Doe", "john.doe@company.com", 20),
    ("Jane Smith", "jane.smith@company.com", 18),
    ("Mike Johnson", "mike.johnson@company.com", 22),
    ("Sarah Wilson", "sarah.wilson@company.com", 15),
    ("David Brown", "david.brown@company.com", 20),
]


def next_weekday(day, offset_days):
    day = day + timedelta(days=offset_days)
    while day.weekday() >= 5:
        day += timedelta(days=1)
    return day


async def seed_data():
    for collection in ("employees", "leaves", "attendance", "system_activity"):
        await db[collection].delete_many({})
    await ensure_indexes(db)
    logger.info("Cleared existing data")

    admin = Employee(
        name="Admin User",
        email="admin@company.com",
        password=hash_password("admin123"),
        role=Role.ADMIN,
        leave_balance=settings.ADMIN_LEAVE_ALLOWANCE
    )
    admin_id = str((await db.employees.insert_one(admin.model_dump())).inserted_id)
    logger.info("Created admin user")

    employee_ids = []
    for name, email, balance in EMPLOYEES:
        employee = Employee(
            name=name,
            email=email,
            password=hash_password("employee123"),
            leave_balance=balance
        )
        result = await db.employees.insert_one(employee.model_dump())
        employee_ids.append(str(result.inserted_id))
        logger.info("Created employee: %s", name)

    now = datetime.now(UTC)
    today = now.date()

    first_start = next_weekday(today, 14)
    await apply_leave(db, employee_ids[0], first_start, next_weekday(first_start, 1),
                      LeaveType.VACATION, "Family vacation", today=today, now=now)

    second_start = next_weekday(today, 7)
    sick_leave = await apply_leave(db, employee_ids[1], second_start, second_start,
                                   LeaveType.SICK, "Doctor appointment", today=today, now=now)
    await approve_leave(db, sick_leave["id"], admin_id, now)

    third_start = next_weekday(today, 21)
    remote_leave = await apply_leave(db, employee_ids[2], third_start, next_weekday(third_start, 2),
                                     LeaveType.WORK_FROM_HOME, "Remote work", today=today, now=now)
    await approve_leave(db, remote_leave["id"], admin_id, now)
    logger.info("Created leave requests")

    start_of_month = today.replace(day=1)
    for offset in range(10):
        day = start_of_month + timedelta(days=offset)
        if day >= today or day.weekday() >= 5:
            continue

        for employee_id in employee_ids[:3]:
            arrived = datetime(day.year, day.month, day.day, 9, random.randint(0, 29), tzinfo=UTC)
            left = datetime(day.year, day.month, day.day, 17, random.randint(0, 59), tzinfo=UTC)
            await check_in(db, employee_id, arrived)
            await check_out(db, employee_id, left)
    logger.info("Created attendance records")

    logger.info("Seed data created successfully")
    logger.info("Admin: admin@company.com / admin123")
    logger.info("Employee: john.doe@company.com / employee123")


def main():
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
    try:
        asyncio.run(seed_data())
    finally:
        client.close()


if __name__ == "__main__":
    main()
