from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING
from hr_ledger.config import settings


client = AsyncIOMotorClient(settings.MONGODB_URL, tz_aware=True)
db = client[settings.DATABASE_NAME]


async def get_db():
    """FastAPI dependency returning the ledger database handle."""
    return db


async def ensure_indexes(database) -> None:
    """
    Create the indexes the ledger relies on.
    The (employee_id, date) unique index on attendance is what keeps a second
    check-in for the same day from creating a duplicate record.
    """
    await database.employees.create_index([("email", ASCENDING)], unique=True)
    await database.attendance.create_index(
        [("employee_id", ASCENDING), ("date", ASCENDING)], unique=True
    )
    await database.attendance.create_index([("date", ASCENDING)])
    await database.leaves.create_index([("employee_id", ASCENDING), ("start_date", ASCENDING)])
    await database.leaves.create_index([("status", ASCENDING), ("created_at", DESCENDING)])
