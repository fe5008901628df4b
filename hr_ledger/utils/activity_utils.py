from datetime import datetime
from typing import Optional
from pytz import UTC


async def log_admin_activity(
    db,
    admin_id: str,
    type: str,
    action: str,
    status: str = "success",
    target_id: Optional[str] = None
):
    """
    Record an admin decision in the system_activity collection.

    Args:
        admin_id (str): The admin's identifier.
        type (str): Area of the decision, e.g. "leave".
        action (str): What was done, e.g. "approved".
        status (str): Outcome of the activity.
        target_id (str, optional): The record the decision applies to.
    """
    await db.system_activity.insert_one({
        "admin_id": admin_id,
        "type": type,
        "action": action,
        "status": status,
        "target_id": target_id,
        "timestamp": datetime.now(UTC)
    })
