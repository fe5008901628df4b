from datetime import datetime, timezone
from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum

UTC = timezone.utc


class LeaveType(str, Enum):
    VACATION = "vacation"
    SICK = "sick"
    WORK_FROM_HOME = "work_from_home"


class LeaveStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


ACTIVE_LEAVE_STATUSES = [LeaveStatus.PENDING.value, LeaveStatus.APPROVED.value]


class Leave(BaseModel):
    employee_id: str
    start_date: str  # YYYY-MM-DD, inclusive
    end_date: str  # YYYY-MM-DD, inclusive
    leave_type: LeaveType
    reason: str
    working_days: int = 0
    status: LeaveStatus = LeaveStatus.PENDING
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[str] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    class Config:
        use_enum_values = True
        validate_default = True
