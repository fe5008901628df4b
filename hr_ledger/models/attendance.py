from pydantic import BaseModel, Field
from datetime import datetime, timezone
from typing import Optional

UTC = timezone.utc


class AttendanceRecord(BaseModel):
    employee_id: str
    date: str  # YYYY-MM-DD, one record per employee per day
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    hours_worked: float = 0
    is_present: bool = False
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
