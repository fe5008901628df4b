from pydantic import BaseModel, Field
from datetime import datetime, timezone
from typing import List
from enum import Enum

UTC = timezone.utc


class Role(str, Enum):
    ADMIN = "admin"
    EMPLOYEE = "employee"


class Employee(BaseModel):
    name: str
    email: str
    password: str
    role: Role = Role.EMPLOYEE
    leave_balance: int = 0
    committed_leave_ids: List[str] = Field(default_factory=list)  # leaves already debited from leave_balance
    leave_version: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    class Config:
        use_enum_values = True
        validate_default = True
