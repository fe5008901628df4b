from datetime import date, datetime
from pydantic import BaseModel, Field
from typing import Optional, List, Union
from hr_ledger.models.leaves import LeaveStatus, LeaveType


class CreateLeave(BaseModel):
    start_date: date
    end_date: date
    leave_type: LeaveType
    reason: str = Field(..., min_length=1)


class RejectLeave(BaseModel):
    rejection_reason: Optional[str] = None


class EmployeeSummary(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None


# an employee is either referenced by id or expanded for display
EmployeeRef = Union[EmployeeSummary, str]


class LeaveOut(BaseModel):
    id: str
    employee_id: str
    employee: Optional[EmployeeRef] = None
    start_date: date
    end_date: date
    leave_type: LeaveType
    reason: str
    working_days: int = 0
    status: LeaveStatus
    approved_by: Optional[EmployeeRef] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[EmployeeRef] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: Optional[datetime] = None


class LeaveResponse(BaseModel):
    message: str
    leave: LeaveOut


class LeaveList(BaseModel):
    leaves: List[LeaveOut] = Field(
        ...,
        description="leave requests, newest first"
    )
    class Config:
        json_schema_extra = {
            "example": {
                "leaves": [
                    {
                        "id": "65f1c0ffee0000000000beef",
                        "employee_id": "65f1c0ffee0000000000cafe",
                        "employee": {
                            "id": "65f1c0ffee0000000000cafe",
                            "name": "John Doe",
                            "email": "john.doe@company.com"
                        },
                        "start_date": "2024-03-04",
                        "end_date": "2024-03-06",
                        "leave_type": "vacation",
                        "reason": "Family trip",
                        "working_days": 3,
                        "status": "pending"
                    }
                ]
            }
        }
