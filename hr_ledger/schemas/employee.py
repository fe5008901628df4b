from pydantic import BaseModel, EmailStr, Field
from hr_ledger.models.employees import Role


class RegisterEmployee(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Role = Role.EMPLOYEE


class RegisteredEmployee(BaseModel):
    id: str
    name: str
    email: str
    role: Role
    leave_balance: int
