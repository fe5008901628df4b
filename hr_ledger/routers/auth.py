import logging
from fastapi import APIRouter, HTTPException, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from datetime import timedelta
from pymongo.errors import DuplicateKeyError
from hr_ledger.config import settings
from hr_ledger.db import get_db
from hr_ledger.models.employees import Employee, Role
from hr_ledger.schemas.employee import RegisterEmployee, RegisteredEmployee
from hr_ledger.utils.app_utils import Token, authenticate_user, create_access_token, hash_password

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=RegisteredEmployee)
async def register(employee_request: RegisterEmployee, db=Depends(get_db)):
    """
    Register a new employee or admin account.
    The starting leave balance comes from configuration: DEFAULT_LEAVE_ALLOWANCE for
    employees and ADMIN_LEAVE_ALLOWANCE for admins.
    Raises:
        HTTPException: 400 status code if the email is already registered
    """
    existing_user = await db.employees.find_one({"email": employee_request.email})
    if existing_user:
        raise HTTPException(status_code=400, detail="User already exists")

    if employee_request.role == Role.ADMIN:
        leave_balance = settings.ADMIN_LEAVE_ALLOWANCE
    else:
        leave_balance = settings.DEFAULT_LEAVE_ALLOWANCE

    employee_instance = Employee(
        name=employee_request.name,
        email=employee_request.email,
        password=hash_password(employee_request.password),
        role=employee_request.role,
        leave_balance=leave_balance
    )

    try:
        result = await db.employees.insert_one(employee_instance.model_dump())
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="User already exists")

    logger.info("Registered %s account %s", employee_instance.role, employee_instance.email)

    return {
        "id": str(result.inserted_id),
        "name": employee_instance.name,
        "email": employee_instance.email,
        "role": employee_instance.role,
        "leave_balance": employee_instance.leave_balance
    }


@router.post("/login", response_model=Token)
async def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends(), db=Depends(get_db)):
    """
    Exchange email (as username) and password for a bearer token.
    """
    user = await authenticate_user(db, form_data.username, form_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    expiry_time = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    token = create_access_token(payload={"sub": user["email"], "role": user.get("role")}, expiry=expiry_time)

    return {"access_token": token, "token_type": "bearer"}
