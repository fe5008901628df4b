from datetime import datetime
from fastapi import APIRouter, Body, Depends, Query, status
from typing import Optional
from pytz import UTC
from hr_ledger.db import get_db
from hr_ledger.models.leaves import LeaveStatus
from hr_ledger.schemas.leave import CreateLeave, LeaveList, LeaveResponse, RejectLeave
from hr_ledger.utils.app_utils import get_current_user, require_admin
from hr_ledger.utils.leave_utils import (apply_leave, approve_leave, list_all_leaves,
                                         list_my_leaves, reject_leave)

router = APIRouter()


@router.post("/apply", status_code=status.HTTP_201_CREATED, response_model=LeaveResponse)
async def apply_for_leave(
    leave_request: CreateLeave,
    user_and_type: tuple = Depends(get_current_user),
    db=Depends(get_db)
):
    """Create a new leave request for the current user.
    The request is created as pending; no leave days are deducted until an admin approves it.
    Args:
        leave_request (CreateLeave): start_date, end_date (inclusive), leave_type and reason.
        user_and_type (tuple): Tuple containing user information and user type from authentication.
    Returns:
        dict: A dictionary containing:
            - message: Success message
            - leave: The created leave request
    Raises:
        ValidationError: start date in the past, end before start, or empty reason (400)
        InsufficientBalanceError: requested working days exceed the available balance (400),
            details carry the required and available day counts
        OverlapError: the period overlaps another pending or approved request (400)
    """
    user, _ = user_and_type
    now = datetime.now(UTC)

    leave = await apply_leave(
        db,
        employee_id=str(user["_id"]),
        start_date=leave_request.start_date,
        end_date=leave_request.end_date,
        leave_type=leave_request.leave_type,
        reason=leave_request.reason,
        today=now.date(),
        now=now
    )
    return {"message": "Leave request submitted successfully", "leave": leave}


@router.get("/my-leaves", response_model=LeaveList)
async def my_leaves(
    status: Optional[LeaveStatus] = Query(None, description="Filter by pending, approved, or rejected"),
    user_and_type: tuple = Depends(get_current_user),
    db=Depends(get_db)
):
    user, _ = user_and_type
    leaves = await list_my_leaves(db, str(user["_id"]), status)
    return {"leaves": leaves}


@router.get("/all", response_model=LeaveList)
async def all_leaves(
    status: Optional[LeaveStatus] = Query(None, description="Filter by pending, approved, or rejected"),
    employee: Optional[str] = Query(None, description="Only leaves of this employee id"),
    user_and_type: tuple = Depends(require_admin),
    db=Depends(get_db)
):
    """
    List leave requests of all employees, newest first, with employee details expanded.
    Only admin users can access this endpoint.
    """
    leaves = await list_all_leaves(db, status=status, employee_id=employee)
    return {"leaves": leaves}


@router.patch("/{leave_id}/approve", response_model=LeaveResponse)
async def approve_leave_request(
    leave_id: str,
    user_and_type: tuple = Depends(require_admin),
    db=Depends(get_db)
):
    """
    Approves a pending leave request and deducts its working days from the employee's balance.
    The status change and the deduction are committed together; if the employee's current
    balance no longer covers the request nothing changes.
    Args:
        leave_id (str): The ID of the leave request to be approved.
        user_and_type (tuple): The admin's user document and type, obtained from authentication.
    Returns:
        dict: A message confirming the approval and the approved leave.
    Raises:
        NotFoundError: If the leave request is not found (404)
        AlreadyProcessedError: If the leave has already been approved or rejected (409)
        ConflictError: If the leave is being processed by another request (409)
        InsufficientBalanceError: If the employee's balance is too low (400)
    """
    user, _ = user_and_type

    leave = await approve_leave(db, leave_id, str(user["_id"]), datetime.now(UTC))
    return {"message": "Leave request approved successfully", "leave": leave}


@router.patch("/{leave_id}/reject", response_model=LeaveResponse)
async def reject_leave_request(
    leave_id: str,
    rejection: Optional[RejectLeave] = Body(None),
    user_and_type: tuple = Depends(require_admin),
    db=Depends(get_db)
):
    """
    Reject a pending leave request, storing the optional rejection reason.
    The employee's leave balance is not affected.
    Raises:
        NotFoundError: If the leave request is not found (404)
        AlreadyProcessedError: If the leave has already been approved or rejected (409)
        ConflictError: If the leave is being processed by another request (409)
    """
    user, _ = user_and_type

    rejection_reason = rejection.rejection_reason if rejection else None
    leave = await reject_leave(db, leave_id, str(user["_id"]), rejection_reason, datetime.now(UTC))
    return {"message": "Leave request rejected successfully", "leave": leave}
