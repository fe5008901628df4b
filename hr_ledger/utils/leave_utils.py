import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Union
from pytz import UTC
from pymongo import ReturnDocument

from hr_ledger.exceptions import (AlreadyProcessedError, ConflictError, InsufficientBalanceError,
                                  InvalidRangeError, NotFoundError, OverlapError, PastDateError,
                                  ValidationError)
from hr_ledger.models.leaves import ACTIVE_LEAVE_STATUSES, Leave, LeaveStatus, LeaveType
from hr_ledger.utils.activity_utils import log_admin_activity
from hr_ledger.utils.app_utils import parse_object_id, serialize_doc
from hr_ledger.utils.balance_utils import (COMMIT_APPLYING, VISIBLE_LEAVES, commit_leave_approval,
                                           raise_lost_decision)
from hr_ledger.utils.calendar_utils import to_date_key, working_days

logger = logging.getLogger(__name__)

MAX_APPLY_ATTEMPTS = 3


def _status_value(status: Union[str, LeaveStatus, None]) -> Optional[str]:
    if status is None:
        return None
    try:
        return LeaveStatus(status).value
    except ValueError:
        raise ValidationError(f"Unknown leave status '{status}'")


def _version_filter(employee: Dict[str, Any]) -> Dict[str, Any]:
    version = employee.get("leave_version")
    if version is None:
        return {"_id": employee["_id"], "leave_version": {"$exists": False}}
    return {"_id": employee["_id"], "leave_version": version}


async def resolve_employee_refs(db, employee_ids: Iterable[str]) -> Dict[str, Dict[str, str]]:
    """Expand employee ids into {id: {id, name, email}} for display."""
    object_ids = []
    for employee_id in set(filter(None, employee_ids)):
        try:
            object_ids.append(parse_object_id(employee_id, "Employee"))
        except NotFoundError:
            continue

    if not object_ids:
        return {}

    employees = await db.employees.find(
        {"_id": {"$in": object_ids}}, {"name": 1, "email": 1}
    ).to_list(length=None)

    return {
        str(employee["_id"]): {
            "id": str(employee["_id"]),
            "name": employee.get("name"),
            "email": employee.get("email"),
        }
        for employee in employees
    }


async def expand_leaves(db, leaves: List[Dict[str, Any]], expand_employee: bool = True) -> List[Dict[str, Any]]:
    """Serialize leaves, replacing employee/approver ids with their summaries where known."""
    ids = [leave.get("approved_by") for leave in leaves] + [leave.get("rejected_by") for leave in leaves]
    if expand_employee:
        ids += [leave.get("employee_id") for leave in leaves]
    summaries = await resolve_employee_refs(db, ids)

    expanded = []
    for leave in leaves:
        data = serialize_doc(leave)
        data.pop("commit", None)
        if expand_employee:
            data["employee"] = summaries.get(leave["employee_id"], leave["employee_id"])
        for field in ("approved_by", "rejected_by"):
            if data.get(field):
                data[field] = summaries.get(data[field], data[field])
        expanded.append(data)
    return expanded


async def _check_leave_allowed(db, employee: Dict[str, Any], start_key: str, end_key: str, cost: int) -> None:
    employee_id = str(employee["_id"])

    # days of pending requests, staged ones included, are reserved against the balance until decided
    pending = await db.leaves.find(
        {"employee_id": employee_id, "status": LeaveStatus.PENDING.value},
        {"working_days": 1}
    ).to_list(length=None)
    reserved = sum(leave.get("working_days") or 0 for leave in pending)
    available = max(employee.get("leave_balance", 0) - reserved, 0)

    if available < cost:
        raise InsufficientBalanceError(required=cost, available=available)

    overlapping = await db.leaves.find_one({
        "employee_id": employee_id,
        "status": {"$in": ACTIVE_LEAVE_STATUSES},
        "start_date": {"$lte": end_key},
        "end_date": {"$gte": start_key}
    })
    if overlapping:
        raise OverlapError(details={"leave_id": str(overlapping["_id"])})


async def apply_leave(
    db,
    employee_id: str,
    start_date: date,
    end_date: date,
    leave_type: Union[str, LeaveType],
    reason: str,
    today: date,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Create a pending leave request for an employee.

    Checks, in order: start not in the past, end not before start, non-empty reason,
    enough unreserved balance for the working-day cost, and no overlap with the
    employee's pending or approved requests. Nothing is debited here; the balance is
    only spent when the request is approved.

    Concurrent applications by the same employee are serialized optimistically on the
    employee's ``leave_version``: a request whose version bump loses is withdrawn and
    its checks are re-run against the state the winner left behind. Approvals bump the
    same version, so a balance debited mid-check also forces a re-run. Until the
    version check is won the request is staged under a ``commit`` marker: approve and
    reject cannot claim it and listings do not show it.
    """
    if start_date < today:
        raise PastDateError()

    if end_date < start_date:
        raise InvalidRangeError()

    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A reason is required for leave requests")

    try:
        leave_type = LeaveType(leave_type)
    except ValueError:
        raise ValidationError(f"Unknown leave type '{leave_type}'")

    now = now or datetime.now(UTC)
    cost = working_days(start_date, end_date)
    start_key, end_key = to_date_key(start_date), to_date_key(end_date)
    employee_oid = parse_object_id(employee_id, "Employee")

    for attempt in range(MAX_APPLY_ATTEMPTS):
        employee = await db.employees.find_one({"_id": employee_oid})
        if not employee:
            raise NotFoundError("User not found")

        await _check_leave_allowed(db, employee, start_key, end_key, cost)

        leave = Leave(
            employee_id=str(employee_oid),
            start_date=start_key,
            end_date=end_key,
            leave_type=leave_type,
            reason=reason,
            working_days=cost,
            created_at=now,
            updated_at=now
        )
        staged = leave.model_dump()
        staged["commit"] = {"state": COMMIT_APPLYING, "started_at": now}
        result = await db.leaves.insert_one(staged)

        bumped = await db.employees.update_one(_version_filter(employee), {"$inc": {"leave_version": 1}})
        if bumped.modified_count == 1:
            logger.info(
                "Leave %s requested by %s for %s..%s (%s working days)",
                result.inserted_id, employee_id, start_key, end_key, cost
            )
            created = await db.leaves.find_one_and_update(
                {"_id": result.inserted_id, "commit.state": COMMIT_APPLYING},
                {"$unset": {"commit": ""}},
                return_document=ReturnDocument.AFTER
            )
            if created is None:
                # withdrawn by commit recovery in the meantime
                raise ConflictError("Leave request could not be completed, please try again")
            return serialize_doc(created)

        # another request or a debit for this employee landed between our checks and our insert
        await db.leaves.delete_one({"_id": result.inserted_id, "commit.state": COMMIT_APPLYING})
        logger.warning("Leave application for %s raced another request (attempt %s)", employee_id, attempt + 1)

    raise ConflictError("Too many concurrent leave requests, please try again")


async def list_my_leaves(db, employee_id: str, status: Optional[str] = None) -> List[Dict[str, Any]]:
    query: Dict[str, Any] = {"employee_id": employee_id, **VISIBLE_LEAVES}
    status = _status_value(status)
    if status:
        query["status"] = status

    leaves = await db.leaves.find(query).sort([("created_at", -1), ("_id", -1)]).to_list(length=None)
    return await expand_leaves(db, leaves, expand_employee=False)


async def list_all_leaves(
    db,
    status: Optional[str] = None,
    employee_id: Optional[str] = None
) -> List[Dict[str, Any]]:
    """Administrative listing across employees, newest first, employee references expanded."""
    query: Dict[str, Any] = dict(VISIBLE_LEAVES)
    status = _status_value(status)
    if status:
        query["status"] = status
    if employee_id:
        query["employee_id"] = employee_id

    leaves = await db.leaves.find(query).sort([("created_at", -1), ("_id", -1)]).to_list(length=None)
    return await expand_leaves(db, leaves)


async def approve_leave(db, leave_id: str, admin_id: str, now: datetime) -> Dict[str, Any]:
    leave = await db.leaves.find_one({"_id": parse_object_id(leave_id, "Leave request")})
    if not leave:
        raise NotFoundError("Leave request not found")

    if leave.get("status") != LeaveStatus.PENDING.value:
        raise AlreadyProcessedError()

    approved = await commit_leave_approval(db, leave, admin_id, now)

    await log_admin_activity(db, admin_id, type="leave", action="approved", target_id=leave_id)

    expanded = await expand_leaves(db, [approved])
    return expanded[0]


async def reject_leave(
    db,
    leave_id: str,
    admin_id: str,
    rejection_reason: Optional[str],
    now: datetime
) -> Dict[str, Any]:
    """
    Move a pending request to rejected. The transition is a single conditional update,
    so once another decision has been made this one fails with AlreadyProcessedError.
    While an approval still holds the request, which may yet return it to pending,
    it fails with ConflictError instead. The balance is not touched.
    """
    leave_oid = parse_object_id(leave_id, "Leave request")
    rejection_reason = (rejection_reason or "").strip() or None

    rejected = await db.leaves.find_one_and_update(
        {"_id": leave_oid, "status": LeaveStatus.PENDING.value, "commit": None},
        {"$set": {
            "status": LeaveStatus.REJECTED.value,
            "rejected_by": admin_id,
            "rejected_at": now,
            "rejection_reason": rejection_reason,
            "updated_at": now
        }},
        return_document=ReturnDocument.AFTER
    )

    if rejected is None:
        await raise_lost_decision(db, leave_oid)

    logger.info("Leave %s rejected by %s", leave_id, admin_id)
    await log_admin_activity(db, admin_id, type="leave", action="rejected", target_id=leave_id)

    expanded = await expand_leaves(db, [rejected])
    return expanded[0]
