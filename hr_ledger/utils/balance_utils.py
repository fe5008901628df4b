"""
Balance arbiter: commits a leave approval and the matching leave_balance debit together.

Every step is a single-document conditional update, so the commit holds across
independent processes without multi-document transactions:

1. claim    - the pending request gets a ``commit`` marker; only one approve/reject
              can observe it pending and unmarked.
2. debit    - ``leave_balance >= cost`` and "not already debited for this leave" are
              part of the update filter, so concurrent debits against one employee
              serialize on the employee document and never drive the balance negative.
3. finalize - the marker is swapped for ``status: approved``.

A failure between steps is compensated before the error is surfaced. A crash between
steps leaves the marker behind for ``recover_stale_commits``.

Debits and refunds bump the employee's ``leave_version`` so that a leave application
checked against a balance that changed underneath it loses its version check and
re-runs.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict
from pytz import UTC
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from hr_ledger.exceptions import (AlreadyProcessedError, ConflictError, InsufficientBalanceError,
                                  LedgerInternalError, NotFoundError)
from hr_ledger.models.leaves import LeaveStatus
from hr_ledger.utils.app_utils import parse_object_id
from hr_ledger.utils.calendar_utils import from_date_key, working_days

logger = logging.getLogger(__name__)

COMMIT_DEBITING = "debiting"
# set on a request while apply_leave has not yet won its version check
COMMIT_APPLYING = "applying"

# requests that exist for callers, i.e. not still being applied for
VISIBLE_LEAVES = {"commit.state": {"$ne": COMMIT_APPLYING}}


def leave_cost(leave: Dict[str, Any]) -> int:
    return working_days(from_date_key(leave["start_date"]), from_date_key(leave["end_date"]))


async def _release_claim(db, leave_id) -> None:
    await db.leaves.update_one(
        {"_id": leave_id, "commit.state": COMMIT_DEBITING},
        {"$unset": {"commit": ""}}
    )


async def _refund_debit(db, employee_oid, leave_key: str, cost: int) -> None:
    # only refunds when the debit for this leave was actually recorded
    await db.employees.update_one(
        {"_id": employee_oid, "committed_leave_ids": leave_key},
        {"$inc": {"leave_balance": cost, "leave_version": 1}, "$pull": {"committed_leave_ids": leave_key}}
    )


async def raise_lost_decision(db, leave_id) -> None:
    """
    Report why an approve/reject could not claim a request. A request that is still
    pending is held by an in-flight approval or application, which may yet leave it
    pending, so the caller is told to retry rather than that it was processed.
    """
    current = await db.leaves.find_one({"_id": leave_id}, {"status": 1})
    if current is None:
        raise NotFoundError("Leave request not found")
    if current.get("status") == LeaveStatus.PENDING.value:
        raise ConflictError("Leave request is being processed, please try again")
    raise AlreadyProcessedError()


async def _roll_back(db, leave_id, employee_oid, cost: int) -> None:
    try:
        await _refund_debit(db, employee_oid, str(leave_id), cost)
        await _release_claim(db, leave_id)
    except PyMongoError:
        logger.exception("Rollback of leave %s failed; left for commit recovery", leave_id)


async def commit_leave_approval(db, leave: Dict[str, Any], admin_id: str, now: datetime) -> Dict[str, Any]:
    """
    Approve ``leave`` and debit its working-day cost from the employee, all-or-nothing.

    Raises:
        NotFoundError: the request or its employee no longer exists.
        AlreadyProcessedError: another approve/reject got to the request first.
        ConflictError: the request is still pending but held by an in-flight
            approval or application.
        InsufficientBalanceError: the employee's current balance is below the cost.
        LedgerInternalError: persistence failed; partial effects were rolled back.
    """
    leave_id = leave["_id"]
    leave_key = str(leave_id)
    employee_oid = parse_object_id(leave["employee_id"], "Employee")
    cost = leave_cost(leave)

    claimed = await db.leaves.find_one_and_update(
        {"_id": leave_id, "status": LeaveStatus.PENDING.value, "commit": None},
        {"$set": {"commit": {
            "state": COMMIT_DEBITING,
            "admin_id": admin_id,
            "cost": cost,
            "started_at": now
        }}},
        return_document=ReturnDocument.AFTER
    )
    if claimed is None:
        logger.warning("Leave %s was claimed by another decision", leave_key)
        await raise_lost_decision(db, leave_id)

    try:
        employee = await db.employees.find_one_and_update(
            {
                "_id": employee_oid,
                "leave_balance": {"$gte": cost},
                "committed_leave_ids": {"$ne": leave_key}
            },
            {"$inc": {"leave_balance": -cost, "leave_version": 1}, "$addToSet": {"committed_leave_ids": leave_key}},
            return_document=ReturnDocument.AFTER
        )
    except PyMongoError:
        logger.exception("Debit of %s days for leave %s failed", cost, leave_key)
        await _roll_back(db, leave_id, employee_oid, cost)
        raise LedgerInternalError()

    if employee is None:
        await _release_claim(db, leave_id)
        current = await db.employees.find_one({"_id": employee_oid}, {"leave_balance": 1})
        if current is None:
            raise NotFoundError("Employee not found")
        logger.info(
            "Leave %s needs %s days but employee %s has %s",
            leave_key, cost, leave["employee_id"], current.get("leave_balance", 0)
        )
        raise InsufficientBalanceError(
            required=cost,
            available=current.get("leave_balance", 0),
            message="Employee has insufficient leave balance"
        )

    try:
        approved = await db.leaves.find_one_and_update(
            {"_id": leave_id, "status": LeaveStatus.PENDING.value, "commit.state": COMMIT_DEBITING},
            {
                "$set": {
                    "status": LeaveStatus.APPROVED.value,
                    "approved_by": admin_id,
                    "approved_at": now,
                    "working_days": cost,
                    "updated_at": now
                },
                "$unset": {"commit": ""}
            },
            return_document=ReturnDocument.AFTER
        )
    except PyMongoError:
        logger.exception("Finalizing approval of leave %s failed", leave_key)
        await _roll_back(db, leave_id, employee_oid, cost)
        raise LedgerInternalError()

    if approved is None:
        # commit recovery finished this approval first
        approved = await db.leaves.find_one({"_id": leave_id})
        if approved is None or approved.get("status") != LeaveStatus.APPROVED.value:
            raise LedgerInternalError()

    logger.info(
        "Leave %s approved by %s; %s days debited, balance now %s",
        leave_key, admin_id, cost, employee.get("leave_balance")
    )
    return approved


async def recover_stale_commits(db, now: datetime, stale_after: timedelta) -> Dict[str, int]:
    """
    Finish or undo approvals interrupted between the claim and finalize steps.
    A marked request whose debit is recorded on the employee is rolled forward to
    approved; one without a recorded debit goes back to plain pending. A request
    left staged by an application that never completed is withdrawn.
    """
    cutoff = now - stale_after
    rolled_forward = 0
    rolled_back = 0
    withdrawn = 0

    in_flight = await db.leaves.find(
        {"commit.state": {"$in": [COMMIT_DEBITING, COMMIT_APPLYING]}}
    ).to_list(length=None)
    for leave in in_flight:
        started_at = leave["commit"].get("started_at")
        if started_at is not None:
            if started_at.tzinfo is None:
                started_at = started_at.replace(tzinfo=UTC)
            if started_at > cutoff:
                continue

        if leave["commit"]["state"] == COMMIT_APPLYING:
            # the application never reported success
            result = await db.leaves.delete_one({"_id": leave["_id"], "commit.state": COMMIT_APPLYING})
            withdrawn += result.deleted_count
            continue

        leave_key = str(leave["_id"])
        debited = await db.employees.find_one(
            {"_id": parse_object_id(leave["employee_id"], "Employee"), "committed_leave_ids": leave_key},
            {"_id": 1}
        )
        if debited:
            await db.leaves.update_one(
                {"_id": leave["_id"], "commit.state": COMMIT_DEBITING},
                {
                    "$set": {
                        "status": LeaveStatus.APPROVED.value,
                        "approved_by": leave["commit"].get("admin_id"),
                        "approved_at": leave["commit"].get("started_at") or now,
                        "working_days": leave["commit"].get("cost", leave.get("working_days")),
                        "updated_at": now
                    },
                    "$unset": {"commit": ""}
                }
            )
            rolled_forward += 1
        else:
            await _release_claim(db, leave["_id"])
            rolled_back += 1

    if rolled_forward or rolled_back or withdrawn:
        logger.warning(
            "Commit recovery: %s rolled forward, %s rolled back, %s unfinished applications withdrawn",
            rolled_forward, rolled_back, withdrawn
        )
    return {"rolled_forward": rolled_forward, "rolled_back": rolled_back, "withdrawn": withdrawn}
