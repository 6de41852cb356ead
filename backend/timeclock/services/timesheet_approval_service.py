from datetime import date, datetime, time
from typing import List, Optional, Tuple
from bson import ObjectId
from bson.errors import InvalidId
from timeclock.db import get_db
from timeclock.models.timesheet import Timesheet, TimesheetStatus
from timeclock.services.clock_service import day_bounds, get_events_between
from timeclock.services.exceptions import (
    ReviewNotAllowed,
    TimesheetConflict,
    TimesheetNotFound,
    TimesheetNotPending
)
from timeclock.services.timesheet_service import summarize_period
from timeclock.utils.logger import log_debug

# Mongo keeps millisecond precision, so the period ends on the last whole millisecond
END_OF_DAY = time(23, 59, 59, 999000)

def period_bounds(first_day: date, last_day: date) -> Tuple[datetime, datetime]:
    return datetime.combine(first_day, time.min), datetime.combine(last_day, END_OF_DAY)

def check_overlaps(existing: List[Timesheet], start: datetime, end: datetime) -> Optional[Timesheet]:
    """
    Decide whether a timesheet may be generated for ``[start, end]``.

    Approved and pending timesheets that overlap the period block it. A
    rejected timesheet covering exactly the same period is returned so it can
    be resubmitted in place.

    Raises:
        TimesheetConflict: an approved or pending timesheet overlaps the period
    """
    overlapping = [ts for ts in existing if ts.start_date <= end and ts.end_date >= start]

    for status, message in (
        (TimesheetStatus.APPROVED,
         "A timesheet overlapping this period has already been approved and cannot be modified"),
        (TimesheetStatus.PENDING,
         "A timesheet overlapping this period is already pending approval"),
    ):
        conflict = next((ts for ts in overlapping if ts.status == status), None)
        if conflict:
            raise TimesheetConflict(message, {
                "timesheet_id": conflict.id,
                "status": conflict.status.value,
                "start_date": conflict.start_date.date().isoformat(),
                "end_date": conflict.end_date.date().isoformat()
            })

    return next(
        (ts for ts in overlapping
         if ts.status == TimesheetStatus.REJECTED and ts.start_date == start and ts.end_date == end),
        None
    )

def can_review(reviewer: dict, timesheet: Timesheet) -> bool:
    """Nobody reviews their own timesheet; managers only review employees'."""
    if timesheet.employee_id == str(reviewer["_id"]):
        return False
    if reviewer.get("role") == "manager" and timesheet.employee_role != "employee":
        return False
    return True

def check_reviewable(reviewer: dict, timesheet: Timesheet) -> None:
    if timesheet.status != TimesheetStatus.PENDING:
        raise TimesheetNotPending(
            "Timesheet is not pending approval",
            {"timesheet_id": timesheet.id, "status": timesheet.status.value}
        )
    if timesheet.employee_id == str(reviewer["_id"]):
        raise ReviewNotAllowed("You cannot review your own timesheet")
    if not can_review(reviewer, timesheet):
        raise ReviewNotAllowed(
            "Managers can only review employee timesheets. "
            "Manager and administrator timesheets require administrator review."
        )

def _to_timesheet(timesheet_doc: dict) -> Timesheet:
    timesheet_doc["_id"] = str(timesheet_doc["_id"])
    return Timesheet(**timesheet_doc)

def _object_id(timesheet_id: str) -> ObjectId:
    try:
        return ObjectId(timesheet_id)
    except InvalidId:
        raise TimesheetNotFound("Timesheet not found", {"timesheet_id": timesheet_id})

async def generate_timesheet(
    user: dict,
    first_day: date,
    last_day: date,
    as_of: datetime
) -> Tuple[Timesheet, bool]:
    """
    Build a timesheet from the user's clock events and submit it for approval.

    Returns:
        The pending timesheet and whether a rejected one was resubmitted

    Raises:
        TimesheetConflict: an approved or pending timesheet overlaps the period
        NoWorkedHours: the period has no worked time
    """
    db = get_db()
    employee_id = str(user["_id"])
    organization_id = user["organization_id"]
    start, end = period_bounds(first_day, last_day)

    existing = await db["timesheets"].find({
        "employee_id": employee_id,
        "organization_id": organization_id,
        "start_date": {"$lte": end},
        "end_date": {"$gte": start}
    }).to_list(None)
    rejected = check_overlaps([_to_timesheet(doc) for doc in existing], start, end)

    _, events_end = day_bounds(last_day)
    events = await get_events_between(organization_id, start, events_end, employee_id=employee_id)
    summary = summarize_period(events, first_day, last_day, as_of)

    fields = {
        "total_hours": summary.total_hours,
        "regular_hours": summary.regular_hours,
        "overtime_hours": summary.overtime_hours,
        "break_hours": summary.break_hours,
        "status": TimesheetStatus.PENDING.value,
        "submitted_at": datetime.utcnow(),
        "approved_by": None,
        "approved_at": None,
        "notes": None
    }

    if rejected:
        log_debug("Resubmitting rejected timesheet", {"timesheet_id": rejected.id})
        oid = ObjectId(rejected.id)
        await db["timesheets"].update_one({"_id": oid}, {"$set": fields})
        return _to_timesheet(await db["timesheets"].find_one({"_id": oid})), True

    timesheet_doc = {
        "organization_id": organization_id,
        "employee_id": employee_id,
        "employee_role": user.get("role", "employee"),
        "start_date": start,
        "end_date": end,
        **fields
    }
    result = await db["timesheets"].insert_one(timesheet_doc)
    timesheet_doc["_id"] = result.inserted_id
    return _to_timesheet(timesheet_doc), False

async def get_employee_timesheets(
    employee_id: str,
    organization_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None
) -> List[Timesheet]:
    """An employee's timesheets, newest period first; optionally only those starting in ``[start, end]``."""
    db = get_db()
    filter_dict = {"employee_id": employee_id, "organization_id": organization_id}
    if start and end:
        filter_dict["start_date"] = {"$gte": start, "$lte": end}

    cursor = db["timesheets"].find(filter_dict).sort("start_date", -1)
    return [_to_timesheet(doc) for doc in await cursor.to_list(None)]

async def get_timesheet(
    timesheet_id: str,
    organization_id: str,
    employee_id: Optional[str] = None
) -> Timesheet:
    """
    Fetch one timesheet of the organization.

    Args:
        employee_id: when given, only that employee's timesheet is visible

    Raises:
        TimesheetNotFound: unknown id, other organization or other employee
    """
    db = get_db()
    filter_dict = {"_id": _object_id(timesheet_id), "organization_id": organization_id}
    if employee_id:
        filter_dict["employee_id"] = employee_id

    timesheet_doc = await db["timesheets"].find_one(filter_dict)
    if not timesheet_doc:
        raise TimesheetNotFound("Timesheet not found", {"timesheet_id": timesheet_id})
    return _to_timesheet(timesheet_doc)

async def list_pending_timesheets(reviewer: dict) -> List[Timesheet]:
    """Pending timesheets the reviewer is allowed to decide on, latest submission first."""
    db = get_db()
    filter_dict = {
        "organization_id": reviewer["organization_id"],
        "status": TimesheetStatus.PENDING.value
    }
    if reviewer.get("role") == "manager":
        filter_dict["employee_role"] = "employee"

    cursor = db["timesheets"].find(filter_dict).sort("submitted_at", -1)
    return [_to_timesheet(doc) for doc in await cursor.to_list(None)]

async def review_timesheet(
    reviewer: dict,
    timesheet_id: str,
    status: TimesheetStatus,
    notes: Optional[str] = None
) -> Timesheet:
    """Approve or reject a pending timesheet."""
    db = get_db()
    timesheet = await get_timesheet(timesheet_id, reviewer["organization_id"])
    check_reviewable(reviewer, timesheet)

    oid = ObjectId(timesheet.id)
    await db["timesheets"].update_one({"_id": oid}, {"$set": {
        "status": status.value,
        "approved_by": str(reviewer["_id"]),
        "approved_at": datetime.utcnow(),
        "notes": notes
    }})
    return _to_timesheet(await db["timesheets"].find_one({"_id": oid}))

async def approve_timesheet(reviewer: dict, timesheet_id: str, notes: Optional[str] = None) -> Timesheet:
    return await review_timesheet(reviewer, timesheet_id, TimesheetStatus.APPROVED, notes)

async def reject_timesheet(reviewer: dict, timesheet_id: str, notes: str) -> Timesheet:
    return await review_timesheet(reviewer, timesheet_id, TimesheetStatus.REJECTED, notes)

async def bulk_approve_timesheets(reviewer: dict, timesheet_ids: List[str], notes: Optional[str] = None) -> int:
    """
    Approve every listed pending timesheet the reviewer may review.

    Ids that are unknown, not pending or not reviewable are skipped.

    Returns:
        Number of approved timesheets

    Raises:
        ReviewNotAllowed: none of the listed timesheets could be approved
    """
    db = get_db()
    oids = []
    for timesheet_id in timesheet_ids:
        try:
            oids.append(ObjectId(timesheet_id))
        except InvalidId:
            continue

    pending = await db["timesheets"].find({
        "_id": {"$in": oids},
        "organization_id": reviewer["organization_id"],
        "status": TimesheetStatus.PENDING.value
    }).to_list(None)
    allowed = [
        timesheet for timesheet in (_to_timesheet(doc) for doc in pending)
        if can_review(reviewer, timesheet)
    ]
    if not allowed:
        raise ReviewNotAllowed("No valid timesheets to approve based on your permissions")

    result = await db["timesheets"].update_many(
        {"_id": {"$in": [ObjectId(timesheet.id) for timesheet in allowed]}},
        {"$set": {
            "status": TimesheetStatus.APPROVED.value,
            "approved_by": str(reviewer["_id"]),
            "approved_at": datetime.utcnow(),
            "notes": notes
        }}
    )
    return result.modified_count
