from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List, Optional
from datetime import date, datetime, timedelta
from timeclock.models.timesheet import (
    Timesheet,
    TimesheetBulkApprove,
    TimesheetGenerate,
    TimesheetReject,
    TimesheetReview
)
from timeclock.schemas.timesheet import TimesheetSummary, WeeklyTimesheet
from timeclock.services.clock_service import day_bounds, get_events_between
from timeclock.services.timesheet_approval_service import (
    approve_timesheet,
    bulk_approve_timesheets,
    generate_timesheet,
    get_employee_timesheets,
    get_timesheet,
    list_pending_timesheets,
    period_bounds,
    reject_timesheet
)
from timeclock.services.timesheet_service import build_weekly_timesheet, summarize_period
from timeclock.utils.auth import get_current_user, require_manager_or_admin
from timeclock.utils.logger import log_event, EventTypes

router = APIRouter()

def _parse_date(value: str, field: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise HTTPException(400, f"Invalid {field}. Expected YYYY-MM-DD")

@router.get("/weekly", response_model=WeeklyTimesheet)
async def get_weekly_timesheet(
    week_start: Optional[str] = Query(None, description="First day of the week (YYYY-MM-DD), defaults to this Monday"),
    current_user: dict = Depends(get_current_user)
):
    """Daily hours for seven days starting at week_start"""
    now = datetime.utcnow()
    if week_start:
        start_day = _parse_date(week_start, "week_start")
    else:
        start_day = now.date() - timedelta(days=now.weekday())

    start, _ = day_bounds(start_day)
    _, end = day_bounds(start_day + timedelta(days=6))

    events = await get_events_between(
        current_user["organization_id"], start, end, employee_id=str(current_user["_id"])
    )
    return build_weekly_timesheet(events, start_day, now)

@router.get("/summary", response_model=TimesheetSummary)
async def get_timesheet_summary(
    start_date: str = Query(..., description="Start date (YYYY-MM-DD)"),
    end_date: str = Query(..., description="End date (YYYY-MM-DD), inclusive"),
    current_user: dict = Depends(get_current_user)
):
    """Regular and overtime hours for a period; 400 when nothing was worked"""
    first_day = _parse_date(start_date, "start_date")
    last_day = _parse_date(end_date, "end_date")
    if last_day < first_day:
        raise HTTPException(400, "end_date must not be before start_date")

    start, _ = day_bounds(first_day)
    _, end = day_bounds(last_day)

    events = await get_events_between(
        current_user["organization_id"], start, end, employee_id=str(current_user["_id"])
    )
    return summarize_period(events, first_day, last_day, datetime.utcnow())

@router.get("/", response_model=List[Timesheet])
async def list_my_timesheets(
    start_date: Optional[str] = Query(None, description="Only timesheets starting on or after this day (YYYY-MM-DD)"),
    end_date: Optional[str] = Query(None, description="Only timesheets starting on or before this day (YYYY-MM-DD)"),
    current_user: dict = Depends(get_current_user)
):
    """The caller's submitted timesheets, newest period first"""
    start = end = None
    if start_date and end_date:
        start, end = period_bounds(_parse_date(start_date, "start_date"), _parse_date(end_date, "end_date"))

    return await get_employee_timesheets(
        str(current_user["_id"]), current_user["organization_id"], start, end
    )

@router.post("/generate", response_model=dict)
async def submit_timesheet(
    body: TimesheetGenerate,
    current_user: dict = Depends(get_current_user)
):
    """Build a timesheet from the caller's clock events and submit it for approval"""
    if body.end_date < body.start_date:
        raise HTTPException(400, "end_date must not be before start_date")

    timesheet, updated = await generate_timesheet(current_user, body.start_date, body.end_date, datetime.utcnow())

    await log_event(EventTypes.TIMESHEET_SUBMITTED, {
        "timesheet_id": timesheet.id,
        "start_date": body.start_date.isoformat(),
        "end_date": body.end_date.isoformat(),
        "resubmitted": updated
    }, user_id=str(current_user["_id"]), organization_id=current_user["organization_id"])

    return {"success": True, "timesheet": timesheet.dict(), "updated": updated}

@router.get("/pending", response_model=List[Timesheet])
async def list_pending(current_user: dict = Depends(require_manager_or_admin)):
    """Pending timesheets the caller may review (Manager/Admin only)"""
    return await list_pending_timesheets(current_user)

@router.post("/bulk-approve", response_model=dict)
async def bulk_approve(
    body: TimesheetBulkApprove,
    current_user: dict = Depends(require_manager_or_admin)
):
    """Approve several pending timesheets at once (Manager/Admin only)"""
    if not body.timesheet_ids:
        raise HTTPException(400, "No timesheets selected")

    approved = await bulk_approve_timesheets(current_user, body.timesheet_ids, body.notes)

    await log_event(EventTypes.TIMESHEET_APPROVED, {
        "timesheet_ids": body.timesheet_ids,
        "approved": approved
    }, user_id=str(current_user["_id"]), organization_id=current_user["organization_id"])

    return {
        "success": True,
        "approved": approved,
        "total": len(body.timesheet_ids),
        "message": f"Approved {approved} of {len(body.timesheet_ids)} timesheets"
    }

@router.get("/{timesheet_id}", response_model=Timesheet)
async def get_timesheet_by_id(
    timesheet_id: str,
    current_user: dict = Depends(get_current_user)
):
    """One timesheet; employees only see their own"""
    employee_id = str(current_user["_id"]) if current_user.get("role") == "employee" else None
    return await get_timesheet(timesheet_id, current_user["organization_id"], employee_id)

@router.post("/{timesheet_id}/approve", response_model=dict)
async def approve(
    timesheet_id: str,
    body: Optional[TimesheetReview] = None,
    current_user: dict = Depends(require_manager_or_admin)
):
    """Approve a pending timesheet (Manager/Admin only)"""
    timesheet = await approve_timesheet(current_user, timesheet_id, body.notes if body else None)

    await log_event(EventTypes.TIMESHEET_APPROVED, {
        "timesheet_id": timesheet_id,
        "employee_id": timesheet.employee_id
    }, user_id=str(current_user["_id"]), organization_id=current_user["organization_id"])

    return {"success": True, "timesheet": timesheet.dict()}

@router.post("/{timesheet_id}/reject", response_model=dict)
async def reject(
    timesheet_id: str,
    body: TimesheetReject,
    current_user: dict = Depends(require_manager_or_admin)
):
    """Reject a pending timesheet with a reason (Manager/Admin only)"""
    if not body.notes.strip():
        raise HTTPException(400, "Rejection reason is required")

    timesheet = await reject_timesheet(current_user, timesheet_id, body.notes.strip())

    await log_event(EventTypes.TIMESHEET_REJECTED, {
        "timesheet_id": timesheet_id,
        "employee_id": timesheet.employee_id
    }, user_id=str(current_user["_id"]), organization_id=current_user["organization_id"])

    return {"success": True, "timesheet": timesheet.dict()}
