from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List, Optional
from datetime import datetime
from timeclock.models.clock_event import ClockActionCreate, ClockEvent, ClockMethod, EventType
from timeclock.models.geo import Coordinate
from timeclock.services.clock_service import (
    check_transition,
    day_bounds,
    get_current_status,
    get_events_between,
    record_clock_event
)
from timeclock.services.exceptions import TimeclockError
from timeclock.services.location_service import list_active_sites, resolve_clock_location
from timeclock.services.stats_service import round_half_up
from timeclock.services.timeline_service import reduce
from timeclock.utils.auth import get_current_user
from timeclock.utils.logger import log_event, log_warning, EventTypes

router = APIRouter()

RESULT_STATUS = {
    EventType.CLOCK_IN: "CLOCKED_IN",
    EventType.CLOCK_OUT: "CLOCKED_OUT",
    EventType.BREAK_START: "ON_BREAK",
    EventType.BREAK_END: "CLOCKED_IN",
}

AUDIT_ACTIONS = {
    EventType.CLOCK_IN: EventTypes.CLOCKED_IN,
    EventType.CLOCK_OUT: EventTypes.CLOCKED_OUT,
    EventType.BREAK_START: EventTypes.BREAK_STARTED,
    EventType.BREAK_END: EventTypes.BREAK_ENDED,
}

async def todays_hours(employee_id: str, organization_id: str, now: datetime) -> float:
    start, end = day_bounds(now.date())
    events = await get_events_between(organization_id, start, end, employee_id=employee_id)
    return round(reduce(events, now).worked_hours, 2)

async def perform_clock_action(event_type: EventType, action: ClockActionCreate, current_user: dict) -> dict:
    employee_id = str(current_user["_id"])
    organization_id = current_user["organization_id"]

    try:
        check_transition(event_type, await get_current_status(employee_id, organization_id))

        location_id = action.location_id
        distance = None
        validation = None

        if (
            event_type == EventType.CLOCK_IN
            and action.method == ClockMethod.GEOFENCE
            and action.latitude is not None
            and action.longitude is not None
        ):
            sites = await list_active_sites(organization_id)
            target = resolve_clock_location(
                Coordinate(lat=action.latitude, lng=action.longitude),
                sites,
                action.location_id
            )
            location_id = target.site_id
            distance = target.distance_meters
            validation = {"distance": round(distance), "locationName": target.name}

    except TimeclockError as e:
        log_warning(f"{event_type.value} rejected: {e.message}", user_id=employee_id)
        await log_event(EventTypes.CLOCK_REJECTED, {
            "action": event_type.value,
            "code": e.code,
            **e.details
        }, user_id=employee_id, organization_id=organization_id)
        raise

    clock_event = await record_clock_event(
        employee_id=employee_id,
        organization_id=organization_id,
        event_type=event_type,
        action=action,
        location_id=location_id,
        distance=distance
    )

    await log_event(AUDIT_ACTIONS[event_type], {
        "location_id": location_id,
        "method": action.method.value,
        "distance_meters": round(distance, 2) if distance is not None else None
    }, user_id=employee_id, organization_id=organization_id)

    response = {
        "success": True,
        "clockEvent": clock_event.dict(),
        "currentStatus": RESULT_STATUS[event_type]
    }
    if event_type == EventType.CLOCK_IN:
        response["locationValidation"] = validation
    if event_type == EventType.CLOCK_OUT:
        response["todaysHours"] = await todays_hours(employee_id, organization_id, clock_event.timestamp)
    return response

@router.post("/clock-in", response_model=dict)
async def clock_in(action: ClockActionCreate, current_user: dict = Depends(get_current_user)):
    """Clock in; GEOFENCE requests are checked against the organization's locations"""
    return await perform_clock_action(EventType.CLOCK_IN, action, current_user)

@router.post("/clock-out", response_model=dict)
async def clock_out(action: ClockActionCreate, current_user: dict = Depends(get_current_user)):
    return await perform_clock_action(EventType.CLOCK_OUT, action, current_user)

@router.post("/break-start", response_model=dict)
async def start_break(action: ClockActionCreate, current_user: dict = Depends(get_current_user)):
    return await perform_clock_action(EventType.BREAK_START, action, current_user)

@router.post("/break-end", response_model=dict)
async def end_break(action: ClockActionCreate, current_user: dict = Depends(get_current_user)):
    return await perform_clock_action(EventType.BREAK_END, action, current_user)

@router.get("/status", response_model=dict)
async def get_status(current_user: dict = Depends(get_current_user)):
    """Current status and today's worked/break hours, projected to now"""
    employee_id = str(current_user["_id"])
    now = datetime.utcnow()
    start, end = day_bounds(now.date())

    events = await get_events_between(current_user["organization_id"], start, end, employee_id=employee_id)
    state = reduce(events, now)

    return {
        "success": True,
        "currentStatus": state.current_status.value,
        "todayHours": round_half_up(state.worked_hours, 2),
        "breakTime": round_half_up(state.break_hours, 2),
        "clockedInAt": state.clocked_in_at,
        "lastBreakStart": state.last_break_start,
        "lastEvent": events[-1].dict() if events else None
    }

@router.get("/events", response_model=List[ClockEvent])
async def get_clock_events(
    date: Optional[str] = Query(None, description="Date (YYYY-MM-DD), defaults to today"),
    current_user: dict = Depends(get_current_user)
):
    """Get the caller's clock events for one day, oldest first"""
    if date:
        try:
            day = datetime.strptime(date, "%Y-%m-%d").date()
        except ValueError:
            raise HTTPException(400, "Invalid date format. Expected YYYY-MM-DD")
    else:
        day = datetime.utcnow().date()

    start, end = day_bounds(day)
    return await get_events_between(
        current_user["organization_id"], start, end, employee_id=str(current_user["_id"])
    )
