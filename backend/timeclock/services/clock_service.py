from datetime import date, datetime, time, timedelta
from typing import List, Optional
from timeclock.db import get_db
from timeclock.models.clock_event import ClockActionCreate, ClockEvent, ClockMethod, EventType
from timeclock.models.geo import Coordinate
from timeclock.models.timeline import ClockStatus
from timeclock.services.exceptions import InvalidTransition
from timeclock.services.timeline_service import status_from_last_event

# Statuses from which each clock action may be recorded
ALLOWED_FROM = {
    EventType.CLOCK_IN: {ClockStatus.CLOCKED_OUT},
    EventType.CLOCK_OUT: {ClockStatus.CLOCKED_IN, ClockStatus.ON_BREAK},
    EventType.BREAK_START: {ClockStatus.CLOCKED_IN},
    EventType.BREAK_END: {ClockStatus.ON_BREAK},
}

ACTION_LABELS = {
    EventType.CLOCK_IN: "clock in",
    EventType.CLOCK_OUT: "clock out",
    EventType.BREAK_START: "start break",
    EventType.BREAK_END: "end break",
}

def check_transition(event_type: EventType, current: ClockStatus) -> None:
    """Raise InvalidTransition if ``event_type`` may not follow ``current``."""
    if current not in ALLOWED_FROM[event_type]:
        raise InvalidTransition(
            f"Cannot {ACTION_LABELS[event_type]} from current status: {current.value}",
            {"currentStatus": current.value, "action": event_type.value}
        )

def day_bounds(day: date):
    start_of_day = datetime.combine(day, time.min)
    return start_of_day, start_of_day + timedelta(days=1)

def _to_event(event_doc: dict) -> ClockEvent:
    event_doc["_id"] = str(event_doc["_id"])
    return ClockEvent(**event_doc)

async def get_last_clock_event(employee_id: str, organization_id: str) -> Optional[ClockEvent]:
    db = get_db()
    event_doc = await db["clock_events"].find_one(
        {"employee_id": employee_id, "organization_id": organization_id},
        sort=[("timestamp", -1)]
    )
    return _to_event(event_doc) if event_doc else None

async def get_current_status(employee_id: str, organization_id: str) -> ClockStatus:
    return status_from_last_event(await get_last_clock_event(employee_id, organization_id))

async def get_events_between(
    organization_id: str,
    start: datetime,
    end: datetime,
    employee_id: Optional[str] = None
) -> List[ClockEvent]:
    """
    Clock events in ``[start, end)`` ascending by timestamp.

    Args:
        organization_id: tenant filter
        start: inclusive lower bound (UTC)
        end: exclusive upper bound (UTC)
        employee_id: restrict to one subject when given
    """
    db = get_db()
    filter_dict = {
        "organization_id": organization_id,
        "timestamp": {"$gte": start, "$lt": end}
    }
    if employee_id:
        filter_dict["employee_id"] = employee_id

    cursor = db["clock_events"].find(filter_dict).sort("timestamp", 1)
    return [_to_event(doc) for doc in await cursor.to_list(None)]

async def get_recent_events(organization_id: str, since: datetime, limit: int = 50) -> List[ClockEvent]:
    db = get_db()
    cursor = db["clock_events"].find({
        "organization_id": organization_id,
        "timestamp": {"$gte": since}
    }).sort("timestamp", -1).limit(limit)
    return [_to_event(doc) for doc in await cursor.to_list(None)]

async def get_location_events(organization_id: str, location_id: str, since: datetime) -> List[ClockEvent]:
    """Clock events recorded at one location since ``since``, newest first."""
    db = get_db()
    cursor = db["clock_events"].find({
        "organization_id": organization_id,
        "location_id": location_id,
        "timestamp": {"$gte": since}
    }).sort("timestamp", -1)
    return [_to_event(doc) for doc in await cursor.to_list(None)]

async def record_clock_event(
    employee_id: str,
    organization_id: str,
    event_type: EventType,
    action: ClockActionCreate,
    location_id: Optional[str] = None,
    distance: Optional[float] = None
) -> ClockEvent:
    """Insert a clock event stamped with the current UTC time."""
    db = get_db()

    gps = None
    if action.latitude is not None and action.longitude is not None:
        gps = Coordinate(lat=action.latitude, lng=action.longitude)

    clock_event_doc = {
        "employee_id": employee_id,
        "organization_id": organization_id,
        "event_type": event_type.value,
        "method": (action.method or ClockMethod.MANUAL).value,
        "timestamp": datetime.utcnow(),
        "location_id": location_id or action.location_id,
        "gps_coordinates": gps.dict() if gps else None,
        "distance_from_location": distance,
        "notes": action.notes,
        "created_at": datetime.utcnow()
    }

    result = await db["clock_events"].insert_one(clock_event_doc)
    clock_event_doc["_id"] = str(result.inserted_id)

    return ClockEvent(**clock_event_doc)

async def list_clocking_members(organization_id: str, roles: List[str]) -> List[dict]:
    db = get_db()
    members = await db["users"].find({
        "organization_id": organization_id,
        "isActive": True,
        "role": {"$in": roles}
    }).sort("name", 1).to_list(None)
    for member in members:
        member["_id"] = str(member["_id"])
    return members
