from fastapi import APIRouter, Depends
from typing import List
from datetime import datetime, timedelta
from timeclock.schemas.team import OrgStats, TeamActivity, TeamMemberStatus
from timeclock.services.clock_service import (
    day_bounds,
    get_events_between,
    get_recent_events,
    list_clocking_members
)
from timeclock.services.stats_service import aggregate
from timeclock.services.timeline_service import reduce, reduce_all
from timeclock.utils.auth import CLOCKING_ROLES, require_manager_or_admin

router = APIRouter()

def display_name(user: dict) -> str:
    if user.get("name"):
        return user["name"]
    return f"{user.get('firstName', '')} {user.get('lastName', '')}".strip() or user.get("email", "")

@router.get("/status", response_model=List[TeamMemberStatus])
async def get_team_status(current_user: dict = Depends(require_manager_or_admin)):
    """Current status and today's hours for every member who can clock in (Manager/Admin only)"""
    organization_id = current_user["organization_id"]
    now = datetime.utcnow()
    start, end = day_bounds(now.date())

    members = await list_clocking_members(organization_id, CLOCKING_ROLES)
    states = reduce_all(await get_events_between(organization_id, start, end), now)

    team_status = []
    for member in members:
        # Members without events today reduce to the clocked-out default
        state = states.get(member["_id"]) or reduce([], now)
        team_status.append(TeamMemberStatus(
            id=member["_id"],
            name=display_name(member),
            email=member.get("email"),
            role=member.get("role", "employee"),
            currentStatus=state.current_status.value,
            todayHours=round(state.worked_hours, 2),
            breakTime=round(state.break_hours, 2),
            lastActivity=state.last_activity,
            clockedInAt=state.clocked_in_at,
            lastBreakStart=state.last_break_start,
            location=member.get("location")
        ))

    return team_status

@router.get("/stats", response_model=dict)
async def get_team_stats(current_user: dict = Depends(require_manager_or_admin)):
    """Organization-wide attendance figures for today (Manager/Admin only)"""
    organization_id = current_user["organization_id"]
    now = datetime.utcnow()
    start, end = day_bounds(now.date())

    members = await list_clocking_members(organization_id, CLOCKING_ROLES)
    states = reduce_all(await get_events_between(organization_id, start, end), now)

    # Events of deactivated users or non-clocking roles stay out of the figures
    roster_states = {
        member["_id"]: states[member["_id"]]
        for member in members
        if member["_id"] in states
    }

    stats: OrgStats = aggregate(roster_states, len(members))
    return {"success": True, "stats": stats.dict()}

@router.get("/activity", response_model=dict)
async def get_team_activity(current_user: dict = Depends(require_manager_or_admin)):
    """Clock events from the last 24 hours, newest first (Manager/Admin only)"""
    organization_id = current_user["organization_id"]
    since = datetime.utcnow() - timedelta(days=1)

    events = await get_recent_events(organization_id, since, limit=50)
    names = {
        member["_id"]: display_name(member)
        for member in await list_clocking_members(organization_id, CLOCKING_ROLES)
    }

    activities = [
        TeamActivity(
            id=event.id,
            userId=event.employee_id,
            userName=names.get(event.employee_id, "Unknown"),
            type=event.event_type.value,
            timestamp=event.timestamp,
            method=event.method.value,
            location={"id": event.location_id} if event.location_id else None,
            coordinates={
                "latitude": event.gps_coordinates.lat,
                "longitude": event.gps_coordinates.lng
            } if event.gps_coordinates else None
        ).dict()
        for event in events
    ]

    return {"success": True, "activities": activities}
