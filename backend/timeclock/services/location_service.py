from collections import Counter
from datetime import datetime
from typing import Iterable, List, Optional
from timeclock.db import get_db
from timeclock.models.clock_event import ClockEvent, EventType
from timeclock.models.geo import Coordinate, GeoEvaluationResult, SiteEvaluation
from timeclock.models.location import Location, WorkSite
from timeclock.services.exceptions import LocationNotFound, NoLocationsConfigured, OutOfRange
from timeclock.schemas.location import LocationAnalytics
from timeclock.services.geo_service import evaluate

RECENT_EVENTS_LIMIT = 10
EPOCH = datetime(1970, 1, 1)

def _to_location(location_doc: dict) -> Location:
    location_doc["_id"] = str(location_doc["_id"])
    return Location(**location_doc)

async def list_active_sites(organization_id: str) -> List[Location]:
    """
    Get the organization's active work locations, ordered by name.

    Args:
        organization_id: tenant the caller belongs to

    Returns:
        List of Location objects (may be empty)
    """
    db = get_db()
    cursor = db["locations"].find({
        "organization_id": organization_id,
        "is_active": True
    }).sort("name", 1)
    return [_to_location(doc) for doc in await cursor.to_list(None)]

def resolve_clock_location(
    observed: Coordinate,
    sites: List[WorkSite],
    requested_location_id: Optional[str] = None
) -> SiteEvaluation:
    """
    Pick the site a geofenced clock action is checked against and enforce its radius.

    With a requested location only that site is considered; otherwise the
    closest one is.

    Raises:
        NoLocationsConfigured: the organization has no active sites
        LocationNotFound: the requested site is not among the active sites
        OutOfRange: the observed position is outside the target site's radius
    """
    if not sites:
        raise NoLocationsConfigured("No active locations found for your organization")

    if requested_location_id:
        sites = [site for site in sites if site.id == requested_location_id]
        if not sites:
            raise LocationNotFound("Requested location not found", {"location_id": requested_location_id})

    result: GeoEvaluationResult = evaluate(observed, sites)
    target = result.closest_site

    if not target.in_range:
        distance = round(target.distance_meters)
        raise OutOfRange(
            f"You are {distance}m away from {target.name}. "
            f"You must be within {target.radius_meters:g}m to clock in.",
            {
                "distance": distance,
                "radius": target.radius_meters,
                "locationName": target.name,
            }
        )

    return target

def make_qr_token(location_id: str, issued_at: datetime) -> str:
    """Token encoded in a location's QR code; a new one replaces the previous code."""
    millis = int((issued_at - EPOCH).total_seconds() * 1000)
    return f"timeclock-{location_id}-{millis}"

def summarize_location_activity(location_id: str, events: Iterable[ClockEvent], days: int) -> LocationAnalytics:
    """
    Usage figures for one location over the last ``days`` days.

    ``events`` are expected newest first; the first ten are reported as recent.
    """
    events = list(events)
    by_day = Counter(event.timestamp.date().isoformat() for event in events)

    return LocationAnalytics(
        locationId=location_id,
        days=days,
        totalEvents=len(events),
        uniqueUsers=len({event.employee_id for event in events}),
        clockInEvents=sum(1 for event in events if event.event_type == EventType.CLOCK_IN),
        clockOutEvents=sum(1 for event in events if event.event_type == EventType.CLOCK_OUT),
        eventsByDay=dict(sorted(by_day.items())),
        averageEventsPerDay=round(len(events) / days, 2) if days > 0 else 0.0,
        recentEvents=events[:RECENT_EVENTS_LIMIT],
    )
