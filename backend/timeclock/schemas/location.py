from pydantic import BaseModel
from typing import Dict, List
from timeclock.models.clock_event import ClockEvent

class LocationAnalytics(BaseModel):
    locationId: str
    days: int
    totalEvents: int
    uniqueUsers: int
    clockInEvents: int
    clockOutEvents: int
    eventsByDay: Dict[str, int]
    averageEventsPerDay: float
    recentEvents: List[ClockEvent]
