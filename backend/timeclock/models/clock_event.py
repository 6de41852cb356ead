from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from timeclock.models.geo import Coordinate

class EventType(str, Enum):
    CLOCK_IN = "CLOCK_IN"
    CLOCK_OUT = "CLOCK_OUT"
    BREAK_START = "BREAK_START"
    BREAK_END = "BREAK_END"

class ClockMethod(str, Enum):
    MANUAL = "MANUAL"
    QR_CODE = "QR_CODE"
    GEOFENCE = "GEOFENCE"

class ClockEvent(BaseModel):
    id: Optional[str] = Field(None, alias="_id")
    employee_id: str
    event_type: EventType
    timestamp: datetime
    organization_id: Optional[str] = None
    method: ClockMethod = ClockMethod.MANUAL
    location_id: Optional[str] = None
    gps_coordinates: Optional[Coordinate] = None
    distance_from_location: Optional[float] = None  # meters
    notes: Optional[str] = None

    class Config:
        populate_by_name = True

class ClockActionCreate(BaseModel):
    method: ClockMethod = ClockMethod.MANUAL
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    location_id: Optional[str] = None
    notes: Optional[str] = None
