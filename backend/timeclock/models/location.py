from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from timeclock.models.geo import Coordinate

class WorkSite(BaseModel):
    """Geofenced work location as seen by the range evaluator."""
    id: Optional[str] = Field(None, alias="_id")
    name: str
    address: Optional[str] = None
    coordinates: Coordinate
    radius_meters: float = Field(default=100, gt=0)

    class Config:
        populate_by_name = True

class Location(WorkSite):
    organization_id: str
    is_active: bool = Field(default=True)
    created_by: Optional[str] = None
    qr_code: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

class LocationCreate(BaseModel):
    name: str
    address: str
    coordinates: Coordinate
    radius_meters: float = Field(default=100, ge=10, le=1000)  # 10m to 1km radius

class LocationUpdate(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    coordinates: Optional[Coordinate] = None
    radius_meters: Optional[float] = Field(None, ge=10, le=1000)
    is_active: Optional[bool] = None

class LocationVerifyRequest(BaseModel):
    latitude: float
    longitude: float
