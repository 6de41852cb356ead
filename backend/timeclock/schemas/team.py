from pydantic import BaseModel
from typing import Optional
from datetime import datetime

class OrgStats(BaseModel):
    totalEmployees: int
    currentlyWorking: int
    onBreak: int
    clockedOut: int
    totalHoursToday: float
    averageHoursPerEmployee: float
    attendanceRate: float

class TeamMemberStatus(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    role: str
    currentStatus: str
    todayHours: float
    breakTime: float
    lastActivity: Optional[datetime] = None
    clockedInAt: Optional[datetime] = None
    lastBreakStart: Optional[datetime] = None
    location: Optional[dict] = None

class TeamActivity(BaseModel):
    id: str
    userId: str
    userName: str
    type: str
    timestamp: datetime
    method: Optional[str] = None
    location: Optional[dict] = None
    coordinates: Optional[dict] = None
