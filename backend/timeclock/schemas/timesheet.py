from pydantic import BaseModel
from typing import List, Optional
from datetime import date, datetime

class BreakPeriod(BaseModel):
    start: datetime
    end: Optional[datetime] = None

class DailyHours(BaseModel):
    date: date
    hours: float = 0.0
    break_hours: float = 0.0
    first_clock_in: Optional[datetime] = None
    last_clock_out: Optional[datetime] = None
    breaks: List[BreakPeriod] = []

class WeeklyTimesheet(BaseModel):
    start_date: date
    end_date: date
    total_hours: float
    daily_hours: List[DailyHours]

class TimesheetSummary(BaseModel):
    start_date: date
    end_date: date
    total_hours: float
    regular_hours: float
    overtime_hours: float
    break_hours: float
    days_worked: int
