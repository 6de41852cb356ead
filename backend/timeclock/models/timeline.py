from enum import Enum
from pydantic import BaseModel
from typing import Optional
from datetime import datetime, timedelta

class ClockStatus(str, Enum):
    CLOCKED_OUT = "CLOCKED_OUT"
    CLOCKED_IN = "CLOCKED_IN"
    ON_BREAK = "ON_BREAK"

class TimelineState(BaseModel):
    current_status: ClockStatus = ClockStatus.CLOCKED_OUT
    worked_duration: timedelta = timedelta(0)
    break_duration: timedelta = timedelta(0)
    open_since: Optional[datetime] = None
    event_count: int = 0
    clocked_in_at: Optional[datetime] = None
    last_break_start: Optional[datetime] = None
    last_activity: Optional[datetime] = None

    @property
    def worked_hours(self) -> float:
        return self.worked_duration.total_seconds() / 3600

    @property
    def break_hours(self) -> float:
        return self.break_duration.total_seconds() / 3600
