from enum import Enum
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime

class TimesheetStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

class Timesheet(BaseModel):
    id: Optional[str] = Field(None, alias="_id")
    organization_id: str
    employee_id: str
    employee_role: str = "employee"  # role at submission, decides who may review
    start_date: datetime
    end_date: datetime
    total_hours: float
    regular_hours: float
    overtime_hours: float
    break_hours: float
    status: TimesheetStatus = TimesheetStatus.PENDING
    submitted_at: datetime
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    notes: Optional[str] = None

    class Config:
        populate_by_name = True

class TimesheetGenerate(BaseModel):
    start_date: date
    end_date: date

class TimesheetReview(BaseModel):
    notes: Optional[str] = None

class TimesheetReject(BaseModel):
    notes: str = Field(..., min_length=1)

class TimesheetBulkApprove(BaseModel):
    timesheet_ids: List[str]
    notes: Optional[str] = None
