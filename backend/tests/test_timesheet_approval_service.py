from datetime import date, datetime

import pytest

from conftest import ADMIN, MANAGER, ORG_ID
from timeclock.models.timesheet import Timesheet, TimesheetStatus
from timeclock.services.exceptions import ReviewNotAllowed, TimesheetConflict, TimesheetNotPending
from timeclock.services.timesheet_approval_service import (
    can_review,
    check_overlaps,
    check_reviewable,
    period_bounds
)

START, END = period_bounds(date(2025, 1, 13), date(2025, 1, 19))


def timesheet(status=TimesheetStatus.PENDING, start=START, end=END, employee_id="emp-2", employee_role="employee"):
    return Timesheet(
        id="ts-1",
        organization_id=ORG_ID,
        employee_id=employee_id,
        employee_role=employee_role,
        start_date=start,
        end_date=end,
        total_hours=8,
        regular_hours=8,
        overtime_hours=0,
        break_hours=0,
        status=status,
        submitted_at=datetime(2025, 1, 20),
    )


def test_period_bounds_cover_whole_days():
    assert START == datetime(2025, 1, 13)
    assert END == datetime(2025, 1, 19, 23, 59, 59, 999000)


def test_no_existing_timesheets():
    assert check_overlaps([], START, END) is None


@pytest.mark.parametrize("status", [TimesheetStatus.PENDING, TimesheetStatus.APPROVED])
def test_overlap_blocks(status):
    existing = [timesheet(status, start=datetime(2025, 1, 19), end=datetime(2025, 1, 25))]
    with pytest.raises(TimesheetConflict):
        check_overlaps(existing, START, END)


def test_approved_conflict_reported_before_pending():
    existing = [timesheet(TimesheetStatus.PENDING), timesheet(TimesheetStatus.APPROVED)]
    with pytest.raises(TimesheetConflict) as excinfo:
        check_overlaps(existing, START, END)
    assert excinfo.value.details["status"] == "APPROVED"


def test_adjacent_period_does_not_overlap():
    existing = [timesheet(TimesheetStatus.APPROVED, start=datetime(2025, 1, 20), end=datetime(2025, 1, 26))]
    assert check_overlaps(existing, START, END) is None


def test_exact_rejected_is_reused():
    rejected = timesheet(TimesheetStatus.REJECTED)
    assert check_overlaps([rejected], START, END) is rejected


def test_partially_overlapping_rejected_is_not_reused():
    rejected = timesheet(TimesheetStatus.REJECTED, start=datetime(2025, 1, 15))
    assert check_overlaps([rejected], START, END) is None


def test_review_rules():
    assert can_review(MANAGER, timesheet()) is True
    assert can_review(MANAGER, timesheet(employee_id="mgr-2", employee_role="manager")) is False
    assert can_review(ADMIN, timesheet(employee_id="mgr-2", employee_role="manager")) is True
    assert can_review(ADMIN, timesheet(employee_id="adm-1", employee_role="administrator")) is False


def test_only_pending_timesheets_are_reviewable():
    with pytest.raises(TimesheetNotPending):
        check_reviewable(MANAGER, timesheet(TimesheetStatus.APPROVED))


def test_own_timesheet_is_not_reviewable():
    with pytest.raises(ReviewNotAllowed, match="your own"):
        check_reviewable(MANAGER, timesheet(employee_id="mgr-1", employee_role="manager"))
